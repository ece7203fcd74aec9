from django.db import models


class IdempotencyRecord(models.Model):
    """Result of a mutating operation, stored so retries replay it instead of re-applying effects."""

    key = models.CharField(max_length=128)
    operation = models.CharField(max_length=64)
    actor = models.CharField(max_length=64, blank=True)
    request_hash = models.CharField(max_length=64, null=True, blank=True)
    result = models.JSONField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    # Retention only; replay does not depend on it
    expires_at = models.DateTimeField(null=True, blank=True, db_index=True)

    class Meta:
        ordering = ["-created_at", "id"]
        constraints = [
            models.UniqueConstraint(fields=["key", "operation"], name="uniq_idem_key_operation"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"Idempotency<{self.operation}:{self.key}>"
