from django.apps import AppConfig


class CycleCountsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "cyclecounts"
