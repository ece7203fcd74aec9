"""Boundary validation: run a DRF serializer and raise the engine's error type."""

from .exceptions import InvalidInput


def _flatten(errors, prefix: str = "") -> list[str]:
    messages = []
    if isinstance(errors, dict):
        for field, value in errors.items():
            label = f"{prefix}.{field}" if prefix else str(field)
            if field == "non_field_errors":
                label = prefix
            messages.extend(_flatten(value, label))
    elif isinstance(errors, list):
        for index, value in enumerate(errors):
            if isinstance(value, (dict, list)):
                messages.extend(_flatten(value, f"{prefix}[{index}]"))
            else:
                messages.append(f"{prefix}: {value}" if prefix else str(value))
    else:
        messages.append(f"{prefix}: {errors}" if prefix else str(errors))
    return messages


def validate_payload(serializer_class, data, *, error_class=InvalidInput, many: bool = False):
    """Validate ``data`` with ``serializer_class`` and return ``validated_data``.

    Raises ``error_class`` (``InvalidInput`` by default) listing every field error.
    """
    serializer = serializer_class(data=data, many=many)
    if not serializer.is_valid():
        messages = _flatten(serializer.errors)
        raise error_class("; ".join(messages) or "Invalid request", errors=messages)
    return serializer.validated_data
