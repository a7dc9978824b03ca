"""
Core — Activity Log Service

Writes activity log entries from any app and serialises values for
JSON storage.

@file core/services.py
"""

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from core.models import ActivityLog

logger = logging.getLogger('stocktrace')


def to_json_value(value: Any) -> Any:
    """Decimals and UUIDs as strings, dates ISO-formatted, containers recursively."""
    if value is None:
        return None
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, dict):
        return {str(k): to_json_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json_value(v) for v in value]
    return value


class ActivityLogService:
    """Centralised activity logging for every write operation."""

    @staticmethod
    def log(
        *,
        actor,
        action: str,
        model_name: str,
        object_id: str,
        old_values: dict[str, Any] | None = None,
        new_values: dict[str, Any] | None = None,
    ) -> ActivityLog:
        return ActivityLog.objects.create(
            actor=actor if getattr(actor, 'is_authenticated', False) else None,
            action=action,
            model_name=model_name,
            object_id=str(object_id),
            old_values=to_json_value(old_values),
            new_values=to_json_value(new_values),
        )
