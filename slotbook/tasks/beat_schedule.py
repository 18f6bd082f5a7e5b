# slotbook/tasks/beat_schedule.py
"""
Celery Beat schedule configuration for the slot-booking platform.
"""

from datetime import timedelta
from typing import Any, Dict, Optional

from slotbook.core.config import settings

PURGE_EXPIRED_SLOTS_TASK = "slotbook.tasks.slot_cleanup.purge_expired_slots"


def get_beat_schedule(interval_minutes: Optional[int] = None) -> Dict[str, Dict[str, Any]]:
    """
    Periodic task schedule.

    Args:
        interval_minutes: Sweep interval; defaults to
            ``settings.slot_cleanup_interval_minutes``
    """
    minutes = interval_minutes or settings.slot_cleanup_interval_minutes
    return {
        "purge-expired-slots": {
            "task": PURGE_EXPIRED_SLOTS_TASK,
            "schedule": timedelta(minutes=minutes),
            "options": {
                "queue": "maintenance",
                # A missed run is superseded by the next one
                "expires": minutes * 60,
            },
        },
    }
