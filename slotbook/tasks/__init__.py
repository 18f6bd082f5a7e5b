# slotbook/tasks/__init__.py
"""
Celery tasks package for the slot-booking platform.

This package contains the periodic maintenance tasks:
- Expired slot purge (every slot_cleanup_interval_minutes)
"""

from slotbook.tasks.celery_app import BaseTask, celery_app
from slotbook.tasks.slot_cleanup import purge_expired_slots

__all__ = [
    "BaseTask",
    "celery_app",
    "purge_expired_slots",
]
