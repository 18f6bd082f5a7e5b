# slotbook/tasks/slot_cleanup.py
"""
Periodic expired-slot purge.

Runs on the beat schedule in its own session. Failures are logged and the
run is skipped; the next tick retries with a fresh cutoff.
"""

import logging
from typing import Any, Callable, TypeVar, cast

from celery import shared_task

from slotbook.database import get_db_session
from slotbook.services.slot_cleanup_service import SlotCleanupService

logger = logging.getLogger(__name__)

_TaskFunc = TypeVar("_TaskFunc", bound=Callable[..., Any])


def _typed_shared_task(*args: Any, **kwargs: Any) -> Callable[[_TaskFunc], _TaskFunc]:
    """Typed wrapper for Celery's shared_task decorator."""
    return cast(Callable[[_TaskFunc], _TaskFunc], shared_task(*args, **kwargs))


@_typed_shared_task(name="slotbook.tasks.slot_cleanup.purge_expired_slots", ignore_result=True)
def purge_expired_slots() -> int:
    """Delete slots whose end time has passed. Returns the count, 0 on failure."""
    try:
        with get_db_session() as db:
            count = SlotCleanupService(db).purge_expired_slots()
    except Exception:
        logger.warning("[SLOT-CLEANUP] purge_expired_slots failed", exc_info=True)
        return 0

    if count:
        logger.info("[SLOT-CLEANUP] Deleted %d expired slots", count)
    return count
