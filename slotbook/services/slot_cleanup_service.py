# slotbook/services/slot_cleanup_service.py
"""
Expired slot sweeper.

Removes slots whose end time has passed. Bookings keep their own time
snapshot, so deleting a slot never loses booking history.
"""

from datetime import datetime
import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..models.types import utcnow
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from ..repositories.slot_repository import SlotRepository
from .base import BaseService

logger = logging.getLogger(__name__)


class SlotCleanupService(BaseService):
    """Deletes expired slots in one statement per run."""

    def __init__(self, db: Session, repository: Optional[SlotRepository] = None):
        super().__init__(db)
        self.repository = repository or RepositoryFactory.create_slot_repository(db)

    @BaseService.measure_operation("purge_expired_slots")
    def purge_expired_slots(self, now: Optional[datetime] = None) -> int:
        """
        Delete slots with ``end_time < now``.

        BOOKED slots are kept unless ``settings.sweep_booked_slots`` is set,
        so a client holding an active booking never loses the slot row.

        Returns:
            Number of slots deleted
        """
        cutoff = now or utcnow()
        with self.transaction():
            count = self.repository.delete_expired(cutoff, include_booked=settings.sweep_booked_slots)

        prometheus_metrics.inc_expired_slots_purged(count)
        self.logger.info(f"Deleted {count} expired slots")
        return count
