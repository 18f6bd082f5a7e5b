from datetime import timedelta

from slotbook.models.booking import Booking
from slotbook.models.slot import Slot, SlotStatus
from slotbook.models.types import utcnow
from slotbook.services.booking_service import BookingService
from slotbook.services.slot_cleanup_service import SlotCleanupService


def test_purge_removes_only_expired_available_slots(db, provider, make_slot):
    now = utcnow()
    expired = make_slot(provider, start_time=now - timedelta(hours=3))
    expired_booked = make_slot(provider, start_time=now - timedelta(hours=2), status=SlotStatus.BOOKED)
    upcoming = make_slot(provider, start_time=now + timedelta(hours=2))

    deleted = SlotCleanupService(db).purge_expired_slots(now=now)

    assert deleted == 1
    remaining = {s.id for s in db.query(Slot).all()}
    assert expired.id not in remaining
    assert remaining == {expired_booked.id, upcoming.id}


def test_purge_keeps_slot_still_in_progress(db, provider, make_slot):
    now = utcnow()
    running = make_slot(provider, start_time=now - timedelta(minutes=30), duration=60)

    assert SlotCleanupService(db).purge_expired_slots(now=now) == 0
    assert db.query(Slot).filter(Slot.id == running.id).count() == 1


def test_purge_booked_slots_when_configured(db, test_settings, provider, client_actor, make_slot):
    test_settings.sweep_booked_slots = True
    now = utcnow()
    slot = make_slot(provider, start_time=now - timedelta(hours=2))
    booking = BookingService(db).create_booking(client_actor, slot.id)

    deleted = SlotCleanupService(db).purge_expired_slots(now=now)

    assert deleted == 1
    assert db.query(Slot).count() == 0
    # Booking history survives with its own time snapshot
    stored = db.query(Booking).filter(Booking.id == booking.id).one()
    assert stored.start_time == slot.start_time


def test_purge_with_nothing_expired(db, slot):
    assert SlotCleanupService(db).purge_expired_slots() == 0
    assert db.query(Slot).count() == 1
