from datetime import timedelta
from decimal import Decimal

import pytest

from slotbook.core.enums import RoleName
from slotbook.core.exceptions import (
    ConflictException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from slotbook.models.booking import Booking, BookingStatus
from slotbook.models.slot import Slot, SlotStatus
from slotbook.principal import CallerPrincipal
from slotbook.services.booking_service import BookingService
from slotbook.services.slot_service import SlotService


def test_create_slot_persists_available_slot(db, provider_actor, future_start):
    service = SlotService(db)

    created = service.create_slot(
        provider_actor,
        start_time=future_start,
        end_time=future_start + timedelta(minutes=45),
        duration=45,
    )

    stored = db.query(Slot).filter(Slot.id == created.id).one()
    assert stored.status == SlotStatus.AVAILABLE.value
    assert stored.provider_id == provider_actor.user_id
    assert stored.duration == 45
    assert created.status == "AVAILABLE"
    assert created.start_time == future_start


def test_create_slot_accepts_iso_strings(db, provider_actor):
    service = SlotService(db)

    created = service.create_slot(
        provider_actor,
        start_time="2031-03-10T09:00:00Z",
        end_time="2031-03-10T10:30:00+00:00",
        duration="90",
    )

    assert created.duration == 90
    assert created.end_time - created.start_time == timedelta(minutes=90)


def test_create_slot_requires_provider_role(db, client_actor, future_start):
    service = SlotService(db)

    with pytest.raises(ForbiddenException):
        service.create_slot(
            client_actor,
            start_time=future_start,
            end_time=future_start + timedelta(hours=1),
            duration=60,
        )

    assert db.query(Slot).count() == 0


@pytest.mark.parametrize(
    "start_offset, end_offset, duration",
    [
        (None, 60, 60),
        (0, None, 60),
        (0, 60, None),
    ],
)
def test_create_slot_missing_fields(db, provider_actor, future_start, start_offset, end_offset, duration):
    service = SlotService(db)
    start = future_start + timedelta(minutes=start_offset) if start_offset is not None else None
    end = future_start + timedelta(minutes=end_offset) if end_offset is not None else None

    with pytest.raises(ValidationException) as exc_info:
        service.create_slot(provider_actor, start_time=start, end_time=end, duration=duration)

    assert exc_info.value.code == "MISSING_FIELDS"


def test_create_slot_rejects_end_before_start(db, provider_actor, future_start):
    service = SlotService(db)

    with pytest.raises(ValidationException) as exc_info:
        service.create_slot(
            provider_actor,
            start_time=future_start,
            end_time=future_start - timedelta(minutes=30),
            duration=30,
        )

    assert exc_info.value.code == "INVALID_TIME_RANGE"


def test_create_slot_rejects_duration_mismatch(db, provider_actor, future_start):
    service = SlotService(db)

    with pytest.raises(ValidationException) as exc_info:
        service.create_slot(
            provider_actor,
            start_time=future_start,
            end_time=future_start + timedelta(minutes=60),
            duration=30,
        )

    assert exc_info.value.code == "DURATION_MISMATCH"
    assert db.query(Slot).count() == 0


def test_create_slot_rejects_malformed_timestamp(db, provider_actor):
    service = SlotService(db)

    with pytest.raises(ValidationException):
        service.create_slot(provider_actor, start_time="tomorrow", end_time="later", duration=60)


def test_create_slot_unknown_provider_profile(db, future_start):
    service = SlotService(db)
    ghost = CallerPrincipal.of("no-such-provider", RoleName.PROVIDER)

    with pytest.raises(NotFoundException):
        service.create_slot(
            ghost,
            start_time=future_start,
            end_time=future_start + timedelta(hours=1),
            duration=60,
        )


def test_list_slots_defaults_to_available_ascending(db, provider, make_slot):
    later = make_slot(provider, offset_hours=5)
    earlier = make_slot(provider, offset_hours=1)
    make_slot(provider, offset_hours=3, status=SlotStatus.BOOKED)

    result = SlotService(db).list_slots(provider.id)

    assert [s.id for s in result] == [earlier.id, later.id]
    assert all(s.status == "AVAILABLE" for s in result)
    assert result[0].provider.name == "Dr. Priya Rao"
    assert result[0].provider.hourly_rate == Decimal("1200.00")
    assert result[0].provider.image == "https://img.example.com/priya.png"


def test_list_slots_booked_filter(db, provider, make_slot):
    booked = make_slot(provider, offset_hours=2, status=SlotStatus.BOOKED)
    make_slot(provider, offset_hours=1)

    result = SlotService(db).list_slots(provider.id, status="booked")

    assert [s.id for s in result] == [booked.id]


def test_list_slots_only_for_requested_provider(db, provider, make_user, make_slot):
    other = make_user(RoleName.PROVIDER)
    mine = make_slot(provider)
    make_slot(other)

    result = SlotService(db).list_slots(provider.id)

    assert [s.id for s in result] == [mine.id]


def test_list_slots_rejects_unknown_status(db, provider):
    with pytest.raises(ValidationException) as exc_info:
        SlotService(db).list_slots(provider.id, status="EXPIRED")

    assert exc_info.value.code == "INVALID_STATUS"


def test_list_slots_requires_provider_id(db):
    with pytest.raises(ValidationException):
        SlotService(db).list_slots("")


def test_list_own_slots_descending_with_bookings(
    db, provider, provider_actor, client_actor, client_user, make_slot
):
    first = make_slot(provider, offset_hours=1)
    second = make_slot(provider, offset_hours=4)
    booking = BookingService(db).create_booking(client_actor, first.id)

    result = SlotService(db).list_own_slots(provider_actor)

    assert [s.id for s in result] == [second.id, first.id]
    booked_view = result[1]
    assert booked_view.status == "BOOKED"
    assert [b.id for b in booked_view.bookings] == [booking.id]
    assert booked_view.bookings[0].client.email == client_user.email
    assert result[0].bookings == []


def test_list_own_slots_includes_terminal_bookings(db, provider, provider_actor, client_actor, make_slot):
    slot = make_slot(provider)
    booking_service = BookingService(db)
    cancelled = booking_service.create_booking(client_actor, slot.id)
    booking_service.cancel_booking(client_actor, cancelled.id)

    result = SlotService(db).list_own_slots(provider_actor)

    assert result[0].status == "AVAILABLE"
    assert [b.status for b in result[0].bookings] == [BookingStatus.CANCELLED.value]


def test_list_own_slots_requires_provider(db, client_actor):
    with pytest.raises(ForbiddenException):
        SlotService(db).list_own_slots(client_actor)


def test_delete_slot_removes_available_slot(db, provider_actor, slot):
    SlotService(db).delete_slot(provider_actor, slot.id)

    assert db.query(Slot).filter(Slot.id == slot.id).first() is None


def test_delete_slot_not_found(db, provider_actor):
    with pytest.raises(NotFoundException):
        SlotService(db).delete_slot(provider_actor, "01J00000000000000000000000")


def test_delete_slot_not_owner(db, make_user, slot):
    other = make_user(RoleName.PROVIDER)
    actor = CallerPrincipal.of(other.id, RoleName.PROVIDER)

    with pytest.raises(ForbiddenException) as exc_info:
        SlotService(db).delete_slot(actor, slot.id)

    assert exc_info.value.message == "You can only delete your own slots"
    assert db.query(Slot).filter(Slot.id == slot.id).count() == 1


def test_delete_slot_requires_provider_role(db, client_actor, slot):
    with pytest.raises(ForbiddenException):
        SlotService(db).delete_slot(client_actor, slot.id)


def test_delete_booked_slot_conflicts(db, provider_actor, client_actor, slot):
    BookingService(db).create_booking(client_actor, slot.id)

    with pytest.raises(ConflictException) as exc_info:
        SlotService(db).delete_slot(provider_actor, slot.id)

    assert exc_info.value.message == "Cannot delete a booked slot"
    assert db.query(Slot).filter(Slot.id == slot.id).count() == 1
    assert db.query(Booking).filter(Booking.slot_id == slot.id).count() == 1


def test_delete_slot_loses_race_to_booking(db, session_factory, reload, provider_actor, client_actor, slot):
    """A booking committed after the ownership checks still wins over the delete."""
    service = SlotService(db)
    real_delete = service.repository.delete_if_available

    def book_then_delete(slot_id):
        other = session_factory()
        try:
            BookingService(other).create_booking(client_actor, slot_id)
        finally:
            other.close()
        return real_delete(slot_id)

    service.repository.delete_if_available = book_then_delete

    with pytest.raises(ConflictException):
        service.delete_slot(provider_actor, slot.id)

    assert reload(Slot, slot.id).status == SlotStatus.BOOKED.value
