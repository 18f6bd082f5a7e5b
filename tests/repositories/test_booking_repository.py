import pytest
from sqlalchemy.exc import IntegrityError

from slotbook.models.booking import Booking, BookingStatus
from slotbook.models.payment import PaymentStatus
from slotbook.repositories.booking_repository import BookingRepository


@pytest.fixture
def pending_booking(db, client_user, provider, slot):
    booking = BookingRepository(db).create(
        slot_id=slot.id,
        client_id=client_user.id,
        provider_id=provider.id,
        start_time=slot.start_time,
        end_time=slot.end_time,
        duration=slot.duration,
        final_cost=0,
    )
    db.commit()
    return booking


def test_create_defaults_to_pending(pending_booking):
    assert pending_booking.status == BookingStatus.PENDING.value
    assert pending_booking.payment_status == PaymentStatus.PENDING.value
    assert pending_booking.created_at is not None


def test_create_second_pending_for_slot_raises_integrity_error(db, pending_booking, client_user, provider):
    repo = BookingRepository(db)

    with pytest.raises(IntegrityError):
        repo.create(
            slot_id=pending_booking.slot_id,
            client_id=client_user.id,
            provider_id=provider.id,
            start_time=pending_booking.start_time,
            end_time=pending_booking.end_time,
            duration=pending_booking.duration,
            final_cost=0,
        )
    db.rollback()


def test_transition_status_is_guarded(db, reload, pending_booking):
    repo = BookingRepository(db)

    assert repo.transition_status(pending_booking.id, BookingStatus.CANCELLED, cancelled_by_id="u1") is True
    assert repo.transition_status(pending_booking.id, BookingStatus.COMPLETED) is False
    db.commit()

    stored = reload(Booking, pending_booking.id)
    assert stored.status == BookingStatus.CANCELLED.value
    assert stored.cancelled_by_id == "u1"
    assert stored.updated_at is not None


def test_set_payment_status_leaves_lifecycle_alone(db, reload, pending_booking):
    repo = BookingRepository(db)

    assert repo.set_payment_status(pending_booking.id, PaymentStatus.FAILED.value) is True
    db.commit()

    stored = reload(Booking, pending_booking.id)
    assert stored.payment_status == PaymentStatus.FAILED.value
    assert stored.status == BookingStatus.PENDING.value


def test_get_with_participants_loads_profiles(db, pending_booking, provider, client_user):
    booking = BookingRepository(db).get_with_participants(pending_booking.id)

    assert booking.provider.name == provider.name
    assert booking.client.email == client_user.email
