"""
Concurrent booking attempts against one slot.

Each worker uses its own session, as separate requests would. The guarded
slot update must let exactly one of them through.
"""

from concurrent.futures import ThreadPoolExecutor
import threading
from unittest.mock import patch

import pytest

from slotbook.core.enums import RoleName
from slotbook.core.exceptions import SlotUnavailableException
from slotbook.models.booking import Booking, BookingStatus
from slotbook.models.slot import Slot, SlotStatus
from slotbook.principal import CallerPrincipal
from slotbook.services.booking_service import BookingService

WORKERS = 8


@pytest.fixture
def competing_clients(make_user):
    return [
        CallerPrincipal.of(make_user(RoleName.CLIENT).id, RoleName.CLIENT) for _ in range(WORKERS)
    ]


def _book_in_own_session(session_factory, barrier, actor, slot_id):
    session = session_factory()
    try:
        barrier.wait(timeout=10)
        try:
            return BookingService(session).create_booking(actor, slot_id)
        except SlotUnavailableException as exc:
            return exc
    finally:
        session.close()


def test_concurrent_bookings_single_winner(db, session_factory, reload, competing_clients, slot):
    barrier = threading.Barrier(WORKERS)

    with ThreadPoolExecutor(max_workers=WORKERS) as pool:
        futures = [
            pool.submit(_book_in_own_session, session_factory, barrier, actor, slot.id)
            for actor in competing_clients
        ]
        outcomes = [future.result(timeout=60) for future in futures]

    winners = [o for o in outcomes if not isinstance(o, SlotUnavailableException)]
    losers = [o for o in outcomes if isinstance(o, SlotUnavailableException)]

    assert len(winners) == 1
    assert len(losers) == WORKERS - 1
    assert all(exc.code == "SLOT_NOT_AVAILABLE" for exc in losers)

    stored = db.query(Booking).filter(Booking.slot_id == slot.id).all()
    assert [b.id for b in stored] == [winners[0].id]
    assert stored[0].status == BookingStatus.PENDING.value
    assert reload(Slot, slot.id).status == SlotStatus.BOOKED.value


def test_claim_after_stale_read_conflicts(db, session_factory, reload, competing_clients, slot):
    """A request that read AVAILABLE before a rival committed still loses the claim."""
    first, second = competing_clients[:2]
    service = BookingService(db)
    real_claim = service.slot_repository.mark_booked_if_available
    winner = {}

    def rival_books_first(slot_id):
        other = session_factory()
        try:
            winner["booking"] = BookingService(other).create_booking(second, slot_id)
        finally:
            other.close()
        return real_claim(slot_id)

    with patch.object(service.slot_repository, "mark_booked_if_available", side_effect=rival_books_first):
        with pytest.raises(SlotUnavailableException):
            service.create_booking(first, slot.id)

    stored = db.query(Booking).filter(Booking.slot_id == slot.id).all()
    assert [b.client_id for b in stored] == [second.user_id]
    assert stored[0].id == winner["booking"].id
    assert reload(Slot, slot.id).status == SlotStatus.BOOKED.value


def test_active_booking_index_backs_up_slot_claim(db, competing_clients, slot):
    """Even if the slot claim were bypassed, a second PENDING booking is refused."""
    first, second = competing_clients[:2]
    service = BookingService(db)
    service.create_booking(first, slot.id)

    db.query(Slot).filter(Slot.id == slot.id).update(
        {Slot.status: SlotStatus.AVAILABLE.value}, synchronize_session=False
    )
    db.commit()

    with pytest.raises(SlotUnavailableException):
        service.create_booking(second, slot.id)

    pending = (
        db.query(Booking)
        .filter(Booking.slot_id == slot.id, Booking.status == BookingStatus.PENDING.value)
        .count()
    )
    assert pending == 1
