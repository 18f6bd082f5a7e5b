import pytest

from slotbook.core.enums import RoleName
from slotbook.core.exceptions import SlotUnavailableException
from slotbook.monitoring.prometheus_metrics import REGISTRY, prometheus_metrics
from slotbook.principal import CallerPrincipal
from slotbook.services.booking_service import BookingService


def _sample(name: str, **labels) -> float:
    value = REGISTRY.get_sample_value(name, labels or None)
    return value or 0.0


def test_exposition_format():
    prometheus_metrics.inc_booking_transition("PENDING")

    body = prometheus_metrics.get_metrics()

    assert b"slotbook_booking_transitions_total" in body
    assert prometheus_metrics.get_content_type().startswith("text/plain")


def test_booking_flow_updates_counters(db, make_user, client_actor, slot):
    created_before = _sample("slotbook_booking_transitions_total", to_status="PENDING")
    conflicts_before = _sample("slotbook_slot_claim_conflicts_total")
    service = BookingService(db)

    service.create_booking(client_actor, slot.id)
    other = CallerPrincipal.of(make_user(RoleName.CLIENT).id, RoleName.CLIENT)
    with pytest.raises(SlotUnavailableException):
        service.create_booking(other, slot.id)

    assert _sample("slotbook_booking_transitions_total", to_status="PENDING") == created_before + 1
    # Rejected on the status pre-check, before the guarded update
    assert _sample("slotbook_slot_claim_conflicts_total") == conflicts_before
    assert (
        _sample(
            "slotbook_service_operations_total",
            service="BookingService",
            operation="create_booking",
            status="error",
        )
        >= 1
    )


def test_purge_counter_ignores_zero():
    before = _sample("slotbook_expired_slots_purged_total")

    prometheus_metrics.inc_expired_slots_purged(0)
    prometheus_metrics.inc_expired_slots_purged(3)

    assert _sample("slotbook_expired_slots_purged_total") == before + 3
