import uuid
from datetime import datetime, timedelta, timezone
from itertools import product

import pytest

from models.appointment import AppointmentStatus
from models.tooth_diagnosis import TOOTH_STATUS_COLORS, ToothStatus
from services.tooth_status_mapping import (
    TERMINAL_TOOTH_STATUSES,
    color_code_for,
    is_stale_write,
    is_treatment_complete,
    ordering_time,
    requires_attention,
    resolve_booking_status,
    resolve_tooth_status,
    tooth_status_for_treatment,
)

TREATMENT_TYPES = [
    None,
    "",
    "Root Canal Treatment",
    "Porcelain Crown",
    "Composite Filling",
    "Extraction",
    "Consultation",
]


def test_resolve_tooth_status_is_total_and_deterministic() -> None:
    for appointment_status, treatment_type, previous in product(
        AppointmentStatus, TREATMENT_TYPES, list(ToothStatus) + [None]
    ):
        first = resolve_tooth_status(appointment_status, treatment_type, previous)
        second = resolve_tooth_status(appointment_status, treatment_type, previous)

        assert first == second
        assert first.color_code == TOOTH_STATUS_COLORS[first.status]


def test_cancelled_keeps_caries_and_flags_follow_up() -> None:
    resolution = resolve_tooth_status(AppointmentStatus.CANCELLED, "Composite Filling", ToothStatus.CARIES)

    assert resolution.status == ToothStatus.CARIES
    assert resolution.follow_up_required is True
    assert resolution.changed is True


@pytest.mark.parametrize("previous", [ToothStatus.HEALTHY, ToothStatus.FILLED, ToothStatus.ATTENTION])
def test_cancelled_leaves_other_teeth_alone(previous: ToothStatus) -> None:
    resolution = resolve_tooth_status("cancelled", "Root Canal Treatment", previous)

    assert resolution.status == previous
    assert resolution.changed is False


@pytest.mark.parametrize("previous", [ToothStatus.HEALTHY, ToothStatus.CARIES, ToothStatus.ATTENTION, None])
def test_in_progress_flags_attention(previous) -> None:
    resolution = resolve_tooth_status(AppointmentStatus.IN_PROGRESS, "Root Canal Treatment", previous)

    assert resolution.status == ToothStatus.ATTENTION
    assert resolution.color_code == "#f97316"
    assert resolution.follow_up_required is True


@pytest.mark.parametrize("previous", sorted(TERMINAL_TOOTH_STATUSES))
def test_in_progress_never_downgrades_finished_tooth(previous: ToothStatus) -> None:
    resolution = resolve_tooth_status(AppointmentStatus.IN_PROGRESS, "Composite Filling", previous)

    assert resolution.status == previous
    assert resolution.changed is False


@pytest.mark.parametrize(
    ("treatment_type", "expected"),
    [
        ("Root Canal Treatment", ToothStatus.ROOT_CANAL),
        ("RCT - molar", ToothStatus.ROOT_CANAL),
        ("Pulpectomy", ToothStatus.ROOT_CANAL),
        ("Porcelain Crown", ToothStatus.CROWN),
        ("Ceramic veneer", ToothStatus.CROWN),
        ("Fixed Bridge", ToothStatus.BRIDGE),
        ("Implant placement", ToothStatus.IMPLANT),
        ("Surgical Extraction", ToothStatus.MISSING),
        ("Composite Filling", ToothStatus.FILLED),
        ("Amalgam", ToothStatus.FILLED),
        ("Scaling and polishing", ToothStatus.HEALTHY),
        ("Something unusual", ToothStatus.FILLED),
        (None, ToothStatus.FILLED),
    ],
)
def test_completed_maps_treatment_keywords(treatment_type, expected: ToothStatus) -> None:
    resolution = resolve_tooth_status(AppointmentStatus.COMPLETED, treatment_type, ToothStatus.CARIES)

    assert resolution.status == expected
    assert resolution.follow_up_required is False


def test_keywords_match_at_word_start_only() -> None:
    assert tooth_status_for_treatment("Bridgework") == ToothStatus.BRIDGE
    assert tooth_status_for_treatment("Abridged review") == ToothStatus.FILLED


@pytest.mark.parametrize("appointment_status", ["scheduled", "confirmed", "no_show"])
def test_non_work_statuses_change_nothing(appointment_status: str) -> None:
    resolution = resolve_tooth_status(appointment_status, "Root Canal Treatment", ToothStatus.CARIES)

    assert resolution.status == ToothStatus.CARIES
    assert resolution.changed is False


def test_fixed_palette() -> None:
    assert color_code_for("filled") == "#3b82f6"
    assert color_code_for(ToothStatus.HEALTHY) == "#22c55e"
    assert color_code_for(ToothStatus.CARIES) == "#ef4444"
    assert color_code_for(None) == "#22c55e"


def test_booking_flags_only_healthy_teeth() -> None:
    healthy = resolve_booking_status(ToothStatus.HEALTHY)
    caries = resolve_booking_status(ToothStatus.CARIES)

    assert healthy.status == ToothStatus.ATTENTION
    assert healthy.follow_up_required is True
    assert caries.status == ToothStatus.CARIES
    assert caries.changed is False


def test_stale_write_only_protects_newer_terminal_status() -> None:
    newer = datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc)
    older = newer - timedelta(days=7)

    assert is_stale_write(ToothStatus.ROOT_CANAL, newer, older) is True
    assert is_stale_write(ToothStatus.ROOT_CANAL, older, newer) is False
    assert is_stale_write(ToothStatus.ATTENTION, newer, older) is False
    assert is_stale_write(ToothStatus.FILLED, None, older) is False
    # naive values from SQLite read as UTC
    assert is_stale_write(ToothStatus.CROWN, newer.replace(tzinfo=None), older) is True


def test_ordering_time_uses_the_clock_the_tooth_was_stamped_with() -> None:
    scheduled = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
    occurred = datetime(2026, 3, 2, 10, 15, tzinfo=timezone.utc)
    this_visit, other_visit = uuid.uuid4(), uuid.uuid4()

    # charted by hand: compare against when the event happened
    assert ordering_time(None, this_visit, scheduled, occurred) == occurred
    # written by another appointment: compare schedules
    assert ordering_time(other_visit, this_visit, scheduled, occurred) == scheduled
    # the same appointment re-writing its own result
    assert ordering_time(this_visit, this_visit, scheduled, occurred) is None
    assert is_stale_write(ToothStatus.ROOT_CANAL, occurred, None) is False


def test_attention_and_completion_helpers() -> None:
    assert requires_attention(ToothStatus.CARIES)
    assert requires_attention("attention")
    assert not requires_attention(ToothStatus.FILLED)

    assert is_treatment_complete(ToothStatus.ROOT_CANAL)
    assert is_treatment_complete(ToothStatus.HEALTHY)
    assert not is_treatment_complete(ToothStatus.MISSING)
    assert not is_treatment_complete(ToothStatus.ATTENTION)
