# src/services/tooth_status_mapping.py
"""
Status mapping table between appointment lifecycle events and the tooth chart.

Everything here is pure: no database, no clock, no logging. The lifecycle
coordinator and the contextual appointment service feed it the current tooth
status and write back whatever it decides.
"""
import re
from datetime import datetime
from typing import Optional, Union
from uuid import UUID
from models.appointment import AppointmentStatus
from models.tooth_diagnosis import ToothStatus, TOOTH_STATUS_COLORS
from schemas.lifecycle_schemas import ToothStatusResolution
from utils.time_utils import ensure_utc

# Statuses recording that work on the tooth is finished
TERMINAL_TOOTH_STATUSES = frozenset(
    {
        ToothStatus.FILLED,
        ToothStatus.CROWN,
        ToothStatus.ROOT_CANAL,
        ToothStatus.BRIDGE,
        ToothStatus.IMPLANT,
        ToothStatus.MISSING,
    }
)

ATTENTION_TOOTH_STATUSES = frozenset({ToothStatus.CARIES, ToothStatus.ATTENTION})

# First match wins; keywords match at the start of a word
_COMPLETION_KEYWORDS = (
    (ToothStatus.ROOT_CANAL, ("root canal", "rct", "endodontic", "pulpectomy")),
    (ToothStatus.CROWN, ("crown", "onlay", "veneer")),
    (ToothStatus.BRIDGE, ("bridge",)),
    (ToothStatus.IMPLANT, ("implant",)),
    (ToothStatus.MISSING, ("extract", "missing")),
    (
        ToothStatus.FILLED,
        ("filling", "composite", "restoration", "amalgam", "pulpotomy"),
    ),
    (ToothStatus.HEALTHY, ("scaling", "cleaning", "prophylaxis")),
)

_COMPLETION_PATTERNS = tuple(
    (status, re.compile("|".join(r"\b" + re.escape(word) for word in words)))
    for status, words in _COMPLETION_KEYWORDS
)

StatusLike = Union[str, ToothStatus, None]


def color_code_for(status: StatusLike) -> str:
    return TOOTH_STATUS_COLORS[_tooth_status(status)]


def _tooth_status(status: StatusLike) -> ToothStatus:
    if status is None:
        return ToothStatus.HEALTHY
    return ToothStatus(status)


def _resolution(
    status: ToothStatus, follow_up_required: Optional[bool], changed: bool
) -> ToothStatusResolution:
    return ToothStatusResolution(
        status=status,
        color_code=TOOTH_STATUS_COLORS[status],
        follow_up_required=follow_up_required,
        changed=changed,
    )


def tooth_status_for_treatment(treatment_type: Optional[str]) -> ToothStatus:
    """Terminal tooth status implied by a finished treatment"""
    text = (treatment_type or "").lower().strip()
    for status, pattern in _COMPLETION_PATTERNS:
        if pattern.search(text):
            return status
    # Something was done to the tooth
    return ToothStatus.FILLED


def resolve_tooth_status(
    appointment_status: Union[str, AppointmentStatus],
    treatment_type: Optional[str],
    previous_status: StatusLike,
) -> ToothStatusResolution:
    """
    Decide what an appointment status change means for one tooth.

    Args:
        appointment_status: The status the appointment just moved to
        treatment_type: Free-text treatment name, e.g. "Root Canal Treatment"
        previous_status: The tooth's current status (None reads as healthy)

    Returns:
        ToothStatusResolution; `changed` is False when nothing needs writing
    """
    appointment_status = AppointmentStatus(appointment_status)
    previous = _tooth_status(previous_status)

    if appointment_status == AppointmentStatus.CANCELLED:
        if previous == ToothStatus.CARIES:
            # The untreated problem persists
            return _resolution(ToothStatus.CARIES, True, True)
        return _resolution(previous, None, False)

    if appointment_status == AppointmentStatus.IN_PROGRESS:
        if previous in TERMINAL_TOOTH_STATUSES:
            return _resolution(previous, None, False)
        return _resolution(ToothStatus.ATTENTION, True, True)

    if appointment_status == AppointmentStatus.COMPLETED:
        return _resolution(tooth_status_for_treatment(treatment_type), False, True)

    if appointment_status in (
        AppointmentStatus.SCHEDULED,
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.NO_SHOW,
    ):
        return _resolution(previous, None, False)

    raise ValueError(f"Unhandled appointment status: {appointment_status}")


def resolve_booking_status(previous_status: StatusLike) -> ToothStatusResolution:
    """Booking a treatment or follow-up flags a healthy tooth for attention"""
    previous = _tooth_status(previous_status)
    if previous == ToothStatus.HEALTHY:
        return _resolution(ToothStatus.ATTENTION, True, True)
    # Leave real clinical findings alone
    return _resolution(previous, None, False)


def ordering_time(
    current_appointment_id: Optional[UUID],
    event_appointment_id: Optional[UUID],
    event_scheduled_at: Optional[datetime],
    event_occurred_at: Optional[datetime],
) -> Optional[datetime]:
    """
    Time of an appointment event on the same clock as the tooth's status_as_of.

    A status written by an appointment event is ordered by appointment
    schedule. A status charted by hand is ordered by wall clock, against the
    moment the event actually happened. None means the event re-writes its
    own appointment's result and needs no ordering.
    """
    if current_appointment_id is None:
        return event_occurred_at
    if current_appointment_id == event_appointment_id:
        return None
    return event_scheduled_at


def is_stale_write(
    current_status: StatusLike,
    current_as_of: Optional[datetime],
    event_as_of: Optional[datetime],
) -> bool:
    """True when the tooth already holds a terminal status settled after event_as_of"""
    if _tooth_status(current_status) not in TERMINAL_TOOTH_STATUSES:
        return False
    current_as_of = ensure_utc(current_as_of)
    event_as_of = ensure_utc(event_as_of)
    if current_as_of is None or event_as_of is None:
        return False
    return event_as_of < current_as_of


def requires_attention(status: StatusLike) -> bool:
    return _tooth_status(status) in ATTENTION_TOOTH_STATUSES


def is_treatment_complete(status: StatusLike) -> bool:
    return _tooth_status(status) in (
        TERMINAL_TOOTH_STATUSES - {ToothStatus.MISSING}
    ) | {ToothStatus.HEALTHY}
