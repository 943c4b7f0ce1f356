"""Appointment state machine.

Everything here is pure: given the current field values of an appointment and
a partial update it computes the values to persist and the billable snapshot
before and after. Locking, guard queries and persistence live in the service.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Mapping

from src.core.exceptions import ValidationError
from src.shared.enums import AppointmentStatus, AppointmentType
from src.shared.money import ZERO, round2, to_amount
from src.shared.timeutils import to_minutes

STATE_FIELDS = (
    "patient_id",
    "patient_name",
    "professional_id",
    "professional_name",
    "date",
    "start_time",
    "end_time",
    "type",
    "status",
    "notes",
    "audio_note",
    "attended",
    "session_cost",
    "payment_amount",
    "no_show_payment_amount",
    "remaining_balance",
    "completed_at",
    "active",
)
AMOUNT_FIELDS = ("session_cost", "payment_amount", "no_show_payment_amount")
SLOT_FIELDS = ("date", "start_time", "end_time", "professional_id")
AUDIO_NOTE_PREFIX = "/uploads/"


@dataclass(frozen=True)
class BillableSnapshot:
    """The only facts about an appointment the settlement ledger cares about."""

    professional_id: str | None
    billable: bool
    cost: Decimal

    @classmethod
    def from_state(cls, state: Mapping[str, Any]) -> "BillableSnapshot":
        billable = (
            bool(state.get("active", True))
            and state.get("status") == AppointmentStatus.COMPLETED
            and state.get("attended") is True
        )
        return cls(
            professional_id=state.get("professional_id"),
            billable=billable,
            cost=to_amount(state.get("session_cost")) or ZERO,
        )


NOT_BILLABLE = BillableSnapshot(professional_id=None, billable=False, cost=ZERO)


@dataclass
class TransitionPlan:
    state: dict[str, Any]
    changes: dict[str, Any]
    before: BillableSnapshot
    after: BillableSnapshot
    needs_slot_check: bool = False
    patient_changed: bool = False
    professional_changed: bool = False

    @property
    def is_noop(self) -> bool:
        return not self.changes


@dataclass
class _Draft:
    state: dict[str, Any]
    requested: dict[str, Any] = field(default_factory=dict)

    def set(self, name: str, value: Any) -> None:
        self.state[name] = value


def snapshot_state(obj: Any) -> dict[str, Any]:
    """Read the lifecycle-relevant fields off an ORM row."""
    return {name: getattr(obj, name) for name in STATE_FIELDS}


def sanitize_audio_note(value: Any) -> str | None:
    if isinstance(value, str) and value.startswith(AUDIO_NOTE_PREFIX):
        return value
    return None


def coerce_attended(value: Any) -> bool | None:
    if value is None:
        return None
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


def ensure_time_order(start_time: str, end_time: str) -> None:
    if to_minutes(end_time) <= to_minutes(start_time):
        raise ValidationError("end_time must be later than start_time")


def _normalize(requested: Mapping[str, Any]) -> dict[str, Any]:
    cleaned = dict(requested)
    for name in AMOUNT_FIELDS:
        if name in cleaned:
            cleaned[name] = to_amount(cleaned[name])
    if "attended" in cleaned:
        cleaned["attended"] = coerce_attended(cleaned["attended"])
    if "audio_note" in cleaned:
        cleaned["audio_note"] = sanitize_audio_note(cleaned["audio_note"])
    # Derived or lifecycle-owned fields are never taken from callers.
    for name in ("remaining_balance", "completed_at", "active", "patient_name", "professional_name"):
        cleaned.pop(name, None)
    return cleaned


def _stamp_completion(draft: _Draft, now: datetime) -> None:
    status = draft.state["status"]
    if status == AppointmentStatus.COMPLETED:
        if draft.state.get("completed_at") is None:
            draft.set("completed_at", now)
    else:
        draft.set("completed_at", None)


def _apply_attendance(draft: _Draft) -> None:
    attended = draft.state.get("attended")
    if attended is False:
        # A no-show owes no session fee; an explicit no-show payment was already merged in.
        draft.set("payment_amount", None)
        draft.set("remaining_balance", None)
    else:
        # Only no-shows carry a no-show payment; this keeps the two amounts exclusive.
        draft.set("no_show_payment_amount", None)


def _recompute_remaining(draft: _Draft) -> None:
    if draft.state.get("attended") is False:
        return
    if "session_cost" not in draft.requested and "payment_amount" not in draft.requested:
        return
    cost = draft.state.get("session_cost") or ZERO
    paid = draft.state.get("payment_amount") or ZERO
    draft.set("remaining_balance", round2(max(cost - paid, ZERO)))


def _diff(before: Mapping[str, Any], after: Mapping[str, Any]) -> dict[str, Any]:
    return {name: after[name] for name in STATE_FIELDS if after.get(name) != before.get(name)}


def plan_creation(requested: Mapping[str, Any], now: datetime) -> TransitionPlan:
    """Initial values for a new appointment; it always starts out scheduled."""
    values = _normalize(requested)
    values = {name: value for name, value in values.items() if name in STATE_FIELDS}
    state: dict[str, Any] = {name: None for name in STATE_FIELDS}
    state.update(values)
    state["type"] = state.get("type") or AppointmentType.REGULAR
    state["status"] = AppointmentStatus.SCHEDULED
    state["attended"] = None
    state["payment_amount"] = None
    state["no_show_payment_amount"] = None
    state["active"] = True
    ensure_time_order(state["start_time"], state["end_time"])

    cost = state.get("session_cost")
    state["remaining_balance"] = round2(max(cost, ZERO)) if cost is not None else None
    draft = _Draft(state=state, requested=values)
    _stamp_completion(draft, now)

    return TransitionPlan(
        state=state,
        changes={name: state[name] for name in STATE_FIELDS},
        before=NOT_BILLABLE,
        after=BillableSnapshot.from_state(state),
        needs_slot_check=True,
        patient_changed=True,
        professional_changed=True,
    )


def plan_transition(
    current: Mapping[str, Any],
    requested: Mapping[str, Any],
    now: datetime,
) -> TransitionPlan:
    """Run the ordered recomputation pipeline for a partial update."""
    values = _normalize(requested)
    values = {name: value for name, value in values.items() if name in STATE_FIELDS}
    draft = _Draft(state=dict(current), requested=values)
    draft.state.update(values)

    ensure_time_order(draft.state["start_time"], draft.state["end_time"])
    _stamp_completion(draft, now)
    _apply_attendance(draft)
    _recompute_remaining(draft)

    changes = _diff(current, draft.state)
    return TransitionPlan(
        state=draft.state,
        changes=changes,
        before=BillableSnapshot.from_state(current),
        after=BillableSnapshot.from_state(draft.state),
        needs_slot_check=any(name in changes for name in SLOT_FIELDS),
        patient_changed="patient_id" in changes,
        professional_changed="professional_id" in changes,
    )


def plan_soft_delete(current: Mapping[str, Any]) -> TransitionPlan:
    """Retire the appointment; an open billable contribution is reversed in full."""
    state = dict(current)
    state["active"] = False
    return TransitionPlan(
        state=state,
        changes={"active": False},
        before=BillableSnapshot.from_state(current),
        after=BillableSnapshot(professional_id=current.get("professional_id"), billable=False, cost=ZERO),
    )
