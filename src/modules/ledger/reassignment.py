"""Moves an appointment's financial effect between professionals."""

from __future__ import annotations

import logging

from src.modules.appointments.lifecycle import BillableSnapshot
from src.modules.ledger.service import BalanceDelta, SettlementLedger, billable_deltas

logger = logging.getLogger(__name__)


class ReassignmentCoordinator:
    """Applies the balance deltas of one appointment transition.

    Both balance rows are locked up front in ascending id order. The
    deltas join the caller's transaction; the caller persists the appointment
    and commits.
    """

    def __init__(self, ledger: SettlementLedger):
        self.ledger = ledger

    async def apply(self, before: BillableSnapshot, after: BillableSnapshot) -> list[BalanceDelta]:
        deltas = billable_deltas(before, after)
        if not deltas:
            return []
        if before.professional_id != after.professional_id:
            logger.info(
                "Reassigning appointment balance from %s to %s",
                before.professional_id,
                after.professional_id,
            )
            await self.ledger.lock_professionals(delta.professional_id for delta in deltas)
        for delta in deltas:
            await self.ledger.apply_billable_delta(delta.professional_id, delta.amount)
        return deltas
