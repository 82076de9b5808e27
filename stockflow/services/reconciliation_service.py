"""
Reconciliation Service - compare ledger counters with the transaction log

The transaction log is the source of truth. Counters are a cache that
should always equal the re-summed log; any drift is reported as an
integrity alert and left for a person to investigate.
"""
from dataclasses import dataclass, asdict
from typing import Any, Dict, List
from uuid import UUID
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from stockflow.models import (
    InventoryRecord, InventoryTransaction, Reservation, ReservationStatus,
    ON_HAND_TRANSACTION_TYPES
)

logger = logging.getLogger(__name__)


@dataclass
class LedgerDiscrepancy:
    product_id: UUID
    location_id: UUID
    field: str        # "on_hand" or "reserved"
    counter: int
    expected: int

    @property
    def drift(self) -> int:
        return self.counter - self.expected

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["drift"] = self.drift
        return data


class ReconciliationService:

    @staticmethod
    def _ledger_on_hand(db: Session) -> Dict[tuple, int]:
        rows = db.query(
            InventoryTransaction.product_id,
            InventoryTransaction.location_id,
            func.sum(InventoryTransaction.quantity_change)
        ).filter(
            InventoryTransaction.transaction_type.in_([t.value for t in ON_HAND_TRANSACTION_TYPES])
        ).group_by(
            InventoryTransaction.product_id,
            InventoryTransaction.location_id
        ).all()
        return {(p, l): int(total or 0) for p, l, total in rows}

    @staticmethod
    def _active_reserved(db: Session) -> Dict[tuple, int]:
        rows = db.query(
            Reservation.product_id,
            Reservation.location_id,
            func.sum(Reservation.quantity)
        ).filter(
            Reservation.status == ReservationStatus.ACTIVE.value
        ).group_by(
            Reservation.product_id,
            Reservation.location_id
        ).all()
        return {(p, l): int(total or 0) for p, l, total in rows}

    @staticmethod
    def reconcile(db: Session) -> List[LedgerDiscrepancy]:
        """Read-only check of every inventory record. Never raises on drift."""
        on_hand = ReconciliationService._ledger_on_hand(db)
        reserved = ReconciliationService._active_reserved(db)

        discrepancies = []
        records = db.query(InventoryRecord).all()
        for record in records:
            key = (record.product_id, record.location_id)
            expected_on_hand = on_hand.get(key, 0)
            expected_reserved = reserved.get(key, 0)

            if record.quantity_on_hand != expected_on_hand:
                discrepancies.append(LedgerDiscrepancy(
                    product_id=record.product_id,
                    location_id=record.location_id,
                    field="on_hand",
                    counter=record.quantity_on_hand,
                    expected=expected_on_hand,
                ))
            if record.quantity_reserved != expected_reserved:
                discrepancies.append(LedgerDiscrepancy(
                    product_id=record.product_id,
                    location_id=record.location_id,
                    field="reserved",
                    counter=record.quantity_reserved,
                    expected=expected_reserved,
                ))

        for d in discrepancies:
            logger.warning(
                f"[integrity] {d.field} drift {d.drift:+d} for product {d.product_id} "
                f"at location {d.location_id}: counter={d.counter}, ledger={d.expected}"
            )
        logger.info(f"Ledger reconciliation checked {len(records)} record(s), {len(discrepancies)} discrepancy(ies)")
        return discrepancies
