"""
Inventory Service - on-hand/reserved counters and the transaction ledger

Counter changes are issued as increment-style UPDATE statements so that
concurrent writers never overwrite each other. Reservation increments
carry an availability guard in the WHERE clause; a guard miss means the
units were taken by another transaction after they were ranked.
"""
from typing import Callable, Iterable, List, Optional, Dict, Any
from uuid import UUID
import logging
import uuid

from sqlalchemy import update, func
from sqlalchemy.orm import Session

from stockflow.core import unit_of_work
from stockflow.core.exceptions import (
    ConflictError, InsufficientStockError, IntegrityFailure, NotFoundError, ValidationError
)
from stockflow.models import (
    InventoryRecord, InventoryTransaction, Location, Product, TransactionType
)
from stockflow.models.base import utcnow

logger = logging.getLogger(__name__)


def rank_locations(rows: Iterable, quantity_of: Callable, name_of: Callable) -> List:
    """
    Biggest bucket first.

    Drops rows whose quantity is zero or negative, sorts the rest by
    quantity descending and breaks ties on location name. Allocation ranks
    inventory records by available quantity; pick-list generation ranks an
    order's reservations by reserved quantity. Both go through here.
    """
    return sorted(
        (row for row in rows if quantity_of(row) > 0),
        key=lambda row: (-quantity_of(row), name_of(row)),
    )


class InventoryService:
    """Inventory ledger business logic"""

    @staticmethod
    def get_record(
        db: Session,
        product_id: UUID,
        location_id: UUID,
        for_update: bool = False
    ) -> Optional[InventoryRecord]:
        query = db.query(InventoryRecord).filter(
            InventoryRecord.product_id == product_id,
            InventoryRecord.location_id == location_id
        )
        if for_update:
            query = query.with_for_update().populate_existing()
        return query.first()

    @staticmethod
    def rank_locations_for(db: Session, product_id: UUID) -> List[InventoryRecord]:
        """Inventory records for a product in allocation order, locked for the transaction"""
        records = (
            db.query(InventoryRecord)
            .join(Location, InventoryRecord.location_id == Location.id)
            .filter(InventoryRecord.product_id == product_id, Location.is_active.is_(True))
            .with_for_update(of=InventoryRecord)
            .populate_existing()
            .all()
        )
        return rank_locations(records, lambda rec: rec.quantity_available, lambda rec: rec.location.name)

    @staticmethod
    def total_available(db: Session, product_id: UUID) -> int:
        return sum(rec.quantity_available for rec in InventoryService.rank_locations_for(db, product_id))

    # ===================== LEDGER PRIMITIVES =====================

    @staticmethod
    def record_transaction(
        db: Session,
        product_id: UUID,
        location_id: UUID,
        transaction_type: TransactionType,
        quantity_change: int,
        actor: str,
        reference_type: Optional[str] = None,
        reference_id: Optional[str] = None,
        notes: Optional[str] = None
    ) -> InventoryTransaction:
        """Append one ledger entry"""
        txn = InventoryTransaction(
            product_id=product_id,
            location_id=location_id,
            transaction_type=TransactionType(transaction_type).value,
            quantity_change=quantity_change,
            reference_type=reference_type,
            reference_id=str(reference_id) if reference_id is not None else None,
            actor=actor,
            notes=notes,
        )
        db.add(txn)
        db.flush()
        return txn

    @staticmethod
    def _update_counters(db: Session, record: InventoryRecord, on_hand_delta: int = 0,
                         reserved_delta: int = 0, guard=None) -> bool:
        db.flush()
        stmt = update(InventoryRecord).where(InventoryRecord.id == record.id)
        if guard is not None:
            stmt = stmt.where(guard)
        stmt = stmt.values(
            quantity_on_hand=InventoryRecord.quantity_on_hand + on_hand_delta,
            quantity_reserved=InventoryRecord.quantity_reserved + reserved_delta,
            updated_at=utcnow(),
        ).execution_options(synchronize_session=False)

        result = db.execute(stmt)
        db.refresh(record)
        return result.rowcount == 1

    @staticmethod
    def adjust(
        db: Session,
        product_id: UUID,
        location_id: UUID,
        transaction_type: TransactionType,
        delta: int,
        actor: str,
        reference_type: Optional[str] = None,
        reference_id: Optional[str] = None,
        notes: Optional[str] = None
    ) -> InventoryTransaction:
        """
        Change on-hand by ``delta`` and log it, inside the caller's unit of work.

        A negative delta may not take on-hand below zero or below what is
        already reserved at the location.
        """
        record = InventoryService.get_record(db, product_id, location_id, for_update=True)
        if record is None:
            raise IntegrityFailure(
                "Inventory record missing",
                {"product_id": str(product_id), "location_id": str(location_id)}
            )

        guard = None
        if delta < 0:
            guard = (InventoryRecord.quantity_on_hand + delta) >= InventoryRecord.quantity_reserved
        if not InventoryService._update_counters(db, record, on_hand_delta=delta, guard=guard):
            raise ConflictError(
                "Adjustment would leave less stock than is reserved",
                {
                    "product_id": str(product_id),
                    "location_id": str(location_id),
                    "on_hand": record.quantity_on_hand,
                    "reserved": record.quantity_reserved,
                    "delta": delta,
                }
            )

        return InventoryService.record_transaction(
            db, product_id, location_id, transaction_type, delta, actor,
            reference_type=reference_type, reference_id=reference_id, notes=notes
        )

    @staticmethod
    def reserve(db: Session, product_id: UUID, location_id: UUID, delta: int) -> InventoryRecord:
        """
        Change only quantity_reserved.

        Increments are re-validated against current availability in the
        UPDATE itself. Decrements are clamped at zero.
        """
        record = InventoryService.get_record(db, product_id, location_id, for_update=True)
        if record is None:
            raise IntegrityFailure(
                "Inventory record missing",
                {"product_id": str(product_id), "location_id": str(location_id)}
            )
        if delta == 0:
            return record

        if delta > 0:
            guard = (InventoryRecord.quantity_on_hand - InventoryRecord.quantity_reserved) >= delta
            if not InventoryService._update_counters(db, record, reserved_delta=delta, guard=guard):
                raise InsufficientStockError(
                    "Stock was reserved by another operation, retry with fresh data",
                    {
                        "product_id": str(product_id),
                        "location_id": str(location_id),
                        "requested": delta,
                        "available": record.quantity_available,
                    }
                )
        else:
            release = min(-delta, record.quantity_reserved)
            InventoryService._update_counters(db, record, reserved_delta=-release)
        return record

    @staticmethod
    def consume(
        db: Session,
        product_id: UUID,
        location_id: UUID,
        quantity: int,
        actor: str,
        reference_type: Optional[str] = None,
        reference_id: Optional[str] = None,
        notes: Optional[str] = None
    ) -> Optional[InventoryTransaction]:
        """
        Take picked units out of stock.

        Both counters drop by at most their current value so drift between
        counters and ledger never produces negative stock. Returns None when
        the location has no inventory record.
        """
        record = InventoryService.get_record(db, product_id, location_id, for_update=True)
        if record is None:
            logger.warning(f"No inventory for product {product_id} at location {location_id}")
            return None

        InventoryService._update_counters(
            db, record,
            on_hand_delta=-min(quantity, record.quantity_on_hand),
            reserved_delta=-min(quantity, record.quantity_reserved),
        )
        return InventoryService.record_transaction(
            db, product_id, location_id, TransactionType.SALE, -quantity, actor,
            reference_type=reference_type, reference_id=reference_id, notes=notes
        )

    # ===================== BUSINESS OPERATIONS =====================

    @staticmethod
    def _require(db: Session, product_id: UUID, location_id: UUID):
        product = db.get(Product, product_id)
        if product is None:
            raise NotFoundError(f"Product {product_id} not found")
        location = db.get(Location, location_id)
        if location is None:
            raise NotFoundError(f"Location {location_id} not found")
        return product, location

    @staticmethod
    def _get_or_create_record(db: Session, product_id: UUID, location_id: UUID) -> InventoryRecord:
        record = InventoryService.get_record(db, product_id, location_id, for_update=True)
        if record is None:
            record = InventoryRecord(
                product_id=product_id,
                location_id=location_id,
                quantity_on_hand=0,
                quantity_reserved=0,
            )
            db.add(record)
            db.flush()
        return record

    @staticmethod
    def receive(
        db: Session,
        product_id: UUID,
        location_id: UUID,
        quantity: int,
        actor: str,
        reference_id: Optional[str] = None,
        notes: Optional[str] = None
    ) -> InventoryRecord:
        """Book received stock; creates the inventory record on first receipt"""
        if quantity is None or quantity <= 0:
            raise ValidationError("Received quantity must be positive", {"quantity": quantity})
        InventoryService._require(db, product_id, location_id)

        with unit_of_work(db):
            record = InventoryService._get_or_create_record(db, product_id, location_id)
            InventoryService.adjust(
                db, product_id, location_id, TransactionType.RECEIPT, quantity, actor,
                reference_type="RECEIPT", reference_id=reference_id,
                notes=notes or "Stock received"
            )

        logger.info(f"Received {quantity} of product {product_id} at location {location_id}")
        return record

    @staticmethod
    def post_adjustment(
        db: Session,
        product_id: UUID,
        location_id: UUID,
        delta: int,
        actor: str,
        notes: Optional[str] = None
    ) -> InventoryTransaction:
        """Manual stock correction (damage, found stock, write-off)"""
        if not delta:
            raise ValidationError("Adjustment quantity must be non-zero")
        InventoryService._require(db, product_id, location_id)

        with unit_of_work(db):
            if delta > 0:
                InventoryService._get_or_create_record(db, product_id, location_id)
            txn = InventoryService.adjust(
                db, product_id, location_id, TransactionType.ADJUSTMENT, delta, actor,
                reference_type="ADJUSTMENT", notes=notes
            )
        return txn

    @staticmethod
    def transfer(
        db: Session,
        product_id: UUID,
        from_location_id: UUID,
        to_location_id: UUID,
        quantity: int,
        actor: str,
        notes: Optional[str] = None
    ) -> List[InventoryTransaction]:
        """Move available (unreserved) stock between two locations"""
        if quantity is None or quantity <= 0:
            raise ValidationError("Transfer quantity must be positive", {"quantity": quantity})
        if from_location_id == to_location_id:
            raise ValidationError("Source and destination locations must differ")
        InventoryService._require(db, product_id, from_location_id)
        _, destination = InventoryService._require(db, product_id, to_location_id)

        with unit_of_work(db):
            source = InventoryService.get_record(db, product_id, from_location_id, for_update=True)
            if source is None or source.quantity_available < quantity:
                raise ConflictError(
                    "Not enough available stock at source location",
                    {
                        "requested": quantity,
                        "available": source.quantity_available if source else 0,
                    }
                )
            InventoryService._get_or_create_record(db, product_id, to_location_id)
            transfer_ref = f"TRF-{uuid.uuid4().hex[:12].upper()}"
            out_txn = InventoryService.adjust(
                db, product_id, from_location_id, TransactionType.TRANSFER, -quantity, actor,
                reference_type="TRANSFER", reference_id=transfer_ref,
                notes=notes or f"Transfer out to {destination.name}"
            )
            in_txn = InventoryService.adjust(
                db, product_id, to_location_id, TransactionType.TRANSFER, quantity, actor,
                reference_type="TRANSFER", reference_id=transfer_ref,
                notes=notes or "Transfer in"
            )
        return [out_txn, in_txn]

    @staticmethod
    def cycle_count(
        db: Session,
        product_id: UUID,
        location_id: UUID,
        counted_quantity: int,
        actor: str,
        notes: Optional[str] = None
    ) -> InventoryTransaction:
        """Set on-hand to a counted absolute value, logging the variance as COUNT"""
        if counted_quantity is None or counted_quantity < 0:
            raise ValidationError("Counted quantity cannot be negative", {"counted": counted_quantity})
        InventoryService._require(db, product_id, location_id)

        with unit_of_work(db):
            record = InventoryService._get_or_create_record(db, product_id, location_id)
            if counted_quantity < record.quantity_reserved:
                raise ConflictError(
                    "Counted quantity is below the reserved quantity; release reservations first",
                    {"counted": counted_quantity, "reserved": record.quantity_reserved}
                )
            variance = counted_quantity - record.quantity_on_hand
            txn = InventoryService.adjust(
                db, product_id, location_id, TransactionType.COUNT, variance, actor,
                reference_type="COUNT",
                notes=notes or f"Cycle count: system {record.quantity_on_hand}, counted {counted_quantity}"
            )
        if variance:
            logger.info(f"Cycle count variance {variance:+d} for product {product_id} at location {location_id}")
        return txn

    # ===================== QUERIES =====================

    @staticmethod
    def get_stock_summary(
        db: Session,
        product_id: Optional[UUID] = None,
        location_id: Optional[UUID] = None
    ) -> List[Dict[str, Any]]:
        """Stock by product and location"""
        query = db.query(InventoryRecord, Product, Location).join(
            Product, InventoryRecord.product_id == Product.id
        ).join(
            Location, InventoryRecord.location_id == Location.id
        )
        if product_id:
            query = query.filter(InventoryRecord.product_id == product_id)
        if location_id:
            query = query.filter(InventoryRecord.location_id == location_id)

        results = []
        for record, product, location in query.order_by(Product.sku, Location.name).all():
            results.append({
                "product_id": product.id,
                "sku": product.sku,
                "location_id": location.id,
                "location_name": location.name,
                "on_hand": record.quantity_on_hand,
                "reserved": record.quantity_reserved,
                "available": max(record.quantity_available, 0),
            })
        return results

    @staticmethod
    def get_transactions(
        db: Session,
        product_id: Optional[UUID] = None,
        location_id: Optional[UUID] = None,
        transaction_type: Optional[str] = None,
        limit: int = 100
    ) -> List[InventoryTransaction]:
        query = db.query(InventoryTransaction)
        if product_id:
            query = query.filter(InventoryTransaction.product_id == product_id)
        if location_id:
            query = query.filter(InventoryTransaction.location_id == location_id)
        if transaction_type:
            query = query.filter(InventoryTransaction.transaction_type == transaction_type)
        return query.order_by(InventoryTransaction.created_at.desc()).limit(limit).all()

    @staticmethod
    def ledger_sum(db: Session, product_id: UUID, location_id: UUID, types: Iterable[TransactionType]) -> int:
        """Sum of quantity_change for the given transaction types"""
        total = db.query(func.coalesce(func.sum(InventoryTransaction.quantity_change), 0)).filter(
            InventoryTransaction.product_id == product_id,
            InventoryTransaction.location_id == location_id,
            InventoryTransaction.transaction_type.in_([TransactionType(t).value for t in types])
        ).scalar()
        return int(total or 0)
