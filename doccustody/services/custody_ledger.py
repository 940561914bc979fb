"""Current-custody rows: one per document, changed only by conditional updates.

Every state change is an ``UPDATE ... WHERE <expected state>`` whose affected
row count decides the winner, so two concurrent writers can never both move
the same document out of the state they observed.
"""

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import and_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from doccustody.models.custody import (
    CustodyRecord,
    CustodyStatus,
    Holder,
    HolderType,
)
from doccustody.services.common import apply_pagination

logger = logging.getLogger(__name__)

HOLDER_COLUMNS = {
    HolderType.user: CustodyRecord.holder_user_id,
    HolderType.agent: CustodyRecord.holder_agent_id,
    HolderType.client: CustodyRecord.holder_client_id,
}


def _holder_values(holder: Holder | None) -> dict:
    values = {
        "holder_type": holder.kind if holder else None,
        "holder_user_id": None,
        "holder_agent_id": None,
        "holder_client_id": None,
    }
    if holder:
        values[HOLDER_COLUMNS[holder.kind].key] = holder.id
    return values


def _holder_clause(holder: Holder):
    return and_(
        CustodyRecord.holder_type == holder.kind,
        HOLDER_COLUMNS[holder.kind] == holder.id,
    )


def _conditional_update(db: Session, *criteria, **values) -> bool:
    stmt = (
        update(CustodyRecord)
        .where(*criteria)
        .values(version=CustodyRecord.version + 1, **values)
        .execution_options(synchronize_session=False)
    )
    return db.execute(stmt).rowcount == 1


class CustodyLedger:
    @staticmethod
    def current(db: Session, document_id: uuid.UUID) -> CustodyRecord | None:
        stmt = (
            select(CustodyRecord)
            .where(CustodyRecord.document_id == document_id)
            .execution_options(populate_existing=True)
        )
        return db.scalar(stmt)

    @staticmethod
    def register(db: Session, document_id: uuid.UUID) -> CustodyRecord:
        existing = CustodyLedger.current(db, document_id)
        if existing:
            return existing
        record = CustodyRecord(document_id=document_id, status=CustodyStatus.available)
        db.add(record)
        try:
            db.flush()
        except IntegrityError:
            # Registered concurrently; the other row is just as good
            db.rollback()
            return CustodyLedger.current(db, document_id)
        return record

    @staticmethod
    def claim(
        db: Session,
        document_id: uuid.UUID,
        holder: Holder,
        notes: str | None = None,
        expected_return_date: datetime | None = None,
    ) -> CustodyRecord | None:
        """Move the document from available to checked out.

        Returns the updated row, or None when the document is already
        checked out. A document with no ledger row yet gets one inserted
        directly in the checked-out state; the unique key on document_id
        arbitrates a race between two such inserts.
        """
        now = datetime.now(timezone.utc)
        values = dict(
            status=CustodyStatus.checked_out,
            checked_out_at=now,
            checked_in_at=None,
            transferred_at=None,
            expected_return_date=expected_return_date,
            notes=notes,
            **_holder_values(holder),
        )
        claimed = _conditional_update(
            db,
            CustodyRecord.document_id == document_id,
            CustodyRecord.status == CustodyStatus.available,
            **values,
        )
        if claimed:
            return CustodyLedger.current(db, document_id)

        if db.scalar(
            select(CustodyRecord.id).where(CustodyRecord.document_id == document_id)
        ):
            return None

        record = CustodyRecord(document_id=document_id, **values)
        db.add(record)
        try:
            db.flush()
        except IntegrityError:
            db.rollback()
            logger.info("Ledger row for document %s created concurrently", document_id)
            claimed = _conditional_update(
                db,
                CustodyRecord.document_id == document_id,
                CustodyRecord.status == CustodyStatus.available,
                **values,
            )
            return CustodyLedger.current(db, document_id) if claimed else None
        return record

    @staticmethod
    def release(
        db: Session, record: CustodyRecord, holder: Holder, notes: str | None = None
    ) -> bool:
        """Return a checked-out row held by ``holder`` to available."""
        released = _conditional_update(
            db,
            CustodyRecord.id == record.id,
            CustodyRecord.version == record.version,
            CustodyRecord.status == CustodyStatus.checked_out,
            _holder_clause(holder),
            status=CustodyStatus.available,
            previous_holder_type=holder.kind,
            previous_holder_id=holder.id,
            current_entry_id=None,
            checked_in_at=datetime.now(timezone.utc),
            expected_return_date=None,
            notes=notes if notes is not None else record.notes,
            **_holder_values(None),
        )
        if released:
            db.refresh(record)
        return released

    @staticmethod
    def reassign(
        db: Session,
        record: CustodyRecord,
        from_holder: Holder,
        to_holder: Holder,
        notes: str | None = None,
        expected_return_date: datetime | None = None,
    ) -> bool:
        reassigned = _conditional_update(
            db,
            CustodyRecord.id == record.id,
            CustodyRecord.version == record.version,
            CustodyRecord.status == CustodyStatus.checked_out,
            _holder_clause(from_holder),
            previous_holder_type=from_holder.kind,
            previous_holder_id=from_holder.id,
            current_entry_id=None,
            transferred_at=datetime.now(timezone.utc),
            expected_return_date=expected_return_date,
            notes=notes if notes is not None else record.notes,
            **_holder_values(to_holder),
        )
        if reassigned:
            db.refresh(record)
        return reassigned

    @staticmethod
    def reset(db: Session, record: CustodyRecord) -> bool:
        """Force a checked-out row back to available, whoever holds it."""
        holder = record.holder
        was_reset = _conditional_update(
            db,
            CustodyRecord.id == record.id,
            CustodyRecord.version == record.version,
            CustodyRecord.status == CustodyStatus.checked_out,
            status=CustodyStatus.available,
            previous_holder_type=holder.kind if holder else None,
            previous_holder_id=holder.id if holder else None,
            current_entry_id=None,
            checked_out_at=None,
            checked_in_at=None,
            transferred_at=None,
            expected_return_date=None,
            **_holder_values(None),
        )
        if was_reset:
            db.refresh(record)
        return was_reset

    @staticmethod
    def link_entry(db: Session, record: CustodyRecord, entry_id: uuid.UUID) -> None:
        record.current_entry_id = entry_id
        db.flush()

    @staticmethod
    def held_by(db: Session, holder: Holder) -> list[CustodyRecord]:
        stmt = (
            select(CustodyRecord)
            .where(CustodyRecord.status == CustodyStatus.checked_out)
            .where(_holder_clause(holder))
            .order_by(CustodyRecord.updated_at.desc())
        )
        return db.scalars(stmt).all()

    @staticmethod
    def list_checked_out(db: Session, limit: int, offset: int) -> list[CustodyRecord]:
        stmt = (
            select(CustodyRecord)
            .where(CustodyRecord.status == CustodyStatus.checked_out)
            .order_by(CustodyRecord.checked_out_at.desc())
        )
        return db.scalars(apply_pagination(stmt, limit, offset)).all()


custody_ledger = CustodyLedger()
