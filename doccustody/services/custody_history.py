import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from doccustody.models.custody import (
    Holder,
    HolderType,
    TransferHistoryEntry,
    TransferType,
)
from doccustody.services.common import apply_pagination

logger = logging.getLogger(__name__)

TO_COLUMNS = {
    HolderType.user: TransferHistoryEntry.to_user_id,
    HolderType.agent: TransferHistoryEntry.to_agent_id,
    HolderType.client: TransferHistoryEntry.to_client_id,
}


class TransferHistory:
    @staticmethod
    def append(
        db: Session,
        document_id: uuid.UUID,
        transfer_type: TransferType,
        performed_by: uuid.UUID,
        to_holder: Holder | None = None,
        to_client_name: str | None = None,
        from_holder: Holder | None = None,
        from_client_name: str | None = None,
        notes: str | None = None,
        expected_return_date: datetime | None = None,
    ) -> TransferHistoryEntry:
        entry = TransferHistoryEntry(
            document_id=document_id,
            transfer_type=transfer_type,
            performed_by=performed_by,
            notes=notes,
            expected_return_date=expected_return_date,
            transferred_at=datetime.now(timezone.utc),
        )
        if from_holder:
            if from_holder.kind == HolderType.user:
                entry.from_user_id = from_holder.id
            elif from_holder.kind == HolderType.agent:
                entry.from_agent_id = from_holder.id
            else:
                entry.from_client_name = from_client_name
        if to_holder:
            setattr(entry, TO_COLUMNS[to_holder.kind].key, to_holder.id)
            if to_holder.kind == HolderType.client:
                entry.to_client_name = to_client_name
        db.add(entry)
        db.flush()
        return entry

    @staticmethod
    def close(
        db: Session,
        entry_id: uuid.UUID | None,
        document_id: uuid.UUID,
        holder: Holder,
        performed_by: uuid.UUID,
        return_notes: str | None = None,
    ) -> TransferHistoryEntry | None:
        """Mark the hand-off that gave ``holder`` the copy as returned.

        Uses the entry linked from the ledger row when it is still open,
        otherwise the newest open entry for this document and holder.
        Returns None when nothing matches.
        """
        entry = db.get(TransferHistoryEntry, entry_id) if entry_id else None
        if entry is None or entry.returned_at is not None:
            entry = db.scalar(
                select(TransferHistoryEntry)
                .where(TransferHistoryEntry.document_id == document_id)
                .where(TO_COLUMNS[holder.kind] == holder.id)
                .where(TransferHistoryEntry.returned_at.is_(None))
                .order_by(TransferHistoryEntry.transferred_at.desc())
                .limit(1)
            )
        if entry is None:
            return None
        entry.returned_at = datetime.now(timezone.utc)
        entry.return_notes = return_notes
        entry.performed_by = performed_by
        db.flush()
        return entry

    @staticmethod
    def latest(db: Session, document_id: uuid.UUID) -> TransferHistoryEntry | None:
        return db.scalar(
            select(TransferHistoryEntry)
            .where(TransferHistoryEntry.document_id == document_id)
            .order_by(TransferHistoryEntry.transferred_at.desc())
            .limit(1)
        )

    @staticmethod
    def list_for_document(
        db: Session,
        document_id: uuid.UUID,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[TransferHistoryEntry]:
        stmt = (
            select(TransferHistoryEntry)
            .where(TransferHistoryEntry.document_id == document_id)
            .order_by(TransferHistoryEntry.transferred_at.desc())
        )
        if limit is not None:
            stmt = apply_pagination(stmt, limit, offset)
        return db.scalars(stmt).all()

    @staticmethod
    def delete(db: Session, entry: TransferHistoryEntry) -> None:
        db.delete(entry)
        db.flush()


transfer_history = TransferHistory()
