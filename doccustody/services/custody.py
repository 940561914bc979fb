"""Custody of physical document copies: checkout, check-in, transfer, rollback.

Each public operation runs as one transaction on the caller's session: it
commits when the operation succeeds and rolls back on any failure, so other
callers never see a half-applied hand-off.
"""

import logging
from contextlib import contextmanager
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from doccustody.config import settings
from doccustody.exceptions import (
    AuthorizationError,
    Conflict,
    CustodyError,
    NotFound,
    PersistenceError,
    ValidationError,
)
from doccustody.metrics import CUSTODY_OPERATIONS
from doccustody.models.custody import (
    TRANSFER_TYPE_BY_HOLDER,
    CustodyRecord,
    CustodyStatus,
    Holder,
    HolderType,
    TransferHistoryEntry,
    TransferType,
)
from doccustody.services.common import coerce_uuid
from doccustody.services.custody_history import transfer_history
from doccustody.services.custody_ledger import custody_ledger
from doccustody.services.directory import directory

logger = logging.getLogger(__name__)


@contextmanager
def _operation(db: Session, name: str):
    try:
        yield
        db.commit()
    except CustodyError as exc:
        db.rollback()
        CUSTODY_OPERATIONS.labels(name, exc.code).inc()
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        CUSTODY_OPERATIONS.labels(name, PersistenceError.code).inc()
        logger.exception("Custody %s failed in the database", name)
        raise PersistenceError(f"Custody {name} could not be completed") from exc
    except Exception:
        db.rollback()
        CUSTODY_OPERATIONS.labels(name, "error").inc()
        raise
    else:
        CUSTODY_OPERATIONS.labels(name, "ok").inc()


def _resolve_holder(
    db: Session,
    holder_type: str,
    user_id=None,
    agent_id=None,
    client_id=None,
) -> tuple[Holder, str | None]:
    """Validate a holder reference; returns the holder and client name, if any."""
    try:
        kind = HolderType(holder_type)
    except ValueError:
        raise ValidationError(
            f"Invalid holder type: {holder_type}",
            details={"allowed": [k.value for k in HolderType]},
        )
    if kind == HolderType.user:
        if not user_id:
            raise ValidationError(
                "A user reference is required for holder type user"
            )
        person = directory.require_person(db, user_id, label="User")
        return Holder.user(person.id), None
    if kind == HolderType.agent:
        if not agent_id:
            raise ValidationError(
                "An agent reference is required for holder type agent"
            )
        agent = directory.require_agent(db, agent_id)
        return Holder.agent(agent.id), None
    if not client_id:
        raise ValidationError("A client reference is required for holder type client")
    client = directory.require_client(db, client_id)
    return Holder.client(client.id), client.name


def _require_checked_out(db: Session, document_id) -> CustodyRecord:
    record = custody_ledger.current(db, document_id)
    if not record or record.status != CustodyStatus.checked_out:
        raise NotFound("Document is not checked out")
    return record


class Custody:
    @staticmethod
    def register(db: Session, document_id: str) -> CustodyRecord:
        with _operation(db, "register"):
            state = directory.require_active_document(db, document_id)
            record = custody_ledger.register(db, state.id)
        logger.info("Registered custody for document %s", document_id)
        return record

    @staticmethod
    def get_custody(db: Session, document_id: str) -> CustodyRecord:
        record = custody_ledger.current(db, coerce_uuid(document_id))
        if not record:
            raise NotFound("No custody record for document")
        return record

    @staticmethod
    def checkout(
        db: Session,
        document_id: str,
        checkout_type: str,
        user_id: str | None = None,
        agent_id: str | None = None,
        client_id: str | None = None,
        performed_by: str | None = None,
        notes: str | None = None,
        expected_return_date: datetime | None = None,
    ) -> CustodyRecord:
        with _operation(db, "checkout"):
            state = directory.require_active_document(db, document_id)
            holder, client_name = _resolve_holder(
                db, checkout_type, user_id, agent_id, client_id
            )
            if performed_by:
                performer = directory.require_person(
                    db, performed_by, label="Performer"
                ).id
            else:
                performer = state.uploader

            record = custody_ledger.claim(
                db, state.id, holder, notes, expected_return_date
            )
            if record is None:
                raise Conflict("Document is already checked out")
            entry = transfer_history.append(
                db,
                state.id,
                TRANSFER_TYPE_BY_HOLDER[holder.kind],
                performer,
                to_holder=holder,
                to_client_name=client_name,
                notes=notes,
                expected_return_date=expected_return_date,
            )
            custody_ledger.link_entry(db, record, entry.id)
        logger.info(
            "Checked out document %s to %s by %s", document_id, holder, performer
        )
        return record

    @staticmethod
    def checkin(
        db: Session,
        document_id: str,
        requesting_user: str,
        notes: str | None = None,
    ) -> CustodyRecord:
        with _operation(db, "checkin"):
            state = directory.require_active_document(db, document_id)
            user_uuid = coerce_uuid(requesting_user)
            record = _require_checked_out(db, state.id)
            holder = Holder.user(user_uuid)
            if record.holder != holder:
                raise Conflict(
                    "Document is held by someone else",
                    details={"holder_type": record.holder_type.value},
                )
            opened_by = record.current_entry_id
            if not custody_ledger.release(db, record, holder, notes):
                raise Conflict("Custody changed while checking in; retry")
            closed = transfer_history.close(
                db, opened_by, state.id, holder, user_uuid, return_notes=notes
            )
            if closed is None:
                logger.warning(
                    "No open transfer entry for document %s held by %s",
                    document_id,
                    holder,
                )
        logger.info("Checked in document %s by %s", document_id, requesting_user)
        return record

    @staticmethod
    def receive_return(
        db: Session,
        document_id: str,
        received_by: str,
        notes: str | None = None,
    ) -> CustodyRecord:
        """Record that an agent or client handed the copy back to staff."""
        with _operation(db, "return"):
            state = directory.require_active_document(db, document_id)
            receiver = directory.require_person(db, received_by, label="Receiver").id
            record = _require_checked_out(db, state.id)
            holder = record.holder
            if holder.kind == HolderType.user:
                raise Conflict("Document is held by a user; use check-in")
            opened_by = record.current_entry_id
            if not custody_ledger.release(db, record, holder, notes):
                raise Conflict("Custody changed while recording the return; retry")
            closed = transfer_history.close(
                db, opened_by, state.id, holder, receiver, return_notes=notes
            )
            if closed is None:
                logger.warning(
                    "No open transfer entry for document %s held by %s",
                    document_id,
                    holder,
                )
        logger.info(
            "Received document %s back from %s by %s", document_id, holder, receiver
        )
        return record

    @staticmethod
    def transfer(
        db: Session,
        document_id: str,
        from_user: str,
        performed_by: str,
        to_user: str | None = None,
        to_type: str = "user",
        to_agent_id: str | None = None,
        to_client_id: str | None = None,
        notes: str | None = None,
        expected_return_date: datetime | None = None,
    ) -> CustodyRecord:
        with _operation(db, "transfer"):
            state = directory.require_active_document(db, document_id)
            from_holder = Holder.user(coerce_uuid(from_user))
            to_holder, client_name = _resolve_holder(
                db, to_type, to_user, to_agent_id, to_client_id
            )
            if to_holder == from_holder:
                raise ValidationError("Cannot transfer a document to its holder")
            performer = directory.require_person(
                db, performed_by, label="Performer"
            ).id

            record = _require_checked_out(db, state.id)
            if record.holder != from_holder:
                raise Conflict("Document is not held by the transferring user")
            if not custody_ledger.reassign(
                db, record, from_holder, to_holder, notes, expected_return_date
            ):
                raise Conflict("Custody changed during the transfer; retry")
            # The entry that gave from_user the copy stays open
            entry = transfer_history.append(
                db,
                state.id,
                TRANSFER_TYPE_BY_HOLDER[to_holder.kind],
                performer,
                to_holder=to_holder,
                to_client_name=client_name,
                from_holder=from_holder,
                notes=notes,
                expected_return_date=expected_return_date,
            )
            custody_ledger.link_entry(db, record, entry.id)
        logger.info(
            "Transferred document %s from %s to %s by %s",
            document_id,
            from_holder,
            to_holder,
            performer,
        )
        return record

    @staticmethod
    def rollback(
        db: Session,
        document_id: str,
        admin_user: str,
        notes: str | None = None,
    ) -> CustodyRecord:
        with _operation(db, "rollback"):
            if not directory.is_admin(db, admin_user):
                raise AuthorizationError("Only administrators can roll back a checkout")
            admin_id = coerce_uuid(admin_user)
            state = directory.require_active_document(db, document_id)
            record = _require_checked_out(db, state.id)
            holder = record.holder
            latest = transfer_history.latest(db, state.id)
            if not custody_ledger.reset(db, record):
                raise Conflict("Custody changed during the rollback; retry")

            if settings.custody_rollback_mode == "compensate":
                if latest and latest.returned_at is None:
                    transfer_history.close(
                        db, latest.id, state.id, holder, admin_id, return_notes=notes
                    )
                transfer_history.append(
                    db,
                    state.id,
                    TransferType.rolled_back,
                    admin_id,
                    from_holder=holder,
                    from_client_name=(
                        directory.resolve_client_name(db, holder.id)
                        if holder.kind == HolderType.client
                        else None
                    ),
                    notes=notes,
                )
            elif latest:
                transfer_history.delete(db, latest)
        logger.info(
            "Rolled back checkout of document %s by administrator %s (%s)",
            document_id,
            admin_user,
            settings.custody_rollback_mode,
        )
        return record

    @staticmethod
    def get_history(
        db: Session,
        document_id: str,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[TransferHistoryEntry]:
        state = directory.document_exists(db, document_id)
        return transfer_history.list_for_document(db, state.id, limit, offset)

    @staticmethod
    def get_held_by(db: Session, user_id: str) -> list[CustodyRecord]:
        return custody_ledger.held_by(db, Holder.user(coerce_uuid(user_id)))

    @staticmethod
    def list_checked_out(db: Session, limit: int, offset: int) -> list[CustodyRecord]:
        return custody_ledger.list_checked_out(db, limit, offset)


custody = Custody()
