import uuid

import pytest
from sqlalchemy.exc import IntegrityError

from doccustody.models import (
    Client,
    CustodyRecord,
    CustodyStatus,
    Document,
    Holder,
    HolderType,
    Person,
    TransferHistoryEntry,
    TransferType,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_person(db_session: object) -> Person:
    p = Person(
        first_name="Model",
        last_name="Tester",
        email=f"model-{uuid.uuid4().hex}@example.com",
    )
    db_session.add(p)
    db_session.flush()
    return p


def _make_document(db_session: object, person: Person) -> Document:
    doc = Document(title=f"Doc-{uuid.uuid4().hex[:8]}", uploaded_by=person.id)
    db_session.add(doc)
    db_session.flush()
    return doc


# ---------------------------------------------------------------------------
# CustodyRecord
# ---------------------------------------------------------------------------


class TestCustodyRecord:
    def test_defaults(self, db_session):
        person = _make_person(db_session)
        doc = _make_document(db_session, person)
        record = CustodyRecord(document_id=doc.id)
        db_session.add(record)
        db_session.flush()
        assert record.status == CustodyStatus.available
        assert record.version == 1
        assert record.holder is None
        assert record.previous_holder is None

    def test_one_row_per_document(self, db_session):
        person = _make_person(db_session)
        doc = _make_document(db_session, person)
        db_session.add(CustodyRecord(document_id=doc.id))
        db_session.flush()
        db_session.add(CustodyRecord(document_id=doc.id))
        with pytest.raises(IntegrityError):
            db_session.flush()

    def test_available_row_cannot_have_holder(self, db_session):
        person = _make_person(db_session)
        doc = _make_document(db_session, person)
        db_session.add(
            CustodyRecord(
                document_id=doc.id,
                status=CustodyStatus.available,
                holder_type=HolderType.user,
                holder_user_id=person.id,
            )
        )
        with pytest.raises(IntegrityError):
            db_session.flush()

    def test_checked_out_row_needs_holder(self, db_session):
        person = _make_person(db_session)
        doc = _make_document(db_session, person)
        db_session.add(
            CustodyRecord(document_id=doc.id, status=CustodyStatus.checked_out)
        )
        with pytest.raises(IntegrityError):
            db_session.flush()

    def test_at_most_one_holder_column(self, db_session):
        person = _make_person(db_session)
        doc = _make_document(db_session, person)
        client = Client(name="Two Holders Inc")
        db_session.add(client)
        db_session.flush()
        db_session.add(
            CustodyRecord(
                document_id=doc.id,
                status=CustodyStatus.checked_out,
                holder_type=HolderType.user,
                holder_user_id=person.id,
                holder_client_id=client.id,
            )
        )
        with pytest.raises(IntegrityError):
            db_session.flush()

    def test_holder_property(self, db_session):
        person = _make_person(db_session)
        doc = _make_document(db_session, person)
        record = CustodyRecord(
            document_id=doc.id,
            status=CustodyStatus.checked_out,
            holder_type=HolderType.user,
            holder_user_id=person.id,
        )
        db_session.add(record)
        db_session.flush()
        assert record.holder == Holder.user(person.id)
        assert record.holder != Holder.agent(person.id)


# ---------------------------------------------------------------------------
# TransferHistoryEntry
# ---------------------------------------------------------------------------


class TestTransferHistoryEntry:
    def test_defaults(self, db_session):
        person = _make_person(db_session)
        doc = _make_document(db_session, person)
        entry = TransferHistoryEntry(
            document_id=doc.id,
            to_user_id=person.id,
            transfer_type=TransferType.user_to_user,
            performed_by=person.id,
        )
        db_session.add(entry)
        db_session.flush()
        assert entry.id is not None
        assert entry.transferred_at is not None
        assert entry.returned_at is None

    def test_performer_required(self, db_session):
        person = _make_person(db_session)
        doc = _make_document(db_session, person)
        db_session.add(
            TransferHistoryEntry(
                document_id=doc.id,
                to_user_id=person.id,
                transfer_type=TransferType.user_to_user,
            )
        )
        with pytest.raises(IntegrityError):
            db_session.flush()


def test_holder_str():
    holder_id = uuid.uuid4()
    assert str(Holder.client(holder_id)) == f"client:{holder_id}"
