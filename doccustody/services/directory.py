"""Read-only lookups against the document registry and the people directory."""

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from doccustody.config import settings
from doccustody.exceptions import NotFound
from doccustody.models.directory import (
    ClearanceAgent,
    Client,
    Document,
    Person,
    PersonRole,
    Role,
)
from doccustody.services.common import coerce_uuid

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DocumentState:
    id: uuid.UUID
    active: bool
    uploader: uuid.UUID


class Directory:
    @staticmethod
    def document_exists(db: Session, document_id: str) -> DocumentState:
        doc = db.get(Document, coerce_uuid(document_id))
        if not doc:
            raise NotFound("Document not found")
        return DocumentState(
            id=doc.id, active=bool(doc.is_active), uploader=doc.uploaded_by
        )

    @staticmethod
    def require_active_document(db: Session, document_id: str) -> DocumentState:
        state = Directory.document_exists(db, document_id)
        if not state.active:
            raise NotFound("Document is inactive")
        return state

    @staticmethod
    def require_person(db: Session, person_id: str, label: str = "Person") -> Person:
        person = db.get(Person, coerce_uuid(person_id))
        if not person:
            raise NotFound(f"{label} not found")
        return person

    @staticmethod
    def require_agent(db: Session, agent_id: str) -> ClearanceAgent:
        agent = db.get(ClearanceAgent, coerce_uuid(agent_id))
        if not agent:
            raise NotFound("Clearance agent not found")
        return agent

    @staticmethod
    def require_client(db: Session, client_id: str) -> Client:
        client = db.get(Client, coerce_uuid(client_id))
        if not client:
            raise NotFound("Client not found")
        return client

    @staticmethod
    def resolve_client_name(db: Session, client_id: str) -> str:
        return Directory.require_client(db, client_id).name

    @staticmethod
    def is_admin(db: Session, person_id: str) -> bool:
        stmt = (
            select(PersonRole.id)
            .join(Role, Role.id == PersonRole.role_id)
            .where(PersonRole.person_id == coerce_uuid(person_id))
            .where(Role.name == settings.custody_admin_role)
            .limit(1)
        )
        return db.scalar(stmt) is not None


directory = Directory()
