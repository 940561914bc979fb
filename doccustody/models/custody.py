import enum
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from doccustody.db import Base


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class CustodyStatus(enum.Enum):
    available = "available"
    checked_out = "checked_out"


class HolderType(enum.Enum):
    user = "user"
    agent = "agent"
    client = "client"


class TransferType(enum.Enum):
    user_to_user = "user_to_user"
    user_to_agent = "user_to_agent"
    user_to_client = "user_to_client"
    rolled_back = "rolled_back"


TRANSFER_TYPE_BY_HOLDER = {
    HolderType.user: TransferType.user_to_user,
    HolderType.agent: TransferType.user_to_agent,
    HolderType.client: TransferType.user_to_client,
}


@dataclass(frozen=True)
class Holder:
    """Whoever physically has the paper copy: a staff user, an agent or a client."""

    kind: HolderType
    id: uuid.UUID

    @classmethod
    def user(cls, person_id: uuid.UUID) -> "Holder":
        return cls(HolderType.user, person_id)

    @classmethod
    def agent(cls, agent_id: uuid.UUID) -> "Holder":
        return cls(HolderType.agent, agent_id)

    @classmethod
    def client(cls, client_id: uuid.UUID) -> "Holder":
        return cls(HolderType.client, client_id)

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.id}"


# ---------------------------------------------------------------------------
# Custody ledger: one mutable row per document
# ---------------------------------------------------------------------------


class CustodyRecord(Base):
    __tablename__ = "custody_records"
    __table_args__ = (
        CheckConstraint(
            "(CASE WHEN holder_user_id IS NULL THEN 0 ELSE 1 END)"
            " + (CASE WHEN holder_agent_id IS NULL THEN 0 ELSE 1 END)"
            " + (CASE WHEN holder_client_id IS NULL THEN 0 ELSE 1 END) <= 1",
            name="ck_custody_records_single_holder",
        ),
        CheckConstraint(
            "status = 'checked_out' OR (holder_type IS NULL"
            " AND holder_user_id IS NULL AND holder_agent_id IS NULL"
            " AND holder_client_id IS NULL)",
            name="ck_custody_records_available_no_holder",
        ),
        CheckConstraint(
            "status = 'available' OR holder_type IS NOT NULL",
            name="ck_custody_records_checked_out_has_holder",
        ),
        Index("ix_custody_records_holder_user_id", "holder_user_id"),
        Index("ix_custody_records_status", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    document_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("documents.id"), nullable=False, unique=True
    )
    status: Mapped[CustodyStatus] = mapped_column(
        Enum(CustodyStatus), nullable=False, default=CustodyStatus.available
    )

    holder_type: Mapped[HolderType | None] = mapped_column(Enum(HolderType))
    holder_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("people.id")
    )
    holder_agent_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("clearance_agents.id")
    )
    holder_client_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("clients.id")
    )

    # Audit display only; may reference any holder kind
    previous_holder_type: Mapped[HolderType | None] = mapped_column(Enum(HolderType))
    previous_holder_id: Mapped[uuid.UUID | None] = mapped_column(Uuid)

    # History entry that opened the current possession
    current_entry_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("transfer_history.id", ondelete="SET NULL")
    )

    checked_out_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    checked_in_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    transferred_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    expected_return_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True)
    )
    notes: Mapped[str | None] = mapped_column(Text)

    # Bumped by every conditional update
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    @property
    def holder(self) -> Holder | None:
        if self.holder_type is None:
            return None
        holder_id = {
            HolderType.user: self.holder_user_id,
            HolderType.agent: self.holder_agent_id,
            HolderType.client: self.holder_client_id,
        }[self.holder_type]
        return Holder(self.holder_type, holder_id)

    @property
    def previous_holder(self) -> Holder | None:
        if self.previous_holder_type is None:
            return None
        return Holder(self.previous_holder_type, self.previous_holder_id)


# ---------------------------------------------------------------------------
# Transfer history: audit trail of hand-offs
# ---------------------------------------------------------------------------


class TransferHistoryEntry(Base):
    __tablename__ = "transfer_history"
    __table_args__ = (
        Index("ix_transfer_history_document_id", "document_id"),
        Index(
            "ix_transfer_history_document_transferred_at",
            "document_id",
            "transferred_at",
        ),
        Index("ix_transfer_history_to_user_id", "to_user_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    document_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("documents.id"), nullable=False
    )

    from_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("people.id")
    )
    from_agent_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("clearance_agents.id")
    )
    from_client_name: Mapped[str | None] = mapped_column(String(255))

    to_user_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("people.id"))
    to_agent_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("clearance_agents.id")
    )
    to_client_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("clients.id")
    )
    # Denormalized so the trail survives client renames
    to_client_name: Mapped[str | None] = mapped_column(String(255))

    transfer_type: Mapped[TransferType] = mapped_column(
        Enum(TransferType), nullable=False
    )
    performed_by: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("people.id"), nullable=False
    )

    transferred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    returned_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    expected_return_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True)
    )
    notes: Mapped[str | None] = mapped_column(Text)
    return_notes: Mapped[str | None] = mapped_column(Text)
