from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from doccustody.models.custody import CustodyStatus, HolderType, TransferType


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class CheckoutRequest(BaseModel):
    checkout_type: str
    user_id: UUID | None = None
    agent_id: UUID | None = None
    client_id: UUID | None = None
    performed_by: UUID | None = None
    notes: str | None = None
    expected_return_date: datetime | None = None


class CheckinRequest(BaseModel):
    requested_by: UUID
    notes: str | None = None


class TransferRequest(BaseModel):
    from_user: UUID
    performed_by: UUID
    to_type: str = "user"
    to_user: UUID | None = None
    to_agent_id: UUID | None = None
    to_client_id: UUID | None = None
    notes: str | None = None
    expected_return_date: datetime | None = None


class ReturnRequest(BaseModel):
    received_by: UUID
    notes: str | None = None


class RollbackRequest(BaseModel):
    admin_user: UUID
    notes: str | None = None


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class CustodyRecordRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    document_id: UUID
    status: CustodyStatus
    holder_type: HolderType | None = None
    holder_user_id: UUID | None = None
    holder_agent_id: UUID | None = None
    holder_client_id: UUID | None = None
    previous_holder_type: HolderType | None = None
    previous_holder_id: UUID | None = None
    current_entry_id: UUID | None = None
    checked_out_at: datetime | None = None
    checked_in_at: datetime | None = None
    transferred_at: datetime | None = None
    expected_return_date: datetime | None = None
    notes: str | None = None
    version: int
    updated_at: datetime


class TransferHistoryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    document_id: UUID
    from_user_id: UUID | None = None
    from_agent_id: UUID | None = None
    from_client_name: str | None = None
    to_user_id: UUID | None = None
    to_agent_id: UUID | None = None
    to_client_id: UUID | None = None
    to_client_name: str | None = None
    transfer_type: TransferType
    performed_by: UUID
    transferred_at: datetime
    returned_at: datetime | None = None
    expected_return_date: datetime | None = None
    notes: str | None = None
    return_notes: str | None = None
