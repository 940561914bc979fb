from collections.abc import Generator

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from doccustody.db import SessionLocal
from doccustody.schemas.common import ListResponse
from doccustody.schemas.custody import (
    CheckinRequest,
    CheckoutRequest,
    CustodyRecordRead,
    ReturnRequest,
    RollbackRequest,
    TransferHistoryRead,
    TransferRequest,
)
from doccustody.services.custody import custody

router = APIRouter(tags=["custody"])


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def _str(value):
    return str(value) if value is not None else None


@router.post(
    "/documents/{document_id}/custody",
    response_model=CustodyRecordRead,
    status_code=status.HTTP_201_CREATED,
)
def register_custody(
    document_id: str, db: Session = Depends(get_db)
) -> CustodyRecordRead:
    return custody.register(db, document_id)


@router.get("/documents/{document_id}/custody", response_model=CustodyRecordRead)
def get_custody(document_id: str, db: Session = Depends(get_db)) -> CustodyRecordRead:
    return custody.get_custody(db, document_id)


@router.post(
    "/documents/{document_id}/custody/checkout",
    response_model=CustodyRecordRead,
    status_code=status.HTTP_201_CREATED,
)
def checkout_document(
    document_id: str,
    payload: CheckoutRequest,
    db: Session = Depends(get_db),
) -> CustodyRecordRead:
    return custody.checkout(
        db,
        document_id,
        payload.checkout_type,
        user_id=_str(payload.user_id),
        agent_id=_str(payload.agent_id),
        client_id=_str(payload.client_id),
        performed_by=_str(payload.performed_by),
        notes=payload.notes,
        expected_return_date=payload.expected_return_date,
    )


@router.post(
    "/documents/{document_id}/custody/checkin", response_model=CustodyRecordRead
)
def checkin_document(
    document_id: str,
    payload: CheckinRequest,
    db: Session = Depends(get_db),
) -> CustodyRecordRead:
    return custody.checkin(db, document_id, str(payload.requested_by), payload.notes)


@router.post(
    "/documents/{document_id}/custody/transfer", response_model=CustodyRecordRead
)
def transfer_document(
    document_id: str,
    payload: TransferRequest,
    db: Session = Depends(get_db),
) -> CustodyRecordRead:
    return custody.transfer(
        db,
        document_id,
        str(payload.from_user),
        str(payload.performed_by),
        to_user=_str(payload.to_user),
        to_type=payload.to_type,
        to_agent_id=_str(payload.to_agent_id),
        to_client_id=_str(payload.to_client_id),
        notes=payload.notes,
        expected_return_date=payload.expected_return_date,
    )


@router.post(
    "/documents/{document_id}/custody/return", response_model=CustodyRecordRead
)
def receive_return(
    document_id: str,
    payload: ReturnRequest,
    db: Session = Depends(get_db),
) -> CustodyRecordRead:
    return custody.receive_return(
        db, document_id, str(payload.received_by), payload.notes
    )


@router.post(
    "/documents/{document_id}/custody/rollback", response_model=CustodyRecordRead
)
def rollback_checkout(
    document_id: str,
    payload: RollbackRequest,
    db: Session = Depends(get_db),
) -> CustodyRecordRead:
    return custody.rollback(db, document_id, str(payload.admin_user), payload.notes)


@router.get(
    "/documents/{document_id}/custody/history",
    response_model=ListResponse[TransferHistoryRead],
)
def get_history(
    document_id: str,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
) -> dict:
    items = custody.get_history(db, document_id, limit, offset)
    return {"items": items, "count": len(items), "limit": limit, "offset": offset}


@router.get(
    "/people/{person_id}/custody", response_model=ListResponse[CustodyRecordRead]
)
def get_held_by(person_id: str, db: Session = Depends(get_db)) -> dict:
    items = custody.get_held_by(db, person_id)
    return {"items": items, "count": len(items)}


@router.get("/custody/checked-out", response_model=ListResponse[CustodyRecordRead])
def list_checked_out(
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
) -> dict:
    items = custody.list_checked_out(db, limit, offset)
    return {"items": items, "count": len(items), "limit": limit, "offset": offset}
