# backend/app/routers/clients.py

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import raise_for_rejection
from ..models.generated import Clients as DBClients
from ..schemas.bookings import BookingRead
from ..schemas.clients import (
    ClientActiveUpdate,
    ClientCreate,
    ClientCreditsUpdate,
    ClientRead,
    ClientUsage,
    QuotaRead,
)
from ..services.booking.quota import client_usage_this_month, quota_status
from ..services.booking.transactions import get_upcoming_booking_for_client

router = APIRouter(prefix="/clients", tags=["clients"])


def _client_or_404(db: Session, id: int) -> DBClients:
    obj = db.get(DBClients, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Not found")
    return obj


@router.get("/", response_model=list[ClientRead])
def list_clients(db: Session = Depends(get_db)):
    return db.query(DBClients).order_by(DBClients.name).all()


@router.get("/usage", response_model=list[ClientUsage])
def list_usage(db: Session = Depends(get_db)):
    """Bookings used this month by every client."""
    used = client_usage_this_month(db)
    return [
        ClientUsage(client_id=c.id, name=c.name, used=used.get(c.id, 0), limit=c.credits_per_month)
        for c in db.query(DBClients).order_by(DBClients.name).all()
    ]


@router.get("/{id}", response_model=ClientRead)
def get_client(id: int, db: Session = Depends(get_db)):
    return _client_or_404(db, id)


@router.post("/", response_model=ClientRead, status_code=status.HTTP_201_CREATED)
def create_client(data: ClientCreate, db: Session = Depends(get_db)):
    email = data.email.lower()
    if db.query(DBClients).filter(DBClients.email == email).first():
        raise HTTPException(status_code=409, detail="Email already registered")
    obj = DBClients(name=data.name.strip(), email=email, credits_per_month=data.credits_per_month)
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


@router.patch("/{id}/credits", response_model=ClientRead)
def update_credits(id: int, data: ClientCreditsUpdate, db: Session = Depends(get_db)):
    obj = _client_or_404(db, id)
    obj.credits_per_month = data.credits_per_month
    db.commit()
    db.refresh(obj)
    return obj


@router.patch("/{id}/active", response_model=ClientRead)
def update_active(id: int, data: ClientActiveUpdate, db: Session = Depends(get_db)):
    obj = _client_or_404(db, id)
    obj.is_active = 1 if data.is_active else 0
    db.commit()
    db.refresh(obj)
    return obj


@router.get("/{id}/quota", response_model=QuotaRead)
def get_quota(id: int, db: Session = Depends(get_db)):
    result = quota_status(db, id)
    raise_for_rejection(result)
    quota = result.value
    return QuotaRead(client_id=id, used=quota.used, limit=quota.limit, remaining=quota.remaining)


@router.get("/{id}/upcoming", response_model=BookingRead | None)
def get_upcoming(id: int, db: Session = Depends(get_db)):
    _client_or_404(db, id)
    return get_upcoming_booking_for_client(db, id)
