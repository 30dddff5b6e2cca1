# backend/app/routers/settings.py

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.generated import ModeOverrides as DBModeOverrides
from ..schemas.settings import (
    ModeOverrideCreate,
    ModeOverrideRead,
    SettingsRead,
    SettingsUpdate,
)
from ..services.app_settings import get_or_create_settings, update_settings

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("/", response_model=SettingsRead)
def get_settings(db: Session = Depends(get_db)):
    return get_or_create_settings(db)


@router.put("/", response_model=SettingsRead)
def put_settings(data: SettingsUpdate, db: Session = Depends(get_db)):
    return update_settings(db, **data.model_dump(exclude_unset=True))


@router.get("/mode_overrides", response_model=list[ModeOverrideRead])
def list_mode_overrides(db: Session = Depends(get_db)):
    return db.query(DBModeOverrides).order_by(DBModeOverrides.date_start).all()


@router.post(
    "/mode_overrides", response_model=ModeOverrideRead, status_code=status.HTTP_201_CREATED
)
def create_mode_override(data: ModeOverrideCreate, db: Session = Depends(get_db)):
    obj = DBModeOverrides(**data.model_dump())
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


@router.delete("/mode_overrides/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_mode_override(id: int, db: Session = Depends(get_db)):
    obj = db.get(DBModeOverrides, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Not found")
    db.delete(obj)
    db.commit()
