from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import field_validator
from sqlmodel import Session, SQLModel, select

from db import apply_updates, generate_id, get_session, upsert
from models import Record

router = APIRouter(prefix="/records", tags=["records"])


class RecordIn(SQLModel):
    id: Optional[str] = None
    club_id: str
    title: str
    video_url: str
    description: Optional[str] = None
    created_by: str
    created_at: int
    updated_at: int


class RecordUpdate(SQLModel):
    title: Optional[str] = None
    video_url: Optional[str] = None
    description: Optional[str] = None

    @field_validator("title", "video_url")
    @classmethod
    def not_null(cls, value):
        if value is None:
            raise ValueError("must not be null")
        return value


@router.post("", status_code=201)
def create_record(data: RecordIn, session: Session = Depends(get_session)):
    record_id = data.id or generate_id("record")
    upsert(session, Record, record_id, data.model_dump(exclude={"id"}))
    return {"ok": True, "id": record_id}


@router.get("", response_model=List[Record])
def list_records(club_id: Optional[str] = None, session: Session = Depends(get_session)):
    if not club_id:
        return []
    return session.exec(
        select(Record).where(Record.club_id == club_id).order_by(Record.created_at.desc())
    ).all()


@router.get("/{record_id}", response_model=Record)
def get_record(record_id: str, session: Session = Depends(get_session)):
    record = session.get(Record, record_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Record not found")
    return record


@router.patch("/{record_id}")
def update_record(record_id: str, data: RecordUpdate, session: Session = Depends(get_session)):
    record = session.get(Record, record_id)
    if not record:
        raise HTTPException(status_code=404, detail="Record not found")
    apply_updates(session, record, data)
    return {"ok": True}


@router.delete("/{record_id}")
def delete_record(record_id: str, session: Session = Depends(get_session)):
    record = session.get(Record, record_id)
    if record:
        session.delete(record)
        session.commit()
    return {"ok": True}
