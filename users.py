from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import EmailStr, field_validator
from sqlalchemy import func, or_
from sqlmodel import Session, SQLModel, select

from db import apply_updates, generate_id, get_session, upsert
from models import User

router = APIRouter(prefix="/users", tags=["users"])

ClubStatus = Literal["pending", "validated", "rejected"]


class UserIn(SQLModel):
    # Di norma e' l'id del provider di autenticazione.
    id: Optional[str] = None
    email: EmailStr
    name: str
    picture: Optional[str] = None
    onboarding_completed: bool = False
    club_id: Optional[str] = None
    club_status: Optional[ClubStatus] = None
    is_coach: bool = False
    created_at: int
    updated_at: int


class UserUpdate(SQLModel):
    name: Optional[str] = None
    picture: Optional[str] = None
    onboarding_completed: Optional[bool] = None
    club_id: Optional[str] = None
    club_status: Optional[ClubStatus] = None
    is_coach: Optional[bool] = None

    @field_validator("name", "onboarding_completed", "is_coach")
    @classmethod
    def not_null(cls, value):
        if value is None:
            raise ValueError("must not be null")
        return value


@router.post("", status_code=201)
def create_user(data: UserIn, session: Session = Depends(get_session)):
    user_id = data.id or generate_id("user")
    upsert(session, User, user_id, data.model_dump(exclude={"id"}))
    return {"ok": True, "id": user_id}


@router.get("", response_model=List[User])
def list_users(limit: int = Query(20, ge=0), session: Session = Depends(get_session)):
    query = select(User).order_by(User.created_at.desc())
    if limit > 0:
        query = query.limit(limit)
    return session.exec(query).all()


@router.get("/search", response_model=List[User])
def search_users(q: str = "", limit: int = Query(20, ge=1), session: Session = Depends(get_session)):
    if not q.strip():
        return []
    pattern = f"%{q.strip()}%"
    query = (
        select(User)
        .where(or_(User.name.ilike(pattern), User.email.ilike(pattern)))
        .order_by(User.created_at.desc())
        .limit(limit)
    )
    return session.exec(query).all()


@router.get("/stats")
def user_stats(session: Session = Depends(get_session)):
    total = session.exec(select(func.count(User.id))).one()
    coaches = session.exec(select(func.count(User.id)).where(User.is_coach == True)).one()  # noqa: E712
    return {"total": total, "coaches": coaches, "players": total - coaches}


@router.get("/club/{club_id}", response_model=List[User])
def users_by_club(club_id: str, session: Session = Depends(get_session)):
    return session.exec(select(User).where(User.club_id == club_id).order_by(User.name.asc())).all()


@router.get("/{user_id}", response_model=User)
def get_user(user_id: str, session: Session = Depends(get_session)):
    user = session.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.patch("/{user_id}")
def update_user(user_id: str, data: UserUpdate, session: Session = Depends(get_session)):
    user = session.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    apply_updates(session, user, data)
    return {"ok": True}
