import logging
from typing import List, Literal, Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import field_validator
from sqlalchemy import func
from sqlmodel import Session, SQLModel, select

from db import apply_updates, generate_id, get_session, now_ms, upsert
from models import Club, ClubInvite, User

logger = logging.getLogger(__name__)

router = APIRouter(tags=["clubs"])

ClubStatus = Literal["pending", "validated", "rejected"]


class ClubIn(SQLModel):
    id: Optional[str] = None
    name: str
    embleme: Optional[str] = None
    status: ClubStatus
    requested_by: str
    validated_by: Optional[str] = None
    created_at: int
    updated_at: int


class ClubUpdate(SQLModel):
    # PATCH: solo questi campi sono modificabili.
    status: Optional[ClubStatus] = None
    validated_by: Optional[str] = None
    name: Optional[str] = None
    embleme: Optional[str] = None

    @field_validator("name", "status")
    @classmethod
    def not_null(cls, value):
        if value is None:
            raise ValueError("must not be null")
        return value


class ClubInviteIn(SQLModel):
    id: Optional[str] = None
    club_id: str
    invite_code: str
    expires_at: int
    created_at: int


class JoinIn(SQLModel):
    user_id: Optional[str] = None
    is_coach: Optional[Union[bool, str]] = None


def find_valid_invite(session: Session, code: str) -> ClubInvite:
    invite = session.exec(
        select(ClubInvite).where(ClubInvite.invite_code == code, ClubInvite.expires_at > now_ms())
    ).first()
    if not invite:
        raise HTTPException(status_code=404, detail="Invalid or expired invite code")
    return invite


# ========== CLUBS ==========
@router.post("/clubs", status_code=201)
def create_club(data: ClubIn, session: Session = Depends(get_session)):
    club_id = data.id or generate_id("club")
    upsert(session, Club, club_id, data.model_dump(exclude={"id"}))
    return {"ok": True, "id": club_id}


@router.get("/clubs", response_model=List[Club])
def list_clubs(
    status: Optional[ClubStatus] = None,
    limit: int = Query(0, ge=0),
    session: Session = Depends(get_session),
):
    query = select(Club).order_by(Club.created_at.desc())
    if status:
        query = query.where(Club.status == status)
    if limit > 0:
        query = query.limit(limit)
    return session.exec(query).all()


@router.get("/clubs/search", response_model=List[Club])
def search_clubs(
    q: str = "",
    limit: int = Query(20, ge=1),
    session: Session = Depends(get_session),
):
    if not q.strip():
        return []
    query = (
        select(Club)
        .where(Club.name.ilike(f"%{q.strip()}%"))
        .order_by(Club.created_at.desc())
        .limit(limit)
    )
    return session.exec(query).all()


@router.get("/clubs/stats")
def club_stats(session: Session = Depends(get_session)):
    rows = session.exec(select(Club.status, func.count(Club.id)).group_by(Club.status)).all()
    counts = {status: count for status, count in rows}
    return {
        "pending": counts.get("pending", 0),
        "validated": counts.get("validated", 0),
        "rejected": counts.get("rejected", 0),
        "total": sum(counts.values()),
    }


@router.get("/clubs/{club_id}", response_model=Club)
def get_club(club_id: str, session: Session = Depends(get_session)):
    club = session.get(Club, club_id)
    if club is None:
        raise HTTPException(status_code=404, detail="Club not found")
    return club


@router.patch("/clubs/{club_id}")
def update_club(club_id: str, data: ClubUpdate, session: Session = Depends(get_session)):
    club = session.get(Club, club_id)
    if not club:
        raise HTTPException(status_code=404, detail="Club not found")
    apply_updates(session, club, data)
    return {"ok": True}


@router.post("/clubs/{club_id}/join")
def join_club(club_id: str, data: JoinIn, session: Session = Depends(get_session)):
    """Associa direttamente un utente a un club validato e chiude l'onboarding."""
    if not data.user_id:
        raise HTTPException(status_code=400, detail="user_id is required")

    club = session.get(Club, club_id)
    if not club:
        raise HTTPException(status_code=404, detail="Club not found")
    if club.status == "pending":
        raise HTTPException(status_code=400, detail="Club is pending validation")
    if club.status == "rejected":
        raise HTTPException(status_code=400, detail="Club has been rejected")

    user = session.get(User, data.user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    user.club_id = club_id
    user.club_status = club.status
    user.onboarding_completed = True
    if data.is_coach is not None:
        user.is_coach = data.is_coach is True or data.is_coach == "true"
    user.updated_at = now_ms()
    session.add(user)
    session.commit()
    logger.info("Utente %s entrato nel club %s", data.user_id, club_id)

    return {"ok": True, "club_id": club_id, "club_name": club.name}


# ========== CLUB INVITES ==========
@router.post("/club-invites", status_code=201)
def create_invite(data: ClubInviteIn, session: Session = Depends(get_session)):
    invite_id = data.id or generate_id("invite")
    upsert(session, ClubInvite, invite_id, data.model_dump(exclude={"id"}))
    return {"ok": True, "id": invite_id}


@router.get("/club-invites", response_model=List[ClubInvite])
def list_invites(club_id: Optional[str] = None, session: Session = Depends(get_session)):
    if not club_id:
        return []
    query = (
        select(ClubInvite)
        .where(ClubInvite.club_id == club_id, ClubInvite.expires_at > now_ms())
        .order_by(ClubInvite.created_at.desc())
    )
    return session.exec(query).all()


@router.get("/club-invites/{code}")
def get_invite(code: str, session: Session = Depends(get_session)):
    invite = find_valid_invite(session, code)
    club = session.get(Club, invite.club_id)
    if not club:
        raise HTTPException(status_code=404, detail="Club not found")
    return {**invite.model_dump(), "club_name": club.name, "club_status": club.status}


# Endpoint legacy: mantenuto per compatibilita', usare /clubs/{club_id}/join
@router.post("/club-invites/{code}/use")
def use_invite(code: str, data: JoinIn, session: Session = Depends(get_session)):
    if not data.user_id:
        logger.error("use invite %s: user_id mancante", code)
        raise HTTPException(status_code=400, detail="user_id is required")

    invite = find_valid_invite(session, code)
    club = session.get(Club, invite.club_id)
    if not club:
        logger.error("use invite %s: club %s non trovato", code, invite.club_id)
        raise HTTPException(status_code=404, detail="Club not found")
    if club.status != "validated":
        raise HTTPException(status_code=400, detail="Club is not validated yet")

    return {"ok": True, "club_id": invite.club_id}
