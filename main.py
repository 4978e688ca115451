import logging
import os
from typing import Any, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import delete, text
from sqlmodel import Field, Session, SQLModel, select

import admin
import clubs
import records
import tally
import users
import videos
from db import generate_id, get_session, init_db, upsert
from logging_config import setup_logging
from models import GameStat
from storage import R2Settings, build_storage

logger = logging.getLogger(__name__)

app = FastAPI(title="Rugby Stats API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(clubs.router)
app.include_router(users.router)
app.include_router(records.router)
app.include_router(videos.router)
app.include_router(admin.router)


@app.on_event("startup")
def on_startup():
    setup_logging(os.getenv("LOG_LEVEL", "INFO"))
    # Client R2 esplicito, passato agli handler tramite videos.get_storage.
    # Creato dopo il logging, cosi' gli avvisi di configurazione si vedono.
    app.state.storage = build_storage(R2Settings.from_env())
    # Lo schema si crea all'avvio solo se richiesto; altrimenti POST /admin/init-db.
    init_db(lazy=os.getenv("DB_INIT_ON_STARTUP", "").lower() not in ("1", "true", "yes"))


@app.get("/health")
def health():
    return {"ok": True}


@app.get("/healthz")
def healthz(session: Session = Depends(get_session)):
    try:
        session.exec(text("SELECT 1"))
        return {"ok": True, "db": "up"}
    except Exception:
        logger.exception("Health check DB fallito")
        return {"ok": True, "db": "down"}


# ========== GAME STATS ==========
class GameStatIn(SQLModel):
    id: Optional[str] = None
    user_id: str
    club_id: Optional[str] = None
    player_name: str
    opponent: str
    position: Optional[str] = None
    play_time: int = Field(ge=0)
    satisfaction: bool
    physical_form: Any = None
    mental_form: Any = None
    video_url: Optional[str] = None
    video_source: Optional[str] = None
    actions: Any = None
    positive_notes: Any = None
    negative_notes: Any = None
    performance_rating: int = 5
    weekly_focus: Any = None
    created_at: int
    updated_at: int


def find_stats(session: Session, newest_first: bool = True, limit: int = 0, **filters) -> List[GameStat]:
    """Partite filtrate per user_id e/o club_id, ordinate per created_at."""
    query = select(GameStat)
    for name, value in filters.items():
        query = query.where(getattr(GameStat, name) == value)
    order = GameStat.created_at.desc() if newest_first else GameStat.created_at.asc()
    query = query.order_by(order)
    if limit > 0:
        query = query.limit(limit)
    return session.exec(query).all()


@app.post("/gamestats", status_code=201)
def save_gamestat(data: GameStatIn, session: Session = Depends(get_session)):
    stat_id = data.id or generate_id("gamestat")
    values = data.model_dump(exclude={"id"})
    if values["actions"] is None:
        values["actions"] = []
    upsert(session, GameStat, stat_id, values)
    return {"ok": True, "id": stat_id}


@app.get("/gamestats", response_model=List[GameStat])
def list_gamestats(
    user_id: str,
    limit: int = Query(0, ge=0),
    session: Session = Depends(get_session),
):
    return find_stats(session, limit=limit, user_id=user_id)


@app.delete("/gamestats")
def delete_user_gamestats(user_id: Optional[str] = None, session: Session = Depends(get_session)):
    if not user_id:
        raise HTTPException(status_code=400, detail="user_id is required")
    session.exec(delete(GameStat).where(GameStat.user_id == user_id))
    session.commit()
    return {"ok": True}


@app.get("/gamestats/club/{club_id}", response_model=List[GameStat])
def club_gamestats(club_id: str, session: Session = Depends(get_session)):
    return find_stats(session, club_id=club_id)


@app.get("/gamestats/{stat_id}", response_model=GameStat)
def get_gamestat(stat_id: str, session: Session = Depends(get_session)):
    stat = session.get(GameStat, stat_id)
    if not stat:
        raise HTTPException(status_code=404, detail="Not found")
    return stat


@app.delete("/gamestats/{stat_id}")
def delete_gamestat(stat_id: str, session: Session = Depends(get_session)):
    stat = session.get(GameStat, stat_id)
    if stat:
        session.delete(stat)
        session.commit()
    return {"ok": True}


# ========== AGGREGATI ==========
@app.get("/clubs/{club_id}/players", response_model=List[tally.PlayerSummary])
def club_players(club_id: str, session: Session = Depends(get_session)):
    return tally.club_roster(find_stats(session, newest_first=False, club_id=club_id))


@app.get("/players/{user_id}/stats", response_model=tally.PlayerSummary)
def player_stats(user_id: str, session: Session = Depends(get_session)):
    docs = find_stats(session, newest_first=False, user_id=user_id)
    if not docs:
        raise HTTPException(status_code=404, detail="Player stats not found")
    return tally.player_summary(user_id, docs)


@app.get("/players/{user_id}/progress", response_model=List[tally.ProgressPoint])
def player_progress(user_id: str, session: Session = Depends(get_session)):
    # progress() non riordina: servono le partite dalla piu' vecchia.
    docs = find_stats(session, newest_first=False, user_id=user_id)
    if not docs:
        raise HTTPException(status_code=404, detail="Player stats not found")
    return tally.progress(docs)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "3001")))
