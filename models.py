from typing import Any, List, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel


class GameStat(SQLModel, table=True):
    __tablename__ = "gamestat"

    id: str = Field(primary_key=True)
    user_id: str = Field(index=True)
    club_id: Optional[str] = Field(default=None, index=True)
    player_name: str = ""
    opponent: str = ""
    position: Optional[str] = None
    play_time: int = Field(default=0)
    satisfaction: bool = Field(default=True)
    performance_rating: int = Field(default=5)
    video_url: Optional[str] = None
    video_source: Optional[str] = None
    # --- payload opaco: salvato e restituito cosi' com'e' ---
    actions: List[Any] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    physical_form: Optional[Any] = Field(default=None, sa_column=Column(JSON))
    mental_form: Optional[Any] = Field(default=None, sa_column=Column(JSON))
    positive_notes: Optional[Any] = Field(default=None, sa_column=Column(JSON))
    negative_notes: Optional[Any] = Field(default=None, sa_column=Column(JSON))
    weekly_focus: Optional[Any] = Field(default=None, sa_column=Column(JSON))
    created_at: int = Field(index=True)
    updated_at: int


class Club(SQLModel, table=True):
    __tablename__ = "club"

    id: str = Field(primary_key=True)
    name: str
    embleme: Optional[str] = None
    status: str = Field(default="pending", index=True)
    requested_by: str
    validated_by: Optional[str] = None
    created_at: int
    updated_at: int


class ClubInvite(SQLModel, table=True):
    __tablename__ = "club_invite"

    id: str = Field(primary_key=True)
    club_id: str = Field(index=True)
    invite_code: str = Field(unique=True, index=True)
    expires_at: int
    created_at: int


class Record(SQLModel, table=True):
    __tablename__ = "record"

    id: str = Field(primary_key=True)
    club_id: str = Field(index=True)
    title: str
    video_url: str
    description: Optional[str] = None
    created_by: str = Field(index=True)
    created_at: int
    updated_at: int


class User(SQLModel, table=True):
    __tablename__ = "user"

    id: str = Field(primary_key=True)
    email: str = Field(index=True)
    name: str
    picture: Optional[str] = None
    onboarding_completed: bool = Field(default=False)
    club_id: Optional[str] = Field(default=None, index=True)
    club_status: Optional[str] = None
    is_coach: bool = Field(default=False)
    created_at: int
    updated_at: int
