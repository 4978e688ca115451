"""Fixture condivise: DB SQLite in memoria e client HTTP di test."""

import boto3
import pytest
from botocore.config import Config
from botocore.stub import Stubber
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

import models  # noqa: F401  registra le tabelle nei metadata
from db import get_session
from main import app
from storage import R2Storage
from videos import get_storage

BUCKET = "match-videos"
PUBLIC_URL = "https://pub-test.r2.dev"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def s3_client():
    return boto3.client(
        "s3",
        region_name="auto",
        endpoint_url="https://acct.eu.r2.cloudflarestorage.com",
        aws_access_key_id="test-key",
        aws_secret_access_key="test-secret",
        config=Config(signature_version="s3v4"),
    )


@pytest.fixture
def stubber(s3_client):
    with Stubber(s3_client) as stub:
        yield stub
        stub.assert_no_pending_responses()


@pytest.fixture
def storage(s3_client):
    return R2Storage(s3_client, BUCKET, PUBLIC_URL)


@pytest.fixture
def client(engine, storage):
    def _session_override():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = _session_override
    app.dependency_overrides[get_storage] = lambda: storage
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_stat(**overrides):
    """Body valido per POST /gamestats; i campi si sovrascrivono per test."""
    body = {
        "user_id": "user_1",
        "club_id": "club_1",
        "player_name": "Antoine Dupont",
        "opponent": "Toulon",
        "position": "scrum-half",
        "play_time": 80,
        "satisfaction": True,
        "physical_form": {"energy": 4},
        "mental_form": {"focus": 3},
        "actions": [],
        "positive_notes": ["ottima difesa"],
        "negative_notes": [],
        "performance_rating": 7,
        "weekly_focus": {"goal": "placcaggi"},
        "created_at": 1_700_000_000_000,
        "updated_at": 1_700_000_000_000,
    }
    body.update(overrides)
    return body
