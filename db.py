import logging
import os
import time
import uuid
from typing import Any, Callable, Dict, Type, TypeVar

from sqlmodel import Session, SQLModel, create_engine
from sqlalchemy.exc import OperationalError

logger = logging.getLogger(__name__)

# Stringa di connessione dalla variabile d'ambiente.
DATABASE_URL = os.getenv("DATABASE_URL")

if not DATABASE_URL:
    # --- SVILUPPO LOCALE ---
    # Senza DATABASE_URL si usa un file SQLite "app.db".
    DATABASE_URL = "sqlite:///app.db"
    engine = create_engine(
        DATABASE_URL,
        # Necessario per SQLite: FastAPI esegue gli handler sync su piu' thread.
        connect_args={"check_same_thread": False},
        pool_pre_ping=True,
    )
else:
    # --- PRODUZIONE ---
    engine = create_engine(
        DATABASE_URL,
        pool_pre_ping=True,       # Controlla la connessione prima di ogni utilizzo.
        pool_size=5,              # Connessioni tenute pronte nel pool.
        max_overflow=5,           # Connessioni extra sotto carico.
        pool_recycle=1800,        # Ricicla le connessioni ogni 30 minuti.
    )

ModelT = TypeVar("ModelT", bound=SQLModel)


def get_session():
    with Session(engine) as session:
        yield session


def now_ms() -> int:
    """Timestamp epoch in millisecondi, lo stesso formato dei campi created_at/updated_at."""
    return int(time.time() * 1000)


def generate_id(prefix: str) -> str:
    return f"{prefix}_{now_ms()}_{uuid.uuid4().hex[:9]}"


def upsert(session: Session, model: Type[ModelT], obj_id: str, values: Dict[str, Any]) -> ModelT:
    """
    Inserisce o sovrascrive il documento con id ``obj_id``.
    Tutti i campi in ``values`` vengono scritti, anche quelli a None.
    """
    obj = session.get(model, obj_id)
    if obj is None:
        obj = model(id=obj_id)
    for key, value in values.items():
        setattr(obj, key, value)
    session.add(obj)
    session.commit()
    session.refresh(obj)
    return obj


def apply_updates(session: Session, obj: SQLModel, update: SQLModel) -> SQLModel:
    """PATCH parziale: solo i campi inviati nel body (gia' validati), piu' updated_at."""
    for key, value in update.model_dump(exclude_unset=True).items():
        setattr(obj, key, value)
    obj.updated_at = now_ms()
    session.add(obj)
    session.commit()
    return obj


def with_retry(fn: Callable, retries: int = 5, delay: float = 2.0):
    """
    Esegue una funzione con tentativi multipli in caso di errori operativi di connessione.
    Utile per database "serverless" che potrebbero richiedere un "risveglio".
    """
    for i in range(retries):
        try:
            return fn()
        except OperationalError:
            if i == retries - 1:
                raise
            logger.warning("DB non raggiungibile (tentativo %d/%d), riprovo", i + 1, retries)
            # Attendi con un ritardo che aumenta a ogni tentativo.
            time.sleep(delay * (i + 1))


def init_db(lazy: bool = True):
    """
    Crea le tabelle (definite in models.py) se non esistono gia'.

    - lazy=True (default): non esegue nulla. La creazione va chiamata a mano,
      per esempio tramite POST /admin/init-db.
    - lazy=False: crea le tabelle subito, usando "with_retry".
    """
    def _create():
        # Importa i modelli per registrarli nei metadata.
        import models  # noqa: F401
        SQLModel.metadata.create_all(engine)

    if lazy:
        return
    with_retry(_create)
    logger.info("Schema DB creato/verificato")
