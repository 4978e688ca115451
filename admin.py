# admin.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from db import init_db
from storage import R2Storage
from videos import NOT_CONFIGURED, get_storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/init-db")
def init_db_endpoint():
    """
    Crea lo schema (tabelle) se mancano.
    Da chiamare una volta dopo il deploy, dato che lo startup e' 'lazy'.
    """
    try:
        init_db(lazy=False)
        return {"status": "ok", "message": "Schema created/verified"}
    except Exception:
        logger.exception("ERROR /admin/init-db")
        raise HTTPException(status_code=500, detail="Init DB failed")


@router.get("/storage-check")
def storage_check(storage: Optional[R2Storage] = Depends(get_storage)):
    """Verifica credenziali e bucket R2 senza caricare nulla."""
    if storage is None:
        return {"success": False, "message": NOT_CONFIGURED}
    result = storage.check_connection()
    return {"success": result.success, "message": result.message}
