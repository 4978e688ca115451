from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, UploadFile

from storage import R2Storage, StorageError

router = APIRouter(prefix="/videos", tags=["videos"])

NOT_CONFIGURED = "R2 storage is not configured. Please set R2 environment variables."


def get_storage(request: Request) -> Optional[R2Storage]:
    # Costruito in main.py all'avvio; None se mancano le variabili R2.
    return getattr(request.app.state, "storage", None)


def require_storage(storage: Optional[R2Storage] = Depends(get_storage)) -> R2Storage:
    if storage is None:
        raise HTTPException(status_code=503, detail=NOT_CONFIGURED)
    return storage


def storage_http_error(e: StorageError) -> HTTPException:
    return HTTPException(status_code=502, detail=str(e))


@router.post("", status_code=201)
def upload_video(
    file: UploadFile = File(...),
    storage: R2Storage = Depends(require_storage),
):
    # Handler sync: put_object e' bloccante e gira nel threadpool di FastAPI.
    # Si passa lo stream, senza caricare il video in memoria.
    try:
        stored = storage.upload_video(file.file, file.filename or "", file.content_type or "video/mp4")
    except StorageError as e:
        raise storage_http_error(e)
    return {"key": stored.key, "url": stored.url}


@router.get("/signed-url")
def signed_url(
    key: str = Query(..., min_length=1),
    expires_in: int = Query(3600, ge=1, le=7 * 24 * 3600),
    storage: R2Storage = Depends(require_storage),
):
    try:
        return {"url": storage.signed_url(key, expires_in)}
    except StorageError as e:
        raise storage_http_error(e)
