"""
Upload video su Cloudflare R2 (compatibile S3) tramite boto3.

Il client non e' globale: ``build_storage`` crea un ``R2Storage`` a partire da
``R2Settings`` e l'app lo passa agli handler come dipendenza.

Gerarchia errori:
    StorageError
    +-- StorageAccessDenied    (credenziali/permessi)
    +-- StorageNotFound        (bucket o chiave inesistente)
    +-- StorageOperationError  (tutto il resto, incluso il trasporto)
"""
import logging
import os
import uuid
from dataclasses import dataclass
from typing import BinaryIO, List, Optional, Union

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)

ACCESS_DENIED_CODES = {"AccessDenied", "403", "Forbidden"}
NOT_FOUND_CODES = {"NoSuchBucket", "NoSuchKey", "NotFound", "404"}


class StorageError(Exception):
    """Errore base dello storage: il messaggio e' pensato per l'utente."""


class StorageAccessDenied(StorageError):
    pass


class StorageNotFound(StorageError):
    pass


class StorageOperationError(StorageError):
    pass


@dataclass
class R2Settings:
    account_id: Optional[str] = None
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    bucket_name: Optional[str] = None
    public_url: Optional[str] = None
    endpoint_url: Optional[str] = None

    @classmethod
    def from_env(cls) -> "R2Settings":
        return cls(
            account_id=os.getenv("R2_ACCOUNT_ID"),
            access_key_id=os.getenv("R2_ACCESS_KEY_ID"),
            secret_access_key=os.getenv("R2_SECRET_ACCESS_KEY"),
            bucket_name=os.getenv("R2_BUCKET_NAME"),
            public_url=os.getenv("R2_PUBLIC_URL"),
            endpoint_url=os.getenv("R2_ENDPOINT_URL"),
        )

    def missing(self) -> List[str]:
        required = {
            "R2_ACCOUNT_ID": self.account_id,
            "R2_ACCESS_KEY_ID": self.access_key_id,
            "R2_SECRET_ACCESS_KEY": self.secret_access_key,
            "R2_BUCKET_NAME": self.bucket_name,
            "R2_PUBLIC_URL": self.public_url,
        }
        return [name for name, value in required.items() if not value]

    @property
    def endpoint(self) -> str:
        return self.endpoint_url or f"https://{self.account_id}.eu.r2.cloudflarestorage.com"


@dataclass
class StoredObject:
    key: str
    url: str


@dataclass
class ConnectionCheck:
    success: bool
    message: str


def error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


class R2Storage:
    def __init__(self, client, bucket_name: str, public_url: Optional[str]):
        self.client = client
        self.bucket_name = bucket_name
        self.public_url = (public_url or "").rstrip("/")

    def _classify(self, exc: Exception, action: str) -> StorageError:
        """Traduce un errore boto in uno StorageError con messaggio leggibile."""
        if isinstance(exc, ClientError):
            code = error_code(exc)
            if code in ACCESS_DENIED_CODES:
                return StorageAccessDenied(
                    "Access Denied: check R2 credentials and bucket permissions."
                )
            if code in NOT_FOUND_CODES:
                if code == "NoSuchKey":
                    return StorageNotFound("Requested object not found in storage.")
                return StorageNotFound(
                    f'Bucket "{self.bucket_name}" not found. Check R2_BUCKET_NAME environment variable.'
                )
            detail = exc.response.get("Error", {}).get("Message") or code or "Unknown error"
        else:
            detail = str(exc) or "Unknown error"
        return StorageOperationError(f"Failed to {action}: {detail}")

    def upload_video(
        self,
        body: Union[bytes, BinaryIO],
        original_filename: str,
        content_type: str,
    ) -> StoredObject:
        """
        Carica un video e restituisce chiave e URL pubblico.
        La chiave e' ``videos/<uuid>.<estensione>`` (default mp4).
        """
        extension = "mp4"
        if original_filename and "." in original_filename:
            extension = original_filename.rsplit(".", 1)[-1] or "mp4"
        key = f"videos/{uuid.uuid4()}.{extension}"

        if isinstance(body, bytes):
            logger.info("Upload video su R2: %s (%.2f MB)", key, len(body) / 1024 / 1024)
        else:
            logger.info("Upload video su R2: %s", key)

        try:
            self.client.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=body,
                ContentType=content_type,
                ACL="private",
            )
        except (ClientError, BotoCoreError) as e:
            logger.exception("Errore upload video su R2")
            raise self._classify(e, "upload video") from e

        logger.info("Video caricato: %s", key)
        return StoredObject(key=key, url=f"{self.public_url}/{key}")

    def signed_url(self, key: str, expires_in: int = 3600) -> str:
        try:
            return self.client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket_name, "Key": key},
                ExpiresIn=expires_in,
            )
        except (ClientError, BotoCoreError) as e:
            logger.exception("Errore generazione URL firmato per %s", key)
            raise self._classify(e, "generate signed URL") from e

    def check_connection(self) -> ConnectionCheck:
        """Verifica accesso al bucket con head_bucket. Non solleva mai."""
        try:
            self.client.head_bucket(Bucket=self.bucket_name)
        except (ClientError, BotoCoreError) as e:
            err = self._classify(e, "connect")
            if isinstance(err, StorageOperationError):
                return ConnectionCheck(False, f"Connection test failed: {err}")
            return ConnectionCheck(False, str(err))
        return ConnectionCheck(True, "R2 connection successful")


def make_client(settings: R2Settings):
    return boto3.client(
        "s3",
        region_name="auto",
        endpoint_url=settings.endpoint,
        aws_access_key_id=settings.access_key_id,
        aws_secret_access_key=settings.secret_access_key,
        config=Config(signature_version="s3v4"),
    )


def build_storage(settings: R2Settings) -> Optional[R2Storage]:
    missing = settings.missing()
    if missing:
        logger.warning("Configurazione R2 incompleta, mancano: %s", ", ".join(missing))
        logger.warning("Gli upload video non funzioneranno finche' le variabili R2 non sono impostate.")
    if not (settings.account_id or settings.endpoint_url) or not settings.access_key_id \
            or not settings.secret_access_key or not settings.bucket_name:
        return None
    logger.info("Configurazione R2 caricata (bucket %s)", settings.bucket_name)
    return R2Storage(make_client(settings), settings.bucket_name, settings.public_url)
