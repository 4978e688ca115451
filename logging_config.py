"""Configurazione logging dell'API: un solo handler su console."""
import logging


def setup_logging(level: str = "INFO") -> None:
    """
    Installa l'handler console sul root logger.

    Gli handler esistenti vengono rimossi prima, cosi' chiamarla piu' volte
    (reload di uvicorn, test) non duplica l'output.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()

    console = logging.StreamHandler()
    console.setFormatter(
        logging.Formatter(
            "%(asctime)s %(levelname)-5s [%(name)s] %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    root.addHandler(console)

    # Librerie terze troppo verbose.
    for noisy in ("botocore", "boto3", "urllib3", "s3transfer"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
