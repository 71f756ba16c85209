import logging

from models.config import Config

from .document_store import DocumentStore, MemoryDocumentStore
from .redis_service import RedisDocumentStore

logger = logging.getLogger(__name__)


def create_store(config: Config) -> DocumentStore:
    """Build the document store selected by STORE_BACKEND (redis | memory)."""
    backend = (config.STORE_BACKEND or "redis").strip().lower()
    if backend == "memory":
        logger.warning("Using in-memory document store; data is lost on exit")
        return MemoryDocumentStore()
    if backend != "redis":
        raise ValueError(f"Unknown STORE_BACKEND {config.STORE_BACKEND!r}")
    return RedisDocumentStore(config.REDIS_URL, key_prefix=config.KEY_PREFIX)
