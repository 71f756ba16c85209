import asyncio
import json
import logging
from typing import Any, Dict, List, Optional, Tuple

import redis.asyncio as redis
from redis.exceptions import WatchError

from .document_store import (
    DocumentStore,
    DocumentStoreError,
    SnapshotCallback,
    Subscription,
    get_at,
    set_at,
    split_path,
)

logger = logging.getLogger(__name__)

# users/{tenantId} is stored as one JSON document
DOCUMENT_DEPTH = 2


class RedisDocumentStore(DocumentStore):
    """
    - {prefix}users/{tenant_id}          -> STRING (JSON document of the tenant tree)
    - {prefix}changes:users/{tenant_id}  -> PUBSUB channel, one message per committed write
    """
    def __init__(self, redis_url: str, key_prefix: str = "crm:"):
        self._url = redis_url
        self._prefix = key_prefix
        self._r: Optional[redis.Redis] = None

    async def connect(self):
        self._r = redis.from_url(self._url, decode_responses=True)
        logger.info("Connected to Redis document store")

    async def close(self):
        if self._r:
            await self._r.aclose()
            self._r = None
            logger.info("Disconnected from Redis document store")

    def document_key(self, doc_parts: Tuple[str, ...]) -> str:
        return f"{self._prefix}{'/'.join(doc_parts)}"

    def channel_name(self, doc_parts: Tuple[str, ...]) -> str:
        return f"{self._prefix}changes:{'/'.join(doc_parts)}"

    @staticmethod
    def split_document(parts: List[str]) -> Tuple[Tuple[str, ...], List[str]]:
        if len(parts) < DOCUMENT_DEPTH:
            raise DocumentStoreError(f"Path {'/'.join(parts)!r} is above a tenant document")
        return tuple(parts[:DOCUMENT_DEPTH]), parts[DOCUMENT_DEPTH:]

    async def get(self, path: str) -> Any:
        assert self._r is not None
        doc_parts, rest = self.split_document(split_path(path))
        raw = await self._r.get(self.document_key(doc_parts))
        return get_at(_loads(raw), rest)

    async def _apply(self, changes: List[Tuple[List[str], Any]]) -> None:
        assert self._r is not None
        grouped: Dict[Tuple[str, ...], List[Tuple[List[str], Any]]] = {}
        for parts, value in changes:
            doc_parts, rest = self.split_document(parts)
            grouped.setdefault(doc_parts, []).append((rest, value))

        docs = list(grouped)
        keys = [self.document_key(doc) for doc in docs]
        async with self._r.pipeline(transaction=True) as p:
            while True:
                try:
                    await p.watch(*keys)
                    updated = []
                    for doc, key in zip(docs, keys):
                        tree = _loads(await p.get(key))
                        for rest, value in grouped[doc]:
                            tree = set_at(tree, rest, value)
                        updated.append(tree)

                    p.multi()
                    for doc, key, tree in zip(docs, keys, updated):
                        if tree is None:
                            await p.delete(key)
                        else:
                            await p.set(key, json.dumps(tree))
                        await p.publish(self.channel_name(doc), "changed")
                    await p.execute()
                    return
                except WatchError:
                    logger.debug(f"Concurrent write on {keys}, retrying transaction")
                    continue

    async def subscribe(self, path: str, callback: SnapshotCallback) -> Subscription:
        assert self._r is not None
        parts = split_path(path)
        doc_parts, rest = self.split_document(parts)
        pubsub = self._r.pubsub()
        await pubsub.subscribe(self.channel_name(doc_parts))

        task = asyncio.create_task(self._listen(pubsub, doc_parts, rest, callback))
        subscription = Subscription(path, task.cancel)

        def _on_done(t: asyncio.Task):
            if t.cancelled():
                return
            exc = t.exception()
            if exc is not None:
                subscription.error = exc
                logger.error(f"Subscription listener for {path} stopped: {exc}")

        task.add_done_callback(_on_done)
        return subscription

    async def _listen(self, pubsub, doc_parts: Tuple[str, ...], rest: List[str], callback: SnapshotCallback):
        key = self.document_key(doc_parts)
        try:
            await self._deliver(key, rest, callback)
            while True:
                message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
                if message is None:
                    continue
                await self._deliver(key, rest, callback)
        finally:
            try:
                await pubsub.unsubscribe()
                await pubsub.aclose()
            except Exception as e:
                logger.warning(f"Error closing pubsub for {key}: {e}")

    async def _deliver(self, key: str, rest: List[str], callback: SnapshotCallback):
        assert self._r is not None
        raw = await self._r.get(key)
        try:
            callback(get_at(_loads(raw), rest))
        except Exception as e:
            logger.error(f"Subscriber callback for {key} failed: {e}", exc_info=True)


def _loads(raw: Optional[str]) -> Any:
    if raw is None:
        return None
    return json.loads(raw)
