"""Realtime document store abstraction.

The store is a hierarchical JSON tree addressed by slash separated paths
(``users/{tenantId}/leads/{leadId}``). Writing ``None`` deletes a node and
empty maps are pruned, so a deleted last child never leaves an empty parent.
Subscribers receive the value at their path once when they subscribe and
again after every write that touches it.
"""
import asyncio
import copy
import logging
import time
import uuid
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[Any], None]

_FORBIDDEN_CHARS = set(".#$[]")


class DocumentStoreError(Exception):
    """Raised for invalid paths or writes the store cannot represent."""


def split_path(path: str) -> List[str]:
    parts = [part for part in (path or "").split("/") if part]
    for part in parts:
        if _FORBIDDEN_CHARS & set(part):
            raise DocumentStoreError(f"Invalid path segment {part!r} in {path!r}")
    return parts


def normalize(value: Any) -> Any:
    """Deep copy a value the way the store keeps it: no nulls, no empty containers."""
    if isinstance(value, dict):
        result = {}
        for key, child in value.items():
            child = normalize(child)
            if child is not None:
                result[str(key)] = child
        return result or None
    if isinstance(value, (list, tuple)):
        items = [normalize(child) for child in value]
        return items or None
    return value


def get_at(tree: Any, parts: List[str]) -> Any:
    node = tree
    for part in parts:
        if isinstance(node, dict):
            node = node.get(part)
        elif isinstance(node, list) and part.isdigit() and int(part) < len(node):
            node = node[int(part)]
        else:
            return None
        if node is None:
            return None
    return node


def set_at(tree: Any, parts: List[str], value: Any) -> Any:
    """Return a tree with `value` written at `parts`. Only nodes on the path are copied."""
    if not parts:
        return normalize(value)
    if tree is not None and not isinstance(tree, dict):
        if value is None:
            return tree
        tree = None
    node = dict(tree) if tree else {}
    head, rest = parts[0], parts[1:]
    child = set_at(node.get(head), rest, value)
    if child is None:
        node.pop(head, None)
    else:
        node[head] = child
    return node or None


def paths_overlap(a: List[str], b: List[str]) -> bool:
    size = min(len(a), len(b))
    return a[:size] == b[:size]


def expand_update(parts: List[str], values: Dict[str, Any]) -> List[Tuple[List[str], Any]]:
    """Turn an update() mapping into (path, value) writes. Keys may be nested paths."""
    if not isinstance(values, dict):
        raise DocumentStoreError("update() expects a mapping of child paths to values")
    return [(parts + split_path(key), value) for key, value in values.items()]


class Subscription:
    """Handle for a live subscription. `unsubscribe()` detaches exactly once."""

    def __init__(self, path: str, on_unsubscribe: Callable[[], None]):
        self.path = path
        self._on_unsubscribe = on_unsubscribe
        self._active = True
        self.error: Optional[BaseException] = None

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        if not self._active:
            return
        self._active = False
        self._on_unsubscribe()
        logger.debug(f"Unsubscribed from {self.path}")


class DocumentStore:
    """Interface implemented by the store backends"""

    async def connect(self) -> None:
        pass

    async def close(self) -> None:
        pass

    def push_id(self) -> str:
        """Store-generated identifier, lexicographically ordered by creation time."""
        return f"{int(time.time() * 1000):012x}{uuid.uuid4().hex[:8]}"

    async def get(self, path: str) -> Any:
        raise NotImplementedError

    async def set(self, path: str, value: Any) -> None:
        await self._apply([(split_path(path), value)])

    async def update(self, path: str, values: Dict[str, Any]) -> None:
        await self._apply(expand_update(split_path(path), values))

    async def update_paths(self, updates: Dict[str, Any]) -> None:
        """Atomic multi-location update; a None value deletes that path."""
        await self._apply(expand_update([], updates))

    async def remove(self, path: str) -> None:
        await self._apply([(split_path(path), None)])

    async def subscribe(self, path: str, callback: SnapshotCallback) -> Subscription:
        raise NotImplementedError

    async def _apply(self, changes: List[Tuple[List[str], Any]]) -> None:
        raise NotImplementedError


class MemoryDocumentStore(DocumentStore):
    """In-process store for local runs and tests. Deliveries are scheduled on the event loop."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._tree: Any = normalize(initial) if initial else None
        self._subscribers: List[Tuple[List[str], SnapshotCallback, Subscription]] = []

    async def get(self, path: str) -> Any:
        return copy.deepcopy(get_at(self._tree, split_path(path)))

    async def subscribe(self, path: str, callback: SnapshotCallback) -> Subscription:
        parts = split_path(path)
        subscription = Subscription(path, lambda: self._detach(subscription))
        entry = (parts, callback, subscription)
        self._subscribers.append(entry)
        asyncio.get_running_loop().call_soon(self._deliver, entry)
        return subscription

    def _detach(self, subscription: Subscription) -> None:
        self._subscribers = [entry for entry in self._subscribers if entry[2] is not subscription]

    def _deliver(self, entry: Tuple[List[str], SnapshotCallback, Subscription]) -> None:
        parts, callback, subscription = entry
        if not subscription.active:
            return
        try:
            callback(copy.deepcopy(get_at(self._tree, parts)))
        except Exception as e:
            logger.error(f"Subscriber callback for {subscription.path} failed: {e}", exc_info=True)

    async def _apply(self, changes: List[Tuple[List[str], Any]]) -> None:
        tree = self._tree
        for parts, value in changes:
            tree = set_at(tree, parts, value)
        self._tree = tree
        self._notify(parts for parts, _ in changes)

    def _notify(self, written: Iterable[List[str]]) -> None:
        written = list(written)
        loop = asyncio.get_running_loop()
        for entry in list(self._subscribers):
            if any(paths_overlap(entry[0], parts) for parts in written):
                loop.call_soon(self._deliver, entry)
