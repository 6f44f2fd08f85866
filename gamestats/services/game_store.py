"""
Remote game store implementations.

The sync engine only talks to the abstract :class:`GameStore`. Two concrete
stores are provided: an in-process store (default when no server is
configured, also used by the tests) and an HTTP store backed by ``requests``.
"""
import copy
import itertools
import logging
from abc import ABC, abstractmethod
from collections import deque
from typing import Any, Deque, Dict, List, Optional

import requests

from ..errors import NotFoundError, PermanentStoreError, StoreError, TransientStoreError

logger = logging.getLogger(__name__)

GameDocument = Dict[str, Any]


class GameStore(ABC):
    """Abstract remote store of game documents, partitioned by scope (user PIN)."""

    @abstractmethod
    def save(self, data: GameDocument) -> GameDocument:
        """
        Store a new document.

        Returns:
            The stored document including its remote ``id``
        """
        pass

    @abstractmethod
    def load_all(self, scope: str) -> List[GameDocument]:
        """Return every document for ``scope``, newest first."""
        pass

    @abstractmethod
    def update(self, record_id: str, data: GameDocument) -> GameDocument:
        """Replace the stored fields of ``record_id``."""
        pass

    @abstractmethod
    def delete(self, record_id: str) -> None:
        pass

    @abstractmethod
    def clear_all(self, scope: str) -> None:
        """Delete every document for ``scope``."""
        pass

    def go_online(self) -> bool:
        """Re-enable network access; returns True when the store accepted it."""
        return True

    def go_offline(self) -> bool:
        """Disable network access; returns True when the store accepted it."""
        return True


class InMemoryGameStore(GameStore):
    """
    Process-local store.

    Supports simulated outages: while offline every call raises
    :class:`TransientStoreError`, and :meth:`fail_next` queues errors that the
    next calls raise in order.
    """

    def __init__(self) -> None:
        self._documents: Dict[str, GameDocument] = {}
        self._ids = itertools.count(1)
        self._pending_failures: Deque[StoreError] = deque()
        self.online = True
        self.calls: List[str] = []

    def fail_next(self, count: int = 1, error: Optional[StoreError] = None) -> None:
        """Make the next ``count`` calls raise ``error`` (a transient error by default)."""
        for _ in range(count):
            self._pending_failures.append(error or TransientStoreError("Simulated outage", code="unavailable"))

    def _check(self, operation: str) -> None:
        self.calls.append(operation)
        if not self.online:
            raise TransientStoreError("Store is offline", code="unavailable")
        if self._pending_failures:
            raise self._pending_failures.popleft()

    def save(self, data: GameDocument) -> GameDocument:
        self._check("save")
        record_id = f"game{next(self._ids)}"
        stored = copy.deepcopy(data)
        stored["id"] = record_id
        self._documents[record_id] = stored
        return copy.deepcopy(stored)

    def load_all(self, scope: str) -> List[GameDocument]:
        self._check("load_all")
        documents = [
            copy.deepcopy(doc) for doc in self._documents.values() if doc.get("userPin") == scope
        ]
        documents.sort(key=lambda doc: doc.get("createdAt") or "", reverse=True)
        return documents

    def update(self, record_id: str, data: GameDocument) -> GameDocument:
        self._check("update")
        if record_id not in self._documents:
            raise NotFoundError(f"Game {record_id} not found")
        stored = copy.deepcopy(data)
        stored["id"] = record_id
        self._documents[record_id] = stored
        return copy.deepcopy(stored)

    def delete(self, record_id: str) -> None:
        self._check("delete")
        if self._documents.pop(record_id, None) is None:
            raise NotFoundError(f"Game {record_id} not found")

    def clear_all(self, scope: str) -> None:
        self._check("clear_all")
        for record_id in [rid for rid, doc in self._documents.items() if doc.get("userPin") == scope]:
            del self._documents[record_id]

    def go_online(self) -> bool:
        self.online = True
        return True

    def go_offline(self) -> bool:
        self.online = False
        return True

    def __len__(self) -> int:
        return len(self._documents)


class HttpGameStore(GameStore):
    """
    REST client for a remote game store.

    Endpoints (relative to ``base_url``)::

        POST   /games                 create, returns the stored document
        GET    /games?userPin=<pin>   list documents for a scope
        PUT    /games/<id>            replace a document
        DELETE /games/<id>            delete one document
        DELETE /games?userPin=<pin>   delete every document for a scope
    """

    TRANSIENT_STATUS = {408, 425, 429, 500, 502, 503, 504}

    def __init__(self, base_url: str, timeout: float = 10.0, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.online = True

    def _url(self, *parts: str) -> str:
        return "/".join([self.base_url, "games", *parts])

    def _request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        if not self.online:
            raise TransientStoreError("Network disabled", code="unavailable")
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except (requests.ConnectionError, requests.Timeout) as exc:
            raise TransientStoreError(f"{method} {url} failed: {exc}", code="unavailable", original=exc) from exc
        except requests.RequestException as exc:
            raise PermanentStoreError(f"{method} {url} failed: {exc}", code="invalid-request", original=exc) from exc

        if response.ok:
            return response
        self._raise_for_status(method, url, response)
        return response

    def _raise_for_status(self, method: str, url: str, response: requests.Response) -> None:
        status = response.status_code
        message = f"{method} {url} returned {status}"
        if status == 404:
            raise NotFoundError(message)
        if status in (401, 403):
            raise PermanentStoreError(message, code="permission-denied")
        if status in self.TRANSIENT_STATUS:
            raise TransientStoreError(message, code="unavailable")
        raise PermanentStoreError(message, code=f"http-{status}")

    @staticmethod
    def _json(response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise PermanentStoreError("Store returned invalid JSON", code="invalid-response", original=exc) from exc

    def save(self, data: GameDocument) -> GameDocument:
        response = self._request("POST", self._url(), json=data)
        stored = self._json(response)
        if not isinstance(stored, dict) or not stored.get("id"):
            raise PermanentStoreError("Store did not return a document id", code="invalid-response")
        return stored

    def load_all(self, scope: str) -> List[GameDocument]:
        response = self._request("GET", self._url(), params={"userPin": scope})
        payload = self._json(response)
        if isinstance(payload, dict):
            payload = payload.get("games", [])
        if not isinstance(payload, list):
            raise PermanentStoreError("Store returned an unexpected listing", code="invalid-response")
        return payload

    def update(self, record_id: str, data: GameDocument) -> GameDocument:
        response = self._request("PUT", self._url(record_id), json=data)
        stored = self._json(response) if response.content else {}
        if not isinstance(stored, dict) or not stored:
            stored = dict(data)
        stored["id"] = record_id
        return stored

    def delete(self, record_id: str) -> None:
        self._request("DELETE", self._url(record_id))

    def clear_all(self, scope: str) -> None:
        self._request("DELETE", self._url(), params={"userPin": scope})

    def go_online(self) -> bool:
        self.online = True
        logger.info("HTTP store online: %s", self.base_url)
        return True

    def go_offline(self) -> bool:
        self.online = False
        logger.info("HTTP store offline")
        return True
