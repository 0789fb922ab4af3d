"""Stable random identifier for the current browser-tab session."""
from __future__ import annotations

import logging
import uuid

from timtim.core.constants import SESSION_ID_KEY
from timtim.core.session_storage import KeyValueStore

logger = logging.getLogger(__name__)


def generate_session_id() -> str:
    """UUID v4 string, 122 random bits."""
    return str(uuid.uuid4())


class SessionIdentity:
    """Resolves the session id once and caches it for the instance lifetime.

    The id is read from (or written to) ``SESSION_ID_KEY`` in the session
    store. Without storage the id lives in memory only, so the cart will not
    survive a reload, but nothing breaks.
    """

    def __init__(self, store: KeyValueStore, session_id: str | None = None) -> None:
        self._store = store
        self._session_id = session_id

    def get_id(self) -> str:
        if self._session_id is None:
            self._session_id = self._resolve()
        return self._session_id

    def _resolve(self) -> str:
        if not self._store.available:
            return generate_session_id()

        existing = self._store.get(SESSION_ID_KEY, None)
        if isinstance(existing, str) and existing:
            return existing

        new_id = generate_session_id()
        if not self._store.set(SESSION_ID_KEY, new_id):
            logger.warning("Could not persist session id; using in-memory id %s", new_id)
        return new_id
