"""
Music Source: load-once, iterate-many wrapper around a catalog provider.

States
------
UNINITIALIZED -> INITIALIZING -> INITIALIZED | ERROR

``load()`` runs the provider's blocking fetch in a worker thread. A None
result or a provider exception ends in ERROR with an empty catalog; any
list (even an empty one) ends in INITIALIZED. Calling ``load()`` again
re-enters INITIALIZING and replaces the catalog wholesale.
"""

import asyncio
import threading
from enum import Enum
from typing import Callable, Iterator, List, Tuple

from loguru import logger

from .catalog import CatalogProvider
from .models import Track


class SourceState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING  = "initializing"
    INITIALIZED   = "initialized"
    ERROR         = "error"


TERMINAL_STATES = frozenset({SourceState.INITIALIZED, SourceState.ERROR})

ReadyCallback = Callable[[bool], None]


class MusicSource:
    """Owns one catalog load lifecycle and exposes the loaded tracks."""

    def __init__(self, provider: CatalogProvider) -> None:
        self._provider = provider
        self._catalog: Tuple[Track, ...] = ()
        self._state = SourceState.UNINITIALIZED
        self._ready_callbacks: List[ReadyCallback] = []
        self._lock = threading.Lock()  # guards state, catalog and callbacks

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> SourceState:
        with self._lock:
            return self._state

    @property
    def is_ready(self) -> bool:
        return self.state in TERMINAL_STATES

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def load(self) -> None:
        """Fetch the full catalog from the provider. Never raises for provider failures."""
        with self._lock:
            self._state = SourceState.INITIALIZING

        try:
            tracks = await asyncio.to_thread(self._provider.fetch_tracks)
        except Exception as e:
            logger.error(f"Catalog provider {self._provider!r} failed: {e}")
            tracks = None

        if tracks is None:
            logger.warning("Music source has no catalog; entering ERROR state.")
            self._finish((), SourceState.ERROR)
        else:
            logger.info(f"Music source initialized with {len(tracks)} tracks.")
            self._finish(tuple(tracks), SourceState.INITIALIZED)

    def when_ready(self, callback: ReadyCallback) -> bool:
        """Run ``callback(initialized)`` once the source reaches a terminal state.

        Returns True if the callback ran immediately, False if it was queued.
        """
        with self._lock:
            state = self._state
            if state not in TERMINAL_STATES:
                self._ready_callbacks.append(callback)
                return False
        callback(state is SourceState.INITIALIZED)
        return True

    # ------------------------------------------------------------------
    # Sequence access
    # ------------------------------------------------------------------

    def tracks(self) -> Tuple[Track, ...]:
        """Snapshot of the loaded catalog (empty before load and in ERROR)."""
        with self._lock:
            return self._catalog

    def __iter__(self) -> Iterator[Track]:
        return iter(self.tracks())

    def __len__(self) -> int:
        return len(self.tracks())

    def __repr__(self) -> str:
        return f"MusicSource({self.state.value}, {len(self)} tracks, provider={self._provider!r})"

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _finish(self, catalog: Tuple[Track, ...], state: SourceState) -> None:
        with self._lock:
            self._catalog = catalog
            self._state = state
            callbacks, self._ready_callbacks = self._ready_callbacks, []
        for callback in callbacks:
            try:
                callback(state is SourceState.INITIALIZED)
            except Exception:
                logger.exception(f"when_ready callback {callback!r} failed")
