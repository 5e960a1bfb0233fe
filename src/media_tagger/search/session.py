"""Debounced search state for an interactive search box.

Each keystroke restarts the debounce window; a search runs only after the
window elapses. Results are installed last-write-wins: a result computed
for a query the user has since changed is discarded.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable, Iterable

from media_tagger.search.engine import SearchFilterEngine
from media_tagger.search.models import (
    FilterCriteria,
    FolderItem,
    MediaFile,
    SearchResult,
)

DEFAULT_DEBOUNCE_MS = 300


@dataclass
class SearchState:
    query: str = ""
    criteria: FilterCriteria = field(default_factory=FilterCriteria)
    result: SearchResult | None = None
    result_query: str | None = None

    @property
    def has_active_search(self) -> bool:
        return bool(self.query.strip())

    @property
    def has_active_filters(self) -> bool:
        return self.criteria.has_active_filters

    @property
    def active_filter_count(self) -> int:
        return self.criteria.active_filter_count

    @property
    def is_filtered(self) -> bool:
        return self.has_active_search or self.has_active_filters


class SearchSession:
    """Holds the query/filters and decides when a search is due."""

    def __init__(
        self,
        engine: SearchFilterEngine,
        debounce_ms: int = DEFAULT_DEBOUNCE_MS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._engine = engine
        self._debounce = debounce_ms / 1000.0
        self._clock = clock
        self._state = SearchState()
        self._last_input: float | None = None

    @property
    def state(self) -> SearchState:
        return self._state

    def set_query(self, query: str) -> None:
        self._state.query = query
        self._last_input = self._clock()

    def set_filters(self, criteria: FilterCriteria) -> None:
        self._state.criteria = criteria

    def clear_search(self) -> None:
        self.set_query("")

    def clear_filters(self) -> None:
        self._state.criteria = FilterCriteria()

    def clear_all(self) -> None:
        self.clear_search()
        self.clear_filters()

    def pending(self) -> bool:
        """True while the debounce window after the last keystroke is open."""
        if self._last_input is None:
            return False
        return self._clock() - self._last_input < self._debounce

    def run(
        self,
        files: Iterable[MediaFile],
        folders: Iterable[FolderItem],
        force: bool = False,
    ) -> SearchResult | None:
        """Search with the current query if the debounce window has elapsed.

        Returns None while still debouncing. The result is installed into
        ``state`` through ``accept``.
        """
        if not force and self.pending():
            return None
        query = self._state.query
        result = self._engine.search(files, folders, query, self._state.criteria)
        self.accept(query, result)
        return result

    def accept(self, query: str, result: SearchResult) -> bool:
        """Install ``result`` only if it was produced for the current query."""
        if query != self._state.query:
            return False
        self._state.result = result
        self._state.result_query = query
        return True
