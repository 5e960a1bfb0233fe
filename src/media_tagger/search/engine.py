"""Search/filter engine over an in-memory file and folder list."""

from __future__ import annotations

import logging
import time
from typing import Iterable, Protocol

from media_tagger.search import fuzzy
from media_tagger.search.models import (
    FilterCriteria,
    FolderItem,
    MediaFile,
    MediaMetadata,
    SearchResult,
)
from media_tagger.tags.tag_path import TagPath, matches_all

logger = logging.getLogger(__name__)

DEFAULT_FILE_THRESHOLD = 0.1
DEFAULT_FOLDER_THRESHOLD = 0.3


class MetadataService(Protocol):
    """Reads and writes persisted per-file tags and ratings."""

    def read_tags(self, path: str) -> list[TagPath]: ...

    def write_tags(self, path: str, tags: list[TagPath]) -> None: ...

    def read_rating(self, path: str) -> int: ...

    def write_rating(self, path: str, rating: int) -> None: ...

    def read_metadata(self, path: str) -> MediaMetadata: ...


class SearchFilterEngine:
    """Rank files by fuzzy name match and narrow them by criteria.

    Tag, rating, date and camera criteria need a metadata service. Without
    one they are accepted and passed through unapplied.
    """

    def __init__(
        self,
        metadata: MetadataService | None = None,
        file_threshold: float = DEFAULT_FILE_THRESHOLD,
        folder_threshold: float = DEFAULT_FOLDER_THRESHOLD,
    ):
        self._metadata = metadata
        self._file_threshold = file_threshold
        self._folder_threshold = folder_threshold

    @property
    def metadata(self) -> MetadataService | None:
        return self._metadata

    def search(
        self,
        files: Iterable[MediaFile],
        folders: Iterable[FolderItem],
        query: str = "",
        criteria: FilterCriteria | None = None,
    ) -> SearchResult:
        """Run query and filters. Never raises; failures yield an empty result."""
        start = time.perf_counter()
        try:
            criteria = criteria or FilterCriteria()
            matched_files = list(files)
            matched_folders = list(folders)

            normalized = (query or "").strip().lower()
            if normalized:
                matched_files = self.rank_files(matched_files, normalized)
                matched_folders = [
                    folder for folder in matched_folders
                    if fuzzy.score(normalized, folder.name.lower()) > self._folder_threshold
                ]

            if criteria.file_types:
                matched_files = [
                    f for f in matched_files if f.type in criteria.file_types
                ]

            if criteria.size_range is not None:
                matched_files = [
                    f for f in matched_files if criteria.size_range.contains(f.size)
                ]

            if criteria.needs_metadata:
                matched_files = self._apply_metadata_filters(matched_files, criteria)

            return SearchResult(
                files=matched_files,
                folders=matched_folders,
                total_count=len(matched_files) + len(matched_folders),
                search_time=_elapsed_ms(start),
            )
        except Exception:
            logger.exception("Error performing search")
            return SearchResult(search_time=_elapsed_ms(start))

    def rank_files(self, files: list[MediaFile], query: str) -> list[MediaFile]:
        """Score names against ``query``, drop weak matches, best first.

        The sort is stable so equal scores keep their input order.
        """
        scored = [(fuzzy.score(query, f.name.lower()), f) for f in files]
        kept = [item for item in scored if item[0] > self._file_threshold]
        kept.sort(key=lambda item: item[0], reverse=True)
        return [f for _, f in kept]

    def available_tags(self, files: Iterable[MediaFile]) -> list[TagPath]:
        """Distinct tags across ``files``, sorted by full path."""
        if self._metadata is None:
            return []
        seen: dict[str, TagPath] = {}
        for media in files:
            try:
                tags = self._metadata.read_tags(media.path)
            except Exception as e:
                logger.warning(f"Could not read tags for {media.path}: {e}")
                continue
            for tag in tags:
                seen.setdefault(tag.full_path, tag)
        return [seen[key] for key in sorted(seen)]

    def _apply_metadata_filters(
        self, files: list[MediaFile], criteria: FilterCriteria
    ) -> list[MediaFile]:
        if self._metadata is None:
            logger.debug(
                "No metadata service configured; tag/rating/date/camera "
                "filters passed through"
            )
            return files

        kept: list[MediaFile] = []
        for media in files:
            try:
                metadata = self._metadata.read_metadata(media.path)
            except Exception as e:
                logger.warning(f"Could not read metadata for {media.path}: {e}")
                continue
            if _metadata_matches(media, metadata, criteria):
                kept.append(media)
        return kept


def _metadata_matches(
    media: MediaFile, metadata: MediaMetadata, criteria: FilterCriteria
) -> bool:
    if criteria.tags and not matches_all(
        criteria.tags, metadata.tags, criteria.tag_match_mode
    ):
        return False

    if criteria.rating is not None and metadata.rating < criteria.rating:
        return False

    if criteria.date_range is not None:
        file_date = metadata.date_created or media.date_modified
        if file_date is None or not criteria.date_range.contains(file_date):
            return False

    camera = criteria.camera_info
    if camera is not None:
        if camera.make and camera.make.lower() not in (metadata.camera_make or "").lower():
            return False
        if camera.model and camera.model.lower() not in (metadata.camera_model or "").lower():
            return False

    return True


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000.0
