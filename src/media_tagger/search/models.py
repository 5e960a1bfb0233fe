"""Data models for search and filtering."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from media_tagger.tags.tag_path import TagMatchMode, TagPath, normalize_tags

FILE_TYPES = frozenset({"image", "video", "folder"})

# Largest integer a JSON number holds exactly
MAX_SAFE_INTEGER = 2**53 - 1


@dataclass
class MediaFile:
    """A media file as listed by the file-system collaborator."""

    path: str
    name: str
    extension: str = ""
    size: int = 0
    date_modified: datetime | None = None
    date_created: datetime | None = None
    type: str = "image"  # image, video


@dataclass
class FolderItem:
    """A folder as listed by the file-system collaborator."""

    name: str
    path: str
    has_subfolders: bool = False
    media_count: int = 0


@dataclass
class MediaMetadata:
    """Per-file metadata returned by the metadata collaborator."""

    tags: list[TagPath] = field(default_factory=list)
    rating: int = 0
    date_created: datetime | None = None
    camera_make: str | None = None
    camera_model: str | None = None


@dataclass
class DateRange:
    start: datetime
    end: datetime

    def contains(self, value: datetime) -> bool:
        return self.start <= value <= self.end


@dataclass
class SizeRange:
    min: int | None = None
    max: int | None = None

    def contains(self, size: int) -> bool:
        low = self.min if self.min is not None else 0
        high = self.max if self.max is not None else MAX_SAFE_INTEGER
        return low <= size <= high


@dataclass
class CameraInfo:
    make: str | None = None
    model: str | None = None


@dataclass
class FilterCriteria:
    """Filters applied on top of the free-text query.

    ``tag_match_mode`` decides how several entries in ``tags`` combine.
    """

    file_types: set[str] = field(default_factory=set)
    tags: list[TagPath] = field(default_factory=list)
    date_range: DateRange | None = None
    size_range: SizeRange | None = None
    rating: int | None = None
    camera_info: CameraInfo | None = None
    tag_match_mode: TagMatchMode = TagMatchMode.ANY

    def __post_init__(self) -> None:
        self.file_types = set(self.file_types)
        unknown = self.file_types - FILE_TYPES
        if unknown:
            raise ValueError(f"Unknown file types: {sorted(unknown)}")
        self.tags = normalize_tags(self.tags)
        if self.rating is not None and not 0 <= self.rating <= 5:
            raise ValueError(f"Rating must be between 0 and 5, got {self.rating}")
        if isinstance(self.tag_match_mode, str):
            self.tag_match_mode = TagMatchMode(self.tag_match_mode)

    @property
    def file_type_filter_active(self) -> bool:
        """Selecting every known type is the same as selecting none."""
        return 0 < len(self.file_types) < len(FILE_TYPES)

    @property
    def needs_metadata(self) -> bool:
        return bool(
            self.tags
            or self.date_range is not None
            or self.rating is not None
            or self.camera_info is not None
        )

    @property
    def active_filter_count(self) -> int:
        return sum((
            bool(self.tags),
            self.date_range is not None,
            self.rating is not None,
            self.size_range is not None,
            self.camera_info is not None,
            self.file_type_filter_active,
        ))

    @property
    def has_active_filters(self) -> bool:
        return self.active_filter_count > 0


@dataclass
class SearchResult:
    """Ranked/filtered view of a file list. ``search_time`` is in ms."""

    files: list[MediaFile] = field(default_factory=list)
    folders: list[FolderItem] = field(default_factory=list)
    total_count: int = 0
    search_time: float = 0.0
