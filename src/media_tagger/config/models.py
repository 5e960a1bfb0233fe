"""Data models for the live configuration and export bundles.

Python attributes are snake_case; ``to_dict``/``from_dict`` use the
camelCase keys of the JSON files.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping

from media_tagger.tags.hierarchy import (
    TagHierarchyNode,
    nodes_from_dicts,
    nodes_to_dicts,
)

EXPORT_VERSION = "1.0.0"

# Settings keys that hold collections rather than scalars
COLLECTION_KEYS = frozenset({"favorites", "tagHierarchy"})

_SCALAR_FIELDS: dict[str, str] = {
    "language": "language",
    "theme": "theme",
    "thumbnailSize": "thumbnail_size",
    "viewMode": "view_mode",
}


def parse_datetime(value: Any) -> datetime:
    """Parse an ISO-8601 timestamp, accepting a trailing 'Z'."""
    if isinstance(value, datetime):
        return value
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MergeMode(str, Enum):
    REPLACE = "replace"
    MERGE = "merge"


@dataclass
class FavoriteFolder:
    """A favorite folder. Conflicts are detected by ``path``."""

    id: str
    name: str
    path: str
    date_added: datetime = field(default_factory=utc_now)
    order: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "path": self.path,
            "dateAdded": self.date_added.isoformat(),
            "order": self.order,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> FavoriteFolder:
        date_added = data.get("dateAdded")
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            path=str(data["path"]),
            date_added=parse_datetime(date_added) if date_added else utc_now(),
            order=int(data.get("order", 0)),
        )


@dataclass
class AppSettings:
    """Live application settings, including favorites and the tag tree.

    Unknown scalar keys from disk are kept in ``extra`` so they survive a
    load/save round trip.
    """

    language: str = "en"
    theme: str = "system"  # light, dark, system
    thumbnail_size: int = 150
    view_mode: str = "grid"  # grid, list
    favorites: list[FavoriteFolder] = field(default_factory=list)
    tag_hierarchy: list[TagHierarchyNode] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)

    def scalar_dict(self) -> dict[str, Any]:
        """Settings without favorites and tag hierarchy."""
        data = copy.deepcopy(self.extra)
        for key, attr in _SCALAR_FIELDS.items():
            data[key] = getattr(self, attr)
        return data

    def to_dict(self) -> dict[str, Any]:
        data = self.scalar_dict()
        data["favorites"] = [f.to_dict() for f in self.favorites]
        data["tagHierarchy"] = nodes_to_dicts(self.tag_hierarchy)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AppSettings:
        settings = cls(
            favorites=[FavoriteFolder.from_dict(f) for f in data.get("favorites") or []],
            tag_hierarchy=nodes_from_dicts(data.get("tagHierarchy")),
        )
        settings.apply_scalars(data)
        return settings

    def apply_scalars(self, data: Mapping[str, Any]) -> None:
        """Shallow-overwrite scalar settings from ``data``."""
        for key, value in data.items():
            if key in COLLECTION_KEYS:
                continue
            attr = _SCALAR_FIELDS.get(key)
            if attr is not None:
                setattr(self, attr, copy.deepcopy(value))
            else:
                self.extra[key] = copy.deepcopy(value)


@dataclass
class ConfigurationExport:
    """A versioned export bundle. Import never mutates it.

    A section left as None was absent from the file and is skipped on import.
    """

    version: str
    export_date: datetime
    settings: dict[str, Any] = field(default_factory=dict)
    tag_definitions: list[TagHierarchyNode] | None = None
    favorites: list[FavoriteFolder] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "version": self.version,
            "exportDate": self.export_date.isoformat(),
            "settings": copy.deepcopy(self.settings),
        }
        if self.tag_definitions is not None:
            data["tagDefinitions"] = nodes_to_dicts(self.tag_definitions)
        if self.favorites is not None:
            data["favorites"] = [f.to_dict() for f in self.favorites]
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ConfigurationExport:
        favorites = data.get("favorites")
        tag_definitions = data.get("tagDefinitions")
        settings = {
            k: v for k, v in (data.get("settings") or {}).items()
            if k not in COLLECTION_KEYS
        }
        return cls(
            version=str(data["version"]),
            export_date=parse_datetime(data["exportDate"]),
            settings=settings,
            tag_definitions=(
                nodes_from_dicts(tag_definitions)
                if tag_definitions is not None else None
            ),
            favorites=(
                [FavoriteFolder.from_dict(f) for f in favorites]
                if favorites is not None else None
            ),
        )


@dataclass
class ImportOptions:
    merge_mode: MergeMode = MergeMode.MERGE
    import_favorites: bool = True
    import_tag_hierarchy: bool = True
    import_settings: bool = True

    def __post_init__(self) -> None:
        self.merge_mode = MergeMode(self.merge_mode)


@dataclass
class ImportConflict:
    """A collision recorded during import, with the resolution applied."""

    type: str  # favorite, tag
    item: str
    resolution: str  # keep, merge, replace

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "item": self.item, "resolution": self.resolution}


@dataclass
class ImportedCounts:
    favorites: int = 0
    tag_nodes: int = 0
    settings_updated: bool = False


@dataclass
class ImportResult:
    success: bool = True
    imported: ImportedCounts = field(default_factory=ImportedCounts)
    conflicts: list[ImportConflict] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "imported": {
                "favorites": self.imported.favorites,
                "tagNodes": self.imported.tag_nodes,
                "settingsUpdated": self.imported.settings_updated,
            },
            "conflicts": [c.to_dict() for c in self.conflicts],
        }


@dataclass
class ValidationResult:
    """Outcome of checking an import file; errors are data, not exceptions."""

    valid: bool
    version: str | None = None
    error: str | None = None
