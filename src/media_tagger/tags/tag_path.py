"""Hierarchical tag identifiers and the rules for matching them.

A stored tag looks like ``Nature/Landscape/Mountains`` (category,
subcategory, tag) or ``People/Alice`` (category, tag). Requirement tags
used by the search filter may also name just a category, e.g. ``Nature``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Mapping

SEPARATOR = "/"


class TagPathError(ValueError):
    """Raised when a string cannot be parsed into a TagPath."""
    pass


class TagMatchMode(Enum):
    """How several required tags are combined when filtering."""

    ANY = "any"  # at least one required tag matches
    ALL = "all"  # every required tag matches


@dataclass(frozen=True)
class TagPath:
    """A normalized hierarchical tag. Identity is ``full_path`` only."""

    category: str = field(compare=False)
    subcategory: str | None = field(compare=False)
    tag: str = field(compare=False)
    full_path: str

    @classmethod
    def parse(cls, full_path: str, partial: bool = False) -> TagPath:
        """Parse ``category[/subcategory]/tag``.

        With ``partial=True`` a bare category (one segment) is accepted,
        which is only meaningful as a search requirement.
        """
        if not isinstance(full_path, str):
            raise TagPathError(f"Tag path must be a string, got {type(full_path).__name__}")
        parts = [p.strip() for p in full_path.split(SEPARATOR)]
        if any(not p for p in parts):
            raise TagPathError(f"Empty segment in tag path '{full_path}'")
        min_parts = 1 if partial else 2
        if not min_parts <= len(parts) <= 3:
            raise TagPathError(
                f"Tag path '{full_path}' must have {min_parts} to 3 segments, "
                f"got {len(parts)}"
            )
        if len(parts) == 1:
            return cls(category=parts[0], subcategory=None, tag=parts[0],
                       full_path=parts[0])
        if len(parts) == 2:
            return cls.from_parts(parts[0], parts[1])
        return cls.from_parts(parts[0], parts[2], subcategory=parts[1])

    @classmethod
    def from_parts(
        cls, category: str, tag: str, subcategory: str | None = None
    ) -> TagPath:
        segments = [category, subcategory, tag] if subcategory else [category, tag]
        return cls(
            category=category,
            subcategory=subcategory or None,
            tag=tag,
            full_path=SEPARATOR.join(segments),
        )

    @property
    def is_category_only(self) -> bool:
        return self.full_path == self.category

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "category": self.category,
            "tag": self.tag,
            "fullPath": self.full_path,
        }
        if self.subcategory:
            data["subcategory"] = self.subcategory
        return data

    def __str__(self) -> str:
        return self.full_path


def normalize_tag(value: TagPath | str | Mapping[str, Any]) -> TagPath:
    """Convert any accepted tag representation into a TagPath.

    Accepts a TagPath, a path string, or a mapping carrying either
    ``fullPath``/``full_path`` or ``category``/``subcategory``/``tag``.
    """
    if isinstance(value, TagPath):
        return value
    if isinstance(value, str):
        return TagPath.parse(value, partial=True)
    if isinstance(value, Mapping):
        full_path = value.get("fullPath") or value.get("full_path")
        if full_path:
            return TagPath.parse(full_path, partial=True)
        category = value.get("category")
        tag = value.get("tag")
        if category and tag:
            return TagPath.from_parts(category, tag, value.get("subcategory"))
        if category:
            return TagPath.parse(category, partial=True)
        raise TagPathError(f"Mapping does not describe a tag: {dict(value)!r}")
    raise TagPathError(f"Unsupported tag value: {value!r}")


def normalize_tags(values: Iterable[TagPath | str | Mapping[str, Any]]) -> list[TagPath]:
    return [normalize_tag(v) for v in values]


def matches(required: TagPath, candidate: TagPath) -> bool:
    """Return True if ``candidate`` satisfies ``required``.

    Exact match, descent below the required path, a category-only
    requirement sharing the category, or a category/subcategory
    requirement sharing both.
    """
    if required.full_path == candidate.full_path:
        return True

    if candidate.full_path.startswith(required.full_path + SEPARATOR):
        return True

    if (required.full_path == required.category
            and candidate.category == required.category):
        return True

    if (required.subcategory
            and required.full_path == f"{required.category}{SEPARATOR}{required.subcategory}"
            and candidate.category == required.category
            and candidate.subcategory == required.subcategory):
        return True

    return False


def matches_all(
    required: Iterable[TagPath],
    candidates: Iterable[TagPath],
    mode: TagMatchMode = TagMatchMode.ANY,
) -> bool:
    """Combine several requirements against a file's tags.

    An empty requirement list matches everything.
    """
    required = list(required)
    if not required:
        return True
    candidates = list(candidates)

    def satisfied(req: TagPath) -> bool:
        return any(matches(req, cand) for cand in candidates)

    if mode is TagMatchMode.ALL:
        return all(satisfied(req) for req in required)
    return any(satisfied(req) for req in required)
