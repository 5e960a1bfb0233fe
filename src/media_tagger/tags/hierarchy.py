"""Tag hierarchy: category -> subcategory -> tag.

Two shapes live here. The flat-tag view (``build_from_flat_tags``) is the
dict browsed by the tag panel and searched by autocomplete. The node tree
(``TagHierarchyNode`` / ``TagHierarchyTree``) is the user-edited hierarchy
that is persisted with the settings and exchanged in export bundles.
"""

from __future__ import annotations

import copy
import logging
import re
import uuid
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Mapping

from media_tagger.tags.tag_path import (
    SEPARATOR,
    TagPath,
    normalize_tag,
)

logger = logging.getLogger(__name__)

ROOT_BUCKET = "_root"
MAX_TAG_NAME_LENGTH = 100

_INVALID_NAME_CHARS = re.compile(r'[/\\|<>:"*?]')

# {category: {subcategory or "_root": [tag, ...]}}
FlatTagHierarchy = dict[str, dict[str, list[str]]]


class TagHierarchyError(ValueError):
    """Raised for invalid edits to a tag hierarchy."""
    pass


def generate_tag_id() -> str:
    return f"tag_{uuid.uuid4().hex[:12]}"


@dataclass
class TagHierarchyNode:
    """A node in the tag tree (0=category, 1=subcategory, 2=tag)."""

    id: str
    name: str
    children: list[TagHierarchyNode] = field(default_factory=list)
    level: int = 0
    parent: str | None = None

    def walk(self) -> Iterator[TagHierarchyNode]:
        """Yield this node and all descendants, pre-order."""
        yield self
        for child in self.children:
            yield from child.walk()

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "children": [c.to_dict() for c in self.children],
            "level": self.level,
        }
        if self.parent is not None:
            data["parent"] = self.parent
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TagHierarchyNode:
        return cls(
            id=str(data.get("id") or generate_tag_id()),
            name=str(data["name"]),
            children=[cls.from_dict(c) for c in data.get("children") or []],
            level=int(data.get("level", 0)),
            parent=data.get("parent"),
        )


def nodes_from_dicts(items: Iterable[Mapping[str, Any]] | None) -> list[TagHierarchyNode]:
    return [TagHierarchyNode.from_dict(item) for item in items or []]


def nodes_to_dicts(nodes: Iterable[TagHierarchyNode]) -> list[dict[str, Any]]:
    return [node.to_dict() for node in nodes]


def count_nodes(nodes: Iterable[TagHierarchyNode]) -> int:
    return sum(1 for node in nodes for _ in node.walk())


# --- Flat tag view ---

def build_from_flat_tags(tags: Iterable[TagPath | str | Mapping[str, Any]]) -> FlatTagHierarchy:
    """Group tags by category then subcategory.

    Tags without a subcategory land in the ``_root`` bucket. Each bucket is
    deduplicated and sorted.
    """
    hierarchy: FlatTagHierarchy = {}
    for raw in tags:
        tag = normalize_tag(raw)
        if tag.is_category_only:
            logger.debug(f"Skipping category-only tag '{tag.full_path}'")
            continue
        bucket = hierarchy.setdefault(tag.category, {}).setdefault(
            tag.subcategory or ROOT_BUCKET, []
        )
        if tag.tag not in bucket:
            bucket.append(tag.tag)

    for subcategories in hierarchy.values():
        for bucket in subcategories.values():
            bucket.sort()
    return hierarchy


# --- Structural merge ---

@dataclass
class TagMergeOutcome:
    """Result of merging one tag tree into another."""

    nodes: list[TagHierarchyNode]
    merged_categories: list[str] = field(default_factory=list)
    created: int = 0


def merge_tag_hierarchy(
    target: list[TagHierarchyNode],
    source: list[TagHierarchyNode],
) -> TagMergeOutcome:
    """Merge ``source`` into a copy of ``target`` by node name.

    Neither input is modified. Unmatched categories are appended whole;
    a matched category is recorded once in ``merged_categories`` and its
    children are merged level by level, so tags under a shared
    subcategory end up as a union without duplicate names.
    """
    result = copy.deepcopy(target)
    used_ids = {node.id for node in _walk_all(result)}
    outcome = TagMergeOutcome(nodes=result)
    target_names = {node.name for node in target}

    for src_category in source:
        existing = _find_child_by_name(result, src_category.name)
        if existing is None:
            adopted, count = _adopt(src_category, None, 0, used_ids)
            result.append(adopted)
            outcome.created += count
            continue
        # A repeated source category folds into its appended copy silently
        if (src_category.name in target_names
                and src_category.name not in outcome.merged_categories):
            outcome.merged_categories.append(src_category.name)
        outcome.created += _merge_children(existing, src_category.children, used_ids)

    logger.debug(
        f"Merged tag hierarchy: {outcome.created} nodes created, "
        f"{len(outcome.merged_categories)} categories merged"
    )
    return outcome


def _merge_children(
    target_node: TagHierarchyNode,
    source_children: list[TagHierarchyNode],
    used_ids: set[str],
) -> int:
    created = 0
    for src_child in source_children:
        existing = _find_child_by_name(target_node.children, src_child.name)
        if existing is None:
            adopted, count = _adopt(
                src_child, target_node.id, target_node.level + 1, used_ids
            )
            target_node.children.append(adopted)
            created += count
        else:
            created += _merge_children(existing, src_child.children, used_ids)
    return created


def _adopt(
    node: TagHierarchyNode,
    parent_id: str | None,
    level: int,
    used_ids: set[str],
) -> tuple[TagHierarchyNode, int]:
    """Deep-copy a node into a new position. Returns (copy, nodes created)."""
    node_id = node.id
    if not node_id or node_id in used_ids:
        node_id = generate_tag_id()
    used_ids.add(node_id)

    adopted = TagHierarchyNode(
        id=node_id, name=node.name, level=level, parent=parent_id
    )
    count = 1
    for child in node.children:
        child_copy, child_count = _adopt(child, node_id, level + 1, used_ids)
        adopted.children.append(child_copy)
        count += child_count
    return adopted, count


def _find_child_by_name(
    nodes: list[TagHierarchyNode], name: str
) -> TagHierarchyNode | None:
    return next((n for n in nodes if n.name == name), None)


def _walk_all(nodes: Iterable[TagHierarchyNode]) -> Iterator[TagHierarchyNode]:
    for node in nodes:
        yield from node.walk()


# --- Editable tree ---

class TagHierarchyTree:
    """Mutable tag tree with an id index.

    Nodes are only ever attached under an existing parent, so the tree
    stays acyclic; ``move_tag`` refuses to move a node below itself.
    """

    def __init__(self, nodes: list[TagHierarchyNode] | None = None):
        self._roots: list[TagHierarchyNode] = list(nodes or [])
        self._index: dict[str, TagHierarchyNode] = {}
        # child id -> parent id, derived from structure rather than node.parent
        self._parent_of: dict[str, str | None] = {}
        self._rebuild_index()

    @classmethod
    def from_dicts(cls, items: Iterable[Mapping[str, Any]] | None) -> TagHierarchyTree:
        return cls(nodes_from_dicts(items))

    def to_dicts(self) -> list[dict[str, Any]]:
        return nodes_to_dicts(self._roots)

    @property
    def roots(self) -> list[TagHierarchyNode]:
        return list(self._roots)

    def __len__(self) -> int:
        return len(self._index)

    def __iter__(self) -> Iterator[TagHierarchyNode]:
        return _walk_all(self._roots)

    # --- Lookup ---

    def find_by_id(self, tag_id: str) -> TagHierarchyNode | None:
        return self._index.get(tag_id)

    def find_by_path(self, path: str) -> TagHierarchyNode | None:
        """Resolve 'Nature/Landscape/Mountains' (case-insensitive)."""
        parts = [p.strip() for p in path.split(SEPARATOR) if p.strip()]
        if not parts:
            return None
        level = self._roots
        node: TagHierarchyNode | None = None
        for part in parts:
            node = next(
                (n for n in level if n.name.lower() == part.lower()), None
            )
            if node is None:
                return None
            level = node.children
        return node

    def get_path(self, tag_id: str) -> str:
        """Build the '/'-joined path for a node by walking its parents."""
        node = self._require(tag_id)
        parts: list[str] = []
        current: TagHierarchyNode | None = node
        while current is not None:
            parts.append(current.name)
            parent_id = self._parent_of.get(current.id)
            current = self._index.get(parent_id) if parent_id else None
        return SEPARATOR.join(reversed(parts))

    def children(self, tag_id: str) -> list[TagHierarchyNode]:
        node = self.find_by_id(tag_id)
        return list(node.children) if node else []

    def to_tag_path(self, tag_id: str) -> TagPath:
        return TagPath.parse(self.get_path(tag_id), partial=True)

    def search(self, query: str) -> list[TagHierarchyNode]:
        """Case-insensitive substring search over node names, pre-order."""
        needle = query.lower()
        return [node for node in self if needle in node.name.lower()]

    def flat_tags(self) -> list[TagPath]:
        """Leaf nodes below category level as TagPaths."""
        tags: list[TagPath] = []
        for node in self:
            if node.children:
                continue
            path = self.get_path(node.id)
            if 2 <= path.count(SEPARATOR) + 1 <= 3:
                tags.append(TagPath.parse(path))
        return tags

    # --- Editing ---

    def create_tag(self, parent_id: str | None, name: str) -> TagHierarchyNode:
        name = self._check_name(name)
        if parent_id is not None:
            parent = self._require(parent_id)
            siblings = parent.children
            level = parent.level + 1
        else:
            parent = None
            siblings = self._roots
            level = 0
        self._check_unique(siblings, name)

        node = TagHierarchyNode(
            id=generate_tag_id(), name=name, level=level, parent=parent_id
        )
        siblings.append(node)
        self._index[node.id] = node
        self._parent_of[node.id] = parent_id
        logger.debug(f"Created tag '{self.get_path(node.id)}'")
        return node

    def rename_tag(self, tag_id: str, name: str) -> TagHierarchyNode:
        name = self._check_name(name)
        node = self._require(tag_id)
        self._check_unique(self._siblings_of(node), name, exclude_id=tag_id)
        node.name = name
        return node

    def delete_tag(self, tag_id: str) -> list[str]:
        """Delete a node and its subtree. Returns the removed ids."""
        node = self._require(tag_id)
        siblings = self._siblings_of(node)
        siblings[:] = [n for n in siblings if n.id != tag_id]
        removed = [n.id for n in node.walk()]
        for removed_id in removed:
            self._index.pop(removed_id, None)
            self._parent_of.pop(removed_id, None)
        return removed

    def move_tag(self, tag_id: str, new_parent_id: str | None) -> TagHierarchyNode:
        node = self._require(tag_id)
        if new_parent_id is not None:
            new_parent = self._require(new_parent_id)
            if any(n.id == new_parent_id for n in node.walk()):
                raise TagHierarchyError(
                    "Cannot move tag: would create circular reference"
                )
            destination = new_parent.children
            level = new_parent.level + 1
        else:
            destination = self._roots
            level = 0
        self._check_unique(destination, node.name, exclude_id=tag_id)

        siblings = self._siblings_of(node)
        siblings[:] = [n for n in siblings if n.id != tag_id]
        destination.append(node)
        node.parent = new_parent_id
        self._parent_of[node.id] = new_parent_id
        _relevel(node, level)
        return node

    def merge(self, source: list[TagHierarchyNode]) -> TagMergeOutcome:
        """Merge another tree into this one by name."""
        outcome = merge_tag_hierarchy(self._roots, source)
        self._roots = outcome.nodes
        self._rebuild_index()
        return outcome

    # --- Validation ---

    @staticmethod
    def validate_tag_name(name: Any) -> str | None:
        """Return an error message for an invalid name, else None."""
        if not name or not isinstance(name, str):
            return "Tag name is required"
        trimmed = name.strip()
        if not trimmed:
            return "Tag name cannot be empty"
        if len(trimmed) > MAX_TAG_NAME_LENGTH:
            return f"Tag name cannot exceed {MAX_TAG_NAME_LENGTH} characters"
        if _INVALID_NAME_CHARS.search(trimmed):
            return 'Tag name contains invalid characters: / \\ | < > : " * ?'
        return None

    def validate(self) -> list[str]:
        """Check ids, names, levels and sibling uniqueness across the tree."""
        errors: list[str] = []
        seen_ids: set[str] = set()

        def check(nodes: list[TagHierarchyNode], expected_level: int, parent_path: str) -> None:
            seen_names: set[str] = set()
            for node in nodes:
                path = f"{parent_path}{SEPARATOR}{node.name}" if parent_path else node.name
                if node.id in seen_ids:
                    errors.append(f"Duplicate tag ID: {node.id}")
                seen_ids.add(node.id)

                name_error = self.validate_tag_name(node.name)
                if name_error:
                    errors.append(f"Invalid tag name \"{node.name}\": {name_error}")

                if node.level != expected_level:
                    errors.append(
                        f"Tag \"{node.name}\" has incorrect level {node.level}, "
                        f"expected {expected_level}"
                    )

                key = str(node.name).lower()
                if key in seen_names:
                    errors.append(f"Duplicate tag name \"{node.name}\" at path \"{path}\"")
                seen_names.add(key)

                check(node.children, expected_level + 1, path)

        check(self._roots, 0, "")
        return errors

    # --- Internals ---

    def _rebuild_index(self) -> None:
        self._index = {}
        self._parent_of = {}
        for root in self._roots:
            self._index[root.id] = root
            self._parent_of[root.id] = None
        for node in _walk_all(self._roots):
            for child in node.children:
                self._index[child.id] = child
                self._parent_of[child.id] = node.id

    def _require(self, tag_id: str) -> TagHierarchyNode:
        node = self._index.get(tag_id)
        if node is None:
            raise TagHierarchyError(f"Tag with ID \"{tag_id}\" not found")
        return node

    def _siblings_of(self, node: TagHierarchyNode) -> list[TagHierarchyNode]:
        parent_id = self._parent_of.get(node.id)
        if parent_id is None:
            return self._roots
        return self._require(parent_id).children

    def _check_name(self, name: Any) -> str:
        error = self.validate_tag_name(name)
        if error:
            raise TagHierarchyError(error)
        return name.strip()

    @staticmethod
    def _check_unique(
        siblings: list[TagHierarchyNode], name: str, exclude_id: str | None = None
    ) -> None:
        lowered = name.lower()
        if any(n.id != exclude_id and n.name.lower() == lowered for n in siblings):
            raise TagHierarchyError(f"Tag \"{name}\" already exists at this level")


def _relevel(node: TagHierarchyNode, level: int) -> None:
    node.level = level
    for child in node.children:
        _relevel(child, level + 1)
