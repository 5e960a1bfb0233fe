"""Reconcile an imported configuration bundle with the live settings."""

from __future__ import annotations

import copy
import logging
import uuid

from media_tagger.config.models import (
    AppSettings,
    ConfigurationExport,
    FavoriteFolder,
    ImportConflict,
    ImportOptions,
    ImportResult,
    MergeMode,
)
from media_tagger.tags.hierarchy import count_nodes, merge_tag_hierarchy

logger = logging.getLogger(__name__)


def generate_favorite_id() -> str:
    return uuid.uuid4().hex


class ConfigurationMerger:
    """Apply an export bundle to a copy of the current settings.

    ``reconcile`` is pure: neither ``current`` nor ``bundle`` is modified,
    and the caller decides whether to persist the returned settings.
    """

    def reconcile(
        self,
        current: AppSettings,
        bundle: ConfigurationExport,
        options: ImportOptions,
    ) -> tuple[AppSettings, ImportResult]:
        settings = copy.deepcopy(current)
        result = ImportResult()

        if options.import_favorites and bundle.favorites is not None:
            self._import_favorites(settings, bundle, options.merge_mode, result)

        if options.import_tag_hierarchy and bundle.tag_definitions is not None:
            self._import_tag_hierarchy(settings, bundle, options.merge_mode, result)

        if options.import_settings:
            settings.apply_scalars(bundle.settings)
            result.imported.settings_updated = True

        logger.info(
            f"Reconciled import ({options.merge_mode.value}): "
            f"{result.imported.favorites} favorites, "
            f"{result.imported.tag_nodes} tag nodes, "
            f"{len(result.conflicts)} conflicts"
        )
        return settings, result

    def _import_favorites(
        self,
        settings: AppSettings,
        bundle: ConfigurationExport,
        mode: MergeMode,
        result: ImportResult,
    ) -> None:
        imported = copy.deepcopy(bundle.favorites or [])

        if mode is MergeMode.REPLACE:
            settings.favorites = imported
            result.imported.favorites = len(imported)
            return

        known_paths = {f.path for f in settings.favorites}
        known_ids = {f.id for f in settings.favorites}
        for favorite in imported:
            if favorite.path in known_paths:
                result.conflicts.append(ImportConflict(
                    type="favorite", item=favorite.name, resolution="keep",
                ))
                continue
            if favorite.id in known_ids:
                favorite = FavoriteFolder(
                    id=generate_favorite_id(),
                    name=favorite.name,
                    path=favorite.path,
                    date_added=favorite.date_added,
                )
            favorite.order = len(settings.favorites)
            settings.favorites.append(favorite)
            known_paths.add(favorite.path)
            known_ids.add(favorite.id)
            result.imported.favorites += 1

    def _import_tag_hierarchy(
        self,
        settings: AppSettings,
        bundle: ConfigurationExport,
        mode: MergeMode,
        result: ImportResult,
    ) -> None:
        if mode is MergeMode.REPLACE:
            settings.tag_hierarchy = copy.deepcopy(bundle.tag_definitions)
            result.imported.tag_nodes = count_nodes(settings.tag_hierarchy)
            return

        outcome = merge_tag_hierarchy(settings.tag_hierarchy, bundle.tag_definitions)
        settings.tag_hierarchy = outcome.nodes
        result.imported.tag_nodes = outcome.created
        result.conflicts.extend(
            ImportConflict(type="tag", item=name, resolution="merge")
            for name in outcome.merged_categories
        )
