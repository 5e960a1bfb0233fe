"""Configuration repository: live settings, favorites, import and export.

One repository instance owns the live configuration. Every mutation
builds a new settings object, persists it as a whole-file overwrite, and
only then replaces the live copy, so a failed save leaves memory and disk
in agreement. Mutations are serialized by an in-process lock.
"""

from __future__ import annotations

import copy
import json
import logging
import threading
from pathlib import Path
from typing import Any, Protocol

from media_tagger.config.merger import ConfigurationMerger, generate_favorite_id
from media_tagger.config.models import (
    EXPORT_VERSION,
    AppSettings,
    ConfigurationExport,
    FavoriteFolder,
    ImportOptions,
    ImportResult,
    ValidationResult,
    utc_now,
)
from media_tagger.tags.hierarchy import TagHierarchyTree

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_KEY = "config.json"

INVALID_JSON_ERROR = "Invalid JSON format or file not readable"
MISSING_VERSION_ERROR = "Missing version information"
MISSING_EXPORT_DATE_ERROR = "Missing export date"
NO_DATA_ERROR = "No importable data found"


class ConfigurationError(Exception):
    """Raised when configuration cannot be read, written or imported."""
    pass


class PersistenceBackend(Protocol):
    def read_json(self, key: str) -> Any | None: ...

    def write_json(self, key: str, data: Any) -> bool: ...

    def exists(self, key: str) -> bool: ...


class ConfigurationRepository:
    """Load, mutate, persist, export and import the live configuration."""

    def __init__(
        self,
        store: PersistenceBackend,
        config_key: str = DEFAULT_CONFIG_KEY,
        export_version: str = EXPORT_VERSION,
        export_indent: int = 2,
        merger: ConfigurationMerger | None = None,
    ):
        self._store = store
        self._config_key = config_key
        self._export_version = export_version
        self._export_indent = export_indent
        self._merger = merger or ConfigurationMerger()
        self._settings: AppSettings | None = None
        self._lock = threading.RLock()

    # --- Load / save ---

    def load_settings(self) -> AppSettings:
        """Return the live settings, loading them on first use.

        A missing settings file is created with defaults.
        """
        with self._lock:
            if self._settings is not None:
                return self._settings

            if not self._store.exists(self._config_key):
                logger.info(f"No settings found at '{self._config_key}', writing defaults")
                self.save_settings(AppSettings())
                return self._settings

            try:
                data = self._store.read_json(self._config_key)
                if not isinstance(data, dict):
                    raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
                self._settings = AppSettings.from_dict(data)
            except (OSError, KeyError, TypeError, ValueError) as e:
                logger.error(f"Failed to load settings: {e}")
                raise ConfigurationError("Failed to load application settings") from e
            return self._settings

    def save_settings(self, settings: AppSettings) -> None:
        """Persist ``settings`` and make them the live copy."""
        with self._lock:
            try:
                written = self._store.write_json(self._config_key, settings.to_dict())
            except (OSError, TypeError, ValueError) as e:
                logger.error(f"Failed to save settings: {e}")
                raise ConfigurationError("Failed to save application settings") from e
            if not written:
                raise ConfigurationError("Failed to save application settings")
            self._settings = settings

    def _working_copy(self) -> AppSettings:
        return copy.deepcopy(self.load_settings())

    # --- Favorites ---

    def get_favorites(self) -> list[FavoriteFolder]:
        return sorted(
            copy.deepcopy(self.load_settings().favorites), key=lambda f: f.order
        )

    def add_favorite(self, name: str, path: str) -> FavoriteFolder:
        with self._lock:
            settings = self._working_copy()
            if any(f.path == path for f in settings.favorites):
                raise ConfigurationError("Folder is already in favorites")
            favorite = FavoriteFolder(
                id=generate_favorite_id(),
                name=name,
                path=path,
                date_added=utc_now(),
                order=len(settings.favorites),
            )
            settings.favorites.append(favorite)
            self.save_settings(settings)
            return copy.deepcopy(favorite)

    def remove_favorite(self, favorite_id: str) -> None:
        with self._lock:
            settings = self._working_copy()
            remaining = [f for f in settings.favorites if f.id != favorite_id]
            if len(remaining) == len(settings.favorites):
                raise ConfigurationError("Favorite not found")
            for index, favorite in enumerate(remaining):
                favorite.order = index
            settings.favorites = remaining
            self.save_settings(settings)

    def update_favorite(
        self, favorite_id: str, name: str | None = None, path: str | None = None
    ) -> FavoriteFolder:
        with self._lock:
            settings = self._working_copy()
            favorite = next(
                (f for f in settings.favorites if f.id == favorite_id), None
            )
            if favorite is None:
                raise ConfigurationError("Favorite not found")
            if path is not None and path != favorite.path:
                if any(f.path == path for f in settings.favorites):
                    raise ConfigurationError("Folder is already in favorites")
                favorite.path = path
            if name is not None:
                favorite.name = name
            self.save_settings(settings)
            return copy.deepcopy(favorite)

    def reorder_favorites(self, favorite_ids: list[str]) -> None:
        """Order favorites as listed. Ids not listed are dropped."""
        with self._lock:
            settings = self._working_copy()
            by_id = {f.id: f for f in settings.favorites}
            reordered: list[FavoriteFolder] = []
            for favorite_id in favorite_ids:
                favorite = by_id.pop(favorite_id, None)
                if favorite is not None:
                    favorite.order = len(reordered)
                    reordered.append(favorite)
            settings.favorites = reordered
            self.save_settings(settings)

    # --- Tag hierarchy ---

    def get_tag_hierarchy(self) -> TagHierarchyTree:
        """An editable copy of the live tag tree."""
        return TagHierarchyTree(copy.deepcopy(self.load_settings().tag_hierarchy))

    def save_tag_hierarchy(self, tree: TagHierarchyTree) -> None:
        with self._lock:
            settings = self._working_copy()
            settings.tag_hierarchy = copy.deepcopy(tree.roots)
            self.save_settings(settings)

    # --- Export ---

    def export_configuration(self) -> ConfigurationExport:
        """Snapshot the live state as a flat, versioned bundle."""
        settings = self.load_settings()
        return ConfigurationExport(
            version=self._export_version,
            export_date=utc_now(),
            settings=settings.scalar_dict(),
            tag_definitions=copy.deepcopy(settings.tag_hierarchy),
            favorites=copy.deepcopy(settings.favorites),
        )

    def export_to_file(self, file_path: str | Path) -> None:
        file_path = Path(file_path)
        try:
            bundle = self.export_configuration()
            text = json.dumps(bundle.to_dict(), indent=self._export_indent, ensure_ascii=False)
            file_path.write_text(text, encoding="utf-8")
        except (ConfigurationError, OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to export configuration to {file_path}: {e}")
            raise ConfigurationError(
                f"Failed to export configuration to file: {file_path}"
            ) from e
        logger.info(f"Exported configuration to {file_path}")

    # --- Import ---

    def validate_import_file(self, file_path: str | Path) -> ValidationResult:
        """Check an import file without raising."""
        try:
            data = json.loads(Path(file_path).read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return ValidationResult(valid=False, error=INVALID_JSON_ERROR)

        if not isinstance(data, dict) or not data.get("version"):
            return ValidationResult(valid=False, error=MISSING_VERSION_ERROR)
        if not data.get("exportDate"):
            return ValidationResult(valid=False, error=MISSING_EXPORT_DATE_ERROR)
        if not any(data.get(key) for key in ("settings", "tagDefinitions", "favorites")):
            return ValidationResult(valid=False, error=NO_DATA_ERROR)
        return ValidationResult(valid=True, version=str(data["version"]))

    def import_configuration(
        self,
        bundle: ConfigurationExport,
        options: ImportOptions | None = None,
    ) -> ImportResult:
        """Reconcile ``bundle`` into the live state and persist it once.

        On failure the live state is unchanged and ``success`` is False.
        """
        options = options or ImportOptions()
        with self._lock:
            try:
                current = self.load_settings()
                settings, result = self._merger.reconcile(current, bundle, options)
            except (ConfigurationError, KeyError, TypeError, ValueError):
                logger.exception("Failed to reconcile imported configuration")
                return ImportResult(success=False)

            try:
                self.save_settings(settings)
            except ConfigurationError:
                logger.exception("Failed to persist imported configuration")
                result.success = False
            return result

    def import_from_file(
        self,
        file_path: str | Path,
        options: ImportOptions | None = None,
    ) -> ImportResult:
        file_path = Path(file_path)
        try:
            data = json.loads(file_path.read_text(encoding="utf-8"))
            bundle = ConfigurationExport.from_dict(data)
        except (OSError, KeyError, TypeError, ValueError, AttributeError) as e:
            logger.error(f"Failed to import configuration from {file_path}: {e}")
            raise ConfigurationError("Failed to import configuration from file") from e
        return self.import_configuration(bundle, options)
