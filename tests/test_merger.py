"""Tests for reconciling export bundles with live settings."""

import copy
from datetime import datetime, timezone

import pytest

from media_tagger.config.merger import ConfigurationMerger
from media_tagger.config.models import (
    AppSettings,
    ConfigurationExport,
    FavoriteFolder,
    ImportConflict,
    ImportOptions,
    MergeMode,
)
from media_tagger.tags.hierarchy import TagHierarchyNode, count_nodes

EXPORT_DATE = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def node(node_id, name, *children, level=0):
    n = TagHierarchyNode(id=node_id, name=name, level=level)
    for child in children:
        child.parent = node_id
        n.children.append(child)
    return n


@pytest.fixture
def current():
    return AppSettings(
        theme="light",
        favorites=[
            FavoriteFolder(id="f1", name="Photos", path="/home/me/Photos", order=0),
            FavoriteFolder(id="f2", name="Videos", path="/home/me/Videos", order=1),
        ],
        tag_hierarchy=[
            node("n1", "Nature", node("n2", "Landscape", level=1)),
        ],
    )


@pytest.fixture
def bundle():
    return ConfigurationExport(
        version="1.0.0",
        export_date=EXPORT_DATE,
        settings={"theme": "dark", "thumbnailSize": 200, "slideshowDelay": 5},
        tag_definitions=[
            node("x1", "Nature", node("x2", "Wildlife", level=1)),
            node("x3", "Travel"),
        ],
        favorites=[
            FavoriteFolder(id="f9", name="My Photos", path="/home/me/Photos"),
            FavoriteFolder(id="f2", name="Downloads", path="/home/me/Downloads"),
        ],
    )


class TestMergeMode:
    def test_favorite_path_collision_kept(self, current, bundle):
        settings, result = ConfigurationMerger().reconcile(current, bundle, ImportOptions())
        assert ImportConflict("favorite", "My Photos", "keep") in result.conflicts
        photos = [f for f in settings.favorites if f.path == "/home/me/Photos"]
        assert len(photos) == 1
        assert photos[0].name == "Photos"

    def test_favorite_id_collision_gets_new_id(self, current, bundle):
        settings, result = ConfigurationMerger().reconcile(current, bundle, ImportOptions())
        assert result.imported.favorites == 1
        downloads = settings.favorites[-1]
        assert downloads.path == "/home/me/Downloads"
        assert downloads.id not in {"f1", "f2"}
        assert downloads.order == 2

    def test_tags_merged_with_conflict(self, current, bundle):
        settings, result = ConfigurationMerger().reconcile(current, bundle, ImportOptions())
        assert ImportConflict("tag", "Nature", "merge") in result.conflicts
        assert [n.name for n in settings.tag_hierarchy] == ["Nature", "Travel"]
        assert [c.name for c in settings.tag_hierarchy[0].children] == ["Landscape", "Wildlife"]
        assert result.imported.tag_nodes == 2

    def test_settings_overwritten_shallowly(self, current, bundle):
        settings, result = ConfigurationMerger().reconcile(current, bundle, ImportOptions())
        assert result.imported.settings_updated
        assert settings.theme == "dark"
        assert settings.thumbnail_size == 200
        assert settings.language == "en"
        assert settings.extra == {"slideshowDelay": 5}

    def test_inputs_untouched(self, current, bundle):
        current_before = copy.deepcopy(current)
        bundle_before = copy.deepcopy(bundle)
        ConfigurationMerger().reconcile(current, bundle, ImportOptions())
        assert current == current_before
        assert bundle == bundle_before


class TestReplaceMode:
    def test_replace_installs_bundle(self, current, bundle):
        options = ImportOptions(merge_mode=MergeMode.REPLACE)
        settings, result = ConfigurationMerger().reconcile(current, bundle, options)
        assert settings.favorites == bundle.favorites
        assert settings.tag_hierarchy == bundle.tag_definitions
        assert result.imported.favorites == 2
        assert result.imported.tag_nodes == count_nodes(bundle.tag_definitions) == 3
        assert result.conflicts == []

    def test_replace_copies_bundle_data(self, current, bundle):
        options = ImportOptions(merge_mode="replace")
        settings, _ = ConfigurationMerger().reconcile(current, bundle, options)
        settings.favorites[0].name = "changed"
        assert bundle.favorites[0].name == "My Photos"


class TestImportOptions:
    def test_skip_everything(self, current, bundle):
        options = ImportOptions(
            import_favorites=False, import_tag_hierarchy=False, import_settings=False,
        )
        settings, result = ConfigurationMerger().reconcile(current, bundle, options)
        assert settings == current
        assert result.success
        assert result.conflicts == []
        assert not result.imported.settings_updated

    def test_bundle_without_tag_definitions(self, current, bundle):
        bundle.tag_definitions = None
        options = ImportOptions(merge_mode=MergeMode.REPLACE)
        settings, result = ConfigurationMerger().reconcile(current, bundle, options)
        assert settings.tag_hierarchy == current.tag_hierarchy
        assert result.imported.tag_nodes == 0
        assert "tagDefinitions" not in bundle.to_dict()

    def test_absent_sections_stay_absent(self):
        bundle = ConfigurationExport.from_dict({
            "version": "1.0.0", "exportDate": "2024-05-01T12:00:00Z", "settings": {"theme": "dark"},
        })
        assert bundle.tag_definitions is None
        assert bundle.favorites is None
        assert ConfigurationExport.from_dict({
            "version": "1.0.0", "exportDate": "2024-05-01T12:00:00Z", "tagDefinitions": [],
        }).tag_definitions == []

    def test_bundle_without_favorites(self, current, bundle):
        bundle.favorites = None
        options = ImportOptions(merge_mode=MergeMode.REPLACE)
        settings, result = ConfigurationMerger().reconcile(current, bundle, options)
        assert settings.favorites == current.favorites
        assert result.imported.favorites == 0

    def test_settings_updated_even_when_unchanged(self, current):
        bundle = ConfigurationExport(
            version="1.0.0", export_date=EXPORT_DATE, settings={"theme": "light"},
        )
        options = ImportOptions(import_favorites=False, import_tag_hierarchy=False)
        settings, result = ConfigurationMerger().reconcile(current, bundle, options)
        assert settings == current
        assert result.imported.settings_updated

    def test_result_to_dict(self, current, bundle):
        _, result = ConfigurationMerger().reconcile(current, bundle, ImportOptions())
        data = result.to_dict()
        assert data["success"] is True
        assert data["imported"] == {"favorites": 1, "tagNodes": 2, "settingsUpdated": True}
        assert {"type": "tag", "item": "Nature", "resolution": "merge"} in data["conflicts"]

    def test_unknown_merge_mode(self):
        with pytest.raises(ValueError):
            ImportOptions(merge_mode="append")
