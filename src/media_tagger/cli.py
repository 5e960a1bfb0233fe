"""Command line entry point for Media Tagger."""

from __future__ import annotations

import argparse
import logging
from datetime import datetime
from pathlib import Path

from media_tagger.config.config import ConfigManager, get_data_config_path
from media_tagger.config.models import ImportOptions, ImportResult
from media_tagger.config.repository import ConfigurationError, ConfigurationRepository
from media_tagger.config.storage import JsonFileStore
from media_tagger.search.engine import SearchFilterEngine
from media_tagger.search.models import FilterCriteria, FolderItem, MediaFile, SizeRange
from media_tagger.tags.hierarchy import TagHierarchyNode

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {
    "jpg", "jpeg", "png", "gif", "bmp", "tiff", "tif", "webp", "heic",
}
VIDEO_EXTENSIONS = {"mp4", "mov", "avi", "mkv", "webm", "m4v"}


def setup_logging(level: str = "INFO", log_file: str | Path | None = None) -> None:
    """Setup logging configuration."""
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        handlers=handlers,
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="media-tagger",
        description="Media Tagger - tag hierarchy, search and configuration tools",
    )
    parser.add_argument(
        "--data-dir", type=str, default=None,
        help="Directory holding the live configuration (default from config)",
    )
    parser.add_argument(
        "--config", type=str, default=None,
        help="Path to config YAML file",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    export_p = sub.add_parser("export", help="Export configuration to a JSON file")
    export_p.add_argument("path", help="Destination file")

    validate_p = sub.add_parser("validate", help="Check an import file")
    validate_p.add_argument("path", help="File to check")

    import_p = sub.add_parser("import", help="Import configuration from a JSON file")
    import_p.add_argument("path", help="File to import")
    import_p.add_argument(
        "--mode", choices=["merge", "replace"], default="merge",
        help="Merge with or replace the current configuration",
    )
    import_p.add_argument("--no-favorites", action="store_true", help="Skip favorites")
    import_p.add_argument("--no-tags", action="store_true", help="Skip tag hierarchy")
    import_p.add_argument("--no-settings", action="store_true", help="Skip settings")

    sub.add_parser("tags", help="Print the tag hierarchy")

    search_p = sub.add_parser("search", help="Search media in a directory")
    search_p.add_argument("directory", help="Directory to list")
    search_p.add_argument("query", nargs="?", default="", help="Fuzzy name query")
    search_p.add_argument(
        "--type", dest="types", action="append",
        choices=["image", "video", "folder"], default=None,
        help="Restrict to file type (repeatable)",
    )
    search_p.add_argument("--min-size", type=int, default=None, help="Minimum size in bytes")
    search_p.add_argument("--max-size", type=int, default=None, help="Maximum size in bytes")

    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Run the command line tool. Returns exit code."""
    args = parse_args(argv)

    config = ConfigManager()
    if args.data_dir:
        config.set("storage.data_dir", args.data_dir)
    config.load_layered(
        data_config_path=get_data_config_path(config.data_dir),
        cli_config_path=args.config,
    )
    if args.data_dir:
        config.set("storage.data_dir", args.data_dir)

    log_file = None
    if config.get("logging.log_to_file"):
        log_file = config.data_dir / config.get("logging.log_file")
    setup_logging("DEBUG" if args.verbose else config.get("logging.level"), log_file)

    repository = ConfigurationRepository(
        JsonFileStore(config.data_dir),
        config_key=config.get("storage.config_file"),
        export_version=config.get("export.version"),
        export_indent=config.get("export.indent"),
    )

    try:
        if args.command == "export":
            repository.export_to_file(args.path)
            print(f"Exported configuration to {args.path}")
            return 0

        if args.command == "validate":
            validation = repository.validate_import_file(args.path)
            if validation.valid:
                print(f"Valid configuration file (version {validation.version})")
                return 0
            print(f"Invalid configuration file: {validation.error}")
            return 1

        if args.command == "import":
            return _run_import(repository, args)

        if args.command == "tags":
            for root in repository.get_tag_hierarchy().roots:
                _print_node(root)
            return 0

        if args.command == "search":
            return _run_search(config, args)
    except ConfigurationError as e:
        print(f"Error: {e}")
        return 1

    return 2


def _run_import(repository: ConfigurationRepository, args: argparse.Namespace) -> int:
    validation = repository.validate_import_file(args.path)
    if not validation.valid:
        print(f"Invalid configuration file: {validation.error}")
        return 1

    options = ImportOptions(
        merge_mode=args.mode,
        import_favorites=not args.no_favorites,
        import_tag_hierarchy=not args.no_tags,
        import_settings=not args.no_settings,
    )
    result = repository.import_from_file(args.path, options)
    _print_import_result(result)
    return 0 if result.success else 1


def _print_import_result(result: ImportResult) -> None:
    status = "completed" if result.success else "failed"
    print(f"Import {status}")
    print(f"  favorites imported: {result.imported.favorites}")
    print(f"  tag nodes imported: {result.imported.tag_nodes}")
    print(f"  settings updated:   {result.imported.settings_updated}")
    for conflict in result.conflicts:
        print(f"  conflict: {conflict.type} '{conflict.item}' -> {conflict.resolution}")


def _print_node(node: TagHierarchyNode, depth: int = 0) -> None:
    print(f"{'  ' * depth}{node.name}")
    for child in node.children:
        _print_node(child, depth + 1)


def _run_search(config: ConfigManager, args: argparse.Namespace) -> int:
    directory = Path(args.directory)
    if not directory.is_dir():
        print(f"Error: not a directory: {directory}")
        return 1

    files, folders = list_directory(directory)
    size_range = None
    if args.min_size is not None or args.max_size is not None:
        size_range = SizeRange(min=args.min_size, max=args.max_size)
    criteria = FilterCriteria(
        file_types=set(args.types or []),
        size_range=size_range,
        tag_match_mode=config.get("search.tag_match_mode", "any"),
    )
    engine = SearchFilterEngine(
        file_threshold=config.get("search.file_threshold"),
        folder_threshold=config.get("search.folder_threshold"),
    )
    result = engine.search(files, folders, args.query, criteria)

    for folder in result.folders:
        print(f"[dir]  {folder.name}")
    for media in result.files:
        print(f"[{media.type}] {media.name}")
    print(f"{result.total_count} results in {result.search_time:.1f} ms")
    return 0


def list_directory(directory: Path) -> tuple[list[MediaFile], list[FolderItem]]:
    """List media files and subfolders one level deep."""
    files: list[MediaFile] = []
    folders: list[FolderItem] = []
    for entry in sorted(directory.iterdir(), key=lambda p: p.name.lower()):
        if entry.name.startswith("."):
            continue
        if entry.is_dir():
            try:
                has_subfolders = any(p.is_dir() for p in entry.iterdir())
            except OSError as e:
                logger.warning(f"Could not list {entry}: {e}")
                has_subfolders = False
            folders.append(FolderItem(
                name=entry.name, path=str(entry), has_subfolders=has_subfolders,
            ))
            continue
        ext = entry.suffix.lower().lstrip(".")
        if ext in IMAGE_EXTENSIONS:
            media_type = "image"
        elif ext in VIDEO_EXTENSIONS:
            media_type = "video"
        else:
            continue
        stat = entry.stat()
        files.append(MediaFile(
            path=str(entry),
            name=entry.name,
            extension=ext,
            size=stat.st_size,
            date_modified=datetime.fromtimestamp(stat.st_mtime),
            type=media_type,
        ))
    return files, folders
