"""Library CLI commands."""

import argparse
from pathlib import Path

from src.library import config
from src.library.client import CatalogClient
from src.library.db import LibraryDB
from src.library.downloader import download_chapters
from src.library.errors import LibraryError, StoreError
from src.library.feed import sync_feed, sync_library
from src.library.models import Manga, Review
from src.library.ratelimit import IntervalGate
from src.library.registry import register_manga


def get_settings(args) -> config.Settings:
    return config.load_settings(Path(args.config))


def get_client(settings: config.Settings) -> CatalogClient:
    """Build a catalog client from settings."""
    return CatalogClient(api_base=settings.api_base, language=settings.language, timeout=settings.timeout)


def get_store(settings: config.Settings) -> LibraryDB:
    return LibraryDB(Path(settings.db_path))


def find_manga(store: LibraryDB, key: str) -> Manga:
    """Look a title up by short title, falling back to its catalog id."""
    try:
        return store.get_by_ser_title(key)
    except StoreError:
        return store.get_by_id(key)


def _flag(value: bool, mark: str) -> str:
    return mark if value else "-"


def cmd_titles(args):
    """List the title options for a series."""
    settings = get_settings(args)
    client = get_client(settings)

    try:
        meta = client.fetch_series_metadata(args.series_id)
    except LibraryError as e:
        print(f"Lookup failed: {e}")
        return 1
    finally:
        client.close()

    options = meta.title_options()
    if not options:
        print(f"No titles found for: {args.series_id}")
        return 1

    print(f"Title options for {args.series_id}:\n")
    for idx, title in enumerate(options, 1):
        print(f"{idx}. {title}")
    if meta.tags:
        print(f"\nTags: {', '.join(meta.tags)}")

    return 0


def cmd_add(args):
    """Register a new title in the library."""
    settings = get_settings(args)
    client = get_client(settings)

    with get_store(settings) as store:
        try:
            manga = register_manga(client, store, args.series_id, args.ser_title, full_title=args.title)
        except LibraryError as e:
            print(f"Add failed: {e}")
            return 1
        finally:
            client.close()

    print(f"Added {manga.full_title} ({manga.ser_title})")
    return 0


def cmd_list(args):
    """List all titles in the library."""
    settings = get_settings(args)

    with get_store(settings) as store:
        library = store.get_all()

    if not library:
        print("Library is empty")
        return 0

    print("Library:")
    for manga in library:
        downloaded = sum(1 for c in manga.chapters if c.downloaded)
        read = sum(1 for c in manga.chapters if c.is_read)
        print(
            f"  - {manga.ser_title}: {manga.full_title} "
            f"[{len(manga.chapters)} chapters, {downloaded} downloaded, {read} read]"
        )

    return 0


def cmd_show(args):
    """Show a title and its chapters."""
    settings = get_settings(args)

    with get_store(settings) as store:
        try:
            manga = find_manga(store, args.title)
        except StoreError as e:
            print(e)
            return 1

    print(f"{manga.full_title} ({manga.ser_title})")
    print(f"  ID: {manga.manga_id}")
    print(f"  {manga.demographic}, {manga.pub_status}")
    if manga.tags:
        print(f"  Tags: {', '.join(str(t) for t in manga.tags)}")
    print(f"  Last synced: {manga.time_modified.isoformat(sep=' ')}")
    if manga.review:
        print(f"  Review: {manga.review.rating}/100 {manga.review.text}")
    if manga.descr:
        print(f"\n{manga.descr}")

    print(f"\n{len(manga.chapters)} chapters:")
    for c in manga.chapters:
        volume = f"v{c.volume_num}" if c.volume_num else "v?"
        print(
            f"  {volume:>4} {c.chapter_num:>7.1f}  {_flag(c.downloaded, 'D')}{_flag(c.is_read, 'R')}  "
            f"{c.chapter_name}  ({c.chapter_hash})"
        )

    return 0


def cmd_sync(args):
    """Pull new chapters for some or all titles."""
    settings = get_settings(args)
    library_root = Path(settings.library_root)

    with get_store(settings) as store:
        try:
            selected = [find_manga(store, key) for key in args.titles]
        except StoreError as e:
            print(e)
            return 1

        client = get_client(settings)
        try:
            if selected:
                results = [sync_feed(client, store, manga, library_root, full=args.full) for manga in selected]
            else:
                results = sync_library(client, store, library_root, full=args.full)
        finally:
            client.close()

    if not results:
        print("Library is empty")

    for result in results:
        if result.success:
            print(f"  ✓ {result.manga.ser_title}: {len(result.new_chapters)} new chapters")
        else:
            print(f"  ✗ {result.manga.ser_title} failed")
            for error in result.errors:
                print(f"    - {error}")

    return 0 if all(result.success for result in results) else 1


def cmd_download(args):
    """Download chapters of a title."""
    settings = get_settings(args)

    if not args.all and not args.chapter:
        print("Error: pass --chapter HASH (repeatable) or --all")
        return 1

    with get_store(settings) as store:
        try:
            manga = find_manga(store, args.title)
        except StoreError as e:
            print(e)
            return 1

        if args.all:
            chapters = [c for c in manga.chapters if not c.downloaded]
        else:
            by_hash = {c.chapter_hash: c for c in manga.chapters}
            missing = [h for h in args.chapter if h not in by_hash]
            if missing:
                print(f"Unknown chapters for {manga.ser_title}: {', '.join(missing)}")
                return 1
            chapters = [by_hash[h] for h in args.chapter]

        if not chapters:
            print(f"Nothing to download for {manga.ser_title}")
            return 0

        client = get_client(settings)
        gate = IntervalGate(settings.page_interval)
        try:
            report = download_chapters(client, store, chapters, gate=gate, progress=not args.quiet)
        finally:
            client.close()

    print(f"Downloaded {len(report.succeeded)} of {len(chapters)} chapters")
    for chapter in report.failed:
        print(f"  ✗ {chapter.chapter_num:g} {chapter.chapter_name}: {report.errors[chapter.chapter_hash]}")

    return 0 if report.success else 1


def cmd_read(args):
    """Mark a chapter read."""
    settings = get_settings(args)

    with get_store(settings) as store:
        chapter = store.get_chapter(args.chapter_hash)
        if chapter is None:
            print(f"Chapter not found: {args.chapter_hash}")
            return 1
        try:
            store.update_chapter_read(chapter)
        except StoreError as e:
            print(e)
            return 1

    print(f"Marked read: {chapter.chapter_num:g} {chapter.chapter_name}")
    return 0


def cmd_review(args):
    """Store a review for a title."""
    settings = get_settings(args)

    if not 0 <= args.rating <= 100:
        print("Error: rating must be between 0 and 100")
        return 1

    with get_store(settings) as store:
        try:
            manga = find_manga(store, args.title)
            store.insert_review(Review(manga_id=manga.manga_id, rating=args.rating, text=args.text))
        except StoreError as e:
            print(e)
            return 1

    print(f"Saved review for {manga.ser_title}")
    return 0


def cmd_config(args):
    """Show or change settings."""
    path = Path(args.config)

    if args.changes:
        changes = {}
        for change in args.changes:
            name, sep, value = change.partition("=")
            if not sep:
                print(f"Error: expected key=value, got {change}")
                return 1
            changes[name.strip()] = value.strip()
        try:
            settings = config.update_settings(path, **changes)
        except KeyError as e:
            print(f"Unknown setting: {e.args[0]}")
            return 1
        except ValueError as e:
            print(f"Invalid value: {e}")
            return 1
    else:
        settings = config.load_settings(path)

    for name, value in vars(settings).items():
        print(f"{name} = {value}")
    return 0


def setup_library_commands(subparsers):
    """Setup library subcommands."""
    titles_parser = subparsers.add_parser("titles", help="List title options for a series")
    titles_parser.add_argument("series_id", help="Catalog series identifier")
    titles_parser.set_defaults(func=cmd_titles)

    add_parser = subparsers.add_parser("add", help="Add a series to the library")
    add_parser.add_argument("series_id", help="Catalog series identifier")
    add_parser.add_argument("ser_title", help="Short unique title, also used as the directory name")
    add_parser.add_argument("--title", help="Full title (default: the series' main title)")
    add_parser.set_defaults(func=cmd_add)

    list_parser = subparsers.add_parser("list", help="List the library")
    list_parser.set_defaults(func=cmd_list)

    show_parser = subparsers.add_parser("show", help="Show a title and its chapters")
    show_parser.add_argument("title", help="Short title or catalog id")
    show_parser.set_defaults(func=cmd_show)

    sync_parser = subparsers.add_parser("sync", help="Pull new chapters from the catalog")
    sync_parser.add_argument("titles", nargs="*", help="Short titles to sync (default: all)")
    sync_parser.add_argument("--full", action="store_true", help="Ignore the last sync time and fetch the whole feed")
    sync_parser.set_defaults(func=cmd_sync)

    download_parser = subparsers.add_parser("download", help="Download chapters of a title")
    download_parser.add_argument("title", help="Short title or catalog id")
    download_parser.add_argument("--chapter", action="append", default=[], help="Chapter hash (repeatable)")
    download_parser.add_argument("--all", action="store_true", help="Download every chapter not yet downloaded")
    download_parser.add_argument("--quiet", action="store_true", help="Hide page progress bars")
    download_parser.set_defaults(func=cmd_download)

    read_parser = subparsers.add_parser("read", help="Mark a chapter read")
    read_parser.add_argument("chapter_hash", help="Chapter hash")
    read_parser.set_defaults(func=cmd_read)

    review_parser = subparsers.add_parser("review", help="Review a title")
    review_parser.add_argument("title", help="Short title or catalog id")
    review_parser.add_argument("rating", type=int, help="Rating out of 100")
    review_parser.add_argument("text", help="Review text")
    review_parser.set_defaults(func=cmd_review)

    config_parser = subparsers.add_parser("config", help="Show or change settings")
    config_parser.add_argument("changes", nargs="*", metavar="key=value", help="Settings to change")
    config_parser.set_defaults(func=cmd_config)


def add_global_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", default=str(config.CONFIG_PATH), help="Settings file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
