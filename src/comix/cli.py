from __future__ import annotations

import argparse
import sys
from contextlib import ExitStack
from dataclasses import dataclass
from pathlib import Path

import requests

from .console import print_line
from .fetch import DEFAULT_BASE_URL, ComicFetcher, FetchPool
from .indexer import ComicIndexer, LatestComicError, parse_window
from .search import SearchError, format_hit, search_transcripts
from .store import DEFAULT_INDEX_PATH, ComicStore, StoreError


COMMAND_INDEX = "index"
COMMAND_SEARCH = "search"

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


@dataclass(frozen=True)
class AppConfig:
    command: str
    argument: str | None
    index_path: Path
    base_url: str
    timeout_seconds: float
    workers: int
    require_index: bool


def main(argv: list[str] | None = None) -> int:
    cfg = _parse_args(argv)
    store = ComicStore(cfg.index_path)
    try:
        store.load(missing_ok=not cfg.require_index)
    except StoreError as exc:
        print_line(f"[FATAL] unable to load index: {exc}")
        return EXIT_FAILURE

    try:
        if cfg.command == COMMAND_INDEX:
            exit_code = _run_index(store, cfg=cfg)
        else:
            assert cfg.command == COMMAND_SEARCH
            exit_code = _run_search(store, cfg=cfg)
    except KeyboardInterrupt:
        print_line("\n[STOP] interrupted, saving index.")
        exit_code = EXIT_INTERRUPTED

    try:
        store.save()
    except StoreError as exc:
        print_line(f"[FATAL] error writing index to disk: {exc}")
        return EXIT_FAILURE
    return exit_code


def _run_index(store: ComicStore, *, cfg: AppConfig) -> int:
    window = parse_window(cfg.argument)
    print_line(f"[INDEX] command 'index' with window '{cfg.argument or 1}'")

    with ExitStack() as stack:
        session = stack.enter_context(requests.Session())
        fetcher = ComicFetcher(session, base_url=cfg.base_url, timeout_seconds=cfg.timeout_seconds)
        pool: FetchPool | None = None
        if cfg.workers > 1:
            pool = stack.enter_context(
                FetchPool(cfg.workers, base_url=cfg.base_url, timeout_seconds=cfg.timeout_seconds)
            )
        indexer = ComicIndexer(store, fetcher, pool=pool, prefetch=cfg.workers, log=print_line)
        try:
            stats = indexer.index(window)
        except LatestComicError as exc:
            print_line(f"[FATAL] {exc}")
            return EXIT_FAILURE

    if stats.failed:
        failed = ", ".join(str(comic_id) for comic_id in stats.failed)
        print_line(f"[INDEX] unable to index {len(stats.failed)} comic(s): {failed}")
    return EXIT_OK


def _run_search(store: ComicStore, *, cfg: AppConfig) -> int:
    phrase = cfg.argument if cfg.argument is not None else ""
    print_line(f"[SEARCH] command 'search' with phrase '{phrase}'")
    try:
        hits = search_transcripts(store, phrase)
    except SearchError as exc:
        print_line(f"[ERROR] error while searching for comic: {exc}")
        return EXIT_FAILURE

    if not hits:
        print_line(f"[SEARCH] no results for '{phrase}'")
        return EXIT_OK

    for comic in hits:
        print_line(format_hit(phrase, comic) + "\n")
    return EXIT_OK


def _parse_args(argv: list[str] | None) -> AppConfig:
    parser = argparse.ArgumentParser(
        prog="comix",
        description="Index xkcd comics locally and search their transcripts.",
    )
    parser.add_argument("--index-path", default=str(DEFAULT_INDEX_PATH), help="index file path")
    parser.add_argument("--base-url", default=DEFAULT_BASE_URL, help="comic site base URL")
    parser.add_argument("--timeout", type=float, default=20.0, help="request timeout (seconds)")
    parser.add_argument(
        "--workers",
        type=int,
        default=1,
        help="concurrent fetches while indexing (default 1, sequential)",
    )
    parser.add_argument(
        "--require-index",
        action="store_true",
        help="fail when the index file does not exist instead of starting empty",
    )

    commands = parser.add_subparsers(dest="command", metavar="{index,search}")
    commands.required = True
    index_parser = commands.add_parser(COMMAND_INDEX, help="index the latest N comics, or all of them")
    index_parser.add_argument(
        "window",
        nargs="?",
        default=None,
        help="number of most recent comics to index, or 'all' (default 1)",
    )
    search_parser = commands.add_parser(
        COMMAND_SEARCH, help="search indexed transcripts", allow_abbrev=False
    )
    search_parser.add_argument("phrase", nargs="?", default=None, help="case-sensitive text to look for")

    arg_strings = sys.argv[1:] if argv is None else list(argv)
    args, extras = parser.parse_known_args(arg_strings)
    # a phrase starting with "-" is left over as an unknown option
    if (
        args.command == COMMAND_SEARCH
        and args.phrase is None
        and len(extras) == 1
        and arg_strings[-2:] == [COMMAND_SEARCH, extras[0]]
    ):
        args.phrase = extras.pop()
    if extras:
        parser.error(f"unrecognized arguments: {' '.join(extras)}")
    if args.command == COMMAND_SEARCH and args.phrase is None:
        parser.error("the search command requires a phrase")

    if args.timeout <= 0:
        parser.error("--timeout must be > 0")
    if args.workers < 1:
        parser.error("--workers must be >= 1")

    argument = args.window if args.command == COMMAND_INDEX else args.phrase
    return AppConfig(
        command=args.command,
        argument=argument,
        index_path=Path(args.index_path),
        base_url=args.base_url,
        timeout_seconds=args.timeout,
        workers=args.workers,
        require_index=bool(args.require_index),
    )


if __name__ == "__main__":
    raise SystemExit(main())
