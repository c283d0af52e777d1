from __future__ import annotations

from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Callable, Protocol

from .console import print_line
from .fetch import FetchError
from .models import Comic
from .store import ComicStore


WINDOW_ALL = "all"


class Fetcher(Protocol):
    def fetch(self, ordinal: int) -> Comic: ...


class Submitter(Protocol):
    def submit(self, ordinal: int) -> Future[Comic]: ...


class LatestComicError(RuntimeError):
    """The latest comic could not be fetched, so no window can be resolved."""


@dataclass(frozen=True)
class Window:
    count: int | None = 1

    @property
    def is_all(self) -> bool:
        return self.count is None


@dataclass
class IndexStats:
    latest: int = 0
    requested: int = 0
    fetched: int = 0
    skipped: int = 0
    failed: list[int] = field(default_factory=list)


def parse_window(value: str | None) -> Window:
    """Turn the `index` argument into a window; anything odd means "latest only"."""
    if value is None:
        return Window(count=1)
    value = value.strip()
    if value == WINDOW_ALL:
        return Window(count=None)
    try:
        count = int(value)
    except ValueError:
        return Window(count=1)
    if count < 1:
        return Window(count=1)
    return Window(count=count)


def resolve_range(window: Window, latest: int) -> range:
    if latest < 1:
        return range(0)
    if window.is_all:
        lower = 1
    else:
        assert window.count is not None
        lower = max(1, latest - window.count + 1)
    return range(latest, lower - 1, -1)


class ComicIndexer:
    def __init__(
        self,
        store: ComicStore,
        fetcher: Fetcher,
        *,
        pool: Submitter | None = None,
        prefetch: int = 2,
        log: Callable[[str], None] = print_line,
    ) -> None:
        self._store = store
        self._fetcher = fetcher
        self._pool = pool
        self._prefetch = max(1, prefetch)
        self._log = log

    def index(self, window: Window) -> IndexStats:
        try:
            latest_comic = self._fetcher.fetch(0)
        except FetchError as exc:
            raise LatestComicError(f"unable to get the latest comic number: {exc}") from exc

        latest = latest_comic.num
        targets = resolve_range(window, latest)
        stats = IndexStats(latest=latest, requested=len(targets))
        window_hint = WINDOW_ALL if window.is_all else str(window.count)
        self._log(f"[INDEX] latest={latest} window={window_hint} ids={len(targets)}")

        pending: list[int] = []
        for comic_id in targets:
            if self._store.contains(comic_id):
                stats.skipped += 1
                self._log(f"[SKIP] id={comic_id} already indexed")
            elif comic_id == latest:
                # already fetched while resolving the window
                self._record(latest_comic, stats)
            else:
                pending.append(comic_id)

        if self._pool is None:
            self._walk_sequential(pending, stats)
        else:
            self._walk_pooled(pending, stats)

        self._log(
            f"[DONE] fetched={stats.fetched} skipped={stats.skipped} failed={len(stats.failed)}"
        )
        return stats

    def _walk_sequential(self, pending: list[int], stats: IndexStats) -> None:
        for comic_id in pending:
            try:
                comic = self._fetcher.fetch(comic_id)
            except FetchError as exc:
                self._record_failure(comic_id, exc, stats)
                continue
            self._record(comic, stats)

    def _walk_pooled(self, pending: list[int], stats: IndexStats) -> None:
        assert self._pool is not None
        futures: dict[int, Future[Comic]] = {}
        next_prefetch_index = 0

        def prefetch() -> None:
            nonlocal next_prefetch_index
            while len(futures) < self._prefetch and next_prefetch_index < len(pending):
                cid = pending[next_prefetch_index]
                futures[cid] = self._pool.submit(cid)
                next_prefetch_index += 1

        for comic_id in pending:
            prefetch()
            future = futures.pop(comic_id)
            try:
                comic = future.result()
            except FetchError as exc:
                self._record_failure(comic_id, exc, stats)
                continue
            self._record(comic, stats)

    def _record(self, comic: Comic, stats: IndexStats) -> None:
        if self._store.insert(comic):
            stats.fetched += 1
            self._log(f"[OK] id={comic.num} {comic.safe_title or comic.title}")
        else:
            stats.skipped += 1
            self._log(f"[SKIP] id={comic.num} already indexed")

    def _record_failure(self, comic_id: int, exc: FetchError, stats: IndexStats) -> None:
        stats.failed.append(comic_id)
        self._log(f"[ERROR] id={comic_id} {exc}")
