from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor

import pytest

from comix.fetch import FetchError
from comix.models import Comic


def make_comic(num: int, transcript: str = "") -> Comic:
    return Comic(
        num=num,
        title=f"Comic {num}",
        safe_title=f"Comic {num}",
        transcript=transcript or f"transcript {num}",
        alt=f"alt {num}",
        img=f"https://imgs.xkcd.com/comics/comic_{num}.png",
        day="1",
        month="4",
        year="2024",
    )


class FakeFetcher:
    def __init__(self, latest: int, *, failing: set[int] | None = None) -> None:
        self.latest = latest
        self.failing = set(failing or ())
        self.calls: list[int] = []
        self._lock = threading.Lock()

    def fetch(self, ordinal: int) -> Comic:
        with self._lock:
            self.calls.append(ordinal)
        num = self.latest if ordinal == 0 else ordinal
        if num in self.failing:
            raise FetchError(f"unexpected HTTP status for comic {num}: 404", ordinal=num, status_code=404)
        return make_comic(num)


class ExecutorPool:
    def __init__(self, fetcher: FakeFetcher, workers: int) -> None:
        self._fetcher = fetcher
        self._executor = ThreadPoolExecutor(max_workers=workers)

    def submit(self, ordinal: int) -> Future[Comic]:
        return self._executor.submit(self._fetcher.fetch, ordinal)

    def close(self) -> None:
        self._executor.shutdown(wait=True)


@pytest.fixture
def lines() -> list[str]:
    return []
