from __future__ import annotations

import json
import threading
from concurrent.futures import Future, ThreadPoolExecutor

import requests

from .models import Comic, RecordError


DEFAULT_BASE_URL = "https://xkcd.com"
INFO_SUFFIX = "info.0.json"

DEFAULT_HEADERS: dict[str, str] = {
    "Accept": "application/json",
    "User-Agent": "comix/0.1 (+https://xkcd.com/json.html)",
}


class FetchError(RuntimeError):
    def __init__(
        self,
        message: str,
        *,
        ordinal: int | None = None,
        status_code: int | None = None,
        response_text: str | None = None,
    ) -> None:
        super().__init__(message)
        self.ordinal = ordinal
        self.status_code = status_code
        self.response_text = response_text


class DecodeError(FetchError):
    """The response arrived but its body is not a usable comic document."""


def comic_url(base_url: str, ordinal: int) -> str:
    if ordinal < 0:
        raise ValueError(f"comic ordinal must be >= 0, got {ordinal}")
    base_url = base_url.rstrip("/")
    if ordinal == 0:
        return f"{base_url}/{INFO_SUFFIX}"
    return f"{base_url}/{ordinal}/{INFO_SUFFIX}"


def fetch_comic(
    *,
    session: requests.Session,
    base_url: str,
    ordinal: int,
    timeout_seconds: float,
) -> Comic:
    """Fetch one comic; ordinal 0 asks for the latest one."""
    url = comic_url(base_url, ordinal)

    try:
        resp = session.get(url, headers=DEFAULT_HEADERS, timeout=timeout_seconds)
    except requests.RequestException as exc:
        raise FetchError(f"request for comic {ordinal} failed: {exc!r}", ordinal=ordinal) from exc

    if resp.status_code != 200:
        raise FetchError(
            f"unexpected HTTP status for comic {ordinal}: {resp.status_code}",
            ordinal=ordinal,
            status_code=resp.status_code,
            response_text=_safe_text(resp),
        )

    try:
        payload = resp.json()
    except (ValueError, json.JSONDecodeError) as exc:
        raise DecodeError(
            f"response for comic {ordinal} is not valid JSON: {exc}",
            ordinal=ordinal,
            status_code=resp.status_code,
            response_text=_safe_text(resp),
        ) from exc

    try:
        return Comic.from_payload(payload)
    except RecordError as exc:
        raise DecodeError(
            f"response for comic {ordinal} is not a comic: {exc}",
            ordinal=ordinal,
            status_code=resp.status_code,
            response_text=_safe_text(resp),
        ) from exc


class ComicFetcher:
    """Fetches comics over one shared session."""

    def __init__(self, session: requests.Session, *, base_url: str, timeout_seconds: float) -> None:
        self._session = session
        self.base_url = base_url
        self.timeout_seconds = timeout_seconds

    def fetch(self, ordinal: int) -> Comic:
        return fetch_comic(
            session=self._session,
            base_url=self.base_url,
            ordinal=ordinal,
            timeout_seconds=self.timeout_seconds,
        )


class FetchPool:
    def __init__(self, workers: int, *, base_url: str, timeout_seconds: float) -> None:
        self._base_url = base_url
        self._timeout_seconds = timeout_seconds
        self._executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="comics")
        self._local = threading.local()
        self._sessions: list[requests.Session] = []
        self._sessions_lock = threading.Lock()

    def __enter__(self) -> "FetchPool":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def submit(self, ordinal: int) -> Future[Comic]:
        return self._executor.submit(self._task, ordinal)

    def close(self) -> None:
        self._executor.shutdown(wait=True, cancel_futures=True)
        with self._sessions_lock:
            sessions = list(self._sessions)
            self._sessions.clear()
        for session in sessions:
            try:
                session.close()
            except Exception:
                pass

    def _get_session(self) -> requests.Session:
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            with self._sessions_lock:
                self._sessions.append(session)
            self._local.session = session
        return session

    def _task(self, ordinal: int) -> Comic:
        return fetch_comic(
            session=self._get_session(),
            base_url=self._base_url,
            ordinal=ordinal,
            timeout_seconds=self._timeout_seconds,
        )


def _safe_text(resp: requests.Response, limit: int = 2_000) -> str:
    try:
        text = resp.text
    except Exception:
        return "<failed to decode response text>"
    if len(text) > limit:
        return text[:limit] + f"... <truncated {len(text) - limit} chars>"
    return text
