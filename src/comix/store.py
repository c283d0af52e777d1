from __future__ import annotations

import json
import os
import threading
from pathlib import Path
from typing import Any

from .models import Comic, RecordError


DEFAULT_INDEX_PATH = Path("comix.dat")


class StoreError(RuntimeError):
    def __init__(self, message: str, *, path: Path) -> None:
        super().__init__(message)
        self.path = path


class StoreReadError(StoreError):
    pass


class StoreDecodeError(StoreError):
    pass


class StoreWriteError(StoreError):
    pass


class ComicStore:
    """Comic index kept in memory and persisted as a single JSON object."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._comics: dict[str, Comic] = {}
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def __len__(self) -> int:
        return len(self._comics)

    def __contains__(self, comic_id: object) -> bool:
        if isinstance(comic_id, (int, str)):
            return self.contains(comic_id)
        return False

    def load(self, *, missing_ok: bool = False) -> None:
        try:
            raw = self._path.read_bytes()
        except FileNotFoundError as exc:
            if missing_ok:
                self._comics = {}
                return
            raise StoreReadError(f"index file does not exist: {self._path}", path=self._path) from exc
        except OSError as exc:
            raise StoreReadError(f"unable to read index file {self._path}: {exc}", path=self._path) from exc

        try:
            payload = json.loads(raw)
        except (ValueError, json.JSONDecodeError) as exc:
            raise StoreDecodeError(f"index file {self._path} is not valid JSON: {exc}", path=self._path) from exc
        self._comics = _decode_index(payload, path=self._path)

    def save(self) -> None:
        payload = {
            key: self._comics[key].to_dict()
            for key in sorted(self._comics, key=int)
        }
        text = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(text, encoding="utf-8")
            os.replace(tmp_path, self._path)
        except OSError as exc:
            try:
                tmp_path.unlink(missing_ok=True)
            except OSError:
                pass
            raise StoreWriteError(f"unable to write index file {self._path}: {exc}", path=self._path) from exc

    def contains(self, comic_id: int | str) -> bool:
        with self._lock:
            return str(comic_id) in self._comics

    def insert(self, comic: Comic) -> bool:
        with self._lock:
            if comic.key in self._comics:
                return False
            self._comics[comic.key] = comic
            return True

    def get(self, comic_id: int | str) -> Comic | None:
        with self._lock:
            return self._comics.get(str(comic_id))

    def ids(self) -> list[int]:
        with self._lock:
            keys = list(self._comics)
        return sorted(int(key) for key in keys)

    def comics(self) -> list[Comic]:
        with self._lock:
            return list(self._comics.values())


def _decode_index(payload: Any, *, path: Path) -> dict[str, Comic]:
    if not isinstance(payload, dict):
        raise StoreDecodeError(f"index file {path} top level is not an object", path=path)

    comics: dict[str, Comic] = {}
    for key, value in payload.items():
        try:
            comic = Comic.from_payload(value)
        except RecordError as exc:
            raise StoreDecodeError(f"index file {path} entry {key!r}: {exc}", path=path) from exc
        if comic.key != str(key).strip():
            raise StoreDecodeError(
                f"index file {path} entry {key!r} holds comic {comic.num}",
                path=path,
            )
        comics[comic.key] = comic
    return comics
