from __future__ import annotations

import json
import threading
from pathlib import Path

import pytest

from comix.store import ComicStore, StoreDecodeError, StoreReadError, StoreWriteError

from conftest import make_comic


def test_save_then_load_round_trips(tmp_path: Path) -> None:
    path = tmp_path / "comix.dat"
    store = ComicStore(path)
    for num in (3, 1, 2):
        store.insert(make_comic(num, transcript=f"line {num}"))
    store.save()

    loaded = ComicStore(path)
    loaded.load()

    assert loaded.ids() == [1, 2, 3]
    assert loaded.get(2) == store.get(2)
    assert not path.with_name("comix.dat.tmp").exists()


def test_saved_file_maps_string_ids_to_comic_objects(tmp_path: Path) -> None:
    path = tmp_path / "comix.dat"
    store = ComicStore(path)
    store.insert(make_comic(10))
    store.save()

    payload = json.loads(path.read_text(encoding="utf-8"))

    assert list(payload) == ["10"]
    assert payload["10"]["num"] == 10
    assert payload["10"]["safe_title"] == "Comic 10"


def test_insert_never_overwrites(tmp_path: Path) -> None:
    store = ComicStore(tmp_path / "comix.dat")

    assert store.insert(make_comic(5, transcript="first")) is True
    assert store.insert(make_comic(5, transcript="second")) is False

    assert len(store) == 1
    assert store.get(5).transcript == "first"
    assert store.contains(5)
    assert store.contains("5")
    assert 5 in store
    assert 6 not in store


def test_missing_file_is_read_error_unless_allowed(tmp_path: Path) -> None:
    store = ComicStore(tmp_path / "absent.dat")

    with pytest.raises(StoreReadError):
        store.load()

    store.load(missing_ok=True)
    assert len(store) == 0


def test_unreadable_path_is_read_error_even_when_missing_allowed(tmp_path: Path) -> None:
    store = ComicStore(tmp_path)

    with pytest.raises(StoreReadError):
        store.load(missing_ok=True)


@pytest.mark.parametrize(
    "content",
    [
        "{broken",
        "[1, 2, 3]",
        '{"1": {"title": "no num"}}',
        '{"1": {"num": 2}}',
        '{"2": {"num": "\u00b2"}}',
    ],
)
def test_bad_content_is_decode_error(tmp_path: Path, content: str) -> None:
    path = tmp_path / "comix.dat"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(StoreDecodeError):
        ComicStore(path).load()


def test_loads_index_with_capitalised_keys(tmp_path: Path) -> None:
    path = tmp_path / "comix.dat"
    path.write_text(
        json.dumps({"1": {"Num": 1, "Title": "Barrel - Part 1", "Transcript": "[[A boy sits in a barrel]]"}}),
        encoding="utf-8",
    )
    store = ComicStore(path)

    store.load()

    assert store.get(1).title == "Barrel - Part 1"


def test_write_failure_is_write_error(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("file, not a directory", encoding="utf-8")
    store = ComicStore(blocker / "comix.dat")
    store.insert(make_comic(1))

    with pytest.raises(StoreWriteError):
        store.save()


def test_concurrent_inserts_and_reads_stay_consistent(tmp_path: Path) -> None:
    store = ComicStore(tmp_path / "comix.dat")
    seen: list[list[int]] = []
    missing: list[int] = []

    def _writer(start: int) -> None:
        for num in range(start, start + 200):
            store.insert(make_comic(num))

    def _reader() -> None:
        for _ in range(200):
            ids = store.ids()
            seen.append(ids)
            if ids and store.get(ids[-1]) is None:
                missing.append(ids[-1])

    threads = [threading.Thread(target=_writer, args=(start,)) for start in (1, 201, 401)]
    threads.append(threading.Thread(target=_reader))
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert store.ids() == list(range(1, 601))
    assert all(ids == sorted(set(ids)) for ids in seen)
    assert missing == []
