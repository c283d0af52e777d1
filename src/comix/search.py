from __future__ import annotations

from .models import Comic
from .store import ComicStore


class SearchError(RuntimeError):
    pass


def search_transcripts(store: ComicStore, phrase: str) -> list[Comic]:
    """Return every comic whose transcript contains `phrase`, newest first.

    Matching is a plain case-sensitive substring test, so an empty phrase
    matches every indexed comic.
    """
    if not isinstance(phrase, str):
        raise SearchError(f"search phrase must be text, got {type(phrase).__name__}")
    hits = [comic for comic in store.comics() if phrase in comic.transcript]
    hits.sort(key=lambda comic: comic.num, reverse=True)
    return hits


def format_hit(phrase: str, comic: Comic) -> str:
    return f"Found '{phrase}' in comic {comic.num}, with transcript:\n \"{comic.transcript}\""
