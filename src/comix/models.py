from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any


STRING_FIELDS: tuple[str, ...] = (
    "title",
    "safe_title",
    "transcript",
    "alt",
    "img",
    "day",
    "month",
    "year",
    "news",
    "link",
)


class RecordError(ValueError):
    """A JSON object could not be turned into a comic record."""


@dataclass(frozen=True)
class Comic:
    num: int
    title: str = ""
    safe_title: str = ""
    transcript: str = ""
    alt: str = ""
    img: str = ""
    day: str = ""
    month: str = ""
    year: str = ""
    news: str = ""
    link: str = ""

    @property
    def key(self) -> str:
        return str(self.num)

    @classmethod
    def from_payload(cls, payload: Any) -> "Comic":
        if not isinstance(payload, dict):
            raise RecordError("comic JSON is not an object")
        # older index files use capitalised keys (Num, Transcript, ...)
        fields = {str(key).lower(): value for key, value in payload.items()}

        num = _as_int(fields.get("num"))
        if num is None or num < 1:
            raise RecordError(f"comic JSON has an invalid num: {fields.get('num')!r}")

        values: dict[str, str] = {}
        for name in STRING_FIELDS:
            value = fields.get(name)
            if value is None:
                values[name] = ""
            elif isinstance(value, str):
                values[name] = value
            else:
                raise RecordError(f"comic {num} field {name!r} is not a string")
        return cls(num=num, **values)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _as_int(value: object) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if value.is_integer():
            return int(value)
        return None
    if isinstance(value, str):
        value = value.strip()
        if value.isdecimal():
            return int(value)
        return None
    return None
