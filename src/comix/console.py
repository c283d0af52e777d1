from __future__ import annotations


def print_line(message: str) -> None:
    print(message, flush=True)
