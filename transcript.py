"""Append-only conversation transcript."""

from __future__ import annotations

import threading
from typing import Iterator, Tuple

from models import AssistantTurn, Turn, UserTurn


class Transcript:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._turns: list[Turn] = []

    def append(self, turn: Turn) -> None:
        if not isinstance(turn, (UserTurn, AssistantTurn)):
            raise TypeError(f"not a turn: {turn!r}")
        with self._lock:
            self._turns.append(turn)

    def turns(self) -> Tuple[Turn, ...]:
        with self._lock:
            return tuple(self._turns)

    def last(self) -> Turn | None:
        with self._lock:
            return self._turns[-1] if self._turns else None

    def __len__(self) -> int:
        with self._lock:
            return len(self._turns)

    def __iter__(self) -> Iterator[Turn]:
        return iter(self.turns())
