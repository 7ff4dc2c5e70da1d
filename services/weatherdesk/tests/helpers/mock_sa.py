"""
MockSASession: an AsyncMock standing in for an AsyncSession, fed from two
FIFO queues (one for execute(), one for get()).

    session = MockSASession()
    session.returns_one(user)            # execute() -> scalars().first() is user
    session.returns_many([q1, q2])       # execute() -> scalars().all()
    session.returns_none()               # execute() -> empty result
    session.returns_scalar(5)            # execute() -> scalar() == 5
    session.returns_row(user, 3)         # execute() -> first() == (user, 3)
    session.returns_rows([(q, u)])       # execute() -> all()
    session.returns_get(user)            # get() -> user

Calls past the end of a queue get an empty result (or None from get()).
Builders chain: session.returns_scalar(10).returns_scalar(4).
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Any
from unittest.mock import AsyncMock, MagicMock


@dataclass
class _Scalars:
    objects: list[Any]

    def all(self) -> list[Any]:
        return list(self.objects)

    def first(self) -> Any | None:
        return self.objects[0] if self.objects else None


@dataclass
class _Result:
    objects: list[Any] = field(default_factory=list)
    rows: list[tuple] = field(default_factory=list)
    value: Any = None

    def scalars(self) -> _Scalars:
        return _Scalars(self.objects)

    def scalar(self) -> Any:
        return self.value

    def first(self) -> tuple | None:
        return self.rows[0] if self.rows else None

    def all(self) -> list[tuple]:
        return list(self.rows)


class MockSASession:
    def __init__(self) -> None:
        self._results: deque[_Result] = deque()
        self._gets: deque[Any] = deque()

        self.mock = AsyncMock()
        self.mock.add = MagicMock()
        self.mock.execute = AsyncMock(side_effect=self._next_result)
        self.mock.get = AsyncMock(side_effect=self._next_get)

    async def _next_result(self, *args: Any, **kwargs: Any) -> _Result:
        return self._results.popleft() if self._results else _Result()

    async def _next_get(self, *args: Any, **kwargs: Any) -> Any:
        return self._gets.popleft() if self._gets else None

    def _push(self, result: _Result) -> MockSASession:
        self._results.append(result)
        return self

    def returns_one(self, obj: Any) -> MockSASession:
        return self._push(_Result(objects=[obj]))

    def returns_many(self, objects: list[Any]) -> MockSASession:
        return self._push(_Result(objects=objects))

    def returns_none(self) -> MockSASession:
        return self._push(_Result())

    def returns_scalar(self, value: Any) -> MockSASession:
        return self._push(_Result(value=value))

    def returns_row(self, *values: Any) -> MockSASession:
        return self._push(_Result(rows=[values]))

    def returns_rows(self, rows: list[tuple]) -> MockSASession:
        return self._push(_Result(rows=rows))

    def returns_get(self, obj: Any) -> MockSASession:
        self._gets.append(obj)
        return self
