"""Runtime helpers imported by step classes and generated tests.

Step classes register patterns with the ``given``/``when``/``then``
decorators::

    class AuthSteps:
        def __init__(self, context):
            self.context = context

        @given("I am logged in as {username}")
        def i_am_logged_in_as(self, username: str) -> None:
            ...

The decorators only attach metadata; the generator discovers steps by reading
source, so the same decorators from another BDD library work just as well.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any, TypeVar

F = TypeVar("F", bound=Callable[..., Any])

STEP_ATTRIBUTE = "__feature_gen_steps__"


def _step_decorator(keyword: str) -> Callable[[str], Callable[[F], F]]:
    def register(pattern: str) -> Callable[[F], F]:
        if not isinstance(pattern, str) or not pattern:
            raise ValueError(f"@{keyword.lower()} requires a non-empty pattern string")

        def decorate(func: F) -> F:
            entries = list(getattr(func, STEP_ATTRIBUTE, ()))
            # Decorators apply bottom-up; keep source order.
            entries.insert(0, (keyword, pattern))
            setattr(func, STEP_ATTRIBUTE, tuple(entries))
            return func

        return decorate

    register.__name__ = keyword.lower()
    register.__doc__ = f"Register a {keyword} step pattern on a method."
    return register


given = _step_decorator("Given")
when = _step_decorator("When")
then = _step_decorator("Then")


class DataTable:
    """A Gherkin data table passed to a step: header row plus data rows."""

    def __init__(self, headers: list[str], *rows: list[str]) -> None:
        self.headers = list(headers)
        self.rows = [list(r) for r in rows]
        for i, row in enumerate(self.rows, 1):
            if len(row) != len(self.headers):
                raise ValueError(
                    f"Row {i} has {len(row)} cells, expected {len(self.headers)}"
                )

    def __iter__(self) -> Iterator[dict[str, str]]:
        for row in self.rows:
            yield dict(zip(self.headers, row))

    def __len__(self) -> int:
        return len(self.rows)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DataTable):
            return NotImplemented
        return self.headers == other.headers and self.rows == other.rows

    def __repr__(self) -> str:
        return f"DataTable({self.headers!r}, {len(self.rows)} rows)"

    def column(self, name: str) -> list[str]:
        """Return all values of one column."""
        index = self.headers.index(name)
        return [row[index] for row in self.rows]

    def as_dict(self) -> dict[str, str]:
        """Read a two-column key/value table (e.g. ``| Field | Value |``)."""
        if len(self.headers) != 2:
            raise ValueError("as_dict() requires a two-column table")
        return {row[0]: row[1] for row in self.rows}
