from __future__ import annotations

import re
from contextlib import contextmanager
from typing import Iterator

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


class CodeWriter:
    """Line buffer with indentation, used to build generated Python source."""

    def __init__(self, indent: str = "    ") -> None:
        self._lines: list[str] = []
        self._indent = indent
        self._depth = 0

    def line(self, text: str = "") -> None:
        self._lines.append(f"{self._indent * self._depth}{text}" if text else "")

    def blank(self, count: int = 1) -> None:
        for _ in range(count):
            self.line()

    @contextmanager
    def block(self, header: str) -> Iterator[None]:
        self.line(header)
        self._depth += 1
        try:
            yield
        finally:
            self._depth -= 1

    def extend(self, other: "CodeWriter") -> None:
        for text in other._lines:
            self._lines.append(f"{self._indent * self._depth}{text}" if text else "")

    def getvalue(self) -> str:
        return "\n".join(self._lines) + "\n"


def snake_case(name: str) -> str:
    # ProfileParams -> profile_params, HTTPParams -> http_params
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def py_str(value: str) -> str:
    """Python string literal for `value`."""
    return repr(value)
