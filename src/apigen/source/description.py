from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol, Union


@dataclass(frozen=True)
class FieldDecl:
    name: str
    type_name: str          # "str", "int", "list[str]", ...
    tag: Optional[str]      # raw struct-tag string, None if untagged
    line: int = 0


@dataclass(frozen=True)
class StructDecl:
    name: str
    fields: tuple[FieldDecl, ...]
    line: int = 0


@dataclass(frozen=True)
class MethodDecl:
    name: str
    receiver_type: Optional[str]          # enclosing class, None at module level
    param_types: tuple[Optional[str], ...]  # annotations of non-self params, in order
    comment: str                          # leading comment text, "#" stripped
    is_async: bool = False
    line: int = 0


Declaration = Union[StructDecl, MethodDecl]


@dataclass(frozen=True)
class SourceDescription:
    """
    What the generator needs to know about an input module, in file order.
    """

    module_name: str
    declarations: tuple[Declaration, ...]

    @property
    def structs(self) -> tuple[StructDecl, ...]:
        return tuple(d for d in self.declarations if isinstance(d, StructDecl))

    @property
    def methods(self) -> tuple[MethodDecl, ...]:
        return tuple(d for d in self.declarations if isinstance(d, MethodDecl))


class SourceReader(Protocol):
    def __call__(self, path: Path) -> SourceDescription: ...
