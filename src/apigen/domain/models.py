from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pydantic import BaseModel, StrictBool, StrictStr


class FieldKind(str, Enum):
    STRING = "string"
    INT = "int"
    UNSUPPORTED = "unsupported"

    @classmethod
    def from_type_name(cls, type_name: str) -> "FieldKind":
        if type_name == "str":
            return cls.STRING
        if type_name == "int":
            return cls.INT
        return cls.UNSUPPORTED


@dataclass(frozen=True)
class ValidationRule:
    required: bool = False
    min: Optional[int] = None
    max: Optional[int] = None
    enum_values: tuple[str, ...] = ()
    rename: Optional[str] = None
    default: Optional[str] = None


@dataclass(frozen=True)
class FieldBinding:
    field_name: str
    source_param_name: str
    kind: FieldKind
    rule: ValidationRule


@dataclass(frozen=True)
class StructBinding:
    struct_name: str
    bindings: tuple[FieldBinding, ...]


@dataclass(frozen=True)
class HandlerSpec:
    """
    Routing/gating metadata for one annotated business method.
    """

    url: str
    auth_required: bool
    restricted_method: Optional[str]   # None = any verb
    receiver_type: str
    business_method_name: str
    params_type: str
    is_async: bool = False
    passes_request: bool = False       # method takes (request, params)

    @property
    def generated_handler_name(self) -> str:
        return f"{self.business_method_name}_handler"


class RouteAnnotation(BaseModel):
    """JSON block following the marker in a method's leading comment."""

    url: StrictStr
    auth: StrictBool = False
    method: StrictStr = ""
