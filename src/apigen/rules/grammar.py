from __future__ import annotations

import logging
import re
from typing import Optional

from apigen.domain.models import ValidationRule
from apigen.errors import TagSyntaxError

logger = logging.getLogger(__name__)

_INT = re.compile(r"[+-]?[0-9]+")
_TAG_KEY = re.compile(r"[^\s:\"]+")


def lookup_tag(tag: str, key: str) -> Optional[str]:
    """
    Look up `key` in a struct-tag string of the form:
        apivalidator:"required,min=3" json:"login"
    Returns None when the key is absent.
    """
    pos = 0
    n = len(tag)
    while pos < n:
        while pos < n and tag[pos].isspace():
            pos += 1
        if pos >= n:
            break

        m = _TAG_KEY.match(tag, pos)
        if m is None or m.end() >= n or tag[m.end()] != ":" or m.end() + 1 >= n or tag[m.end() + 1] != '"':
            raise TagSyntaxError(f"malformed struct tag {tag!r} at offset {pos}")
        name = m.group(0)

        # value runs to the next unescaped quote
        start = m.end() + 2
        i = start
        while i < n and tag[i] != '"':
            i += 2 if tag[i] == "\\" else 1
        if i >= n:
            raise TagSyntaxError(f"unterminated value in struct tag {tag!r}")

        if name == key:
            return tag[start:i].replace('\\"', '"').replace("\\\\", "\\")
        pos = i + 1
    return None


def parse_rule(text: str) -> ValidationRule:
    """
    Parse the validation mini-language:
        clause(,clause)*   clause ::= "required" | key "=" value
    Keys: paramname, enum (values split on "|"), default, min, max.
    Unknown keys are ignored; the last occurrence of a key wins.
    """
    if not text.strip():
        return ValidationRule()

    values: dict[str, object] = {"required": False}

    for raw in text.split(","):
        clause = raw.strip()
        if not clause:
            raise TagSyntaxError(f"empty clause in {text!r}")
        if clause == "required":
            values["required"] = True
            continue

        key, sep, value = clause.partition("=")
        if not sep:
            raise TagSyntaxError(f"clause {clause!r} is neither 'required' nor key=value")
        key = key.strip()
        value = value.strip()

        if key == "paramname":
            values["rename"] = value
        elif key == "enum":
            values["enum_values"] = tuple(dict.fromkeys(value.split("|")))
        elif key == "default":
            values["default"] = value
        elif key in ("min", "max"):
            values[key] = _parse_bound(key, value)
        else:
            logger.debug("ignoring unknown validator key %r", key)

    return ValidationRule(**values)


def render_rule(rule: ValidationRule) -> str:
    """Canonical clause string; parse_rule(render_rule(r)) == r."""
    clauses: list[str] = []
    if rule.required:
        clauses.append("required")
    if rule.rename is not None:
        clauses.append(f"paramname={rule.rename}")
    if rule.enum_values:
        clauses.append("enum=" + "|".join(rule.enum_values))
    if rule.default is not None:
        clauses.append(f"default={rule.default}")
    if rule.min is not None:
        clauses.append(f"min={rule.min}")
    if rule.max is not None:
        clauses.append(f"max={rule.max}")
    return ",".join(clauses)


def parse_int_literal(value: str) -> Optional[int]:
    if _INT.fullmatch(value) is None:
        return None
    return int(value)


def _parse_bound(key: str, value: str) -> int:
    parsed = parse_int_literal(value)
    if parsed is None:
        raise TagSyntaxError(f"{key} must be an integer, got {value!r}")
    return parsed
