from __future__ import annotations

import logging
from typing import Optional

from apigen.config import GeneratorConfig
from apigen.domain.models import FieldBinding, FieldKind, StructBinding, ValidationRule
from apigen.errors import GenerationError, RuleConflictError, TagSyntaxError, UnsupportedFieldTypeError
from apigen.rules.grammar import lookup_tag, parse_int_literal, parse_rule
from apigen.source.description import FieldDecl, StructDecl

logger = logging.getLogger(__name__)


def plan_field_binding(
    field: FieldDecl,
    config: GeneratorConfig,
    owner: str = "",
) -> Optional[FieldBinding]:
    """
    Field + its validator tag -> FieldBinding.
    Returns None for fields that carry no validator tag (they are not bound).
    """
    where = f"{owner}.{field.name}" if owner else field.name
    if field.tag is None:
        return None

    try:
        text = lookup_tag(field.tag, config.tag_key)
        if text is None:
            return None
        rule = parse_rule(text)
    except GenerationError as exc:
        # re-raise with location attached
        raise type(exc)(str(exc), where=where) from exc

    kind = FieldKind.from_type_name(field.type_name)
    if kind is FieldKind.UNSUPPORTED:
        raise UnsupportedFieldTypeError(
            f"unsupported field type {field.type_name!r} (only str and int can be bound)",
            where=where,
        )

    _check_rule(rule, kind, config, where)

    return FieldBinding(
        field_name=field.name,
        source_param_name=rule.rename if rule.rename is not None else field.name.lower(),
        kind=kind,
        rule=rule,
    )


def plan_struct(struct: StructDecl, config: GeneratorConfig) -> StructBinding:
    bindings = []
    for f in struct.fields:
        binding = plan_field_binding(f, config, owner=struct.name)
        if binding is None:
            logger.debug("SKIP %s.%s: no %s tag", struct.name, f.name, config.tag_key)
            continue
        bindings.append(binding)
    return StructBinding(struct_name=struct.name, bindings=tuple(bindings))


def _check_rule(rule: ValidationRule, kind: FieldKind, config: GeneratorConfig, where: str) -> None:
    if rule.required and rule.default is not None and config.required_with_default == "reject":
        raise RuleConflictError(
            "required and default cannot be combined (a required value is never defaulted)",
            where=where,
        )

    if kind is FieldKind.INT:
        if rule.enum_values:
            raise RuleConflictError("enum is only supported on str fields", where=where)
        if rule.default is not None and parse_int_literal(rule.default) is None:
            raise TagSyntaxError(f"default must be an integer, got {rule.default!r}", where=where)
