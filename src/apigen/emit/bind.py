from __future__ import annotations

from apigen.domain.models import FieldBinding, FieldKind, StructBinding
from apigen.emit.writer import CodeWriter, py_str, snake_case


def bind_function_name(struct_name: str) -> str:
    return f"bind_{snake_case(struct_name)}"


def emit_bind_function(struct: StructBinding) -> CodeWriter:
    """
    def bind_<struct>(values: Mapping[str, str]) -> <Struct>

    Fields are bound and checked in declaration order; the first violated
    rule raises BindError.
    """
    w = CodeWriter()
    name = struct.struct_name
    with w.block(f"def {bind_function_name(name)}(values: Mapping[str, str]) -> {name}:"):
        w.line(f'"""Bind and validate {name} from request parameters."""')
        w.line(f"model = {name}()")
        for b in struct.bindings:
            w.blank()
            if b.kind is FieldKind.STRING:
                _emit_string_field(w, b)
            elif b.kind is FieldKind.INT:
                _emit_int_field(w, b)
            else:  # planner rejects these
                raise ValueError(f"cannot emit binding for {b.kind} field {b.field_name}")
        w.blank()
        w.line("return model")
    return w


def _fail(w: CodeWriter, condition: str, message: str) -> None:
    with w.block(f"if {condition}:"):
        w.line(f"raise BindError({py_str(message)})")


def _emit_string_field(w: CodeWriter, b: FieldBinding) -> None:
    rule = b.rule
    attr = f"model.{b.field_name}"
    param = b.source_param_name

    w.line(f"{attr} = values.get({py_str(param)}, \"\")")
    if rule.required:
        _fail(w, f'{attr} == ""', f"{param} must be not empty")
    if rule.max is not None:
        _fail(w, f"len({attr}) > {rule.max}", f"{param} len must be <= {rule.max}")
    if rule.min is not None:
        _fail(w, f"len({attr}) < {rule.min}", f"{param} len must be >= {rule.min}")
    if rule.enum_values:
        allowed = list(rule.enum_values)
        if rule.default is not None and "" not in allowed:
            # empty input is accepted because the default fills it in below
            allowed.append("")
        members = ", ".join(py_str(v) for v in allowed)
        if len(allowed) == 1:
            members += ","
        _fail(
            w,
            f"{attr} not in ({members})",
            f"{param} must be one of [{', '.join(rule.enum_values)}]",
        )
    if rule.default is not None:
        with w.block(f'if {attr} == "":'):
            w.line(f"{attr} = {py_str(rule.default)}")


def _emit_int_field(w: CodeWriter, b: FieldBinding) -> None:
    rule = b.rule
    attr = f"model.{b.field_name}"
    param = b.source_param_name

    raw = f"values.get({py_str(param)}, \"\")"
    # a required field never falls back to its default
    if rule.default is not None and not rule.required:
        raw = f"values.get({py_str(param)}) or {py_str(rule.default)}"
    w.line(f"{attr} = _parse_int({raw}, {py_str(param)})")
    if rule.required:
        # zero is indistinguishable from unset
        _fail(w, f"{attr} == 0", f"{param} must be not empty")
    if rule.max is not None:
        _fail(w, f"{attr} > {rule.max}", f"{param} must be <= {rule.max}")
    if rule.min is not None:
        _fail(w, f"{attr} < {rule.min}", f"{param} must be >= {rule.min}")
