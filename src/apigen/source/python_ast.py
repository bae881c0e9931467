from __future__ import annotations

import ast
import logging
from pathlib import Path
from typing import Optional

from apigen.errors import SourceShapeError
from apigen.source.description import (
    Declaration,
    FieldDecl,
    MethodDecl,
    SourceDescription,
    StructDecl,
)

logger = logging.getLogger(__name__)

_ANNOTATED_NAMES = {"Annotated", "typing.Annotated", "typing_extensions.Annotated"}


def read_python_source(path: Path) -> SourceDescription:
    source = path.read_text(encoding="utf-8")
    return describe_source(source, module_name=path.stem, filename=str(path))


def describe_source(source: str, module_name: str = "service", filename: str = "<source>") -> SourceDescription:
    """
    Parse Python source and describe its classes and methods in file order:
      - every top-level class becomes a StructDecl (annotated fields only)
      - every method of a top-level class becomes a MethodDecl
      - top-level functions become MethodDecl with receiver_type=None
    Uses ast only; does not import/execute code.
    """
    try:
        tree = ast.parse(source, filename=filename)
    except SyntaxError as exc:
        raise SourceShapeError(f"cannot parse source: {exc.msg} (line {exc.lineno})", where=filename) from exc

    lines = source.splitlines()
    decls: list[Declaration] = []

    for node in tree.body:
        if isinstance(node, ast.ClassDef):
            decls.append(_struct_decl(node))
            for item in node.body:
                if isinstance(item, (ast.FunctionDef, ast.AsyncFunctionDef)):
                    decls.append(_method_decl(item, node.name, lines))
        elif isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
            decls.append(_method_decl(node, None, lines))
        else:
            logger.debug("SKIP %s at line %s", type(node).__name__, getattr(node, "lineno", "?"))

    return SourceDescription(module_name=module_name, declarations=tuple(decls))


def _struct_decl(node: ast.ClassDef) -> StructDecl:
    fields: list[FieldDecl] = []
    for item in node.body:
        if not isinstance(item, ast.AnnAssign) or not isinstance(item.target, ast.Name):
            continue
        type_name, tag = _split_annotation(item.annotation)
        fields.append(FieldDecl(name=item.target.id, type_name=type_name, tag=tag, line=item.lineno))
    return StructDecl(name=node.name, fields=tuple(fields), line=node.lineno)


def _split_annotation(node: ast.AST) -> tuple[str, Optional[str]]:
    """
    Annotated[str, 'apivalidator:"required"'] -> ("str", 'apivalidator:"required"')
    str -> ("str", None)
    The first string in the Annotated metadata that looks like a struct tag
    (key:"value") is the tag.
    """
    if isinstance(node, ast.Subscript) and ast.unparse(node.value) in _ANNOTATED_NAMES:
        elts = node.slice.elts if isinstance(node.slice, ast.Tuple) else [node.slice]
        if not elts:
            return ("", None)
        tag = None
        for meta in elts[1:]:
            if isinstance(meta, ast.Constant) and isinstance(meta.value, str) and ':"' in meta.value:
                tag = meta.value
                break
        return (_type_name(elts[0]), tag)
    return (_type_name(node), None)


def _type_name(node: ast.AST) -> str:
    # forward references: "ProfileParams"
    if isinstance(node, ast.Constant) and isinstance(node.value, str):
        return node.value.strip()
    return ast.unparse(node)


def _method_decl(node: ast.AST, receiver: Optional[str], lines: list[str]) -> MethodDecl:
    args = node.args
    positional = list(args.posonlyargs) + list(args.args)
    if receiver is not None and positional:
        positional = positional[1:]  # self
    param_types = tuple(_type_name(a.annotation) if a.annotation is not None else None for a in positional)

    return MethodDecl(
        name=node.name,
        receiver_type=receiver,
        param_types=param_types,
        comment=_leading_comment(node, lines),
        is_async=isinstance(node, ast.AsyncFunctionDef),
        line=node.lineno,
    )


def _leading_comment(node: ast.AST, lines: list[str]) -> str:
    """
    Text of the contiguous "#" comment block directly above the def (or its
    first decorator), with the "#" and one following space stripped.
    """
    first = min([node.lineno] + [d.lineno for d in node.decorator_list])
    idx = first - 2  # 0-based index of the line above
    block: list[str] = []
    while idx >= 0:
        text = lines[idx].strip()
        if not text.startswith("#"):
            break
        block.append(_strip_hash(text))
        idx -= 1
    block.reverse()
    return "\n".join(block).strip()


def _strip_hash(text: str) -> str:
    text = text[1:]
    if text.startswith(" "):
        text = text[1:]
    return text
