from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from apigen.config import GeneratorConfig
from apigen.domain.models import HandlerSpec
from apigen.emit.bind import bind_function_name, emit_bind_function
from apigen.emit.dispatch import RouteTableBuilder, emit_router
from apigen.emit.handler import emit_handler
from apigen.emit.prelude import emit_prelude
from apigen.emit.writer import CodeWriter
from apigen.errors import SourceShapeError
from apigen.handlers.extract import extract_handler_spec, is_annotated
from apigen.rules.planner import plan_struct
from apigen.source.description import MethodDecl, SourceDescription, SourceReader, StructDecl
from apigen.source.python_ast import read_python_source

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerateResult:
    text: str
    bind_functions: list[str]
    handlers: list[HandlerSpec]
    routers: list[str]
    output_path: Optional[str] = None


def generate_module(
    description: SourceDescription,
    config: Optional[GeneratorConfig] = None,
    source_name: str = "",
) -> GenerateResult:
    """
    SourceDescription -> generated module text (no IO).

    Bind functions and handlers are emitted in declaration order; routers are
    appended once every handler is known. Any GenerationError aborts the run.
    """
    config = config or GeneratorConfig()
    module_name = config.source_module or description.module_name

    structs = {s.name: s for s in description.structs}
    annotated: list[tuple[MethodDecl, HandlerSpec]] = []
    for m in description.methods:
        if not is_annotated(m, config):
            continue
        annotated.append((m, extract_handler_spec(m, config)))

    bound_types = set()
    seen_handlers: dict[str, str] = {}
    for m, spec in annotated:
        where = f"{spec.receiver_type}.{spec.business_method_name}"
        if spec.params_type not in structs:
            raise SourceShapeError(f"params class {spec.params_type!r} is not declared in the source", where=where)
        other = seen_handlers.get(spec.generated_handler_name)
        if other is not None:
            raise SourceShapeError(
                f"generated handler {spec.generated_handler_name} clashes with {other}",
                where=where,
            )
        seen_handlers[spec.generated_handler_name] = where
        bound_types.add(spec.params_type)

    specs_by_decl = {id(m): spec for m, spec in annotated}
    routes = RouteTableBuilder()
    imported: set[str] = set()
    bind_functions: list[str] = []
    seen_binds: dict[str, str] = {}
    handlers: list[HandlerSpec] = []
    body = CodeWriter()

    for decl in description.declarations:
        if isinstance(decl, StructDecl):
            plan = plan_struct(decl, config)
            if not plan.bindings and decl.name not in bound_types:
                logger.debug("SKIP %s: nothing to bind", decl.name)
                continue
            fn_name = bind_function_name(decl.name)
            other = seen_binds.get(fn_name)
            if other is not None:
                raise SourceShapeError(f"bind function {fn_name} clashes with {other}", where=decl.name)
            seen_binds[fn_name] = decl.name
            logger.debug("bind function for %s (%d fields)", decl.name, len(plan.bindings))
            body.blank(2)
            body.extend(emit_bind_function(plan))
            imported.add(decl.name)
            bind_functions.append(decl.name)
        else:
            spec = specs_by_decl.get(id(decl))
            if spec is None:
                continue
            logger.debug("handler %s for %s.%s", spec.generated_handler_name, spec.receiver_type, decl.name)
            body.blank(2)
            body.extend(emit_handler(spec))
            imported.add(spec.receiver_type)
            routes.add(spec)
            handlers.append(spec)

    table = routes.build()
    for receiver, specs in table.routes:
        body.blank(2)
        body.extend(emit_router(receiver, specs))

    prelude = emit_prelude(source_name or f"{description.module_name}.py", module_name, imported, config)
    prelude.extend(body)

    return GenerateResult(
        text=prelude.getvalue(),
        bind_functions=bind_functions,
        handlers=handlers,
        routers=table.receivers(),
    )


def run_generate(
    source_path: Path,
    output_path: Path,
    config: Optional[GeneratorConfig] = None,
    reader: SourceReader = read_python_source,
) -> GenerateResult:
    """
    Read the source, generate, and only then write the output file, so a
    failed run leaves no partial output behind.
    """
    source_path = Path(source_path)
    output_path = Path(output_path)

    description = reader(source_path)
    result = generate_module(description, config=config, source_name=source_path.name)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(result.text, encoding="utf-8")

    return GenerateResult(
        text=result.text,
        bind_functions=result.bind_functions,
        handlers=result.handlers,
        routers=result.routers,
        output_path=str(output_path),
    )
