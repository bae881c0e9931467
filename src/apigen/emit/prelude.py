from __future__ import annotations

from typing import Iterable

from apigen.config import GeneratorConfig
from apigen.emit.writer import CodeWriter, py_str

# Runtime helpers shared by every generated module. Kept free of module-level
# mutable state so generated handlers are safe under concurrent requests.
_RUNTIME = '''
_INT_RE = re.compile(r"[+-]?[0-9]+")
_FORM_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


class BindError(ValueError):
    """A request parameter failed binding or validation."""


def _parse_int(raw: str, name: str) -> int:
    if _INT_RE.fullmatch(raw) is None:
        raise BindError(f"{name} must be int")
    return int(raw)


async def _request_params(request: Request) -> dict[str, str]:
    # first value of a key wins; form values come before query values
    params: dict[str, str] = {}
    if request.headers.get("content-type", "").startswith(_FORM_TYPES):
        try:
            form = await request.form()
        except (MultiPartException, HTTPException, ValueError) as exc:
            raise BindError("malformed form body") from exc
        for k, v in form.multi_items():
            if isinstance(v, str):
                params.setdefault(k, v)
    for k, v in request.query_params.multi_items():
        params.setdefault(k, v)
    return params


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def _success(result: Any) -> JSONResponse:
    if dataclasses.is_dataclass(result) and not isinstance(result, type):
        result = dataclasses.asdict(result)
    elif hasattr(result, "model_dump"):
        result = result.model_dump()
    return JSONResponse({"error": "", "response": result})


def _error_status(exc: Exception) -> int:
    status = getattr(exc, "http_status", None)
    if isinstance(status, int) and not isinstance(status, bool) and status:
        return status
    return 500
'''


def emit_prelude(source_name: str, module_name: str, imported: Iterable[str], config: GeneratorConfig) -> CodeWriter:
    w = CodeWriter()
    w.line(f"# Code generated by apigen from {source_name}. DO NOT EDIT.")
    w.line("from __future__ import annotations")
    w.blank()
    w.line("import dataclasses")
    w.line("import re")
    w.line("from typing import Any, Mapping")
    w.blank()
    w.line("from starlette.concurrency import run_in_threadpool")
    w.line("from starlette.exceptions import HTTPException")
    w.line("from starlette.formparsers import MultiPartException")
    w.line("from starlette.requests import Request")
    w.line("from starlette.responses import JSONResponse, Response")

    names = sorted(set(imported))
    if names:
        w.blank()
        w.line(f"from {module_name} import {', '.join(names)}")

    w.blank()
    w.line(f"AUTH_HEADER = {py_str(config.auth_header)}")
    w.line(f"AUTH_TOKEN = {py_str(config.auth_token)}")
    for text in _RUNTIME.splitlines():
        w.line(text)
    return w
