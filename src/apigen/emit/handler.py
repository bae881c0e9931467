from __future__ import annotations

from apigen.domain.models import HandlerSpec
from apigen.emit.bind import bind_function_name
from apigen.emit.writer import CodeWriter, py_str


def emit_handler(spec: HandlerSpec) -> CodeWriter:
    """
    Wrap one business method in a gated request handler:
    auth (403) -> method (406) -> bind (400) -> invoke (status or 500) -> 200.
    """
    w = CodeWriter()
    signature = f"async def {spec.generated_handler_name}(srv: {spec.receiver_type}, request: Request) -> Response:"
    with w.block(signature):
        w.line(f'"""Generated handler for {spec.receiver_type}.{spec.business_method_name}."""')

        if spec.auth_required:
            with w.block("if request.headers.get(AUTH_HEADER) != AUTH_TOKEN:"):
                w.line('return _error(403, "unauthorized")')

        if spec.restricted_method is not None:
            with w.block(f"if request.method != {py_str(spec.restricted_method)}:"):
                w.line('return _error(406, "bad method")')

        with w.block("try:"):
            w.line(f"params = {bind_function_name(spec.params_type)}(await _request_params(request))")
        with w.block("except BindError as exc:"):
            w.line("return _error(400, str(exc))")

        args = "request, params" if spec.passes_request else "params"
        if spec.is_async:
            call = f"await srv.{spec.business_method_name}({args})"
        else:
            # sync methods run off the event loop
            call = f"await run_in_threadpool(srv.{spec.business_method_name}, {args})"
        with w.block("try:"):
            w.line(f"result = {call}")
        with w.block("except Exception as exc:"):
            w.line("return _error(_error_status(exc), str(exc))")
        w.line("return _success(result)")
    return w
