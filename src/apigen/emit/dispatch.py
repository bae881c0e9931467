from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from apigen.domain.models import HandlerSpec
from apigen.emit.writer import CodeWriter, py_str

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RouteTable:
    # receiver -> handlers, receivers in first-seen order
    routes: tuple[tuple[str, tuple[HandlerSpec, ...]], ...]

    def receivers(self) -> list[str]:
        return [r for r, _ in self.routes]


class RouteTableBuilder:
    """
    Per-receiver accumulator of HandlerSpecs, finalized once with build().
    On a URL collision within a receiver, the last registration wins.
    """

    def __init__(self) -> None:
        self._by_receiver: dict[str, dict[str, HandlerSpec]] = {}
        self._built = False

    def add(self, spec: HandlerSpec) -> None:
        if self._built:
            raise RuntimeError("route table already built")
        table = self._by_receiver.setdefault(spec.receiver_type, {})
        prev = table.get(spec.url)
        if prev is not None:
            logger.warning(
                "%s: url %s already routed to %s, %s wins",
                spec.receiver_type,
                spec.url,
                prev.business_method_name,
                spec.business_method_name,
            )
        table[spec.url] = spec

    def build(self) -> RouteTable:
        self._built = True
        return RouteTable(
            routes=tuple((receiver, tuple(table.values())) for receiver, table in self._by_receiver.items())
        )


def router_class_name(receiver: str) -> str:
    return f"{receiver}Router"


def emit_router(receiver: str, specs: Iterable[HandlerSpec]) -> CodeWriter:
    """
    ASGI application for one receiver: switch on request path, 404 otherwise.
    """
    w = CodeWriter()
    with w.block(f"class {router_class_name(receiver)}:"):
        w.line(f'"""Routes requests to the generated {receiver} handlers."""')
        w.blank()
        with w.block(f"def __init__(self, srv: {receiver}) -> None:"):
            w.line("self.srv = srv")
        w.blank()
        with w.block("async def serve_http(self, request: Request) -> Response:"):
            w.line("path = request.url.path")
            for spec in specs:
                with w.block(f"if path == {py_str(spec.url)}:"):
                    w.line(f"return await {spec.generated_handler_name}(self.srv, request)")
            w.line('return _error(404, "unknown method")')
        w.blank()
        with w.block("async def __call__(self, scope, receive, send) -> None:"):
            w.line("response = await self.serve_http(Request(scope, receive))")
            w.line("await response(scope, receive, send)")
    return w
