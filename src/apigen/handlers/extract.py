from __future__ import annotations

from pydantic import ValidationError

from apigen.config import GeneratorConfig
from apigen.domain.models import HandlerSpec, RouteAnnotation
from apigen.errors import AnnotationError, SourceShapeError
from apigen.source.description import MethodDecl


def is_annotated(method: MethodDecl, config: GeneratorConfig) -> bool:
    return method.comment.startswith(config.marker)


def extract_handler_spec(method: MethodDecl, config: GeneratorConfig) -> HandlerSpec:
    """
    Leading comment `<marker> {"url": ..., "auth": ..., "method": ...}` -> HandlerSpec.
    Malformed JSON, a missing receiver or a missing params class is fatal.
    """
    where = f"{method.receiver_type}.{method.name}" if method.receiver_type else method.name
    payload = method.comment[len(config.marker):].strip()

    try:
        info = RouteAnnotation.model_validate_json(payload)
    except ValidationError as exc:
        raise AnnotationError(f"can't parse {config.marker} instructions {payload!r}: {exc}", where=where) from exc

    if not info.url.startswith("/"):
        raise AnnotationError(f"url must start with '/', got {info.url!r}", where=where)

    if method.receiver_type is None:
        raise SourceShapeError("annotated function must be a method of a class", where=where)

    if len(method.param_types) not in (1, 2):
        raise SourceShapeError(
            f"expected (params) or (request, params) after self, got {len(method.param_types)} parameters",
            where=where,
        )
    params_type = method.param_types[-1]
    if not params_type:
        raise SourceShapeError("trailing parameter must be annotated with its params class", where=where)

    return HandlerSpec(
        url=info.url,
        auth_required=info.auth,
        restricted_method=info.method or None,
        receiver_type=method.receiver_type,
        business_method_name=method.name,
        params_type=params_type,
        is_async=method.is_async,
        passes_request=len(method.param_types) == 2,
    )
