from __future__ import annotations


class GenerationError(Exception):
    """
    Fatal generation-time error.

    Any of these aborts the whole run; no output is written.
    """

    def __init__(self, message: str, where: str | None = None) -> None:
        self.where = where
        if where:
            message = f"{where}: {message}"
        super().__init__(message)


class TagSyntaxError(GenerationError):
    pass


class UnsupportedFieldTypeError(GenerationError):
    pass


class RuleConflictError(GenerationError):
    pass


class AnnotationError(GenerationError):
    pass


class SourceShapeError(GenerationError):
    pass
