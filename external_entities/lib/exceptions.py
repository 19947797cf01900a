from typing import Dict, Optional


class ExternalEntitiesError(Exception):
    """Base class for every error raised by the mapping engine."""


class ConfigurationError(ExternalEntitiesError):
    """Raised when an entity type or a field mapping configuration is invalid.

    ``errors`` maps the offending field name (or configuration key) to a
    human readable message, so callers can report all problems at once.
    """

    def __init__(self, message: str, errors: Optional[Dict[str, str]] = None):
        self.errors = dict(errors or {})
        if self.errors:
            details = "; ".join(f"{k}: {v}" for k, v in self.errors.items())
            message = f"{message} ({details})"
        super().__init__(message)


class MappingExpressionError(ConfigurationError):
    """Raised when a mapping expression cannot be parsed."""

    def __init__(self, expression: str, reason: str):
        self.expression = expression
        self.reason = reason
        super().__init__(f"Invalid mapping expression '{expression}': {reason}")


class InjectionConflictError(ExternalEntitiesError):
    """Raised when two writes disagree on the shape of a raw data location."""

    def __init__(self, path, reason: str):
        self.path = list(path)
        super().__init__(
            f"Cannot write raw data at '{'/'.join(str(p) for p in self.path)}': {reason}"
        )


class UnknownFieldMapperError(ConfigurationError):
    pass


class UnknownDataTypeError(ConfigurationError):
    pass


class ReadOnlyEntityTypeError(ExternalEntitiesError):
    pass
