"""Exception hierarchy shared by the storage layer, the rule engine and config loading."""


class SalesWatcherError(Exception):
    """Base class for every error raised by this package."""


class NotFoundError(SalesWatcherError):
    """A lookup by id found no row."""

    def __init__(self, kind: str, key: str):
        self.kind = kind
        self.key = key
        super().__init__(f"{kind} not found: {key!r}")


class ReferentialIntegrityError(SalesWatcherError):
    """A write references a parent row that does not exist (or removes one still referenced)."""


class ValidationError(SalesWatcherError):
    """A record violates one of its invariants and was rejected before writing."""


class PatternSyntaxError(ValidationError):
    """A rule pattern could not be parsed."""

    def __init__(self, column: int, message: str):
        self.column = column
        super().__init__(f"column {column}: {message}")


class ConfigError(SalesWatcherError):
    """The configuration file could not be loaded."""
