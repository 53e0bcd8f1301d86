"""Exceptions raised by atomfeed.

Everything derives from ``ValueError`` so callers that already guard feed
parsing with ``except ValueError`` keep working.
"""

from __future__ import annotations


class AtomFeedError(ValueError):
    """Base exception class for all atomfeed errors."""


class EmptyInputError(AtomFeedError):
    """Raised in strict mode when the input holds no data at all."""

    def __init__(self, kind: str):
        self.kind = kind
        super().__init__(f"AtomFeed: xml {kind} can not be empty")


class MalformedDocumentError(AtomFeedError):
    """Raised in strict mode when the input is not well-formed XML.

    The underlying parser error is available as ``__cause__``.
    """


class ConstraintError(AtomFeedError):
    """A mandatory construct is missing or carries an unusable value.

    Attributes:
        scope: Where the construct lives, e.g. ``"feed"`` or ``"entry link"``.
        field: The construct itself, e.g. ``"id"`` or ``"href"``.
    """

    def __init__(self, scope: str, field: str, message: str):
        self.scope = scope
        self.field = field
        super().__init__(f"AtomFeed: {message}")


class MissingFieldError(ConstraintError):
    def __init__(self, scope: str, field: str):
        super().__init__(scope, field, f"{scope} {field} is missing")


class InvalidValueError(ConstraintError):
    def __init__(self, scope: str, field: str, message: str | None = None):
        super().__init__(scope, field, message or f"invalid {scope} {field}")


class InvalidTextTypeError(InvalidValueError):
    """Raised for a text construct whose ``type`` is not text, html or xhtml."""

    def __init__(self, scope: str, field: str, value: str):
        self.value = value
        super().__init__(
            scope, field, f"invalid text type of {scope} {field}: {value!r}"
        )
