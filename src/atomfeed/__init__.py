from .exceptions import (
    AtomFeedError,
    ConstraintError,
    EmptyInputError,
    InvalidTextTypeError,
    InvalidValueError,
    MalformedDocumentError,
    MissingFieldError,
)
from .main import ATOM_NAMESPACE, NAMESPACES, Search, parse
from .models import (
    ZERO_TIMESTAMP,
    Category,
    Content,
    Entry,
    Feed,
    Generator,
    Link,
    Person,
    PersonRole,
    Source,
    Text,
    TextType,
)

__all__ = [
    "ATOM_NAMESPACE",
    "NAMESPACES",
    "ZERO_TIMESTAMP",
    "AtomFeedError",
    "Category",
    "ConstraintError",
    "Content",
    "EmptyInputError",
    "Entry",
    "Feed",
    "Generator",
    "InvalidTextTypeError",
    "InvalidValueError",
    "Link",
    "MalformedDocumentError",
    "MissingFieldError",
    "Person",
    "PersonRole",
    "Search",
    "Source",
    "Text",
    "TextType",
    "parse",
]
