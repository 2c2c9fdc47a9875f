"""Exceptions raised by the storage, search and rendering layers."""


class WikiError(Exception):
    """Base class for all wiki errors."""


class ArticleNotFound(WikiError):
    """No file backs the requested title."""

    def __init__(self, title: str):
        super().__init__(f"Article not found: {title!r}")
        self.title = title


class EmptyName(WikiError):
    """A title was required but an empty one was given."""

    def __init__(self, message: str = "Title must not be empty"):
        super().__init__(message)


class InvalidTitle(WikiError):
    """The title sanitizes to something that cannot name a file."""

    def __init__(self, title: str):
        super().__init__(f"Invalid title: {title!r}")
        self.title = title


class ArticleExists(WikiError):
    """Rename destination is already taken."""

    def __init__(self, title: str):
        super().__init__(f"Article already exists: {title!r}")
        self.title = title


class InvalidPattern(WikiError):
    """Search query does not compile as a regular expression."""

    def __init__(self, query: str, reason: str):
        super().__init__(f"Invalid search pattern {query!r}: {reason}")
        self.query = query
        self.reason = reason


class StorageError(WikiError):
    """An operating system call on the data directory failed."""

    def __init__(self, title: str, operation: str, reason: str = ""):
        message = f"Cannot {operation} {title!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.title = title
        self.operation = operation


class ExternalFilterError(WikiError):
    """The external markup filter failed. Always recovered by the renderer."""
