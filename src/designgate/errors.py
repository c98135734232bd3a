"""
Errors — Exceptions raised by designgate.

Not-found lookups and low-confidence proposals are not errors; those
return None. Exceptions are reserved for states the caller cannot branch
around: a missing or corrupt memory document.
"""


class DesignGateError(Exception):
    """Base class for designgate errors."""
    pass


class MemoryNotInitializedError(DesignGateError):
    """Raised when the design memory document does not exist."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(
            f"Design memory not found at {path}. "
            f"Run `designgate init --memory {path}` to create a default document."
        )


class MemoryDocumentExistsError(DesignGateError):
    """Raised when initialization would overwrite an existing document."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(
            f"Design memory already exists at {path}. "
            f"Pass --force to overwrite it."
        )
