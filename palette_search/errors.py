"""Exception types raised by the indexing pipeline and query engine."""


class PaletteSearchError(Exception):
    """Base class for recoverable palette_search errors."""


class ImageDecodeError(PaletteSearchError):
    """Pixel data could not be obtained for an image. Skips that image only."""

    def __init__(self, path: str, reason: str = "decode failed"):
        self.path = path
        self.reason = reason
        super().__init__(f"Could not decode {path}: {reason}")


class PoolFull(PaletteSearchError):
    """Insertion into a ProcessedPool that has reached its capacity."""

    def __init__(self, capacity: int):
        self.capacity = capacity
        super().__init__(
            f"Processed pool is full (capacity {capacity}); "
            f"raise the pool capacity to cover the corpus"
        )


class PoolEmpty(PaletteSearchError):
    """Removal from an empty ProcessedPool."""


class IndexNotFound(PaletteSearchError, KeyError):
    """Requested key is absent from the persisted store."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(key)

    def __str__(self):
        return f"No index entry for {self.key!r}"


class PersistedStoreWriteFailure(PaletteSearchError):
    """Writing an index entry to the persisted store failed."""

    def __init__(self, key: str, cause: Exception = None):
        self.key = key
        self.cause = cause
        super().__init__(f"Failed to persist index entry {key!r}: {cause}")


class CorruptIndexEntry(PaletteSearchError):
    """A persisted index entry exists but cannot be parsed."""

    def __init__(self, key: str, cause: Exception = None):
        self.key = key
        self.cause = cause
        super().__init__(f"Index entry {key!r} is corrupt: {cause}")


class CatalogError(PaletteSearchError):
    """Catalog file is missing, unreadable or malformed."""


class IncompletePoolError(RuntimeError):
    """
    Index build attempted on a pool that is not complete.

    This is a programming error, not a recoverable condition, and is
    intentionally outside the PaletteSearchError hierarchy.
    """
