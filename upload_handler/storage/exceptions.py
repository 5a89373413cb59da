class StorageError(Exception):
    """Base exception for storage-related errors."""


class UnsupportedStorageDiskError(StorageError):
    """Raised when settings name a storage disk with no adapter."""


class InvalidTargetNameError(StorageError):
    """Raised when a filename cannot be mapped to a path under the storage root."""
