from upload_handler.config.settings import Settings
from upload_handler.storage.base import BaseStorage
from upload_handler.storage.exceptions import UnsupportedStorageDiskError
from upload_handler.storage.local_adapter import LocalStorage


class StorageFactory:
    """Creates the storage backend for the configured disk."""

    @classmethod
    def create(cls, settings: Settings) -> BaseStorage:
        disk = settings.storage_disk.lower()
        if disk != "local":
            raise UnsupportedStorageDiskError(f"storage_disk '{disk}' is not supported")
        return LocalStorage(fsync=settings.storage_fsync)
