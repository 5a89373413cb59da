from abc import ABC, abstractmethod
from pathlib import Path, PurePosixPath, PureWindowsPath

from upload_handler.storage.exceptions import InvalidTargetNameError


def target_path(storage_root: Path, filename: str) -> Path:
    """Build path to the stored file: {storage_root}/{basename of filename}"""
    # Browsers may send full client paths, with either separator.
    name = PureWindowsPath(PurePosixPath(filename).name).name
    if name in {"", ".", ".."} or any(ord(c) < 32 or c == "\x7f" for c in name):
        raise InvalidTargetNameError(f"Invalid target filename: {filename!r}")
    return storage_root / name


class BaseSink(ABC):
    """Writable byte sink for one stored file."""

    @abstractmethod
    async def write(self, chunk: bytes) -> None:
        """Accept one chunk. Returns once the sink can take the next one."""

    @abstractmethod
    async def close(self) -> None:
        """Flush and close. Returns once all bytes are durably accepted."""

    @abstractmethod
    async def abort(self) -> None:
        """Release the sink after a failure. Written bytes are left in place."""


class BaseStorage(ABC):
    """Contract for storage backends that hand out sinks by path."""

    @abstractmethod
    async def open(self, path: Path) -> BaseSink:
        """Open a sink that writes to ``path``, truncating any existing file.

        Raises:
            OSError: if the path cannot be opened for writing.
        """
