import hashlib
import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from fastapi.concurrency import run_in_threadpool

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class StoredObject:
    key: str
    content_type: str
    size: int
    sha256: str


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def build_key(original_name: str | None, prefix: str = "") -> str:
    """Random object key that keeps the client's extension (``bin`` when there is none)."""
    ext = "bin"
    if original_name and "." in original_name:
        ext = original_name.rsplit(".", 1)[1]
    fname = f"{uuid.uuid4()}.{ext}" if ext else str(uuid.uuid4())
    prefix = (prefix or "").strip("/")
    return f"{prefix}/{fname}" if prefix else fname


class BlobStore(ABC):
    """
    Store/load/delete by key. Implementations raise OSError on storage failures.

    Callers treat a failed ``delete`` as non-fatal, whatever it raises.
    """

    @abstractmethod
    async def store(self, data: bytes, original_name: str | None, content_type: str | None) -> StoredObject:
        ...

    @abstractmethod
    async def load(self, key: str) -> bytes:
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        ...


class LocalBlobStore(BlobStore):
    """Files on local disk under ``base_dir``; blocking IO runs in the thread pool."""

    def __init__(self, base_dir: str | Path, prefix: str = ""):
        self.base_dir = Path(base_dir).resolve()
        self.prefix = prefix

    def _resolve(self, key: str) -> Path:
        path = (self.base_dir / key).resolve()
        if not path.is_relative_to(self.base_dir):
            raise ValueError(f"Invalid storage key: {key!r}")
        return path

    def _write(self, key: str, data: bytes) -> None:
        path = self._resolve(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    def _unlink(self, key: str) -> None:
        self._resolve(key).unlink(missing_ok=True)

    async def store(self, data: bytes, original_name: str | None, content_type: str | None) -> StoredObject:
        key = build_key(original_name, self.prefix)
        await run_in_threadpool(self._write, key, data)
        logger.debug("Stored blob %s (%d bytes)", key, len(data))
        return StoredObject(
            key=key,
            content_type=content_type or DEFAULT_CONTENT_TYPE,
            size=len(data),
            sha256=sha256_hex(data),
        )

    async def load(self, key: str) -> bytes:
        return await run_in_threadpool(self._resolve(key).read_bytes)

    async def delete(self, key: str) -> None:
        await run_in_threadpool(self._unlink, key)
        logger.debug("Deleted blob %s", key)
