# backend/utils/file_store.py
import logging
from pathlib import Path
from urllib.parse import quote, urljoin

from fastapi.concurrency import run_in_threadpool

from utils.table_store import StorageRequestError

logger = logging.getLogger(__name__)

# Containers
PRODUCT_IMAGES = "product-images"
PROOF_OF_PAYMENT = "proof-of-payment"


class LocalFileStore:
    """Blob/file store on the local filesystem.

    Each container is a directory under ``root``; files are served by the
    static mount at ``public_prefix``.
    """

    def __init__(self, root, base_url: str, public_prefix: str = "/static/uploads"):
        self.root = Path(root)
        self.base_url = base_url
        self.public_prefix = public_prefix.rstrip("/")

    def _path(self, container: str, key: str) -> Path:
        if "/" in key or "\\" in key or key in {"", ".", ".."}:
            raise StorageRequestError(400, f"Invalid file name: {key!r}")
        return self.root / container / key

    def get_url(self, container: str, key: str) -> str:
        path = f"{self.public_prefix}/{container}/{quote(key)}"
        return urljoin(self.base_url.rstrip("/") + "/", path.lstrip("/"))

    def _write(self, path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "wb") as buffer:
            buffer.write(data)

    async def put(self, container: str, key: str, data: bytes) -> str:
        path = self._path(container, key)
        try:
            await run_in_threadpool(self._write, path, data)
        except OSError as e:
            logger.error(f"File store write failed for {container}/{key}: {e}")
            raise StorageRequestError(503, f"File save error: {e}") from e
        return self.get_url(container, key)

    async def exists(self, container: str, key: str) -> bool:
        return self._path(container, key).is_file()

    async def delete(self, container: str, key: str) -> None:
        path = self._path(container, key)
        try:
            path.unlink()
        except FileNotFoundError:
            raise StorageRequestError(404, f"File {container}/{key} not found")
        except OSError as e:
            logger.error(f"File store delete failed for {container}/{key}: {e}")
            raise StorageRequestError(503, f"File delete error: {e}") from e
