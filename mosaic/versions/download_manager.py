"""Download manager: fetch a URL to a path, verifying its digest."""

import asyncio
import hashlib
import logging
from pathlib import Path
from typing import Optional

import aiofiles
import aiohttp

from ..errors import HashMismatch, NetworkError, UnsupportedHashLength
from ..utils.cancel import CancellationToken, check_cancelled
from ..utils.progress import ProgressCallback, ProgressEvent, report_progress

logger = logging.getLogger(__name__)

_HASH_ALGORITHMS = {
    40: "sha1",
    64: "sha256",
}


def hash_algorithm(expected_hash: str) -> str:
    """Pick the digest algorithm from the length of a hex digest."""
    try:
        return _HASH_ALGORITHMS[len(expected_hash)]
    except KeyError:
        raise UnsupportedHashLength(expected_hash) from None


class DownloadManager:
    """Fetches artifacts one at a time.

    A fetch is skipped when the destination already matches the expected
    digest. Nothing is retried here; callers decide their retry policy.
    """

    def __init__(self, session: Optional[aiohttp.ClientSession] = None,
                 chunk_size: int = 64 * 1024, timeout: float = 60.0):
        self.session = session
        self.chunk_size = chunk_size
        self.timeout = aiohttp.ClientTimeout(total=None, sock_read=timeout)
        self._owns_session = session is None
        # Network fetches performed by this manager, skipped files excluded.
        self.fetch_count = 0

    async def __aenter__(self):
        if self.session is None:
            self.session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if self._owns_session and self.session:
            await self.session.close()
            self.session = None

    @staticmethod
    async def file_hash(file_path: Path, algorithm: str = "sha1") -> str:
        """Hex digest of a file, read in chunks."""
        digest = hashlib.new(algorithm)
        async with aiofiles.open(file_path, 'rb') as f:
            while chunk := await f.read(65536):
                digest.update(chunk)
        return digest.hexdigest()

    @classmethod
    async def verify_hash(cls, file_path: Path, expected_hash: str) -> bool:
        """Verify the digest of a file, SHA-1 or SHA-256 depending on its length."""
        algorithm = hash_algorithm(expected_hash)
        return await cls.file_hash(file_path, algorithm) == expected_hash.lower()

    async def fetch(self, url: str, dest: Path, expected_hash: Optional[str] = None,
                    on_progress: Optional[ProgressCallback] = None,
                    cancel: Optional[CancellationToken] = None,
                    stage: str = "download") -> bool:
        """Download ``url`` to ``dest``.

        Returns ``True`` when the file was downloaded and ``False`` when an
        existing file already matched ``expected_hash``.
        """
        algorithm = hash_algorithm(expected_hash) if expected_hash else None
        dest = Path(dest)
        dest.parent.mkdir(parents=True, exist_ok=True)

        if expected_hash and dest.is_file():
            if await self.file_hash(dest, algorithm) == expected_hash.lower():
                logger.debug("File already exists with correct hash: %s", dest)
                return False

        check_cancelled(cancel)
        if self.session is None:
            self.session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True

        logger.debug("Downloading %s to %s", url, dest)
        self.fetch_count += 1
        digest = hashlib.new(algorithm) if algorithm else None
        try:
            async with self.session.get(url) as resp:
                resp.raise_for_status()
                total_size = resp.content_length
                downloaded = 0

                async with aiofiles.open(dest, 'wb') as f:
                    async for chunk in resp.content.iter_chunked(self.chunk_size):
                        check_cancelled(cancel)
                        await f.write(chunk)
                        if digest:
                            digest.update(chunk)
                        downloaded += len(chunk)
                        await report_progress(on_progress, ProgressEvent(
                            stage=stage,
                            file_name=dest.name,
                            downloaded=downloaded,
                            total=total_size,
                            url=url,
                        ))
        except aiohttp.ClientResponseError as e:
            dest.unlink(missing_ok=True)
            raise NetworkError(f"HTTP {e.status} while downloading {url}", url=url, status=e.status) from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            dest.unlink(missing_ok=True)
            raise NetworkError(f"Failed to download {url}: {e}", url=url) from e
        except BaseException:
            dest.unlink(missing_ok=True)
            raise

        if digest:
            actual = digest.hexdigest()
            if actual != expected_hash.lower():
                dest.unlink(missing_ok=True)
                raise HashMismatch(dest, expected_hash, actual)

        logger.debug("Download completed: %s (%d bytes)", dest, downloaded)
        return True
