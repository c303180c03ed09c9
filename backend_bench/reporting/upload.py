r"""
Upload collaborator and credential cache.

The credential is explicit configuration: callers load it from a
TokenCache (or anywhere else) and pass it to upload(). Nothing here reads
ambient process state.

    from backend_bench.reporting.upload import ResultUploader, TokenCache

    token = TokenCache(get_token_cache_path()).load()
    ResultUploader("https://bench.example.org/api/results").upload(result_set, token=token)
"""

import logging
import os
from pathlib import Path

import httpx

from backend_bench.errors import UploadFailure
from backend_bench.reporting.formats import serialize
from backend_bench.types import ResultSet

__all__ = ["ResultUploader", "TokenCache"]

logger = logging.getLogger(__name__)

USER_AGENT = "backend-bench"


class TokenCache:
    """File-backed bearer token storage.

    On POSIX the file is readable by its owner only (0o600).
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def save(self, token: str) -> None:
        """Store a token, replacing any previous one."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self._path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w") as f:
            f.write(token)
        if os.name == "posix":
            os.chmod(self._path, 0o600)
        logger.info("Token saved at %s", self._path)

    def load(self) -> str | None:
        """First line of the cache file, or None if there is no token."""
        try:
            contents = self._path.read_text()
        except FileNotFoundError:
            return None
        lines = contents.splitlines()
        return lines[0] if lines and lines[0] else None

    def clear(self) -> None:
        """Delete the cached token."""
        self._path.unlink(missing_ok=True)


class ResultUploader:
    """POSTs finalized ResultSets to a reporting endpoint.

    Args:
        url: Endpoint receiving the JSON-encoded ResultSet.
        client: Preconfigured httpx client (one is created per call otherwise).
        timeout: Request timeout in seconds.
    """

    def __init__(self, url: str, *, client: httpx.Client | None = None, timeout: float = 30.0) -> None:
        self._url = url
        self._client = client
        self._timeout = timeout

    def upload(self, result_set: ResultSet, *, token: str | None = None) -> httpx.Response:
        """Send a ResultSet, authenticated with `token` when given.

        Raises:
            UploadFailure: Transport error or non-2xx response.
        """
        headers = {
            "User-Agent": USER_AGENT,
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"

        body = serialize(result_set)
        try:
            if self._client is not None:
                response = self._client.post(self._url, content=body, headers=headers, timeout=self._timeout)
            else:
                with httpx.Client(timeout=self._timeout) as client:
                    response = client.post(self._url, content=body, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise UploadFailure(f"Upload rejected with HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise UploadFailure(f"Upload to {self._url} failed: {e}") from e

        logger.info("Uploaded %d results to %s", result_set.success_count + result_set.failure_count, self._url)
        return response
