"""Content sources: the collaborators that list directories and read files.

The tree engine only ever talks to a `ContentSource`. Two are provided:

- `GitHubSource` reads a remote repository through the GitHub REST
  "contents" API with an `httpx.AsyncClient`.
- `LocalSource` serves a directory on disk with the same interface, which
  is handy for local exports and for tests.

Sources raise `ListingError` / `ContentFetchError`; deciding that a failure
degrades to "empty" is left to the callers in the tree and assembler code.
"""

from __future__ import annotations

import base64
import binascii
import os
import re
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, Self
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from repo_context.config import ListingEntry, RateLimit
from repo_context.exceptions import ContentFetchError, ListingError, RateLimitError
from repo_context.logging import logger

if TYPE_CHECKING:
    from types import TracebackType

GITHUB_API_URL = "https://api.github.com"
GITHUB_API_VERSION = "2022-11-28"
_WHITESPACE = re.compile(r"\s")


class ContentSource(Protocol):
    """What the tree engine needs from a repository backend."""

    async def list_directory(self, path: str) -> list[ListingEntry]:
        """List the immediate entries of `path` ("" for the root)."""
        ...

    async def get_file_content(self, path: str) -> str:
        """Return the decoded text content of the file at `path`."""
        ...


class GitHubSource:
    """Read a GitHub repository through the REST contents API.

    Args:
        owner: Repository owner (user or organisation).
        repo: Repository name.
        token: Optional token sent as a bearer credential.
        api_url: Base URL of the API, for GitHub Enterprise installs.
        ref: Optional branch, tag or commit to read instead of the default branch.
        timeout: Transport timeout in seconds.
        transport: Optional httpx transport, mostly for tests.
    """

    def __init__(
        self,
        owner: str,
        repo: str,
        *,
        token: str | None = None,
        api_url: str = GITHUB_API_URL,
        ref: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.owner = owner
        self.repo = repo
        self.ref = ref
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=api_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def _contents_url(self, path: str) -> str:
        url = f"/repos/{quote(self.owner)}/{quote(self.repo)}/contents"
        path = path.strip("/")
        return f"{url}/{quote(path)}" if path else url

    def _params(self) -> dict[str, str] | None:
        return {"ref": self.ref} if self.ref else None

    async def _get_json(self, url: str) -> Any:  # noqa: ANN401
        response = await self._client.get(url, params=self._params())
        response.raise_for_status()
        return response.json()

    async def list_directory(self, path: str) -> list[ListingEntry]:
        """List the entries of a directory.

        A path that points at a single file yields a one-element listing,
        as the contents API answers with an object instead of an array.

        Raises:
            ListingError: on transport/HTTP failures or an unexpected payload shape.
        """
        try:
            payload = await self._get_json(self._contents_url(path))
        except (httpx.HTTPError, ValueError) as e:
            raise ListingError(path=path, reason=str(e)) from e

        items = payload if isinstance(payload, list) else [payload]
        try:
            return [ListingEntry.model_validate(item) for item in items]
        except ValidationError as e:
            raise ListingError(path=path, reason=f"malformed listing: {e}") from e

    async def get_file_content(self, path: str) -> str:
        """Fetch and decode the content of a file.

        Raises:
            ContentFetchError: on transport/HTTP failures or undecodable content.
        """
        try:
            payload = await self._get_json(self._contents_url(path))
        except (httpx.HTTPError, ValueError) as e:
            raise ContentFetchError(path=path, reason=str(e)) from e

        if not isinstance(payload, dict):
            raise ContentFetchError(path=path, reason="path is not a file")
        content = payload.get("content")
        if not content:
            # Files over 1 MB come back with encoding "none" and no inline content.
            if payload.get("encoding") == "none" or payload.get("size"):
                logger.warning(
                    "File content not returned by the contents API",
                    path=path,
                    reason=f"encoding={payload.get('encoding')!r} size={payload.get('size')}",
                )
            return ""
        try:
            raw = base64.b64decode(_WHITESPACE.sub("", content), validate=True)
        except (binascii.Error, TypeError) as e:
            raise ContentFetchError(path=path, reason=f"invalid base64 content: {e}") from e
        return raw.decode("utf-8", errors="replace")

    async def get_rate_limit(self) -> RateLimit:
        """Query the remaining API quota for the current credentials.

        Raises:
            RateLimitError: if the status cannot be fetched or parsed.
        """
        try:
            response = await self._client.get("/rate_limit")
            response.raise_for_status()
            return RateLimit.model_validate(response.json()["rate"])
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
            raise RateLimitError(reason=str(e)) from e


class LocalSource:
    """Serve a directory on disk through the `ContentSource` interface.

    Paths are POSIX-style and relative to `root`, like repository paths.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root).resolve()

    def _resolve(self, path: str) -> Path:
        target = (self.root / path.strip("/")).resolve()
        if target != self.root and self.root not in target.parents:
            msg = f"{path!r} escapes the source root"
            raise ValueError(msg)
        return target

    async def list_directory(self, path: str) -> list[ListingEntry]:
        try:
            target = self._resolve(path)
            with os.scandir(target) as it:
                dir_entries = list(it)
        except (OSError, ValueError) as e:
            raise ListingError(path=path, reason=str(e)) from e

        entries: list[ListingEntry] = []
        prefix = path.strip("/")
        for entry in dir_entries:
            rel = f"{prefix}/{entry.name}" if prefix else entry.name
            try:
                is_dir = entry.is_dir(follow_symlinks=False)
                size = 0 if is_dir else entry.stat(follow_symlinks=False).st_size
            except OSError as e:
                logger.warning("Skipping unreadable entry", path=rel, error=str(e))
                continue
            entries.append(
                ListingEntry(name=entry.name, path=rel, type="dir" if is_dir else "file", size=size),
            )
        return entries

    async def get_file_content(self, path: str) -> str:
        try:
            return self._resolve(path).read_text(encoding="utf-8", errors="replace")
        except (OSError, ValueError) as e:
            raise ContentFetchError(path=path, reason=str(e)) from e
