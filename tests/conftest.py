from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from repo_context.config import CheckState, ListingEntry, NodeKind, TreeNode
from repo_context.exceptions import ContentFetchError, ListingError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Mapping


class FakeSource:
    """In-memory `ContentSource` built from a flat `{path: content}` mapping.

    Directories are implied by the paths. Listings and reads are recorded so
    tests can assert on the calls that were made. Coroutines registered in
    `before_listing` / `before_read` run once, before the matching call answers,
    to interleave other work with an in-flight fetch.
    """

    def __init__(
        self,
        files: Mapping[str, str],
        *,
        sizes: Mapping[str, int] | None = None,
        failing_listings: set[str] | None = None,
        failing_contents: set[str] | None = None,
    ) -> None:
        self.files = dict(files)
        self.sizes = dict(sizes or {})
        self.failing_listings = failing_listings or set()
        self.failing_contents = failing_contents or set()
        self.listed: list[str] = []
        self.fetched: list[str] = []
        self.before_listing: dict[str, Callable[[], Awaitable[object]]] = {}
        self.before_read: dict[str, Callable[[], Awaitable[object]]] = {}

    def _size(self, path: str) -> int:
        return self.sizes.get(path, len(self.files[path].encode("utf-8")))

    async def list_directory(self, path: str) -> list[ListingEntry]:
        self.listed.append(path)
        if path in self.before_listing:
            await self.before_listing.pop(path)()
        if path in self.failing_listings:
            raise ListingError(path=path, reason="boom")
        prefix = f"{path}/" if path else ""
        seen: dict[str, ListingEntry] = {}
        for file_path in self.files:
            if not file_path.startswith(prefix):
                continue
            head, _, rest = file_path[len(prefix) :].partition("/")
            child = prefix + head
            if rest:
                seen.setdefault(head, ListingEntry(name=head, path=child, type="dir"))
            else:
                seen[head] = ListingEntry(name=head, path=child, type="file", size=self._size(file_path))
        return list(seen.values())

    async def get_file_content(self, path: str) -> str:
        self.fetched.append(path)
        if path in self.before_read:
            await self.before_read.pop(path)()
        if path in self.failing_contents or path not in self.files:
            raise ContentFetchError(path=path, reason="boom")
        return self.files[path]


@pytest.fixture
def source_factory() -> Callable[..., FakeSource]:
    return FakeSource


@pytest.fixture
def make_file() -> Callable[..., TreeNode]:
    def factory(
        path: str,
        size: int,
        *,
        checked: bool = True,
        ignored: bool = False,
    ) -> TreeNode:
        return TreeNode(
            name=path.rsplit("/", 1)[-1],
            path=path,
            kind=NodeKind.FILE,
            depth=path.count("/"),
            size=size,
            is_ignored=ignored,
            is_checked=CheckState.from_bool(checked and not ignored),
        )

    return factory


@pytest.fixture
def make_dir() -> Callable[..., TreeNode]:
    def factory(
        path: str,
        children: tuple[TreeNode, ...] = (),
        *,
        checked: CheckState = CheckState.CHECKED,
        expanded: bool = True,
        ignored: bool = False,
    ) -> TreeNode:
        return TreeNode(
            name=path.rsplit("/", 1)[-1],
            path=path,
            kind=NodeKind.DIR,
            depth=path.count("/"),
            is_expanded=expanded,
            is_ignored=ignored,
            is_checked=checked,
            children=children,
        )

    return factory
