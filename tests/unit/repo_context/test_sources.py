from __future__ import annotations

import base64
from typing import TYPE_CHECKING

import httpx
import pytest

from repo_context import sources
from repo_context.exceptions import ContentFetchError, ListingError, RateLimitError
from repo_context.sources import GitHubSource, LocalSource

if TYPE_CHECKING:
    from pathlib import Path

    from pytest_mock import MockerFixture

LISTING = [
    {"name": "src", "path": "src", "type": "dir", "size": 0, "sha": "abc", "url": "https://x"},
    {"name": "README.md", "path": "README.md", "type": "file", "size": 12, "sha": "def", "url": "https://y"},
]


def github(handler: httpx.MockTransport | None = None, **kwargs: object) -> GitHubSource:
    return GitHubSource("octo", "demo", transport=handler, **kwargs)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_list_directory_parses_entries_and_sends_headers() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=LISTING)

    async with github(httpx.MockTransport(handler), token="t0k", ref="main") as source:
        entries = await source.list_directory("")

    assert [(e.name, e.kind.value, e.size) for e in entries] == [("src", "dir", 0), ("README.md", "file", 12)]
    request = seen[0]
    assert request.url.path == "/repos/octo/demo/contents"
    assert request.url.params["ref"] == "main"
    assert request.headers["Authorization"] == "Bearer t0k"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_list_directory_quotes_nested_path() -> None:
    paths: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        paths.append(request.url.raw_path.decode().split("?")[0])
        return httpx.Response(200, json=[])

    async with github(httpx.MockTransport(handler)) as source:
        assert await source.list_directory("docs/my notes") == []

    assert paths == ["/repos/octo/demo/contents/docs/my%20notes"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_list_directory_wraps_single_object() -> None:
    transport = httpx.MockTransport(lambda _: httpx.Response(200, json=LISTING[1]))

    async with github(transport) as source:
        entries = await source.list_directory("README.md")

    assert [e.path for e in entries] == ["README.md"]


@pytest.mark.unit
@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(404, json={"message": "Not Found"}),
        httpx.Response(200, json=[{"unexpected": True}]),
        httpx.Response(200, text="not json"),
    ],
)
async def test_list_directory_failures_raise_listing_error(response: httpx.Response) -> None:
    transport = httpx.MockTransport(lambda _: response)

    async with github(transport) as source:
        with pytest.raises(ListingError) as exc_info:
            await source.list_directory("src")

    assert exc_info.value.path == "src"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_get_file_content_decodes_base64() -> None:
    encoded = base64.b64encode("héllo <world>\n".encode()).decode()
    wrapped = "\n".join(encoded[i : i + 8] for i in range(0, len(encoded), 8))
    transport = httpx.MockTransport(
        lambda _: httpx.Response(200, json={"type": "file", "encoding": "base64", "content": wrapped}),
    )

    async with github(transport) as source:
        assert await source.get_file_content("a.txt") == "héllo <world>\n"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_get_file_content_without_content_is_empty() -> None:
    transport = httpx.MockTransport(lambda _: httpx.Response(200, json={"type": "file", "content": ""}))

    async with github(transport) as source:
        assert await source.get_file_content("empty.txt") == ""


@pytest.mark.unit
@pytest.mark.asyncio
async def test_get_file_content_warns_when_api_omits_large_file(mocker: MockerFixture) -> None:
    logger = mocker.patch.object(sources, "logger")
    payload = {"type": "file", "encoding": "none", "content": "", "size": 2_000_000}
    transport = httpx.MockTransport(lambda _: httpx.Response(200, json=payload))

    async with github(transport) as source:
        assert await source.get_file_content("data/huge.csv") == ""

    logger.warning.assert_called_once()
    assert logger.warning.call_args.kwargs["path"] == "data/huge.csv"
    assert "none" in logger.warning.call_args.kwargs["reason"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_get_file_content_failures_raise() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("dir"):
            return httpx.Response(200, json=LISTING)
        msg = "connection reset"
        raise httpx.ConnectError(msg, request=request)

    async with github(httpx.MockTransport(handler)) as source:
        with pytest.raises(ContentFetchError):
            await source.get_file_content("a.txt")
        with pytest.raises(ContentFetchError):
            await source.get_file_content("dir")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_get_rate_limit() -> None:
    payload = {"rate": {"limit": 5000, "remaining": 1250, "reset": 1_700_000_000, "used": 3750}}

    async with github(httpx.MockTransport(lambda _: httpx.Response(200, json=payload))) as source:
        rate = await source.get_rate_limit()

    assert rate.remaining == 1250
    assert rate.remaining_ratio == 0.25

    async with github(httpx.MockTransport(lambda _: httpx.Response(200, json={}))) as source:
        with pytest.raises(RateLimitError):
            await source.get_rate_limit()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_local_source_lists_and_reads(tmp_path: Path) -> None:
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "app.py").write_text("print('hi')\n", encoding="utf-8")
    (tmp_path / "README.md").write_text("# demo\n", encoding="utf-8")
    source = LocalSource(tmp_path)

    root = {e.name: e for e in await source.list_directory("")}
    nested = await source.list_directory("src")

    assert root["src"].kind.value == "dir"
    assert root["README.md"].size == len("# demo\n")
    assert [(e.path, e.size) for e in nested] == [("src/app.py", len("print('hi')\n"))]
    assert await source.get_file_content("src/app.py") == "print('hi')\n"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_local_source_errors(tmp_path: Path) -> None:
    source = LocalSource(tmp_path)

    with pytest.raises(ListingError):
        await source.list_directory("missing")
    with pytest.raises(ContentFetchError):
        await source.get_file_content("missing.txt")
    with pytest.raises(ListingError):
        await source.list_directory("../..")
