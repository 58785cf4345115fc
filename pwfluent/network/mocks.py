from __future__ import annotations

"""Request mocking
-----------------
Intercepts every request of a page, picks the first registered mock whose
URL *and* method matchers accept it, and fulfills it without touching the
network. Requests no mock accepts continue to the real network untouched.
"""

import json
from dataclasses import dataclass, fields
from typing import Any, Callable, Dict, Iterable, List, Literal, Mapping, Optional, Union

from playwright.async_api import Page, Route

from pwfluent.utils.logger import get_logger, log_with_context
from pwfluent.utils.timing import async_sleep_ms

log = get_logger(__name__)

ResponseType = Literal["json", "string"]
Headers = Dict[str, str]


def _no_url(url: str) -> bool:
    return False


def _any_method(method: str) -> bool:
    return True


def _empty_json() -> Any:
    return {}


def _empty_string() -> str:
    return ""


def _same_headers(headers: Headers) -> Headers:
    return headers


@dataclass
class FluentMock:
    display_name: str = "not set"
    url_matcher: Callable[[str], bool] = _no_url
    method_matcher: Callable[[str], bool] = _any_method
    response_type: ResponseType = "json"
    json_response: Callable[[], Any] = _empty_json
    raw_response: Callable[[], str] = _empty_string
    status: int = 200
    enrich_response_headers: Callable[[Headers], Headers] = _same_headers
    delay_in_milliseconds: int = 0

    @classmethod
    def from_partial(cls, partial: Union["FluentMock", Mapping[str, Any]]) -> "FluentMock":
        """Fill the fields a caller did not provide with the defaults above."""
        if isinstance(partial, FluentMock):
            return partial
        known = {f.name for f in fields(cls)}
        unknown = set(partial) - known
        if unknown:
            raise ValueError(f"Unknown mock field(s): {', '.join(sorted(unknown))}")
        return cls(**dict(partial))

    def matches(self, url: str, method: str) -> bool:
        return bool(self.url_matcher(url)) and bool(self.method_matcher(method))


MockLike = Union[FluentMock, Mapping[str, Any]]


def default_response_headers(response_type: ResponseType) -> Headers:
    content_type = "application/json" if response_type == "json" else "text/plain"
    return {
        "content-type": content_type,
        "access-control-allow-origin": "*",
        "access-control-allow-credentials": "true",
    }


def build_response(mock: FluentMock) -> dict:
    """Keyword arguments for Route.fulfill()."""
    if mock.response_type == "json":
        body = json.dumps(mock.json_response())
    elif mock.response_type == "string":
        body = mock.raw_response()
    else:
        raise ValueError(f"Mock '{mock.display_name}': unsupported response type {mock.response_type!r}")
    headers = mock.enrich_response_headers(default_response_headers(mock.response_type))
    return {"status": mock.status, "headers": dict(headers), "body": body}


class MockRouter:
    """Ordered mock rules for one page. Rules keep their registration order across calls."""

    def __init__(self) -> None:
        self.mocks: List[FluentMock] = []
        self._pages: List[Page] = []

    def with_mocks(self, mocks: Iterable[MockLike]) -> "MockRouter":
        self.mocks.extend(FluentMock.from_partial(m) for m in mocks)
        return self

    async def install(self, page: Page) -> None:
        """Route every request of `page` through this router (once per page)."""
        if any(p is page for p in self._pages):
            return
        await page.route("**/*", self.handle_route)
        self._pages.append(page)

    def find_mock(self, url: str, method: str) -> Optional[FluentMock]:
        for mock in self.mocks:
            if mock.matches(url, method):
                return mock
        return None

    async def handle_route(self, route: Route) -> None:
        request = route.request
        url, method = request.url, request.method
        mock = self.find_mock(url, method)
        if mock is None:
            await route.continue_()
            return

        mlog = log_with_context(log, mock=mock.display_name)
        if mock.delay_in_milliseconds > 0:
            mlog.debug(f"Delaying {method} {url} by {mock.delay_in_milliseconds} ms")
            await async_sleep_ms(mock.delay_in_milliseconds)
        response = build_response(mock)
        await route.fulfill(**response)
        mlog.debug(f"Mocked {method} {url} -> {response['status']}")
