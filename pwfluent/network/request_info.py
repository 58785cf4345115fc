from __future__ import annotations

"""Recorded requests
-------------------
A RecordedRequest wraps a Playwright request as soon as it is observed; its
response is only known once the exchange (real or mocked) has completed, so
every consumer goes through `settle()` / `to_request_info()`.
"""

import html
import json
from typing import Any, Dict, Optional, Union

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Request, Response
from pydantic import BaseModel, ConfigDict, Field

from pwfluent.utils.logger import get_logger

log = get_logger(__name__)


class ResponseInfo(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    status: int
    status_text: str = Field(default="", alias="statusText")
    headers: Dict[str, str] = Field(default_factory=dict)
    payload: Any = None


class RequestInfo(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    url: str
    method: str
    headers: Dict[str, str] = Field(default_factory=dict)
    post_data: Any = Field(default=None, alias="postData")
    response: Optional[ResponseInfo] = None

    def to_dict(self) -> dict:
        d = self.model_dump(by_alias=True)
        if d.get("response") is None:
            d.pop("response", None)
        return d


def _parse_post_data(raw: Optional[str]) -> Any:
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        return raw


async def _read_payload(response: Response) -> Any:
    content_type = (response.headers.get("content-type") or "").lower()
    try:
        text = await response.text()
    except (PlaywrightError, UnicodeDecodeError) as exc:
        # redirects and binary bodies have no readable text
        log.debug(f"No readable payload for {response.url}: {exc}")
        return None

    if "json" in content_type:
        try:
            return json.loads(text)
        except ValueError:
            return text
    if "text/html" in content_type:
        return html.escape(text, quote=False)
    return text


async def to_request_info(request: Request) -> RequestInfo:
    """Wait for the request to settle and snapshot it, including its response if any."""
    response = await request.response()
    response_info: Optional[ResponseInfo] = None
    if response is not None:
        response_info = ResponseInfo(
            status=response.status,
            status_text=response.status_text,
            headers=dict(response.headers),
            payload=await _read_payload(response),
        )
    return RequestInfo(
        url=request.url,
        method=request.method,
        headers=dict(request.headers),
        post_data=_parse_post_data(request.post_data),
        response=response_info,
    )


class RecordedRequest:
    """One observed outbound request; immutable once settled."""

    def __init__(self, request: Request) -> None:
        self.request = request
        self._info: Optional[RequestInfo] = None

    @property
    def url(self) -> str:
        return self.request.url

    @property
    def method(self) -> str:
        return self.request.method

    @property
    def headers(self) -> Dict[str, str]:
        return dict(self.request.headers)

    @property
    def post_data(self) -> Any:
        return _parse_post_data(self.request.post_data)

    @property
    def settled(self) -> bool:
        return self._info is not None

    async def settle(self) -> RequestInfo:
        if self._info is None:
            self._info = await to_request_info(self.request)
        return self._info

    def __repr__(self) -> str:
        state = "settled" if self.settled else "pending"
        return f"<RecordedRequest {self.method} {self.url} ({state})>"


async def stringify_request(request: Union[RecordedRequest, Request]) -> str:
    """JSON form `{url, method, headers, postData, response?}`, produced after settlement."""
    if isinstance(request, RecordedRequest):
        info = await request.settle()
    else:
        info = await to_request_info(request)
    return json.dumps(info.to_dict(), indent=2, default=str)
