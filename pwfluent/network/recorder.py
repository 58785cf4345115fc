from __future__ import annotations

"""Request recording
-------------------
Subscribes to a page's `request` event and keeps, per URL fragment, the list
of matching requests in the order they were issued.
"""

from dataclasses import dataclass, field
from typing import Callable, List, Optional

from playwright.async_api import Page, Request

from pwfluent.network.request_info import RecordedRequest
from pwfluent.utils.logger import get_logger, log_with_context

log = get_logger(__name__)

TakeAllPredicate = Callable[[], bool]
RequestCallback = Callable[[RecordedRequest], None]


def take_all() -> bool:
    return True


@dataclass
class RecordingSession:
    url_fragment: str
    take_all_predicate: TakeAllPredicate
    on_request: Optional[RequestCallback] = None
    requests: List[RecordedRequest] = field(default_factory=list)
    active: bool = True


def record_requests_to(
    url_fragment: str,
    take_all_predicate: TakeAllPredicate,
    page: Page,
    on_request: Optional[RequestCallback] = None,
) -> RecordingSession:
    """
    Record every request whose URL contains `url_fragment`.

    `take_all_predicate()` is asked after each match whether recording goes on;
    once it answers False the listener is removed from the page, so
    `lambda: False` captures exactly one request.
    """
    session = RecordingSession(url_fragment, take_all_predicate, on_request)
    slog = log_with_context(log, recording=url_fragment)

    def _listener(request: Request) -> None:
        if not session.active or url_fragment not in request.url:
            return
        recorded = RecordedRequest(request)
        session.requests.append(recorded)
        slog.debug(f"Recorded {request.method} {request.url}")
        if session.on_request is not None:
            session.on_request(recorded)
        if not session.take_all_predicate():
            session.active = False
            page.remove_listener("request", _listener)
            slog.debug("Recording stopped by take-all predicate")

    page.on("request", _listener)
    return session


class RequestRecorder:
    """Page-scoped log of recording sessions."""

    def __init__(self) -> None:
        self.sessions: List[RecordingSession] = []

    def start(
        self,
        page: Page,
        url_fragment: str,
        take_all_predicate: TakeAllPredicate = take_all,
        on_request: Optional[RequestCallback] = None,
    ) -> RecordingSession:
        session = record_requests_to(url_fragment, take_all_predicate, page, on_request)
        self.sessions.append(session)
        return session

    def get_recorded_requests_to(self, url_fragment: str) -> List[RecordedRequest]:
        result: List[RecordedRequest] = []
        for session in self.sessions:
            if session.url_fragment == url_fragment:
                result.extend(session.requests)
        return result

    def get_last_recorded_request_to(self, url_fragment: str) -> Optional[RecordedRequest]:
        requests = self.get_recorded_requests_to(url_fragment)
        return requests[-1] if requests else None

    def clear_recorded_requests_to(self, url_fragment: str) -> None:
        for session in self.sessions:
            if session.url_fragment == url_fragment:
                session.requests.clear()
