"""
pwfluent
--------
Fluent selectors, request recording and request mocking for end-to-end UI
tests on top of Playwright.
"""

from pwfluent.core.fluent import PlaywrightFluent
from pwfluent.network import (
    FluentMock,
    MockRouter,
    RecordedRequest,
    RequestInfo,
    RequestRecorder,
    load_mocks_file,
    record_requests_to,
    stringify_request,
)
from pwfluent.selectors import FluentSelector, SelectorChain, SelectorResolver
from pwfluent.utils.timing import StabilityTimeoutError, WaitUntilOptions, wait_for_stability_of, wait_until

__version__ = "0.1.0"

__all__ = [
    "PlaywrightFluent",
    "FluentMock",
    "MockRouter",
    "RecordedRequest",
    "RequestInfo",
    "RequestRecorder",
    "load_mocks_file",
    "record_requests_to",
    "stringify_request",
    "FluentSelector",
    "SelectorChain",
    "SelectorResolver",
    "StabilityTimeoutError",
    "WaitUntilOptions",
    "wait_for_stability_of",
    "wait_until",
]
