"""
Network package
---------------
Recording of outbound requests and mocking of their responses.
"""

from .mock_loader import load_mocks_file
from .mocks import FluentMock, MockRouter
from .recorder import RecordingSession, RequestRecorder, record_requests_to
from .request_info import RecordedRequest, RequestInfo, ResponseInfo, stringify_request, to_request_info

__all__ = [
    "FluentMock",
    "MockRouter",
    "load_mocks_file",
    "RecordingSession",
    "RequestRecorder",
    "record_requests_to",
    "RecordedRequest",
    "RequestInfo",
    "ResponseInfo",
    "stringify_request",
    "to_request_info",
]
