import pytest

from pwfluent.network.recorder import RequestRecorder, record_requests_to
from pwfluent.network.request_info import RecordedRequest
from tests.unit.fakes import FakeNetworkPage, FakeRequest, FakeResponse


def test_single_shot_records_only_the_matching_request():
    page = FakeNetworkPage()
    seen = []

    session = record_requests_to("/foobar", lambda: False, page, seen.append)
    page.emit("request", FakeRequest("http://localhost:1234/other"))
    page.emit("request", FakeRequest("http://localhost:1234/foobar?foo=bar"))
    page.emit("request", FakeRequest("http://localhost:1234/foobar?again=1"))

    assert len(session.requests) == 1
    assert session.requests[0].url.endswith("/foobar?foo=bar")
    assert seen == session.requests
    # the listener is gone once the predicate said stop
    assert page.listeners["request"] == []
    assert session.active is False


def test_take_all_keeps_recording_in_order():
    page = FakeNetworkPage()
    recorder = RequestRecorder()
    recorder.start(page, "/api/")
    for n in range(3):
        page.emit("request", FakeRequest(f"http://host/api/items/{n}"))
    page.emit("request", FakeRequest("http://host/static/app.js"))

    urls = [r.url for r in recorder.get_recorded_requests_to("/api/")]
    assert urls == [f"http://host/api/items/{n}" for n in range(3)]
    assert recorder.get_last_recorded_request_to("/api/").url.endswith("/2")
    assert recorder.get_recorded_requests_to("/static/") == []


def test_predicate_is_asked_after_each_match():
    page = FakeNetworkPage()
    budget = iter([True, False])
    session = record_requests_to("/x", lambda: next(budget), page, None)
    for _ in range(4):
        page.emit("request", FakeRequest("http://host/x"))
    assert len(session.requests) == 2


def test_returned_log_is_a_copy_and_can_be_cleared():
    page = FakeNetworkPage()
    recorder = RequestRecorder()
    recorder.start(page, "/foo")
    page.emit("request", FakeRequest("http://host/foo"))

    snapshot = recorder.get_recorded_requests_to("/foo")
    snapshot.clear()
    assert len(recorder.get_recorded_requests_to("/foo")) == 1

    recorder.clear_recorded_requests_to("/foo")
    assert recorder.get_recorded_requests_to("/foo") == []
    assert recorder.get_last_recorded_request_to("/foo") is None


@pytest.mark.asyncio
async def test_recorded_request_settles_once():
    request = FakeRequest(
        "http://host/foo",
        method="POST",
        post_data='{"foo": "bar"}',
        response=FakeResponse(status=502, status_text="Bad Gateway"),
    )
    recorded = RecordedRequest(request)
    assert recorded.settled is False
    assert recorded.post_data == {"foo": "bar"}

    info = await recorded.settle()
    again = await recorded.settle()

    assert info is again
    assert request.response_calls == 1
    assert recorded.settled is True
    assert info.response.status == 502
    assert "settled" in repr(recorded)
