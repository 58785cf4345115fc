import pytest

from pwfluent.utils.timing import (
    PageClosedError,
    StabilityTimeoutError,
    Stopwatch,
    WaitUntilOptions,
    measure,
    wait_for_stability_of,
    wait_until,
)

FAST = WaitUntilOptions(stability_in_milliseconds=100, timeout_in_milliseconds=1000, polling_interval_in_milliseconds=10)


@pytest.mark.asyncio
async def test_wait_until_requires_stability_window():
    calls = {"n": 0}

    async def predicate():
        calls["n"] += 1
        return calls["n"] >= 3

    with Stopwatch() as sw:
        await wait_until(predicate, FAST)
    assert sw.elapsed_ms() >= 100
    assert calls["n"] > 3


@pytest.mark.asyncio
async def test_transient_true_does_not_satisfy_wait_until():
    # true once every 3 polls: never stays true for the window
    calls = {"n": 0}

    def flaky():
        calls["n"] += 1
        return calls["n"] % 3 == 0

    opts = WaitUntilOptions(stability_in_milliseconds=50, timeout_in_milliseconds=300, polling_interval_in_milliseconds=10)
    with pytest.raises(StabilityTimeoutError) as exc:
        await wait_until(flaky, opts, error_message="flaky banner never settled")

    assert exc.value.elapsed_ms >= 300
    assert exc.value.last_observation in (True, False)
    assert "flaky banner never settled" in str(exc.value)
    assert isinstance(exc.value, TimeoutError)


@pytest.mark.asyncio
async def test_wait_until_without_throw_returns_quietly():
    opts = WaitUntilOptions(stability_in_milliseconds=0, timeout_in_milliseconds=50, polling_interval_in_milliseconds=10, throw_on_timeout=False)
    await wait_until(lambda: False, opts)


@pytest.mark.asyncio
async def test_wait_for_stability_of_returns_the_settled_value():
    values = iter([1, 2, 3, 3, 3, 3, 3, 3, 3, 3, 3, 3, 3, 3, 3, 3, 3, 3, 3, 3])

    async def producer():
        return next(values, 3)

    assert await wait_for_stability_of(producer, FAST) == 3


@pytest.mark.asyncio
async def test_wait_for_stability_of_times_out_with_last_value():
    counter = {"n": 0}

    def ever_growing():
        counter["n"] += 1
        return counter["n"]

    with pytest.raises(StabilityTimeoutError) as exc:
        await wait_for_stability_of(ever_growing, FAST)
    assert exc.value.last_observation == counter["n"]
    assert exc.value.elapsed_ms >= 1000


@pytest.mark.asyncio
async def test_teardown_cancels_the_wait_immediately():
    state = {"closed": False, "polls": 0}

    def predicate():
        state["polls"] += 1
        if state["polls"] == 2:
            state["closed"] = True
        return False

    with Stopwatch() as sw:
        with pytest.raises(PageClosedError):
            await wait_until(predicate, FAST, is_cancelled=lambda: state["closed"])
    assert sw.elapsed_ms() < 1000


@pytest.mark.asyncio
async def test_errors_during_teardown_become_page_closed():
    state = {"closed": False}

    async def producer():
        state["closed"] = True
        raise RuntimeError("Target page, context or browser has been closed")

    with pytest.raises(PageClosedError):
        await wait_for_stability_of(producer, FAST, is_cancelled=lambda: state["closed"])


@pytest.mark.asyncio
async def test_errors_while_page_alive_propagate():
    def broken():
        raise KeyError("boom")

    with pytest.raises(KeyError):
        await wait_until(broken, FAST, is_cancelled=lambda: False)


def test_options_from_settings_accept_overrides():
    opts = WaitUntilOptions.from_settings(stability_in_milliseconds=1000)
    assert opts.stability_in_milliseconds == 1000
    assert opts.throw_on_timeout is True


@pytest.mark.asyncio
async def test_measure_wraps_sync_and_async():
    @measure("sync op")
    def add(a, b):
        return a + b

    @measure()
    async def double(x):
        return x * 2

    assert add(1, 2) == 3
    assert await double(4) == 8
    assert double.__name__ == "double"
