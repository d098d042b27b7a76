"""Tests for the keyed debouncer."""

from __future__ import annotations

import asyncio

import pytest

from tabweave.runtime.sync.debounce import Debouncer


@pytest.fixture
def debouncer():
    return Debouncer(default_delay=0.01)


async def test_burst_collapses_to_one_run(debouncer):
    calls: list[str] = []

    async def action() -> None:
        calls.append("run")

    for _ in range(5):
        debouncer.schedule("tab:1", action)
    await debouncer.wait_idle()

    assert calls == ["run"]


async def test_distinct_keys_run_independently(debouncer):
    calls: list[str] = []

    def make(name: str):
        async def action() -> None:
            calls.append(name)

        return action

    debouncer.schedule("tab:1", make("one"))
    debouncer.schedule("tab:2", make("two"))
    assert debouncer.pending_keys == {"tab:1", "tab:2"}
    await debouncer.wait_idle()

    assert sorted(calls) == ["one", "two"]
    assert debouncer.pending_keys == set()


async def test_last_scheduled_action_wins(debouncer):
    calls: list[str] = []

    async def first() -> None:
        calls.append("first")

    async def second() -> None:
        calls.append("second")

    debouncer.schedule("k", first)
    debouncer.schedule("k", second)
    await debouncer.wait_idle()

    assert calls == ["second"]


async def test_cancel(debouncer):
    calls: list[str] = []

    async def action() -> None:
        calls.append("run")

    debouncer.schedule("k", action)
    assert debouncer.is_pending("k")
    assert debouncer.cancel("k") is True
    assert debouncer.cancel("k") is False
    await asyncio.sleep(0.03)

    assert calls == []
    assert not debouncer.is_pending("k")


async def test_cancel_all(debouncer):
    calls: list[str] = []

    async def action() -> None:
        calls.append("run")

    debouncer.schedule("a", action)
    debouncer.schedule("b", action)
    debouncer.cancel_all()
    await asyncio.sleep(0.03)

    assert calls == []
    assert debouncer.pending_keys == set()


async def test_failing_action_is_logged_not_raised(debouncer):
    calls: list[str] = []

    async def broken() -> None:
        raise RuntimeError("boom")

    async def healthy() -> None:
        calls.append("ok")

    debouncer.schedule("k", broken)
    await debouncer.wait_idle()
    debouncer.schedule("k", healthy)
    await debouncer.wait_idle()

    assert calls == ["ok"]


async def test_same_key_never_runs_concurrently(debouncer):
    started = asyncio.Event()
    release = asyncio.Event()
    running = 0
    max_running = 0
    runs = 0

    async def action() -> None:
        nonlocal running, max_running, runs
        running += 1
        max_running = max(max_running, running)
        started.set()
        await release.wait()
        running -= 1
        runs += 1

    debouncer.schedule("k", action)
    await started.wait()
    # Re-arm while the first run is still in progress.
    debouncer.schedule("k", action, delay=0)
    await asyncio.sleep(0.02)
    release.set()
    await debouncer.wait_idle()

    assert runs == 2
    assert max_running == 1


async def test_explicit_delay_overrides_default():
    debouncer = Debouncer(default_delay=10)
    calls: list[str] = []

    async def action() -> None:
        calls.append("run")

    debouncer.schedule("k", action, delay=0)
    await asyncio.wait_for(debouncer.wait_idle(), timeout=1)

    assert calls == ["run"]
