from __future__ import annotations

import asyncio

from backoffice_browser.debounce import DebouncedInput


def test_burst_commits_once_with_last_value() -> None:
    commits: list[str] = []

    async def scenario() -> None:
        buffer = DebouncedInput(commits.append, delay_seconds=0.05)
        for value in ("s", "so", "soc", "sock", "socks"):
            buffer.observe(value)
            await asyncio.sleep(0.005)
        await asyncio.sleep(0.15)

    asyncio.run(scenario())

    assert commits == ["socks"]


def test_separate_windows_commit_separately() -> None:
    commits: list[str] = []

    async def scenario() -> None:
        buffer = DebouncedInput(commits.append, delay_seconds=0.02)
        buffer.observe("cream")
        await asyncio.sleep(0.1)
        buffer.observe("serum")
        await asyncio.sleep(0.1)

    asyncio.run(scenario())

    assert commits == ["cream", "serum"]


def test_flush_commits_pending_value_immediately() -> None:
    commits: list[str] = []

    async def scenario() -> bool:
        buffer = DebouncedInput(commits.append, delay_seconds=10)
        buffer.observe("mask")
        flushed = buffer.flush()
        assert buffer.has_pending is False
        return flushed and not buffer.flush()

    assert asyncio.run(scenario()) is True
    assert commits == ["mask"]


def test_cancel_drops_pending_value() -> None:
    commits: list[str] = []

    async def scenario() -> None:
        buffer = DebouncedInput(commits.append, delay_seconds=0.02)
        buffer.observe("toner")
        buffer.cancel()
        await asyncio.sleep(0.08)

    asyncio.run(scenario())

    assert commits == []


def test_zero_delay_commits_synchronously() -> None:
    commits: list[str] = []
    buffer = DebouncedInput(commits.append, delay_seconds=0)

    buffer.observe("lip balm")

    assert commits == ["lip balm"]
