"""Tests for the heartbeat context manager."""

from __future__ import annotations

import asyncio

import pytest

from covdelta.utils.heartbeat import heartbeat


async def test_heartbeat_emits_while_block_runs() -> None:
    beats: list[float] = []

    async with heartbeat(0.01, beats.append) as task:
        await asyncio.sleep(0.1)

    assert beats
    assert beats == sorted(beats)
    assert task is not None
    assert task.done()


async def test_heartbeat_stops_when_block_exits() -> None:
    beats: list[float] = []

    async with heartbeat(0.01, beats.append):
        await asyncio.sleep(0.05)

    count = len(beats)
    await asyncio.sleep(0.05)

    assert len(beats) == count


async def test_heartbeat_cancelled_when_block_raises() -> None:
    beats: list[float] = []
    captured: list[asyncio.Task[None] | None] = []

    with pytest.raises(RuntimeError, match="build failed"):
        async with heartbeat(0.01, beats.append) as task:
            captured.append(task)
            await asyncio.sleep(0.03)
            raise RuntimeError("build failed")

    assert captured[0] is not None
    assert captured[0].cancelled()


async def test_heartbeat_disabled_for_non_positive_interval() -> None:
    beats: list[float] = []

    async with heartbeat(0, beats.append) as task:
        await asyncio.sleep(0.02)

    assert task is None
    assert beats == []


async def test_heartbeat_logs_by_default(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level("INFO", logger="covdelta.utils.heartbeat"):
        async with heartbeat(0.01):
            await asyncio.sleep(0.05)

    assert "Still running" in caplog.text
