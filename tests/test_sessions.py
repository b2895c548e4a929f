"""Tests for per-session progress channels."""

from __future__ import annotations

import threading

import pytest

from intgen.models import Progress, SessionEvent, SessionStatus
from intgen.sessions import EVENT_COMPLETED, EVENT_PROGRESS, ProgressChannel


def _event(kind: str, step: str, percent: int) -> SessionEvent:
    return SessionEvent(
        session_id="s-1",
        kind=kind,
        progress=Progress(
            current_step=step,
            current_step_number=1,
            total_steps=2,
            progress=percent,
            status_message=step,
        ),
        status=SessionStatus.COMPLETED if kind == EVENT_COMPLETED else SessionStatus.IN_PROGRESS,
    )


def test_drain_returns_events_in_order_once() -> None:
    channel = ProgressChannel()
    channel.publish(_event(EVENT_PROGRESS, "Rendering files", 0))
    channel.publish(_event(EVENT_PROGRESS, "Finalizing", 50))

    assert [event.progress.current_step for event in channel.drain()] == ["Rendering files", "Finalizing"]
    assert channel.drain() == []
    assert not channel.closed


def test_completed_event_closes_channel() -> None:
    channel = ProgressChannel()
    channel.publish(_event(EVENT_COMPLETED, "Completed", 100))

    assert channel.closed
    with pytest.raises(RuntimeError):
        channel.publish(_event(EVENT_PROGRESS, "Late", 100))


def test_iteration_blocks_until_completion() -> None:
    channel = ProgressChannel(poll_interval=0.01)

    def produce() -> None:
        channel.publish(_event(EVENT_PROGRESS, "Rendering files", 0))
        channel.publish(_event(EVENT_COMPLETED, "Completed", 100))

    thread = threading.Thread(target=produce)
    thread.start()
    kinds = [event.kind for event in channel]
    thread.join()

    assert kinds == [EVENT_PROGRESS, EVENT_COMPLETED]


def test_subscribers_and_poller_each_see_every_event() -> None:
    channel = ProgressChannel(poll_interval=0.01)
    channel.publish(_event(EVENT_PROGRESS, "Rendering files", 0))

    polled = [event.progress.current_step for event in channel.drain()]
    channel.publish(_event(EVENT_PROGRESS, "Finalizing", 50))
    channel.publish(_event(EVENT_COMPLETED, "Completed", 100))
    polled += [event.progress.current_step for event in channel.drain()]

    expected = ["Rendering files", "Finalizing", "Completed"]
    assert polled == expected
    assert [event.progress.current_step for event in channel] == expected
    assert [event.progress.current_step for event in channel] == expected
