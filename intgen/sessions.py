"""Generation session state and per-session progress channels."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field, replace
from typing import Iterator, List, Optional

from .models import (
    GenerationRequest,
    GenerationResult,
    GenerationSession,
    Progress,
    SessionEvent,
    SessionStatus,
)

EVENT_PROGRESS = "progress"
EVENT_COMPLETED = "completed"


class ProgressChannel:
    """Append-only event log for one session.

    Each iteration replays the session from its first event and blocks for the
    rest, so any number of subscribers see the full sequence. Pollers share one
    ``drain`` cursor. The ``completed`` event is always the last one.
    """

    def __init__(self, *, poll_interval: float = 0.1) -> None:
        self._events: List[SessionEvent] = []
        self._drained = 0
        self._closed = False
        self._changed = threading.Condition()
        self.poll_interval = poll_interval

    @property
    def closed(self) -> bool:
        with self._changed:
            return self._closed

    def publish(self, event: SessionEvent) -> None:
        with self._changed:
            if self._closed:
                raise RuntimeError(f"Channel for session {event.session_id} is closed")
            self._events.append(event)
            if event.kind == EVENT_COMPLETED:
                self._closed = True
            self._changed.notify_all()

    def drain(self) -> List[SessionEvent]:
        """Events published since the previous drain; never blocks."""
        with self._changed:
            events = self._events[self._drained:]
            self._drained = len(self._events)
        return events

    def __iter__(self) -> Iterator[SessionEvent]:
        index = 0
        while True:
            with self._changed:
                while index >= len(self._events):
                    if self._closed:
                        return
                    self._changed.wait(self.poll_interval)
                event = self._events[index]
            index += 1
            yield event
            if event.kind == EVENT_COMPLETED:
                return


@dataclass
class SessionRecord:
    """Mutable session state owned by the orchestrator; guarded by its lock."""

    id: str
    request: GenerationRequest
    fingerprint: str
    started_at: str
    started_clock: float
    channel: ProgressChannel = field(default_factory=ProgressChannel)
    status: SessionStatus = SessionStatus.STARTING
    progress: Progress = field(
        default_factory=lambda: Progress(
            current_step="Initializing",
            current_step_number=0,
            total_steps=0,
            progress=0,
            status_message="Session created",
        )
    )
    finished_clock: Optional[float] = None
    result: Optional[GenerationResult] = None
    from_cache: bool = False
    completion_emitted: bool = False
    last_successful_step: Optional[str] = None

    def snapshot(self, now: float) -> GenerationSession:
        end = self.finished_clock if self.finished_clock is not None else now
        return GenerationSession(
            id=self.id,
            provider_id=self.request.provider_id,
            status=self.status,
            progress=replace(self.progress),
            started_at=self.started_at,
            duration_seconds=round(max(end - self.started_clock, 0.0), 6),
            preview_only=self.request.preview_only,
            from_cache=self.from_cache,
            fingerprint=self.fingerprint,
        )

    def event(self, kind: str) -> SessionEvent:
        return SessionEvent(
            session_id=self.id,
            kind=kind,
            progress=replace(self.progress),
            status=self.status,
        )
