"""
Session analytics for self-healing element location.

The logger is passive: it accumulates events and only reports when asked.
"""

import time
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field
from rich.console import Console

from mobile_pilot.controllers.types import Coordinates

HealingMethod = Literal["selector", "vision", "failed"]


class HealingEventLog(BaseModel):
    timestamp: datetime = Field(default_factory=datetime.now)
    element_description: str
    attempted_selector: str | None = None
    method: HealingMethod
    coordinates: Coordinates | None = None
    duration_ms: float


class HealingSummary(BaseModel):
    session_id: str
    start_time: datetime
    end_time: datetime | None = None
    total_locate_attempts: int = 0
    selector_successes: int = 0
    vision_healings: int = 0
    failures: int = 0
    events: list[HealingEventLog] = Field(default_factory=list)

    @property
    def healing_rate(self) -> float:
        if self.total_locate_attempts == 0:
            return 0.0
        return self.vision_healings / self.total_locate_attempts

    @property
    def success_rate(self) -> float:
        if self.total_locate_attempts == 0:
            return 0.0
        return (self.selector_successes + self.vision_healings) / self.total_locate_attempts


class HealingLogger:
    def __init__(self, session_id: str | None = None):
        self._summary = HealingSummary(
            session_id=session_id or f"session-{int(time.time() * 1000)}",
            start_time=datetime.now(),
        )

    @property
    def session_id(self) -> str:
        return self._summary.session_id

    def log_event(self, event: HealingEventLog) -> None:
        self._summary.events.append(event)
        self._summary.total_locate_attempts += 1
        match event.method:
            case "selector":
                self._summary.selector_successes += 1
            case "vision":
                self._summary.vision_healings += 1
            case "failed":
                self._summary.failures += 1

    def get_summary(self) -> HealingSummary:
        """Snapshot of the session, stamped with the current time as end time."""
        return self._summary.model_copy(
            update={"end_time": datetime.now(), "events": list(self._summary.events)}
        )

    def format_report(self) -> str:
        return format_healing_report(self.get_summary())

    def print_summary(self, console: Console | None = None) -> None:
        (console or Console()).print(self.format_report(), markup=False, highlight=False)

    def export_to_json(self) -> str:
        return self.get_summary().model_dump_json(indent=2)


def format_healing_report(summary: HealingSummary) -> str:
    end_time = summary.end_time or datetime.now()
    duration = (end_time - summary.start_time).total_seconds()
    lines = [
        "========== HEALING SESSION SUMMARY ==========",
        f"Session ID: {summary.session_id}",
        f"Duration: {duration:.1f}s",
        f"Total Locate Attempts: {summary.total_locate_attempts}",
        f"  - Selector Successes: {summary.selector_successes}",
        f"  - Vision Healings: {summary.vision_healings}",
        f"  - Failures: {summary.failures}",
    ]
    if summary.total_locate_attempts > 0:
        lines.append(f"Healing Rate: {summary.healing_rate * 100:.1f}%")
        lines.append(f"Overall Success Rate: {summary.success_rate * 100:.1f}%")
    lines.append("=============================================")
    return "\n".join(lines)
