"""Healing analytics for mobile-pilot."""

from mobile_pilot.observability.healing_logger import (
    HealingEventLog,
    HealingLogger,
    HealingSummary,
    format_healing_report,
)
from mobile_pilot.observability.protocols import HealingEventSink

__all__ = [
    "HealingEventLog",
    "HealingEventSink",
    "HealingLogger",
    "HealingSummary",
    "format_healing_report",
]
