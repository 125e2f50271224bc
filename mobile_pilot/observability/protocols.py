"""Protocol definitions for healing analytics sinks."""

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from mobile_pilot.observability.healing_logger import HealingEventLog


@runtime_checkable
class HealingEventSink(Protocol):
    """Protocol for anything that records locate attempts.

    The hybrid locator only depends on this interface, so the concrete session logger
    can be swapped (or replaced by a mock in tests).
    """

    def log_event(self, event: "HealingEventLog") -> None:
        """Record one locate attempt.

        Args:
            event: Outcome of the attempt (method, coordinates, duration)
        """
        ...
