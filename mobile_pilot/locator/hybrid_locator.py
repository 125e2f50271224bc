"""
Selector-first element location with a vision-model fallback.

A structural lookup is always tried first. When it misses and a vision fallback is
configured, the model is asked for the element's coordinates on a fresh screenshot
("self-healing"). Each `locate` call records exactly one healing event.
"""

import time
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from mobile_pilot.constants import FOCUS_SETTLE_MS
from mobile_pilot.controllers.device_controller import MobileDeviceController, find_with_locator
from mobile_pilot.controllers.types import (
    Coordinates,
    ElementResult,
    LocatorStrategy,
    describe_locator,
)
from mobile_pilot.observability.healing_logger import HealingEventLog
from mobile_pilot.observability.protocols import HealingEventSink
from mobile_pilot.utils.errors import LocationError
from mobile_pilot.utils.logger import get_logger

logger = get_logger(__name__)

# (element_description, screenshot_base64) -> coordinates, or None when not visible
VisionFallbackFn = Callable[[str, str], Awaitable[Coordinates | None]]


class HealingEvent(BaseModel):
    timestamp: datetime = Field(default_factory=datetime.now)
    attempted_locator: LocatorStrategy
    success: bool
    method: Literal["selector", "vision"]
    coordinates: Coordinates | None = None
    error: str | None = None
    healing_triggered: bool


class HybridLocateResult(BaseModel):
    found: bool
    x: int | None = None
    y: int | None = None
    method: Literal["selector", "vision", "none"]
    healing_triggered: bool
    error: str | None = None


class HealingStats(BaseModel):
    total_attempts: int
    selector_successes: int
    vision_successes: int
    failures: int
    healing_rate: float
    success_rate: float


class TapResult(BaseModel):
    x: int
    y: int
    method: Literal["selector", "vision"]


class HybridLocator:
    def __init__(
        self,
        controller: MobileDeviceController,
        vision_fallback: VisionFallbackFn | None = None,
        healing_logger: HealingEventSink | None = None,
    ):
        self.controller = controller
        self.vision_fallback = vision_fallback
        self.healing_logger = healing_logger
        self._healing_log: list[HealingEvent] = []

    def set_vision_fallback(self, fn: VisionFallbackFn | None) -> None:
        self.vision_fallback = fn

    def get_healing_log(self) -> list[HealingEvent]:
        return list(self._healing_log)

    def clear_healing_log(self) -> None:
        self._healing_log = []

    def _record(self, event: HealingEvent, element_description: str, started_at: float) -> None:
        self._healing_log.append(event)
        status = "✓" if event.success else "✗"
        healed = " [HEALED]" if event.healing_triggered else ""
        logger.info(
            f"{status} {event.method.upper()}{healed} - {describe_locator(event.attempted_locator)}"
        )
        if self.healing_logger is None:
            return
        self.healing_logger.log_event(
            HealingEventLog(
                element_description=element_description,
                attempted_selector=describe_locator(event.attempted_locator),
                method=event.method if event.success else "failed",
                coordinates=event.coordinates,
                duration_ms=(time.perf_counter() - started_at) * 1000,
            )
        )

    async def _try_selector(self, locator: LocatorStrategy) -> ElementResult:
        try:
            return await find_with_locator(self.controller, locator)
        except Exception as e:
            logger.error(f"Selector lookup error: {e}")
            return ElementResult.not_found(f"Error finding {describe_locator(locator)}: {e}")

    async def _try_vision(self, element_description: str) -> Coordinates | None:
        if self.vision_fallback is None:
            return None
        logger.info(f'Selector failed, triggering vision fallback for: "{element_description}"')
        try:
            screenshot = await self.controller.get_screenshot()
            return await self.vision_fallback(element_description, screenshot)
        except Exception as e:
            logger.error(f"Vision fallback error: {e}")
            return None

    async def locate(
        self, locator: LocatorStrategy, element_description: str
    ) -> HybridLocateResult:
        started_at = time.perf_counter()

        selector_result = await self._try_selector(locator)
        if selector_result.found and selector_result.x is not None and selector_result.y is not None:
            coordinates = Coordinates(x=selector_result.x, y=selector_result.y)
            self._record(
                HealingEvent(
                    attempted_locator=locator,
                    success=True,
                    method="selector",
                    coordinates=coordinates,
                    healing_triggered=False,
                ),
                element_description,
                started_at,
            )
            return HybridLocateResult(
                found=True,
                x=coordinates.x,
                y=coordinates.y,
                method="selector",
                healing_triggered=False,
            )

        vision_result = await self._try_vision(element_description)
        if vision_result is not None:
            self._record(
                HealingEvent(
                    attempted_locator=locator,
                    success=True,
                    method="vision",
                    coordinates=vision_result,
                    healing_triggered=True,
                ),
                element_description,
                started_at,
            )
            return HybridLocateResult(
                found=True,
                x=vision_result.x,
                y=vision_result.y,
                method="vision",
                healing_triggered=True,
            )

        healing_triggered = self.vision_fallback is not None
        self._record(
            HealingEvent(
                attempted_locator=locator,
                success=False,
                method="selector",
                error=selector_result.error,
                healing_triggered=healing_triggered,
            ),
            element_description,
            started_at,
        )
        return HybridLocateResult(
            found=False,
            method="none",
            healing_triggered=healing_triggered,
            error=selector_result.error or "Element not found",
        )

    async def locate_and_tap(
        self, locator: LocatorStrategy, element_description: str
    ) -> TapResult:
        result = await self.locate(locator, element_description)
        if not result.found or result.x is None or result.y is None or result.method == "none":
            raise LocationError(description=element_description, reason=result.error)
        await self.controller.tap(result.x, result.y)
        return TapResult(x=result.x, y=result.y, method=result.method)

    async def locate_and_type(
        self, locator: LocatorStrategy, element_description: str, text: str
    ) -> TapResult:
        tap_result = await self.locate_and_tap(locator, element_description)
        await self.controller.wait_for(FOCUS_SETTLE_MS)
        await self.controller.type_text(text)
        return tap_result

    def get_healing_stats(self) -> HealingStats:
        total = len(self._healing_log)
        selector_successes = sum(
            1 for e in self._healing_log if e.success and e.method == "selector"
        )
        vision_successes = sum(1 for e in self._healing_log if e.success and e.method == "vision")
        failures = sum(1 for e in self._healing_log if not e.success)
        return HealingStats(
            total_attempts=total,
            selector_successes=selector_successes,
            vision_successes=vision_successes,
            failures=failures,
            healing_rate=vision_successes / total if total > 0 else 0.0,
            success_rate=(selector_successes + vision_successes) / total if total > 0 else 0.0,
        )
