import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from mobile_pilot.controllers.device_controller import MobileDeviceController
from mobile_pilot.controllers.mock_controller import MockController
from mobile_pilot.controllers.types import (
    AccessibilityIdLocator,
    Coordinates,
    CoordinatesLocator,
    ElementResult,
    ResourceIdLocator,
    TextLocator,
    XPathLocator,
)
from mobile_pilot.locator.hybrid_locator import HealingEvent, HybridLocator
from mobile_pilot.observability.healing_logger import HealingLogger
from mobile_pilot.utils.errors import CaptureError, LocationError


class UnreadableHierarchyController(MockController):
    async def get_page_source(self) -> str:
        raise CaptureError("uiautomator dump failed")


@pytest.fixture
def mock_controller():
    """A controller whose structural lookups miss unless a test says otherwise."""
    controller = Mock(spec=MobileDeviceController)
    not_found = ElementResult.not_found("Element with resourceId 'x' not found")
    controller.find_by_accessibility_id = AsyncMock(return_value=not_found)
    controller.find_by_resource_id = AsyncMock(return_value=not_found)
    controller.find_by_text = AsyncMock(return_value=not_found)
    controller.get_screenshot = AsyncMock(return_value="c2NyZWVu")
    controller.tap = AsyncMock()
    controller.wait_for = AsyncMock()
    controller.type_text = AsyncMock()
    return controller


class TestLocate:
    def test_selector_success(self, mock_controller):
        """A resolved selector returns coordinates without touching the vision fallback."""
        mock_controller.find_by_accessibility_id.return_value = ElementResult(
            found=True, x=540, y=800
        )
        vision_fallback = AsyncMock()
        locator = HybridLocator(mock_controller, vision_fallback=vision_fallback)

        result = asyncio.run(locator.locate(AccessibilityIdLocator(value="login"), "Login"))

        assert result.found is True
        assert (result.x, result.y) == (540, 800)
        assert result.method == "selector"
        assert result.healing_triggered is False
        vision_fallback.assert_not_called()
        log = locator.get_healing_log()
        assert len(log) == 1
        assert log[0].success is True
        assert log[0].method == "selector"

    def test_vision_fallback_heals(self, mock_controller):
        vision_fallback = AsyncMock(return_value=Coordinates(x=10, y=20))
        locator = HybridLocator(mock_controller, vision_fallback=vision_fallback)

        result = asyncio.run(locator.locate(ResourceIdLocator(value="x"), "Submit button"))

        assert result.model_dump() == {
            "found": True,
            "x": 10,
            "y": 20,
            "method": "vision",
            "healing_triggered": True,
            "error": None,
        }
        vision_fallback.assert_awaited_once_with("Submit button", "c2NyZWVu")
        log = locator.get_healing_log()
        assert len(log) == 1
        assert log[0].method == "vision"
        assert log[0].healing_triggered is True

    @pytest.mark.parametrize("with_fallback", [True, False])
    def test_both_strategies_fail(self, mock_controller, with_fallback):
        vision_fallback = AsyncMock(return_value=None) if with_fallback else None
        locator = HybridLocator(mock_controller, vision_fallback=vision_fallback)

        result = asyncio.run(locator.locate(TextLocator(value="Nope"), "Nope"))

        assert result.found is False
        assert result.method == "none"
        assert result.healing_triggered is with_fallback
        assert result.error == "Element with resourceId 'x' not found"
        assert len(locator.get_healing_log()) == 1
        assert locator.get_healing_log()[0].success is False

    def test_failed_hierarchy_dump_still_heals(self):
        controller = UnreadableHierarchyController()
        asyncio.run(controller.connect())
        healing_logger = HealingLogger(session_id="dump")
        vision_fallback = AsyncMock(return_value=Coordinates(x=10, y=20))
        locator = HybridLocator(
            controller, vision_fallback=vision_fallback, healing_logger=healing_logger
        )

        result = asyncio.run(locator.locate(ResourceIdLocator(value="x"), "Login"))

        assert (result.found, result.x, result.y, result.method) == (True, 10, 20, "vision")
        vision_fallback.assert_awaited_once()
        assert len(locator.get_healing_log()) == 1
        assert healing_logger.get_summary().vision_healings == 1

    def test_lookup_exception_is_recorded_as_failure(self, mock_controller):
        mock_controller.find_by_resource_id.side_effect = RuntimeError("session lost")
        locator = HybridLocator(mock_controller)

        result = asyncio.run(locator.locate(ResourceIdLocator(value="x"), "Login"))

        assert result.found is False
        assert result.error == "Error finding resourceId=\"x\": session lost"
        assert len(locator.get_healing_log()) == 1
        assert locator.get_healing_log()[0].success is False

    def test_vision_fallback_exception_is_treated_as_absence(self, mock_controller):
        vision_fallback = AsyncMock(side_effect=RuntimeError("model down"))
        locator = HybridLocator(mock_controller, vision_fallback=vision_fallback)

        result = asyncio.run(locator.locate(TextLocator(value="Nope"), "Nope"))

        assert result.found is False
        assert result.healing_triggered is True

    def test_screenshot_failure_is_treated_as_absence(self, mock_controller):
        mock_controller.get_screenshot.side_effect = RuntimeError("no screen")
        vision_fallback = AsyncMock()
        locator = HybridLocator(mock_controller, vision_fallback=vision_fallback)

        result = asyncio.run(locator.locate(TextLocator(value="Nope"), "Nope"))

        assert result.found is False
        vision_fallback.assert_not_called()

    def test_xpath_is_not_resolved_structurally(self, mock_controller):
        locator = HybridLocator(mock_controller)

        result = asyncio.run(locator.locate(XPathLocator(value="//button"), "button"))

        assert result.found is False
        assert result.error == "XPath requires direct driver access"

    def test_coordinates_short_circuit(self, mock_controller):
        locator = HybridLocator(mock_controller)

        result = asyncio.run(locator.locate(CoordinatesLocator(x=1, y=2), "point"))

        assert (result.found, result.x, result.y, result.method) == (True, 1, 2, "selector")

    def test_events_are_forwarded_to_healing_logger(self, mock_controller):
        healing_logger = HealingLogger(session_id="test")
        locator = HybridLocator(
            mock_controller,
            vision_fallback=AsyncMock(return_value=Coordinates(x=1, y=1)),
            healing_logger=healing_logger,
        )

        asyncio.run(locator.locate(CoordinatesLocator(x=1, y=2), "point"))
        asyncio.run(locator.locate(TextLocator(value="Nope"), "Healed element"))

        summary = healing_logger.get_summary()
        assert summary.total_locate_attempts == 2
        assert summary.selector_successes == 1
        assert summary.vision_healings == 1
        assert summary.events[1].element_description == "Healed element"
        assert summary.events[1].attempted_selector == 'text="Nope"'


class TestComposites:
    def test_locate_and_tap(self, mock_controller):
        mock_controller.find_by_text.return_value = ElementResult(found=True, x=5, y=6)
        locator = HybridLocator(mock_controller)

        result = asyncio.run(locator.locate_and_tap(TextLocator(value="OK"), "OK button"))

        assert (result.x, result.y, result.method) == (5, 6, "selector")
        mock_controller.tap.assert_awaited_once_with(5, 6)

    def test_locate_and_tap_raises_location_error(self, mock_controller):
        locator = HybridLocator(mock_controller)

        with pytest.raises(LocationError) as exc_info:
            asyncio.run(locator.locate_and_tap(TextLocator(value="OK"), "OK button"))

        assert "OK button" in exc_info.value.message
        mock_controller.tap.assert_not_called()

    def test_locate_and_type_waits_for_focus(self, mock_controller):
        locator = HybridLocator(
            mock_controller, vision_fallback=AsyncMock(return_value=Coordinates(x=7, y=8))
        )

        result = asyncio.run(
            locator.locate_and_type(ResourceIdLocator(value="user"), "Username", "bob")
        )

        assert result.method == "vision"
        mock_controller.tap.assert_awaited_once_with(7, 8)
        mock_controller.wait_for.assert_awaited_once_with(200)
        mock_controller.type_text.assert_awaited_once_with("bob")


class TestHealingStats:
    def test_empty_log(self, mock_controller):
        stats = HybridLocator(mock_controller).get_healing_stats()

        assert stats.total_attempts == 0
        assert stats.healing_rate == 0
        assert stats.success_rate == 0

    def test_rates_from_log(self, mock_controller):
        """7 selector successes, 2 vision successes and 1 failure out of 10 attempts."""
        locator = HybridLocator(mock_controller)
        target = TextLocator(value="x")
        events = (
            [HealingEvent(attempted_locator=target, success=True, method="selector", healing_triggered=False)] * 7
            + [HealingEvent(attempted_locator=target, success=True, method="vision", healing_triggered=True)] * 2
            + [HealingEvent(attempted_locator=target, success=False, method="selector", healing_triggered=True)]
        )
        locator._healing_log.extend(events)

        stats = locator.get_healing_stats()

        assert stats.total_attempts == 10
        assert stats.selector_successes == 7
        assert stats.vision_successes == 2
        assert stats.failures == 1
        assert stats.healing_rate == pytest.approx(0.2)
        assert stats.success_rate == pytest.approx(0.9)

    def test_log_is_a_copy_and_can_be_cleared(self, mock_controller):
        locator = HybridLocator(mock_controller)
        asyncio.run(locator.locate(CoordinatesLocator(x=1, y=2), "point"))

        locator.get_healing_log().clear()
        assert len(locator.get_healing_log()) == 1

        locator.clear_healing_log()
        assert locator.get_healing_log() == []

    def test_set_vision_fallback(self, mock_controller):
        locator = HybridLocator(mock_controller)
        locator.set_vision_fallback(AsyncMock(return_value=Coordinates(x=3, y=3)))

        result = asyncio.run(locator.locate(TextLocator(value="x"), "x"))

        assert result.method == "vision"
