import asyncio
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import assert_never

from mobile_pilot.constants import DEFAULT_SWIPE_DURATION_MS, FOCUS_SETTLE_MS
from mobile_pilot.controllers.types import (
    AccessibilityIdLocator,
    Coordinates,
    CoordinatesLocator,
    ElementResult,
    LocatorStrategy,
    ResourceIdLocator,
    ScreenSize,
    SwipeDirection,
    TextLocator,
    XPathLocator,
    describe_locator,
)
from mobile_pilot.utils.errors import LocationError
from mobile_pilot.utils.ui_hierarchy import (
    PrunedElement,
    find_element_by_content_desc,
    find_element_by_resource_id,
    find_element_by_text,
    prune_hierarchy,
)

# Fraction of the screen height covered by a directional swipe
SWIPE_DISTANCE_RATIO = 0.4


class MobileDeviceController(ABC):
    """
    Capability set every device backend exposes to the agent.

    Backends implement the primitives; `wait_for`, `tap_element`, `type_into_element`
    and the swipe geometry are shared.
    """

    @abstractmethod
    async def connect(self) -> None: ...

    @abstractmethod
    async def disconnect(self) -> None: ...

    @abstractmethod
    async def get_screenshot(self) -> str:
        """Returns the current screen as a base64-encoded PNG."""

    @abstractmethod
    async def get_page_source(self) -> str:
        """Returns the raw UI hierarchy dump (XML)."""

    @abstractmethod
    async def tap(self, x: int, y: int) -> None: ...

    @abstractmethod
    async def type_text(self, text: str) -> None:
        """Types into the currently focused element."""

    @abstractmethod
    async def swipe(
        self, direction: SwipeDirection, duration_ms: int = DEFAULT_SWIPE_DURATION_MS
    ) -> None: ...

    @abstractmethod
    async def press_key(self, key: str) -> None: ...

    @abstractmethod
    def get_screen_size(self) -> ScreenSize: ...

    @abstractmethod
    async def find_by_accessibility_id(self, accessibility_id: str) -> ElementResult: ...

    @abstractmethod
    async def find_by_resource_id(self, resource_id: str) -> ElementResult: ...

    @abstractmethod
    async def find_by_text(self, text: str, exact: bool = False) -> ElementResult: ...

    async def wait_for(self, ms: int) -> None:
        await asyncio.sleep(ms / 1000)

    async def tap_element(self, locator: LocatorStrategy) -> Coordinates:
        result = await find_with_locator(self, locator)
        if not result.found or result.x is None or result.y is None:
            raise LocationError(description=describe_locator(locator), reason=result.error)
        await self.tap(result.x, result.y)
        return Coordinates(x=result.x, y=result.y)

    async def type_into_element(self, locator: LocatorStrategy, text: str) -> None:
        await self.tap_element(locator)
        await self.wait_for(FOCUS_SETTLE_MS)
        await self.type_text(text)

    def swipe_coordinates(self, direction: SwipeDirection) -> tuple[Coordinates, Coordinates]:
        """
        Start and end points of a swipe centered on the screen.
        """
        size = self.get_screen_size()
        center_x = round(size.width / 2)
        center_y = round(size.height / 2)
        half = round(size.height * SWIPE_DISTANCE_RATIO) // 2

        match direction:
            case "up":
                start, end = (center_x, center_y + half), (center_x, center_y - half)
            case "down":
                start, end = (center_x, center_y - half), (center_x, center_y + half)
            case "left":
                start, end = (center_x + half, center_y), (center_x - half, center_y)
            case "right":
                start, end = (center_x - half, center_y), (center_x + half, center_y)
            case _:
                assert_never(direction)
        return Coordinates(x=start[0], y=start[1]), Coordinates(x=end[0], y=end[1])


class HierarchyBackedController(MobileDeviceController):
    """
    Resolves element lookups against the pruned UI hierarchy of the current screen.

    Accessibility ids map to content-desc, like UiAutomator2 does on Android.
    """

    async def get_elements(self) -> list[PrunedElement]:
        return prune_hierarchy(await self.get_page_source())

    async def _find(
        self,
        description: str,
        match_element: Callable[[list[PrunedElement]], PrunedElement | None],
    ) -> ElementResult:
        """A failed hierarchy dump is reported as a miss so callers can still heal."""
        try:
            element = match_element(await self.get_elements())
        except Exception as e:
            return ElementResult.not_found(f"Error finding {description}: {e}")
        if element is None:
            return ElementResult.not_found(f"Element with {description} not found")
        return element_to_result(element)

    async def find_by_accessibility_id(self, accessibility_id: str) -> ElementResult:
        return await self._find(
            f"accessibilityId '{accessibility_id}'",
            lambda elements: find_element_by_content_desc(elements, accessibility_id),
        )

    async def find_by_resource_id(self, resource_id: str) -> ElementResult:
        return await self._find(
            f"resourceId '{resource_id}'",
            lambda elements: find_element_by_resource_id(elements, resource_id),
        )

    async def find_by_text(self, text: str, exact: bool = False) -> ElementResult:
        return await self._find(
            f"text '{text}'",
            lambda elements: find_element_by_text(elements, text, exact=exact),
        )


def element_to_result(element: PrunedElement) -> ElementResult:
    return ElementResult(
        found=True,
        x=element.bounds.center_x,
        y=element.bounds.center_y,
        width=element.bounds.width,
        height=element.bounds.height,
        text=element.text or element.content_desc,
    )


async def find_with_locator(
    controller: MobileDeviceController, locator: LocatorStrategy
) -> ElementResult:
    """
    Dispatches a locator to the matching structural lookup of the controller.
    """
    match locator:
        case AccessibilityIdLocator(value=value):
            return await controller.find_by_accessibility_id(value)
        case ResourceIdLocator(value=value):
            return await controller.find_by_resource_id(value)
        case TextLocator(value=value):
            return await controller.find_by_text(value)
        case XPathLocator():
            return ElementResult.not_found("XPath requires direct driver access")
        case CoordinatesLocator(x=x, y=y):
            return ElementResult(found=True, x=x, y=y)
        case _:
            assert_never(locator)
