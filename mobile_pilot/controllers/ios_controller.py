"""
iOS device controller over WebDriverAgent (facebook-wda).

WDA is synchronous: every call runs in a worker thread.
"""

import asyncio
import base64
import xml.etree.ElementTree as ET

import wda
from wda.exceptions import WDAError

from mobile_pilot.constants import DEFAULT_SWIPE_DURATION_MS
from mobile_pilot.controllers.device_controller import MobileDeviceController
from mobile_pilot.controllers.types import ElementResult, ScreenSize, SwipeDirection
from mobile_pilot.utils.errors import CaptureError, DeviceNotConnectedError
from mobile_pilot.utils.logger import get_logger

logger = get_logger(__name__)

INTERACTIVE_ELEMENT_TYPES = {
    "XCUIElementTypeButton",
    "XCUIElementTypeCell",
    "XCUIElementTypeLink",
    "XCUIElementTypeSearchField",
    "XCUIElementTypeSecureTextField",
    "XCUIElementTypeSwitch",
    "XCUIElementTypeTab",
    "XCUIElementTypeTextField",
}


def normalize_wda_source(xml_source: str) -> str:
    """
    Rewrites a WDA XML source with the attribute names of a uiautomator dump
    (bounds, resource-id, content-desc, text, displayed, clickable, class),
    so the same pruning applies to both platforms.
    """
    root = ET.fromstring(xml_source)
    for elem in root.iter():
        attributes = dict(elem.attrib)
        normalized: dict[str, str] = {}
        try:
            x = int(float(attributes.get("x", "")))
            y = int(float(attributes.get("y", "")))
            width = int(float(attributes.get("width", "")))
            height = int(float(attributes.get("height", "")))
            normalized["bounds"] = f"[{x},{y}][{x + width},{y + height}]"
        except ValueError:
            pass
        element_type = attributes.get("type", elem.tag)
        normalized["class"] = element_type
        if attributes.get("name"):
            normalized["resource-id"] = attributes["name"]
        if attributes.get("label"):
            normalized["content-desc"] = attributes["label"]
        if attributes.get("value"):
            normalized["text"] = attributes["value"]
        normalized["displayed"] = attributes.get("visible", "true")
        normalized["enabled"] = attributes.get("enabled", "true")
        normalized["clickable"] = "true" if element_type in INTERACTIVE_ELEMENT_TYPES else "false"
        elem.attrib.clear()
        elem.attrib.update(normalized)
    return ET.tostring(root, encoding="unicode")


class IosController(MobileDeviceController):
    def __init__(self, wda_url: str = "http://localhost:8100"):
        self.wda_url = wda_url
        self._client: wda.Client | None = None
        self._session: wda.Session | None = None
        self._screen_size = ScreenSize(width=390, height=844)

    def _ensure_session(self) -> wda.Session:
        if self._session is None:
            raise DeviceNotConnectedError(
                "WDA session not initialized. Call connect() first."
            )
        return self._session

    async def connect(self) -> None:
        logger.info(f"Connecting to WebDriverAgent at {self.wda_url}")
        self._client = await asyncio.to_thread(wda.Client, self.wda_url)
        status = await asyncio.to_thread(self._client.status)
        logger.debug(f"WDA status: {status}")
        self._session = await asyncio.to_thread(self._client.session)
        size = await asyncio.to_thread(self._session.window_size)
        self._screen_size = ScreenSize(width=int(size.width), height=int(size.height))
        logger.info(
            f"Connected. Screen: {self._screen_size.width}x{self._screen_size.height}"
        )

    async def disconnect(self) -> None:
        if self._session is not None:
            try:
                await asyncio.to_thread(self._session.close)
            except Exception as e:
                logger.debug(f"Error closing WDA session: {e}")
            finally:
                self._session = None
        self._client = None

    async def get_screenshot(self) -> str:
        session = self._ensure_session()
        data = await asyncio.to_thread(session.screenshot, format="raw")
        if not isinstance(data, bytes):
            raise CaptureError(f"Expected PNG bytes from WDA, got: {type(data)}")
        return base64.b64encode(data).decode("utf-8")

    async def get_page_source(self) -> str:
        session = self._ensure_session()
        xml_source = await asyncio.to_thread(session.source)
        if not xml_source:
            raise CaptureError("WDA returned an empty page source")
        return normalize_wda_source(xml_source)

    async def tap(self, x: int, y: int) -> None:
        session = self._ensure_session()
        logger.debug(f"Tapping at ({x}, {y})")
        await asyncio.to_thread(session.tap, x, y)

    async def type_text(self, text: str) -> None:
        session = self._ensure_session()
        await asyncio.to_thread(session.send_keys, text)

    async def swipe(
        self, direction: SwipeDirection, duration_ms: int = DEFAULT_SWIPE_DURATION_MS
    ) -> None:
        session = self._ensure_session()
        start, end = self.swipe_coordinates(direction)
        await asyncio.to_thread(
            session.swipe, start.x, start.y, end.x, end.y, duration_ms / 1000
        )

    async def press_key(self, key: str) -> None:
        session = self._ensure_session()
        match key.lower():
            case "enter":
                await asyncio.to_thread(session.send_keys, "\n")
            case "delete":
                await asyncio.to_thread(session.send_keys, "\b")
            case "home":
                if self._client is None:
                    raise DeviceNotConnectedError("WDA client not initialized")
                await asyncio.to_thread(self._client.home)
            case _:
                await asyncio.to_thread(session.send_keys, key)

    def get_screen_size(self) -> ScreenSize:
        return self._screen_size

    async def _find(self, description: str, **query) -> ElementResult:
        session = self._ensure_session()
        try:
            selector = session(**query)
            exists = await asyncio.to_thread(lambda: selector.exists)
            if not exists:
                return ElementResult.not_found(f"Element with {description} not found")
            element = await asyncio.to_thread(selector.get, timeout=0)
            rect = await asyncio.to_thread(lambda: element.bounds)
            label = await asyncio.to_thread(lambda: element.label)
        except WDAError as e:
            return ElementResult.not_found(f"Error finding {description}: {e}")
        return ElementResult(
            found=True,
            x=round(rect.x + rect.width / 2),
            y=round(rect.y + rect.height / 2),
            width=int(rect.width),
            height=int(rect.height),
            text=label or None,
        )

    async def find_by_accessibility_id(self, accessibility_id: str) -> ElementResult:
        return await self._find(f"accessibilityId '{accessibility_id}'", id=accessibility_id)

    async def find_by_resource_id(self, resource_id: str) -> ElementResult:
        return await self._find(f"name '{resource_id}'", name=resource_id)

    async def find_by_text(self, text: str, exact: bool = False) -> ElementResult:
        if exact:
            return await self._find(f"text '{text}'", label=text)
        return await self._find(f"text '{text}'", labelContains=text)
