"""
Android device controller over ADB.

Interactions go through `adb shell input`, the hierarchy comes from `uiautomator dump`.
"""

import asyncio
import base64
from io import BytesIO

from adbutils import AdbClient, AdbDevice
from PIL import Image

from mobile_pilot.constants import DEFAULT_SWIPE_DURATION_MS
from mobile_pilot.controllers.device_controller import HierarchyBackedController
from mobile_pilot.controllers.types import ScreenSize, SwipeDirection
from mobile_pilot.utils.errors import CaptureError, DeviceNotConnectedError
from mobile_pilot.utils.logger import get_logger

logger = get_logger(__name__)

UI_DUMP_PATH = "/sdcard/window_dump.xml"

ANDROID_KEY_CODES = {
    "enter": 66,
    "back": 4,
    "home": 3,
    "tab": 61,
    "delete": 67,
    "escape": 111,
}

SHELL_ESCAPED_CHARS = ["&", "<", ">", "|", ";", "(", ")", "$", "`", "\\", '"', "'"]


def escape_input_text(text: str) -> str:
    """
    Escapes text for `adb shell input text`, spaces become %s.
    """
    escaped = ""
    for char in text:
        if char == " ":
            escaped += "%s"
        elif char in SHELL_ESCAPED_CHARS:
            escaped += f"\\{char}"
        else:
            escaped += char
    return escaped


def image_to_base64_png(image: Image.Image) -> str:
    buffer = BytesIO()
    image.save(buffer, format="PNG")
    return base64.b64encode(buffer.getvalue()).decode("utf-8")


class AndroidController(HierarchyBackedController):
    def __init__(
        self,
        device_id: str,
        adb_host: str = "127.0.0.1",
        adb_port: int = 5037,
    ):
        self.device_id = device_id
        self.adb_host = adb_host
        self.adb_port = adb_port
        self._adb_client: AdbClient | None = None
        self._device: AdbDevice | None = None
        self._screen_size = ScreenSize(width=1080, height=1920)

    @property
    def device(self) -> AdbDevice:
        if self._device is None:
            raise DeviceNotConnectedError("AndroidController not connected. Call connect() first.")
        return self._device

    async def _shell(self, cmd: str) -> str:
        return str(await asyncio.to_thread(self.device.shell, cmd))

    async def connect(self) -> None:
        logger.info(f"Connecting to Android device {self.device_id} via ADB...")
        self._adb_client = AdbClient(host=self.adb_host, port=self.adb_port)
        self._device = self._adb_client.device(serial=self.device_id)
        window_size = await asyncio.to_thread(self._device.window_size)
        self._screen_size = ScreenSize(width=window_size.width, height=window_size.height)
        logger.info(
            f"Connected. Screen: {self._screen_size.width}x{self._screen_size.height}"
        )

    async def disconnect(self) -> None:
        self._device = None
        self._adb_client = None
        logger.debug("Android controller cleanup complete")

    async def get_screenshot(self) -> str:
        try:
            image = await asyncio.to_thread(self.device.screenshot)
        except DeviceNotConnectedError:
            raise
        except Exception as e:
            raise CaptureError(f"Android screenshot failed: {e}") from e
        return image_to_base64_png(image)

    async def get_page_source(self) -> str:
        output = await self._shell(f"uiautomator dump {UI_DUMP_PATH}")
        if "ERROR" in output:
            raise CaptureError(f"uiautomator dump failed: {output.strip()}")
        return await self._shell(f"cat {UI_DUMP_PATH}")

    async def tap(self, x: int, y: int) -> None:
        logger.debug(f"Tapping at ({x}, {y})")
        await self._shell(f"input tap {x} {y}")

    async def type_text(self, text: str) -> None:
        preview = text[:20] + ("..." if len(text) > 20 else "")
        logger.debug(f"Typing: {preview!r}")
        escaped = escape_input_text(text)
        if escaped:
            await self._shell(f"input text '{escaped}'")

    async def swipe(
        self, direction: SwipeDirection, duration_ms: int = DEFAULT_SWIPE_DURATION_MS
    ) -> None:
        start, end = self.swipe_coordinates(direction)
        logger.debug(f"Swiping {direction}")
        await self._shell(
            f"input touchscreen swipe {start.x} {start.y} {end.x} {end.y} {duration_ms}"
        )

    async def press_key(self, key: str) -> None:
        key_code = ANDROID_KEY_CODES.get(key.lower())
        if key_code is not None:
            await self._shell(f"input keyevent {key_code}")
        else:
            await self.type_text(key)

    def get_screen_size(self) -> ScreenSize:
        return self._screen_size
