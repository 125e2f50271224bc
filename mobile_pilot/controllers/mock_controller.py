import asyncio
import time
from typing import Any

from pydantic import BaseModel, ConfigDict

from mobile_pilot.constants import DEFAULT_SWIPE_DURATION_MS
from mobile_pilot.controllers.device_controller import HierarchyBackedController
from mobile_pilot.controllers.types import ScreenSize, SwipeDirection
from mobile_pilot.utils.errors import DeviceNotConnectedError
from mobile_pilot.utils.logger import get_logger
from mobile_pilot.utils.ui_hierarchy import find_element_at, prune_hierarchy

logger = get_logger(__name__)

# Waits are shortened so scripted runs stay fast
MAX_MOCK_WAIT_MS = 10

# 1x1 transparent PNG
PLACEHOLDER_SCREENSHOT = (
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNk+M9QDwADhgGAWjR9awAAAABJRU5ErkJggg=="
)


class MockScreen(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    xml: str
    screenshot: str = PLACEHOLDER_SCREENSHOT
    # Tapping the element with this resource-id moves to the next screen
    navigates_on: str | None = None


class MockAction(BaseModel):
    type: str
    params: dict[str, Any] = {}
    timestamp: float


class MockController(HierarchyBackedController):
    """
    In-memory device used to exercise the agent without hardware.

    Lookups resolve against the current screen's hierarchy, and every interaction is recorded
    in an action log that tests can assert on.
    """

    def __init__(self, screens: list[MockScreen] | None = None):
        self.screens = screens if screens is not None else SAMPLE_LOGIN_SCREENS
        if not self.screens:
            raise ValueError("MockController requires at least one screen")
        self.current_screen_index = 0
        self.connected = False
        self.action_log: list[MockAction] = []

    @property
    def current_screen(self) -> MockScreen:
        return self.screens[self.current_screen_index]

    def _log_action(self, action_type: str, **params: Any) -> None:
        self.action_log.append(MockAction(type=action_type, params=params, timestamp=time.time()))

    def _ensure_connected(self) -> None:
        if not self.connected:
            raise DeviceNotConnectedError("Driver not connected")

    def _advance_screen(self) -> None:
        if self.current_screen_index < len(self.screens) - 1:
            self.current_screen_index += 1
            logger.debug(f"Mock device moved to screen '{self.current_screen.name}'")

    async def connect(self) -> None:
        self.connected = True
        self._log_action("connect")

    async def disconnect(self) -> None:
        self.connected = False
        self._log_action("disconnect")

    async def get_screenshot(self) -> str:
        self._ensure_connected()
        self._log_action("getScreenshot")
        return self.current_screen.screenshot

    async def get_page_source(self) -> str:
        self._ensure_connected()
        self._log_action("getPageSource")
        return self.current_screen.xml

    async def tap(self, x: int, y: int) -> None:
        self._ensure_connected()
        self._log_action("tap", x=x, y=y)
        screen = self.current_screen
        if screen.navigates_on is None:
            return
        element = find_element_at(prune_hierarchy(screen.xml), x, y)
        if element is not None and element.resource_id == screen.navigates_on:
            self._advance_screen()

    async def type_text(self, text: str) -> None:
        self._ensure_connected()
        self._log_action("type", text=text)

    async def swipe(
        self, direction: SwipeDirection, duration_ms: int = DEFAULT_SWIPE_DURATION_MS
    ) -> None:
        self._ensure_connected()
        self._log_action("swipe", direction=direction, duration=duration_ms)
        if direction in ("up", "down"):
            self._advance_screen()

    async def press_key(self, key: str) -> None:
        self._ensure_connected()
        self._log_action("pressKey", key=key)

    async def wait_for(self, ms: int) -> None:
        self._log_action("waitFor", ms=ms)
        await asyncio.sleep(min(ms, MAX_MOCK_WAIT_MS) / 1000)

    def get_screen_size(self) -> ScreenSize:
        return ScreenSize(width=1080, height=1920)

    def reset(self) -> None:
        self.current_screen_index = 0
        self.action_log = []

    def set_screen(self, index: int) -> None:
        if 0 <= index < len(self.screens):
            self.current_screen_index = index

    def get_actions(self) -> list[MockAction]:
        return list(self.action_log)

    def has_action(self, action_type: str, **params: Any) -> bool:
        return any(
            action.type == action_type
            and all(action.params.get(key) == value for key, value in params.items())
            for action in self.action_log
        )


SAMPLE_LOGIN_SCREENS: list[MockScreen] = [
    MockScreen(
        name="login_screen",
        navigates_on="com.app:id/login_button",
        xml="""<?xml version="1.0" encoding="UTF-8"?>
<hierarchy rotation="0">
  <node class="android.widget.FrameLayout" bounds="[0,0][1080,1920]">
    <node class="android.widget.LinearLayout" bounds="[0,0][1080,1920]">
      <node class="android.widget.EditText" resource-id="com.app:id/username" text="" content-desc="Username input" bounds="[100,400][980,500]" clickable="true" enabled="true"/>
      <node class="android.widget.EditText" resource-id="com.app:id/password" text="" content-desc="Password input" bounds="[100,550][980,650]" clickable="true" enabled="true"/>
      <node class="android.widget.Button" resource-id="com.app:id/login_button" text="Login" bounds="[100,750][980,850]" clickable="true" enabled="true"/>
    </node>
  </node>
</hierarchy>""",
    ),
    MockScreen(
        name="home_screen",
        xml="""<?xml version="1.0" encoding="UTF-8"?>
<hierarchy rotation="0">
  <node class="android.widget.FrameLayout" bounds="[0,0][1080,1920]">
    <node class="android.widget.TextView" resource-id="com.app:id/welcome" text="Welcome, User!" bounds="[100,200][980,300]" clickable="false" enabled="true"/>
    <node class="android.widget.Button" resource-id="com.app:id/logout_button" text="Logout" bounds="[100,400][980,500]" clickable="true" enabled="true"/>
  </node>
</hierarchy>""",
    ),
]
