from mobile_pilot.agents.reasoner.types import ReasonerOutput, SelectorHint
from mobile_pilot.constants import (
    DEFAULT_SWIPE_DURATION_MS,
    DEFAULT_WAIT_MS,
    HISTORY_TEXT_PREVIEW_LENGTH,
)
from mobile_pilot.context import PilotContext
from mobile_pilot.controllers.types import (
    AccessibilityIdLocator,
    LocatorStrategy,
    ResourceIdLocator,
    TextLocator,
    XPathLocator,
)
from mobile_pilot.graph.state import INCREMENT, RESET, State
from mobile_pilot.locator.hybrid_locator import HybridLocator
from mobile_pilot.utils.decorators import wrap_with_callbacks
from mobile_pilot.utils.errors import ExecutorError, LocationError
from mobile_pilot.utils.logger import get_logger

logger = get_logger(__name__)


def selector_to_locator(selector: SelectorHint | None) -> LocatorStrategy | None:
    """
    Converts the reasoner's selector hint to a locator.

    Coordinate hints are not locators: the executor taps the action's x/y directly.
    """
    if selector is None:
        return None
    value = selector.value or ""
    match selector.type:
        case "accessibilityId":
            return AccessibilityIdLocator(value=value)
        case "resourceId":
            return ResourceIdLocator(value=value)
        case "text":
            return TextLocator(value=value)
        case "xpath":
            return XPathLocator(value=value)
        case "coordinates":
            return None


def preview_text(text: str) -> str:
    if len(text) > HISTORY_TEXT_PREVIEW_LENGTH:
        return text[:HISTORY_TEXT_PREVIEW_LENGTH] + "..."
    return text


class ExecutorNode:
    def __init__(self, ctx: PilotContext):
        self.ctx = ctx

    @property
    def locator(self) -> HybridLocator:
        return self.ctx.get_locator()

    async def _click(self, action: ReasonerOutput) -> str:
        params = action.params
        locator = selector_to_locator(params.selector)
        if locator is not None:
            description = (
                params.element_description or action.target_element or "unknown element"
            )
            try:
                result = await self.locator.locate_and_tap(locator, description)
            except LocationError:
                if params.x is None or params.y is None:
                    raise ExecutorError(f"Failed to locate element: {description}")
                x, y = round(params.x), round(params.y)
                await self.ctx.controller.tap(x, y)
                return f"Clicked at ({x}, {y}) - {action.target_element} (fallback to coordinates)"
            entry = f"Clicked {description} at ({result.x}, {result.y}) via {result.method}"
            if result.method == "vision":
                entry += " [HEALED]"
            return entry

        if params.x is None or params.y is None:
            raise ExecutorError("Click action requires x and y coordinates or selector hint")
        x, y = round(params.x), round(params.y)
        await self.ctx.controller.tap(x, y)
        return f"Clicked at ({x}, {y}) - {action.target_element}"

    async def _type(self, action: ReasonerOutput) -> str:
        params = action.params
        text = params.text
        if not text:
            raise ExecutorError("Type action requires text parameter")

        locator = selector_to_locator(params.selector)
        if locator is not None:
            description = params.element_description or action.target_element or "input field"
            try:
                result = await self.locator.locate_and_type(locator, description, text)
            except LocationError:
                # Type into whatever currently has focus
                await self.ctx.controller.type_text(text)
                return f'Typed "{preview_text(text)}" (field already focused)'
            entry = f'Typed "{preview_text(text)}" into {description} via {result.method}'
            if result.method == "vision":
                entry += " [HEALED]"
            return entry

        await self.ctx.controller.type_text(text)
        return f'Typed "{preview_text(text)}" into {action.target_element}'

    async def _swipe(self, action: ReasonerOutput) -> str:
        direction = action.params.direction
        if direction is None:
            raise ExecutorError("Scroll/swipe action requires direction parameter")
        await self.ctx.controller.swipe(direction, DEFAULT_SWIPE_DURATION_MS)
        return f"Scrolled {direction}"

    async def _wait(self, action: ReasonerOutput) -> str:
        duration = round(action.params.duration or DEFAULT_WAIT_MS)
        await self.ctx.controller.wait_for(duration)
        return f"Waited {duration}ms"

    def _log_healing_stats(self) -> None:
        stats = self.locator.get_healing_stats()
        if stats.total_attempts == 0:
            return
        logger.info("Healing statistics:")
        logger.info(f"  - Total attempts: {stats.total_attempts}")
        logger.info(f"  - Selector successes: {stats.selector_successes}")
        logger.info(f"  - Vision successes (healed): {stats.vision_successes}")
        logger.info(f"  - Failures: {stats.failures}")
        logger.info(f"  - Healing rate: {stats.healing_rate * 100:.1f}%")

    @wrap_with_callbacks(
        before=lambda: logger.info("Starting Executor..."),
        on_success=lambda _: logger.success("Executor"),
        on_failure=lambda _: logger.error("Executor"),
    )
    async def __call__(self, state: State) -> dict:
        action = state.last_action
        if action is None:
            logger.info("No action to execute")
            return {}

        try:
            match action.action:
                case "click":
                    entry = await self._click(action)
                case "type":
                    entry = await self._type(action)
                case "swipe" | "scroll":
                    entry = await self._swipe(action)
                case "wait":
                    entry = await self._wait(action)
                case "done":
                    logger.success("Goal marked as complete")
                    self._log_healing_stats()
                    return {
                        "is_complete": True,
                        "action_history": [f"Goal completed: {action.thought}"],
                        "retry_count": RESET,
                    }
                case _:
                    raise ExecutorError(f"Unknown action type: {action.action}")

            logger.info(entry)
            # Let the UI settle before the next observation
            await self.ctx.controller.wait_for(DEFAULT_WAIT_MS)
        except Exception as e:
            logger.error(f"Executor failed: {e}")
            return {
                "errors": [f"Executor failed: {e}"],
                "retry_count": INCREMENT,
                "action_history": [f"FAILED: {action.action} - {e}"],
            }

        return {
            "action_history": [entry],
            "retry_count": RESET,
        }
