import asyncio

from mobile_pilot.context import PilotContext
from mobile_pilot.graph.state import INCREMENT, State
from mobile_pilot.utils.decorators import wrap_with_callbacks
from mobile_pilot.utils.logger import get_logger
from mobile_pilot.utils.ui_hierarchy import prune_hierarchy

logger = get_logger(__name__)


class ObserverNode:
    """
    Captures the current screen: screenshot plus the pruned UI hierarchy.

    A failed capture keeps the previous snapshot, records the error and still counts
    against both the retry budget and the observation cap.
    """

    def __init__(self, ctx: PilotContext):
        self.ctx = ctx

    @wrap_with_callbacks(
        before=lambda: logger.info("Starting Observer..."),
        on_success=lambda _: logger.success("Observer"),
        on_failure=lambda _: logger.error("Observer"),
    )
    async def __call__(self, state: State) -> dict:
        controller = self.ctx.controller
        try:
            screenshot, page_source = await asyncio.gather(
                controller.get_screenshot(),
                controller.get_page_source(),
            )
        except Exception as e:
            logger.error(f"Observer failed: {e}")
            return {
                "errors": [f"Observer failed: {e}"],
                "retry_count": INCREMENT,
                "iteration": 1,
            }

        ui_tree = prune_hierarchy(page_source)
        logger.info(f"Captured screen with {len(ui_tree)} UI elements")
        return {
            "screenshot": screenshot,
            "ui_tree": ui_tree,
            "iteration": 1,
        }
