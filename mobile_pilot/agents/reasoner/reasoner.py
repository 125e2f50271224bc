from pathlib import Path

from jinja2 import Template

from mobile_pilot.agents.reasoner.parser import parse_action
from mobile_pilot.constants import MAX_RETRIES, PROMPT_ERROR_WINDOW, PROMPT_HISTORY_WINDOW
from mobile_pilot.context import PilotContext
from mobile_pilot.graph.state import INCREMENT, State
from mobile_pilot.utils.decorators import wrap_with_callbacks
from mobile_pilot.utils.logger import get_logger
from mobile_pilot.utils.ui_hierarchy import format_elements_for_prompt

logger = get_logger(__name__)


def get_system_prompt() -> str:
    return Template(
        Path(__file__).parent.joinpath("reasoner.md").read_text(encoding="utf-8")
    ).render(max_retries=MAX_RETRIES)


def build_user_prompt(state: State) -> str:
    parts = [f"GOAL: {state.goal}", ""]

    if state.action_history:
        parts.append("PREVIOUS ACTIONS:")
        for i, action in enumerate(state.action_history[-PROMPT_HISTORY_WINDOW:], start=1):
            parts.append(f"  {i}. {action}")
        parts.append("")

    if state.errors:
        parts.append("RECENT ERRORS (self-healing context):")
        for error in state.errors[-PROMPT_ERROR_WINDOW:]:
            parts.append(f"  - {error}")
        parts.append(f"Retry count: {state.retry_count}/{MAX_RETRIES}")
        parts.append("")

    parts.append(f"UI ELEMENTS ({len(state.ui_tree)} elements):")
    parts.append(format_elements_for_prompt(state.ui_tree))
    parts.append("")
    parts.append(
        "Analyze the screenshot and elements above, then provide your next action as JSON only."
    )
    return "\n".join(parts)


class ReasonerNode:
    def __init__(self, ctx: PilotContext):
        self.ctx = ctx

    @wrap_with_callbacks(
        before=lambda: logger.info("Starting Reasoner..."),
        on_success=lambda _: logger.success("Reasoner"),
        on_failure=lambda _: logger.error("Reasoner"),
    )
    async def __call__(self, state: State) -> dict:
        if state.is_complete:
            return {}

        logger.info(f'Analyzing screen for goal: "{state.goal}"')
        try:
            raw_text = await self.ctx.reasoning_service.decide(
                system_prompt=get_system_prompt(),
                user_prompt=build_user_prompt(state),
                screenshot=state.screenshot,
            )
            action = parse_action(raw_text)
        except Exception as e:
            logger.error(f"Reasoner failed: {e}")
            return {
                "errors": [str(e)],
                "retry_count": INCREMENT,
                "last_action": None,
            }

        logger.info(f"Decided: {action.action} - {action.thought}")
        return {"last_action": action}
