import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from mobile_pilot.agents.reasoner.reasoner import ReasonerNode, build_user_prompt, get_system_prompt
from mobile_pilot.agents.reasoner.types import ReasonerOutput
from mobile_pilot.context import PilotContext
from mobile_pilot.graph.state import INCREMENT, State
from mobile_pilot.services.llm import ReasoningService
from mobile_pilot.utils.errors import ReasoningServiceError
from mobile_pilot.utils.ui_hierarchy import Bounds, PrunedElement


@pytest.fixture
def mock_context():
    """Create a mock PilotContext with a scripted reasoning service."""
    ctx = Mock(spec=PilotContext)
    ctx.reasoning_service = Mock(spec=ReasoningService)
    ctx.reasoning_service.decide = AsyncMock()
    return ctx


@pytest.fixture
def state():
    return State(
        goal="Log in",
        action_history=[f"action {i}" for i in range(1, 8)],
        errors=["first", "second", "third", "fourth"],
        retry_count=2,
        screenshot="c2NyZWVu",
        ui_tree=[
            PrunedElement(
                resource_id="com.app:id/login_button",
                text="Login",
                bounds=Bounds(x1=100, y1=750, x2=980, y2=850),
                clickable=True,
            )
        ],
    )


class TestBuildUserPrompt:
    def test_includes_windows_of_history_and_errors(self, state):
        prompt = build_user_prompt(state)

        assert prompt.startswith("GOAL: Log in\n")
        assert "  1. action 3" in prompt
        assert "  5. action 7" in prompt
        assert "action 2" not in prompt
        assert "  - first" not in prompt
        assert "  - fourth" in prompt
        assert "Retry count: 2/3" in prompt
        assert "UI ELEMENTS (1 elements):" in prompt
        assert 'id="login_button"' in prompt

    def test_minimal_state(self):
        prompt = build_user_prompt(State(goal="Open settings"))

        assert "PREVIOUS ACTIONS" not in prompt
        assert "RECENT ERRORS" not in prompt
        assert "(No UI elements detected)" in prompt


def test_system_prompt_renders_retry_budget():
    prompt = get_system_prompt()

    assert "After 3 consecutive failures" in prompt
    assert "{{" not in prompt


class TestReasonerNode:
    def test_parses_decided_action(self, mock_context, state):
        mock_context.reasoning_service.decide.return_value = (
            '{"thought": "all good", "action": "done"}'
        )

        patch = asyncio.run(ReasonerNode(mock_context)(state))

        assert isinstance(patch["last_action"], ReasonerOutput)
        assert patch["last_action"].action == "done"
        call = mock_context.reasoning_service.decide.await_args
        assert call.kwargs["screenshot"] == "c2NyZWVu"
        assert call.kwargs["user_prompt"].startswith("GOAL: Log in")

    def test_skips_when_complete(self, mock_context, state):
        state.is_complete = True

        assert asyncio.run(ReasonerNode(mock_context)(state)) == {}
        mock_context.reasoning_service.decide.assert_not_called()

    def test_parse_failure_clears_action_and_counts_retry(self, mock_context, state):
        mock_context.reasoning_service.decide.return_value = "no json here"

        patch = asyncio.run(ReasonerNode(mock_context)(state))

        assert patch["last_action"] is None
        assert patch["retry_count"] == INCREMENT
        assert len(patch["errors"]) == 1

    def test_service_failure_is_recorded(self, mock_context, state):
        mock_context.reasoning_service.decide.side_effect = ReasoningServiceError("timeout")

        patch = asyncio.run(ReasonerNode(mock_context)(state))

        assert patch == {"errors": ["timeout"], "retry_count": INCREMENT, "last_action": None}
