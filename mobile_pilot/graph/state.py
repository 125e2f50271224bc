import operator
from typing import Annotated

from pydantic import BaseModel, Field

from mobile_pilot.agents.reasoner.types import ReasonerOutput
from mobile_pilot.utils.ui_hierarchy import PrunedElement

# Patch values understood by the retry_count reducer
RESET = 0
INCREMENT = 1


def retry_count_reducer(current: int, update: int) -> int:
    if update == RESET:
        return 0
    return current + 1


def iteration_reducer(current: int, update: int) -> int:
    """A zero patch starts a new run, any other patch counts one observation."""
    if update == 0:
        return 0
    return current + 1


class State(BaseModel):
    goal: str = Field(..., description="Natural-language goal of the run")
    action_history: Annotated[list[str], operator.add] = Field(
        default_factory=list, description="One line per executed (or failed) action"
    )
    errors: Annotated[list[str], operator.add] = Field(
        default_factory=list, description="Errors reported by the nodes, oldest first"
    )
    retry_count: Annotated[int, retry_count_reducer] = Field(
        0, description="Consecutive failed reasoning/execution steps"
    )
    iteration: Annotated[int, iteration_reducer] = Field(
        0, description="Number of observer cycles, failed captures included"
    )
    is_complete: bool = False
    last_action: ReasonerOutput | None = None
    screenshot: str = Field("", description="Latest screenshot, base64 PNG")
    ui_tree: list[PrunedElement] = Field(
        default_factory=list, description="Pruned UI elements of the latest observation"
    )


def initial_state(goal: str) -> dict:
    return {
        "goal": goal,
        "action_history": [],
        "errors": [],
        "retry_count": RESET,
        "iteration": 0,
        "is_complete": False,
        "last_action": None,
        "screenshot": "",
        "ui_tree": [],
    }
