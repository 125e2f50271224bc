from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictStr

from mobile_pilot.controllers.types import SwipeDirection

ActionType = Literal["click", "type", "swipe", "scroll", "wait", "done"]
SelectorType = Literal["accessibilityId", "resourceId", "text", "xpath", "coordinates"]


class SelectorHint(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: SelectorType
    value: StrictStr | None = None


class ActionParams(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    x: StrictFloat | None = None
    y: StrictFloat | None = None
    text: StrictStr | None = None
    direction: SwipeDirection | None = None
    duration: StrictFloat | None = None
    selector: SelectorHint | None = None
    element_description: StrictStr | None = Field(default=None, alias="elementDescription")


class ReasonerOutput(BaseModel):
    """
    Action decided by the reasoning model for the current screen.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    thought: str
    action: ActionType
    params: ActionParams = Field(default_factory=ActionParams)
    target_element: str = Field(default="unknown", alias="targetElement")
