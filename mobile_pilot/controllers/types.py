from typing import Annotated, Literal, assert_never

from pydantic import BaseModel, ConfigDict, Field, model_validator

SwipeDirection = Literal["up", "down", "left", "right"]


class Coordinates(BaseModel):
    model_config = ConfigDict(frozen=True)
    x: int
    y: int

    def to_str(self) -> str:
        return f"({self.x}, {self.y})"


class ScreenSize(BaseModel):
    model_config = ConfigDict(frozen=True)
    width: int
    height: int


class ElementResult(BaseModel):
    """
    Result of a structural element lookup.

    A found element always carries its center coordinates; a missing one never does.
    """

    model_config = ConfigDict(frozen=True)

    found: bool
    x: int | None = None
    y: int | None = None
    width: int | None = None
    height: int | None = None
    text: str | None = None
    error: str | None = None

    @model_validator(mode="after")
    def _check_coordinates(self):
        has_coordinates = self.x is not None and self.y is not None
        if self.found and not has_coordinates:
            raise ValueError("A found element must carry x and y coordinates")
        if not self.found and (self.x is not None or self.y is not None):
            raise ValueError("A missing element cannot carry coordinates")
        return self

    @classmethod
    def not_found(cls, error: str) -> "ElementResult":
        return cls(found=False, error=error)


class AccessibilityIdLocator(BaseModel):
    model_config = ConfigDict(frozen=True)
    type: Literal["accessibilityId"] = "accessibilityId"
    value: str


class ResourceIdLocator(BaseModel):
    model_config = ConfigDict(frozen=True)
    type: Literal["resourceId"] = "resourceId"
    value: str


class TextLocator(BaseModel):
    model_config = ConfigDict(frozen=True)
    type: Literal["text"] = "text"
    value: str


class XPathLocator(BaseModel):
    model_config = ConfigDict(frozen=True)
    type: Literal["xpath"] = "xpath"
    value: str


class CoordinatesLocator(BaseModel):
    model_config = ConfigDict(frozen=True)
    type: Literal["coordinates"] = "coordinates"
    x: int
    y: int


LocatorStrategy = Annotated[
    AccessibilityIdLocator | ResourceIdLocator | TextLocator | XPathLocator | CoordinatesLocator,
    Field(discriminator="type"),
]


def describe_locator(locator: LocatorStrategy) -> str:
    match locator:
        case AccessibilityIdLocator(value=value):
            return f'accessibilityId="{value}"'
        case ResourceIdLocator(value=value):
            return f'resourceId="{value}"'
        case TextLocator(value=value):
            return f'text="{value}"'
        case XPathLocator(value=value):
            return f'xpath="{value}"'
        case CoordinatesLocator(x=x, y=y):
            return f"coordinates=({x}, {y})"
        case _:
            assert_never(locator)
