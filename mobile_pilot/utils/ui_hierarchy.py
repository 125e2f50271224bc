import re
import xml.etree.ElementTree as ET

from pydantic import BaseModel, ConfigDict

from mobile_pilot.constants import MAX_TEXT_LENGTH
from mobile_pilot.utils.logger import get_logger

logger = get_logger(__name__)

BOUNDS_PATTERN = re.compile(r"\[(\d+),(\d+)\]\[(\d+),(\d+)\]")


class Bounds(BaseModel):
    model_config = ConfigDict(frozen=True)

    x1: int
    y1: int
    x2: int
    y2: int

    @property
    def width(self) -> int:
        return self.x2 - self.x1

    @property
    def height(self) -> int:
        return self.y2 - self.y1

    @property
    def center_x(self) -> int:
        # Half-up rounding of the midpoint
        return (self.x1 + self.x2 + 1) // 2

    @property
    def center_y(self) -> int:
        return (self.y1 + self.y2 + 1) // 2

    def contains(self, x: int, y: int) -> bool:
        return self.x1 <= x <= self.x2 and self.y1 <= y <= self.y2


class PrunedElement(BaseModel):
    """A compact, decision-relevant view of one on-screen node."""

    model_config = ConfigDict(frozen=True)

    resource_id: str | None = None
    text: str | None = None
    content_desc: str | None = None
    class_name: str = "unknown"
    bounds: Bounds
    clickable: bool = False
    enabled: bool = True


def parse_bounds(bounds_str: str | None) -> Bounds | None:
    """
    Parses an Android bounds string such as "[156,892][924,1050]".
    """
    if not bounds_str:
        return None
    match = BOUNDS_PATTERN.search(bounds_str)
    if not match:
        return None
    x1, y1, x2, y2 = map(int, match.groups())
    return Bounds(x1=x1, y1=y1, x2=x2, y2=y2)


def truncate_text(text: str | None, max_length: int = MAX_TEXT_LENGTH) -> str | None:
    if not text:
        return None
    trimmed = text.strip()
    if not trimmed:
        return None
    if len(trimmed) <= max_length:
        return trimmed
    return trimmed[:max_length] + "..."


def _has_identifiable_content(attributes: dict[str, str]) -> bool:
    return any(
        attributes.get(key, "").strip() for key in ("resource-id", "text", "content-desc")
    )


def _get_visible_bounds(attributes: dict[str, str]) -> Bounds | None:
    if attributes.get("displayed") == "false":
        return None
    bounds = parse_bounds(attributes.get("bounds"))
    if bounds is None or bounds.width <= 0 or bounds.height <= 0:
        return None
    return bounds


def _get_class_name(node: ET.Element) -> str:
    class_name = node.attrib.get("class")
    if class_name:
        return class_name
    if node.tag not in ("node", "hierarchy"):
        return node.tag
    return "unknown"


def prune_hierarchy(xml: str) -> list[PrunedElement]:
    """
    Compresses a raw accessibility dump into the list of elements worth showing to the model.

    Nodes are visited depth-first in document order. A node is kept when it is displayed,
    has a positive size, and either carries an identifier (resource-id, text, content-desc)
    or is clickable. Never raises: an unparseable dump yields an empty list.
    """
    try:
        root = ET.fromstring(xml)
    except ET.ParseError as e:
        logger.error(f"Failed to parse UI hierarchy: {e}")
        return []

    elements: list[PrunedElement] = []
    for node in root.iter():
        attributes = node.attrib
        bounds = _get_visible_bounds(attributes)
        if bounds is None:
            continue
        clickable = attributes.get("clickable") == "true"
        if not (_has_identifiable_content(attributes) or clickable):
            continue
        elements.append(
            PrunedElement(
                resource_id=attributes.get("resource-id") or None,
                text=truncate_text(attributes.get("text")),
                content_desc=truncate_text(attributes.get("content-desc")),
                class_name=_get_class_name(node),
                bounds=bounds,
                clickable=clickable,
                enabled=attributes.get("enabled") != "false",
            )
        )
    return elements


def format_elements_for_prompt(elements: list[PrunedElement]) -> str:
    if not elements:
        return "(No UI elements detected)"

    lines = []
    for index, element in enumerate(elements):
        parts = [f"[{index}]"]
        if element.text:
            parts.append(f'text="{element.text}"')
        if element.content_desc:
            parts.append(f'desc="{element.content_desc}"')
        if element.resource_id:
            # Drop the package prefix, "com.app:id/username" -> "username"
            parts.append(f'id="{element.resource_id.split("/")[-1]}"')
        parts.append(f'class="{element.class_name.split(".")[-1]}"')
        parts.append(f"center=({element.bounds.center_x},{element.bounds.center_y})")
        if element.clickable:
            parts.append("clickable")
        if not element.enabled:
            parts.append("disabled")
        lines.append(" ".join(parts))
    return "\n".join(lines)


def find_element_by_resource_id(
    elements: list[PrunedElement], resource_id: str
) -> PrunedElement | None:
    """
    Matches the full resource-id, or its short form without the package prefix.
    """
    for element in elements:
        if not element.resource_id:
            continue
        if element.resource_id == resource_id or element.resource_id.split("/")[-1] == resource_id:
            return element
    return None


def find_element_by_content_desc(
    elements: list[PrunedElement], content_desc: str
) -> PrunedElement | None:
    for element in elements:
        if element.content_desc == content_desc:
            return element
    return None


def find_element_by_text(
    elements: list[PrunedElement], text: str, exact: bool = False
) -> PrunedElement | None:
    if not text:
        return None
    for element in elements:
        candidates = [c for c in (element.text, element.content_desc) if c]
        for candidate in candidates:
            if exact and candidate == text:
                return element
            if not exact and text.lower() in candidate.lower():
                return element
    return None


def find_element_at(elements: list[PrunedElement], x: int, y: int) -> PrunedElement | None:
    """
    Returns the innermost element containing the point (the last one in document order).
    """
    match: PrunedElement | None = None
    for element in elements:
        if element.bounds.contains(x, y):
            match = element
    return match
