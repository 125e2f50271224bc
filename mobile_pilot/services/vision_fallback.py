"""
Vision-model element location, used by the hybrid locator when a selector misses.
"""

import json
import math
import re
from typing import Any

from langchain_core.language_models.chat_models import BaseChatModel

from mobile_pilot.controllers.types import Coordinates
from mobile_pilot.locator.hybrid_locator import VisionFallbackFn
from mobile_pilot.services.llm import (
    get_response_text,
    get_screenshot_message_for_llm,
    invoke_llm_with_timeout_message,
)
from mobile_pilot.utils.logger import get_logger

logger = get_logger(__name__)

VISION_LOCATE_PROMPT = """You are a mobile UI element locator. Analyze the screenshot and find the described element.

ELEMENT TO FIND: {description}

IMPORTANT:
- Look carefully at the screenshot
- Return ONLY the center coordinates (x, y) of the element
- If the element is not visible, return null

OUTPUT FORMAT (strict JSON only):
{{"x": number, "y": number}} or null

Examples:
- Element found: {{"x": 200, "y": 350}}
- Not found: null

Respond with ONLY JSON, no other text."""

FIRST_OBJECT_PATTERN = re.compile(r"\{[\s\S]*?\}")


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool) and math.isfinite(value)


def parse_vision_coordinates(text: str) -> Coordinates | None:
    """
    Reads `{"x": ..., "y": ...}` out of a vision model answer.

    Returns None when the model answered null, gave no object, or the object lacks numeric
    coordinates. Never raises.
    """
    match = FIRST_OBJECT_PATTERN.search(text)
    if not match:
        if "null" in text.lower():
            logger.info("Vision model reports the element is not visible")
        else:
            logger.error(f"Could not parse vision response: {text!r}")
        return None
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        logger.error(f"Invalid JSON in vision response: {e}")
        return None
    if isinstance(parsed, dict) and _is_number(parsed.get("x")) and _is_number(parsed.get("y")):
        return Coordinates(x=round(parsed["x"]), y=round(parsed["y"]))
    logger.info("Vision model did not return coordinates")
    return None


def create_vision_fallback(llm: BaseChatModel) -> VisionFallbackFn:
    async def vision_fallback(element_description: str, screenshot: str) -> Coordinates | None:
        logger.info(f'Locating with vision: "{element_description}"')
        prompt = VISION_LOCATE_PROMPT.format(description=element_description)
        try:
            response = await invoke_llm_with_timeout_message(
                llm.ainvoke([get_screenshot_message_for_llm(screenshot, prompt)])
            )
            content = get_response_text(response).strip()
        except Exception as e:
            logger.error(f"Vision fallback call failed: {e}")
            return None

        if not content:
            logger.error("No content in vision response")
            return None

        coordinates = parse_vision_coordinates(content)
        if coordinates is not None:
            logger.info(f"Vision located element at {coordinates.to_str()}")
        return coordinates

    return vision_fallback
