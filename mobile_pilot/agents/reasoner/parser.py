import json
import re

from pydantic import ValidationError

from mobile_pilot.agents.reasoner.types import ReasonerOutput
from mobile_pilot.utils.errors import ParseError

FENCED_BLOCK_PATTERN = re.compile(r"```(?:json)?\s*([\s\S]*?)```")
OBJECT_SPAN_PATTERN = re.compile(r"\{[\s\S]*\}")


def extract_json_text(raw_text: str) -> str:
    """
    Picks the JSON candidate out of a model response: the first fenced code block,
    else the widest `{...}` span, else the whole trimmed text.
    """
    fenced = FENCED_BLOCK_PATTERN.search(raw_text)
    if fenced:
        return fenced.group(1).strip()
    span = OBJECT_SPAN_PATTERN.search(raw_text)
    if span:
        return span.group(0)
    return raw_text.strip()


def parse_action(raw_text: str) -> ReasonerOutput:
    candidate = extract_json_text(raw_text)
    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as e:
        raise ParseError(f"Invalid JSON in reasoner response: {e}", raw_text=raw_text) from e
    try:
        return ReasonerOutput.model_validate(data)
    except ValidationError as e:
        raise ParseError(
            f"Reasoner response does not describe a valid action: {e.error_count()} error(s), "
            f"{e.errors()[0]['msg']}",
            raw_text=raw_text,
        ) from e
