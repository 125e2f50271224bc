import asyncio
from collections.abc import Coroutine
from typing import Any, TypeVar

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from langchain_google_genai import ChatGoogleGenerativeAI
from langchain_openai import ChatOpenAI
from pydantic import SecretStr

from mobile_pilot.config import LLMConfig
from mobile_pilot.utils.errors import ConfigurationError, ReasoningServiceError
from mobile_pilot.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


async def invoke_llm_with_timeout_message(
    llm_call: Coroutine[Any, Any, T],
    timeout_seconds: int = 10,
) -> T:
    """
    Send a LLM call and display a waiting message if it takes too long.

    Args:
        llm_call: The coroutine of the LLM call to execute.
        timeout_seconds: The delay in seconds before displaying the message.

    Returns:
        The result of the LLM call.
    """
    llm_task = asyncio.create_task(llm_call)
    waiter_task = asyncio.create_task(asyncio.sleep(timeout_seconds))

    done, _ = await asyncio.wait({llm_task, waiter_task}, return_when=asyncio.FIRST_COMPLETED)

    if llm_task in done:
        waiter_task.cancel()
        return llm_task.result()
    else:
        # Local vision models can take a while on the first call (model loading)
        logger.info("Waiting for LLM call response...")
        return await llm_task


def require_api_key(config: LLMConfig) -> SecretStr:
    if config.api_key is None:
        raise ConfigurationError(f"An API key is required for the {config.provider} provider")
    return config.api_key


def get_ollama_llm(config: LLMConfig) -> ChatOpenAI:
    base_url = (config.base_url or "http://localhost:11434").rstrip("/")
    return ChatOpenAI(
        model=config.model,
        temperature=config.temperature,
        # Ollama ignores the key but the OpenAI client requires one
        api_key=SecretStr("ollama"),
        base_url=f"{base_url}/v1",
    )


def get_openai_llm(config: LLMConfig) -> ChatOpenAI:
    return ChatOpenAI(
        model=config.model,
        temperature=config.temperature,
        api_key=require_api_key(config),
        base_url=config.base_url,
    )


def get_openrouter_llm(config: LLMConfig) -> ChatOpenAI:
    return ChatOpenAI(
        model=config.model,
        temperature=config.temperature,
        api_key=require_api_key(config),
        base_url=config.base_url or "https://openrouter.ai/api/v1",
    )


def get_google_llm(config: LLMConfig) -> ChatGoogleGenerativeAI:
    return ChatGoogleGenerativeAI(
        model=config.model,
        max_tokens=None,
        temperature=config.temperature,
        api_key=require_api_key(config),
        max_retries=2,
    )


def get_llm(config: LLMConfig) -> BaseChatModel:
    match config.provider:
        case "ollama":
            return get_ollama_llm(config)
        case "openai":
            return get_openai_llm(config)
        case "openrouter":
            return get_openrouter_llm(config)
        case "google":
            return get_google_llm(config)


def get_screenshot_message_for_llm(screenshot_base64: str, text: str) -> HumanMessage:
    return HumanMessage(
        content=[
            {"type": "text", "text": text},
            {
                "type": "image_url",
                "image_url": {"url": f"data:image/png;base64,{screenshot_base64}"},
            },
        ]
    )


def get_response_text(response: BaseMessage) -> str:
    content = response.content
    if isinstance(content, str):
        return content
    parts = []
    for part in content:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and part.get("type") == "text":
            parts.append(str(part.get("text", "")))
    return "".join(parts)


class ReasoningService:
    """
    Sends the system instructions, the per-turn prompt and the current screenshot
    to the reasoning model and returns its raw text answer.
    """

    def __init__(self, llm: BaseChatModel):
        self.llm = llm

    async def decide(self, system_prompt: str, user_prompt: str, screenshot: str) -> str:
        messages = [
            SystemMessage(content=system_prompt),
            get_screenshot_message_for_llm(screenshot, user_prompt),
        ]
        try:
            response = await invoke_llm_with_timeout_message(self.llm.ainvoke(messages))
        except Exception as e:
            raise ReasoningServiceError(f"Reasoning service call failed: {e}") from e

        text = get_response_text(response).strip()
        if not text:
            raise ReasoningServiceError("No content in reasoning service response")
        return text
