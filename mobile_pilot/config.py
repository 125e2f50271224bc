from __future__ import annotations

from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, SecretStr
from pydantic_settings import BaseSettings

from mobile_pilot.constants import DEFAULT_OLLAMA_HOST, DEFAULT_OLLAMA_MODEL
from mobile_pilot.utils.errors import ConfigurationError
from mobile_pilot.utils.logger import get_logger

load_dotenv(verbose=True)
logger = get_logger(__name__)

LLMProvider = Literal["ollama", "openai", "openrouter", "google"]
DriverType = Literal["mock", "android", "ios"]


class Settings(BaseSettings):
    LLM_PROVIDER: LLMProvider = "ollama"
    OLLAMA_HOST: str = DEFAULT_OLLAMA_HOST
    OLLAMA_MODEL: str = DEFAULT_OLLAMA_MODEL
    # Model name for the hosted providers, OLLAMA_MODEL is used when unset
    LLM_MODEL: str | None = None

    OPENAI_API_KEY: SecretStr | None = None
    OPENAI_BASE_URL: str | None = None
    OPEN_ROUTER_API_KEY: SecretStr | None = None
    GOOGLE_API_KEY: SecretStr | None = None

    DRIVER_TYPE: DriverType = "mock"
    DEVICE_NAME: str | None = None
    ADB_HOST: str = "127.0.0.1"
    ADB_PORT: int = 5037
    WDA_URL: str = "http://localhost:8100"

    ENABLE_VISION_FALLBACK: bool = True

    model_config = {"env_file": ".env", "extra": "ignore"}


class LLMConfig(BaseModel):
    """
    Connection settings of the reasoning / vision model.

    Passed explicitly to every component that talks to the model.
    """

    model_config = ConfigDict(frozen=True)

    provider: LLMProvider = "ollama"
    model: str = DEFAULT_OLLAMA_MODEL
    base_url: str | None = DEFAULT_OLLAMA_HOST
    api_key: SecretStr | None = None
    temperature: float = 0.1

    def with_overrides(
        self,
        provider: LLMProvider | None = None,
        model: str | None = None,
        base_url: str | None = None,
        temperature: float | None = None,
    ) -> LLMConfig:
        """Return a copy with only the specified fields overridden.

        Example:
            config = LLMConfig().with_overrides(model="llama3.2-vision")
        """
        overrides = {
            k: v
            for k, v in {
                "provider": provider,
                "model": model,
                "base_url": base_url,
                "temperature": temperature,
            }.items()
            if v is not None
        }
        if not overrides:
            return self
        return self.model_copy(update=overrides)


class DeviceConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    driver_type: DriverType = "mock"
    device_name: str | None = None
    adb_host: str = "127.0.0.1"
    adb_port: int = 5037
    wda_url: str = "http://localhost:8100"

    def with_overrides(
        self,
        driver_type: DriverType | None = None,
        device_name: str | None = None,
        wda_url: str | None = None,
    ) -> DeviceConfig:
        overrides = {
            k: v
            for k, v in {
                "driver_type": driver_type,
                "device_name": device_name,
                "wda_url": wda_url,
            }.items()
            if v is not None
        }
        if not overrides:
            return self
        return self.model_copy(update=overrides)


def initialize_llm_config(settings: Settings) -> LLMConfig:
    match settings.LLM_PROVIDER:
        case "ollama":
            return LLMConfig(
                provider="ollama", model=settings.OLLAMA_MODEL, base_url=settings.OLLAMA_HOST
            )
        case "openai":
            if settings.OPENAI_API_KEY is None:
                raise ConfigurationError("OPENAI_API_KEY must be set for the openai provider")
            return LLMConfig(
                provider="openai",
                model=settings.LLM_MODEL or settings.OLLAMA_MODEL,
                base_url=settings.OPENAI_BASE_URL,
                api_key=settings.OPENAI_API_KEY,
            )
        case "openrouter":
            if settings.OPEN_ROUTER_API_KEY is None:
                raise ConfigurationError("OPEN_ROUTER_API_KEY must be set for openrouter")
            return LLMConfig(
                provider="openrouter",
                model=settings.LLM_MODEL or settings.OLLAMA_MODEL,
                base_url="https://openrouter.ai/api/v1",
                api_key=settings.OPEN_ROUTER_API_KEY,
            )
        case "google":
            if settings.GOOGLE_API_KEY is None:
                raise ConfigurationError("GOOGLE_API_KEY must be set for the google provider")
            return LLMConfig(
                provider="google",
                model=settings.LLM_MODEL or settings.OLLAMA_MODEL,
                base_url=None,
                api_key=settings.GOOGLE_API_KEY,
            )


def initialize_device_config(settings: Settings) -> DeviceConfig:
    return DeviceConfig(
        driver_type=settings.DRIVER_TYPE,
        device_name=settings.DEVICE_NAME,
        adb_host=settings.ADB_HOST,
        adb_port=settings.ADB_PORT,
        wda_url=settings.WDA_URL,
    )
