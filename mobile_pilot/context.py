"""
Context variables for one automation run.

Everything a node needs is created up front and passed explicitly: no component
reads global settings.
"""

from pydantic import BaseModel, ConfigDict

from mobile_pilot.config import LLMConfig
from mobile_pilot.controllers.device_controller import MobileDeviceController
from mobile_pilot.locator.hybrid_locator import HybridLocator, VisionFallbackFn
from mobile_pilot.observability.healing_logger import HealingLogger
from mobile_pilot.services.llm import ReasoningService


class PilotContext(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    controller: MobileDeviceController
    reasoning_service: ReasoningService
    llm_config: LLMConfig | None = None
    vision_fallback: VisionFallbackFn | None = None
    healing_logger: HealingLogger | None = None
    locator: HybridLocator | None = None

    def get_locator(self) -> HybridLocator:
        """Returns the run's hybrid locator, creating it on first use."""
        if self.locator is None:
            self.locator = HybridLocator(
                controller=self.controller,
                vision_fallback=self.vision_fallback,
                healing_logger=self.healing_logger,
            )
        return self.locator
