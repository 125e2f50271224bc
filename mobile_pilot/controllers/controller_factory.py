from mobile_pilot.config import DeviceConfig
from mobile_pilot.controllers.device_controller import MobileDeviceController
from mobile_pilot.utils.errors import ConfigurationError
from mobile_pilot.utils.logger import get_logger

logger = get_logger(__name__)


def create_device_controller(config: DeviceConfig) -> MobileDeviceController:
    """
    Factory function to create the device controller matching the configured driver type.

    Args:
        config: Device configuration (driver type and backend connection details)

    Returns:
        MobileDeviceController: Platform-specific controller instance (not yet connected)
    """
    match config.driver_type:
        case "android":
            if not config.device_name:
                raise ConfigurationError("DEVICE_NAME is required for the android driver")
            from mobile_pilot.controllers.android_controller import AndroidController

            logger.info(f"Creating Android controller for device {config.device_name}")
            return AndroidController(
                device_id=config.device_name,
                adb_host=config.adb_host,
                adb_port=config.adb_port,
            )
        case "ios":
            from mobile_pilot.controllers.ios_controller import IosController

            logger.info(f"Creating iOS controller for WDA at {config.wda_url}")
            return IosController(wda_url=config.wda_url)
        case "mock":
            from mobile_pilot.controllers.mock_controller import MockController

            logger.info("Creating mock controller with the sample login flow")
            return MockController()
        case _:
            raise ConfigurationError(f"Unsupported driver type: {config.driver_type}")
