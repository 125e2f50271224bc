class MobilePilotError(Exception):
    """Base class for every error raised by mobile-pilot."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class CaptureError(MobilePilotError):
    """Screenshot or UI hierarchy capture failed."""


class ReasoningServiceError(MobilePilotError):
    """The reasoning model could not be reached or returned nothing usable."""


class ParseError(MobilePilotError):
    """No valid action could be extracted from a reasoning model response."""

    def __init__(self, message: str, raw_text: str):
        super().__init__(message)
        self.raw_text = raw_text


class LocationError(MobilePilotError):
    """Both the selector and the vision fallback failed to locate an element."""

    def __init__(self, description: str, reason: str | None = None):
        message = f"Failed to locate element: {description}."
        if reason:
            message += f" {reason}"
        super().__init__(message)
        self.description = description
        self.reason = reason


class ExecutorError(MobilePilotError):
    """An action could not be executed."""


class DeviceNotConnectedError(MobilePilotError):
    pass


class ConfigurationError(MobilePilotError):
    pass
