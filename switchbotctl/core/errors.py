"""Domain-specific errors for switchbotctl."""


class SwitchbotctlError(Exception):
    """Base error for switchbotctl."""


class ConfigValidationError(SwitchbotctlError):
    """Raised when a config file does not conform to schema or semantics."""


class ConfigLoadError(SwitchbotctlError):
    """Raised when reading config sources fails."""


class DeviceSelectionError(SwitchbotctlError):
    """Raised when a device id or name cannot be resolved to a target."""


class DeviceDiscoveryError(SwitchbotctlError):
    """Raised when a BLE discovery pass fails."""


class DeviceNotFoundError(DeviceDiscoveryError):
    """Raised when discovery finishes without seeing the requested device."""


class TransportError(SwitchbotctlError):
    """Base transport error."""


class TransportConnectError(TransportError):
    """Raised on BLE connect failures."""


class TransportSendError(TransportError):
    """Raised when a command write fails or the device rejects it."""


class TransportTimeoutError(TransportError):
    """Raised when the device does not answer in time."""
