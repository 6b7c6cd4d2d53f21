"""SwitchBot Bot control over Bluetooth LE."""

__version__ = "0.1.0"
