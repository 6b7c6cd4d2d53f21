"""BLE radio boundary."""
