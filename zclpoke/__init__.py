"""Interactive explorer for manufacturer-specific Zigbee cluster attributes."""

__version__ = "0.1.0"
