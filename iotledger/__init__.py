"""
IoT Device Ledger

Device registry and data verification workflow over a key-value world state.
"""

__version__ = "0.1.0"
