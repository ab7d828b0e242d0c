"""Configuration model, channel values, Modbus TCP client pool and simulator for control-system screens."""

__version__ = "0.1.0"