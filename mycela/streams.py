"""Protocol routing: turn a widget configuration into a live event stream."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import AsyncIterator

from .channel import ChannelEvent
from .config import WidgetConfig
from .modbus_client import ModbusPool, modbus_stream

__all__ = ["ChannelContext", "channel_stream"]


@dataclass
class ChannelContext:
    """Protocol handles shared by every widget stream."""

    modbus_pool: ModbusPool = field(default_factory=ModbusPool)


async def _no_events() -> AsyncIterator[ChannelEvent]:
    for event in ():
        yield event


def channel_stream(config: WidgetConfig, ctx: ChannelContext) -> AsyncIterator[ChannelEvent]:
    """Return the event stream for the widget's protocol; empty if none is served."""
    if config.modbus_tcp() is not None:
        return modbus_stream(config, ctx.modbus_pool)
    return _no_events()