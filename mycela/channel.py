"""Protocol-independent channel values and the events a channel stream emits."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

__all__ = [
    "PrimaryMeta",
    "ChannelValue",
    "Connected",
    "Disconnected",
    "ValueReceived",
    "ErrorOccurred",
    "ChannelEvent",
]


@dataclass
class PrimaryMeta:
    """Metadata snapshot of the primary series, used by multi-series charts."""

    alarm_severity: int = 0
    description: str = ""
    units: str = ""
    limit_lo: float = 0.0
    limit_hi: float = 0.0


@dataclass
class ChannelValue:
    """A normalised snapshot of a channel value.

    Fields a protocol does not provide keep safe defaults (zero, empty,
    a 0-100 display range) so widgets can use them unconditionally.
    """

    raw_value: float = 0.0
    value_str: str = ""
    array_values: list[float] = field(default_factory=list)
    named_series: dict[str, list[float]] = field(default_factory=dict)
    alarm_severity: int = 0
    alarm_status: int = 0
    units: str = ""
    display_low: float = 0.0
    display_high: float = 100.0
    control_low: float = 0.0
    control_high: float = 100.0
    precision: int = 1
    low_alarm_limit: float = 0.0
    low_warn_limit: float = 0.0
    high_warn_limit: float = 100.0
    high_alarm_limit: float = 100.0
    enum_index: int = 0
    enum_choices: list[str] = field(default_factory=list)
    primary_meta: PrimaryMeta = field(default_factory=PrimaryMeta)


@dataclass(frozen=True)
class Connected:
    """The channel has connected to its data source."""


@dataclass(frozen=True)
class Disconnected:
    """The channel lost its data source."""

    reason: str


@dataclass
class ValueReceived:
    """A new value arrived from the data source."""

    value: ChannelValue


@dataclass(frozen=True)
class ErrorOccurred:
    """A connection or protocol error occurred."""

    message: str


ChannelEvent = Union[Connected, Disconnected, ValueReceived, ErrorOccurred]