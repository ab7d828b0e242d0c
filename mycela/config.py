"""Application, screen and widget configuration loaded from JSON."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Union

__all__ = [
    "ConfigError",
    "ConfigFileError",
    "ConfigJsonError",
    "ActionKind",
    "ActionConfig",
    "ModbusRegisterType",
    "WidgetType",
    "DisplayMetadata",
    "ControlMetadata",
    "AlarmMetadata",
    "PvMetadata",
    "ServerConfig",
    "EpicsPvaConfig",
    "ModbusTcpConfig",
    "parse_protocol",
    "WidgetSize",
    "WidgetStyle",
    "WidgetConfig",
    "ScreenConfig",
    "AppConfig",
]

_WIDGET_TYPES_HINT = (
    "text_entry, text_update, gauge, led, button, slider, chart, select, "
    "toggle_button, group"
)


# ─── Errors ──────────────────────────────────────────────────────────────────


class ConfigError(Exception):
    """Base class for configuration loading errors."""


class ConfigFileError(ConfigError):
    """The configuration file could not be read."""

    def __init__(self, cause: OSError):
        self.cause = cause
        super().__init__(f"Failed to read config file: {cause}")


class ConfigJsonError(ConfigError):
    """The configuration JSON is malformed or does not match the schema."""

    def __init__(self, message: str, context: str = "", line: int = 0, column: int = 0):
        self.message = message
        self.context = context
        self.line = line
        self.column = column
        super().__init__(f"Configuration JSON error: {message}\n{context}")


# ─── Field parsing helpers ───────────────────────────────────────────────────

_MISSING = object()


def _describe(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return f"boolean `{str(value).lower()}`"
    if isinstance(value, int):
        return f"integer `{value}`"
    if isinstance(value, float):
        return f"floating point `{value}`"
    if isinstance(value, str):
        return f'string "{value}"'
    if isinstance(value, list):
        return "sequence"
    if isinstance(value, dict):
        return "map"
    return type(value).__name__


def _invalid(value: Any, expected: str) -> ConfigJsonError:
    return ConfigJsonError(f"invalid type: {_describe(value)}, expected {expected}")


def _struct(data: Any, name: str) -> dict:
    if not isinstance(data, dict):
        raise _invalid(data, f"struct {name}")
    return data


def _field(data: dict, key: str, parse: Callable[[Any], Any], default: Any = _MISSING,
           aliases: tuple[str, ...] = ()) -> Any:
    present = [k for k in (key, *aliases) if k in data]
    if len(present) > 1:
        raise ConfigJsonError(f"duplicate field `{key}`")
    if not present:
        if default is _MISSING:
            raise ConfigJsonError(f"missing field `{key}`")
        return default
    return parse(data[present[0]])


def _optional(parse: Callable[[Any], Any]) -> Callable[[Any], Any]:
    def parse_optional(value: Any) -> Any:
        return None if value is None else parse(value)
    return parse_optional


def _opt_field(data: dict, key: str, parse: Callable[[Any], Any]) -> Any:
    return _field(data, key, _optional(parse), None)


def _str(value: Any) -> str:
    if not isinstance(value, str):
        raise _invalid(value, "a string")
    return value


def _bool(value: Any) -> bool:
    if not isinstance(value, bool):
        raise _invalid(value, "a boolean")
    return value


def _f64(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise _invalid(value, "f64")
    return float(value)


def _int(name: str, low: int, high: int) -> Callable[[Any], int]:
    def parse_int(value: Any) -> int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise _invalid(value, name)
        if not low <= value <= high:
            raise ConfigJsonError(f"invalid value: integer `{value}`, expected {name}")
        return value
    return parse_int


_u8 = _int("u8", 0, 0xFF)
_u16 = _int("u16", 0, 0xFFFF)
_i32 = _int("i32", -(2 ** 31), 2 ** 31 - 1)
_u64 = _int("u64", 0, 2 ** 64 - 1)
_usize = _int("usize", 0, 2 ** 64 - 1)


def _list_of(parse: Callable[[Any], Any]) -> Callable[[Any], list]:
    def parse_list(value: Any) -> list:
        if not isinstance(value, list):
            raise _invalid(value, "a sequence")
        return [parse(item) for item in value]
    return parse_list


def _enum(cls: type[Enum]) -> Callable[[Any], Any]:
    def parse_enum(value: Any) -> Any:
        if not isinstance(value, str):
            raise _invalid(value, "variant identifier")
        try:
            return cls(value)
        except ValueError:
            expected = ", ".join(f"`{member.value}`" for member in cls)
            raise ConfigJsonError(
                f"unknown variant `{value}`, expected one of {expected}"
            ) from None
    return parse_enum


def _dump(obj: Any) -> Any:
    return None if obj is None else obj.to_dict()


# ─── Actions ─────────────────────────────────────────────────────────────────


class ActionKind(str, Enum):
    """Kind of a screen header action button."""

    NAVIGATE = "navigate"
    BACK = "back"
    POPUP = "popup"
    WINDOW = "window"
    API = "api"


_ACTION_FIELDS = {
    ActionKind.NAVIGATE: ("label", "to"),
    ActionKind.BACK: ("label",),
    ActionKind.POPUP: ("label", "to"),
    ActionKind.WINDOW: ("label", "to"),
    ActionKind.API: ("label", "method", "path"),
}


@dataclass
class ActionConfig:
    """Navigation or API button shown in a screen header."""

    kind: ActionKind
    label: str
    to: str | None = None
    method: str | None = None
    path: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> ActionConfig:
        data = _struct(data, "ActionConfig")
        kind = _field(data, "type", _enum(ActionKind))
        values = {name: _field(data, name, _str) for name in _ACTION_FIELDS[kind]}
        return cls(kind=kind, **values)

    def to_dict(self) -> dict:
        out: dict[str, Any] = {"type": self.kind.value}
        for name in _ACTION_FIELDS[self.kind]:
            out[name] = getattr(self, name)
        return out


# ─── Enumerations ────────────────────────────────────────────────────────────


class ModbusRegisterType(str, Enum):
    """Modbus register or coil table."""

    HOLDING_REGISTER = "holding_register"
    INPUT_REGISTER = "input_register"
    COIL = "coil"
    DISCRETE_INPUT = "discrete_input"


class WidgetType(str, Enum):
    """Kinds of widget a screen may hold."""

    TEXT_ENTRY = "text_entry"
    TEXT_UPDATE = "text_update"
    GAUGE = "gauge"
    LED = "led"
    BUTTON = "button"
    TOGGLE_BUTTON = "toggle_button"
    SLIDER = "slider"
    CHART = "chart"
    SELECT = "select"
    GROUP = "group"
    MULTI_STATE_LED = "multi_state_led"


# ─── Metadata ────────────────────────────────────────────────────────────────


@dataclass
class DisplayMetadata:
    limit_low: float
    limit_high: float
    description: str
    precision: int
    units: str

    @classmethod
    def from_dict(cls, data: Any) -> DisplayMetadata:
        data = _struct(data, "DisplayMetadata")
        return cls(
            limit_low=_field(data, "limit_low", _f64),
            limit_high=_field(data, "limit_high", _f64),
            description=_field(data, "description", _str),
            precision=_field(data, "precision", _i32),
            units=_field(data, "units", _str),
        )

    def to_dict(self) -> dict:
        return {
            "limit_low": self.limit_low,
            "limit_high": self.limit_high,
            "description": self.description,
            "precision": self.precision,
            "units": self.units,
        }


@dataclass
class ControlMetadata:
    limit_low: float
    limit_high: float
    min_step: float = 0.0

    @classmethod
    def from_dict(cls, data: Any) -> ControlMetadata:
        data = _struct(data, "ControlMetadata")
        return cls(
            limit_low=_field(data, "limit_low", _f64),
            limit_high=_field(data, "limit_high", _f64),
            min_step=_field(data, "min_step", _f64, 0.0),
        )

    def to_dict(self) -> dict:
        return {
            "limit_low": self.limit_low,
            "limit_high": self.limit_high,
            "min_step": self.min_step,
        }


_ALARM_FLOATS = ("low_alarm_limit", "low_warning_limit", "high_alarm_limit", "high_warning_limit")
_ALARM_SEVERITIES = (
    "low_alarm_severity", "low_warning_severity", "high_warning_severity", "high_alarm_severity",
)


@dataclass
class AlarmMetadata:
    low_alarm_limit: float
    low_warning_limit: float
    high_alarm_limit: float
    high_warning_limit: float
    low_alarm_severity: str
    low_warning_severity: str
    high_warning_severity: str
    high_alarm_severity: str
    hysteresis: int

    @classmethod
    def from_dict(cls, data: Any) -> AlarmMetadata:
        data = _struct(data, "AlarmMetadata")
        values: dict[str, Any] = {name: _field(data, name, _f64) for name in _ALARM_FLOATS}
        values.update({name: _field(data, name, _str) for name in _ALARM_SEVERITIES})
        values["hysteresis"] = _field(data, "hysteresis", _i32)
        return cls(**values)

    def to_dict(self) -> dict:
        names = (*_ALARM_FLOATS, *_ALARM_SEVERITIES, "hysteresis")
        return {name: getattr(self, name) for name in names}

    @staticmethod
    def _severity_int(name: str) -> int:
        return {"MAJOR": 2, "MINOR": 1}.get(name, 0)

    def compute_severity(self, value: float) -> int:
        """Alarm severity (0 none, 1 MINOR, 2 MAJOR) for a scalar value."""
        if value < self.low_alarm_limit:
            return self._severity_int(self.low_alarm_severity)
        if value > self.high_alarm_limit:
            return self._severity_int(self.high_alarm_severity)
        if value < self.low_warning_limit:
            return self._severity_int(self.low_warning_severity)
        if value > self.high_warning_limit:
            return self._severity_int(self.high_warning_severity)
        return 0


@dataclass
class PvMetadata:
    display: DisplayMetadata | None = None
    control: ControlMetadata | None = None
    alarm: AlarmMetadata | None = None

    @classmethod
    def from_dict(cls, data: Any) -> PvMetadata:
        data = _struct(data, "PvMetadata")
        return cls(
            display=_opt_field(data, "display", DisplayMetadata.from_dict),
            control=_opt_field(data, "control", ControlMetadata.from_dict),
            alarm=_opt_field(data, "alarm", AlarmMetadata.from_dict),
        )

    def to_dict(self) -> dict:
        return {
            "display": _dump(self.display),
            "control": _dump(self.control),
            "alarm": _dump(self.alarm),
        }


@dataclass
class ServerConfig:
    """Definition of a PV hosted by the embedded server."""

    alarm_severity: str | None = None
    alarm_status: str | None = None
    alarm_message: str | None = None
    metadata: PvMetadata | None = None

    @classmethod
    def from_dict(cls, data: Any) -> ServerConfig:
        data = _struct(data, "ServerConfig")
        return cls(
            alarm_severity=_opt_field(data, "alarm_serverity", _str),
            alarm_status=_opt_field(data, "alarm_status", _str),
            alarm_message=_opt_field(data, "alarm_message", _str),
            metadata=_opt_field(data, "metadata", PvMetadata.from_dict),
        )

    def to_dict(self) -> dict:
        return {
            "alarm_serverity": self.alarm_severity,
            "alarm_status": self.alarm_status,
            "alarm_message": self.alarm_message,
            "metadata": _dump(self.metadata),
        }


# ─── Protocols ───────────────────────────────────────────────────────────────

_MAX_EXTRA_SERIES = 5


@dataclass
class EpicsPvaConfig:
    """EPICS PV Access channel settings."""

    pv_name: str
    server: ServerConfig | None = None
    pv_names: list[str] | None = None

    TYPE = "epics-pva"

    @classmethod
    def from_dict(cls, data: Any) -> EpicsPvaConfig:
        data = _struct(data, "EpicsPvaConfig")
        return cls(
            pv_name=_field(data, "pv_name", _str),
            server=_opt_field(data, "server", ServerConfig.from_dict),
            pv_names=_opt_field(data, "pv_names", _list_of(_str)),
        )

    def to_dict(self) -> dict:
        return {
            "type": self.TYPE,
            "pv_name": self.pv_name,
            "server": _dump(self.server),
            "pv_names": None if self.pv_names is None else list(self.pv_names),
        }

    def series_pvs(self) -> list[str]:
        """The primary PV followed by at most five extra chart series."""
        return [self.pv_name, *(self.pv_names or [])[:_MAX_EXTRA_SERIES]]


@dataclass
class ModbusTcpConfig:
    """Modbus TCP channel settings."""

    host: str
    register: int
    register_type: ModbusRegisterType
    port: int = 502
    unit_id: int = 1
    min_poll_interval_ms: int = 500
    scale: float = 1.0
    offset: float = 0.0
    word_count: int = 1

    TYPE = "modbus-tcp"

    @classmethod
    def from_dict(cls, data: Any) -> ModbusTcpConfig:
        data = _struct(data, "ModbusTCPConfig")
        return cls(
            host=_field(data, "host", _str),
            port=_field(data, "port", _u16, 502),
            unit_id=_field(data, "unit_id", _u8, 1, aliases=("slave_id",)),
            register=_field(data, "register", _u16),
            register_type=_field(data, "register_type", _enum(ModbusRegisterType)),
            min_poll_interval_ms=_field(
                data, "min_poll_interval_ms", _u64, 500, aliases=("poll_interval_ms",)
            ),
            scale=_field(data, "scale", _f64, 1.0),
            offset=_field(data, "offset", _f64, 0.0),
            word_count=_field(data, "word_count", _u8, 1),
        )

    def to_dict(self) -> dict:
        return {
            "type": self.TYPE,
            "host": self.host,
            "port": self.port,
            "unit_id": self.unit_id,
            "register": self.register,
            "register_type": self.register_type.value,
            "min_poll_interval_ms": self.min_poll_interval_ms,
            "scale": self.scale,
            "offset": self.offset,
            "word_count": self.word_count,
        }


ProtocolConfig = Union[EpicsPvaConfig, ModbusTcpConfig]

_PROTOCOLS: dict[str, Callable[[Any], ProtocolConfig]] = {
    EpicsPvaConfig.TYPE: EpicsPvaConfig.from_dict,
    ModbusTcpConfig.TYPE: ModbusTcpConfig.from_dict,
}


def parse_protocol(data: Any) -> ProtocolConfig:
    """Parse a protocol block tagged by its ``type`` field."""
    data = _struct(data, "ProtocolConfig")
    tag = _field(data, "type", _str)
    try:
        parse = _PROTOCOLS[tag]
    except KeyError:
        expected = ", ".join(f"`{name}`" for name in _PROTOCOLS)
        raise ConfigJsonError(f"unknown variant `{tag}`, expected one of {expected}") from None
    return parse(data)


# ─── Widgets ─────────────────────────────────────────────────────────────────


@dataclass
class WidgetSize:
    width: str | None = None
    height: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> WidgetSize:
        data = _struct(data, "WidgetSize")
        return cls(width=_opt_field(data, "width", _str), height=_opt_field(data, "height", _str))

    def to_dict(self) -> dict:
        return {"width": self.width, "height": self.height}


_STYLE_FIELDS = ("width", "height", "background", "left", "top")


@dataclass
class WidgetStyle:
    width: str | None = None
    height: str | None = None
    background: str | None = None
    left: str | None = None
    top: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> WidgetStyle:
        data = _struct(data, "WidgetStyle")
        return cls(**{name: _opt_field(data, name, _str) for name in _STYLE_FIELDS})

    def to_dict(self) -> dict:
        return {name: getattr(self, name) for name in _STYLE_FIELDS}


@dataclass
class WidgetConfig:
    """One widget on a screen; groups hold child widgets."""

    id: str = ""
    widget_type: WidgetType = WidgetType.TEXT_UPDATE
    label: str = ""
    protocol: ProtocolConfig | None = None
    data_type: str | None = None
    description: str | None = None
    style: WidgetStyle | None = None
    options: list[str] | None = None
    orientation: str | None = None
    level: int | None = None
    children: list[WidgetConfig] | None = None
    max_points: int | None = None
    chart_type: str | None = None
    axis_label_x: str | None = None
    axis_label_y: str | None = None
    size: WidgetSize | None = None
    metadata: PvMetadata | None = None
    polygon_points: str | None = None
    invert: bool | None = None
    label_position: str | None = None
    color: str | None = None
    write_value: int | None = None

    @classmethod
    def from_dict(cls, data: Any) -> WidgetConfig:
        data = _struct(data, "WidgetConfig")
        return cls(
            id=_field(data, "id", _str),
            widget_type=_field(data, "type", _enum(WidgetType)),
            label=_field(data, "label", _str),
            protocol=_opt_field(data, "protocol", parse_protocol),
            data_type=_opt_field(data, "data_type", _str),
            description=_opt_field(data, "description", _str),
            style=_opt_field(data, "style", WidgetStyle.from_dict),
            options=_opt_field(data, "options", _list_of(_str)),
            orientation=_opt_field(data, "orientation", _str),
            level=_opt_field(data, "level", _u8),
            children=_opt_field(data, "children", _list_of(WidgetConfig.from_dict)),
            max_points=_opt_field(data, "max_points", _usize),
            chart_type=_opt_field(data, "chart_type", _str),
            axis_label_x=_opt_field(data, "axis_label_x", _str),
            axis_label_y=_opt_field(data, "axis_label_y", _str),
            size=_opt_field(data, "size", WidgetSize.from_dict),
            metadata=_opt_field(data, "metadata", PvMetadata.from_dict),
            polygon_points=_opt_field(data, "polygon_points", _str),
            invert=_opt_field(data, "invert", _bool),
            label_position=_opt_field(data, "label_position", _str),
            color=_opt_field(data, "color", _str),
            write_value=_opt_field(data, "write_value", _u16),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.widget_type.value,
            "label": self.label,
            "protocol": _dump(self.protocol),
            "data_type": self.data_type,
            "description": self.description,
            "style": _dump(self.style),
            "options": None if self.options is None else list(self.options),
            "orientation": self.orientation,
            "level": self.level,
            "children": None if self.children is None else [c.to_dict() for c in self.children],
            "max_points": self.max_points,
            "chart_type": self.chart_type,
            "axis_label_x": self.axis_label_x,
            "axis_label_y": self.axis_label_y,
            "size": _dump(self.size),
            "metadata": _dump(self.metadata),
            "polygon_points": self.polygon_points,
            "invert": self.invert,
            "label_position": self.label_position,
            "color": self.color,
            "write_value": self.write_value,
        }

    def channel_address(self) -> str:
        """Human-readable channel address for logs and the DOM."""
        if isinstance(self.protocol, EpicsPvaConfig):
            return self.protocol.pv_name
        if isinstance(self.protocol, ModbusTcpConfig):
            m = self.protocol
            return f"modbus-tcp://{m.host}:{m.port}/reg{m.register}"
        return ""

    def epics_pva(self) -> EpicsPvaConfig | None:
        return self.protocol if isinstance(self.protocol, EpicsPvaConfig) else None

    def modbus_tcp(self) -> ModbusTcpConfig | None:
        return self.protocol if isinstance(self.protocol, ModbusTcpConfig) else None


# ─── Loading and validation ──────────────────────────────────────────────────


def _validate_widgets(widgets: list[WidgetConfig], seen_ids: set[str]) -> None:
    for number, widget in enumerate(widgets, start=1):
        if widget.id in seen_ids:
            context = (
                f"Widget #{number} has duplicate ID: '{widget.id}'\n"
                "Each widget must have a unique 'id' field."
            )
            raise ConfigJsonError("duplicate_id", context)
        seen_ids.add(widget.id)
        if widget.children is not None:
            _validate_widgets(widget.children, seen_ids)


def _extract_field_name(message: str) -> str | None:
    marker = "missing field `"
    start = message.find(marker)
    if start < 0:
        return None
    start += len(marker)
    end = message.find("`", start)
    return None if end < 0 else message[start:end]


def _field_hint(name: str) -> str:
    hints = {
        "id": "Each widget must have a unique 'id' field (string).",
        "type": "Each widget must have a 'type' field. Valid types: " + _WIDGET_TYPES_HINT,
        "label": "Each widget must have a 'label' field for display (string).",
        "title": "The config root must have a 'title' field (string).",
        "description": "The config root must have a 'description' field (string).",
        "widgets": "The config root must have a 'widgets' array containing widget configurations.",
        "pv_name": "Inside an 'epics-pva' protocol block, 'pv_name' must be set to the EPICS PV name.",
        "host": "Inside a 'modbus' protocol block, 'host' must be set to the device IP/hostname.",
        "register": "Inside a 'modbus' protocol block, 'register' must be the register address (u16).",
        "register_type": (
            "Inside a 'modbus' protocol block, 'register_type' must be one of: "
            "holding_register, input_register, coil, discrete_input."
        ),
    }
    return hints.get(name, f"The field '{name}' is required but missing.")


def _error_context(message: str, line: int, column: int, content: str, path: str) -> str:
    parts = [f"File: {path}\n"]
    if line > 0:
        parts.append(f"Line: {line}, Column: {column}\n\n")
        lines = content.splitlines()
        start = max(line - 3, 0)
        end = min(line + 2, len(lines))
        parts.append("Context:\n")
        for line_num, text in enumerate(lines[start:end], start=start + 1):
            indent = "  " if line_num == line else "    "
            parts.append(f"{indent}{line_num}: {text}\n")
        parts.append("\n")

    parts.append(f"Error: {message}\n\n")

    if "missing field" in message:
        name = _extract_field_name(message)
        if name is not None:
            parts.append(f"💡 Hint: {_field_hint(name)}\n")
    elif "unknown variant" in message or "unknown field" in message:
        parts.append("💡 Hint: Check for typos in field names or enum values.\n")
        parts.append(f"   Valid widget types: {_WIDGET_TYPES_HINT}\n")
    elif "invalid type" in message:
        parts.append(
            "💡 Hint: Check that the field has the correct data type "
            "(string, number, boolean, etc.)\n"
        )
    return "".join(parts)


def _load_json(path: str | Path, parse: Callable[[Any], Any]) -> Any:
    try:
        content = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigFileError(exc) from exc
    try:
        data = json.loads(content)
    except json.JSONDecodeError as exc:
        message = f"{exc.msg} at line {exc.lineno} column {exc.colno}"
        context = _error_context(message, exc.lineno, exc.colno, content, str(path))
        raise ConfigJsonError(message, context, exc.lineno, exc.colno) from exc
    try:
        return parse(data)
    except ConfigJsonError as exc:
        context = _error_context(exc.message, exc.line, exc.column, content, str(path))
        raise ConfigJsonError(exc.message, context, exc.line, exc.column) from exc


@dataclass
class ScreenConfig:
    """A screen of widgets with optional header actions."""

    id: str
    title: str
    description: str
    widgets: list[WidgetConfig] = field(default_factory=list)
    actions: list[ActionConfig] | None = None

    @classmethod
    def from_dict(cls, data: Any) -> ScreenConfig:
        data = _struct(data, "ScreenConfig")
        return cls(
            id=_field(data, "id", _str),
            title=_field(data, "title", _str),
            description=_field(data, "description", _str),
            actions=_opt_field(data, "actions", _list_of(ActionConfig.from_dict)),
            widgets=_field(data, "widgets", _list_of(WidgetConfig.from_dict)),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "actions": None if self.actions is None else [a.to_dict() for a in self.actions],
            "widgets": [w.to_dict() for w in self.widgets],
        }

    @classmethod
    def load(cls, path: str | Path) -> ScreenConfig:
        """Load and validate a screen from a JSON file."""
        config = _load_json(path, cls.from_dict)
        config.validate()
        return config

    def validate(self) -> None:
        """Raise ConfigJsonError if any widget id repeats, children included."""
        _validate_widgets(self.widgets, set())

    def save(self, path: str | Path) -> None:
        """Write the screen as pretty-printed JSON."""
        Path(path).write_text(
            json.dumps(self.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8"
        )


@dataclass
class AppConfig:
    """Top-level application configuration holding all screens."""

    title: str
    screens: list[ScreenConfig] = field(default_factory=list)
    home_screen: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> AppConfig:
        data = _struct(data, "AppConfig")
        return cls(
            title=_field(data, "title", _str),
            home_screen=_opt_field(data, "home_screen", _str),
            screens=_field(data, "screens", _list_of(ScreenConfig.from_dict)),
        )

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "home_screen": self.home_screen,
            "screens": [s.to_dict() for s in self.screens],
        }

    @classmethod
    def load(cls, path: str | Path) -> AppConfig:
        """Load and validate application configuration from a JSON file."""
        config = _load_json(path, cls.from_dict)
        config.validate()
        return config

    def validate(self) -> None:
        """Raise ConfigJsonError on repeated screen ids or widget ids across screens."""
        seen_screens: set[str] = set()
        seen_widgets: set[str] = set()
        for screen in self.screens:
            if screen.id in seen_screens:
                context = (
                    f"Duplicate screen ID: '{screen.id}'\n"
                    "Each screen must have a unique 'id'."
                )
                raise ConfigJsonError("duplicate_screen_id", context)
            seen_screens.add(screen.id)
            _validate_widgets(screen.widgets, seen_widgets)