"""Modbus TCP client: one pooled connection per device and polled channel streams."""

from __future__ import annotations

import asyncio
import ipaddress
import logging
import math
import struct
from dataclasses import dataclass
from typing import Any, AsyncIterator

from .channel import (
    ChannelEvent,
    ChannelValue,
    Connected,
    Disconnected,
    ErrorOccurred,
    PrimaryMeta,
    ValueReceived,
)
from .config import ModbusRegisterType, ModbusTcpConfig, WidgetConfig

__all__ = [
    "ModbusError",
    "DeviceHandle",
    "ModbusPool",
    "decode_words",
    "build_channel_value",
    "modbus_stream",
    "modbus_write",
]

log = logging.getLogger(__name__)

CONNECT_TIMEOUT = 2.0
RETRY_DELAY = 2.0
REQUEST_TIMEOUT = 1.0
MIN_POLL_INTERVAL_MS = 50

_FALLBACK_ADDRESS = ("127.0.0.1", 502)
_RAW_RANGE_HIGH = 65535.0
_I64_MIN = -(2 ** 63)
_I64_MAX = 2 ** 63 - 1

_READ_CODES = {
    ModbusRegisterType.HOLDING_REGISTER: 0x03,
    ModbusRegisterType.INPUT_REGISTER: 0x04,
    ModbusRegisterType.COIL: 0x01,
    ModbusRegisterType.DISCRETE_INPUT: 0x02,
}


class ModbusError(Exception):
    """A Modbus request failed: connection, protocol or device error."""


# ─── Requests and wire protocol ──────────────────────────────────────────────


@dataclass
class _Request:
    register: int
    register_type: ModbusRegisterType
    future: asyncio.Future
    word_count: int = 0
    values: list[int] | None = None

    @property
    def is_read(self) -> bool:
        return self.values is None

    def fail(self, message: str) -> None:
        if not self.future.done():
            self.future.set_exception(ModbusError(message))

    def succeed(self, result: Any) -> None:
        if not self.future.done():
            self.future.set_result(result)


class _Connection:
    """One open Modbus TCP connection speaking to a single unit."""

    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter, unit_id: int):
        self._reader = reader
        self._writer = writer
        self._unit_id = unit_id & 0xFF
        self._transaction_id = 0

    async def request(self, pdu: bytes) -> bytes:
        """Send a request PDU and return the response data after the function code."""
        self._transaction_id = (self._transaction_id + 1) & 0xFFFF
        tid = self._transaction_id
        header = struct.pack(">HHHB", tid, 0, len(pdu) + 1, self._unit_id)
        try:
            self._writer.write(header + pdu)
            await self._writer.drain()
            reply_header = await self._reader.readexactly(7)
            reply_tid, _protocol, length, _unit = struct.unpack(">HHHB", reply_header)
            if length < 2:
                raise ModbusError(f"invalid response length {length}")
            body = await self._reader.readexactly(length - 1)
        except asyncio.IncompleteReadError:
            raise ModbusError("connection closed by peer") from None
        except OSError as exc:
            raise ModbusError(str(exc) or type(exc).__name__) from exc

        if reply_tid != tid:
            raise ModbusError(f"transaction id mismatch: sent {tid}, got {reply_tid}")
        function = body[0]
        if function == (pdu[0] | 0x80):
            code = body[1] if len(body) > 1 else 0
            raise ModbusError(f"Modbus exception code {code}")
        if function != pdu[0]:
            raise ModbusError(f"unexpected function code {function:#04x}")
        return body[1:]

    def close(self) -> None:
        self._writer.close()


async def _execute_read(
    conn: _Connection, register: int, register_type: ModbusRegisterType, word_count: int
) -> list[int]:
    function = _READ_CODES[register_type]
    data = await conn.request(struct.pack(">BHH", function, register, word_count))
    if not data:
        raise ModbusError("empty read response")
    payload = data[1:1 + data[0]]
    if function in (0x03, 0x04):
        if len(payload) < 2 * word_count:
            raise ModbusError("short register read response")
        return [int.from_bytes(payload[i:i + 2], "big") for i in range(0, 2 * word_count, 2)]
    if len(payload) * 8 < word_count:
        raise ModbusError("short bit read response")
    return [(payload[i // 8] >> (i % 8)) & 1 for i in range(word_count)]


async def _execute_write(
    conn: _Connection, register: int, register_type: ModbusRegisterType, values: list[int]
) -> None:
    if register_type is ModbusRegisterType.HOLDING_REGISTER:
        if len(values) == 1:
            await conn.request(struct.pack(">BHH", 0x06, register, values[0]))
        else:
            words = b"".join(v.to_bytes(2, "big") for v in values)
            header = struct.pack(">BHHB", 0x10, register, len(values), len(words))
            await conn.request(header + words)
    elif register_type is ModbusRegisterType.COIL:
        state = 0xFF00 if (values[0] if values else 0) != 0 else 0x0000
        await conn.request(struct.pack(">BHH", 0x05, register, state))
    else:
        raise ModbusError(
            "Cannot write to read-only register types (input_register / discrete_input)"
        )


# ─── Device handles and the connection pool ──────────────────────────────────


class DeviceHandle:
    """Handle to one device's connection task, shared by every widget on that device."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue[_Request] = asyncio.Queue()
        self._closed = False
        self._in_flight: _Request | None = None

    async def read(self, register, register_type, word_count) -> list[int]:
        """Read ``word_count`` registers or bits starting at ``register``."""
        return await self._submit(register, register_type, word_count=word_count)

    async def write(self, register, register_type, values) -> None:
        """Write ``values`` starting at ``register``."""
        await self._submit(register, register_type, values=list(values))

    def is_closed(self) -> bool:
        """True once the device task has gone; fetch a fresh handle from the pool."""
        return self._closed

    async def _submit(self, register, register_type, word_count=0, values=None):
        if self._closed:
            raise ModbusError("device task closed")
        future = asyncio.get_running_loop().create_future()
        self._queue.put_nowait(
            _Request(register, ModbusRegisterType(register_type), future, word_count, values)
        )
        return await future

    def _mark_closed(self) -> None:
        self._closed = True

    def _shutdown(self) -> None:
        self._closed = True
        message = "device task dropped respond channel"
        if self._in_flight is not None:
            self._in_flight.fail(message)
            self._in_flight = None
        while not self._queue.empty():
            self._queue.get_nowait().fail(message)


def _socket_address(host: str, port: int) -> tuple[str, int]:
    candidate = host[1:-1] if host.startswith("[") and host.endswith("]") else None
    try:
        if candidate is not None:
            ipaddress.IPv6Address(candidate)
            return candidate, port
        ipaddress.IPv4Address(host)
        return host, port
    except ValueError:
        return _FALLBACK_ADDRESS


async def _reject_pending(queue: asyncio.Queue, deadline: float, message: str) -> None:
    """Fail every request that arrives before ``deadline``."""
    loop = asyncio.get_running_loop()
    while (remaining := deadline - loop.time()) > 0:
        try:
            request = await asyncio.wait_for(queue.get(), remaining)
        except asyncio.TimeoutError:
            return
        request.fail(message)


async def _connect(handle: DeviceHandle, host: str, port: int, unit_id: int) -> _Connection:
    loop = asyncio.get_running_loop()
    address = _socket_address(host, port)
    while True:
        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(*address), CONNECT_TIMEOUT
            )
        except asyncio.TimeoutError:
            log.warning("Modbus connect timed out for %s:%s -- retrying in 2 s", host, port)
            message = "Connection timed out"
        except OSError as exc:
            log.warning("Modbus connect failed for %s:%s: %s -- retrying in 2 s", host, port, exc)
            message = f"Connection failed: {exc}"
        else:
            log.info("Modbus connected to %s:%s unit %s", host, port, unit_id)
            return _Connection(reader, writer, unit_id)
        await _reject_pending(handle._queue, loop.time() + RETRY_DELAY, message)


async def _serve(conn: _Connection, request: _Request) -> bool:
    """Run one request; False means the connection should be re-established."""
    kind = "read" if request.is_read else "write"
    if request.is_read:
        operation = _execute_read(conn, request.register, request.register_type, request.word_count)
    else:
        operation = _execute_write(conn, request.register, request.register_type, request.values)
    try:
        result = await asyncio.wait_for(operation, REQUEST_TIMEOUT)
    except asyncio.TimeoutError:
        request.fail(f"{kind} timed out")
        return False
    except ModbusError as exc:
        request.fail(str(exc))
        return False
    request.succeed(result)
    return True


async def _run_device(handle: DeviceHandle, host: str, port: int, unit_id: int) -> None:
    while True:
        conn = await _connect(handle, host, port, unit_id)
        try:
            while True:
                request = await handle._queue.get()
                handle._in_flight = request
                ok = await _serve(conn, request)
                handle._in_flight = None
                if not ok:
                    log.warning("Modbus connection to %s:%s lost, reconnecting...", host, port)
                    break
        finally:
            conn.close()


class ModbusPool:
    """Shared connections keyed by ``host:port:unit_id``, one task per device."""

    def __init__(self) -> None:
        self._devices: dict[str, DeviceHandle] = {}
        self._tasks: list[asyncio.Task] = []

    def get_or_create(self, host, port, unit_id) -> DeviceHandle:
        """Return the device's handle, starting its connection task if needed."""
        key = f"{host}:{port}:{unit_id}"
        handle = self._devices.get(key)
        if handle is not None:
            return handle
        handle = DeviceHandle()
        task = asyncio.create_task(_run_device(handle, host, port, unit_id))
        task.add_done_callback(lambda _task: handle._shutdown())
        self._devices[key] = handle
        self._tasks.append(task)
        return handle

    def disconnect_all(self) -> None:
        """Stop every device task and forget all handles."""
        for task in self._tasks:
            task.cancel()
        self._tasks.clear()
        for handle in self._devices.values():
            handle._mark_closed()
        self._devices.clear()


# ─── Value conversion ────────────────────────────────────────────────────────


def decode_words(words, word_count) -> float:
    """Decode register words: two words are a big-endian f32, otherwise an unsigned u16."""
    words = list(words)
    if word_count == 2 and len(words) >= 2:
        packed = struct.pack(">HH", words[0] & 0xFFFF, words[1] & 0xFFFF)
        return struct.unpack(">f", packed)[0]
    if words:
        return float(words[0])
    return 0.0


def _saturating_i64(value: float) -> int:
    if math.isnan(value):
        return 0
    if math.isinf(value):
        return _I64_MAX if value > 0 else _I64_MIN
    return max(_I64_MIN, min(_I64_MAX, int(value)))


def build_channel_value(physical, m: ModbusTcpConfig, config: WidgetConfig) -> ChannelValue:
    """Turn a scaled register value into a channel value using the widget metadata."""
    metadata = config.metadata
    display = metadata.display if metadata else None
    control = metadata.control if metadata else None
    alarm = metadata.alarm if metadata else None

    precision = display.precision if display else 2
    units = display.units if display else ""
    description = display.description if display else ""

    if config.data_type in ("bool", "int32", "int"):
        value_str = str(_saturating_i64(physical))
    else:
        value_str = f"{physical:.{max(precision, 0)}f}"

    raw_range_high = _RAW_RANGE_HIGH * m.scale + m.offset
    display_low = display.limit_low if display else m.offset
    display_high = display.limit_high if display else raw_range_high
    control_low = control.limit_low if control else display_low
    control_high = control.limit_high if control else display_high

    alarm_severity = alarm.compute_severity(physical) if alarm else 0

    return ChannelValue(
        raw_value=physical,
        value_str=value_str,
        precision=precision,
        display_low=display_low,
        display_high=display_high,
        control_low=control_low,
        control_high=control_high,
        low_alarm_limit=alarm.low_alarm_limit if alarm else 0.0,
        low_warn_limit=alarm.low_warning_limit if alarm else 0.0,
        high_warn_limit=alarm.high_warning_limit if alarm else display_high,
        high_alarm_limit=alarm.high_alarm_limit if alarm else display_high,
        alarm_severity=alarm_severity,
        units=units,
        primary_meta=PrimaryMeta(
            alarm_severity=alarm_severity,
            description=description,
            units=units,
            limit_lo=display_low,
            limit_hi=display_high,
        ),
    )


# ─── Streams and writes ──────────────────────────────────────────────────────


async def modbus_stream(config: WidgetConfig, pool: ModbusPool) -> AsyncIterator[ChannelEvent]:
    """Poll the widget's register and yield events whenever something changes."""
    m = config.modbus_tcp()
    if m is None:
        yield ErrorOccurred("modbus_stream: not a modbus widget")
        return

    loop = asyncio.get_running_loop()
    period = max(m.min_poll_interval_ms, MIN_POLL_INTERVAL_MS) / 1000.0
    handle = pool.get_or_create(m.host, m.port, m.unit_id)
    was_connected = False
    last_value_str: str | None = None
    next_tick = loop.time()

    while True:
        delay = next_tick - loop.time()
        await asyncio.sleep(max(delay, 0.0))
        next_tick += period

        if handle.is_closed():
            if was_connected:
                was_connected = False
                last_value_str = None
                yield Disconnected("connection closed")
            handle = pool.get_or_create(m.host, m.port, m.unit_id)

        try:
            words = await handle.read(m.register, m.register_type, m.word_count)
        except ModbusError as exc:
            if was_connected:
                was_connected = False
                last_value_str = None
                log.warning(
                    "Modbus poll error for %s:%s/reg%s: %s", m.host, m.port, m.register, exc
                )
                yield Disconnected(str(exc))
            continue

        if not was_connected:
            was_connected = True
            yield Connected()
        physical = decode_words(words, m.word_count) * m.scale + m.offset
        value = build_channel_value(physical, m, config)
        # Only changed values are pushed, so an edit in progress is not overwritten.
        if value.value_str != last_value_str:
            last_value_str = value.value_str
            yield ValueReceived(value)


def _divide(numerator: float, denominator: float) -> float:
    try:
        return numerator / denominator
    except ZeroDivisionError:
        if numerator == 0 or math.isnan(numerator):
            return math.nan
        return math.copysign(math.inf, numerator) * math.copysign(1.0, denominator)


def _f32_words(value: float) -> list[int]:
    try:
        packed = struct.pack(">f", value)
    except OverflowError:
        packed = struct.pack(">f", math.copysign(math.inf, value))
    high, low = struct.unpack(">HH", packed)
    return [high, low]


def _register_word(value: float) -> int:
    """Round half away from zero and clamp into the u16 range."""
    if math.isnan(value) or value <= 0:
        return 0
    if value >= _RAW_RANGE_HIGH:
        return int(_RAW_RANGE_HIGH)
    whole = math.floor(value)
    return int(whole + 1 if value - whole >= 0.5 else whole)


async def modbus_write(m: ModbusTcpConfig, physical_value, pool: ModbusPool) -> None:
    """Write a physical value to the register, undoing scale and offset."""
    handle = pool.get_or_create(m.host, m.port, m.unit_id)
    raw = _divide(physical_value - m.offset, m.scale)
    words = _f32_words(raw) if m.word_count == 2 else [_register_word(raw)]
    await handle.write(m.register, m.register_type, words)