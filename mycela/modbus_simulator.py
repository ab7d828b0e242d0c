"""A small Modbus TCP simulator with a live-updating register bank.

Register map:
  holding 1000  temperature (raw * 0.01, 20-30)
  holding 1001  pressure    (raw * 0.1, 900-1100)
  holding 1002  setpoint    (writable, initial 500)
  holding 1003  counter     (increments each tick)
  input   2000  sensor      (raw * 0.01, 0-100)
  coil 0 status LED (toggles every ~2 s), coil 1 writable output,
  coil 2 valve B status.
"""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass, field

__all__ = [
    "SimulatorState",
    "build_response_pdu",
    "handle_frame",
    "start_modbus_simulator",
]

log = logging.getLogger(__name__)

TICK_SECONDS = 0.5
_READ_SIZE = 512


def _initial_registers() -> dict[int, int]:
    return {1000: 2500, 1001: 10000, 1002: 500, 1003: 0, 2000: 5000}


def _to_u16(value: float) -> int:
    """Saturating float to unsigned 16-bit conversion, truncating toward zero."""
    if math.isnan(value):
        return 0
    return int(min(max(value, 0.0), 65535.0))


@dataclass
class SimulatorState:
    """In-memory register and coil banks plus the waveform generator state."""

    registers: dict[int, int] = field(default_factory=_initial_registers)
    coils: dict[int, bool] = field(default_factory=dict)
    phase: float = 0.0
    counter: int = 0
    toggle_count: int = 0

    def tick(self) -> None:
        """Advance the simulated process by one step."""
        self.phase += 0.15
        self.counter = (self.counter + 1) & 0xFFFF
        self.toggle_count = (self.toggle_count + 1) & 0xFF

        temperature = 25.0 + 5.0 * math.sin(self.phase)
        pressure = 1000.0 + 100.0 * math.sin(self.phase * 0.7)
        sensor = 50.0 + 49.5 * math.cos(self.phase * 1.3)

        self.registers[1000] = _to_u16(temperature * 100.0)
        self.registers[1001] = _to_u16(pressure * 10.0)
        self.registers[1003] = self.counter
        self.registers[2000] = _to_u16(sensor * 100.0)

        if self.toggle_count % 4 == 0:
            self.coils[0] = not self.coils.get(0, False)
            if self.toggle_count % 6 == 0:
                self.coils[2] = not self.coils.get(2, False)


def _address(start: int, index: int) -> int:
    return (start + index) & 0xFFFF


def build_response_pdu(fc: int, data: bytes, state: SimulatorState) -> bytes | None:
    """Answer one request PDU; None means the request cannot be served."""
    if len(data) < 4:
        return None
    start = int.from_bytes(data[0:2], "big")
    count = int.from_bytes(data[2:4], "big")
    echo = bytes([fc]) + bytes(data[0:4])

    if fc in (0x01, 0x02):
        byte_count = (count + 7) // 8
        bits = bytearray(byte_count)
        for i in range(count):
            if state.coils.get(_address(start, i), False):
                bits[i // 8] |= 1 << (i % 8)
        return bytes([fc, byte_count & 0xFF]) + bytes(bits)

    if fc in (0x03, 0x04):
        values = b"".join(
            state.registers.get(_address(start, i), 0).to_bytes(2, "big") for i in range(count)
        )
        return bytes([fc, (count * 2) & 0xFF]) + values

    if fc == 0x05:
        state.coils[start] = count == 0xFF00
        return echo

    if fc == 0x06:
        state.registers[start] = count
        return echo

    if fc == 0x0F:
        if len(data) < 5:
            return None
        byte_count = data[4]
        if len(data) < 5 + byte_count or count > byte_count * 8:
            return None
        for i in range(count):
            state.coils[_address(start, i)] = bool((data[5 + i // 8] >> (i % 8)) & 1)
        return echo

    if fc == 0x10:
        if len(data) < 5:
            return None
        byte_count = data[4]
        if len(data) < 5 + byte_count:
            return None
        for i in range(count):
            offset = 5 + i * 2
            if offset + 1 < len(data):
                state.registers[_address(start, i)] = int.from_bytes(
                    data[offset:offset + 2], "big"
                )
        return echo

    return None


def handle_frame(frame: bytes, state: SimulatorState) -> bytes | None:
    """Answer one Modbus TCP frame, or return None if it is too short."""
    if len(frame) < 8:
        return None
    transaction_id = frame[0:2]
    unit_id = frame[6]
    fc = frame[7]
    pdu = build_response_pdu(fc, frame[8:], state)
    if pdu is None:
        pdu = bytes([(fc | 0x80) & 0xFF, 0x01])
    length = (1 + len(pdu)).to_bytes(2, "big")
    return bytes(transaction_id) + b"\x00\x00" + length + bytes([unit_id]) + pdu


async def _serve_connection(
    reader: asyncio.StreamReader, writer: asyncio.StreamWriter, state: SimulatorState
) -> None:
    log.debug("Modbus simulator: connection from %s", writer.get_extra_info("peername"))
    try:
        while True:
            try:
                chunk = await reader.read(_READ_SIZE)
            except OSError:
                break
            if not chunk:
                break
            response = handle_frame(chunk, state)
            if response is None:
                continue
            writer.write(response)
            try:
                await writer.drain()
            except OSError:
                break
    finally:
        writer.close()
    log.debug("Modbus simulator: connection closed")


async def _simulate(state: SimulatorState) -> None:
    while True:
        state.tick()
        await asyncio.sleep(TICK_SECONDS)


async def _listen(port: int, state: SimulatorState) -> None:
    address = f"127.0.0.1:{port}"
    try:
        server = await asyncio.start_server(
            lambda r, w: _serve_connection(r, w, state), "127.0.0.1", port
        )
    except OSError as exc:
        log.error("Failed to start Modbus simulator on %s: %s", address, exc)
        return
    log.info("Modbus simulator listening on %s", address)
    async with server:
        await server.serve_forever()


def start_modbus_simulator(port: int) -> tuple[asyncio.Task, asyncio.Task]:
    """Start the simulator on ``port`` in the running event loop.

    Returns ``(simulation_task, listener_task)``; cancel both to stop it.
    """
    state = SimulatorState()
    sim_task = asyncio.create_task(_simulate(state))
    listener_task = asyncio.create_task(_listen(port, state))
    return sim_task, listener_task