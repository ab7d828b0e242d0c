# mycela

Building blocks for config-driven control-system screens: a typed model of
the application configuration file, a protocol-neutral snapshot of live
channel values, an asyncio Modbus TCP client with one pooled connection per
device, and a small Modbus TCP simulator for demos and tests.

The package has no third-party dependencies.

## Modules

- `mycela.config` — the configuration model. `AppConfig` holds a `title`, an
  optional `home_screen` and a list of `ScreenConfig`s; each screen has an
  `id`, `title`, `description`, optional header `actions` (`ActionConfig`,
  kind given by `ActionKind`: navigate, back, popup, window, api) and a list
  of `WidgetConfig`s. Widget kinds are listed in `WidgetType` (text entry,
  text update, gauge, LED, button, toggle button, slider, chart, select,
  group, multi-state LED); groups carry `children`. A widget's channel is an
  `EpicsPvaConfig` or a `ModbusTcpConfig`, parsed from a `protocol` block by
  `parse_protocol` according to its `type` (`"epics-pva"` or
  `"modbus-tcp"`). Widget metadata (`PvMetadata`) holds optional
  `DisplayMetadata`, `ControlMetadata` and `AlarmMetadata`.
  Every class has `from_dict` and `to_dict`.
- `mycela.channel` — `ChannelValue`, a normalised snapshot of a channel
  (value, formatted string, arrays, display and control ranges, alarm bands,
  enum index and choices, `PrimaryMeta`), and the events a channel stream
  yields: `Connected`, `Disconnected(reason)`, `ValueReceived(value)` and
  `ErrorOccurred(message)`.
- `mycela.modbus_client` — `ModbusPool` keeps one connection task per
  `host:port:unit_id`; `DeviceHandle.read` and `DeviceHandle.write` talk to
  holding registers, input registers, coils and discrete inputs and raise
  `ModbusError` on failure. `modbus_stream` polls a widget's register;
  `modbus_write` writes a physical value back; `decode_words` and
  `build_channel_value` do the value conversion.
- `mycela.streams` — `ChannelContext` (holding a `ModbusPool`) and
  `channel_stream`, which returns the event stream for a widget.
- `mycela.modbus_simulator` — an in-memory Modbus TCP server with a
  sine-wave register bank.
- `mycela.log_setup` — `init_logging` and `LocalTimeFormatter`.

## Loading a configuration

```python
from mycela.config import AppConfig, ConfigError

try:
    app = AppConfig.load("app.json")
except ConfigError as err:
    print(err)
else:
    for screen in app.screens:
        for widget in screen.widgets:
            print(widget.id, widget.widget_type.value, widget.channel_address())
```

A minimal `app.json`:

```json
{
  "title": "Demo",
  "screens": [
    {
      "id": "main",
      "title": "Main",
      "description": "Process overview",
      "widgets": [
        {
          "id": "temp",
          "type": "text_update",
          "label": "Temperature",
          "protocol": {
            "type": "modbus-tcp",
            "host": "127.0.0.1",
            "port": 5020,
            "register": 1000,
            "register_type": "holding_register",
            "scale": 0.01
          }
        }
      ]
    }
  ]
}
```

Loading checks that screen ids are unique and that widget ids are unique
across the whole application, children of groups included. Problems are
reported as:

- `ConfigFileError` — the file could not be read;
- `ConfigJsonError` — the JSON is malformed, a field is missing or has the
  wrong type, an enum value is unknown, or an id is repeated. Its `context`
  shows the file, the offending line with its neighbours when the position is
  known, and a hint.

Both derive from `ConfigError`. `ScreenConfig.load` and `ScreenConfig.save`
read and write a single screen; `validate()` on either class runs the id
checks on an object built in code.

Modbus settings default to port 502, unit id 1 (`slave_id` is accepted as an
alias), a 500 ms minimum poll interval (alias `poll_interval_ms`), scale 1.0,
offset 0.0 and one 16-bit word. `EpicsPvaConfig.series_pvs()` returns the
primary PV followed by at most five entries of `pv_names`.

## Alarm severity

`AlarmMetadata.compute_severity(value)` returns 0 for no alarm, 1 for
`"MINOR"` and 2 for `"MAJOR"` (any other severity name counts as 0). The
alarm limits are checked before the warning limits.

## Streaming a Modbus register

```python
import asyncio

from mycela.channel import Connected, Disconnected, ValueReceived
from mycela.config import WidgetConfig
from mycela.modbus_simulator import start_modbus_simulator
from mycela.streams import ChannelContext, channel_stream


async def main():
    sim_task, listener_task = start_modbus_simulator(5020)
    widget = WidgetConfig.from_dict({
        "id": "temp",
        "type": "text_update",
        "label": "Temperature",
        "protocol": {
            "type": "modbus-tcp",
            "host": "127.0.0.1",
            "port": 5020,
            "register": 1000,
            "register_type": "holding_register",
            "scale": 0.01,
        },
    })
    ctx = ChannelContext()
    received = 0
    async for event in channel_stream(widget, ctx):
        if isinstance(event, ValueReceived):
            print(event.value.value_str)
            received += 1
            if received == 5:
                break
        elif isinstance(event, Disconnected):
            print("lost:", event.reason)
    ctx.modbus_pool.disconnect_all()
    sim_task.cancel()
    listener_task.cancel()


asyncio.run(main())
```

`modbus_stream` polls no faster than every 50 ms. It yields `Connected` on the
first successful read, then `ValueReceived` only when the formatted value
changes, and `Disconnected` once when reads start failing after a connection
was up. The value is `decoded * scale + offset`: one word is an unsigned
16-bit integer, two words a big-endian IEEE 754 float (high word first).
Widgets with `data_type` `bool`, `int32` or `int` are formatted as integers,
others with the display precision (2 without metadata). Without display
metadata the display range runs from `offset` to `65535 * scale + offset`.

The device task reconnects on its own: connection attempts time out after
2 s, requests that arrive while it waits to retry fail at once, and every
request times out after 1 s. `ModbusPool.disconnect_all()` stops all device
tasks; streams notice and fetch a fresh handle on their next poll.

`modbus_write(m, physical_value, pool)` converts back with
`(value - offset) / scale`: a two-word register gets a big-endian float, a
single register the value rounded and clamped to 0–65535. Coils are written
on or off; input registers and discrete inputs are read-only and raise
`ModbusError`.

```python
from mycela.modbus_client import decode_words

decode_words([2500], 1)            # 2500.0
decode_words([0x3F80, 0x0000], 2)  # 1.0
```

## The simulator

`start_modbus_simulator(port)` must be called inside a running event loop.
It listens on `127.0.0.1:port` and returns `(simulation_task,
listener_task)`; cancel both to stop it. Every 0.5 s `SimulatorState.tick()`
updates:

| Table | Address | Content |
|---|---|---|
| holding | 1000 | temperature, raw × 0.01, 20–30 |
| holding | 1001 | pressure, raw × 0.1, 900–1100 |
| holding | 1002 | setpoint, writable, initially 500 |
| holding | 1003 | counter, +1 each tick |
| holding/input | 2000 | sensor, raw × 0.01, 0–100 |
| coil | 0 | toggles every 4 ticks |
| coil | 1 | writable output |
| coil | 2 | toggles every 12 ticks |

Holding and input registers share one bank, as do coils and discrete inputs.
Function codes 0x01–0x06, 0x0F and 0x10 are served; anything else gets an
exception response with code 1. `handle_frame` and `build_response_pdu`
answer frames without a socket, which is handy in tests.

## Logging

`init_logging(log_dir=None)` sends DEBUG and above to standard output with
local timestamps including the UTC offset. Given a directory, it also writes
`<app>.log.<YYYY-MM-DD>` (INFO and above) and `<app>.debug.<YYYY-MM-DD>`
(TRACE and DEBUG only), where `<app>` is the stem of the running script's
name; files switch when the date changes. Levels come from the `MYCELA_LOG`
environment variable, e.g. `info,mycela=trace` (the default); an unparsable
value falls back to the default. Calling it again replaces the handlers it
installed before. It returns the handlers it installed.

## What the package does not do

- It renders no screens and runs no web server; it models the configuration
  and produces channel events for whatever front end consumes them.
- It has no EPICS PV Access client or server. `EpicsPvaConfig` is parsed and
  saved, but `channel_stream` returns an empty stream for such widgets and
  for widgets without a protocol.
- It installs no command-line programs.