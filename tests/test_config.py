import copy
import json

import pytest

from mycela.config import (
    ActionConfig,
    ActionKind,
    AlarmMetadata,
    AppConfig,
    ConfigFileError,
    ConfigJsonError,
    ControlMetadata,
    EpicsPvaConfig,
    ModbusRegisterType,
    ModbusTcpConfig,
    ScreenConfig,
    WidgetConfig,
    WidgetType,
    parse_protocol,
)

MODBUS_WIDGET = {
    "id": "temp",
    "type": "gauge",
    "label": "Temperature",
    "protocol": {
        "type": "modbus-tcp",
        "host": "127.0.0.1",
        "port": 5020,
        "register": 1000,
        "register_type": "holding_register",
        "scale": 0.01,
    },
    "metadata": {
        "display": {
            "limit_low": 20,
            "limit_high": 30,
            "description": "Temp",
            "precision": 2,
            "units": "C",
        },
        "control": {"limit_low": 0, "limit_high": 50},
        "alarm": {
            "low_alarm_limit": 10,
            "low_warning_limit": 20,
            "high_alarm_limit": 90,
            "high_warning_limit": 80,
            "low_alarm_severity": "MAJOR",
            "low_warning_severity": "MINOR",
            "high_warning_severity": "MINOR",
            "high_alarm_severity": "MAJOR",
            "hysteresis": 0,
        },
    },
}

GROUP_WIDGET = {
    "id": "grp",
    "type": "group",
    "label": "Group",
    "level": 2,
    "size": {"width": "200px"},
    "children": [
        {
            "id": "pv",
            "type": "text_update",
            "label": "PV",
            "protocol": {
                "type": "epics-pva",
                "pv_name": "demo:double",
                "pv_names": ["demo:a", "demo:b"],
                "server": {"alarm_serverity": "NO_ALARM"},
            },
        }
    ],
}

SAMPLE = {
    "title": "Demo",
    "home_screen": "main",
    "screens": [
        {
            "id": "main",
            "title": "Main",
            "description": "Main screen",
            "actions": [
                {"type": "navigate", "label": "Go", "to": "other"},
                {"type": "api", "label": "Stop", "method": "POST", "path": "/api/server/stop"},
            ],
            "widgets": [MODBUS_WIDGET, GROUP_WIDGET],
        },
        {"id": "other", "title": "Other", "description": "Second", "widgets": []},
    ],
}


def _alarm():
    return AlarmMetadata.from_dict(MODBUS_WIDGET["metadata"]["alarm"])


def _write(tmp_path, data, name="app.json"):
    path = tmp_path / name
    path.write_text(json.dumps(data, indent=2))
    return path


def test_app_round_trip():
    config = AppConfig.from_dict(SAMPLE)
    assert AppConfig.from_dict(config.to_dict()) == config
    assert config.home_screen == "main"
    assert [s.id for s in config.screens] == ["main", "other"]


def test_home_screen_defaults_to_none():
    data = {"title": "T", "screens": []}
    assert AppConfig.from_dict(data).home_screen is None


def test_modbus_defaults():
    m = parse_protocol(
        {"type": "modbus-tcp", "host": "h", "register": 3, "register_type": "coil"}
    )
    assert isinstance(m, ModbusTcpConfig)
    assert (m.port, m.unit_id, m.min_poll_interval_ms) == (502, 1, 500)
    assert (m.scale, m.offset, m.word_count) == (1.0, 0.0, 1)
    assert m.register_type is ModbusRegisterType.COIL


def test_modbus_aliases():
    m = ModbusTcpConfig.from_dict(
        {
            "host": "h",
            "register": 3,
            "register_type": "input_register",
            "slave_id": 7,
            "poll_interval_ms": 250,
        }
    )
    assert m.unit_id == 7
    assert m.min_poll_interval_ms == 250


def test_modbus_alias_and_name_together_rejected():
    with pytest.raises(ConfigJsonError, match="duplicate field"):
        ModbusTcpConfig.from_dict(
            {"host": "h", "register": 3, "register_type": "coil", "unit_id": 1, "slave_id": 2}
        )


def test_modbus_missing_register():
    with pytest.raises(ConfigJsonError, match="missing field `register`"):
        ModbusTcpConfig.from_dict({"host": "h", "register_type": "coil"})


@pytest.mark.parametrize("port", [70000, -1, True, "502", 1.5])
def test_modbus_bad_port(port):
    with pytest.raises(ConfigJsonError):
        ModbusTcpConfig.from_dict(
            {"host": "h", "register": 1, "register_type": "coil", "port": port}
        )


def test_unknown_protocol():
    with pytest.raises(ConfigJsonError, match="unknown variant"):
        parse_protocol({"type": "profibus"})


def test_protocol_round_trip():
    proto = parse_protocol(MODBUS_WIDGET["protocol"])
    assert parse_protocol(proto.to_dict()) == proto
    assert proto.to_dict()["type"] == "modbus-tcp"


def test_series_pvs_limits_extras():
    extras = [f"x{i}" for i in range(7)]
    epics = EpicsPvaConfig(pv_name="p", pv_names=extras)
    result = epics.series_pvs()
    assert result[0] == "p"
    assert result[1:] == extras[:5]


def test_series_pvs_without_extras():
    assert EpicsPvaConfig(pv_name="p").series_pvs() == ["p"]


def test_channel_address_and_accessors():
    modbus = WidgetConfig.from_dict(MODBUS_WIDGET)
    assert modbus.channel_address() == "modbus-tcp://127.0.0.1:5020/reg1000"
    assert modbus.modbus_tcp().register == 1000
    assert modbus.epics_pva() is None

    epics = WidgetConfig.from_dict(GROUP_WIDGET["children"][0])
    assert epics.channel_address() == "demo:double"
    assert epics.epics_pva().server.alarm_severity == "NO_ALARM"
    assert epics.modbus_tcp() is None

    assert WidgetConfig().channel_address() == ""


def test_widget_default_type():
    assert WidgetConfig().widget_type is WidgetType.TEXT_UPDATE


def test_widget_type_required():
    with pytest.raises(ConfigJsonError, match="missing field `type`"):
        WidgetConfig.from_dict({"id": "a", "label": "A"})


def test_null_optionals_accepted():
    widget = WidgetConfig.from_dict(
        {"id": "a", "type": "led", "label": "A", "protocol": None, "options": None}
    )
    assert widget.protocol is None
    assert widget.options is None
    assert widget.widget_type is WidgetType.LED


def test_group_children_parsed():
    group = WidgetConfig.from_dict(GROUP_WIDGET)
    assert group.widget_type is WidgetType.GROUP
    assert group.level == 2
    assert group.size.width == "200px"
    assert group.size.height is None
    assert [c.id for c in group.children] == ["pv"]


def test_control_min_step_default():
    control = ControlMetadata.from_dict({"limit_low": 0, "limit_high": 5})
    assert control.min_step == 0.0


@pytest.mark.parametrize(
    "value, expected",
    [(5, 2), (15, 1), (50, 0), (85, 1), (95, 2), (20, 0), (80, 0)],
)
def test_compute_severity(value, expected):
    assert _alarm().compute_severity(value) == expected


def test_compute_severity_unknown_name_is_zero():
    alarm = _alarm()
    alarm.high_alarm_severity = "INVALID"
    assert alarm.compute_severity(1000) == 0


@pytest.mark.parametrize("action", SAMPLE["screens"][0]["actions"] + [
    {"type": "back", "label": "Home"},
    {"type": "popup", "label": "P", "to": "x"},
    {"type": "window", "label": "W", "to": "y"},
])
def test_action_round_trip(action):
    parsed = ActionConfig.from_dict(action)
    assert parsed.to_dict() == action
    assert parsed.kind is ActionKind(action["type"])


def test_action_missing_target():
    with pytest.raises(ConfigJsonError, match="missing field `to`"):
        ActionConfig.from_dict({"type": "navigate", "label": "Go"})


def test_action_unknown_kind():
    with pytest.raises(ConfigJsonError, match="unknown variant"):
        ActionConfig.from_dict({"type": "teleport", "label": "Go"})


def test_load_app(tmp_path):
    path = _write(tmp_path, SAMPLE)
    assert AppConfig.load(path) == AppConfig.from_dict(SAMPLE)


def test_load_missing_file(tmp_path):
    with pytest.raises(ConfigFileError, match="Failed to read config file"):
        AppConfig.load(tmp_path / "absent.json")


def test_load_bad_json(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text('{\n  "title": "x",\n  "screens": [\n}\n')
    with pytest.raises(ConfigJsonError) as info:
        AppConfig.load(path)
    context = info.value.context
    assert f"File: {path}" in context
    assert "Line:" in context
    assert "Context:" in context
    assert info.value.line > 0


def test_load_missing_field_hint(tmp_path):
    data = copy.deepcopy(SAMPLE)
    del data["screens"][0]["widgets"][0]["protocol"]["host"]
    path = _write(tmp_path, data)
    with pytest.raises(ConfigJsonError) as info:
        AppConfig.load(path)
    assert "'host' must be set to the device IP/hostname" in info.value.context


def test_load_unknown_variant_hint(tmp_path):
    data = copy.deepcopy(SAMPLE)
    data["screens"][0]["widgets"][0]["type"] = "dial"
    path = _write(tmp_path, data)
    with pytest.raises(ConfigJsonError) as info:
        AppConfig.load(path)
    assert "Check for typos in field names or enum values." in info.value.context


def test_load_invalid_type_hint(tmp_path):
    data = copy.deepcopy(SAMPLE)
    data["title"] = 5
    path = _write(tmp_path, data)
    with pytest.raises(ConfigJsonError) as info:
        AppConfig.load(path)
    assert "Check that the field has the correct data type" in info.value.context


def test_screen_duplicate_widget_ids():
    screen = ScreenConfig.from_dict(
        {
            "id": "s",
            "title": "S",
            "description": "d",
            "widgets": [
                {"id": "a", "type": "led", "label": "A"},
                {"id": "a", "type": "led", "label": "B"},
            ],
        }
    )
    with pytest.raises(ConfigJsonError) as info:
        screen.validate()
    assert "duplicate ID: 'a'" in info.value.context


def test_screen_duplicate_in_children():
    group = copy.deepcopy(GROUP_WIDGET)
    group["children"][0]["id"] = "grp"
    screen = ScreenConfig(id="s", title="S", description="d",
                          widgets=[WidgetConfig.from_dict(group)])
    with pytest.raises(ConfigJsonError):
        screen.validate()


def test_app_duplicate_screen_ids():
    data = copy.deepcopy(SAMPLE)
    data["screens"][1]["id"] = "main"
    with pytest.raises(ConfigJsonError) as info:
        AppConfig.from_dict(data).validate()
    assert "Duplicate screen ID: 'main'" in info.value.context


def test_app_duplicate_widget_across_screens(tmp_path):
    data = copy.deepcopy(SAMPLE)
    data["screens"][1]["widgets"] = [{"id": "temp", "type": "led", "label": "X"}]
    path = _write(tmp_path, data)
    with pytest.raises(ConfigJsonError, match="duplicate_id"):
        AppConfig.load(path)


def test_screen_save_and_load(tmp_path):
    screen = ScreenConfig.from_dict(SAMPLE["screens"][0])
    path = tmp_path / "screen.json"
    screen.save(path)
    assert ScreenConfig.load(path) == screen
    assert json.loads(path.read_text())["id"] == "main"