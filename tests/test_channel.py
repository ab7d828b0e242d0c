from mycela.channel import (
    ChannelValue,
    Connected,
    Disconnected,
    ErrorOccurred,
    PrimaryMeta,
    ValueReceived,
)


def test_channel_value_default_ranges():
    cv = ChannelValue()
    assert cv.raw_value == 0.0
    assert cv.value_str == ""
    assert (cv.display_low, cv.display_high) == (0.0, 100.0)
    assert (cv.control_low, cv.control_high) == (0.0, 100.0)
    assert cv.precision == 1


def test_channel_value_default_alarm_bands():
    cv = ChannelValue()
    assert cv.low_alarm_limit == 0.0
    assert cv.low_warn_limit == 0.0
    assert cv.high_warn_limit == 100.0
    assert cv.high_alarm_limit == 100.0
    assert cv.alarm_severity == 0
    assert cv.alarm_status == 0


def test_channel_value_default_collections_are_empty():
    cv = ChannelValue()
    assert cv.array_values == []
    assert cv.named_series == {}
    assert cv.enum_choices == []
    assert cv.enum_index == 0
    assert cv.primary_meta == PrimaryMeta()


def test_channel_value_defaults_are_independent():
    first = ChannelValue()
    second = ChannelValue()
    first.array_values.append(1.5)
    first.named_series["pv"] = [2.0]
    first.primary_meta.units = "mm"
    assert second.array_values == []
    assert second.named_series == {}
    assert second.primary_meta.units == ""


def test_primary_meta_defaults():
    meta = PrimaryMeta()
    assert meta.alarm_severity == 0
    assert meta.description == ""
    assert meta.units == ""
    assert meta.limit_lo == 0.0
    assert meta.limit_hi == 0.0


def test_channel_value_keyword_construction():
    cv = ChannelValue(raw_value=3.5, value_str="3.5", units="mm")
    assert cv.raw_value == 3.5
    assert cv.value_str == "3.5"
    assert cv.units == "mm"
    assert cv.display_high == 100.0


def test_events_compare_by_payload():
    assert Connected() == Connected()
    assert Disconnected("offline") == Disconnected("offline")
    assert Disconnected("offline") != Disconnected("other")
    assert ErrorOccurred("boom").message == "boom"


def test_value_event_carries_value():
    cv = ChannelValue(raw_value=7.0)
    event = ValueReceived(cv)
    assert event.value is cv
    assert event == ValueReceived(ChannelValue(raw_value=7.0))


def _describe(event):
    match event:
        case Connected():
            return "connected"
        case Disconnected(reason=reason):
            return f"disconnected:{reason}"
        case ValueReceived(value=value):
            return f"value:{value.raw_value}"
        case ErrorOccurred(message=message):
            return f"error:{message}"
    return "unknown"


def test_events_support_pattern_matching():
    events = [Connected(), Disconnected("x"), ValueReceived(ChannelValue(raw_value=2.0)), ErrorOccurred("e")]
    assert [_describe(e) for e in events] == ["connected", "disconnected:x", "value:2.0", "error:e"]