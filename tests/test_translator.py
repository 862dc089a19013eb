#!/usr/bin/env python3
"""test ISCP message <-> channel value translation"""

import pytest

from iscp_receiver import InvalidArgumentError, NotSupportedError
from iscp_receiver.protocol import (
    ChannelStateTranslator,
    InputLabelRegistry,
    split_payload,
)


def test_unknown_line_skipped():
    """an unrecognized message does not stop the rest of the payload"""
    translator = ChannelStateTranslator(device_id="dev", volume_max_raw=256)
    states = translator.parse_payload(b"!1ZZZ01\r!1PWR01\r!1MVL50\x1a\r\n")
    assert [s.channel_id for s in states] == ["power", "volume"]
    assert states[0].value is True
    assert states[1].value == pytest.approx(31.25)
    assert all(s.device_id == "dev" for s in states)


def test_volume_round_trip_at_160():
    """50% encodes to MVL50 and decodes back to 50%"""
    translator = ChannelStateTranslator(volume_max_raw=160)
    command, final_value = translator.encode_channel("volume", 50)
    assert command == "MVL50"
    assert final_value == 50.0
    states = translator.parse_payload("!1MVL50\r")
    assert states[0].value == pytest.approx(50.0, abs=1.0)


def test_volume_clamped():
    """out of range percentages and raw values are clamped"""
    translator = ChannelStateTranslator(volume_max_raw=160)
    command, final_value = translator.encode_channel("volume", 150)
    assert command == "MVLA0"
    assert final_value == 100.0
    command, final_value = translator.encode_channel("volume", "-5")
    assert command == "MVL00"
    assert final_value == 0.0
    states = translator.parse_payload("!1MVLFF\r")
    assert states[0].value == pytest.approx(100.0)


def test_volume_not_numeric():
    """non-numeric volume is an invalid argument"""
    translator = ChannelStateTranslator()
    with pytest.raises(InvalidArgumentError):
        translator.encode_channel("volume", "loud")


def test_malformed_volume_ignored():
    """a non-hex volume report produces no event"""
    translator = ChannelStateTranslator()
    assert translator.parse_payload("!1MVLN/A\r") == []


def test_power_and_mute():
    """booleans encode to 01/00 and other suffixes are ignored when parsing"""
    translator = ChannelStateTranslator()
    assert translator.encode_channel("power", True)[0] == "PWR01"
    assert translator.encode_channel("power", "off")[0] == "PWR00"
    assert translator.encode_channel("mute", "on")[0] == "AMT01"
    assert translator.encode_channel("mute", False)[0] == "AMT00"


@pytest.mark.parametrize("value,expected", [
    ("01", "PWR01"),
    ("2", "PWR01"),
    ("1", "PWR01"),
    (" Yes ", "PWR01"),
    ("00", "PWR00"),
    ("0", "PWR00"),
    ("", "PWR00"),
    ("nope", "PWR00"),
])
def test_power_from_strings(value, expected):
    """numeric strings are on when nonzero, as the receiver spells them"""
    translator = ChannelStateTranslator()
    assert translator.encode_channel("power", value)[0] == expected
    states = translator.parse_payload("!1AMT00\r!1PWRN/A\r")
    assert len(states) == 1
    assert states[0].channel_id == "mute"
    assert states[0].value is False


def test_input_by_label():
    """a label resolves to its code"""
    translator = ChannelStateTranslator()
    command, code = translator.encode_channel("input", "HDMI 1")
    assert command == "SLI23"
    assert code == "23"
    assert translator.encode_channel("input", "hdmi 2")[0] == "SLI24"


def test_input_by_code():
    """raw and prefixed codes are accepted"""
    translator = ChannelStateTranslator()
    assert translator.encode_channel("input", "2E")[0] == "SLI2E"
    assert translator.encode_channel("input", "SLI10")[0] == "SLI10"


def test_input_bad_length():
    """codes must be 2 characters"""
    translator = ChannelStateTranslator()
    with pytest.raises(InvalidArgumentError):
        translator.encode_channel("input", "123")


def test_input_report_remembered():
    """the last reported input code is kept"""
    translator = ChannelStateTranslator()
    states = translator.parse_payload("!1SLI2B\r")
    assert states[0].value == "2B"
    assert translator.last_input_code == "2B"


def test_unknown_channel():
    """only the writable channels can be encoded"""
    translator = ChannelStateTranslator()
    with pytest.raises(NotSupportedError):
        translator.encode_channel("connectivity", "connected")


def test_split_payload():
    """messages are sanitized and the unit prefix removed"""
    assert split_payload(b"!1PWR01\x1a\r\n!1AMT00\r\r") == ["PWR01", "AMT00"]


def test_custom_registry_used_for_labels():
    """label overrides apply to the write path"""
    registry = InputLabelRegistry(label_overrides={"23": "Apple TV"})
    translator = ChannelStateTranslator(input_labels=registry)
    assert translator.encode_channel("input", "apple tv")[0] == "SLI23"


def test_status_polls_log_below_info(caplog):
    """routine status reports are logged at debug level only"""
    translator = ChannelStateTranslator()
    with caplog.at_level("DEBUG", logger="iscp_receiver"):
        translator.parse_payload("!1PWR01\r!1AMT00\r!1MVL28\r!1SLI23\r")
    assert caplog.records
    assert all(record.levelname == "DEBUG" for record in caplog.records)
