import struct

import pytest

from occmap.lidar_protocol import (
    DEFAULT_MOTOR_SPEED,
    AnswerType,
    Command,
    parse_device_health,
    parse_device_info,
    parse_measurement_node,
    parse_measurement_node_hq,
    pack_express_scan_payload,
    pack_motor_pwm,
    pack_new_baudrate_confirmation,
    varbitscale_src_max,
)


@pytest.mark.parametrize(
    "value, member",
    [
        (0x25, Command.STOP),
        (0x20, Command.SCAN),
        (0x50, Command.GET_DEVICE_INFO),
        (0x82, Command.EXPRESS_SCAN),
        (0xFF, Command.GET_ACC_BOARD_FLAG),
    ],
)
def test_command_codes_match_protocol(value, member):
    assert Command(value) is member


@pytest.mark.parametrize(
    "value, member",
    [
        (0x4, AnswerType.DEVINFO),
        (0x83, AnswerType.MEASUREMENT_HQ),
        (0x15, AnswerType.SAMPLE_RATE),
    ],
)
def test_answer_types_match_protocol(value, member):
    assert AnswerType(value) is member


def test_parse_device_info():
    serial = bytes(range(16))
    info = parse_device_info(bytes([0x18, 0x19, 0x01, 0x07]) + serial)
    assert info.model == 0x18
    assert info.firmware_major == 0x01
    assert info.firmware_minor == 0x19
    assert info.hardware_version == 0x07
    assert info.serialnum == serial
    assert len(info.serial_number) == 32


def test_parse_device_info_wrong_length():
    with pytest.raises(ValueError):
        parse_device_info(b"\x00" * 19)


def test_parse_device_health():
    health = parse_device_health(bytes([2, 0x34, 0x12]))
    assert health.status == 2
    assert health.error_code == 0x1234
    assert health.is_ok is False


def test_parse_device_health_ok_status():
    assert parse_device_health(bytes([0, 0, 0])).is_ok


def test_parse_measurement_node_fields():
    quality = 15
    sync_quality = (quality << 2) | 0x1
    angle_raw = (128 << 1) | 1
    data = struct.pack("<BHH", sync_quality, angle_raw, 400)
    node = parse_measurement_node(data)
    assert node.sync is True
    assert node.quality == quality
    assert node.check_bit is True
    assert node.angle_q6 == 128
    assert node.angle_degrees == 2.0
    assert node.distance_mm == 100.0


def test_parse_measurement_node_wrong_length():
    with pytest.raises(ValueError):
        parse_measurement_node(b"\x00" * 4)


def test_parse_measurement_node_hq():
    data = struct.pack("<HIBB", 16384, 4000, 47, 1)
    node = parse_measurement_node_hq(data)
    assert node.angle_degrees == 90.0
    assert node.distance_mm == 1000.0
    assert node.quality == 47
    assert node.sync is True


def test_parse_measurement_node_hq_without_sync():
    node = parse_measurement_node_hq(struct.pack("<HIBB", 0, 0, 0, 2))
    assert node.sync is False


def test_pack_express_scan_round_trip():
    payload = pack_express_scan_payload(0, 0x0001, 0x0203)
    assert len(payload) == 5
    assert struct.unpack("<BHH", payload) == (0, 0x0001, 0x0203)


def test_pack_motor_pwm_bytes():
    assert pack_motor_pwm(0x1234) == b"\x34\x12"
    assert pack_motor_pwm(DEFAULT_MOTOR_SPEED) == b"\xff\xff"


def test_pack_motor_pwm_out_of_range():
    with pytest.raises(ValueError):
        pack_motor_pwm(0x10000)
    with pytest.raises(ValueError):
        pack_motor_pwm(-1)


def test_pack_new_baudrate_confirmation():
    payload = pack_new_baudrate_confirmation(256000, 0)
    assert payload[:2] == b"\x5f\x5f"
    assert struct.unpack("<HIH", payload) == (0x5F5F, 256000, 0)


def test_varbitscale_increases_with_bits():
    values = [varbitscale_src_max(bits) for bits in range(12, 17)]
    assert values == sorted(values)
    for bits in range(12, 16):
        assert varbitscale_src_max(bits + 1) - varbitscale_src_max(bits) == 16 << bits


def test_varbitscale_negative_bits():
    with pytest.raises(ValueError):
        varbitscale_src_max(-1)