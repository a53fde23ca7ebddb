"""Command codes, answer types and wire layouts of the laser scanner protocol."""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass

AUTOBAUD_MAGICBYTE = 0x41


class Command(enum.IntEnum):
    STOP = 0x25
    SCAN = 0x20
    FORCE_SCAN = 0x21
    RESET = 0x40
    NEW_BAUDRATE_CONFIRM = 0x90
    GET_DEVICE_INFO = 0x50
    GET_DEVICE_HEALTH = 0x52
    GET_SAMPLERATE = 0x59
    HQ_MOTOR_SPEED_CTRL = 0xA8
    EXPRESS_SCAN = 0x82
    HQ_SCAN = 0x83
    GET_LIDAR_CONF = 0x84
    SET_LIDAR_CONF = 0x85
    SET_MOTOR_PWM = 0xF0
    GET_ACC_BOARD_FLAG = 0xFF


class AnswerType(enum.IntEnum):
    DEVINFO = 0x4
    DEVHEALTH = 0x6
    MEASUREMENT = 0x81
    MEASUREMENT_CAPSULED = 0x82
    MEASUREMENT_HQ = 0x83
    SAMPLE_RATE = 0x15
    MEASUREMENT_CAPSULED_ULTRA = 0x84
    GET_LIDAR_CONF = 0x20
    SET_LIDAR_CONF = 0x21
    MEASUREMENT_DENSE_CAPSULED = 0x85
    ACC_BOARD_FLAG = 0xFF


EXPRESS_SCAN_MODE_NORMAL = 0
EXPRESS_SCAN_MODE_FIXANGLE = 0
EXPRESS_SCAN_FLAG_BOOST = 0x0001
EXPRESS_SCAN_FLAG_SUNLIGHT_REJECTION = 0x0002
ULTRAEXPRESS_SCAN_FLAG_STD = 0x0001
ULTRAEXPRESS_SCAN_FLAG_HIGH_SENSITIVITY = 0x0002

DEFAULT_MOTOR_SPEED = 0xFFFF
NEW_BPS_CONFIRMATION_FLAG = 0x5F5F

RESP_ACC_BOARD_FLAG_MOTOR_CTRL_SUPPORT_MASK = 0x1

STATUS_OK = 0x0
STATUS_WARNING = 0x1
STATUS_ERROR = 0x2

RESP_MEASUREMENT_SYNCBIT = 0x1 << 0
RESP_MEASUREMENT_QUALITY_SHIFT = 2
RESP_HQ_FLAG_SYNCBIT = 0x1 << 0
RESP_MEASUREMENT_CHECKBIT = 0x1 << 0
RESP_MEASUREMENT_ANGLE_SHIFT = 1

RESP_MEASUREMENT_EXP_ANGLE_MASK = 0x3
RESP_MEASUREMENT_EXP_DISTANCE_MASK = 0xFC
RESP_MEASUREMENT_EXP_SYNC_1 = 0xA
RESP_MEASUREMENT_EXP_SYNC_2 = 0x5
RESP_MEASUREMENT_HQ_SYNC = 0xA5
RESP_MEASUREMENT_EXP_SYNCBIT = 0x1 << 15
RESP_MEASUREMENT_EXP_ULTRA_MAJOR_BITS = 12
RESP_MEASUREMENT_EXP_ULTRA_PREDICT_BITS = 10

CONF_SCAN_COMMAND_STD = 0
CONF_SCAN_COMMAND_EXPRESS = 1
CONF_SCAN_COMMAND_HQ = 2
CONF_SCAN_COMMAND_BOOST = 3
CONF_SCAN_COMMAND_STABILITY = 4
CONF_SCAN_COMMAND_SENSITIVITY = 5

CONF_ANGLE_RANGE = 0x00000000
CONF_DESIRED_ROT_FREQ = 0x00000001
CONF_SCAN_COMMAND_BITMAP = 0x00000002
CONF_MIN_ROT_FREQ = 0x00000004
CONF_MAX_ROT_FREQ = 0x00000005
CONF_MAX_DISTANCE = 0x00000060
CONF_SCAN_MODE_COUNT = 0x00000070
CONF_SCAN_MODE_US_PER_SAMPLE = 0x00000071
CONF_SCAN_MODE_MAX_DISTANCE = 0x00000074
CONF_SCAN_MODE_ANS_TYPE = 0x00000075
CONF_LIDAR_MAC_ADDR = 0x00000079
CONF_SCAN_MODE_TYPICAL = 0x0000007C
CONF_SCAN_MODE_NAME = 0x0000007F
CONF_DETECTED_SERIAL_BPS = 0x000000A1
CONF_LIDAR_STATIC_IP_ADDR = 0x0001CCC0
EXPRESS_SCAN_STABILITY_BITMAP = 4
EXPRESS_SCAN_SENSITIVITY_BITMAP = 5

VARBITSCALE_X2_SRC_BIT = 9
VARBITSCALE_X4_SRC_BIT = 11
VARBITSCALE_X8_SRC_BIT = 12
VARBITSCALE_X16_SRC_BIT = 14
VARBITSCALE_X2_DEST_VAL = 512
VARBITSCALE_X4_DEST_VAL = 1280
VARBITSCALE_X8_DEST_VAL = 1792
VARBITSCALE_X16_DEST_VAL = 3328

_DEVICE_INFO = struct.Struct("<BHB16s")
_DEVICE_HEALTH = struct.Struct("<BH")
_MEASUREMENT_NODE = struct.Struct("<BHH")
_MEASUREMENT_NODE_HQ = struct.Struct("<HIBB")
_EXPRESS_SCAN = struct.Struct("<BHH")
_MOTOR_PWM = struct.Struct("<H")
_NEW_BPS_CONFIRMATION = struct.Struct("<HIH")


def _unpack(layout: struct.Struct, data: bytes, what: str) -> tuple:
    data = bytes(data)
    if len(data) != layout.size:
        raise ValueError(f"{what} needs {layout.size} bytes, got {len(data)}")
    return layout.unpack(data)


def _check_range(value: int, bits: int, what: str) -> int:
    value = int(value)
    if not 0 <= value < (1 << bits):
        raise ValueError(f"{what} {value} does not fit in {bits} bits")
    return value


@dataclass(frozen=True)
class DeviceInfo:
    model: int
    firmware_version: int
    hardware_version: int
    serialnum: bytes

    @property
    def firmware_major(self) -> int:
        return self.firmware_version >> 8

    @property
    def firmware_minor(self) -> int:
        return self.firmware_version & 0xFF

    @property
    def serial_number(self) -> str:
        """The serial number as upper-case hexadecimal."""
        return self.serialnum.hex().upper()


@dataclass(frozen=True)
class DeviceHealth:
    status: int
    error_code: int

    @property
    def is_ok(self) -> bool:
        return self.status == STATUS_OK


@dataclass(frozen=True)
class MeasurementNode:
    """A standard scan sample: packed sync/quality, angle in q6 with check bit, distance in q2."""

    sync_quality: int
    angle_q6_checkbit: int
    distance_q2: int

    @property
    def sync(self) -> bool:
        return bool(self.sync_quality & RESP_MEASUREMENT_SYNCBIT)

    @property
    def quality(self) -> int:
        return self.sync_quality >> RESP_MEASUREMENT_QUALITY_SHIFT

    @property
    def check_bit(self) -> bool:
        return bool(self.angle_q6_checkbit & RESP_MEASUREMENT_CHECKBIT)

    @property
    def angle_q6(self) -> int:
        return self.angle_q6_checkbit >> RESP_MEASUREMENT_ANGLE_SHIFT

    @property
    def angle_degrees(self) -> float:
        return self.angle_q6 / 64.0

    @property
    def distance_mm(self) -> float:
        return self.distance_q2 / 4.0


@dataclass(frozen=True)
class MeasurementNodeHq:
    """A high-quality scan sample: angle in q14 of a quarter turn, distance in q2 millimetres."""

    angle_z_q14: int
    dist_mm_q2: int
    quality: int
    flag: int

    @property
    def sync(self) -> bool:
        return bool(self.flag & RESP_HQ_FLAG_SYNCBIT)

    @property
    def angle_degrees(self) -> float:
        return self.angle_z_q14 * 90.0 / 16384.0

    @property
    def distance_mm(self) -> float:
        return self.dist_mm_q2 / 4.0


def parse_device_info(data: bytes) -> DeviceInfo:
    model, firmware, hardware, serial = _unpack(_DEVICE_INFO, data, "device info")
    return DeviceInfo(model, firmware, hardware, serial)


def parse_device_health(data: bytes) -> DeviceHealth:
    status, error_code = _unpack(_DEVICE_HEALTH, data, "device health")
    return DeviceHealth(status, error_code)


def parse_measurement_node(data: bytes) -> MeasurementNode:
    return MeasurementNode(*_unpack(_MEASUREMENT_NODE, data, "measurement node"))


def parse_measurement_node_hq(data: bytes) -> MeasurementNodeHq:
    return MeasurementNodeHq(*_unpack(_MEASUREMENT_NODE_HQ, data, "HQ measurement node"))


def pack_express_scan_payload(working_mode: int = EXPRESS_SCAN_MODE_NORMAL, working_flags: int = 0, param: int = 0) -> bytes:
    return _EXPRESS_SCAN.pack(
        _check_range(working_mode, 8, "working mode"),
        _check_range(working_flags, 16, "working flags"),
        _check_range(param, 16, "param"),
    )


def pack_motor_pwm(pwm_value: int) -> bytes:
    return _MOTOR_PWM.pack(_check_range(pwm_value, 16, "PWM value"))


def pack_new_baudrate_confirmation(required_bps: int, param: int = 0) -> bytes:
    return _NEW_BPS_CONFIRMATION.pack(
        NEW_BPS_CONFIRMATION_FLAG,
        _check_range(required_bps, 32, "baud rate"),
        _check_range(param, 16, "param"),
    )


def varbitscale_src_max(bits: int) -> int:
    """Largest source value the variable bit scale encoding can hold in ``bits`` bits."""
    bits = int(bits)
    if bits < 0:
        raise ValueError("bit count must not be negative")
    return (
        (((1 << bits) - VARBITSCALE_X16_DEST_VAL) << 4)
        + ((VARBITSCALE_X16_DEST_VAL - VARBITSCALE_X8_DEST_VAL) << 3)
        + ((VARBITSCALE_X8_DEST_VAL - VARBITSCALE_X4_DEST_VAL) << 2)
        + ((VARBITSCALE_X4_DEST_VAL - VARBITSCALE_X2_DEST_VAL) << 1)
        + VARBITSCALE_X2_DEST_VAL
        - 1
    )