"""Result codes of the laser scanner protocol and helpers to act on them."""

from __future__ import annotations

import enum
from typing import Optional

SDK_VERSION_MAJOR = 2
SDK_VERSION_MINOR = 0
SDK_VERSION_PATCH = 0
SDK_VERSION_SEQ = (SDK_VERSION_MAJOR << 16) | (SDK_VERSION_MINOR << 8) | SDK_VERSION_PATCH
SDK_VERSION = f"{SDK_VERSION_MAJOR}.{SDK_VERSION_MINOR}.{SDK_VERSION_PATCH}"

RESULT_FAIL_BIT = 0x80000000


class LidarResult(enum.IntEnum):
    OK = 0
    ALREADY_DONE = 0x20
    INVALID_DATA = 0x8000 | RESULT_FAIL_BIT
    OPERATION_FAIL = 0x8001 | RESULT_FAIL_BIT
    OPERATION_TIMEOUT = 0x8002 | RESULT_FAIL_BIT
    OPERATION_STOP = 0x8003 | RESULT_FAIL_BIT
    OPERATION_NOT_SUPPORT = 0x8004 | RESULT_FAIL_BIT
    FORMAT_NOT_SUPPORT = 0x8005 | RESULT_FAIL_BIT
    INSUFFICIENT_MEMORY = 0x8006 | RESULT_FAIL_BIT


def _known(code: int) -> Optional[LidarResult]:
    try:
        return LidarResult(code)
    except ValueError:
        return None


class LidarError(Exception):
    """A failed operation; ``code`` holds the raw result, ``result`` its name if known."""

    def __init__(self, code: int) -> None:
        self.code = int(code)
        self.result = _known(self.code)
        label = self.result.name if self.result is not None else "UNKNOWN"
        super().__init__(f"lidar operation failed: {label} (0x{self.code:08X})")


def is_ok(code: int) -> bool:
    """True when the fail bit of ``code`` is clear."""
    return (int(code) & RESULT_FAIL_BIT) == 0


def is_fail(code: int) -> bool:
    """True when the fail bit of ``code`` is set."""
    return not is_ok(code)


def check_result(code: int) -> int:
    """Return ``code`` if it signals success, otherwise raise LidarError."""
    if is_fail(code):
        raise LidarError(code)
    known = _known(int(code))
    return known if known is not None else int(code)