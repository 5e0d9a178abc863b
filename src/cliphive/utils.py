import struct
from pathlib import Path

from cliphive.config import HASH_PREFIX_LENGTH

_BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value >= 0x80000000 else value


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    sign = "-" if value < 0 else ""
    value = abs(value)
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36_DIGITS[rem])
    return sign + "".join(reversed(digits))


def rolling_hash(data: bytes) -> str:
    """Hash the first HASH_PREFIX_LENGTH bytes of ``data``.

    This is a djb2-style rolling hash, not a cryptographic one: different
    payloads can share a value. The output names image blobs on disk, so the
    arithmetic must stay stable (32-bit shift, unbounded subtraction, base 36).
    """
    h = 5381
    for byte in data[:HASH_PREFIX_LENGTH]:
        h = _to_int32(_to_int32(h) << 5) - h + byte
    return _to_base36(h)


def truncate_text(text: str, max_len: int) -> str:
    single_line = " ".join(text.split())
    if len(single_line) <= max_len:
        return single_line
    return single_line[: max_len - 3] + "..."


def ensure_dir(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_image_dimensions(png_bytes: bytes) -> tuple[int, int]:
    if len(png_bytes) < 24 or png_bytes[:8] != b"\x89PNG\r\n\x1a\n":
        return (0, 0)
    width = struct.unpack(">I", png_bytes[16:20])[0]
    height = struct.unpack(">I", png_bytes[20:24])[0]
    return (width, height)
