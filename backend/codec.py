"""
Tally binary codec.

Records are encoded field by field in the order of their class LAYOUT, all
little-endian, behind a two-byte header:

  tag(uint8) | version(uint8) | field_0 | field_1 | ...

Field kinds:
  u64      <Q
  i64      <q
  f64      <d
  str      <I byte length + UTF-8 bytes (at most MAX_TEXT_BYTES)
  opt_u64  presence(uint8) [+ <Q when present]

Because text is capped, every layout has a static worst-case size, and
max_encoded_size() is checked against MAX_RECORD_SIZE when a record class is
defined.
"""

import math
import struct
from typing import Any

from errors import CorruptRecordError, EncodingError

MAX_RECORD_SIZE = 1024
MAX_TEXT_BYTES = 256
U64_MAX = 2**64 - 1

FORMAT_TAG = 0x54  # "T"
CODEC_VERSION = 1

_HEADER = struct.Struct("<BB")
_U64 = struct.Struct("<Q")
_I64 = struct.Struct("<q")
_F64 = struct.Struct("<d")
_LEN = struct.Struct("<I")
_FLAG = struct.Struct("<B")

_KIND_MAX_SIZE = {
    "u64": _U64.size,
    "i64": _I64.size,
    "f64": _F64.size,
    "str": _LEN.size + MAX_TEXT_BYTES,
    "opt_u64": _FLAG.size + _U64.size,
}
KINDS = frozenset(_KIND_MAX_SIZE)


# ── Encoders ───────────────────────────────────────────────────────────

def _put_u64(out: bytearray, value: Any) -> None:
    out += _U64.pack(value)


def _put_i64(out: bytearray, value: Any) -> None:
    out += _I64.pack(value)


def _put_f64(out: bytearray, value: Any) -> None:
    out += _F64.pack(value)


def _put_str(out: bytearray, value: Any) -> None:
    raw = value.encode("utf-8")
    if len(raw) > MAX_TEXT_BYTES:
        raise ValueError(f"text is {len(raw)} bytes, limit is {MAX_TEXT_BYTES}")
    out += _LEN.pack(len(raw))
    out += raw


def _put_opt_u64(out: bytearray, value: Any) -> None:
    if value is None:
        out += _FLAG.pack(0)
    else:
        out += _FLAG.pack(1)
        out += _U64.pack(value)


_ENCODERS = {
    "u64": _put_u64,
    "i64": _put_i64,
    "f64": _put_f64,
    "str": _put_str,
    "opt_u64": _put_opt_u64,
}


# ── Decoders: (view, offset) -> (value, new_offset) ────────────────────

def _get_u64(view: memoryview, offset: int):
    return _U64.unpack_from(view, offset)[0], offset + _U64.size


def _get_i64(view: memoryview, offset: int):
    return _I64.unpack_from(view, offset)[0], offset + _I64.size


def _get_f64(view: memoryview, offset: int):
    return _F64.unpack_from(view, offset)[0], offset + _F64.size


def _get_str(view: memoryview, offset: int):
    (length,) = _LEN.unpack_from(view, offset)
    offset += _LEN.size
    if length > MAX_TEXT_BYTES or offset + length > len(view):
        raise ValueError(f"bad text length {length} at offset {offset}")
    return bytes(view[offset:offset + length]).decode("utf-8"), offset + length


def _get_opt_u64(view: memoryview, offset: int):
    (flag,) = _FLAG.unpack_from(view, offset)
    offset += _FLAG.size
    if flag == 0:
        return None, offset
    if flag != 1:
        raise ValueError(f"bad presence flag {flag} at offset {offset - 1}")
    return _get_u64(view, offset)


_DECODERS = {
    "u64": _get_u64,
    "i64": _get_i64,
    "f64": _get_f64,
    "str": _get_str,
    "opt_u64": _get_opt_u64,
}


# ── Public API ─────────────────────────────────────────────────────────

def max_encoded_size(record_cls) -> int:
    """Worst-case encoded length for any instance of record_cls."""
    return _HEADER.size + sum(_KIND_MAX_SIZE[kind] for kind in record_cls.LAYOUT.values())


def check_layout(record_cls) -> None:
    """Raise TypeError if record_cls has a layout the codec cannot bound."""
    layout = record_cls.LAYOUT
    unknown = {kind for kind in layout.values() if kind not in KINDS}
    if unknown:
        raise TypeError(f"{record_cls.__name__}: unknown field kinds {sorted(unknown)}")
    fields = set(record_cls.model_fields)
    if set(layout) != fields:
        raise TypeError(
            f"{record_cls.__name__}: LAYOUT {sorted(layout)} does not match fields {sorted(fields)}"
        )
    size = max_encoded_size(record_cls)
    if size > MAX_RECORD_SIZE:
        raise TypeError(
            f"{record_cls.__name__}: worst-case size {size} exceeds {MAX_RECORD_SIZE} bytes"
        )


def encode(record) -> bytes:
    """Encode a record. Raises EncodingError rather than emit an oversized blob."""
    out = bytearray(_HEADER.pack(FORMAT_TAG, CODEC_VERSION))
    for name, kind in record.LAYOUT.items():
        try:
            _ENCODERS[kind](out, getattr(record, name))
        except (struct.error, UnicodeEncodeError, ValueError, TypeError) as e:
            raise EncodingError(f"cannot encode {type(record).__name__}.{name}: {e}") from e
    if len(out) > MAX_RECORD_SIZE:
        raise EncodingError(
            f"{type(record).__name__} id={record.id} encodes to {len(out)} bytes "
            f"(limit {MAX_RECORD_SIZE})"
        )
    return bytes(out)


def decode(record_cls, data: bytes):
    view = memoryview(data)
    try:
        tag, version = _HEADER.unpack_from(view, 0)
    except struct.error as e:
        raise CorruptRecordError(f"{record_cls.__name__}: truncated header") from e
    if tag != FORMAT_TAG or version != CODEC_VERSION:
        raise CorruptRecordError(
            f"{record_cls.__name__}: bad header tag=0x{tag:02x} version={version}"
        )

    offset = _HEADER.size
    values = {}
    try:
        for name, kind in record_cls.LAYOUT.items():
            values[name], offset = _DECODERS[kind](view, offset)
    except (struct.error, UnicodeDecodeError, ValueError) as e:
        raise CorruptRecordError(f"{record_cls.__name__}: cannot decode field: {e}") from e
    if offset != len(view):
        raise CorruptRecordError(
            f"{record_cls.__name__}: {len(view) - offset} trailing bytes"
        )

    for name, kind in record_cls.LAYOUT.items():
        if kind == "f64" and math.isnan(values[name]):
            raise CorruptRecordError(f"{record_cls.__name__}.{name} is NaN")
    try:
        return record_cls.model_validate(values)
    except ValueError as e:
        raise CorruptRecordError(f"{record_cls.__name__}: decoded values rejected: {e}") from e


def encode_counter(value: int) -> bytes:
    try:
        return _U64.pack(value)
    except struct.error as e:
        raise EncodingError(f"counter value {value} is not a u64") from e


def decode_counter(data: bytes) -> int:
    if len(data) != _U64.size:
        raise CorruptRecordError(f"counter blob is {len(data)} bytes, expected {_U64.size}")
    return _U64.unpack(data)[0]
