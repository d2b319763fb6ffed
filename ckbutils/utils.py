# Copyright (C) 2024-2025 The ckb-signing-utils developers
#
# This file is part of ckb-signing-utils
#
# It is subject to the license terms in the LICENSE file found in the top-level
# directory of this distribution.
#
# No part of ckb-signing-utils, including this file, may be copied, modified,
# propagated, or distributed except according to the terms contained in the
# LICENSE file.

from __future__ import annotations
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Optional

import struct

from ckbutils.constants import WITNESS_LENGTH_PREFIX_SIZE


_UINT32_MAX = 0xFFFFFFFF


def encode_witness_length(length: int) -> bytes:
    """
    Encodes a witness length as the 8 bytes little-endian prefix that is
    hashed before every witness.

    The value is packed as two 32-bit little-endian words, low word first.
    Together they cover the whole u64 range; anything outside of it is
    rejected instead of being wrapped.
    """
    if not isinstance(length, int) or isinstance(length, bool):
        raise TypeError("Witness length must be an integer")
    if length < 0:
        raise ValueError("Witness length cannot be negative: %d" % length)
    if length >> 64:
        raise ValueError("Witness length does not fit in 64 bits: %d" % length)

    low = length & _UINT32_MAX
    high = length >> 32
    return struct.pack("<II", low, high)


def decode_witness_length(data: bytes) -> int:
    """Inverse of encode_witness_length()"""
    if len(data) != WITNESS_LENGTH_PREFIX_SIZE:
        raise ValueError(
            "Witness length prefix must be exactly %d bytes"
            % WITNESS_LENGTH_PREFIX_SIZE
        )
    low, high = struct.unpack("<II", data)
    return (high << 32) | low


#
# Molecule serialization primitives
#
# https://github.com/nervosnetwork/molecule/blob/master/docs/encoding_spec.md
#
def pack_uint32(i: int) -> bytes:
    """Serializes a molecule Uint32 (little-endian)"""
    if i < 0 or i > _UINT32_MAX:
        raise ValueError("Integer out of Uint32 range: %d" % i)
    return struct.pack("<I", i)


def pack_uint64(i: int) -> bytes:
    """Serializes a molecule Uint64 (little-endian)"""
    if i < 0 or i >> 64:
        raise ValueError("Integer out of Uint64 range: %d" % i)
    return struct.pack("<Q", i)


def unpack_uint32(data: bytes, offset: int = 0) -> int:
    if len(data) < offset + 4:
        raise ValueError("Not enough data to read a Uint32")
    return struct.unpack_from("<I", data, offset)[0]


def serialize_bytes(data: bytes) -> bytes:
    """Serializes a molecule Bytes (fixvec<byte>): item count + raw bytes"""
    return pack_uint32(len(data)) + data


def serialize_fixvec(items: list[bytes]) -> bytes:
    """Serializes a fixvec of already serialized fixed size items"""
    return pack_uint32(len(items)) + b"".join(items)


def serialize_dynvec(items: list[bytes]) -> bytes:
    """
    Serializes a dynvec (or a table, which shares the same layout):
    full size, one offset per item and then the items themselves.
    """
    header_size = 4 + 4 * len(items)
    total_size = header_size + sum(len(item) for item in items)

    offsets = b""
    cursor = header_size
    for item in items:
        offsets += pack_uint32(cursor)
        cursor += len(item)

    return pack_uint32(total_size) + offsets + b"".join(items)


def serialize_table(fields: list[bytes]) -> bytes:
    return serialize_dynvec(fields)


def serialize_option(data: Optional[bytes]) -> bytes:
    """An absent option is serialized to nothing"""
    if data is None:
        return b""
    return data


def parse_dynvec(data: bytes) -> list[bytes]:
    """
    Splits a serialized dynvec/table into its raw items.

    Raises
    ------
    ValueError
        if the header is inconsistent with the data
    """
    total_size = unpack_uint32(data)
    if total_size != len(data):
        raise ValueError(
            "Invalid molecule data: full size %d but %d bytes given"
            % (total_size, len(data))
        )
    if total_size == 4:
        return []

    first_offset = unpack_uint32(data, 4)
    if first_offset % 4 != 0 or first_offset < 8 or first_offset > total_size:
        raise ValueError("Invalid molecule data: bad first offset %d" % first_offset)

    count = first_offset // 4 - 1
    offsets = [unpack_uint32(data, 4 + 4 * k) for k in range(count)]
    offsets.append(total_size)

    items = []
    for start, end in zip(offsets, offsets[1:]):
        if start > end:
            raise ValueError("Invalid molecule data: offsets are not ordered")
        items.append(data[start:end])
    return items


def parse_table(data: bytes, field_count: int) -> list[bytes]:
    fields = parse_dynvec(data)
    if len(fields) != field_count:
        raise ValueError(
            "Invalid molecule table: expected %d fields, got %d"
            % (field_count, len(fields))
        )
    return fields


def parse_bytes(data: bytes) -> bytes:
    """Parses a molecule Bytes and returns the raw content"""
    length = unpack_uint32(data)
    if length != len(data) - 4:
        raise ValueError(
            "Invalid molecule Bytes: length %d but %d bytes given"
            % (length, len(data) - 4)
        )
    return data[4:]


#
# Basic conversions between bytes (b), hexadecimal (h) and integer (i)
# CKB displays every byte string as 0x-prefixed hex and every quantity as
# 0x-prefixed hex without leading zeros.
#
def b_to_h(b: bytes) -> str:
    """Converts bytes to a 0x-prefixed hexadecimal string"""
    return "0x" + b.hex()


def h_to_b(h: str) -> bytes:
    """Converts a hexadecimal string (0x prefix optional) to bytes"""
    if h[:2].lower() == "0x":
        h = h[2:]
    return bytes.fromhex(h)


def normalize_hex(h: str | bytes) -> str:
    """Returns lowercase 0x-prefixed hex for bytes or any hex string"""
    if isinstance(h, (bytes, bytearray)):
        return b_to_h(bytes(h))
    return b_to_h(h_to_b(h))


def h_to_i(hex_str: str) -> int:
    """Converts a hexadecimal quantity to a number"""
    return int(hex_str, base=16)


def i_to_h(i: int) -> str:
    """Converts a number to a CKB JSON quantity (e.g. 0x1a)"""
    return hex(i)
