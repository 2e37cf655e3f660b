"""
Tip set key hashing.

A tip set is identified by the ordered CIDs of its blocks. Rosetta needs a
single string per block identifier, so the key's binary form (the
concatenated binary CIDs, as Lotus serializes a TipSetKey) is hashed with
blake2b-256 and wrapped in a CIDv1 with the dag-cbor codec. The result is
rendered in base32 like every other Filecoin CID, e.g. ``bafy2bzace…``.
"""
from __future__ import annotations

import base64
import binascii
import hashlib
from typing import Iterable, Sequence, Tuple

from rosetta.errors import HashEncodingError

CID_V1 = 0x01
DAG_CBOR = 0x71
BLAKE2B_256 = 0xB220
BLAKE2B_256_LEN = 32

# multibase prefix for lowercase RFC 4648 base32 without padding
_BASE32_PREFIX = "b"


def _uvarint(n: int) -> bytes:
    out = bytearray()
    while True:
        byte = n & 0x7F
        n >>= 7
        if n:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def _read_uvarint(buf: bytes, pos: int) -> Tuple[int, int]:
    value = shift = 0
    while True:
        if pos >= len(buf):
            raise HashEncodingError("truncated varint in CID")
        byte = buf[pos]
        pos += 1
        value |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return value, pos
        shift += 7
        if shift > 63:
            raise HashEncodingError("varint overflow in CID")


def _b32encode(raw: bytes) -> str:
    return base64.b32encode(raw).decode("ascii").lower().rstrip("=")


def _b32decode(text: str) -> bytes:
    padded = text.upper() + "=" * (-len(text) % 8)
    return base64.b32decode(padded)


def encode_cid(codec: int, mh_code: int, digest: bytes) -> str:
    """Render a CIDv1 as a base32 multibase string."""
    raw = _uvarint(CID_V1) + _uvarint(codec) + _uvarint(mh_code) + _uvarint(len(digest)) + digest
    return _BASE32_PREFIX + _b32encode(raw)


def cid_to_bytes(cid: str) -> bytes:
    """
    Binary form of a base32 CIDv1 string. The layout is checked
    (version, codec, multihash code, digest length) but codecs are not
    restricted.
    """
    if not isinstance(cid, str) or len(cid) < 2 or cid[0] != _BASE32_PREFIX:
        raise HashEncodingError("CID must be a base32 CIDv1 string")
    try:
        raw = _b32decode(cid[1:])
    except (binascii.Error, ValueError) as exc:
        raise HashEncodingError("CID is not valid base32") from exc

    version, pos = _read_uvarint(raw, 0)
    if version != CID_V1:
        raise HashEncodingError(f"unsupported CID version {version}")
    _codec, pos = _read_uvarint(raw, pos)
    _mh_code, pos = _read_uvarint(raw, pos)
    length, pos = _read_uvarint(raw, pos)
    if len(raw) - pos != length:
        raise HashEncodingError("CID digest length mismatch")
    return raw


def tipset_key_bytes(key: Iterable[str]) -> bytes:
    return b"".join(cid_to_bytes(c) for c in key)


def build_tipset_key_hash(key: Sequence[str]) -> str:
    """
    Hash a tip set key into a stable CID string.

    Raises HashEncodingError for an empty key or any undecodable block CID.
    """
    if not key:
        raise HashEncodingError("empty tipset key")
    return blake2b_cid(tipset_key_bytes(key))


def blake2b_cid(payload: bytes) -> str:
    """dag-cbor/blake2b-256 CID of a payload; Filecoin block CIDs have this shape."""
    return encode_cid(DAG_CBOR, BLAKE2B_256, hashlib.blake2b(payload, digest_size=BLAKE2B_256_LEN).digest())


__all__ = [
    "encode_cid",
    "cid_to_bytes",
    "tipset_key_bytes",
    "build_tipset_key_hash",
    "blake2b_cid",
]
