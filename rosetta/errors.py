"""
Rosetta errors for the Filecoin network API.

This module provides:
- The error catalogue: stable numeric codes, human messages and retriable flags.
- Exception classes that carry (kind, details) and render to Rosetta `Error` objects.
- A helper to convert arbitrary exceptions → Rosetta errors.
- An HTTP status hint for the server layer.

Usage (from rosetta/server.py):
    from .errors import RosettaError, to_error

    try:
        return await service.network_status(deadline)
    except Exception as e:
        err = to_error(e)
        return JSONResponse(err.to_dict(), status_code=http_status_hint(err))

Notes:
- Messages come from the catalogue only; lower-level causes are chained with
  `raise ... from exc` for logs and never rendered into the descriptor.
- Codes are part of the public contract: append new kinds, never renumber.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, List, Mapping, NamedTuple, Optional


# ───────────────────────────────────────────────────────────────────────────────
# Catalogue
# Keep these stable; append new codes at the end to avoid collisions.
# ───────────────────────────────────────────────────────────────────────────────

class ErrorKind(IntEnum):
    INVALID_BLOCKCHAIN = 1
    INVALID_NETWORK = 2
    MALFORMED_VALUE = 3
    CHAIN_ID_UNAVAILABLE = 4
    HEAD_UNAVAILABLE = 5
    GENESIS_UNAVAILABLE = 6
    TIPSET_HASH_FAILURE = 7
    PEER_QUERY_FAILURE = 8
    NODE_INFO_UNAVAILABLE = 9
    SYNC_QUERY_FAILURE = 10
    DEADLINE_EXCEEDED = 11
    INTERNAL = 12


class ErrorEntry(NamedTuple):
    message: str
    retriable: bool


CATALOG: Mapping[ErrorKind, ErrorEntry] = {
    ErrorKind.INVALID_BLOCKCHAIN: ErrorEntry("Invalid blockchain specified in network identifier", False),
    ErrorKind.INVALID_NETWORK: ErrorEntry("Invalid network specified in network identifier", False),
    ErrorKind.MALFORMED_VALUE: ErrorEntry("Malformed value", False),
    ErrorKind.CHAIN_ID_UNAVAILABLE: ErrorEntry("Unable to get chain ID", True),
    ErrorKind.HEAD_UNAVAILABLE: ErrorEntry("Unable to get latest block", True),
    ErrorKind.GENESIS_UNAVAILABLE: ErrorEntry("Unable to get genesis block", True),
    ErrorKind.TIPSET_HASH_FAILURE: ErrorEntry("Unable to build tipset hash", False),
    ErrorKind.PEER_QUERY_FAILURE: ErrorEntry("Unable to get peers", True),
    ErrorKind.NODE_INFO_UNAVAILABLE: ErrorEntry("Unable to get node info", True),
    ErrorKind.SYNC_QUERY_FAILURE: ErrorEntry("Unable to get node sync status", True),
    ErrorKind.DEADLINE_EXCEEDED: ErrorEntry("Node query deadline exceeded", True),
    ErrorKind.INTERNAL: ErrorEntry("Internal error", False),
}


def describe(kind: ErrorKind) -> Dict[str, Any]:
    """Return the static descriptor {code, message, retriable} for a kind."""
    entry = CATALOG[kind]
    return {"code": int(kind), "message": entry.message, "retriable": entry.retriable}


def catalog() -> List[Dict[str, Any]]:
    """All descriptors, ordered by code."""
    return [describe(kind) for kind in sorted(ErrorKind)]


# ───────────────────────────────────────────────────────────────────────────────
# Base exception
# ───────────────────────────────────────────────────────────────────────────────

@dataclass(eq=False)
class RosettaError(Exception):
    kind: ErrorKind
    details: Optional[Mapping[str, Any]] = None

    @property
    def code(self) -> int:
        return int(self.kind)

    @property
    def message(self) -> str:
        return CATALOG[self.kind].message

    @property
    def retriable(self) -> bool:
        return CATALOG[self.kind].retriable

    def to_dict(self) -> Dict[str, Any]:
        err = describe(self.kind)
        if self.details:
            err["details"] = _safe_jsonable(self.details)
        return err

    def __str__(self) -> str:
        if self.details:
            return f"[{self.code}] {self.message} ({dict(self.details)})"
        return f"[{self.code}] {self.message}"


# ───────────────────────────────────────────────────────────────────────────────
# Concrete exception types
# ───────────────────────────────────────────────────────────────────────────────

# Request validation
class InvalidBlockchainError(RosettaError):
    def __init__(self, got: str) -> None:
        super().__init__(ErrorKind.INVALID_BLOCKCHAIN, {"blockchain": got})

class InvalidNetworkError(RosettaError):
    def __init__(self, got: str) -> None:
        super().__init__(ErrorKind.INVALID_NETWORK, {"network": got})

class MalformedValueError(RosettaError):
    def __init__(self, **details: Any) -> None:
        super().__init__(ErrorKind.MALFORMED_VALUE, details or None)

# Node queries
class ChainIdUnavailableError(RosettaError):
    def __init__(self, **details: Any) -> None:
        super().__init__(ErrorKind.CHAIN_ID_UNAVAILABLE, details or None)

class HeadUnavailableError(RosettaError):
    def __init__(self, **details: Any) -> None:
        super().__init__(ErrorKind.HEAD_UNAVAILABLE, details or None)

class GenesisUnavailableError(RosettaError):
    def __init__(self, **details: Any) -> None:
        super().__init__(ErrorKind.GENESIS_UNAVAILABLE, details or None)

class HashEncodingError(RosettaError):
    def __init__(self, reason: str) -> None:
        super().__init__(ErrorKind.TIPSET_HASH_FAILURE, {"reason": reason})

class PeerQueryError(RosettaError):
    def __init__(self, **details: Any) -> None:
        super().__init__(ErrorKind.PEER_QUERY_FAILURE, details or None)

class NodeInfoUnavailableError(RosettaError):
    def __init__(self, **details: Any) -> None:
        super().__init__(ErrorKind.NODE_INFO_UNAVAILABLE, details or None)

class SyncQueryError(RosettaError):
    def __init__(self, **details: Any) -> None:
        super().__init__(ErrorKind.SYNC_QUERY_FAILURE, details or None)

class DeadlineExceededError(RosettaError):
    def __init__(self, **details: Any) -> None:
        super().__init__(ErrorKind.DEADLINE_EXCEEDED, details or None)

class InternalError(RosettaError):
    def __init__(self, **details: Any) -> None:
        super().__init__(ErrorKind.INTERNAL, details or None)


# ───────────────────────────────────────────────────────────────────────────────
# Helpers
# ───────────────────────────────────────────────────────────────────────────────

def _safe_jsonable(obj: Any) -> Any:
    """
    Convert details into JSON-friendly primitives; anything exotic becomes str.
    """
    if obj is None or isinstance(obj, (bool, int, float, str)):
        return obj
    if isinstance(obj, (bytes, bytearray)):
        return "0x" + bytes(obj).hex()
    if isinstance(obj, Mapping):
        return {str(k): _safe_jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_safe_jsonable(x) for x in obj]
    return str(obj)


def http_status_hint(err: RosettaError) -> int:
    """
    HTTP status for an error response. The Rosetta contract answers every
    failure with 500 and the Error body; clients branch on `code`/`retriable`.
    """
    return 500


def to_error(exc: BaseException) -> RosettaError:
    """
    Convert any exception into a RosettaError.
    - RosettaError passes through.
    - TimeoutError maps to DeadlineExceeded.
    - Anything else becomes Internal with only the exception class name exposed.
    """
    if isinstance(exc, RosettaError):
        return exc
    if isinstance(exc, (TimeoutError, asyncio.TimeoutError)):
        return DeadlineExceededError()
    return InternalError(reason=exc.__class__.__name__)


__all__ = [
    "ErrorKind",
    "ErrorEntry",
    "CATALOG",
    "describe",
    "catalog",
    "RosettaError",
    "InvalidBlockchainError",
    "InvalidNetworkError",
    "MalformedValueError",
    "ChainIdUnavailableError",
    "HeadUnavailableError",
    "GenesisUnavailableError",
    "HashEncodingError",
    "PeerQueryError",
    "NodeInfoUnavailableError",
    "SyncQueryError",
    "DeadlineExceededError",
    "InternalError",
    "http_status_hint",
    "to_error",
]
