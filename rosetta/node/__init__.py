"""
rosetta.node
============

The narrow capability set the network API consumes from a Filecoin full node,
expressed as a Protocol so the service can run against Lotus (see
rosetta/node/lotus.py) or an in-memory fake in tests.

Implementations must raise `NodeError` for transport/RPC failures; anything
else escaping a node call is treated as an internal error by the service.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import List, Optional, Protocol, Tuple

# Ordered block CIDs (base32 strings) identifying one tip set.
TipSetKey = Tuple[str, ...]


class NodeError(Exception):
    """A node query failed (transport error, RPC error or undecodable reply)."""

    def __init__(self, message: str, *, code: Optional[int] = None) -> None:
        super().__init__(message)
        self.code = code


class SyncStage(IntEnum):
    """Sync worker stages as numbered by Lotus (api.SyncStateStage)."""

    IDLE = 0
    HEADERS = 1
    PERSIST_HEADERS = 2
    MESSAGES = 3
    COMPLETE = 4
    ERROR = 5
    FETCHING_MESSAGES = 6


@dataclass(frozen=True)
class TipSet:
    key: TipSetKey
    height: int
    # Seconds since epoch; the smallest timestamp among the tip set's blocks.
    min_timestamp: int


@dataclass(frozen=True)
class SyncProgress:
    stage: SyncStage
    current_height: int
    # None when the node reports no target.
    target_height: Optional[int] = None


@dataclass(frozen=True)
class NodePeer:
    peer_id: str


class FullNode(Protocol):
    async def network_name(self) -> str: ...
    async def sync_progress(self) -> SyncProgress: ...
    async def chain_head(self) -> Optional[TipSet]: ...
    async def chain_genesis(self) -> Optional[TipSet]: ...
    async def connected_peers(self) -> List[NodePeer]: ...
    async def node_version(self) -> str: ...


__all__ = [
    "TipSetKey",
    "NodeError",
    "SyncStage",
    "TipSet",
    "SyncProgress",
    "NodePeer",
    "FullNode",
]
