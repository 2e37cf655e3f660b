"""
Rosetta models: typed JSON shapes accepted/returned by the network endpoints.
Field names follow the Rosetta Data API (snake_case on the wire), so these
models serialize as-is with `model_dump(exclude_none=True)`.

Includes:
- Request envelopes (MetadataRequest, NetworkRequest)
- Identifiers (NetworkIdentifier, BlockIdentifier)
- /network/status view (SyncStatus, Peer, NetworkStatusResponse)
- /network/options view (Version, OperationStatus, Error, Allow, NetworkOptionsResponse)
- /network/list view (NetworkListResponse)
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# -----------------------------------------------------------------------------
# Identifiers & requests
# -----------------------------------------------------------------------------


class NetworkIdentifier(BaseModel):
    model_config = ConfigDict(frozen=True)
    blockchain: str
    network: str
    sub_network_identifier: Optional[Dict[str, Any]] = None


class MetadataRequest(BaseModel):
    model_config = ConfigDict(frozen=True)
    metadata: Optional[Dict[str, Any]] = None


class NetworkRequest(BaseModel):
    model_config = ConfigDict(frozen=True)
    network_identifier: NetworkIdentifier
    metadata: Optional[Dict[str, Any]] = None


class BlockIdentifier(BaseModel):
    """
    A block (tip set) position: height plus the tip set key hash.
    """

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "examples": [
                {
                    "index": 1024,
                    "hash": "bafy2bzacecnamqgqmifpluoeldx7zzglxcljo6oja4vrmtj7432rphldpdmm2",
                }
            ]
        },
    )
    index: int = Field(ge=0)
    hash: str

    @field_validator("hash")
    @classmethod
    def _hash_nonempty(cls, v: str) -> str:
        if not v:
            raise ValueError("block hash must be non-empty")
        return v


# -----------------------------------------------------------------------------
# /network/status
# -----------------------------------------------------------------------------


class SyncStatus(BaseModel):
    """
    Normalized node sync progress. `target_index` is None when the node does
    not know (or does not report) the height it is syncing towards.
    """

    model_config = ConfigDict(frozen=True)
    current_index: int
    target_index: Optional[int] = None
    stage: str
    synced: bool


class Peer(BaseModel):
    model_config = ConfigDict(frozen=True)
    peer_id: str
    metadata: Optional[Dict[str, Any]] = None


class NetworkStatusResponse(BaseModel):
    model_config = ConfigDict(frozen=True)
    current_block_identifier: BlockIdentifier
    # milliseconds since epoch
    current_block_timestamp: int
    genesis_block_identifier: BlockIdentifier
    oldest_block_identifier: Optional[BlockIdentifier] = None
    sync_status: SyncStatus
    peers: List[Peer]


# -----------------------------------------------------------------------------
# /network/list
# -----------------------------------------------------------------------------


class NetworkListResponse(BaseModel):
    model_config = ConfigDict(frozen=True)
    network_identifiers: List[NetworkIdentifier]


# -----------------------------------------------------------------------------
# /network/options
# -----------------------------------------------------------------------------


class Version(BaseModel):
    model_config = ConfigDict(frozen=True)
    rosetta_version: str
    node_version: str
    middleware_version: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class OperationStatus(BaseModel):
    model_config = ConfigDict(frozen=True)
    status: str
    successful: bool


class Error(BaseModel):
    """
    Rosetta error descriptor. `code` is stable across releases; `retriable`
    tells clients whether repeating the identical request may succeed.
    """

    model_config = ConfigDict(frozen=True)
    code: int = Field(ge=0)
    message: str
    description: Optional[str] = None
    retriable: bool
    details: Optional[Dict[str, Any]] = None


class Allow(BaseModel):
    model_config = ConfigDict(frozen=True)
    operation_statuses: List[OperationStatus]
    operation_types: List[str]
    errors: List[Error]
    historical_balance_lookup: bool = False
    call_methods: List[str] = Field(default_factory=list)
    mempool_coins: bool = False


class NetworkOptionsResponse(BaseModel):
    model_config = ConfigDict(frozen=True)
    version: Version
    allow: Allow


__all__ = [
    "NetworkIdentifier",
    "MetadataRequest",
    "NetworkRequest",
    "BlockIdentifier",
    "SyncStatus",
    "Peer",
    "NetworkStatusResponse",
    "NetworkListResponse",
    "Version",
    "OperationStatus",
    "Error",
    "Allow",
    "NetworkOptionsResponse",
]
