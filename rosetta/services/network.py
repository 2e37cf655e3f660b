"""
Rosetta /network/* service.

Assembles network list/status/options responses from live node queries.
Nothing is cached between calls and the service keeps no per-request state,
so one instance can serve concurrent requests.

Status gating: while the node is not synced its head may still be rolled
back, so the genesis tip set (always available) is reported as the current
block instead.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, TypeVar

from rosetta.errors import (ChainIdUnavailableError, DeadlineExceededError,
                            GenesisUnavailableError, HeadUnavailableError,
                            InvalidBlockchainError, InvalidNetworkError,
                            NodeInfoUnavailableError, PeerQueryError,
                            RosettaError)
from rosetta.models import (Allow, BlockIdentifier, NetworkIdentifier,
                            NetworkListResponse, NetworkOptionsResponse,
                            NetworkStatusResponse, Peer, Version)
from rosetta.node import FullNode, NodeError, TipSet
from rosetta.options import OptionsRegistry
from rosetta.sync import check_sync_status
from rosetta.tipset import build_tipset_key_hash

log = logging.getLogger(__name__)

T = TypeVar("T")

FACTOR_SECOND_TO_MILLISECOND = 1000


class NetworkAPIService:
    """
    Implements /network/list, /network/status and /network/options over a
    FullNode. The node is shared and owned by the caller; it is never closed
    here.

    Every public coroutine accepts an optional absolute `deadline` on the
    running loop's clock (`loop.time()`); each node call gets the remaining
    budget. Without a deadline, `node_timeout` (if set) bounds each call.
    """

    def __init__(
        self,
        node: FullNode,
        registry: OptionsRegistry,
        *,
        sync_tolerance: int = 0,
        node_timeout: Optional[float] = None,
        network: Optional[str] = None,
    ) -> None:
        if sync_tolerance < 0:
            raise ValueError("sync_tolerance must be non-negative")
        self._node = node
        self._registry = registry
        self._sync_tolerance = sync_tolerance
        self._node_timeout = node_timeout
        self._network = network

    # ---------- node call plumbing ----------

    def _budget(self, deadline: Optional[float]) -> Optional[float]:
        if deadline is None:
            return self._node_timeout
        remaining = deadline - asyncio.get_running_loop().time()
        if self._node_timeout is not None:
            remaining = min(remaining, self._node_timeout)
        return remaining

    async def _query(
        self,
        what: str,
        call: Callable[[], Awaitable[T]],
        on_error: Optional[Callable[[], RosettaError]],
        deadline: Optional[float],
    ) -> T:
        timeout = self._budget(deadline)
        if timeout is not None and timeout <= 0:
            raise DeadlineExceededError(query=what)
        try:
            return await asyncio.wait_for(call(), timeout)
        except asyncio.TimeoutError as exc:
            log.warning("node query %s exceeded its deadline", what)
            raise DeadlineExceededError(query=what) from exc
        except NodeError as exc:
            if on_error is None:
                raise
            log.warning("node query %s failed: %s", what, exc)
            raise on_error() from exc

    # ---------- helpers ----------

    @staticmethod
    def _block_identifier(tipset: TipSet) -> BlockIdentifier:
        return BlockIdentifier(index=tipset.height, hash=build_tipset_key_hash(tipset.key))

    async def network_name(self, deadline: Optional[float] = None) -> str:
        return await self._query(
            "network_name", self._node.network_name, ChainIdUnavailableError, deadline
        )

    async def validate_network(
        self, identifier: NetworkIdentifier, deadline: Optional[float] = None
    ) -> None:
        """
        Reject requests addressed to another chain or network. The expected
        network is the configured one, or the node's own name.
        """
        if identifier.blockchain != self._registry.blockchain:
            raise InvalidBlockchainError(identifier.blockchain)
        expected = self._network or await self.network_name(deadline)
        if identifier.network != expected:
            raise InvalidNetworkError(identifier.network)

    # ---------- endpoints ----------

    async def list_networks(self, deadline: Optional[float] = None) -> NetworkListResponse:
        name = await self.network_name(deadline)
        return NetworkListResponse(
            network_identifiers=[
                NetworkIdentifier(blockchain=self._registry.blockchain, network=name)
            ]
        )

    async def network_status(self, deadline: Optional[float] = None) -> NetworkStatusResponse:
        status = await self._query(
            "sync_progress",
            lambda: check_sync_status(self._node, tolerance=self._sync_tolerance),
            None,
            deadline,
        )
        use_genesis = not status.synced

        head = await self._query("chain_head", self._node.chain_head, HeadUnavailableError, deadline)
        if head is None:
            raise HeadUnavailableError()
        head_id = self._block_identifier(head)

        genesis = await self._query(
            "chain_genesis", self._node.chain_genesis, GenesisUnavailableError, deadline
        )
        if genesis is None:
            raise GenesisUnavailableError()
        genesis_id = self._block_identifier(genesis)

        node_peers = await self._query(
            "connected_peers", self._node.connected_peers, PeerQueryError, deadline
        )
        peers: List[Peer] = [Peer(peer_id=p.peer_id) for p in node_peers]

        if use_genesis:
            current_id = genesis_id
            current_ts = genesis.min_timestamp * FACTOR_SECOND_TO_MILLISECOND
        else:
            current_id = head_id
            current_ts = head.min_timestamp * FACTOR_SECOND_TO_MILLISECOND

        log.debug(
            "network status current=%d genesis_substituted=%s peers=%d",
            current_id.index,
            use_genesis,
            len(peers),
        )
        return NetworkStatusResponse(
            current_block_identifier=current_id,
            current_block_timestamp=current_ts,
            genesis_block_identifier=genesis_id,
            sync_status=status,
            peers=peers,
        )

    async def network_options(self, deadline: Optional[float] = None) -> NetworkOptionsResponse:
        node_version = await self._query(
            "node_version", self._node.node_version, NodeInfoUnavailableError, deadline
        )
        reg = self._registry
        return NetworkOptionsResponse(
            version=Version(
                rosetta_version=reg.rosetta_version,
                node_version=node_version,
                middleware_version=reg.middleware_version,
            ),
            allow=Allow(
                operation_statuses=list(reg.operation_statuses),
                operation_types=list(reg.operation_types),
                errors=list(reg.errors),
            ),
        )


__all__ = ["NetworkAPIService", "FACTOR_SECOND_TO_MILLISECOND"]
