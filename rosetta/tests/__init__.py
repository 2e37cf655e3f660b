"""
Test utilities for the Rosetta network API.

Usage in tests:
    from rosetta.tests import FakeNode, new_test_client, rosetta_post

    def test_status():
        client, node, cfg = new_test_client()
        res = rosetta_post(client, "/network/status", network_request(node))
        assert res["current_block_identifier"]["index"] == node.head.height
"""
from __future__ import annotations

import asyncio
import typing as t
from dataclasses import dataclass, field

from fastapi.testclient import TestClient

from rosetta import config as rosetta_config
from rosetta import server as rosetta_server
from rosetta.node import NodePeer, SyncProgress, SyncStage, TipSet
from rosetta.options import BLOCKCHAIN_NAME
from rosetta.tipset import blake2b_cid

# Filecoin mainnet genesis timestamp (seconds) and block time.
GENESIS_TIMESTAMP = 1_598_306_400
BLOCK_DELAY_SECS = 30


def make_tipset(height: int, blocks: int = 1, *, timestamp: int | None = None) -> TipSet:
    """A tip set at `height` with `blocks` deterministic, well-formed block CIDs."""
    key = tuple(blake2b_cid(f"block-{height}-{i}".encode()) for i in range(blocks))
    if timestamp is None:
        timestamp = GENESIS_TIMESTAMP + height * BLOCK_DELAY_SECS
    return TipSet(key=key, height=height, min_timestamp=timestamp)


@dataclass
class FakeNode:
    """
    In-memory FullNode. Set `failures[name]` to an exception to make that
    query raise; set `delay` to make every query sleep first. Every query
    name is appended to `calls` in order.
    """

    name: str = "mainnet"
    progress: SyncProgress = field(
        default_factory=lambda: SyncProgress(stage=SyncStage.COMPLETE, current_height=100, target_height=100)
    )
    head: t.Optional[TipSet] = field(default_factory=lambda: make_tipset(100, blocks=3))
    genesis: t.Optional[TipSet] = field(default_factory=lambda: make_tipset(0))
    peers: t.List[NodePeer] = field(
        default_factory=lambda: [NodePeer("12D3KooWPeerA"), NodePeer("12D3KooWPeerB")]
    )
    version: str = "1.23.3+mainnet"
    failures: t.Dict[str, BaseException] = field(default_factory=dict)
    delay: float = 0.0
    calls: t.List[str] = field(default_factory=list)

    async def _answer(self, query: str, value: t.Any) -> t.Any:
        self.calls.append(query)
        if self.delay:
            await asyncio.sleep(self.delay)
        if query in self.failures:
            raise self.failures[query]
        return value

    async def network_name(self) -> str:
        return await self._answer("network_name", self.name)

    async def sync_progress(self) -> SyncProgress:
        return await self._answer("sync_progress", self.progress)

    async def chain_head(self) -> t.Optional[TipSet]:
        return await self._answer("chain_head", self.head)

    async def chain_genesis(self) -> t.Optional[TipSet]:
        return await self._answer("chain_genesis", self.genesis)

    async def connected_peers(self) -> t.List[NodePeer]:
        return await self._answer("connected_peers", list(self.peers))

    async def node_version(self) -> str:
        return await self._answer("node_version", self.version)


def make_test_config(**overrides: t.Any) -> rosetta_config.RosettaConfig:
    """
    Build a RosettaConfig suitable for tests (quiet logs, no node timeout).
    """
    values: t.Dict[str, t.Any] = dict(
        host="127.0.0.1",
        port=0,  # unused by TestClient
        node=rosetta_config.NodeConfig(url="http://lotus.invalid/rpc/v0", timeout=None),
        network=None,
        sync_tolerance=0,
        request_timeout=5.0,
        log_level="ERROR",
        metrics_enabled=True,
    )
    values.update(overrides)
    return rosetta_config.RosettaConfig(**values)


def new_test_client(
    node: FakeNode | None = None, **cfg_overrides: t.Any
) -> tuple[TestClient, FakeNode, rosetta_config.RosettaConfig]:
    """
    Create a TestClient bound to a fresh app over a FakeNode.
    Returns (client, node, cfg).
    """
    node = node or FakeNode()
    cfg = make_test_config(**cfg_overrides)
    app = rosetta_server.create_app(cfg, node=node)
    return TestClient(app), node, cfg


def network_request(node: FakeNode, **overrides: t.Any) -> dict:
    ident = {"blockchain": BLOCKCHAIN_NAME, "network": node.name}
    ident.update(overrides)
    return {"network_identifier": ident}


def rosetta_post(
    client: TestClient,
    path: str,
    body: t.Any | None = None,
    *,
    expect_error: bool = False,
) -> dict:
    """
    POST a Rosetta request and return the parsed body. Success must be HTTP
    200; with expect_error=True an HTTP 500 Rosetta Error is required.
    """
    resp = client.post(path, json=body if body is not None else {})
    data = resp.json()
    if expect_error:
        assert resp.status_code == 500, f"expected Rosetta error, got HTTP {resp.status_code}: {data}"
        assert {"code", "message", "retriable"} <= set(data), data
    else:
        assert resp.status_code == 200, f"HTTP {resp.status_code}: {resp.text}"
    return data


__all__ = [
    "GENESIS_TIMESTAMP",
    "BLOCK_DELAY_SECS",
    "make_tipset",
    "FakeNode",
    "make_test_config",
    "new_test_client",
    "network_request",
    "rosetta_post",
]
