"""
JSON-RPC client for talking to a Lotus full node.

Implements the `FullNode` protocol over the Lotus v0 API:
  * Filecoin.StateNetworkName
  * Filecoin.SyncState
  * Filecoin.ChainHead / Filecoin.ChainGetGenesis
  * Filecoin.NetPeers
  * Filecoin.Version

Notes
-----
* No retries: a failed call raises NodeError and the caller decides.
* The bearer token is only required by Lotus for write methods; the read
  methods used here work without one on a default node.
* Decoding failures (unexpected reply shapes) are NodeErrors too, so the
  service maps them to the same error kind as a failed query.
"""

from __future__ import annotations

import itertools
import logging
from typing import Any, Dict, List, Mapping, Optional

import httpx

from rosetta.node import NodeError, NodePeer, SyncProgress, SyncStage, TipSet

log = logging.getLogger(__name__)


def _build_headers(token: Optional[str]) -> Dict[str, str]:
    hdrs = {
        "content-type": "application/json",
        "accept": "application/json",
    }
    if token:
        hdrs["authorization"] = f"Bearer {token}"
    return hdrs


# ----------------------------- Decoding -------------------------------------


def parse_tipset(raw: Optional[Mapping[str, Any]]) -> Optional[TipSet]:
    """
    Decode a Lotus TipSet JSON object; None/empty stays None. A tip set
    without blocks has no timestamp and is rejected.
    """
    if not raw:
        return None
    cids = tuple(str(c["/"]) for c in raw.get("Cids") or ())
    blocks = raw["Blocks"]
    if not blocks:
        raise ValueError("tipset has no blocks")
    min_ts = min(int(b["Timestamp"]) for b in blocks)
    return TipSet(key=cids, height=int(raw["Height"]), min_timestamp=min_ts)


def parse_sync_state(raw: Optional[Mapping[str, Any]]) -> SyncProgress:
    """
    Collapse Lotus' per-worker SyncState into one progress record.

    The worker chasing the highest target wins (ties go to the one furthest
    along). Workers without a target are ignored; no usable worker at all
    reads as an idle node with an unknown target.
    """
    best: Optional[Mapping[str, Any]] = None
    best_rank = (-1, -1)
    for worker in (raw or {}).get("ActiveSyncs") or ():
        target = worker.get("Target")
        if not target:
            continue
        rank = (int(target.get("Height") or 0), int(worker.get("Height") or 0))
        if rank > best_rank:
            best, best_rank = worker, rank

    if best is None:
        return SyncProgress(stage=SyncStage.IDLE, current_height=0, target_height=None)

    return SyncProgress(
        stage=SyncStage(int(best["Stage"])),
        current_height=best_rank[1],
        target_height=best_rank[0],
    )


def parse_network_name(raw: Any) -> str:
    if not isinstance(raw, str) or not raw:
        raise TypeError("network name must be a non-empty string")
    return raw


def parse_peers(raw: Optional[List[Mapping[str, Any]]]) -> List[NodePeer]:
    return [NodePeer(peer_id=str(p["ID"])) for p in raw or ()]


# ----------------------------- Client ---------------------------------------


class LotusNode:
    """
    Minimal async Lotus client. Owns its httpx.AsyncClient; call `aclose()`
    (or use `async with`) when done.
    """

    def __init__(
        self,
        url: str,
        *,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._url = url
        self._ids = itertools.count(1)
        self._client = httpx.AsyncClient(
            timeout=timeout,
            headers=_build_headers(token),
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "LotusNode":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    # ---------- core transport ----------

    async def _call(self, method: str, *params: Any) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": f"Filecoin.{method}",
            "params": list(params),
        }
        try:
            resp = await self._client.post(self._url, json=payload)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPError as exc:
            log.debug("Lotus %s transport failure: %s", method, exc)
            raise NodeError(f"{method}: transport failure") from exc
        except ValueError as exc:
            raise NodeError(f"{method}: reply is not JSON") from exc

        err = data.get("error") if isinstance(data, dict) else None
        if err:
            if not isinstance(err, dict):
                raise NodeError(f"{method}: malformed error object")
            raise NodeError(f"{method}: {err.get('message', 'unknown error')}", code=err.get("code"))
        if not isinstance(data, dict):
            raise NodeError(f"{method}: unexpected reply")
        return data.get("result")

    async def _decode(self, method: str, decoder, *params: Any) -> Any:
        raw = await self._call(method, *params)
        try:
            return decoder(raw)
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise NodeError(f"{method}: undecodable reply") from exc

    # ---------- FullNode ----------

    async def network_name(self) -> str:
        return await self._decode("StateNetworkName", parse_network_name)

    async def sync_progress(self) -> SyncProgress:
        return await self._decode("SyncState", parse_sync_state)

    async def chain_head(self) -> Optional[TipSet]:
        return await self._decode("ChainHead", parse_tipset)

    async def chain_genesis(self) -> Optional[TipSet]:
        return await self._decode("ChainGetGenesis", parse_tipset)

    async def connected_peers(self) -> List[NodePeer]:
        return await self._decode("NetPeers", parse_peers)

    async def node_version(self) -> str:
        return await self._decode("Version", lambda raw: str(raw["Version"]))


__all__ = ["LotusNode", "parse_network_name", "parse_tipset", "parse_sync_state", "parse_peers"]
