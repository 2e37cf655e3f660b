"""
Node sync progress → Rosetta SyncStatus.

`synced` rule:
  * the stage must be `complete`, and
  * when the node reports a target height (> 0), the current height must be
    within `tolerance` epochs of it (current >= target - tolerance).
A missing or zero target is reported as unknown (`target_index=None`) and the
stage label alone decides.
"""
from __future__ import annotations

import logging
from typing import Mapping

from rosetta.errors import SyncQueryError
from rosetta.models import SyncStatus
from rosetta.node import FullNode, NodeError, SyncProgress, SyncStage

log = logging.getLogger(__name__)

STAGE_LABELS: Mapping[SyncStage, str] = {
    SyncStage.IDLE: "idle",
    SyncStage.HEADERS: "headers",
    SyncStage.PERSIST_HEADERS: "persist_headers",
    SyncStage.MESSAGES: "messages",
    SyncStage.COMPLETE: "complete",
    SyncStage.ERROR: "error",
    SyncStage.FETCHING_MESSAGES: "fetching_messages",
}


def stage_label(stage: SyncStage) -> str:
    return STAGE_LABELS[stage]


def to_sync_status(progress: SyncProgress, *, tolerance: int = 0) -> SyncStatus:
    if tolerance < 0:
        raise ValueError("sync tolerance must be non-negative")

    target = progress.target_height
    if target is not None and target <= 0:
        target = None

    synced = progress.stage is SyncStage.COMPLETE
    if synced and target is not None:
        synced = progress.current_height >= target - tolerance

    return SyncStatus(
        current_index=progress.current_height,
        target_index=target,
        stage=stage_label(progress.stage),
        synced=synced,
    )


async def check_sync_status(node: FullNode, *, tolerance: int = 0) -> SyncStatus:
    """
    Query the node's sync progress and normalize it.

    Raises SyncQueryError if the node query fails; there is no local retry.
    """
    try:
        progress = await node.sync_progress()
    except NodeError as exc:
        log.warning("sync state query failed: %s", exc)
        raise SyncQueryError() from exc

    status = to_sync_status(progress, tolerance=tolerance)
    log.debug(
        "sync status stage=%s current=%d target=%s synced=%s",
        status.stage,
        status.current_index,
        status.target_index,
        status.synced,
    )
    return status


__all__ = ["STAGE_LABELS", "stage_label", "to_sync_status", "check_sync_status"]
