from __future__ import annotations

import json
import logging

from rosetta.errors import ErrorKind
from rosetta.node import NodeError, SyncProgress, SyncStage
from rosetta.tests import FakeNode, network_request, new_test_client, rosetta_post
from rosetta.tipset import build_tipset_key_hash


def test_network_list():
    client, node, _ = new_test_client()
    res = rosetta_post(client, "/network/list", {})
    assert res == {"network_identifiers": [{"blockchain": "Filecoin", "network": node.name}]}


def test_network_status_synced():
    client, node, _ = new_test_client()
    res = rosetta_post(client, "/network/status", network_request(node))

    assert res["current_block_identifier"] == {
        "index": node.head.height,
        "hash": build_tipset_key_hash(node.head.key),
    }
    assert res["current_block_timestamp"] == node.head.min_timestamp * 1000
    assert res["genesis_block_identifier"]["index"] == 0
    assert res["sync_status"] == {
        "current_index": 100,
        "target_index": 100,
        "stage": "complete",
        "synced": True,
    }
    assert {p["peer_id"] for p in res["peers"]} == {"12D3KooWPeerA", "12D3KooWPeerB"}
    assert "oldest_block_identifier" not in res


def test_network_status_syncing_reports_genesis():
    node = FakeNode(progress=SyncProgress(SyncStage.HEADERS, 40, 100))
    client, _, _ = new_test_client(node)
    res = rosetta_post(client, "/network/status", network_request(node))

    assert res["current_block_identifier"] == res["genesis_block_identifier"]
    assert res["current_block_timestamp"] == node.genesis.min_timestamp * 1000
    assert res["sync_status"]["synced"] is False
    assert res["sync_status"]["stage"] == "headers"


def test_network_status_unknown_target_is_omitted():
    node = FakeNode(progress=SyncProgress(SyncStage.COMPLETE, 100, None))
    client, _, _ = new_test_client(node)
    res = rosetta_post(client, "/network/status", network_request(node))
    assert "target_index" not in res["sync_status"]
    assert res["sync_status"]["synced"] is True


def test_head_failure_returns_error_without_body_fields():
    node = FakeNode(failures={"chain_head": NodeError("ChainHead: EOF")})
    client, _, _ = new_test_client(node)
    res = rosetta_post(client, "/network/status", network_request(node), expect_error=True)

    assert res["code"] == ErrorKind.HEAD_UNAVAILABLE
    assert res["message"] == "Unable to get latest block"
    assert res["retriable"] is True
    assert "current_block_identifier" not in res
    assert "EOF" not in res["message"]


def test_peer_failure_returns_peer_error():
    node = FakeNode(failures={"connected_peers": NodeError("NetPeers: refused")})
    client, _, _ = new_test_client(node)
    res = rosetta_post(client, "/network/status", network_request(node), expect_error=True)
    assert res["code"] == ErrorKind.PEER_QUERY_FAILURE
    assert "peers" not in res


def test_wrong_blockchain_rejected():
    client, node, _ = new_test_client()
    res = rosetta_post(
        client, "/network/status", network_request(node, blockchain="Ethereum"), expect_error=True
    )
    assert res["code"] == ErrorKind.INVALID_BLOCKCHAIN
    assert res["retriable"] is False
    assert node.calls == []


def test_wrong_network_rejected():
    client, node, _ = new_test_client()
    res = rosetta_post(
        client, "/network/options", network_request(node, network="butterflynet"), expect_error=True
    )
    assert res["code"] == ErrorKind.INVALID_NETWORK
    assert res["details"] == {"network": "butterflynet"}


def test_configured_network_is_used_for_validation():
    client, node, _ = new_test_client(network="calibrationnet")
    rosetta_post(client, "/network/status", network_request(node, network="calibrationnet"))
    assert "network_name" not in node.calls


def test_malformed_request_body():
    client, _, _ = new_test_client()
    res = rosetta_post(client, "/network/status", {"network_identifier": {"blockchain": 7}}, expect_error=True)
    assert res["code"] == ErrorKind.MALFORMED_VALUE
    assert res["details"]["fields"]


def test_network_options():
    client, node, _ = new_test_client()
    res = rosetta_post(client, "/network/options", network_request(node))

    assert res["version"]["rosetta_version"] == "1.4.0"
    assert res["version"]["node_version"] == node.version
    assert res["allow"]["operation_statuses"] == [
        {"status": "Success", "successful": True},
        {"status": "Reverted", "successful": False},
    ]
    assert res["allow"]["historical_balance_lookup"] is False
    codes = [e["code"] for e in res["allow"]["errors"]]
    assert codes == sorted(int(k) for k in ErrorKind)


def test_unexpected_exception_maps_to_internal_error():
    node = FakeNode(failures={"chain_genesis": RuntimeError("unexpected")})
    client, _, _ = new_test_client(node)
    res = rosetta_post(client, "/network/status", network_request(node), expect_error=True)
    assert res["code"] == ErrorKind.INTERNAL
    assert res["details"] == {"reason": "RuntimeError"}


def test_healthz_and_version():
    client, _, _ = new_test_client()
    assert client.get("/healthz").json()["ok"] is True
    assert client.get("/version").json()["rosettaVersion"] == "1.4.0"


def test_request_id_header_and_metrics():
    client, node, _ = new_test_client()
    resp = client.post("/network/list", json={}, headers={"x-request-id": "abc123"})
    assert resp.headers["x-request-id"] == "abc123"

    metrics = client.get("/metrics")
    assert metrics.status_code == 200
    assert "rosetta_http_requests_total" in metrics.text
    assert "rosetta_endpoint_calls_total" in metrics.text


def test_metrics_can_be_disabled():
    client, _, _ = new_test_client(metrics_enabled=False)
    assert client.get("/metrics").status_code == 404


def test_access_log_records_rosetta_code(caplog):
    node = FakeNode(failures={"chain_head": NodeError("ChainHead: EOF")})
    client, _, _ = new_test_client(node)
    caplog.set_level(logging.INFO, logger="rosetta.access")

    rosetta_post(client, "/network/status", network_request(node), expect_error=True)
    rosetta_post(client, "/network/list", {})

    lines = [json.loads(r.getMessage()) for r in caplog.records if r.name == "rosetta.access"]
    failed, ok = lines[-2], lines[-1]
    assert failed["path"] == "/network/status"
    assert failed["status"] == 500
    assert failed["rosetta_code"] == ErrorKind.HEAD_UNAVAILABLE
    assert "rosetta_code" not in ok
