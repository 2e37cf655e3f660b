from __future__ import annotations

import json

import httpx
import pytest
from typer.testing import CliRunner

from rosetta import cli
from rosetta import config as rosetta_config
from rosetta.errors import ErrorKind
from rosetta.node.lotus import LotusNode
from rosetta.tests import make_tipset


def test_load_defaults(monkeypatch):
    for name in ("ROSETTA_PORT", "ROSETTA_LOTUS_URL", "ROSETTA_NETWORK", "ROSETTA_SYNC_TOLERANCE",
                 "ROSETTA_REQUEST_TIMEOUT", "ROSETTA_NODE_TIMEOUT", "ROSETTA_METRICS_ENABLED"):
        monkeypatch.delenv(name, raising=False)
    cfg = rosetta_config.load()
    assert cfg.port == 8080
    assert cfg.node.url == "http://127.0.0.1:1234/rpc/v0"
    assert cfg.network is None
    assert cfg.sync_tolerance == 0
    assert cfg.request_timeout == 10.0
    assert cfg.metrics_enabled is True


def test_load_from_env(monkeypatch):
    monkeypatch.setenv("ROSETTA_PORT", "9090")
    monkeypatch.setenv("ROSETTA_LOTUS_URL", "http://lotus:1234/rpc/v0")
    monkeypatch.setenv("ROSETTA_NETWORK", "calibrationnet")
    monkeypatch.setenv("ROSETTA_SYNC_TOLERANCE", "3")
    monkeypatch.setenv("ROSETTA_REQUEST_TIMEOUT", "0")
    monkeypatch.setenv("ROSETTA_METRICS_ENABLED", "false")
    monkeypatch.setenv("ROSETTA_LOG_LEVEL", "debug")
    cfg = rosetta_config.load()
    assert cfg.port == 9090
    assert cfg.node.url == "http://lotus:1234/rpc/v0"
    assert cfg.network == "calibrationnet"
    assert cfg.sync_tolerance == 3
    assert cfg.request_timeout is None  # 0 disables the deadline
    assert cfg.metrics_enabled is False
    assert cfg.log_level == "DEBUG"


def _tipset_json(height):
    ts = make_tipset(height)
    return {
        "Cids": [{"/": c} for c in ts.key],
        "Blocks": [{"Timestamp": ts.min_timestamp}],
        "Height": height,
    }


def _lotus_factory(results):
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        if results is None:
            return httpx.Response(500)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": results[body["method"]]})

    def factory(url, **kw):
        return LotusNode(url, transport=httpx.MockTransport(handler))

    return factory


def test_status_command_prints_network_status(monkeypatch):
    results = {
        "Filecoin.SyncState": {"ActiveSyncs": [{"Stage": 2, "Height": 10, "Target": _tipset_json(50)}]},
        "Filecoin.ChainHead": _tipset_json(10),
        "Filecoin.ChainGetGenesis": _tipset_json(0),
        "Filecoin.NetPeers": [],
    }
    monkeypatch.setattr(cli, "LotusNode", _lotus_factory(results))

    result = CliRunner().invoke(cli.app, ["status", "--lotus-url", "http://lotus.test/rpc/v0"])
    assert result.exit_code == 0, result.output
    out = json.loads(result.output)
    assert out["sync_status"]["synced"] is False
    assert out["sync_status"]["stage"] == "persist_headers"
    assert out["current_block_identifier"]["index"] == 0
    assert out["peers"] == []


def test_status_command_reports_rosetta_error(monkeypatch):
    monkeypatch.setattr(cli, "LotusNode", _lotus_factory(None))

    result = CliRunner().invoke(cli.app, ["status", "--lotus-url", "http://lotus.test/rpc/v0"])
    assert result.exit_code == 1
    assert f'"code": {int(ErrorKind.SYNC_QUERY_FAILURE)}' in result.output


def test_negative_sync_tolerance_is_rejected(monkeypatch):
    monkeypatch.setenv("ROSETTA_SYNC_TOLERANCE", "-2")
    with pytest.raises(ValueError):
        rosetta_config.load()
