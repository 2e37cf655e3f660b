from __future__ import annotations

"""
rosetta.cli
-----------

Command line entry points.

Examples
--------
# Run the HTTP server (settings from ROSETTA_* env, flags override)
rosetta-filecoin serve --port 8080 --lotus-url http://127.0.0.1:1234/rpc/v0

# One-shot network status from a node, as Rosetta JSON
rosetta-filecoin status --lotus-url http://127.0.0.1:1234/rpc/v0
"""

import asyncio
import dataclasses
import json
from typing import Optional

import typer

from rosetta import config as rosetta_config
from rosetta.errors import RosettaError
from rosetta.node.lotus import LotusNode
from rosetta.options import default_registry
from rosetta.services import NetworkAPIService

app = typer.Typer(
    name="rosetta-filecoin",
    add_completion=False,
    no_args_is_help=True,
    help="Rosetta network API for Filecoin full nodes.",
)


def _config(
    host: Optional[str] = None,
    port: Optional[int] = None,
    lotus_url: Optional[str] = None,
) -> rosetta_config.RosettaConfig:
    cfg = rosetta_config.load()
    if lotus_url:
        cfg = dataclasses.replace(cfg, node=dataclasses.replace(cfg.node, url=lotus_url))
    if host:
        cfg = dataclasses.replace(cfg, host=host)
    if port is not None:
        cfg = dataclasses.replace(cfg, port=port)
    return cfg


@app.command("serve")
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (default: ROSETTA_HOST)."),
    port: Optional[int] = typer.Option(None, "--port", help="Bind port (default: ROSETTA_PORT)."),
    lotus_url: Optional[str] = typer.Option(None, "--lotus-url", help="Lotus JSON-RPC endpoint."),
) -> None:
    """Run the Rosetta HTTP server."""
    from rosetta import server

    server.main(_config(host, port, lotus_url))


async def _status(cfg: rosetta_config.RosettaConfig) -> dict:
    async with LotusNode(cfg.node.url, token=cfg.node.token, timeout=cfg.node.timeout) as node:
        service = NetworkAPIService(
            node,
            default_registry(),
            sync_tolerance=cfg.sync_tolerance,
            node_timeout=cfg.node.timeout,
        )
        resp = await service.network_status()
        return resp.model_dump(mode="json", exclude_none=True)


@app.command("status")
def status(
    lotus_url: Optional[str] = typer.Option(None, "--lotus-url", help="Lotus JSON-RPC endpoint."),
) -> None:
    """Print /network/status for the node as JSON."""
    try:
        out = asyncio.run(_status(_config(lotus_url=lotus_url)))
    except RosettaError as e:
        typer.echo(json.dumps(e.to_dict()), err=True)
        raise typer.Exit(code=1)
    typer.echo(json.dumps(out, indent=2))


if __name__ == "__main__":
    app()
