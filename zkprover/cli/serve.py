"""
zkprover.cli.serve
------------------

Run the JSON-RPC prover service.

Examples
--------
CHAIN_ID=909 zkprover-server --endpoint 0.0.0.0:3030
CHAIN_ID=909 zkprover-server --mock
"""
from __future__ import annotations

from typing import Optional

import typer

from .. import config as prover_config
from ..errors import ProverError
from ..rpc.server import serve as run_server

app = typer.Typer(
    name="zkprover-server",
    add_completion=False,
    help="Serve `spec` and `prove` over JSON-RPC.",
)


@app.command()
def serve(
    endpoint: Optional[str] = typer.Option(
        None, "--endpoint", "-e", help="HOST:PORT to bind (default from env, 127.0.0.1:3030)."
    ),
    mock: bool = typer.Option(False, "--mock", help="Return zero proofs without proving."),
) -> None:
    cfg = prover_config.load()
    try:
        if endpoint:
            host, port = prover_config.parse_endpoint(endpoint)
            cfg = cfg.replace(host=host, port=port)
    except ProverError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=2)
    if mock:
        cfg = cfg.replace(mock=True)

    report = run_server(cfg)
    if not report.ok:
        for err in report.errors:
            typer.echo(str(err), err=True)
        raise typer.Exit(code=1)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
