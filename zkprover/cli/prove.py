"""
zkprover.cli.prove
------------------

Generate proofs for one trace file or a directory of traces.

Examples
--------
CHAIN_ID=909 zkprover-prove --trace-path traces/ --circuit agg
CHAIN_ID=909 python -m zkprover.cli.prove -t block_42.json -c evm --params-dir ./kzg_params
"""
from __future__ import annotations

from pathlib import Path

import typer

from .. import config as prover_config
from ..backend import load_backend
from ..batch import run_batch
from ..circuit import CircuitKind
from ..errors import ProverError, ProvingFailure
from ..log import configure_logging
from ..params import FIXED_SEED

app = typer.Typer(
    name="zkprover-prove",
    add_completion=False,
    no_args_is_help=True,
    help="Generate zkEVM proofs for block traces.",
)


@app.command()
def prove(
    params_dir: Path = typer.Option(
        Path("./kzg_params"), "--params-dir", "-p", help="Directory holding the kzg params."
    ),
    trace_path: Path = typer.Option(
        ..., "--trace-path", "-t", exists=True, help="Block trace (json file or directory)."
    ),
    circuit: CircuitKind = typer.Option(..., "--circuit", "-c", help="Circuit type."),
    verifier: bool = typer.Option(
        True, "--verifier/--no-verifier", help="Write verifier.sol for agg proofs."
    ),
    out_dir: Path = typer.Option(Path("."), "--out-dir", "-o", help="Where per-trace outputs go."),
    allow_unofficial: bool = typer.Option(
        False, "--allow-unofficial", help="Accept locally generated (non-ceremony) params."
    ),
) -> None:
    cfg = prover_config.load()
    configure_logging(cfg.log_level)
    try:
        chain_id = prover_config.check_chain_id(cfg)
        backend = load_backend(cfg.backend, seed=FIXED_SEED)
        result = run_batch(
            params_dir=params_dir,
            trace_path=trace_path,
            circuit=circuit,
            backend=backend,
            chain_id=chain_id,
            out_dir=out_dir,
            emit_verifier=verifier,
            allow_unofficial=allow_unofficial or cfg.allow_unofficial,
            strict_degree=cfg.strict_degree,
        )
    except (ProverError, ProvingFailure) as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)

    for name, path in result.outputs.items():
        typer.echo(f"{name}: {path}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
