"""
zkprover.cli.setup
------------------

Create trusted-setup parameter files.

Without ``-n`` both system degrees (DEGREE and AGG_DEGREE) are generated.
Generation is pure Python and costs about 2**degree curve multiplications:
seconds for small test degrees, days for AGG_DEGREE. Degrees above
SLOW_DEGREE are refused unless ``--force`` is given.
Generated parameters derive from a local seed: fine for development, never
accepted as official by the prover.

Examples
--------
zkprover-setup --params-dir ./kzg_params --force
zkprover-setup -n 4 --seed 00112233445566778899aabbccddeeff
"""
from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from ..circuit import MAX_DEGREE, system_degrees
from ..log import configure_logging
from ..params import create_params

# Largest degree generated without --force.
SLOW_DEGREE = 20

app = typer.Typer(
    name="zkprover-setup",
    add_completion=False,
    help="Generate development kzg parameter files (slow for large degrees).",
)


@app.command()
def setup(
    params_dir: Path = typer.Option(
        Path("./kzg_params"), "--params-dir", "-p", help="Directory to store the params in."
    ),
    n: int = typer.Option(
        0, "-n", help="Domain size (degree). 0 generates DEGREE and AGG_DEGREE.", min=0
    ),
    seed: Optional[str] = typer.Option(None, "--seed", help="Hex seed (random when omitted)."),
    force: bool = typer.Option(
        False, "--force", help=f"Allow degrees above {SLOW_DEGREE} (can run for days)."
    ),
) -> None:
    configure_logging()
    if n > MAX_DEGREE:
        typer.echo(f"too big domain size, you should enter `n` less than {MAX_DEGREE}", err=True)
        raise typer.Exit(code=2)

    seed_bytes = None
    if seed is not None:
        try:
            seed_bytes = bytes.fromhex(seed.removeprefix("0x"))
        except ValueError:
            typer.echo(f"seed is not hex: {seed!r}", err=True)
            raise typer.Exit(code=2)

    degrees = system_degrees() if n == 0 else (n,)
    slow = [d for d in degrees if d > SLOW_DEGREE]
    if slow and not force:
        typer.echo(
            f"degree {max(slow)} takes about 2**{max(slow)} curve multiplications, "
            "pass --force to generate it anyway",
            err=True,
        )
        raise typer.Exit(code=2)
    for degree in degrees:
        params = create_params(params_dir, degree, seed_bytes)
        typer.echo(f"params{degree}: {params.path}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
