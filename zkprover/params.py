"""
zkprover.params
===============

Trusted-setup (KZG) parameter store for BN254.

One file per polynomial degree, named ``params{degree}`` inside the parameter
directory. Layout (every integer little-endian, field elements 32 bytes):

    u32      degree header
    G1       g       = canonical generator        (x ‖ y)
    G1       s·g     = first power of the secret   (x ‖ y)
    u32      count   of further G1 powers
    G1[count]        s^2·g, s^3·g, …
    G2       s·h     (x.c0 ‖ x.c1 ‖ y.c0 ‖ y.c1)

Authenticity is decided on the header alone: ``g`` must be the BN254
generator and ``s·g`` must equal the point published by the public
powers-of-tau ceremony. A file generated locally with a known secret fails
the second check and must never be used for real proofs. A degree-header
mismatch is only logged unless ``strict`` is set.

Group arithmetic (setup generation, generator constants) uses ``py_ecc``.
"""

from __future__ import annotations

import hashlib
import logging
import os
import secrets
import struct
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Iterable, List, Optional, Tuple, Union

from py_ecc.optimized_bn128 import G1 as _G1
from py_ecc.optimized_bn128 import G2 as _G2
from py_ecc.optimized_bn128 import curve_order as _Q
from py_ecc.optimized_bn128 import multiply as _mul
from py_ecc.optimized_bn128 import normalize as _normalize

from .circuit import AGG_DEGREE, DEGREE, MAX_DEGREE
from .errors import ConfigError, ParamsCorrupt, ParamsNotFound, ParamsNotOfficial
from .log import log_info, log_warning

log = logging.getLogger("zkprover.params")

PathLike = Union[str, Path]
G1Affine = Tuple[int, int]
G2Affine = Tuple[Tuple[int, int], Tuple[int, int]]

FIELD_BYTES = 32
G1_BYTES = 2 * FIELD_BYTES
G2_BYTES = 4 * FIELD_BYTES
HEADER_BYTES = 4 + 2 * G1_BYTES

# s·g from the public perpetual powers-of-tau ceremony.
OFFICIAL_SG1: G1Affine = (
    0x269350B5ECD44C007F8FCAE1ABF6D2E4BB3D11E31115DAFBAC15E801F2B91E69,
    0x094818A234BE895AE686071693E4FA85BFBB0D65B2EBE926E2D29AD22F98B08C,
)

# Deterministic prover RNG seed used by the batch tool.
FIXED_SEED = bytes(
    [0x59, 0x62, 0xBE, 0x5D, 0x76, 0x3D, 0x31, 0x8D, 0x17, 0xDB, 0x37, 0x32, 0x54, 0x06, 0xBC, 0xE5]
)
SEED_LEN = len(FIXED_SEED)


# ---- point helpers ----------------------------------------------------------


def _coeff(c) -> int:
    return int(c.n) if hasattr(c, "n") else int(c)


def _g1_affine(P) -> G1Affine:
    x, y = _normalize(P)
    return _coeff(x), _coeff(y)


def _g2_affine(Q) -> G2Affine:
    x, y = _normalize(Q)
    xc = tuple(_coeff(c) for c in x.coeffs)
    yc = tuple(_coeff(c) for c in y.coeffs)
    return (xc[0], xc[1]), (yc[0], yc[1])


def g1_generator() -> G1Affine:
    """Canonical BN254 G1 generator in affine coordinates, i.e. (1, 2)."""
    return _g1_affine(_G1)


def _fe(v: int) -> bytes:
    return int(v).to_bytes(FIELD_BYTES, "little")


def encode_g1(P: G1Affine) -> bytes:
    return _fe(P[0]) + _fe(P[1])


def decode_g1(b: bytes) -> G1Affine:
    if len(b) != G1_BYTES:
        raise ValueError(f"G1 point must be {G1_BYTES} bytes, got {len(b)}")
    return int.from_bytes(b[:FIELD_BYTES], "little"), int.from_bytes(b[FIELD_BYTES:], "little")


def encode_g2(Q: G2Affine) -> bytes:
    (x0, x1), (y0, y1) = Q
    return _fe(x0) + _fe(x1) + _fe(y0) + _fe(y1)


def decode_g2(b: bytes) -> G2Affine:
    if len(b) != G2_BYTES:
        raise ValueError(f"G2 point must be {G2_BYTES} bytes, got {len(b)}")
    f = [int.from_bytes(b[i : i + FIELD_BYTES], "little") for i in range(0, G2_BYTES, FIELD_BYTES)]
    return (f[0], f[1]), (f[2], f[3])


def encode_header(degree: int, g1: G1Affine, s_g1: G1Affine) -> bytes:
    return struct.pack("<I", degree) + encode_g1(g1) + encode_g1(s_g1)


# ---- parameters -------------------------------------------------------------


@dataclass(frozen=True)
class Parameters:
    """
    Read-only view of one parameter file. Safe to share between threads.

    ``digest`` is the SHA3-256 of the whole file; backends use it to bind a
    proof to the exact setup material it was computed with.
    """

    degree: int
    path: Path
    header_degree: int
    g1: G1Affine
    s_g1: G1Affine
    s_g2: G2Affine
    n_powers: int
    digest: bytes

    @property
    def is_official(self) -> bool:
        return self.g1 == g1_generator() and self.s_g1 == OFFICIAL_SG1


def params_path(params_dir: PathLike, degree: int) -> Path:
    return Path(params_dir).expanduser() / f"params{degree}"


def _read_header(fh: BinaryIO, path: Path) -> Tuple[int, G1Affine, G1Affine]:
    head = fh.read(HEADER_BYTES)
    if len(head) != HEADER_BYTES:
        raise ParamsCorrupt(str(path), f"header truncated ({len(head)} < {HEADER_BYTES} bytes)")
    (k,) = struct.unpack("<I", head[:4])
    g1 = decode_g1(head[4 : 4 + G1_BYTES])
    s_g1 = decode_g1(head[4 + G1_BYTES :])
    return k, g1, s_g1


def load_params(params_dir: PathLike, degree: int) -> Parameters:
    """
    Load ``params{degree}`` read-only.

    Raises ParamsNotFound when the file is missing and ParamsCorrupt when its
    structure does not match the layout above. Never retried.
    """
    path = params_path(params_dir, degree)
    if not path.is_file():
        raise ParamsNotFound(degree, str(path.parent))

    size = path.stat().st_size
    h = hashlib.sha3_256()
    with path.open("rb") as fh:
        k, g1, s_g1 = _read_header(fh, path)
        rest = fh.read(4)
        if len(rest) != 4:
            raise ParamsCorrupt(str(path), "missing power count")
        (count,) = struct.unpack("<I", rest)
        expected = HEADER_BYTES + 4 + count * G1_BYTES + G2_BYTES
        if size != expected:
            raise ParamsCorrupt(str(path), f"size {size} != expected {expected}")
        fh.seek(size - G2_BYTES)
        s_g2 = decode_g2(fh.read(G2_BYTES))
        fh.seek(0)
        for chunk in iter(lambda: fh.read(1 << 20), b""):
            h.update(chunk)

    if k != degree:
        log_warning(f"params{degree}: header degree is {k}", log)

    return Parameters(
        degree=degree,
        path=path,
        header_degree=k,
        g1=g1,
        s_g1=s_g1,
        s_g2=s_g2,
        n_powers=2 + count,
        digest=h.digest(),
    )


def _secret_from_seed(seed: bytes, degree: int) -> int:
    digest = hashlib.sha3_256(b"zkprover/setup" + bytes(seed) + struct.pack("<I", degree)).digest()
    s = int.from_bytes(digest, "big") % int(_Q)
    return s or 1


def create_params(params_dir: PathLike, degree: int, seed: Optional[bytes] = None) -> Parameters:
    """
    Generate ``params{degree}`` from a seeded secret and write it atomically.

    Expensive: computes 2**degree G1 powers in pure Python. The secret is
    derivable from ``seed``, so locally generated parameters are for
    development only; they never pass the official-parameters check.
    """
    if degree < 1 or degree > MAX_DEGREE:
        raise ConfigError(f"degree must be within 1..{MAX_DEGREE}, got {degree}")
    if seed is None:
        seed = secrets.token_bytes(SEED_LEN)

    s = _secret_from_seed(seed, degree)
    n = 1 << degree
    out_dir = Path(params_dir).expanduser()
    out_dir.mkdir(parents=True, exist_ok=True)
    path = params_path(out_dir, degree)

    log_info(f"creating kzg params for degree {degree} ({n} points) at {path}", log)
    fd, tmp = tempfile.mkstemp(prefix=f".params{degree}.", dir=str(out_dir))
    try:
        with os.fdopen(fd, "wb") as fh:
            p = _mul(_G1, s)
            fh.write(encode_header(degree, g1_generator(), _g1_affine(p)))
            count = max(n - 2, 0)
            fh.write(struct.pack("<I", count))
            for _ in range(count):
                p = _mul(p, s)
                fh.write(encode_g1(_g1_affine(p)))
            fh.write(encode_g2(_g2_affine(_mul(_G2, s))))
        os.replace(tmp, path)
    except BaseException:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise
    return load_params(out_dir, degree)


def verify_authentic(params_dir: PathLike, degree: int, *, strict: bool = False) -> bool:
    """
    True when ``params{degree}`` carries the canonical generator and the
    ceremony's s·g. Reads the header only.
    """
    path = params_path(params_dir, degree)
    if not path.is_file():
        raise ParamsNotFound(degree, str(path.parent))
    with path.open("rb") as fh:
        k, g1, s_g1 = _read_header(fh, path)

    if k != degree:
        log_info(f"not match k, expected({degree}) but {k}", log)
        if strict:
            return False
    if g1 != g1_generator():
        return False
    return s_g1 == OFFICIAL_SG1


def ensure_exists(params_dir: PathLike, degrees: Iterable[int] = (AGG_DEGREE, DEGREE)) -> None:
    """Cheap pre-flight gate; raises ParamsNotFound for the first missing degree."""
    for degree in degrees:
        if not params_path(params_dir, degree).is_file():
            raise ParamsNotFound(degree, str(params_dir))


def ensure_official(
    params_dir: PathLike, degrees: Iterable[int] = (DEGREE, AGG_DEGREE), *, strict: bool = False
) -> None:
    """Raise ParamsNotOfficial for the first degree whose file is not authentic."""
    for degree in degrees:
        if not verify_authentic(params_dir, degree, strict=strict):
            raise ParamsNotOfficial(degree)


def check_official(
    params_dir: PathLike,
    degrees: Iterable[int] = (DEGREE, AGG_DEGREE),
    *,
    strict: bool = False,
    allow_unofficial: bool = False,
) -> List[str]:
    """
    Gate used before parameters are handed to a prover.

    Raises ParamsNotOfficial for the first non-authentic degree unless
    ``allow_unofficial`` is set, in which case a warning is logged and
    returned instead.
    """
    warnings: List[str] = []
    for degree in degrees:
        if verify_authentic(params_dir, degree, strict=strict):
            continue
        if not allow_unofficial:
            raise ParamsNotOfficial(degree)
        msg = f"using unofficial kzg params for degree {degree}"
        log_warning(msg, log)
        warnings.append(msg)
    return warnings


def load_or_create_seed(path: PathLike) -> bytes:
    """Read the prover RNG seed, creating a random one on first use."""
    p = Path(path).expanduser()
    if p.exists():
        seed = p.read_bytes()
        if len(seed) != SEED_LEN:
            raise ConfigError(f"seed file {p} must hold {SEED_LEN} bytes, got {len(seed)}")
        return seed
    seed = secrets.token_bytes(SEED_LEN)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_bytes(seed)
    log_info(f"created new rng seed at {p}", log)
    return seed


__all__ = [
    "Parameters",
    "OFFICIAL_SG1",
    "FIXED_SEED",
    "g1_generator",
    "encode_g1",
    "decode_g1",
    "encode_g2",
    "decode_g2",
    "encode_header",
    "params_path",
    "load_params",
    "create_params",
    "verify_authentic",
    "ensure_exists",
    "ensure_official",
    "check_official",
    "load_or_create_seed",
]
