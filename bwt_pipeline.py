#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
bwt_pipeline.py -- Staged, reversible BWT → MTF → RLE text pipeline.

This module is a self‑contained reference implementation of the classic
block‑sorting chain applied to text.  A call to ``compress`` runs the
input through three reversible stages and returns an ordered record of
four steps; a call to ``decompress`` walks the record backwards and
recovers the exact original text.  Every stage favours short,
transparent computations over speed: rotations are materialised and
sorted, move‑to‑front uses a plain list, and run‑length coding is a
single left‑to‑right scan.

### Pipeline record

The record is always a list of exactly four ``CompressionStep`` values
in this order:

* **Original** – identity step, output is the input text.
* **BWT** – Burrows–Wheeler transform.  A sentinel (``SENTINEL``,
  ``"\\x00"`` by default) is appended, all cyclic rotations are sorted
  by code point and the last column is read off.  The sentinel is
  removed from the last column *at the primary index* and the primary
  index is recorded so that the inverse can put it back.
* **MTF** – move‑to‑front coding of the BWT output over its own sorted
  alphabet.  The output is a comma separated list of decimal indices
  and the initial alphabet is captured in the metadata.
* **RLE** – run‑length coding of the MTF string.  Runs of two or more
  are written as ``<count><symbol>``.  Because the MTF string is made
  of digits, literal digits are escaped (``\\<digit>``) so that a
  symbol can never be read back as part of a count.

Each step carries a typed metadata record (``BwtMetadata``,
``MtfMetadata``, ``RleMetadata``) holding exactly what its inverse
needs.  ``decompress`` refuses records of the wrong shape instead of
returning a partially inverted string.

The naïve rotation table costs O(n² log n) time and O(n²) memory, which
is fine for short and medium strings.  A prefix‑doubling sort is
provided as an alternative ordering routine; both produce the same
order.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

logger = logging.getLogger(__name__)

###############################################################################
# Constants and errors
###############################################################################

SENTINEL = "\x00"
RLE_ESCAPE = "\\"
STEP_NAMES: Tuple[str, ...] = ("Original", "BWT", "MTF", "RLE")

SORT_METHODS = ("naive", "doubling")
INVERSE_METHODS = ("lf", "table")

_DIGITS = frozenset("0123456789")


class PipelineError(ValueError):
    """Base class for pipeline level failures."""


class MalformedPipelineError(PipelineError):
    """The step record cannot be inverted (wrong shape or metadata)."""


class SentinelCollisionError(PipelineError):
    """The input text contains the reserved sentinel character."""


###############################################################################
# Data model
###############################################################################

@dataclass(frozen=True)
class BwtMetadata:
    primary_index: int
    original_length: int
    rotations: int
    sentinel: str = SENTINEL


@dataclass(frozen=True)
class MtfMetadata:
    alphabet: Tuple[str, ...]
    average_index: float = 0.0


@dataclass(frozen=True)
class RleMetadata:
    original_length: int
    encoded_length: int
    compression_ratio: float
    escape: Optional[str] = RLE_ESCAPE


StepMetadata = Union[BwtMetadata, MtfMetadata, RleMetadata]


@dataclass(frozen=True)
class TransformResult:
    """Output of a single forward transform.

    ``primary_index`` only means something for the BWT; the other
    stages leave it at zero.
    """
    transformed: str
    primary_index: int = 0
    metadata: Optional[StepMetadata] = None


@dataclass(frozen=True)
class CompressionStep:
    """One stage of the pipeline record.  Pure data, no behaviour."""
    name: str
    input: str
    output: str
    ratio: float = 1.0
    metadata: Optional[StepMetadata] = None

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        if isinstance(self.metadata, MtfMetadata):
            d["metadata"]["alphabet"] = list(self.metadata.alphabet)
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CompressionStep":
        try:
            name = d["name"]
            meta = _metadata_from_dict(name, d.get("metadata"))
            return cls(name=name, input=d["input"], output=d["output"],
                       ratio=float(d.get("ratio", 1.0)), metadata=meta)
        except MalformedPipelineError:
            raise
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise MalformedPipelineError(f"Bad step record: {exc!r}") from exc


def _is_symbol(value: Any) -> bool:
    return isinstance(value, str) and len(value) == 1


def _metadata_from_dict(name: str, raw: Optional[Dict[str, Any]]) -> Optional[StepMetadata]:
    if raw is None:
        return None
    if name == "BWT":
        sentinel = raw.get("sentinel", SENTINEL)
        if not _is_symbol(sentinel):
            raise MalformedPipelineError(f"BWT sentinel must be one character, got {sentinel!r}")
        return BwtMetadata(
            primary_index=int(raw["primary_index"]),
            original_length=int(raw["original_length"]),
            rotations=int(raw["rotations"]),
            sentinel=sentinel,
        )
    if name == "MTF":
        alphabet = raw["alphabet"]
        if not isinstance(alphabet, list) or not all(_is_symbol(ch) for ch in alphabet):
            raise MalformedPipelineError(f"MTF alphabet must be a list of characters, got {alphabet!r}")
        return MtfMetadata(alphabet=tuple(alphabet),
                           average_index=float(raw.get("average_index", 0.0)))
    if name == "RLE":
        escape = raw.get("escape", RLE_ESCAPE)
        if escape is not None and (not _is_symbol(escape) or escape in _DIGITS):
            raise MalformedPipelineError(
                f"RLE escape must be null or one non-digit character, got {escape!r}")
        return RleMetadata(
            original_length=int(raw["original_length"]),
            encoded_length=int(raw["encoded_length"]),
            compression_ratio=float(raw["compression_ratio"]),
            escape=escape,
        )
    return None


def _ratio(inp: str, out: str) -> float:
    # an empty output would divide by zero; treat it as "no change"
    return len(inp) / len(out) if out else 1.0


###############################################################################
# Rotation sorting
###############################################################################

def rotations(s: str) -> List[str]:
    """Return every cyclic rotation of ``s``, rotation ``k`` at index ``k``."""
    return [s[i:] + s[:i] for i in range(len(s))]


def _sort_rotations_naive(s: str) -> List[int]:
    n = len(s)
    return sorted(range(n), key=lambda i: s[i:] + s[:i])


def _sort_rotations_doubling(s: str) -> List[int]:
    """Order cyclic rotations by prefix doubling over rank pairs.

    Round ``k`` sorts offsets by ``(rank[i], rank[(i + k) % n])`` so that
    ranks describe prefixes of length ``2k``.  The loop stops once all
    ranks are distinct or the prefixes cover a whole rotation.  Python's
    sort is stable and the offsets start in ascending order, so equal
    rotations keep ascending offset order, the same as the naïve sort.
    """
    n = len(s)
    if n == 0:
        return []
    rank = [ord(c) for c in s]
    idx = list(range(n))
    k = 1
    while True:
        key = lambda i, r=rank, k=k: (r[i], r[(i + k) % n])
        idx.sort(key=key)
        tmp = [0] * n
        for j in range(1, n):
            a, b = idx[j - 1], idx[j]
            tmp[b] = tmp[a] + (key(a) < key(b))
        rank = tmp
        if rank[idx[-1]] == n - 1 or 2 * k >= n:
            break
        k <<= 1
    return idx


def sort_rotations(s: str, method: str = "naive") -> List[int]:
    """Return rotation offsets of ``s`` in lexicographic (code point) order."""
    if method == "naive":
        return _sort_rotations_naive(s)
    if method == "doubling":
        return _sort_rotations_doubling(s)
    raise ValueError(f"Unknown rotation sort method: {method!r}")


###############################################################################
# Burrows–Wheeler transform
###############################################################################

def _check_sentinel(sentinel: str) -> None:
    if len(sentinel) != 1:
        raise ValueError(f"Sentinel must be a single character, got {sentinel!r}")


def burrows_wheeler_transform(text: str, sentinel: str = SENTINEL,
                              method: str = "naive") -> TransformResult:
    """Forward BWT of ``text``.

    The sentinel is appended, the rotations of the resulting string are
    sorted and the last column ``L`` is read off.  ``primary_index`` is
    the sorted position of the unrotated string, which is also where the
    sentinel lands in ``L``.  The returned ``transformed`` string is
    ``L`` with that one character removed.  Raises
    ``SentinelCollisionError`` if ``text`` already contains the sentinel.
    """
    _check_sentinel(sentinel)
    if sentinel in text:
        raise SentinelCollisionError(
            f"Input text contains the reserved sentinel {sentinel!r}")
    s = text + sentinel
    n = len(s)
    order = sort_rotations(s, method)
    # s[-1] is the sentinel, so rotation 0 contributes it
    last = "".join(s[i - 1] for i in order)
    primary = order.index(0)
    transformed = last[:primary] + last[primary + 1:]
    meta = BwtMetadata(primary_index=primary, original_length=len(text),
                       rotations=n, sentinel=sentinel)
    return TransformResult(transformed, primary, meta)


def _invert_by_table(last: str, primary_index: int) -> str:
    n = len(last)
    rows = [""] * n
    for _ in range(n):
        rows = sorted(last[r] + rows[r] for r in range(n))
    return rows[primary_index][:-1]


def _invert_by_lf(last: str, primary_index: int) -> str:
    n = len(last)
    # stable sort by (symbol, position) gives the LF permutation
    order = sorted(range(n), key=lambda i: (last[i], i))
    out: List[str] = []
    cur = primary_index
    for _ in range(n - 1):
        cur = order[cur]
        out.append(last[cur])
    return "".join(out)


def inverse_burrows_wheeler_transform(transformed: str, primary_index: int,
                                      sentinel: str = SENTINEL,
                                      method: str = "lf") -> str:
    """Inverse of ``burrows_wheeler_transform``.

    The sentinel is put back at ``primary_index`` to rebuild the full
    last column.  ``method="table"`` rebuilds the sorted rotation table
    column by column; ``method="lf"`` follows the last‑to‑first mapping
    in linear steps.  Both give the same result.
    """
    _check_sentinel(sentinel)
    if not 0 <= primary_index <= len(transformed):
        raise ValueError(
            f"Primary index {primary_index} out of range for length {len(transformed)}")
    if sentinel in transformed:
        raise ValueError("BWT payload already contains the sentinel")
    last = transformed[:primary_index] + sentinel + transformed[primary_index:]
    if method == "lf":
        return _invert_by_lf(last, primary_index)
    if method == "table":
        return _invert_by_table(last, primary_index)
    raise ValueError(f"Unknown BWT inverse method: {method!r}")


###############################################################################
# Move‑to‑front coding
###############################################################################

def mtf_encode(text: str, alphabet: Sequence[str]) -> List[int]:
    """Encode ``text`` into move‑to‑front positions over ``alphabet``.

    For each symbol the index of that symbol in the working list is
    emitted and the symbol is moved to the front.
    """
    table = list(alphabet)
    out: List[int] = []
    for ch in text:
        i = table.index(ch)
        out.append(i)
        table.pop(i)
        table.insert(0, ch)
    return out


def mtf_decode(indices: Sequence[int], alphabet: Sequence[str]) -> str:
    """Inverse of ``mtf_encode``; must start from the same alphabet."""
    table = list(alphabet)
    out: List[str] = []
    for pos in indices:
        if not 0 <= pos < len(table):
            raise ValueError(f"MTF index {pos} out of range for alphabet of {len(table)}")
        ch = table[pos]
        out.append(ch)
        table.pop(pos)
        table.insert(0, ch)
    return "".join(out)


def move_to_front_transform(text: str) -> TransformResult:
    """MTF stage: indices over the sorted alphabet of ``text``, comma joined."""
    alphabet = tuple(sorted(set(text)))
    indices = mtf_encode(text, alphabet)
    average = sum(indices) / len(indices) if indices else 0.0
    meta = MtfMetadata(alphabet=alphabet, average_index=average)
    return TransformResult(",".join(str(i) for i in indices), 0, meta)


def inverse_move_to_front_transform(encoded: str, alphabet: Sequence[str]) -> str:
    if not encoded:
        return ""
    try:
        indices = [int(tok) for tok in encoded.split(",")]
    except ValueError:
        raise ValueError(f"Malformed MTF index string: {encoded!r}") from None
    return mtf_decode(indices, alphabet)


###############################################################################
# Run‑length coding
###############################################################################

def _rle_token(ch: str, escape: Optional[str]) -> str:
    if escape is not None and (ch in _DIGITS or ch == escape):
        return escape + ch
    return ch


def run_length_encode(text: str, escape: Optional[str] = RLE_ESCAPE) -> TransformResult:
    """Encode maximal runs as ``symbol`` (length 1) or ``<count>symbol``.

    With ``escape`` set, digit symbols and the escape itself are written
    as ``escape + symbol`` so counts stay unambiguous.  ``escape=None``
    gives the unescaped coding, which cannot carry digits.
    """
    if escape is not None and (len(escape) != 1 or escape in _DIGITS):
        raise ValueError(f"RLE escape must be a single non-digit character, got {escape!r}")
    if escape is None and any(ch in _DIGITS for ch in text):
        logger.warning("Unescaped RLE over digit symbols; output may not decode")
    parts: List[str] = []
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        j = i + 1
        while j < n and text[j] == ch:
            j += 1
        run = j - i
        token = _rle_token(ch, escape)
        parts.append(token if run == 1 else f"{run}{token}")
        i = j
    encoded = "".join(parts)
    meta = RleMetadata(original_length=n, encoded_length=len(encoded),
                       compression_ratio=_ratio(text, encoded), escape=escape)
    return TransformResult(encoded, 0, meta)


def run_length_decode(encoded: str, escape: Optional[str] = RLE_ESCAPE) -> str:
    """Inverse of ``run_length_encode``.

    A digit sequence followed by another character is a count for that
    character (or for the escaped character after it).  With escaping
    on, a trailing count or a dangling escape raises ``ValueError``;
    without it, trailing digits are copied literally.
    """
    out: List[str] = []
    i = 0
    n = len(encoded)
    while i < n:
        ch = encoded[i]
        if ch in _DIGITS:
            j = i
            while j < n and encoded[j] in _DIGITS:
                j += 1
            if j >= n:
                if escape is not None:
                    raise ValueError(f"Dangling run count at offset {i}")
                out.append(encoded[i:])
                break
            count = int(encoded[i:j])
            if escape is not None and encoded[j] == escape:
                if j + 1 >= n:
                    raise ValueError(f"Dangling escape at offset {j}")
                out.append(encoded[j + 1] * count)
                i = j + 2
            else:
                out.append(encoded[j] * count)
                i = j + 1
        elif escape is not None and ch == escape:
            if i + 1 >= n:
                raise ValueError(f"Dangling escape at offset {i}")
            out.append(encoded[i + 1])
            i += 2
        else:
            out.append(ch)
            i += 1
    return "".join(out)


###############################################################################
# Pipeline
###############################################################################

def compress(text: str, sentinel: str = SENTINEL,
             escape: Optional[str] = RLE_ESCAPE,
             sort_method: str = "naive") -> List[CompressionStep]:
    """Run ``text`` through BWT → MTF → RLE.

    Returns the four step record (Original, BWT, MTF, RLE).  Each step's
    input is the previous step's output.  Raises
    ``SentinelCollisionError`` before doing any work if ``text`` contains
    the sentinel.
    """
    bwt = burrows_wheeler_transform(text, sentinel=sentinel, method=sort_method)
    logger.debug("BWT: %d chars, primary index %d", len(text), bwt.primary_index)
    mtf = move_to_front_transform(bwt.transformed)
    logger.debug("MTF: alphabet of %d symbols", len(mtf.metadata.alphabet))
    rle = run_length_encode(mtf.transformed, escape=escape)
    logger.debug("RLE: %d -> %d chars", len(mtf.transformed), len(rle.transformed))
    return [
        CompressionStep("Original", text, text, 1.0),
        CompressionStep("BWT", text, bwt.transformed,
                        _ratio(text, bwt.transformed), bwt.metadata),
        CompressionStep("MTF", bwt.transformed, mtf.transformed,
                        _ratio(bwt.transformed, mtf.transformed), mtf.metadata),
        CompressionStep("RLE", mtf.transformed, rle.transformed,
                        _ratio(mtf.transformed, rle.transformed), rle.metadata),
    ]


def _validate_record(steps: Sequence[CompressionStep]) -> None:
    if len(steps) != len(STEP_NAMES):
        raise MalformedPipelineError(
            f"Expected {len(STEP_NAMES)} steps, got {len(steps)}")
    names = tuple(step.name for step in steps)
    if names != STEP_NAMES:
        raise MalformedPipelineError(f"Unexpected step order: {names}")
    if not isinstance(steps[1].metadata, BwtMetadata):
        raise MalformedPipelineError("BWT step is missing its primary index")
    if not isinstance(steps[2].metadata, MtfMetadata):
        raise MalformedPipelineError("MTF step is missing its alphabet")
    if not isinstance(steps[3].metadata, RleMetadata):
        raise MalformedPipelineError("RLE step is missing its metadata")


def decompress(steps: Sequence[CompressionStep], inverse_method: str = "lf") -> str:
    """Invert a record produced by ``compress``.

    Reads the RLE output, undoes RLE, then MTF with the recorded
    alphabet, then BWT with the recorded primary index and sentinel.
    Raises ``MalformedPipelineError`` if the record has the wrong shape
    or lacks the metadata an inverse needs.
    """
    _validate_record(steps)
    bwt_meta: BwtMetadata = steps[1].metadata  # type: ignore[assignment]
    mtf_meta: MtfMetadata = steps[2].metadata  # type: ignore[assignment]
    rle_meta: RleMetadata = steps[3].metadata  # type: ignore[assignment]
    current = run_length_decode(steps[3].output, escape=rle_meta.escape)
    current = inverse_move_to_front_transform(current, mtf_meta.alphabet)
    current = inverse_burrows_wheeler_transform(
        current, bwt_meta.primary_index, sentinel=bwt_meta.sentinel,
        method=inverse_method)
    logger.debug("Recovered %d chars", len(current))
    return current


###############################################################################
# Record serialisation
###############################################################################

def dumps_steps(steps: Sequence[CompressionStep], indent: Optional[int] = 2) -> str:
    return json.dumps([step.to_dict() for step in steps], indent=indent,
                      ensure_ascii=False)


def loads_steps(blob: str) -> List[CompressionStep]:
    try:
        raw = json.loads(blob)
    except json.JSONDecodeError as exc:
        raise MalformedPipelineError(f"Record is not valid JSON: {exc}") from exc
    if not isinstance(raw, list):
        raise MalformedPipelineError("Record must be a JSON list of steps")
    return [CompressionStep.from_dict(d) for d in raw]


###############################################################################
# Step statistics
###############################################################################

@dataclass(frozen=True)
class StageStats:
    name: str
    input_size: int
    output_size: int
    ratio: float


@dataclass(frozen=True)
class PipelineStats:
    original_size: int
    final_size: int
    overall_ratio: float
    compression_percent: float
    stages: List[StageStats] = field(default_factory=list)
    best_stage: Optional[str] = None
    worst_stage: Optional[str] = None


def step_statistics(steps: Sequence[CompressionStep]) -> PipelineStats:
    """Summarise sizes and ratios of a step record.

    ``compression_percent`` is positive when the final output is shorter
    than the original.  Best and worst stages are picked by ratio, the
    first one winning ties.
    """
    if not steps:
        raise MalformedPipelineError("Cannot summarise an empty record")
    original = steps[0].output
    final = steps[-1].output
    stages = [
        StageStats(step.name, len(prev.output), len(step.output),
                   _ratio(prev.output, step.output))
        for prev, step in zip(steps, steps[1:])
    ]
    best = worst = None
    if stages:
        best = max(stages, key=lambda s: s.ratio).name
        worst = min(stages, key=lambda s: s.ratio).name
    percent = (len(original) - len(final)) / len(original) * 100 if original else 0.0
    return PipelineStats(
        original_size=len(original),
        final_size=len(final),
        overall_ratio=_ratio(original, final),
        compression_percent=percent,
        stages=stages,
        best_stage=best,
        worst_stage=worst,
    )


def format_statistics(stats: PipelineStats) -> str:
    lines = [f"{'stage':<6}  {'in':>7}  {'out':>7}  {'ratio':>7}"]
    lines.append('-' * len(lines[0]))
    for st in stats.stages:
        lines.append(f"{st.name:<6}  {st.input_size:7d}  {st.output_size:7d}  {st.ratio:7.3f}")
    lines.append(f"overall {stats.original_size} -> {stats.final_size} chars, "
                 f"ratio {stats.overall_ratio:.3f} ({stats.compression_percent:+.1f}%)")
    return "\n".join(lines)


###############################################################################
# CLI
###############################################################################

def main(argv: Optional[Sequence[str]] = None) -> int:
    import argparse, os, sys
    parser = argparse.ArgumentParser(description="BWT → MTF → RLE text pipeline")
    parser.add_argument('input', help="Text file to compress, or JSON record with -d")
    parser.add_argument('-d', '--decompress', action='store_true', help="Decompress a JSON record")
    parser.add_argument('-o', '--output', help="Output file")
    parser.add_argument('--sentinel', default=SENTINEL, help="BWT sentinel character (default NUL)")
    parser.add_argument('--no-escape', action='store_true',
                        help="Use unescaped RLE (does not round-trip digit symbols)")
    parser.add_argument('--sort', choices=SORT_METHODS, default="naive",
                        help="Rotation sort method (default naive)")
    parser.add_argument('--inverse', choices=INVERSE_METHODS, default="lf",
                        help="BWT inverse method (default lf)")
    parser.add_argument('--stats', action='store_true', help="Print per-stage statistics")
    parser.add_argument('-v', '--verbose', action='store_true', help="Enable debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")
    try:
        with open(args.input, 'r', encoding='utf-8', newline='') as f:
            data = f.read()
        if args.decompress:
            steps = loads_steps(data)
            out = decompress(steps, inverse_method=args.inverse)
            outname = args.output or (os.path.splitext(args.input)[0] + '.out')
            with open(outname, 'w', encoding='utf-8', newline='') as f:
                f.write(out)
            print(f"Decompressed {len(steps[-1].output)} chars to {len(out)} chars → {outname}")
        else:
            steps = compress(data, sentinel=args.sentinel,
                             escape=None if args.no_escape else RLE_ESCAPE,
                             sort_method=args.sort)
            outname = args.output or (args.input + '.bwt.json')
            with open(outname, 'w', encoding='utf-8') as f:
                f.write(dumps_steps(steps))
            final = steps[-1].output
            ratio = len(final) / len(data) if len(data) else 1.0
            print(f"Compressed {len(data)} chars to {len(final)} chars (ratio {ratio:.3f}) → {outname}")
        if args.stats:
            print(format_statistics(step_statistics(steps)))
    except (OSError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
