from __future__ import annotations

import logging
import math
import time
from itertools import islice
from pathlib import Path
from typing import Callable, Dict, Iterable, Iterator, List, Optional

import numpy as np
from tqdm import tqdm

from .models import LDResult, Locus
from .stats import (
    allele_frequency,
    calc_d,
    calc_d_prime,
    calc_r_squared,
    linked_allele_frequency,
)
from .utils import ensure_outdir, open_textmaybe_gzip, write_json
from .window import DEFAULT_SPAN, LocusPredicate, SlidingWindow

logger = logging.getLogger(__name__)

DEFAULT_R2_CUTOFF = 0.0

RESULT_COLUMNS = [
    "chrom",
    "allele_a",
    "pos_a",
    "allele_b",
    "pos_b",
    "p_a",
    "p_b",
    "p_ab",
    "d",
    "d_prime",
    "r_squared",
]

_R2_BIN_COUNT = 50
_DISTANCE_BIN_COUNT = 50

ResultSink = Callable[[LDResult], None]


def iter_pair_results(locus_a: Locus, locus_b: Locus) -> Iterator[LDResult]:
    """LD coefficients for every allele pair of two loci.

    Allele pairs whose frequency is not available (no INFO/AF) are skipped.
    """
    for i in range(locus_a.n_alleles):
        p_a = allele_frequency(i, locus_a)
        if p_a is None:
            continue
        for j in range(locus_b.n_alleles):
            p_b = allele_frequency(j, locus_b)
            if p_b is None:
                continue
            p_ab = linked_allele_frequency(i, locus_a, j, locus_b)
            yield LDResult(
                chrom=locus_a.chrom,
                allele_a=i,
                pos_a=locus_a.pos,
                allele_b=j,
                pos_b=locus_b.pos,
                p_a=p_a,
                p_b=p_b,
                p_ab=p_ab,
                d=calc_d(p_a, p_b, p_ab),
                d_prime=calc_d_prime(p_a, p_b, p_ab),
                r_squared=calc_r_squared(p_a, p_b, p_ab),
            )


def _slide_until_pair(window: SlidingWindow) -> None:
    while len(window) < 2 and window.has_more:
        window.slide()


def scan_ld(
    source: Iterable[str],
    *,
    sink: ResultSink,
    span: int = DEFAULT_SPAN,
    r2_cutoff: float = DEFAULT_R2_CUTOFF,
    is_valid: Optional[LocusPredicate] = None,
    progress: bool = False,
) -> Dict[str, object]:
    """Stream a VCF through a sliding window and emit LD results to ``sink``.

    Parameters
    ----------
    source:
        VCF text lines (header included), e.g. an open file.
    sink:
        Called once per result with ``r_squared >= r2_cutoff``. Results with an
        undefined r^2 (monomorphic locus) are never emitted.
    span:
        Maximum distance in bases between the head of the window and any other
        locus in it.
    r2_cutoff:
        Minimum r^2 for a result to be emitted.
    is_valid:
        Optional locus filter; loci for which it returns False are skipped.
    progress:
        Show a tqdm progress bar over loci read.

    Returns
    -------
    dict
        Counters describing the scan. ``incomplete_window`` is True when no
        window ever held two loci, in which case no result is emitted.
    """
    counts: Dict[str, int] = {
        "windows": 0,
        "locus_pairs_tested": 0,
        "locus_pairs_skipped_multiallelic": 0,
        "allele_pairs_tested": 0,
        "results_emitted": 0,
        "results_below_cutoff": 0,
        "results_undefined": 0,
        "max_window_loci": 0,
    }

    window = SlidingWindow(source, span=span, is_valid=is_valid)
    bar = tqdm(unit="locus", desc="Scanning loci", disable=not progress)
    try:
        window.initialize()
        _slide_until_pair(window)

        while len(window) >= 2:
            counts["windows"] += 1
            counts["max_window_loci"] = max(counts["max_window_loci"], len(window))

            head = window.head
            assert head is not None
            for other in islice(window, 1, None):
                if not (head.is_biallelic and other.is_biallelic):
                    counts["locus_pairs_skipped_multiallelic"] += 1
                    continue
                counts["locus_pairs_tested"] += 1
                for res in iter_pair_results(head, other):
                    counts["allele_pairs_tested"] += 1
                    if math.isnan(res.r_squared):
                        counts["results_undefined"] += 1
                        continue
                    if res.r_squared < r2_cutoff:
                        counts["results_below_cutoff"] += 1
                        continue
                    sink(res)
                    counts["results_emitted"] += 1

            bar.update(window.loci_read - bar.n)
            window.slide()
            _slide_until_pair(window)

        bar.update(window.loci_read - bar.n)
    finally:
        bar.close()
        window.close()

    counts["loci_read"] = window.loci_read
    counts["loci_admitted"] = window.loci_admitted
    counts["loci_skipped"] = window.loci_skipped
    counts["incomplete_window"] = counts["windows"] == 0

    if counts["incomplete_window"]:
        logger.warning(
            "No window held two loci (%d admitted, span=%d); no LD pairs to report.",
            window.loci_admitted,
            span,
        )
    logger.info(
        "Scanned %d loci; emitted %d results (r2 >= %g)",
        window.loci_read,
        counts["results_emitted"],
        r2_cutoff,
    )
    return counts


def format_result_row(res: LDResult) -> str:
    return (
        f"{res.chrom}\t{res.allele_a}\t{res.pos_a}\t{res.allele_b}\t{res.pos_b}\t"
        f"{res.p_a:.6f}\t{res.p_b:.6f}\t{res.p_ab:.6f}\t"
        f"{res.d:.6f}\t{res.d_prime:.6f}\t{res.r_squared:.6f}\n"
    )


def run_ld_scan(
    *,
    vcf_path: str,
    outdir: str | Path,
    span: int = DEFAULT_SPAN,
    r2_cutoff: float = DEFAULT_R2_CUTOFF,
    require_pass: bool = False,
    ld_pairs_tsv_gz: Optional[str] = None,
    progress: bool = True,
) -> Dict[str, object]:
    """Main workhorse: scan a VCF file, write results, and return a summary dict.

    Writes ``ld_pairs.tsv.gz`` (one row per emitted result) and ``summary.json``
    into ``outdir``. The r^2 histogram and the LD decay profile are built from
    the ALT/ALT allele pair only, so each locus pair is counted once.
    """
    t0 = time.time()
    outdir_path = ensure_outdir(outdir)

    if span < 0:
        raise ValueError("span must be >= 0")
    if not 0.0 <= r2_cutoff <= 1.0:
        raise ValueError("r2_cutoff must be within [0, 1]")

    if ld_pairs_tsv_gz is None:
        ld_pairs_tsv_gz = str(outdir_path / "ld_pairs.tsv.gz")

    # Streaming histograms
    r2_bins = np.linspace(0.0, 1.0, _R2_BIN_COUNT + 1)
    r2_counts = np.zeros(_R2_BIN_COUNT, dtype=np.int64)
    dist_bins = np.linspace(0.0, float(span) + 1.0, _DISTANCE_BIN_COUNT + 1)
    dist_r2_sum = np.zeros(_DISTANCE_BIN_COUNT, dtype=np.float64)
    dist_pairs = np.zeros(_DISTANCE_BIN_COUNT, dtype=np.int64)

    is_valid: Optional[LocusPredicate] = None
    if require_pass:
        is_valid = lambda locus: locus.filter_pass  # noqa: E731

    with open_textmaybe_gzip(vcf_path, "rt") as vcf_fh, open_textmaybe_gzip(ld_pairs_tsv_gz, "wt") as tsv_fh:
        tsv_fh.write("\t".join(RESULT_COLUMNS) + "\n")

        def sink(res: LDResult) -> None:
            tsv_fh.write(format_result_row(res))
            if res.allele_a != 1 or res.allele_b != 1:
                return
            r2 = float(np.clip(res.r_squared, 0.0, 1.0))
            r2_counts[:] += np.histogram([r2], bins=r2_bins)[0]
            k = int(np.searchsorted(dist_bins, res.distance, side="right")) - 1
            k = min(max(k, 0), _DISTANCE_BIN_COUNT - 1)
            dist_r2_sum[k] += r2
            dist_pairs[k] += 1

        counts = scan_ld(
            vcf_fh,
            sink=sink,
            span=span,
            r2_cutoff=r2_cutoff,
            is_valid=is_valid,
            progress=progress,
        )

    mean_r2: List[Optional[float]] = [
        float(s / n) if n > 0 else None for s, n in zip(dist_r2_sum.tolist(), dist_pairs.tolist())
    ]

    dt = time.time() - t0

    summary = {
        "vcf_path": vcf_path,
        "span": int(span),
        "r2_cutoff": float(r2_cutoff),
        "require_pass": bool(require_pass),
        "ld_pairs_tsv_gz": str(ld_pairs_tsv_gz),
        "counts": counts,
        "r2_hist": {
            "bin_edges": r2_bins.tolist(),
            "counts": r2_counts.tolist(),
        },
        "ld_decay": {
            "bin_edges": dist_bins.tolist(),
            "mean_r2": mean_r2,
            "pairs": dist_pairs.tolist(),
        },
        "runtime_seconds": float(dt),
    }

    write_json(outdir_path / "summary.json", summary)
    return summary
