"""Two-locus linkage disequilibrium coefficients.

For alleles A (at locus 1) and B (at locus 2) with frequencies ``p_a`` and
``p_b`` and haplotype frequency ``p_ab``:

- ``D  = p_ab - p_a * p_b``
- ``D' = D / Dmax`` where ``Dmax = min(p_a*p_b, (1-p_a)*(1-p_b))`` if ``D < 0``
  and ``min(p_a*(1-p_b), (1-p_a)*p_b)`` otherwise (Lewontin 1964)
- ``r^2 = D^2 / (p_a*(1-p_a) * p_b*(1-p_b))``

D' and r^2 are undefined when either locus is monomorphic; they are returned
as NaN in that case.
"""

from __future__ import annotations

import logging
import math
from typing import Optional

from .models import Locus

logger = logging.getLogger(__name__)


def is_degenerate(p: float) -> bool:
    """True when a frequency is not strictly inside (0, 1)."""
    return not (0.0 < p < 1.0)


def allele_frequency(k: int, locus: Locus) -> Optional[float]:
    """Stored frequency of allele ``k`` (0 = reference), or None if unavailable."""
    if k < 0 or k >= len(locus.alleles):
        return None
    return locus.alleles[k].af


def linked_allele_frequency(k1: int, locus_a: Locus, k2: int, locus_b: Locus) -> float:
    """Frequency of haplotypes carrying allele ``k1`` at ``locus_a`` and ``k2`` at ``locus_b``.

    Samples are paired by column position over the first ``min(ns_a, ns_b)``
    samples. Maternal chromosomes are compared with maternal, paternal with
    paternal.
    """
    ns = min(locus_a.info.ns, locus_b.info.ns, len(locus_a.samples), len(locus_b.samples))
    if ns == 0:
        return math.nan

    count = 0
    for sa, sb in zip(locus_a.samples[:ns], locus_b.samples[:ns]):
        if sa.maternal == k1 and sb.maternal == k2:
            count += 1
        if sa.paternal == k1 and sb.paternal == k2:
            count += 1
    return count / (2 * ns)


def calc_d(p_a: float, p_b: float, p_ab: float) -> float:
    return p_ab - p_a * p_b


def calc_d_prime(p_a: float, p_b: float, p_ab: float) -> float:
    d = calc_d(p_a, p_b, p_ab)
    if d < 0:
        d_max = min(p_a * p_b, (1.0 - p_a) * (1.0 - p_b))
    else:
        d_max = min(p_a * (1.0 - p_b), (1.0 - p_a) * p_b)
    if d_max == 0:
        return math.nan
    return d / d_max


def calc_r_squared(p_a: float, p_b: float, p_ab: float) -> float:
    d = calc_d(p_a, p_b, p_ab)
    denom = p_a * (1.0 - p_a) * p_b * (1.0 - p_b)
    if denom == 0:
        return math.nan
    return (d * d) / denom
