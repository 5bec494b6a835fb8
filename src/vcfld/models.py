from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple


@dataclass
class Allele:
    """One reference or alternate allele of a locus.

    Attributes
    ----------
    seq:
        Allele bases as written in the REF or ALT column.
    num:
        Allele number as used in genotype calls (0 is the reference).
    ac:
        Allele count in called genotypes, ``None`` until INFO/AC (or the
        reference back-fill) sets it. Zero is a legal count.
    af:
        Allele frequency in [0, 1], ``None`` until set.
    vt:
        Variant type tag from INFO/VT; ``"REF"`` for the reference and
        ``""`` while unset.
    """

    seq: str
    num: int
    ac: Optional[int] = None
    af: Optional[float] = None
    vt: str = ""


@dataclass(frozen=True)
class Sample:
    """Diploid genotype call. Missing allele calls (``.``) are ``None``."""

    maternal: Optional[int]
    paternal: Optional[int]
    phased: bool


@dataclass
class LocusInfo:
    ns: int = 0  # samples with data
    an: Optional[int] = None  # called alleles
    n_alleles: int = 0  # 1 ref + N alt


@dataclass
class Locus:
    """One VCF data line: position, alleles, summary info and genotypes."""

    chrom: int
    pos: int
    id: str
    qual: Optional[int]
    filter_pass: bool
    info: LocusInfo = field(default_factory=LocusInfo)
    alleles: List[Allele] = field(default_factory=list)
    samples: List[Sample] = field(default_factory=list)

    @property
    def n_alleles(self) -> int:
        return self.info.n_alleles

    @property
    def is_biallelic(self) -> bool:
        return self.info.n_alleles == 2

    @property
    def ref(self) -> Allele:
        return self.alleles[0]

    @property
    def alts(self) -> List[Allele]:
        return self.alleles[1:]

    def allele_id(self, num: int) -> str:
        """Identifier for one allele of this locus, e.g. ``rs123_1``."""
        if num < 0 or num >= len(self.alleles):
            raise IndexError(f"Locus {self.chrom}:{self.pos} has no allele {num}")
        base = self.id if self.id != "." else f"{self.chrom}:{self.pos}"
        return f"{base}_{num}"


@dataclass(frozen=True)
class LDResult:
    """LD coefficients for one allele pair of two loci."""

    chrom: int
    allele_a: int
    pos_a: int
    allele_b: int
    pos_b: int
    p_a: float
    p_b: float
    p_ab: float
    d: float
    d_prime: float
    r_squared: float

    @property
    def distance(self) -> int:
        return self.pos_b - self.pos_a

    def as_tuple(self) -> Tuple[int, int, int, int, float, float, float, float, float, float]:
        return (
            self.allele_a,
            self.pos_a,
            self.allele_b,
            self.pos_b,
            self.p_a,
            self.p_b,
            self.p_ab,
            self.d,
            self.d_prime,
            self.r_squared,
        )
