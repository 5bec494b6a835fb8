from __future__ import annotations

import random
from pathlib import Path
from typing import Dict, List, Sequence, Tuple

import pysam

from .utils import ensure_outdir, write_json

_BASES = ["A", "C", "G", "T"]

Haplotype = Tuple[int, int]


def _other_base(base: str, rng: random.Random) -> str:
    return rng.choice([b for b in _BASES if b != base])


def _simulate_haplotypes(
    n_samples: int,
    n_loci: int,
    *,
    rng: random.Random,
    flip_prob: float = 0.1,
) -> List[List[Haplotype]]:
    """Per locus, per sample (maternal, paternal) alleles with LD between neighbours.

    Each chromosome copies its allele at the previous locus and flips it with
    ``flip_prob``, so adjacent loci are strongly correlated.
    """
    loci: List[List[Haplotype]] = []
    prev = [(rng.randint(0, 1), rng.randint(0, 1)) for _ in range(n_samples)]
    for _ in range(n_loci):
        cur: List[Haplotype] = []
        for m, p in prev:
            if rng.random() < flip_prob:
                m = 1 - m
            if rng.random() < flip_prob:
                p = 1 - p
            cur.append((m, p))
        loci.append(cur)
        prev = cur
    return loci


def write_toy_vcf(
    path: str | Path,
    *,
    contig: str = "1",
    positions: Sequence[int] = (1000, 1500, 4000, 9000, 16000, 17000, 30000),
    n_samples: int = 20,
    seed: int = 7,
) -> Path:
    """Write a small phased, biallelic VCF with NS/AN/AC/AF/VT INFO fields."""
    rng = random.Random(seed)
    haplotypes = _simulate_haplotypes(n_samples, len(positions), rng=rng)

    header = pysam.VariantHeader()
    header.add_meta("fileformat", "VCFv4.2")
    header.contigs.add(contig, length=max(positions) + 1000)
    header.info.add("NS", number=1, type="Integer", description="Number of samples with data")
    header.info.add("AN", number=1, type="Integer", description="Total number of alleles in called genotypes")
    header.info.add("AC", number="A", type="Integer", description="Allele count in genotypes")
    header.info.add("AF", number="A", type="Float", description="Allele frequency")
    header.info.add("VT", number=".", type="String", description="Variant type")
    header.formats.add("GT", number=1, type="String", description="Genotype")
    samples = [f"S{i + 1:03d}" for i in range(n_samples)]
    for s in samples:
        header.add_sample(s)

    path = Path(path)
    with pysam.VariantFile(str(path), "w", header=header) as vcf:
        for k, pos in enumerate(positions):
            ref = rng.choice(_BASES)
            alt = _other_base(ref, rng)
            calls = haplotypes[k]
            ac = sum(m + p for m, p in calls)
            an = 2 * n_samples
            rec = vcf.new_record(
                contig=contig,
                start=pos - 1,
                stop=pos,
                alleles=(ref, alt),
                id=f"rs{pos}",
                qual=100,
                filter="PASS",
            )
            rec.info["NS"] = n_samples
            rec.info["AN"] = an
            rec.info["AC"] = (ac,)
            rec.info["AF"] = (round(ac / an, 4),)
            rec.info["VT"] = ("SNP",)
            for s, (m, p) in zip(samples, calls):
                rec.samples[s]["GT"] = (m, p)
                rec.samples[s].phased = True
            vcf.write(rec)
    return path


def make_toy_data(*, outdir: str | Path) -> Dict[str, str]:
    """Create a tiny phased VCF suitable for quick demos/tests.

    The outputs include:
    - toy.vcf (plain text)
    - toy.vcf.gz (+ .tbi)

    Returns
    -------
    dict
        Paths to the generated files.
    """
    outdir_p = ensure_outdir(outdir)

    vcf_path = write_toy_vcf(outdir_p / "toy.vcf")

    vcf_gz = outdir_p / "toy.vcf.gz"
    pysam.tabix_compress(str(vcf_path), str(vcf_gz), force=True)
    pysam.tabix_index(str(vcf_gz), preset="vcf", force=True)

    summary = {
        "vcf": str(vcf_path),
        "vcf_gz": str(vcf_gz),
        "outdir": str(outdir_p),
    }

    write_json(outdir_p / "toy_summary.json", summary)
    return summary
