import gzip
import json
from pathlib import Path
from typing import List

import pytest

from vcfld.errors import EmptyVcfError, MalformedRecordError
from vcfld.models import LDResult
from vcfld.scan import RESULT_COLUMNS, run_ld_scan, scan_ld

HEADER = [
    "##fileformat=VCFv4.2\n",
    "#CHROM\tPOS\tID\tREF\tALT\tQUAL\tFILTER\tINFO\tFORMAT\tS1\tS2\tS3\tS4\n",
]

# alt frequencies 0.5 and 0.375; r^2 = 0.6 for every allele pair
SNP_1 = "1\t1000\trs1\tA\tG\t100\tPASS\tNS=4;AN=8;AC=4;AF=0.5;VT=SNP\tGT\t0|1\t1|1\t0|0\t1|0\n"
SNP_2 = "1\t1500\trs2\tC\tT\t100\tPASS\tNS=4;AN=8;AC=3;AF=0.375;VT=SNP\tGT\t0|1\t1|1\t0|0\t0|0\n"


def _scan(lines: List[str], **kwargs) -> List[LDResult]:
    out: List[LDResult] = []
    scan_ld(lines, sink=out.append, **kwargs)
    return out


def test_two_snps_give_four_results() -> None:
    results = _scan(HEADER + [SNP_1, SNP_2], span=10000)

    assert len(results) == 4
    assert sorted((r.allele_a, r.allele_b) for r in results) == [(0, 0), (0, 1), (1, 0), (1, 1)]
    for r in results:
        assert (r.pos_a, r.pos_b) == (1000, 1500)
        assert r.r_squared == pytest.approx(0.6)

    by_pair = {(r.allele_a, r.allele_b): r for r in results}
    alt_alt = by_pair[(1, 1)]
    assert alt_alt.as_tuple() == pytest.approx((1, 1000, 1, 1500, 0.5, 0.375, 0.375, 0.1875, 1.0, 0.6))
    assert by_pair[(0, 1)].d_prime == pytest.approx(-1.0)
    assert by_pair[(0, 0)].p_ab == pytest.approx(0.5)


def test_cutoff_filters_results() -> None:
    out: List[LDResult] = []
    counts = scan_ld(HEADER + [SNP_1, SNP_2], sink=out.append, span=10000, r2_cutoff=0.7)
    assert out == []
    assert counts["results_below_cutoff"] == 4
    assert counts["allele_pairs_tested"] == 4


def test_loci_outside_span_are_not_paired() -> None:
    out: List[LDResult] = []
    counts = scan_ld(HEADER + [SNP_1, SNP_2], sink=out.append, span=100)
    assert out == []
    assert counts["loci_admitted"] == 2
    assert counts["windows"] == 0
    assert counts["incomplete_window"]


def test_single_locus_is_an_incomplete_window() -> None:
    out: List[LDResult] = []
    counts = scan_ld(HEADER + [SNP_1], sink=out.append)
    assert out == []
    assert counts["incomplete_window"]


def test_header_only_vcf_raises() -> None:
    with pytest.raises(EmptyVcfError):
        _scan(list(HEADER))


def test_multiallelic_loci_are_skipped() -> None:
    tri = "1\t1200\trs3\tA\tC,T\t100\tPASS\tNS=4;AN=8;AC=1,1;AF=0.125,0.125\tGT\t0|1\t2|0\t0|0\t0|0\n"
    out: List[LDResult] = []
    counts = scan_ld(HEADER + [SNP_1, tri, SNP_2], sink=out.append, span=10000)
    assert {(r.pos_a, r.pos_b) for r in out} == {(1000, 1500)}
    assert counts["locus_pairs_skipped_multiallelic"] == 2


def test_monomorphic_locus_results_are_undefined_not_emitted() -> None:
    mono = "1\t1200\trs3\tA\tC\t100\tPASS\tNS=4;AN=8;AC=0;AF=0\tGT\t0|0\t0|0\t0|0\t0|0\n"
    out: List[LDResult] = []
    counts = scan_ld(HEADER + [SNP_1, mono], sink=out.append, span=10000)
    assert out == []
    assert counts["results_undefined"] == 4


def test_malformed_record_aborts_but_earlier_results_stand() -> None:
    snp_far = SNP_2.replace("1500", "5000")
    near = SNP_2.replace("1500", "1050")
    broken = "1\t6000\trs9\tA\tG\t100\tPASS\n"
    out: List[LDResult] = []
    with pytest.raises(MalformedRecordError):
        scan_ld(HEADER + [SNP_1, near, snp_far, broken], sink=out.append, span=100)
    assert len(out) == 4
    assert all(r.pos_b != 6000 and r.pos_a != 6000 for r in out)


@pytest.mark.parametrize(
    "dropped",
    [6, 7],
    ids=["filter-missing", "info-missing"],
)
def test_record_missing_a_fixed_column_aborts_scan(dropped: int) -> None:
    cols = SNP_2.rstrip("\n").split("\t")
    del cols[dropped]
    short = "\t".join(cols) + "\n"
    out: List[LDResult] = []
    with pytest.raises(MalformedRecordError) as excinfo:
        scan_ld(HEADER + [SNP_1, short], sink=out.append)
    assert excinfo.value.line_number == 4
    assert out == []


def test_single_sample_record_missing_info_aborts_scan() -> None:
    header = [HEADER[0], "#CHROM\tPOS\tID\tREF\tALT\tQUAL\tFILTER\tINFO\tFORMAT\tS1\n"]
    good = "1\t1000\trs1\tA\tG\t100\tPASS\tNS=1;AF=0.5\tGT\t0|1\n"
    no_info = "1\t1500\trs2\tC\tT\t100\tPASS\tGT\t0|1\n"
    with pytest.raises(MalformedRecordError):
        _scan(header + [good, no_info])


def test_require_filter_predicate() -> None:
    low = SNP_2.replace("PASS", "LowQual")
    out: List[LDResult] = []
    counts = scan_ld(
        HEADER + [SNP_1, low],
        sink=out.append,
        is_valid=lambda locus: locus.filter_pass,
    )
    assert out == []
    assert counts["loci_skipped"] == 1
    assert counts["incomplete_window"]


def test_run_ld_scan_writes_outputs(tmp_path: Path) -> None:
    vcf = tmp_path / "two.vcf"
    vcf.write_text("".join(HEADER + [SNP_1, SNP_2]), encoding="utf-8")

    summary = run_ld_scan(vcf_path=str(vcf), outdir=tmp_path / "out", progress=False)

    tsv = Path(summary["ld_pairs_tsv_gz"])
    with gzip.open(tsv, "rt") as fh:
        rows = [line.rstrip("\n").split("\t") for line in fh]
    assert rows[0] == RESULT_COLUMNS
    assert len(rows) == 5
    assert summary["counts"]["results_emitted"] == 4
    assert sum(summary["r2_hist"]["counts"]) == 1
    assert sum(summary["ld_decay"]["pairs"]) == 1

    on_disk = json.loads((tmp_path / "out" / "summary.json").read_text(encoding="utf-8"))
    assert on_disk["span"] == 10000
    assert on_disk["counts"]["loci_read"] == 2


def test_run_ld_scan_reads_gzip(tmp_path: Path) -> None:
    vcf = tmp_path / "two.vcf.gz"
    with gzip.open(vcf, "wt") as fh:
        fh.write("".join(HEADER + [SNP_1, SNP_2]))
    summary = run_ld_scan(vcf_path=str(vcf), outdir=tmp_path / "out", r2_cutoff=0.5, progress=False)
    assert summary["counts"]["results_emitted"] == 4


def test_run_ld_scan_rejects_bad_cutoff(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        run_ld_scan(vcf_path="unused.vcf", outdir=tmp_path, r2_cutoff=1.5)
