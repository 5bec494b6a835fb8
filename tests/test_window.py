from typing import List, Sequence

import pytest

from vcfld.errors import EmptyVcfError, MalformedRecordError
from vcfld.window import SlidingWindow, WindowState

HEADER = [
    "##fileformat=VCFv4.2\n",
    "#CHROM\tPOS\tID\tREF\tALT\tQUAL\tFILTER\tINFO\tFORMAT\tS1\tS2\n",
]


def _record(pos: int, *, chrom: str = "1", filt: str = "PASS") -> str:
    return f"{chrom}\t{pos}\trs{pos}\tA\tG\t100\t{filt}\tNS=2;AN=4;AC=2;AF=0.5\tGT\t0|1\t1|0\n"


def _vcf(positions: Sequence[int]) -> List[str]:
    return HEADER + [_record(p) for p in positions]


def _positions(window: SlidingWindow) -> List[int]:
    return [locus.pos for locus in window]


def test_initialize_admits_loci_within_span() -> None:
    window = SlidingWindow(_vcf([1000, 1500, 20000]), span=10000)
    window.initialize()
    assert _positions(window) == [1000, 1500]
    assert window.state is WindowState.PRIMED
    assert window.buffered is not None and window.buffered.pos == 20000


def test_initialize_reads_whole_stream_when_it_fits() -> None:
    window = SlidingWindow(_vcf([1000, 1500]), span=10000)
    window.initialize()
    assert len(window) == 2
    assert window.head.pos == 1000
    assert window.tail.pos == 1500
    assert window.state is WindowState.STREAM_ENDED
    assert window.buffered is None


def test_span_is_inclusive() -> None:
    window = SlidingWindow(_vcf([1000, 1100, 1101]), span=100)
    window.initialize()
    assert _positions(window) == [1000, 1100]


def test_out_of_span_locus_waits_in_buffer_then_window_empties() -> None:
    window = SlidingWindow(_vcf([1000, 1500]), span=100)
    window.initialize()
    assert _positions(window) == [1000]

    assert window.slide()
    assert len(window) == 0
    assert window.buffered is not None and window.buffered.pos == 1500

    # the buffered locus seeds the next window
    assert window.slide()
    assert _positions(window) == [1500]
    assert window.ended

    assert not window.slide()
    assert len(window) == 0
    assert not window.has_more


def test_slide_evicts_exactly_the_head() -> None:
    window = SlidingWindow(_vcf([100, 200, 300, 400, 900, 950]), span=300)
    window.initialize()
    while window.has_more:
        old_head = window.head
        before = window.evicted
        window.slide()
        if old_head is not None:
            assert window.evicted == before + 1
            assert all(locus is not old_head for locus in window)
        else:
            assert window.evicted == before


def test_span_invariant_holds_after_every_slide() -> None:
    positions = [10, 40, 41, 90, 200, 205, 260, 500, 510, 515, 800, 1300]
    span = 100
    window = SlidingWindow(_vcf(positions), span=span)
    window.initialize()
    seen: List[int] = []
    while True:
        head = window.head
        if head is not None:
            seen.append(head.pos)
            assert all(0 <= locus.pos - head.pos <= span for locus in window)
        if not window.slide():
            break
    # every locus reaches the head exactly once, in file order
    assert seen == positions


def test_window_never_spans_chromosomes() -> None:
    lines = HEADER + [_record(1000, chrom="1"), _record(1001, chrom="2"), _record(1002, chrom="2")]
    window = SlidingWindow(lines, span=10000)
    window.initialize()
    assert [(l.chrom, l.pos) for l in window] == [(1, 1000)]
    window.slide()
    assert len(window) == 0
    window.slide()
    assert [(l.chrom, l.pos) for l in window] == [(2, 1001), (2, 1002)]


def test_invalid_loci_are_skipped() -> None:
    lines = HEADER + [_record(100), _record(150, filt="LowQual"), _record(180)]
    window = SlidingWindow(lines, span=1000, is_valid=lambda locus: locus.filter_pass)
    window.initialize()
    assert _positions(window) == [100, 180]
    assert window.loci_skipped == 1
    assert window.loci_read == 3


def test_close_evicts_everything() -> None:
    window = SlidingWindow(_vcf([1, 2, 3, 50000]), span=10)
    with window:
        window.initialize()
        assert len(window) == 3
    assert len(window) == 0
    assert window.buffered is None
    assert window.evicted == 3


def test_header_only_vcf_is_fatal() -> None:
    window = SlidingWindow(list(HEADER), span=10)
    with pytest.raises(EmptyVcfError):
        window.initialize()


def test_malformed_record_aborts_admission() -> None:
    lines = _vcf([100, 200]) + ["1\t300\trs300\tA\tG\n"]
    window = SlidingWindow(lines, span=1000)
    with pytest.raises(MalformedRecordError):
        window.initialize()


def test_slide_requires_initialize() -> None:
    window = SlidingWindow(_vcf([1]), span=10)
    with pytest.raises(RuntimeError):
        window.slide()


def test_negative_span_rejected() -> None:
    with pytest.raises(ValueError):
        SlidingWindow(_vcf([1]), span=-1)


def test_independent_windows_keep_their_own_buffer() -> None:
    w1 = SlidingWindow(_vcf([1, 500]), span=10)
    w2 = SlidingWindow(_vcf([7, 900]), span=10)
    w1.initialize()
    w2.initialize()
    assert w1.buffered.pos == 500
    assert w2.buffered.pos == 900
