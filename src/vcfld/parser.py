"""Incremental VCF data-line parser.

Each data line is turned into one :class:`~vcfld.models.Locus`. Columns are
read in their fixed order (CHROM, POS, ID, REF, ALT, QUAL, FILTER, INFO,
FORMAT, samples...) and only the INFO keys needed for LD are interpreted:

- ``NS``: number of samples with data (how many genotype columns to read).
- ``AN``: number of called alleles.
- ``AC``, ``AF``, ``VT``: one value per ALT allele. Values are assigned
  positionally, each to the first ALT allele whose field is still unset, so
  they must be listed in ascending allele order.

The reference allele's count and frequency are not present in INFO; they are
back-filled as ``AN - sum(AC)`` and ``1 - sum(AF)``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from .errors import AllocationFailureError, MalformedRecordError, VcfLdError
from .fields import split_columns, split_field, split_key_value
from .models import Allele, Locus, LocusInfo, Sample

logger = logging.getLogger(__name__)

HEADER_PREFIX = "#"
COLUMN_HEADER_PREFIX = "#CHROM"
PASS_FILTER = "PASS"
REF_VT = "REF"

_N_FIXED_COLUMNS = 8  # CHROM..INFO
_FORMAT_COLUMN = 8
_UCSC_PREFIX = "chr"
_REF_AF_TOLERANCE = 1e-6

# INFO key -> (Allele attribute, converter)
_PER_ALT_KEYS: Dict[str, Tuple[str, Callable[[str], object]]] = {
    "AC": ("ac", int),
    "AF": ("af", float),
    "VT": ("vt", str),
}


class ParseStatus(Enum):
    OK = "ok"
    END_OF_INPUT = "end_of_input"
    MALFORMED = "malformed"
    ALLOCATION_FAILURE = "allocation_failure"


@dataclass(frozen=True)
class ParseOutcome:
    """Result of reading one record from a line source."""

    status: ParseStatus
    locus: Optional[Locus] = None
    error: Optional[VcfLdError] = None
    line_number: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.status is ParseStatus.OK

    @property
    def is_fatal(self) -> bool:
        return self.status in (ParseStatus.MALFORMED, ParseStatus.ALLOCATION_FAILURE)


def _parse_chrom(token: str) -> int:
    core = token[len(_UCSC_PREFIX) :] if token.startswith(_UCSC_PREFIX) else token
    try:
        return int(core)
    except ValueError:
        raise ValueError(f"Chromosome must be an integer, got {token!r}") from None


def _parse_unsigned(token: str, what: str) -> int:
    try:
        value = int(token)
    except ValueError:
        raise ValueError(f"Unparsable {what}: {token!r}") from None
    if value < 0:
        raise ValueError(f"{what} must not be negative: {token!r}")
    return value


def _parse_qual(token: str) -> Optional[int]:
    if token == ".":
        return None
    try:
        return int(token)
    except ValueError:
        raise ValueError(f"Unparsable QUAL: {token!r}") from None


def _is_unset(value: object) -> bool:
    return value is None or value == ""


def _fill_first_unset(alts: List[Allele], attr: str, value: object, key: str) -> None:
    for allele in alts:
        if _is_unset(getattr(allele, attr)):
            setattr(allele, attr, value)
            return
    raise ValueError(f"INFO/{key} lists more values than there are ALT alleles")


def _parse_info(info_field: str, info: LocusInfo, alts: List[Allele]) -> Optional[int]:
    """Dispatch INFO sub-fields; returns NS if present."""
    ns: Optional[int] = None
    for subfield in split_field(info_field, ";"):
        key, value = split_key_value(subfield)
        if value is None:
            continue
        if key == "NS":
            ns = _parse_unsigned(value, "INFO/NS")
        elif key == "AN":
            info.an = _parse_unsigned(value, "INFO/AN")
        elif key in _PER_ALT_KEYS:
            attr, convert = _PER_ALT_KEYS[key]
            for token in split_field(value, ","):
                if token == "":
                    raise ValueError(f"Empty value in INFO/{key}")
                try:
                    converted = convert(token)
                except ValueError:
                    raise ValueError(f"Unparsable INFO/{key} value: {token!r}") from None
                _fill_first_unset(alts, attr, converted, key)
    return ns


def _backfill_reference(ref: Allele, alts: List[Allele], an: Optional[int]) -> None:
    ref.vt = REF_VT

    if an is not None and all(a.ac is not None for a in alts):
        ref_ac = an - sum(int(a.ac) for a in alts)  # type: ignore[arg-type]
        if ref_ac < 0:
            raise ValueError(f"INFO/AC sums to more than AN={an}")
        ref.ac = ref_ac

    if all(a.af is not None for a in alts):
        ref_af = 1.0 - sum(float(a.af) for a in alts)  # type: ignore[arg-type]
        if ref_af < -_REF_AF_TOLERANCE:
            raise ValueError("INFO/AF sums to more than 1")
        ref.af = max(ref_af, 0.0)


def _parse_allele_call(token: str) -> Optional[int]:
    if token == ".":
        return None
    try:
        num = int(token)
    except ValueError:
        raise ValueError(f"Unparsable allele call: {token!r}") from None
    if num < 0:
        raise ValueError(f"Negative allele call: {token!r}")
    return num


def parse_genotype(token: str) -> Sample:
    """Parse a diploid ``m|p`` (phased) or ``m/p`` (unphased) GT token."""
    gt = token.split(":", 1)[0]
    for sep, phased in (("|", True), ("/", False)):
        if sep in gt:
            m, _, p = gt.partition(sep)
            return Sample(
                maternal=_parse_allele_call(m),
                paternal=_parse_allele_call(p),
                phased=phased,
            )
    raise ValueError(f"Not a diploid genotype: {token!r}")


def _build_locus(cols: List[str]) -> Locus:
    if len(cols) < _N_FIXED_COLUMNS:
        raise ValueError(f"Expected at least {_N_FIXED_COLUMNS} columns, found {len(cols)}")

    chrom_s, pos_s, id_s, ref_s, alt_s, qual_s, filter_s, info_s = cols[:_N_FIXED_COLUMNS]

    locus = Locus(
        chrom=_parse_chrom(chrom_s),
        pos=_parse_unsigned(pos_s, "POS"),
        id=id_s,
        qual=_parse_qual(qual_s),
        filter_pass=filter_s == PASS_FILTER,
    )

    locus.alleles.append(Allele(seq=ref_s, num=0))
    for seq in split_field(alt_s, ","):
        if seq == "":
            raise ValueError(f"Empty ALT allele in {alt_s!r}")
        locus.alleles.append(Allele(seq=seq, num=len(locus.alleles)))
    locus.info.n_alleles = len(locus.alleles)

    alts = locus.alts
    ns = _parse_info(info_s, locus.info, alts)
    _backfill_reference(locus.ref, alts, locus.info.an)

    # anything past INFO must be a FORMAT column led by GT; a dropped fixed
    # column shifts a genotype into that slot
    if len(cols) > _FORMAT_COLUMN and cols[_FORMAT_COLUMN].split(":", 1)[0] != "GT":
        raise ValueError(f"FORMAT must start with GT, got {cols[_FORMAT_COLUMN]!r}")

    sample_cols = cols[_FORMAT_COLUMN + 1 :]
    if ns is None:
        ns = len(sample_cols)
    locus.info.ns = ns
    if ns == 0:
        return locus

    if len(cols) <= _FORMAT_COLUMN:
        raise ValueError("Missing FORMAT column")
    if len(sample_cols) < ns:
        raise ValueError(f"NS={ns} but only {len(sample_cols)} genotype columns")

    locus.samples.extend(parse_genotype(tok) for tok in sample_cols[:ns])
    return locus


def parse_line(
    line: str,
    *,
    line_number: Optional[int] = None,
    expected_columns: Optional[int] = None,
) -> Locus:
    """Parse one VCF data line into a :class:`Locus`.

    When ``expected_columns`` is given (the width of the ``#CHROM`` line), a
    record with any other number of columns is rejected.

    Raises
    ------
    MalformedRecordError
        On a column/token count mismatch or an unparsable field.
    """
    try:
        cols = split_columns(line)
        if expected_columns is not None and len(cols) != expected_columns:
            raise ValueError(f"Expected {expected_columns} columns as in #CHROM, found {len(cols)}")
        return _build_locus(cols)
    except ValueError as e:
        raise MalformedRecordError(str(e), line_number=line_number, line=line) from e


class LocusReader:
    """Pull-based reader turning a line source into :class:`ParseOutcome` values."""

    def __init__(self, source: Iterable[str]) -> None:
        self._lines: Iterator[str] = iter(source)
        self._pending: Optional[str] = None
        self.line_number = 0
        self.header_lines = 0
        self.n_columns: Optional[int] = None

    def _next_line(self) -> Optional[str]:
        if self._pending is not None:
            line, self._pending = self._pending, None
            return line
        for line in self._lines:
            self.line_number += 1
            if line.strip():
                return line
        return None

    def skip_header(self) -> int:
        """Consume meta-information lines up to and including ``#CHROM``."""
        while True:
            line = self._next_line()
            if line is None:
                break
            if not line.startswith(HEADER_PREFIX):
                logger.warning("No #CHROM header line found before the first data line")
                self._pending = line
                break
            self.header_lines += 1
            if line.startswith(COLUMN_HEADER_PREFIX):
                self.n_columns = len(split_columns(line))
                break
        logger.debug("Skipped %d header lines", self.header_lines)
        return self.header_lines

    def read(self) -> ParseOutcome:
        line = self._next_line()
        if line is None:
            return ParseOutcome(status=ParseStatus.END_OF_INPUT, line_number=self.line_number)
        try:
            locus = parse_line(line, line_number=self.line_number, expected_columns=self.n_columns)
        except MalformedRecordError as e:
            return ParseOutcome(status=ParseStatus.MALFORMED, error=e, line_number=self.line_number)
        except MemoryError:
            return ParseOutcome(
                status=ParseStatus.ALLOCATION_FAILURE,
                error=AllocationFailureError("Out of memory while parsing", line_number=self.line_number),
                line_number=self.line_number,
            )
        return ParseOutcome(status=ParseStatus.OK, locus=locus, line_number=self.line_number)
