"""Sliding window of loci over a forward-only VCF stream.

The window holds, in file order, every locus lying within ``span`` bases of
its first (head) locus. Records are read one at a time into a one-locus
lookahead buffer; a buffered locus that falls outside the window is kept there
until enough head loci have been evicted for it to fit, so no record is lost
between slides.

Typical use::

    with SlidingWindow(lines, span=10_000) as window:
        window.initialize()
        while True:
            ...  # consume window.head and the loci after it
            if not window.slide():
                break
"""

from __future__ import annotations

import logging
from collections import deque
from enum import Enum
from typing import Callable, Deque, Iterable, Iterator, Optional

from .errors import EmptyVcfError
from .models import Locus
from .parser import LocusReader, ParseStatus

logger = logging.getLogger(__name__)

DEFAULT_SPAN = 10_000

LocusPredicate = Callable[[Locus], bool]


class WindowState(Enum):
    EMPTY = "empty"  # not primed yet, nothing buffered
    PRIMED = "primed"  # buffer holds a locus awaiting admission
    STREAM_ENDED = "stream_ended"  # source exhausted


def admit_all(locus: Locus) -> bool:
    return True


class SlidingWindow:
    """FIFO of loci within ``span`` bases of the head locus."""

    def __init__(
        self,
        source: Iterable[str],
        *,
        span: int = DEFAULT_SPAN,
        is_valid: Optional[LocusPredicate] = None,
    ) -> None:
        if span < 0:
            raise ValueError(f"span must be >= 0, got {span}")
        self.span = int(span)
        self.is_valid: LocusPredicate = is_valid if is_valid is not None else admit_all
        self._reader = LocusReader(source)
        self._loci: Deque[Locus] = deque()
        self._buffer: Optional[Locus] = None
        self.state = WindowState.EMPTY
        self.loci_read = 0
        self.loci_admitted = 0
        self.loci_skipped = 0
        self.evicted = 0

    # -----------------
    # Accessors
    # -----------------

    def __len__(self) -> int:
        return len(self._loci)

    def __iter__(self) -> Iterator[Locus]:
        return iter(self._loci)

    def __enter__(self) -> "SlidingWindow":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    @property
    def head(self) -> Optional[Locus]:
        return self._loci[0] if self._loci else None

    @property
    def tail(self) -> Optional[Locus]:
        return self._loci[-1] if self._loci else None

    @property
    def buffered(self) -> Optional[Locus]:
        return self._buffer

    @property
    def ended(self) -> bool:
        return self.state is WindowState.STREAM_ENDED

    @property
    def has_more(self) -> bool:
        """Whether sliding can still expose loci (members or a buffered locus)."""
        return len(self._loci) > 0 or self._buffer is not None

    @property
    def line_number(self) -> int:
        return self._reader.line_number

    def contains(self, locus: Locus) -> bool:
        """Membership test for ``locus`` against the current head."""
        head = self.head
        if head is None:
            return True
        return locus.chrom == head.chrom and locus.pos - head.pos <= self.span

    # -----------------
    # Buffer handling
    # -----------------

    def _fill_buffer(self) -> None:
        outcome = self._reader.read()
        if outcome.status is ParseStatus.OK:
            self._buffer = outcome.locus
            self.state = WindowState.PRIMED
            self.loci_read += 1
            return
        self._buffer = None
        if outcome.status is ParseStatus.END_OF_INPUT:
            self.state = WindowState.STREAM_ENDED
            logger.debug("End of input after line %d", outcome.line_number)
            return
        assert outcome.error is not None
        raise outcome.error

    def _admit_while_in_window(self) -> None:
        while self._buffer is not None and self.contains(self._buffer):
            locus = self._buffer
            if self.is_valid(locus):
                self._loci.append(locus)
                self.loci_admitted += 1
            else:
                self.loci_skipped += 1
                logger.debug("Skipping locus %d:%d (validity filter)", locus.chrom, locus.pos)
            self._fill_buffer()

    # -----------------
    # Window operations
    # -----------------

    def initialize(self) -> None:
        """Skip the header, prime the buffer and fill the first window.

        Raises
        ------
        EmptyVcfError
            If the source holds no data line at all.
        MalformedRecordError, AllocationFailureError
            If a record cannot be parsed.
        """
        if self.state is not WindowState.EMPTY:
            raise RuntimeError("Window is already initialized")
        self._reader.skip_header()
        self._fill_buffer()
        if self._buffer is None:
            raise EmptyVcfError("No data lines found in the VCF")
        self._admit_while_in_window()
        logger.debug(
            "Initialized window: %d loci (span=%d, state=%s)",
            len(self._loci),
            self.span,
            self.state.value,
        )

    def _evict_head(self) -> Locus:
        locus = self._loci.popleft()
        self.evicted += 1
        return locus

    def slide(self) -> bool:
        """Evict the head locus, then admit buffered loci that now fit.

        When the eviction leaves the window empty, the buffered locus seeds the
        window on the next call rather than this one.

        Returns
        -------
        bool
            ``has_more``: False once the stream has ended and nothing is left
            in the window or the buffer.
        """
        if self.state is WindowState.EMPTY:
            raise RuntimeError("Window must be initialized before sliding")
        if self._loci:
            self._evict_head()
            if not self._loci:
                return self.has_more
        self._admit_while_in_window()
        return self.has_more

    def close(self) -> None:
        """Evict every remaining locus and drop the buffer."""
        while self._loci:
            self._evict_head()
        self._buffer = None
