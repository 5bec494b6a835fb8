"""Exceptions raised while reading a VCF stream.

End of input is not an exception: readers report it through
:class:`vcfld.parser.ParseStatus` and the window turns it into its
``STREAM_ENDED`` state.
"""

from __future__ import annotations

from typing import Optional


class VcfLdError(RuntimeError):
    """Base class for all vcfld errors."""


class MalformedRecordError(VcfLdError):
    """Raised when a VCF data line cannot be turned into a locus."""

    def __init__(
        self,
        message: str,
        *,
        line_number: Optional[int] = None,
        line: Optional[str] = None,
    ) -> None:
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)
        self.line_number = line_number
        self.line = line


class AllocationFailureError(VcfLdError):
    """Raised when building a locus runs out of memory."""

    def __init__(self, message: str, *, line_number: Optional[int] = None) -> None:
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)
        self.line_number = line_number


class EmptyVcfError(VcfLdError):
    """Raised when a VCF has a header but not a single data line."""
