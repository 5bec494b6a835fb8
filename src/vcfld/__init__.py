"""vcfld: streaming pairwise linkage disequilibrium from VCF files.

Public API is intentionally small; most users should use the CLI:

    vcfld scan --vcf calls.vcf.gz --outdir ld_out/

"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
