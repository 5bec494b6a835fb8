from __future__ import annotations

import datetime as _dt
import logging
from pathlib import Path
from typing import Any, Dict

from jinja2 import Template

logger = logging.getLogger(__name__)


_REPORT_TEMPLATE = Template(
    """<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>vcfld Report</title>
  <style>
    body { font-family: Arial, Helvetica, sans-serif; margin: 24px; }
    code, pre { background: #f6f8fa; padding: 2px 4px; border-radius: 4px; }
    h1, h2, h3 { margin-top: 1.2em; }
    table { border-collapse: collapse; margin-top: 0.6em; }
    th, td { border: 1px solid #ddd; padding: 8px; }
    th { background: #f2f2f2; text-align: left; }
    .grid { display: grid; grid-template-columns: 1fr 1fr; gap: 16px; }
    .card { border: 1px solid #ddd; border-radius: 8px; padding: 12px; }
    .small { color: #666; font-size: 0.9em; }
    .warn { color: #a15c00; }
    img { max-width: 100%; height: auto; border: 1px solid #eee; border-radius: 6px; }
  </style>
</head>
<body>

<h1>vcfld Report</h1>
<p class="small">Generated: {{ generated_at }}</p>

<h2>Run summary</h2>
<div class="grid">
  <div class="card">
    <h3>Input</h3>
    <table>
      <tr><th>VCF</th><td><code>{{ vcf_path }}</code></td></tr>
      <tr><th>Window span (bp)</th><td>{{ span }}</td></tr>
      <tr><th>r² cutoff</th><td>{{ r2_cutoff }}</td></tr>
      <tr><th>FILTER=PASS only</th><td>{{ require_pass }}</td></tr>
    </table>
  </div>
  <div class="card">
    <h3>Loci</h3>
    <table>
      <tr><th>Loci read</th><td>{{ counts.loci_read }}</td></tr>
      <tr><th>Loci admitted</th><td>{{ counts.loci_admitted }}</td></tr>
      <tr><th>Loci skipped (filter)</th><td>{{ counts.loci_skipped }}</td></tr>
      <tr><th>Largest window (loci)</th><td>{{ counts.max_window_loci }}</td></tr>
    </table>
  </div>
</div>

{% if counts.incomplete_window %}
<p class="warn">No window ever held two loci; no LD pairs could be computed.</p>
{% endif %}

<h2>Pairs</h2>
<table>
  <tr><th>Window positions</th><td>{{ counts.windows }}</td></tr>
  <tr><th>Locus pairs tested</th><td>{{ counts.locus_pairs_tested }}</td></tr>
  <tr><th>Locus pairs skipped (multiallelic)</th><td>{{ counts.locus_pairs_skipped_multiallelic }}</td></tr>
  <tr><th>Allele pairs tested</th><td>{{ counts.allele_pairs_tested }}</td></tr>
  <tr><th>Results emitted</th><td>{{ counts.results_emitted }}</td></tr>
  <tr><th>Below r² cutoff</th><td>{{ counts.results_below_cutoff }}</td></tr>
  <tr><th>Undefined r² (monomorphic)</th><td>{{ counts.results_undefined }}</td></tr>
</table>

<h2>Plots</h2>
<div class="grid">
  <div class="card">
    <h3>r² distribution</h3>
    <img src="{{ plots.r2_hist }}" alt="r2 histogram">
  </div>
  <div class="card">
    <h3>LD decay</h3>
    <img src="{{ plots.ld_decay }}" alt="LD decay">
  </div>
</div>

<h2>Outputs</h2>
<ul>
  <li><code>{{ ld_pairs_tsv_gz }}</code> (per allele-pair LD results)</li>
  <li><code>summary.json</code> (machine-readable summary)</li>
</ul>

<h2>Interpretation notes</h2>
<ul>
  <li>Only pairs of biallelic loci are reported; allele 0 is the reference.</li>
  <li>Allele frequencies come from INFO/AF; haplotype frequencies assume samples share column order.</li>
  <li>Haplotype counting uses the genotype order as written; it is meaningful for phased data.</li>
</ul>

<hr>
<p class="small">vcfld {{ version }}</p>
</body>
</html>"""
)


def render_report(
    *,
    outdir: str | Path,
    version: str,
    run: Dict[str, Any],
    plots: Dict[str, str],
) -> Path:
    outdir = Path(outdir)
    outdir.mkdir(parents=True, exist_ok=True)

    html = _REPORT_TEMPLATE.render(
        generated_at=_dt.datetime.now().isoformat(timespec="seconds"),
        version=version,
        vcf_path=run.get("vcf_path"),
        span=run.get("span"),
        r2_cutoff=run.get("r2_cutoff"),
        require_pass=run.get("require_pass"),
        ld_pairs_tsv_gz=run.get("ld_pairs_tsv_gz"),
        counts=run.get("counts", {}),
        plots=plots,
    )

    out_path = outdir / "report.html"
    out_path.write_text(html, encoding="utf-8")
    logger.debug("Report written: %s", out_path)
    return out_path
