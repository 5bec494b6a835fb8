from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

import pysam

from . import __version__
from .plotting import plot_ld_decay, plot_r2_hist
from .report import render_report
from .scan import DEFAULT_R2_CUTOFF, run_ld_scan
from .toy_data import make_toy_data
from .utils import ensure_outdir
from .window import DEFAULT_SPAN


def _setup_logging(verbosity: int, *, logfile: Optional[Path] = None) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    log_fmt = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    logging.basicConfig(level=level, format=log_fmt, stream=sys.stderr)

    if logfile is not None:
        logfile.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(logfile)
        fh.setLevel(level)
        fh.setFormatter(logging.Formatter(log_fmt))
        logging.getLogger().addHandler(fh)


def _path_exists(p: str) -> str:
    if not Path(p).exists():
        raise argparse.ArgumentTypeError(f"Path does not exist: {p}")
    return p


def _non_negative_int(s: str) -> int:
    v = int(s)
    if v < 0:
        raise argparse.ArgumentTypeError(f"Expected a non-negative integer, got {s}")
    return v


def _unit_float(s: str) -> float:
    v = float(s)
    if not 0.0 <= v <= 1.0:
        raise argparse.ArgumentTypeError(f"Expected a value in [0, 1], got {s}")
    return v


def _log_path(outdir: Path, name: str) -> Path:
    return outdir / "logs" / name


def _handle_error(err: Exception, *, log_path: Optional[Path] = None) -> int:
    sys.stderr.write(f"{err.__class__.__name__}: {err}\n")
    if log_path is not None:
        sys.stderr.write(f"See log: {log_path}\n")
    return 2


def _vcf_header_summary(vcf_path: str) -> dict:
    with pysam.VariantFile(vcf_path) as vcf:
        return {
            "samples": len(vcf.header.samples),
            "contigs": list(vcf.header.contigs),
        }


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="vcfld",
        description=(
            "vcfld: pairwise linkage disequilibrium (D, D', r^2) between nearby loci "
            "of a VCF, computed over a sliding genomic window."
        ),
    )
    p.add_argument("--version", action="version", version=f"vcfld {__version__}")

    sub = p.add_subparsers(dest="cmd", required=True)

    # -----------------
    # quickstart
    # -----------------
    sub.add_parser(
        "quickstart",
        help="Print ready-to-run recipes for common scenarios.",
    )

    # -----------------
    # make-toy-data
    # -----------------
    t = sub.add_parser(
        "make-toy-data",
        help="Generate a tiny phased VCF for demos/tests.",
    )
    t.add_argument("--outdir", required=True, help="Output directory for toy data.")
    t.add_argument("--dry-run", action="store_true", help="Validate paths without writing files.")

    # -----------------
    # scan
    # -----------------
    s = sub.add_parser(
        "scan",
        help="Compute LD between all biallelic locus pairs within --span bases.",
    )
    s.add_argument("--vcf", required=True, type=_path_exists, help="Input VCF (.vcf/.vcf.gz).")
    s.add_argument("--outdir", required=True, help="Output directory.")
    s.add_argument(
        "--span",
        type=_non_negative_int,
        default=DEFAULT_SPAN,
        help=f"Window span in bases (default: {DEFAULT_SPAN}).",
    )
    s.add_argument(
        "--r2-cutoff",
        type=_unit_float,
        default=DEFAULT_R2_CUTOFF,
        help="Only report allele pairs with r^2 >= this value (default: 0).",
    )
    s.add_argument(
        "--require-pass",
        action="store_true",
        help="Skip loci whose FILTER is not PASS.",
    )
    s.add_argument(
        "--ld-pairs-tsv",
        default=None,
        help="Optional path for the results TSV.GZ (default: outdir/ld_pairs.tsv.gz).",
    )
    s.add_argument("--no-report", action="store_true", help="Do not write plots or report.html.")
    s.add_argument("--no-progress", action="store_true", help="Disable the progress bar.")
    s.add_argument("--dry-run", action="store_true", help="Validate inputs and print planned outputs.")
    s.add_argument("--resume", action="store_true", help="Skip if outputs already exist.")
    s.add_argument("-v", "--verbose", action="count", default=0, help="Increase verbosity (-v/-vv).")

    return p


# -----------------
# Command handlers
# -----------------

def cmd_quickstart() -> int:
    lines = [
        "vcfld quickstart (copy/paste):",
        "",
        "1) LD within 10 kb (default span), all pairs:",
        "   vcfld scan \\",
        "     --vcf calls.vcf.gz \\",
        "     --outdir results/",
        "   Outputs: results/ld_pairs.tsv.gz, results/report.html, results/summary.json",
        "",
        "2) Strong LD only, wider window, PASS loci only:",
        "   vcfld scan \\",
        "     --vcf calls.vcf.gz \\",
        "     --outdir strong_ld/ \\",
        "     --span 50000 --r2-cutoff 0.8 --require-pass",
        "",
        "3) Try it on toy data:",
        "   vcfld make-toy-data --outdir toy/",
        "   vcfld scan --vcf toy/toy.vcf.gz --outdir toy_ld/",
        "",
        "Tip: use --dry-run to validate inputs and print the planned outputs.",
    ]
    print("\n".join(lines))
    return 0


def cmd_make_toy_data(args: argparse.Namespace) -> int:
    outdir = Path(args.outdir).expanduser().resolve()
    if args.dry_run:
        print(f"Would write toy data into: {outdir}")
        return 0

    try:
        summary = make_toy_data(outdir=outdir)
    except Exception as e:
        return _handle_error(e, log_path=None)
    print(json.dumps(summary, indent=2))
    return 0


def cmd_scan(args: argparse.Namespace) -> int:
    outdir = Path(args.outdir).expanduser().resolve()
    log_path = _log_path(outdir, "scan.log")
    _setup_logging(args.verbose, logfile=None if args.dry_run else log_path)

    logger = logging.getLogger("vcfld")
    logger.info("vcfld %s", __version__)

    try:
        if args.dry_run:
            header = _vcf_header_summary(args.vcf)
            print("Dry-run: inputs look OK.")
            print(f"Samples in VCF header: {header['samples']}")
            print(f"Contigs in VCF header: {len(header['contigs'])}")
            print(f"Window span: {args.span} bp; r2 cutoff: {args.r2_cutoff}")
            print("Planned outputs:")
            print(f"  ld_pairs.tsv.gz -> {args.ld_pairs_tsv or outdir / 'ld_pairs.tsv.gz'}")
            print(f"  summary.json -> {outdir / 'summary.json'}")
            if not args.no_report:
                print(f"  report.html -> {outdir / 'report.html'}")
            return 0

        outdir = ensure_outdir(outdir)

        if args.resume and (outdir / "summary.json").exists():
            logger.info("Resume enabled: summary.json already exists in %s", outdir)
            print(str(outdir / "summary.json"))
            return 0

        run = run_ld_scan(
            vcf_path=args.vcf,
            outdir=outdir,
            span=int(args.span),
            r2_cutoff=float(args.r2_cutoff),
            require_pass=bool(args.require_pass),
            ld_pairs_tsv_gz=args.ld_pairs_tsv,
            progress=not bool(args.no_progress),
        )

        if args.no_report:
            print(str(run["ld_pairs_tsv_gz"]))
            return 0

        plots_dir = outdir / "plots"
        plots_dir.mkdir(parents=True, exist_ok=True)

        r2_png = plots_dir / "r2_hist.png"
        decay_png = plots_dir / "ld_decay.png"

        plot_r2_hist(
            bin_edges=run["r2_hist"]["bin_edges"],
            counts=run["r2_hist"]["counts"],
            out_png=r2_png,
        )
        plot_ld_decay(
            bin_edges=run["ld_decay"]["bin_edges"],
            mean_r2=run["ld_decay"]["mean_r2"],
            out_png=decay_png,
        )

        plots_rel = {
            "r2_hist": str(Path("plots") / r2_png.name),
            "ld_decay": str(Path("plots") / decay_png.name),
        }

        report_path = render_report(
            outdir=outdir,
            version=__version__,
            run=run,
            plots=plots_rel,
        )

        logger.info("Report written: %s", report_path)
        print(str(report_path))
        return 0
    except Exception as e:
        return _handle_error(e, log_path=None if args.dry_run else log_path)


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.cmd == "quickstart":
        return cmd_quickstart()
    if args.cmd == "make-toy-data":
        return cmd_make_toy_data(args)
    if args.cmd == "scan":
        return cmd_scan(args)

    parser.error(f"Unknown command: {args.cmd}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
