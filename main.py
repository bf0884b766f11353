"""
main.py — Practice Report Generator — CLI Entry Point.

Renders client reports and drill-down tables to HTML and PDF, or starts the
PDF / review server. Stages share data in memory.

Usage:
    python main.py --report bundle.json                     # HTML report
    python main.py --report bundle.json --pdf               # + browser PDF
    python main.py --report kpis.csv --choose overview="Custom text"
    python main.py --report bundle.json --summary-pdf       # ReportLab PDF
    python main.py --drilldown scores.csv --pdf
    python main.py --report bundle.json --pdf-url           # via running PDF service
    python main.py --serve                                  # POST /pdf + reviewer UI

Outputs (data/output/):
    report_{client}.html / .pdf         — client report
    report_{client}_summary.pdf         — ReportLab summary
    drilldown_{stem}.html / .pdf        — drill-down table
"""

import argparse
import logging
import logging.handlers
import os
import re
import sys
from datetime import datetime
from pathlib import Path


def _configure_logging(log_dir: str = "logs", level: str = "INFO") -> None:
    """Configure rotating file handler + stream handler.

    Args:
        log_dir: Directory for log files.
        level: Log level string.
    """
    effective_level = os.environ.get("LOG_LEVEL", level).upper()
    numeric = getattr(logging, effective_level, logging.INFO)

    Path(log_dir).mkdir(parents=True, exist_ok=True)
    log_file = Path(log_dir) / f"practice_report_{datetime.today().strftime('%Y%m%d')}.log"

    fmt = logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(name)-35s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    fh = logging.handlers.RotatingFileHandler(
        log_file, maxBytes=10 * 1024 * 1024, backupCount=7, encoding="utf-8"
    )
    fh.setFormatter(fmt)
    sh = logging.StreamHandler(sys.stdout)
    sh.setFormatter(fmt)

    root = logging.getLogger()
    root.setLevel(numeric)
    root.addHandler(fh)
    root.addHandler(sh)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def _parse_choice(value: str) -> tuple[str, str]:
    """argparse type for ``SECTION=TEXT``."""
    section_id, sep, text = value.partition("=")
    if not sep or not section_id:
        raise argparse.ArgumentTypeError(f"expected SECTION=TEXT, got {value!r}")
    return section_id.strip(), text


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="practice-report",
        description="Practice Report Generator — HTML + PDF rendering and review server.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --report bundle.json --pdf
  python main.py --report kpis.csv --choose overview="Our own overview"
  python main.py --drilldown scores.csv
  python main.py --report bundle.json --pdf-url http://pdf-host:3001/pdf
  python main.py --serve --config custom.yaml --log-level DEBUG
        """,
    )
    parser.add_argument("--config", default="config.yaml",
                        help="Path to config.yaml (default: config.yaml)")
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--output-dir", default=None,
                        help="Override paths.output_dir from config")

    inputs = parser.add_argument_group("Inputs")
    inputs.add_argument("--report", metavar="FILE",
                        help="Report bundle (.json) or KPI CSV (name,value,delta)")
    inputs.add_argument("--drilldown", metavar="CSV",
                        help="Drill-down scoring CSV")
    inputs.add_argument("--choose", metavar="SECTION=TEXT", action="append",
                        type=_parse_choice, default=[],
                        help="Text to use for a report section (repeatable)")

    outputs = parser.add_argument_group("Outputs")
    outputs.add_argument("--pdf", action="store_true",
                         help="Print the HTML to PDF with headless Chromium")
    outputs.add_argument("--pdf-url", metavar="URL", nargs="?", const="", default=None,
                         help="Export the PDF through a running PDF service instead of a "
                              "local browser (default URL: server.pdf_url)")
    outputs.add_argument("--summary-pdf", action="store_true",
                         help="Build the ReportLab summary PDF (report only)")
    outputs.add_argument("--serve", action="store_true",
                         help="Run the PDF endpoint and review UI server")
    return parser.parse_args()


def _slug(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "_", text.lower()).strip("_") or "report"


def run(args: argparse.Namespace, cfg: dict, logger: logging.Logger) -> int:
    """Execute the requested stages.

    Args:
        args: Parsed CLI arguments.
        cfg: Loaded configuration.
        logger: Configured logger.

    Returns:
        0 on success, 1 on error.
    """
    from practice_report.pdf_service import html_to_pdf
    from practice_report.reviewer import ReviewError, ReviewSession

    output_dir = Path(args.output_dir or cfg["paths"]["output_dir"])
    output_dir.mkdir(parents=True, exist_ok=True)

    for source, prefix in ((args.report, "report"), (args.drilldown, "drilldown")):
        if not source:
            continue
        logger.info("=" * 65)
        logger.info("%s: %s", prefix.upper(), source)
        logger.info("=" * 65)

        path = Path(source)
        session = ReviewSession(cfg)
        try:
            text = path.read_text(encoding="utf-8-sig")
            # A report CSV that is not a KPI sheet is still loaded as a drill-down.
            kind = session.upload(path.name, text)
            if session.bundle is not None:
                for section_id, chosen in args.choose:
                    session.choose(section_id, chosen)
            html = session.preview_html()
        except FileNotFoundError as exc:
            logger.error("Input missing: %s", exc)
            return 1
        except ReviewError as exc:
            logger.error("Could not load %s: %s", path, exc)
            return 1

        stem = _slug(session.bundle.client_name) if session.bundle else _slug(path.stem)
        base = output_dir / f"{prefix}_{stem}"
        html_path = base.with_suffix(".html")
        html_path.write_text(html, encoding="utf-8")
        logger.info("HTML written: %s (%s)", html_path, kind)

        if args.pdf or args.pdf_url is not None:
            try:
                pdf_path = base.with_suffix(".pdf")
                if args.pdf_url is not None:
                    pdf_bytes = session.export_pdf(args.pdf_url or None)
                else:
                    pdf_bytes = html_to_pdf(html, cfg)
                pdf_path.write_bytes(pdf_bytes)
                logger.info("PDF written: %s", pdf_path)
            except Exception as exc:
                logger.error("PDF generation failed: %s", exc, exc_info=True)
                return 1

        if args.summary_pdf:
            if session.bundle is None:
                logger.warning("--summary-pdf needs a report bundle; skipped for %s", path)
                continue
            from practice_report.pdf_builder import build_summary_pdf
            try:
                summary_path = output_dir / f"{prefix}_{stem}_summary.pdf"
                summary_path.write_bytes(build_summary_pdf(session.bundle, session.chosen, cfg))
                logger.info("Summary PDF written: %s", summary_path)
            except Exception as exc:
                logger.error("Summary PDF generation failed: %s", exc, exc_info=True)
                return 1

    if args.serve:
        from practice_report.server import serve
        logger.info("=" * 65)
        logger.info("SERVER: http://%s:%s", cfg["server"]["host"], cfg["server"]["port"])
        logger.info("=" * 65)
        serve(cfg)

    return 0


def main() -> None:
    """Parse args, configure logging, and run."""
    args = _parse_args()

    from practice_report.config import load_config
    cfg = load_config(args.config)

    _configure_logging(log_dir=cfg["paths"]["log_dir"], level=args.log_level)
    logger = logging.getLogger(__name__)

    if not any([args.report, args.drilldown, args.serve]):
        import subprocess
        subprocess.run([sys.executable, __file__, "--help"])
        sys.exit(0)

    logger.info(
        "Practice Report Generator v1.0 | %s",
        datetime.today().strftime("%Y-%m-%d %H:%M:%S"),
    )
    sys.exit(run(args, cfg, logger))


if __name__ == "__main__":
    main()
