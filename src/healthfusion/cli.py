"""Command-line interface for healthfusion."""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from healthfusion.config.loader import configure_from_cli
from healthfusion.config.resolvers import resolve_log_dir, sensor_file_for
from healthfusion.config.settings import Settings, set_settings
from healthfusion.domain.exceptions import ConfigurationError, HealthFusionError, InputFileNotFoundError
from healthfusion.reporting import HealthReportBuilder, ReportResult
from healthfusion.runners.pipeline import run_fusion_batch
from healthfusion.utils.logging import setup_logging


def _add_common_options(p: argparse.ArgumentParser) -> None:
    scoring = p.add_argument_group("Scoring Options")
    scoring.add_argument("--gpu-sentinel-checks", action="store_true",
                         help="Reject 0 and -1 GPU temperatures as sentinel values.")
    scoring.add_argument("--vram-slack", type=float, metavar="FRACTION",
                         help="Tolerance for used VRAM above the reported total (default: 0.10).")
    scoring.add_argument("--expected-sections", type=int, metavar="N",
                         help="Number of health domains expected for full coverage (default: 8).")

    output = p.add_argument_group("Output Options")
    output.add_argument("-o", "--output", metavar="PATH", help="Write the JSON result to PATH.")
    output.add_argument("--indent", type=int, metavar="N", help="JSON indentation (default: 2).")
    output.add_argument("--include-snapshot", action="store_true",
                        help="Include the assembled metric snapshot in JSON output.")

    diag = p.add_argument_group("Logging Options")
    diag.add_argument("--debug", action="store_true", help="Verbose logging and configuration dump.")
    diag.add_argument("--quiet", action="store_true", help="Only errors reach the console.")
    diag.add_argument("--log-dir", metavar="PATH",
                      help="Directory for log files (default: per-user log directory).")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="healthfusion",
        description="Fuse an external machine-health scan with hardware sensor data "
                    "into one confidence-weighted health report.",
    )
    sub = parser.add_subparsers(dest="cmd", required=True)

    report = sub.add_parser("report", help="Build the health report for one scan document")
    report.add_argument("input", metavar="DOCUMENT", help="Scan document (JSON).")
    report.add_argument("-s", "--sensors", metavar="PATH",
                        help="Hardware sensor snapshot (default: <stem>.sensors.json next to DOCUMENT).")
    report.add_argument("--drivers", metavar="PATH", help="Driver inventory (JSON).")
    report.add_argument("--updates", metavar="PATH", help="Update status (JSON).")
    report.add_argument("--json", action="store_true", help="Print the full report as JSON.")
    _add_common_options(report)

    batch = sub.add_parser("batch", help="Build reports for many scan documents")
    source = batch.add_mutually_exclusive_group(required=True)
    source.add_argument("-i", "--input", nargs="+", metavar="DOCUMENT", help="Scan documents to score.")
    source.add_argument("-d", "--input-dir", metavar="DIR",
                        help="Directory of scan documents; *.sensors.json files are paired, not scored.")
    batch.add_argument("-R", "--recursive", action="store_true", help="Descend into subdirectories of DIR.")
    batch.add_argument("--no-progress", action="store_true", help="Hide the progress bar.")
    batch.add_argument("--fail-fast", action="store_true", help="Stop at the first unreadable input.")
    batch.add_argument("--dry-run", action="store_true",
                       help="Validate the configuration and list inputs without scoring.")
    _add_common_options(batch)
    return parser


def _read_json(path: str):
    p = Path(path)
    if not p.is_file():
        raise InputFileNotFoundError(str(p))
    return json.loads(p.read_text(encoding="utf-8-sig"))


def _run_report(args, settings: Settings, logger: logging.Logger) -> None:
    document = Path(args.input)
    if not document.is_file():
        raise InputFileNotFoundError(str(document))

    sensors_path = args.sensors or sensor_file_for(document, settings.processing.sensor_suffix)
    sensors = _read_json(str(sensors_path)) if sensors_path else None
    drivers = _read_json(args.drivers) if args.drivers else None
    updates = _read_json(args.updates) if args.updates else None

    result = HealthReportBuilder(settings).build(
        document.read_bytes(),
        sensors=sensors,
        drivers=drivers,
        updates=updates,
        source_name=document.name,
    )
    logger.info("Report built for %s: %d (%s)", document.name, result.report.global_score, result.report.grade)

    payload = json.dumps(
        result.as_dict(include_snapshot=settings.output.include_snapshot),
        indent=settings.output.indent,
        ensure_ascii=False,
        default=str,
    )
    if settings.output.output_path:
        settings.output.output_path.write_text(payload, encoding="utf-8")
        logger.info("Output: %s", settings.output.output_path)
    if settings.output.json_output:
        print(payload)
    else:
        _print_report_summary(result)


def _print_report_summary(result: ReportResult) -> None:
    report = result.report
    conf = report.confidence_model
    print("\n" + "=" * 60)
    print("HEALTH REPORT")
    print("=" * 60)
    print(f"Score:        {report.global_score}/100 ({report.grade})")
    print(f"Verdict:      {report.verdict}")
    print(f"Confidence:   {conf.confidence_score} ({conf.confidence_level})")
    print(f"Collection:   {report.collection_status}")
    if report.final_score:
        print(f"Formula:      {report.final_score.formula}")
    print("-" * 60)
    for section in report.sections:
        score = f"{section.score:>3}" if section.has_data else "  -"
        print(f"{section.domain.display_name:<18} {score}  {section.severity.label:<9} {section.status_message}")
    if report.recommendations:
        print("-" * 60)
        print("Recommendations:")
        for rec in report.recommendations:
            print(f"  [{rec.priority.label}] {rec.title}: {rec.description}")
    print("=" * 60)
    print()


def _print_dry_run_summary(settings: Settings) -> None:
    inputs = [str(p) for p in settings.input_files]
    source = f"{len(inputs)} file(s)" if inputs else f"directory {settings.input_directory}"
    rows = (
        ("Inputs", source),
        ("Recursive", settings.recursive),
        ("Output path", settings.output.output_path or "-"),
        ("Expected sections", settings.confidence.expected_sections),
        ("GPU sentinels", settings.normalization.gpu_sentinel_checks),
        ("Stop on error", not settings.processing.continue_on_error),
    )
    print("\n" + "=" * 60)
    print("DRY RUN SUMMARY")
    print("=" * 60)
    for label, value in rows:
        print(f"{label + ':':<20}{value}")
    for i, path in enumerate(inputs[:5], start=1):
        print(f"  {i}. {path}")
    if len(inputs) > 5:
        print(f"  ... {len(inputs) - 5} more")
    print()


def _report_failure(e: HealthFusionError) -> None:
    kind = "Configuration error" if isinstance(e, ConfigurationError) else "Error"
    logging.error("%s: %s", kind, e.message)
    for suggestion in e.suggestions:
        logging.error("  hint: %s", suggestion)


def _run(args, settings: Settings) -> int:
    logger, summary_logger = setup_logging(
        log_dir=str(resolve_log_dir(settings.logging.log_dir)),
        console=settings.logging.console_output,
        level="DEBUG" if settings.debug_mode else settings.logging.level.value,
        quiet_console=settings.logging.quiet_console,
    )
    if settings.debug_mode:
        for section, values in settings.to_dict().items():
            logger.debug("config %s: %s", section, values)

    if args.cmd == "report":
        _run_report(args, settings, logger)
        return 0

    if settings.dry_run:
        logger.info("Dry run: configuration is valid")
        _print_dry_run_summary(settings)
        return 0

    res = run_fusion_batch(settings)
    summary_logger.info("Batch completed: %d succeeded, %d failed", res.n_succeeded, res.n_failed)
    if res.output_path:
        logger.info("Output: %s", res.output_path)
    return 0 if res.n_failed == 0 else 1


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point of the ``healthfusion`` command."""
    args = build_parser().parse_args(argv)
    try:
        settings = configure_from_cli(args)
        set_settings(settings)
        code = _run(args, settings)
    except HealthFusionError as e:
        _report_failure(e)
        code = 1
    except KeyboardInterrupt:
        logging.info("Interrupted by user")
        code = 130
    except Exception as e:
        logging.error("healthfusion failed: %s", e)
        if getattr(args, "debug", False):
            logging.exception("Traceback:")
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
