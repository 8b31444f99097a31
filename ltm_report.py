"""
LTM Report Generator
Main entry point for rendering HTML reports from a report definition and
collected subject data.

Usage:
    uv run ltm_report.py report.yaml data.json
    uv run ltm_report.py report.yaml data.json -o out/              # Output folder
    uv run ltm_report.py report.yaml data.json --output-method IndividualReport
    uv run ltm_report.py report.yaml data.json --html-mode EmailFriendly
    uv run ltm_report.py report.yaml data.json --report-type ExcelExport --export-dir xls/
"""

import csv
import re
import sys
import time
import argparse
import logging
from pathlib import Path
from typing import Dict, List, Optional

from report_assembler import AssembledReport, ReportAssembler
from report_config import load_definition, load_report_data, populate_report_data
from report_model import ConfigurationError, OutputMethod

# ═══════════════════════════════════════════════════════════════════════════════
# CONSTANTS
# ═══════════════════════════════════════════════════════════════════════════════

# Output suffix
OUTPUT_SUFFIX = ".html"

# Characters not allowed in generated file names
_UNSAFE_NAME_RE = re.compile(r"[^\w.-]+")

# Logger
logger = logging.getLogger("ltm_report")


# ═══════════════════════════════════════════════════════════════════════════════
# LOGGING SETUP
# ═══════════════════════════════════════════════════════════════════════════════


class LogFormatter(logging.Formatter):
    """Custom log formatter with level-based prefixes"""

    PREFIXES = {
        logging.DEBUG: "[DEBUG]",
        logging.INFO: "[INFO]",
        logging.WARNING: "[WARNING]",
        logging.ERROR: "[ERROR]",
        logging.CRITICAL: "[CRITICAL]",
    }

    def format(self, record: logging.LogRecord) -> str:
        prefix = self.PREFIXES.get(record.levelno, "[LOG]")
        return f"{prefix} {record.getMessage()}"


def setup_logging(verbose: bool = False):
    """Configure logging for the generator and the renderer modules"""
    level = logging.DEBUG if verbose else logging.INFO
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(LogFormatter())
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)


# ═══════════════════════════════════════════════════════════════════════════════
# SAFE SAVE
# ═══════════════════════════════════════════════════════════════════════════════


def safe_filename(name: str) -> str:
    """Turn a report title or subject into a file name stem."""
    cleaned = _UNSAFE_NAME_RE.sub("_", name).strip("._")
    return cleaned or "report"


def safe_save(content: str, output_path: Path) -> Path:
    """
    Save a document, handling permission errors.

    Args:
        content: Document markup to save
        output_path: Target save path

    Returns:
        Actual Path where file was saved
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)

    try:
        output_path.write_text(content, encoding="utf-8")
        logger.info("Saved: %s", output_path)
        return output_path
    except PermissionError:
        logger.warning("%s is locked. Saving with timestamp suffix.", output_path.name)
        timestamp = int(time.time())
        new_name = f"{output_path.stem}_{timestamp}{output_path.suffix}"
        new_path = output_path.with_name(new_name)
        new_path.write_text(content, encoding="utf-8")
        logger.info("Saved: %s", new_path)
        return new_path


def write_documents(report: AssembledReport, output_dir: Path) -> List[Path]:
    """Write each assembled document as <name>.html."""
    saved = []
    for name, document in report.documents.items():
        target = output_dir / f"{safe_filename(name)}{OUTPUT_SUFFIX}"
        saved.append(safe_save(document, target))
    return saved


def write_csv_arrays(arrays: Dict[str, List[List[str]]], export_dir: Path) -> List[Path]:
    """Write each exported section array as CSV for the spreadsheet step."""
    export_dir.mkdir(parents=True, exist_ok=True)
    saved = []
    for section_id, rows in arrays.items():
        target = export_dir / f"{safe_filename(section_id)}.csv"
        with target.open("w", encoding="utf-8", newline="") as handle:
            csv.writer(handle).writerows(rows)
        logger.info("Exported: %s (%d rows)", target, max(len(rows) - 1, 0))
        saved.append(target)
    return saved


# ═══════════════════════════════════════════════════════════════════════════════
# GENERATOR
# ═══════════════════════════════════════════════════════════════════════════════


class ReportGenerator:
    """Orchestrates loading, rendering and saving of one report run."""

    def __init__(
        self,
        definition_path: str,
        data_path: str,
        output_dir: Optional[str] = None,
        report_type: Optional[str] = None,
        html_mode: Optional[str] = None,
        output_method: Optional[str] = None,
        export_dir: Optional[str] = None,
    ):
        self.definition_path = Path(definition_path).resolve()
        self.data_path = Path(data_path).resolve()
        self.output_dir = Path(output_dir) if output_dir else Path.cwd()
        self.report_type = report_type
        self.html_mode = html_mode
        self.output_method = output_method
        self.export_dir = Path(export_dir) if export_dir else None
        self._validate_input()

    def _validate_input(self):
        """Validate that the input files exist"""
        for path in (self.definition_path, self.data_path):
            if not path.exists():
                raise FileNotFoundError(f"Input file not found: {path}")
            if not path.is_file():
                raise FileNotFoundError(f"Not a file: {path}")

    def generate(self) -> List[Path]:
        """Execute the pipeline: Load -> Render -> Save."""
        start_time = time.perf_counter()

        # ── Stage 1: Load ───────────────────────────────────────────────────
        definition = load_definition(self.definition_path)
        subjects = populate_report_data(definition, load_report_data(self.data_path))
        logger.info("Sections: %d, subjects: %d", len(definition.sections), len(subjects))

        report_type = self.report_type or definition.settings.report_types[0]
        assembler = ReportAssembler(
            definition,
            report_type,
            html_mode=self.html_mode,
            output_method=OutputMethod.from_name(self.output_method) if self.output_method else None,
        )

        # ── Stage 2: Render ─────────────────────────────────────────────────
        report = assembler.assemble(subjects)
        if report.failed_subjects:
            logger.warning("Failed subjects: %s", ", ".join(report.failed_subjects))

        # ── Stage 3: Save ───────────────────────────────────────────────────
        saved = write_documents(report, self.output_dir)
        if self.export_dir is not None:
            saved.extend(write_csv_arrays(assembler.export_arrays(subjects), self.export_dir))

        elapsed = time.perf_counter() - start_time
        logger.info("Report completed in %.2fs", elapsed)
        return saved


def run_report(args) -> int:
    """Execute one report run from parsed CLI arguments."""
    try:
        generator = ReportGenerator(
            definition_path=args.definition,
            data_path=args.data,
            output_dir=args.output_dir,
            report_type=args.report_type,
            html_mode=args.html_mode,
            output_method=args.output_method,
            export_dir=args.export_dir,
        )
        saved = generator.generate()

        print(f"\n{'=' * 65}")
        print("  Report complete!")
        for path in saved:
            print(f"  Output: {path}")
        print(f"{'=' * 65}\n")
        return 0

    except FileNotFoundError as e:
        logger.error("%s", e)
        return 1
    except ConfigurationError as e:
        logger.error("Configuration error: %s", e)
        return 1
    except Exception as e:
        logger.error("Report failed: %s", e)
        if args.verbose:
            import traceback

            traceback.print_exc()
        return 1


# ═══════════════════════════════════════════════════════════════════════════════
# CLI
# ═══════════════════════════════════════════════════════════════════════════════


def build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser"""
    parser = argparse.ArgumentParser(
        description="Render HTML reports from a report definition and collected data",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    uv run ltm_report.py report.yaml data.json                       # One combined report
    uv run ltm_report.py report.yaml data.json -o reports/           # Output folder
    uv run ltm_report.py report.yaml data.json --output-method IndividualReport
    uv run ltm_report.py report.yaml data.json --html-mode EmailFriendly
        """,
    )

    parser.add_argument("definition", help="Report definition (YAML)")
    parser.add_argument("data", help="Collected subject data (JSON or YAML)")

    parser.add_argument(
        "-o",
        "--output-dir",
        type=str,
        help="Directory for generated documents (default: current directory)",
    )

    # Rendering options
    render_group = parser.add_argument_group("rendering options")
    render_group.add_argument(
        "-t",
        "--report-type",
        type=str,
        help="Report type selecting each section's layout (default: first declared type)",
    )
    render_group.add_argument(
        "--html-mode",
        type=str,
        help="Markup family: DynamicGrid or EmailFriendly (default: from definition)",
    )
    render_group.add_argument(
        "--output-method",
        type=str,
        choices=[method.value for method in OutputMethod],
        help="OneBigReport, IndividualReport or NoReport (default: from definition)",
    )
    render_group.add_argument(
        "--export-dir",
        type=str,
        help="Also write each section's rows as CSV to this directory",
    )

    # Verbosity
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose (debug) output",
    )

    return parser


def main():
    """Main entry point with CLI argument parsing"""
    parser = build_parser()
    args = parser.parse_args()

    setup_logging(verbose=args.verbose)
    sys.exit(run_report(args))


if __name__ == "__main__":
    main()
