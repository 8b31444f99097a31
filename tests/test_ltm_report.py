"""
Tests for ltm_report entry point.

Tests end-to-end generation including:
- Safe file naming and saving
- Combined and per-subject documents
- CSV export for the spreadsheet step
"""

import argparse
import csv
from pathlib import Path

import pytest

from ltm_report import (
    ReportGenerator,
    build_parser,
    run_report,
    safe_filename,
    safe_save,
    write_csv_arrays,
)


SAMPLES_DIR = Path(__file__).resolve().parent.parent / "samples"
DEFINITION = SAMPLES_DIR / "ltm_report.yaml"
DATA = SAMPLES_DIR / "ltm_data.json"


class TestFileHelpers:
    """Tests for naming and saving helpers."""

    def test_safe_filename(self):
        assert safe_filename("LTM Report") == "LTM_Report"
        assert safe_filename("bigip-01.example.net") == "bigip-01.example.net"
        assert safe_filename("../../etc") == "etc"
        assert safe_filename("???") == "report"

    def test_safe_save_creates_parent(self, tmp_path):
        target = tmp_path / "nested" / "report.html"
        saved = safe_save("<html></html>", target)

        assert saved == target
        assert target.read_text(encoding="utf-8") == "<html></html>"

    def test_write_csv_arrays(self, tmp_path):
        saved = write_csv_arrays({"pools": [["Name"], ["web, pool"]]}, tmp_path)

        with saved[0].open(encoding="utf-8", newline="") as handle:
            assert list(csv.reader(handle)) == [["Name"], ["web, pool"]]


class TestReportGenerator:
    """End-to-end tests on the sample definition and data."""

    def test_one_big_report(self, tmp_path):
        saved = ReportGenerator(str(DEFINITION), str(DATA), output_dir=str(tmp_path)).generate()

        assert saved == [tmp_path / "LTM_Report.html"]
        document = saved[0].read_text(encoding="utf-8")
        assert "bigip-01.example.net" in document
        assert "bigip-02.example.net" in document
        assert "iRules" not in document

    def test_sample_colorizing(self, tmp_path):
        saved = ReportGenerator(str(DEFINITION), str(DATA), output_dir=str(tmp_path)).generate()
        document = saved[0].read_text(encoding="utf-8")

        assert 'class="alert"' in document
        assert 'class="warning"' in document
        assert 'class="even"' in document

    def test_individual_reports(self, tmp_path):
        saved = ReportGenerator(
            str(DEFINITION),
            str(DATA),
            output_dir=str(tmp_path),
            output_method="IndividualReport",
            html_mode="EmailFriendly",
        ).generate()

        assert sorted(path.name for path in saved) == [
            "bigip-01.example.net.html",
            "bigip-02.example.net.html",
        ]

    def test_excel_export(self, tmp_path):
        saved = ReportGenerator(
            str(DEFINITION),
            str(DATA),
            output_dir=str(tmp_path / "html"),
            report_type="ExcelExport",
            output_method="NoReport",
            export_dir=str(tmp_path / "csv"),
        ).generate()

        assert saved == [tmp_path / "csv" / "virtualservers.csv"]
        with saved[0].open(encoding="utf-8", newline="") as handle:
            rows = list(csv.reader(handle))
        assert rows[0] == ["Name", "Destination", "Pool", "Availability"]
        assert rows[3] == ["vs_legacy", "192.0.2.12:80", "", "BLUE"]

    def test_missing_input(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ReportGenerator(str(tmp_path / "absent.yaml"), str(DATA))


class TestCli:
    """Tests for argument parsing and exit codes."""

    def test_parser_defaults(self):
        args = build_parser().parse_args(["report.yaml", "data.json"])

        assert args.definition == "report.yaml"
        assert args.data == "data.json"
        assert args.output_method is None
        assert args.verbose is False

    def test_parser_rejects_unknown_output_method(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["a.yaml", "b.json", "--output-method", "Fax"])

    def test_run_report_exit_codes(self, tmp_path):
        args = build_parser().parse_args(
            [str(DEFINITION), str(DATA), "-o", str(tmp_path)]
        )
        assert run_report(args) == 0

        args.report_type = "PdfExport"
        assert run_report(args) == 1

        missing = argparse.Namespace(**dict(vars(args), data=str(tmp_path / "absent.json")))
        assert run_report(missing) == 1
