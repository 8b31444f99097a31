"""
Tests for report_assembler module.

Tests assembling functionality including:
- Output methods
- Section ordering and grouping across subjects
- Per-subject failure isolation
- Spreadsheet arrays
"""

import pytest

from report_assembler import ReportAssembler
from report_config import field_column, link_column
from report_model import (
    ConfigurationError,
    Orientation,
    OutputMethod,
    RenderSpec,
    ReportDefinition,
    ReportSettings,
    SectionDefinition,
    SectionKind,
    WidthClass,
)


FULL_DOC = "FullDocumentation"
EXCEL = "ExcelExport"


def _columns():
    return (field_column("Name", "name"), field_column("State", "state"))


def _definition(output_method=OutputMethod.ONE_BIG_REPORT, **settings):
    half = RenderSpec(WidthClass.HALF, Orientation.HORIZONTAL, _columns())
    full = RenderSpec(WidthClass.FULL, Orientation.HORIZONTAL, _columns())
    sections = [
        SectionDefinition(
            id="pools",
            title="Pools",
            order=30,
            render_specs={FULL_DOC: full, EXCEL: full},
            all_data={
                "bigip-01": [{"name": "web_pool", "state": "up"}],
                "bigip-02": [{"name": "api_pool"}],
            },
        ),
        SectionDefinition(
            id="device",
            title="Device",
            order=10,
            render_specs={FULL_DOC: half},
            all_data={"bigip-01": [{"name": "bigip-01", "state": "active"}]},
        ),
        SectionDefinition(
            id="failover",
            title="Failover",
            order=20,
            render_specs={FULL_DOC: half},
            all_data={"bigip-01": [{"name": "peer", "state": "standby"}]},
        ),
        SectionDefinition(id="break", title="Traffic", order=25, kind=SectionKind.SECTION_BREAK),
        SectionDefinition(
            id="disabled",
            title="Disabled Section",
            order=40,
            enabled=False,
            render_specs={FULL_DOC: full},
            all_data={"bigip-01": [{"name": "hidden"}]},
        ),
    ]
    return ReportDefinition(
        settings=ReportSettings(output_method=output_method, **settings),
        sections=sections,
    )


# ═══════════════════════════════════════════════════════════════════════════════
# SETUP VALIDATION
# ═══════════════════════════════════════════════════════════════════════════════


class TestSetup:
    """Tests for shared-setup failures."""

    def test_unknown_report_type(self):
        with pytest.raises(ConfigurationError):
            ReportAssembler(_definition(), "PdfExport")

    def test_unknown_html_mode(self):
        with pytest.raises(ConfigurationError):
            ReportAssembler(_definition(), FULL_DOC, html_mode="Fancy")

    def test_output_method_override(self):
        assembler = ReportAssembler(
            _definition(), FULL_DOC, output_method=OutputMethod.INDIVIDUAL_REPORT
        )
        assert assembler.output_method is OutputMethod.INDIVIDUAL_REPORT


# ═══════════════════════════════════════════════════════════════════════════════
# RENDERING
# ═══════════════════════════════════════════════════════════════════════════════


class TestRenderSubject:
    """Tests for the per-subject section loop."""

    def test_sections_in_order_key_order(self):
        body = ReportAssembler(_definition(), FULL_DOC).render_subject("bigip-01")

        positions = [body.index(title) for title in ("Device", "Failover", "Traffic", "Pools")]
        assert positions == sorted(positions)

    def test_disabled_section_skipped(self):
        body = ReportAssembler(_definition(), FULL_DOC).render_subject("bigip-01")
        assert "Disabled Section" not in body

    def test_halves_grouped_in_one_row(self):
        body = ReportAssembler(_definition(), FULL_DOC).render_subject("bigip-01")

        # Device + Failover share a row; break and Pools get one each
        assert body.count('<div class="row">') == 3
        first_row = body.split('<div class="row">')[1]
        assert "Device" in first_row and "Failover" in first_row

    def test_subject_without_data_gets_only_breaks(self):
        body = ReportAssembler(_definition(), FULL_DOC).render_subject("bigip-03")

        assert "Traffic" in body
        assert "reportTable" not in body

    def test_email_friendly_mode(self):
        body = ReportAssembler(_definition(), FULL_DOC, html_mode="EmailFriendly").render_subject(
            "bigip-01"
        )
        assert body.count('<table class="layoutRow"') == 3


class TestOutputMethods:
    """Tests for accumulation strategies."""

    def test_one_big_report(self):
        report = ReportAssembler(_definition(), FULL_DOC).assemble()

        assert list(report.documents) == ["LTM Report"]
        document = report.documents["LTM Report"]
        assert document.startswith("<!DOCTYPE html>")
        assert "bigip-01" in document and "bigip-02" in document
        assert report.rendered_subjects == ["bigip-01", "bigip-02"]

    def test_individual_report(self):
        definition = _definition(OutputMethod.INDIVIDUAL_REPORT)
        report = ReportAssembler(definition, FULL_DOC).assemble()

        assert list(report.documents) == ["bigip-01", "bigip-02"]
        assert "web_pool" not in report.documents["bigip-02"]
        assert "<title>LTM Report - bigip-02</title>" in report.documents["bigip-02"]

    def test_no_report(self):
        report = ReportAssembler(_definition(OutputMethod.NO_REPORT), FULL_DOC).assemble()

        assert report.documents == {}
        assert report.rendered_subjects == []

    def test_explicit_subjects(self):
        report = ReportAssembler(_definition(), FULL_DOC).assemble(["bigip-02"])

        assert report.rendered_subjects == ["bigip-02"]
        assert "web_pool" not in report.documents["LTM Report"]

    def test_failing_subject_is_isolated(self, monkeypatch):
        """One subject failing does not stop the others."""
        assembler = ReportAssembler(_definition(), FULL_DOC)
        original = assembler.renderer.render

        def render(section, subject):
            if subject == "bigip-01":
                raise RuntimeError("collector returned garbage")
            return original(section, subject)

        monkeypatch.setattr(assembler.renderer, "render", render)
        report = assembler.assemble()

        assert report.failed_subjects == ["bigip-01"]
        assert report.rendered_subjects == ["bigip-02"]
        assert "api_pool" in report.documents["LTM Report"]

    def test_summary(self):
        report = ReportAssembler(_definition(), FULL_DOC).assemble()
        assert "subjects=2" in report.summary()
        assert "failed=0" in report.summary()


# ═══════════════════════════════════════════════════════════════════════════════
# SPREADSHEET ARRAYS
# ═══════════════════════════════════════════════════════════════════════════════


class TestExportArrays:
    """Tests for the rectangular-array hand-off."""

    def test_section_array(self):
        assembler = ReportAssembler(_definition(), EXCEL)
        section = assembler.definition.get_section("pools")

        assert assembler.export_section_array(section, "bigip-02") == [
            ["Name", "State"],
            ["api_pool", ""],
        ]

    def test_sections_without_layout_excluded(self):
        arrays = ReportAssembler(_definition(), EXCEL).export_arrays()

        assert list(arrays) == ["pools"]
        assert arrays["pools"] == [
            ["Name", "State"],
            ["web_pool", "up"],
            ["api_pool", ""],
        ]

    def test_link_cells_exported_as_text(self):
        spec = RenderSpec(
            WidthClass.FULL,
            Orientation.HORIZONTAL,
            (link_column("Pool", "#{name}", "{name}"),),
        )
        definition = ReportDefinition(
            sections=[
                SectionDefinition(
                    id="pools",
                    title="Pools",
                    order=1,
                    render_specs={EXCEL: spec},
                    all_data={"bigip-01": [{"name": "web & api"}]},
                )
            ]
        )
        arrays = ReportAssembler(definition, EXCEL).export_arrays()

        assert arrays["pools"] == [["Pool"], ["web & api"]]
