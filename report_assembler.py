"""
Report Assembler Module for LTM Report Renderer
Drives the section renderer and layout grouper across every subject and
every enabled section, and accumulates documents per output method.

Subjects are isolated: an exception while rendering one subject is logged
and the subject is left out; the remaining subjects still render. Problems
with shared setup (unknown report type or HTML mode) are raised at
construction and abort the whole run.
"""

import html
import logging
import time
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from html_templates import fill, get_template_family
from layout_grouper import LayoutGrouper
from report_model import (
    ConfigurationError,
    OutputMethod,
    ReportDefinition,
    SectionDefinition,
)
from section_renderer import SectionRenderer, to_rectangular_array


logger = logging.getLogger(__name__)


@dataclass
class AssembledReport:
    """Documents produced by one assembler run"""

    documents: Dict[str, str] = field(default_factory=dict)
    failed_subjects: List[str] = field(default_factory=list)
    rendered_subjects: List[str] = field(default_factory=list)
    fragment_count: int = 0

    def summary(self) -> str:
        return (
            "documents={documents} subjects={subjects} failed={failed} fragments={fragments}"
        ).format(
            documents=len(self.documents),
            subjects=len(self.rendered_subjects),
            failed=len(self.failed_subjects),
            fragments=self.fragment_count,
        )


class ReportAssembler:
    """Builds report documents for one report type."""

    def __init__(
        self,
        definition: ReportDefinition,
        report_type: str,
        html_mode: Optional[str] = None,
        output_method: Optional[OutputMethod] = None,
    ):
        self.definition = definition
        self.settings = definition.settings

        if report_type not in self.settings.report_types:
            raise ConfigurationError(
                f"Unknown report type {report_type!r} "
                f"(expected one of: {', '.join(self.settings.report_types)})"
            )
        self.report_type = report_type
        self.templates = get_template_family(html_mode or self.settings.html_mode)
        self.output_method = (
            OutputMethod.from_name(output_method) if output_method else self.settings.output_method
        )
        self.renderer = SectionRenderer(self.settings, self.templates, report_type)
        self._last_fragment_count = 0

    # ── Rendering ───────────────────────────────────────────────────────────

    def render_subject(self, subject: str) -> str:
        """Render every enabled section for one subject, grouped by width."""
        grouper = LayoutGrouper(self.templates)
        parts = [fill(self.templates.asset_header, html.escape(subject), 0, "")]
        fragments = 0

        for section in self.definition.enabled_sections():
            fragment = self.renderer.render(section, subject)
            if fragment.is_empty:
                continue
            parts.extend(grouper.place(fragment))
            fragments += 1

        parts.extend(grouper.finish())
        parts.append(fill(self.templates.asset_footer, html.escape(subject), 0, ""))
        self._last_fragment_count = fragments
        return "".join(parts)

    def wrap_document(self, body: str, title: Optional[str] = None) -> str:
        title = title or self.settings.report_title
        header = fill(self.templates.document_header, "", 0, html.escape(title))
        footer = fill(self.templates.document_footer, "", 0, html.escape(title))
        return header + body + footer

    def assemble(self, subjects: Optional[Iterable[str]] = None) -> AssembledReport:
        """
        Render all subjects and accumulate documents per output method.

        Args:
            subjects: Subjects to render (defaults to the definition's subjects)

        Returns:
            AssembledReport with documents keyed by report title or subject
        """
        start_time = time.perf_counter()
        subjects = list(subjects) if subjects is not None else self.definition.subjects()
        report = AssembledReport()

        if self.output_method is OutputMethod.NO_REPORT:
            logger.info("Output method is %s; no documents rendered", self.output_method.value)
            return report

        logger.info(
            "Rendering %d subject(s) as %s (%s)",
            len(subjects),
            self.report_type,
            self.templates.name,
        )

        bodies: List[str] = []
        for subject in subjects:
            try:
                body = self.render_subject(subject)
            except Exception as e:
                logger.warning("Subject %s failed to render: %s", subject, e)
                report.failed_subjects.append(subject)
                continue

            report.rendered_subjects.append(subject)
            report.fragment_count += self._last_fragment_count

            if self.output_method is OutputMethod.INDIVIDUAL_REPORT:
                title = f"{self.settings.report_title} - {subject}"
                report.documents[subject] = self.wrap_document(body, title)
            else:
                bodies.append(body)

        if self.output_method is OutputMethod.ONE_BIG_REPORT and bodies:
            report.documents[self.settings.report_title] = self.wrap_document("".join(bodies))

        elapsed = time.perf_counter() - start_time
        logger.info("Assembled %s in %.2fs", report.summary(), elapsed)
        return report

    # ── Spreadsheet hand-off ────────────────────────────────────────────────

    def export_section_array(self, section: SectionDefinition, subject: str) -> List[List[str]]:
        """Rectangular array of one section for one subject ([] when not exported)."""
        spec = section.spec_for(self.report_type)
        if section.is_break or spec is None:
            return []
        return to_rectangular_array(spec, section.records_for(subject), self.settings.na_marker)

    def export_arrays(self, subjects: Optional[Iterable[str]] = None) -> Dict[str, List[List[str]]]:
        """
        One array per exported section id, all subjects' rows under one header.

        Sections without a layout for this report type are left out, as are
        sections with no rows unless they are shown even without data.
        """
        subjects = list(subjects) if subjects is not None else self.definition.subjects()
        arrays: Dict[str, List[List[str]]] = {}

        for section in self.definition.enabled_sections():
            spec = section.spec_for(self.report_type)
            if section.is_break or spec is None:
                continue

            array = [list(spec.labels)]
            for subject in subjects:
                try:
                    array.extend(
                        to_rectangular_array(
                            spec,
                            section.records_for(subject),
                            self.settings.na_marker,
                            include_header=False,
                        )
                    )
                except Exception as e:
                    logger.warning("Export of %s for %s failed: %s", section.id, subject, e)

            if len(array) > 1 or section.show_even_with_no_data:
                arrays[section.id] = array

        logger.info("Exported %d section(s) for %s", len(arrays), self.report_type)
        return arrays
