"""
Section Renderer Module for LTM Report Renderer
Renders one SectionDefinition for one subject into a RenderedFragment.

Pipeline per data section:
    records -> column projections -> horizontal table or vertical
    property tables -> colorizer post-processing -> width container
"""

import html
import logging
import re
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

from html_templates import TemplateFamily, fill
from property_flattener import flatten
from report_model import (
    Orientation,
    RenderSpec,
    ReportSettings,
    SectionDefinition,
    WidthClass,
)
from table_colorizer import apply_rules


logger = logging.getLogger(__name__)


_TAG_RE = re.compile(r"<[^>]+>")


@dataclass(frozen=True)
class RenderedFragment:
    """Markup for one section plus the layout slots it consumes"""

    markup: str = ""
    slots_needed: int = 0
    slots_per_row: int = 0
    section_override: bool = False
    section_id: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.markup


EMPTY_FRAGMENT = RenderedFragment()


def project_rows(spec: RenderSpec, records: Sequence[Any], na_marker: str) -> List[List[str]]:
    """Project every record through the declared columns, in declared order."""
    return [[column.project(record, na_marker) for column in spec.columns] for record in records]


def plain_text(markup: str) -> str:
    """Strip tags and entities from a projected cell."""
    return html.unescape(_TAG_RE.sub("", markup)).strip()


def to_rectangular_array(
    spec: RenderSpec,
    records: Sequence[Any],
    na_marker: str,
    include_header: bool = True,
) -> List[List[str]]:
    """
    Rows for the spreadsheet collaborator.

    Row 0 holds the column labels; the remaining rows hold stringified cell
    values with the N/A marker replaced by "".
    """
    array: List[List[str]] = [list(spec.labels)] if include_header else []
    for row in project_rows(spec, records, na_marker):
        values = [plain_text(cell) for cell in row]
        array.append(["" if value == na_marker else value for value in values])
    return array


# ═══════════════════════════════════════════════════════════════════════════════
# SECTION RENDERER
# ═══════════════════════════════════════════════════════════════════════════════


class SectionRenderer:
    """Renders sections for one report type and one template family."""

    def __init__(self, settings: ReportSettings, templates: TemplateFamily, report_type: str):
        self.settings = settings
        self.templates = templates
        self.report_type = report_type

    def render(self, section: SectionDefinition, subject: str) -> RenderedFragment:
        if section.is_break:
            return self._render_break(section, subject)
        return self._render_data(section, subject)

    # ── Section breaks ──────────────────────────────────────────────────────

    def _render_break(self, section: SectionDefinition, subject: str) -> RenderedFragment:
        if self.settings.skip_section_breaks:
            logger.debug("Skipping section break %s", section.id)
            return EMPTY_FRAGMENT

        banner = fill(
            self.templates.section_break,
            html.escape(subject),
            1,
            html.escape(section.title),
        )
        return RenderedFragment(
            markup=self.templates.wrap_container(WidthClass.FULL, banner),
            slots_needed=WidthClass.FULL.slots_needed,
            slots_per_row=WidthClass.FULL.slots_per_row,
            section_id=section.id,
        )

    # ── Data sections ───────────────────────────────────────────────────────

    def _render_data(self, section: SectionDefinition, subject: str) -> RenderedFragment:
        spec = section.spec_for(self.report_type)
        if spec is None:
            logger.debug("Section %s has no %s layout; skipped", section.id, self.report_type)
            return EMPTY_FRAGMENT

        records = section.records_for(subject)
        if not records and not section.show_even_with_no_data:
            logger.debug("Section %s has no data for %s", section.id, subject)
            return EMPTY_FRAGMENT

        orientation = spec.effective_orientation(self.settings.vertical_threshold)
        rows = project_rows(spec, records, self.settings.na_marker)

        if orientation is Orientation.VERTICAL:
            table = self._vertical_table(section, subject, spec, rows)
        else:
            table = self._horizontal_table(section, subject, spec, rows)

        if self.settings.post_processing_enabled and section.post_processing:
            table = apply_rules(table, section.post_processing)

        return RenderedFragment(
            markup=self.templates.wrap_container(spec.width, table),
            slots_needed=spec.width.slots_needed,
            slots_per_row=spec.width.slots_per_row,
            section_override=spec.section_override,
            section_id=section.id,
        )

    def _header_rows(self, section: SectionDefinition, subject: str, colspan: int) -> List[str]:
        rows = [fill(self.templates.title_row, html.escape(subject), colspan, html.escape(section.title))]
        if section.comment:
            rows.append(
                fill(self.templates.comment_row, html.escape(subject), colspan, html.escape(section.comment))
            )
        return rows

    def _horizontal_table(
        self,
        section: SectionDefinition,
        subject: str,
        spec: RenderSpec,
        rows: List[List[str]],
    ) -> str:
        colspan = len(spec.columns)
        parts = [self.templates.table_open, "<thead>"]
        parts.extend(self._header_rows(section, subject, colspan))
        parts.append('<tr class="columnHeaders">')
        parts.extend(f"<th>{html.escape(label)}</th>" for label in spec.labels)
        parts.append("</tr></thead><tbody>")
        for row in rows:
            parts.append("<tr>" + "".join(f"<td>{cell}</td>" for cell in row) + "</tr>")
        parts.append("</tbody>" + self.templates.table_close)
        return "".join(parts)

    def _vertical_table(
        self,
        section: SectionDefinition,
        subject: str,
        spec: RenderSpec,
        rows: List[List[str]],
    ) -> str:
        parts = [self.templates.table_open, "<thead>"]
        parts.extend(self._header_rows(section, subject, 1))
        parts.append("</thead><tbody>")
        for index, row in enumerate(rows):
            if index:
                parts.append(fill(self.templates.divider_row, html.escape(subject), 1, ""))
            projected = dict(zip(spec.labels, row))
            parts.append("<tr><td>" + self._property_table(projected, spec.labels) + "</td></tr>")
        parts.append("</tbody>" + self.templates.table_close)
        return "".join(parts)

    @staticmethod
    def _property_table(projected: dict, labels: Optional[Sequence[str]] = None) -> str:
        pairs = flatten(projected, fields=labels)
        body = "".join(
            f"<tr><th>{html.escape(label)}</th><td>{value}</td></tr>" for label, value in pairs
        )
        return f'<table class="propertyTable"><tbody>{body}</tbody></table>'
