"""
Report Config Module for LTM Report Renderer
Loads report definitions and subject data from YAML/JSON files.

Definition layout:

    settings:
      title: LTM Report
      skip_section_breaks: false
      post_processing: true
      report_types: [FullDocumentation, ExcelExport]
      vertical_threshold: 10
      html_mode: DynamicGrid
      output_method: OneBigReport
    sections:
      - id: virtualservers
        title: Virtual Servers
        order: 20
        render:
          FullDocumentation:
            width: Full
            orientation: Auto
            columns:
              - {label: Name, field: name}
              - {label: Address, template: "{ip}:{port}"}
              - {label: Pool, link: {href: "#{pool}", text: "{pool}"}}
        post_processing:
          - {rule: by_value, column: Availability, value: RED, attribute_value: alert}
          - {rule: by_odd_rows, attribute_value: odd}

Column projections are built from these declarations; nothing in a
definition file is executed.

Dependencies:
    Required: pyyaml
"""

import html
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import yaml

from property_flattener import resolve_field
from report_model import (
    DEFAULT_REPORT_TYPES,
    ByEvenRows,
    ByOddRows,
    ByValue,
    ColorRule,
    ColumnProjection,
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
from table_colorizer import equals, get_predicate


logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# COLUMN PROJECTION BUILDERS
# ═══════════════════════════════════════════════════════════════════════════════


class _RecordView:
    """Mapping view over a record for str.format_map; missing fields are empty."""

    def __init__(self, record: Any):
        self.record = record

    def __getitem__(self, key: str) -> Any:
        return resolve_field(self.record, key)


def field_column(label: str, name: str) -> ColumnProjection:
    """Project a single field; missing values render as the N/A marker."""
    return ColumnProjection(label, lambda record: resolve_field(record, name, None))


def template_column(label: str, template: str) -> ColumnProjection:
    """Project a str.format template over the record's fields."""
    return ColumnProjection(label, lambda record: template.format_map(_RecordView(record)))


def link_column(label: str, href: str, text: Optional[str] = None) -> ColumnProjection:
    """Project a hyperlink; href and text are templates over the record's fields."""
    text = text or href

    def build(record: Any) -> str:
        view = _RecordView(record)
        target = html.escape(href.format_map(view), quote=True)
        caption = html.escape(text.format_map(view))
        return f'<a href="{target}">{caption}</a>'

    return ColumnProjection(label, build, raw_html=True)


def build_column(data: Mapping[str, Any], section_id: str) -> ColumnProjection:
    """Build a ColumnProjection from one declared column."""
    if not isinstance(data, Mapping) or "label" not in data:
        raise ConfigurationError(f"Section {section_id!r}: every column needs a label")

    label = str(data["label"])
    if "field" in data:
        return field_column(label, str(data["field"]))
    if "template" in data:
        return template_column(label, str(data["template"]))
    if "link" in data:
        link = data["link"]
        if isinstance(link, str):
            return link_column(label, link)
        if isinstance(link, Mapping) and "href" in link:
            return link_column(label, str(link["href"]), link.get("text"))
        raise ConfigurationError(f"Section {section_id!r}: link column {label!r} needs an href")

    # A bare label projects the field of the same name
    return field_column(label, label)


# ═══════════════════════════════════════════════════════════════════════════════
# BUILDERS
# ═══════════════════════════════════════════════════════════════════════════════


def build_rule(data: Mapping[str, Any], section_id: str) -> ColorRule:
    """Build a colorizer rule from one declared post-processing step."""
    if not isinstance(data, Mapping) or "rule" not in data:
        raise ConfigurationError(f"Section {section_id!r}: post-processing step needs a rule")

    kind = str(data["rule"]).strip().lower()
    attribute = str(data.get("attribute", "class"))
    if "attribute_value" not in data:
        raise ConfigurationError(f"Section {section_id!r}: rule {kind!r} needs attribute_value")
    attribute_value = str(data["attribute_value"])

    if kind == "by_value":
        if "column" not in data or "value" not in data:
            raise ConfigurationError(f"Section {section_id!r}: by_value needs column and value")
        predicate = get_predicate(data["predicate"]) if "predicate" in data else equals
        return ByValue(
            column=str(data["column"]),
            value=data["value"],
            attribute=attribute,
            attribute_value=attribute_value,
            predicate=predicate,
            whole_row=bool(data.get("whole_row", False)),
        )
    if kind == "by_even_rows":
        return ByEvenRows(attribute, attribute_value, bool(data.get("whole_row", True)))
    if kind == "by_odd_rows":
        return ByOddRows(attribute, attribute_value, bool(data.get("whole_row", True)))

    raise ConfigurationError(f"Section {section_id!r}: unknown rule {kind!r}")


def build_render_spec(data: Mapping[str, Any], section_id: str) -> RenderSpec:
    if not isinstance(data, Mapping):
        raise ConfigurationError(f"Section {section_id!r}: render spec must be a mapping")

    columns = data.get("columns") or []
    if not isinstance(columns, list):
        raise ConfigurationError(f"Section {section_id!r}: columns must be a list")

    return RenderSpec(
        width=WidthClass.from_name(data.get("width", "Full")),
        orientation=Orientation.from_name(data.get("orientation", "Auto")),
        columns=tuple(build_column(column, section_id) for column in columns),
        section_override=bool(data.get("section_override", False)),
    )


def build_section(data: Mapping[str, Any]) -> SectionDefinition:
    if not isinstance(data, Mapping):
        raise ConfigurationError("Each section must be a mapping")
    for key in ("id", "title", "order"):
        if key not in data:
            raise ConfigurationError(f"Section is missing required key {key!r}: {dict(data)}")

    section_id = str(data["id"])
    render = data.get("render") or {}
    if not isinstance(render, Mapping):
        raise ConfigurationError(f"Section {section_id!r}: render must be a mapping")

    return SectionDefinition(
        id=section_id,
        title=str(data["title"]),
        order=data["order"],
        kind=SectionKind.from_name(data.get("kind", "DataSection")),
        enabled=bool(data.get("enabled", True)),
        show_even_with_no_data=bool(data.get("show_even_with_no_data", False)),
        comment=data.get("comment"),
        render_specs={
            str(report_type): build_render_spec(spec, section_id)
            for report_type, spec in render.items()
        },
        post_processing=[build_rule(step, section_id) for step in data.get("post_processing") or []],
    )


def build_settings(data: Optional[Mapping[str, Any]]) -> ReportSettings:
    data = data or {}
    if not isinstance(data, Mapping):
        raise ConfigurationError("settings must be a mapping")

    report_types = data.get("report_types", DEFAULT_REPORT_TYPES)
    if isinstance(report_types, str):
        report_types = [report_types]

    try:
        threshold = int(data.get("vertical_threshold", 10))
    except (TypeError, ValueError):
        raise ConfigurationError("vertical_threshold must be an integer") from None

    return ReportSettings(
        skip_section_breaks=bool(data.get("skip_section_breaks", False)),
        post_processing_enabled=bool(data.get("post_processing", True)),
        report_types=tuple(str(name) for name in report_types),
        vertical_threshold=threshold,
        html_mode=str(data.get("html_mode", "DynamicGrid")),
        output_method=OutputMethod.from_name(data.get("output_method", "OneBigReport")),
        report_title=str(data.get("title", "LTM Report")),
        na_marker=str(data.get("na_marker", "N/A")),
    )


def build_definition(data: Mapping[str, Any]) -> ReportDefinition:
    """Build and validate a ReportDefinition from parsed YAML."""
    if not isinstance(data, Mapping):
        raise ConfigurationError(
            f"Report definition must be a mapping, got {type(data).__name__}"
        )

    sections = data.get("sections") or []
    if not isinstance(sections, list):
        raise ConfigurationError("sections must be a list")

    definition = ReportDefinition(
        settings=build_settings(data.get("settings")),
        sections=[build_section(section) for section in sections],
    )
    logger.debug("Loaded %d section(s)", len(definition.sections))
    return definition


# ═══════════════════════════════════════════════════════════════════════════════
# FILE LOADING
# ═══════════════════════════════════════════════════════════════════════════════


def _read_structured(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {path.name}: {e}") from e
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path.name}: {e}") from e


def load_definition(path: Union[str, Path]) -> ReportDefinition:
    """Load a report definition from a YAML (or JSON) file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Report definition not found: {path}")
    logger.info("Loading report definition: %s", path.name)
    return build_definition(_read_structured(path) or {})


def load_report_data(path: Union[str, Path]) -> Dict[str, Any]:
    """Load collected subject data from a JSON or YAML file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Report data not found: {path}")
    payload = _read_structured(path) or {}
    if not isinstance(payload, Mapping):
        raise ConfigurationError(f"Report data must be a mapping: {path.name}")
    return dict(payload)


def populate_report_data(definition: ReportDefinition, payload: Mapping[str, Any]) -> List[str]:
    """
    Fill each section's all_data from collected data.

    Payload layout: {"subjects": [...], "data": {section_id: {subject: [records]}}}.
    Sections not in the definition are ignored with a warning.

    Returns:
        The subject list now registered on the definition
    """
    subjects = payload.get("subjects")
    if subjects is not None:
        definition.subject_ids = [str(subject) for subject in subjects]

    data = payload.get("data") or {}
    if not isinstance(data, Mapping):
        raise ConfigurationError("data must map section ids to subject records")

    for section_id, per_subject in data.items():
        try:
            section = definition.get_section(str(section_id))
        except KeyError:
            logger.warning("Data for unknown section %r ignored", section_id)
            continue

        if not isinstance(per_subject, Mapping):
            raise ConfigurationError(f"Data for section {section_id!r} must be keyed by subject")

        for subject, records in per_subject.items():
            if records is None:
                records = []
            elif isinstance(records, Mapping):
                records = [records]
            section.set_data(str(subject), records)

    return definition.subjects()
