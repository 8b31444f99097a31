"""
Report Model Module for LTM Report Renderer
Typed configuration tree for the report renderer: section definitions,
per-report-type render specs, colorizer rules and global settings.

Everything here is validated when it is built, so the renderer never has to
ask whether a key exists. Unknown width classes, orientations or report types
raise ConfigurationError at load time instead of at render time.
"""

import html
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union


logger = logging.getLogger(__name__)


Record = Any
Extractor = Callable[[Record], Any]
Predicate = Callable[[Any, Any], bool]


class ConfigurationError(ValueError):
    """Raised when a report definition is inconsistent or references unknown names"""


# ═══════════════════════════════════════════════════════════════════════════════
# ENUMS
# ═══════════════════════════════════════════════════════════════════════════════


class WidthClass(Enum):
    """Container width classes as (config name, slots needed, slots per row)"""

    FULL = ("Full", 4, 4)
    HALF = ("Half", 2, 4)
    THIRD = ("Third", 1, 3)
    TWO_THIRDS = ("TwoThirds", 2, 3)
    FOURTH = ("Fourth", 1, 4)
    THREE_FOURTHS = ("ThreeFourths", 3, 4)

    @property
    def config_name(self) -> str:
        return self.value[0]

    @property
    def slots_needed(self) -> int:
        return self.value[1]

    @property
    def slots_per_row(self) -> int:
        return self.value[2]

    @classmethod
    def from_name(cls, name: Union[str, "WidthClass"]) -> "WidthClass":
        """Resolve a config name ("Half", "TwoThirds", ...) to a member."""
        if isinstance(name, cls):
            return name
        key = str(name).strip().lower()
        for member in cls:
            if key in (member.config_name.lower(), member.name.lower()):
                return member
        raise ConfigurationError(f"Unknown width class: {name!r}")


class Orientation(Enum):
    """Table layout orientation"""

    HORIZONTAL = "Horizontal"
    VERTICAL = "Vertical"
    AUTO = "Auto"

    @classmethod
    def from_name(cls, name: Union[str, "Orientation"]) -> "Orientation":
        if isinstance(name, cls):
            return name
        key = str(name).strip().lower()
        for member in cls:
            if key == member.value.lower():
                return member
        raise ConfigurationError(f"Unknown orientation: {name!r}")


class SectionKind(Enum):
    """Kinds of report sections"""

    DATA_SECTION = "DataSection"
    SECTION_BREAK = "SectionBreak"

    @classmethod
    def from_name(cls, name: Union[str, "SectionKind"]) -> "SectionKind":
        if isinstance(name, cls):
            return name
        key = str(name).strip().lower()
        for member in cls:
            if key == member.value.lower():
                return member
        raise ConfigurationError(f"Unknown section kind: {name!r}")


class OutputMethod(Enum):
    """How the assembler accumulates documents"""

    ONE_BIG_REPORT = "OneBigReport"
    INDIVIDUAL_REPORT = "IndividualReport"
    NO_REPORT = "NoReport"

    @classmethod
    def from_name(cls, name: Union[str, "OutputMethod"]) -> "OutputMethod":
        if isinstance(name, cls):
            return name
        key = str(name).strip().lower()
        for member in cls:
            if key == member.value.lower():
                return member
        raise ConfigurationError(f"Unknown output method: {name!r}")


# ═══════════════════════════════════════════════════════════════════════════════
# COLUMN PROJECTIONS
# ═══════════════════════════════════════════════════════════════════════════════


NA_MARKER = "N/A"


@dataclass(frozen=True)
class ColumnProjection:
    """One output column: a label plus an opaque record -> value function"""

    label: str
    extract: Extractor
    raw_html: bool = False  # hyperlink builders emit markup

    def project(self, record: Record, na_marker: str = NA_MARKER) -> str:
        """Return the display markup for one record."""
        try:
            value = self.extract(record)
        except Exception as e:
            logger.debug("Projection %r failed: %s", self.label, e)
            value = None

        if value is None:
            return html.escape(na_marker)
        text = str(value)
        return text if self.raw_html else html.escape(text)


# ═══════════════════════════════════════════════════════════════════════════════
# COLORIZER RULES
# ═══════════════════════════════════════════════════════════════════════════════


def _equals(left: Any, right: Any) -> bool:
    return left == right


@dataclass(frozen=True)
class ByValue:
    """Tag cells (or rows) whose value in `column` satisfies `predicate`"""

    column: str
    value: Any
    attribute: str
    attribute_value: str
    predicate: Predicate = _equals
    whole_row: bool = False


@dataclass(frozen=True)
class ByEvenRows:
    """Tag data rows with an even zero-based index"""

    attribute: str
    attribute_value: str
    whole_row: bool = True


@dataclass(frozen=True)
class ByOddRows:
    """Tag data rows with an odd zero-based index"""

    attribute: str
    attribute_value: str
    whole_row: bool = True


ColorRule = Union[ByValue, ByEvenRows, ByOddRows]


# ═══════════════════════════════════════════════════════════════════════════════
# SECTIONS
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class RenderSpec:
    """Per-report-type rendering instructions for one section"""

    width: WidthClass
    orientation: Orientation
    columns: Tuple[ColumnProjection, ...]
    section_override: bool = False

    def __post_init__(self):
        if not isinstance(self.width, WidthClass):
            raise ConfigurationError(f"Invalid width class: {self.width!r}")
        if not isinstance(self.orientation, Orientation):
            raise ConfigurationError(f"Invalid orientation: {self.orientation!r}")
        if not self.columns:
            raise ConfigurationError("A render spec needs at least one column")
        duplicates = sorted({label for label in self.labels if self.labels.count(label) > 1})
        if duplicates:
            raise ConfigurationError(f"Duplicate column labels: {', '.join(duplicates)}")

    @property
    def labels(self) -> List[str]:
        return [column.label for column in self.columns]

    def effective_orientation(self, threshold: int) -> Orientation:
        """Resolve AUTO: column count at or above the threshold goes vertical."""
        if self.orientation is not Orientation.AUTO:
            return self.orientation
        if len(self.columns) >= threshold:
            return Orientation.VERTICAL
        return Orientation.HORIZONTAL


@dataclass
class SectionDefinition:
    """One reportable unit: a data table or a section-break banner"""

    id: str
    title: str
    order: int
    kind: SectionKind = SectionKind.DATA_SECTION
    enabled: bool = True
    show_even_with_no_data: bool = False
    comment: Optional[str] = None
    render_specs: Dict[str, RenderSpec] = field(default_factory=dict)
    post_processing: List[ColorRule] = field(default_factory=list)
    all_data: Dict[str, List[Record]] = field(default_factory=dict)

    def __post_init__(self):
        if not self.id:
            raise ConfigurationError("Section id must not be empty")
        if not isinstance(self.order, int) or isinstance(self.order, bool):
            raise ConfigurationError(f"Section {self.id!r}: order must be an integer")
        self.kind = SectionKind.from_name(self.kind)
        if self.kind is SectionKind.SECTION_BREAK and self.render_specs:
            raise ConfigurationError(f"Section break {self.id!r} cannot declare columns")

    @property
    def is_break(self) -> bool:
        return self.kind is SectionKind.SECTION_BREAK

    def spec_for(self, report_type: str) -> Optional[RenderSpec]:
        return self.render_specs.get(report_type)

    def records_for(self, subject: str) -> List[Record]:
        records = self.all_data.get(subject)
        if records is None:
            return []
        if isinstance(records, Mapping):
            return [records]
        return list(records)

    def set_data(self, subject: str, records: Iterable[Record]):
        if self.is_break:
            raise ConfigurationError(f"Section break {self.id!r} cannot hold data")
        self.all_data[subject] = list(records)


# ═══════════════════════════════════════════════════════════════════════════════
# REPORT DEFINITION
# ═══════════════════════════════════════════════════════════════════════════════


DEFAULT_REPORT_TYPES = ("FullDocumentation", "ExcelExport")


@dataclass(frozen=True)
class ReportSettings:
    """Global, immutable report settings passed to the assembler"""

    skip_section_breaks: bool = False
    post_processing_enabled: bool = True
    report_types: Tuple[str, ...] = DEFAULT_REPORT_TYPES
    vertical_threshold: int = 10
    html_mode: str = "DynamicGrid"
    output_method: OutputMethod = OutputMethod.ONE_BIG_REPORT
    report_title: str = "LTM Report"
    na_marker: str = NA_MARKER

    def __post_init__(self):
        if self.vertical_threshold < 1:
            raise ConfigurationError("vertical_threshold must be a positive integer")
        if not self.report_types:
            raise ConfigurationError("At least one report type must be recognized")


@dataclass
class ReportDefinition:
    """Root configuration: settings plus sections in explicit order"""

    settings: ReportSettings = field(default_factory=ReportSettings)
    sections: List[SectionDefinition] = field(default_factory=list)
    subject_ids: List[str] = field(default_factory=list)

    def __post_init__(self):
        self.sections = sorted(self.sections, key=lambda s: s.order)
        self.validate()

    def validate(self):
        """Check ordering, identifiers and report-type keys."""
        seen_ids = set()
        seen_orders: Dict[int, str] = {}
        for section in self.sections:
            if section.id in seen_ids:
                raise ConfigurationError(f"Duplicate section id: {section.id!r}")
            seen_ids.add(section.id)

            if section.order in seen_orders:
                raise ConfigurationError(
                    f"Sections {seen_orders[section.order]!r} and {section.id!r} "
                    f"share order {section.order}"
                )
            seen_orders[section.order] = section.id

            for report_type in section.render_specs:
                if report_type not in self.settings.report_types:
                    raise ConfigurationError(
                        f"Section {section.id!r} uses unknown report type {report_type!r}"
                    )

    def ordered_sections(self) -> List[SectionDefinition]:
        return list(self.sections)

    def enabled_sections(self) -> List[SectionDefinition]:
        return [s for s in self.sections if s.enabled]

    def get_section(self, section_id: str) -> SectionDefinition:
        for section in self.sections:
            if section.id == section_id:
                return section
        raise KeyError(section_id)

    def subjects(self) -> List[str]:
        """Explicit subject list, else every subject seen in section data."""
        if self.subject_ids:
            return list(self.subject_ids)

        subjects: List[str] = []
        for section in self.sections:
            for subject in section.all_data:
                if subject not in subjects:
                    subjects.append(subject)
        return subjects
