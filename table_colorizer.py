"""
Table Colorizer Module for LTM Report Renderer
Tags cells or rows of a serialized HTML table with a presentation attribute.

Rules are applied to a parsed lxml tree and the table is serialized again;
text content is never touched. Rules can be chained and later rules win when
they set the same attribute on the same element.

Column resolution (ByValue):
    The first row that contains a <th> whose text equals the column label
    defines the ordinal. If no header matches, only rows holding a property
    table (below) can match.

Vertical layout:
    A record row whose cell holds a propertyTable resolves the label against
    the <th> of its property rows instead. The hit tags the property value
    cell, or the record row when whole_row is set.

Data rows:
    Rows inside <tbody>, or, for tables without <tbody>, direct rows that
    contain no <th>. Divider rows between vertical records are not data rows.
    Other nested tables are never traversed.
"""

import html
import logging
import re
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from lxml import etree
from lxml import html as lxml_html

from property_flattener import field_names, resolve_field
from report_model import (
    ByEvenRows,
    ByOddRows,
    ByValue,
    ColorRule,
    ConfigurationError,
    Predicate,
)


logger = logging.getLogger(__name__)


DIVIDER_CLASS = "recordDivider"
PROPERTY_TABLE_CLASS = "propertyTable"


class MalformedMarkupError(ValueError):
    """Raised when markup cannot be parsed into a <table> tree"""


# ═══════════════════════════════════════════════════════════════════════════════
# PREDICATES
# ═══════════════════════════════════════════════════════════════════════════════


_NUMBER_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip().replace(",", "")
    if _NUMBER_RE.match(text):
        return float(text)
    return None


def coerce_operands(left: Any, right: Any) -> Tuple[Any, Any]:
    """
    Bring two operands to a common type.

    Both parse as numbers -> floats. Otherwise both become stripped strings.
    """
    left_num = _as_number(left)
    right_num = _as_number(right)
    if left_num is not None and right_num is not None:
        return left_num, right_num
    return str(left).strip(), str(right).strip()


def equals(left: Any, right: Any) -> bool:
    return left == right


def not_equals(left: Any, right: Any) -> bool:
    return left != right


def less_than(left: Any, right: Any) -> bool:
    return left < right


def less_or_equal(left: Any, right: Any) -> bool:
    return left <= right


def greater_than(left: Any, right: Any) -> bool:
    return left > right


def greater_or_equal(left: Any, right: Any) -> bool:
    return left >= right


def contains(left: Any, right: Any) -> bool:
    return str(right) in str(left)


def matches(left: Any, right: Any) -> bool:
    return re.search(str(right), str(left)) is not None


PREDICATES = {
    "eq": equals,
    "ne": not_equals,
    "lt": less_than,
    "le": less_or_equal,
    "gt": greater_than,
    "ge": greater_or_equal,
    "contains": contains,
    "matches": matches,
}

# Compared on the raw cell text, never coerced to numbers
TEXT_PREDICATES = (contains, matches)


def get_predicate(name: str) -> Predicate:
    """Look up a named predicate for declarative rules."""
    try:
        return PREDICATES[str(name).strip().lower()]
    except KeyError:
        raise ConfigurationError(
            f"Unknown predicate {name!r} (expected one of: {', '.join(sorted(PREDICATES))})"
        ) from None


# ═══════════════════════════════════════════════════════════════════════════════
# TABLE ACCESS
# ═══════════════════════════════════════════════════════════════════════════════


def parse_table(markup: str) -> etree._Element:
    """Parse markup whose root element is a <table>."""
    if not isinstance(markup, str) or not markup.strip():
        raise MalformedMarkupError("Table markup is empty")

    try:
        root = lxml_html.fragment_fromstring(markup.strip())
    except (etree.ParserError, etree.XMLSyntaxError) as e:
        raise MalformedMarkupError(f"Cannot parse table markup: {e}") from e

    if root.tag != "table":
        raise MalformedMarkupError(f"Expected a <table> root element, got <{root.tag}>")
    return root


def serialize_table(table: etree._Element) -> str:
    return lxml_html.tostring(table, encoding="unicode")


def _own_rows(table: etree._Element) -> List[etree._Element]:
    """Rows belonging to this table, skipping nested tables."""
    rows = []
    for child in table:
        if child.tag == "tr":
            rows.append(child)
        elif child.tag in ("thead", "tbody", "tfoot"):
            rows.extend(row for row in child if row.tag == "tr")
    return rows


def _cells(row: etree._Element) -> List[etree._Element]:
    return [cell for cell in row if cell.tag in ("td", "th")]


def _cell_text(cell: etree._Element) -> str:
    return " ".join(cell.text_content().split())


def _is_divider(row: etree._Element) -> bool:
    return DIVIDER_CLASS in (row.get("class") or "").split()


def data_rows(table: etree._Element) -> List[etree._Element]:
    bodies = [child for child in table if child.tag == "tbody"]
    if bodies:
        rows = [row for body in bodies for row in body if row.tag == "tr"]
    else:
        rows = [
            row for row in _own_rows(table) if not any(cell.tag == "th" for cell in _cells(row))
        ]
    return [row for row in rows if not _is_divider(row)]


def property_cell(row: etree._Element, label: str) -> Optional[etree._Element]:
    """Value cell for `label` in a record row's property table, or None."""
    wanted = " ".join(str(label).split())
    for cell in _cells(row):
        for nested in cell:
            if nested.tag != "table":
                continue
            if PROPERTY_TABLE_CLASS not in (nested.get("class") or "").split():
                continue
            for prop_row in _own_rows(nested):
                cells = _cells(prop_row)
                if len(cells) == 2 and cells[0].tag == "th" and _cell_text(cells[0]) == wanted:
                    return cells[1]
    return None


def find_column(table: etree._Element, label: str) -> Optional[int]:
    """Ordinal of the header cell whose text equals `label`, or None."""
    wanted = " ".join(str(label).split())
    for row in _own_rows(table):
        cells = _cells(row)
        if not any(cell.tag == "th" for cell in cells):
            continue
        for index, cell in enumerate(cells):
            if cell.tag == "th" and _cell_text(cell) == wanted:
                return index
    return None


def read_table(markup: str) -> Tuple[List[str], List[List[str]]]:
    """
    Read a table back into (headers, rows) of plain text.

    Headers come from the last header row before the data rows (the column
    label row); rows are the data rows.
    """
    table = parse_table(markup)
    body = data_rows(table)
    headers: List[str] = []
    for row in _own_rows(table):
        if row in body:
            break
        cells = _cells(row)
        if cells and all(cell.tag == "th" for cell in cells):
            headers = [_cell_text(cell) for cell in cells]
    rows = [[_cell_text(cell) for cell in _cells(row)] for row in body]
    return headers, rows


def records_to_table(records: Iterable[Any], fields: Optional[Sequence[str]] = None) -> str:
    """Serialize a record collection to a plain header + body table."""
    records = list(records)
    if fields is None:
        fields = field_names(records[0]) if records else []

    parts = ["<table><thead><tr>"]
    parts.extend(f"<th>{html.escape(str(name))}</th>" for name in fields)
    parts.append("</tr></thead><tbody>")
    for record in records:
        parts.append("<tr>")
        parts.extend(
            f"<td>{html.escape(str(resolve_field(record, name)))}</td>" for name in fields
        )
        parts.append("</tr>")
    parts.append("</tbody></table>")
    return "".join(parts)


# ═══════════════════════════════════════════════════════════════════════════════
# COLORIZER
# ═══════════════════════════════════════════════════════════════════════════════


class TableColorizer:
    """Applies colorizer rules to one parsed table."""

    def __init__(self, table: Any):
        if not isinstance(table, str):
            table = records_to_table(table)
        self.table = parse_table(table)

    def apply(self, rule: ColorRule) -> "TableColorizer":
        if isinstance(rule, ByValue):
            self._apply_by_value(rule)
        elif isinstance(rule, ByEvenRows):
            self._apply_by_parity(rule, remainder=0)
        elif isinstance(rule, ByOddRows):
            self._apply_by_parity(rule, remainder=1)
        else:
            raise ConfigurationError(f"Unsupported colorizer rule: {rule!r}")
        return self

    def to_markup(self) -> str:
        return serialize_table(self.table)

    def _apply_by_value(self, rule: ByValue):
        column = find_column(self.table, rule.column)
        for row in data_rows(self.table):
            cell = property_cell(row, rule.column)
            if cell is None and column is not None:
                cells = _cells(row)
                cell = cells[column] if column < len(cells) else None
            if cell is None or not self._matches(rule, _cell_text(cell)):
                continue
            target = row if rule.whole_row else cell
            target.set(rule.attribute, rule.attribute_value)

    @staticmethod
    def _matches(rule: ByValue, text: str) -> bool:
        if rule.predicate in TEXT_PREDICATES:
            left, right = text, str(rule.value).strip()
        else:
            left, right = coerce_operands(text, rule.value)
        try:
            return bool(rule.predicate(left, right))
        except (TypeError, re.error) as e:
            logger.debug("Predicate failed on %r vs %r: %s", left, right, e)
            return False

    def _apply_by_parity(self, rule, remainder: int):
        for index, row in enumerate(data_rows(self.table)):
            if index % 2 != remainder:
                continue
            if rule.whole_row:
                row.set(rule.attribute, rule.attribute_value)
            else:
                for cell in _cells(row):
                    cell.set(rule.attribute, rule.attribute_value)


# ═══════════════════════════════════════════════════════════════════════════════
# PUBLIC API
# ═══════════════════════════════════════════════════════════════════════════════


def colorize(table: Any, rule: ColorRule) -> str:
    """Apply a single rule to markup (or a record collection) and return markup."""
    return TableColorizer(table).apply(rule).to_markup()


def apply_rules(table: Any, rules: Iterable[ColorRule]) -> str:
    """Apply rules in order; each rule sees the previous rule's output."""
    colorizer = TableColorizer(table)
    for rule in rules:
        colorizer.apply(rule)
    return colorizer.to_markup()
