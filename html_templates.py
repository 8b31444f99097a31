"""
HTML Templates Module for LTM Report Renderer
Fixed markup template families used for headers, containers and banners.

Templates use numbered placeholders filled by straight string replacement
(a single pass, so substituted values are never re-scanned). The slot set
for table and banner templates is fixed:

    {0}  asset (subject) name
    {1}  column-span count
    {2}  title text

Container templates use {0} for the width token and {1} for the content.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict

from report_model import ConfigurationError, WidthClass


logger = logging.getLogger(__name__)


_PLACEHOLDER_RE = re.compile(r"\{(\d+)\}")


def fill(template: str, *values) -> str:
    """Replace {0}, {1}, ... with values; unknown indexes are left untouched."""

    def replacer(match: re.Match) -> str:
        index = int(match.group(1))
        if index < len(values):
            return str(values[index])
        return match.group(0)

    return _PLACEHOLDER_RE.sub(replacer, template)


# ═══════════════════════════════════════════════════════════════════════════════
# STYLE SHEET
# ═══════════════════════════════════════════════════════════════════════════════


REPORT_CSS = """
body { font-family: Calibri, Arial, sans-serif; font-size: 13px; color: #404040; margin: 16px; }
h1.assetName { color: #003366; border-bottom: 2px solid #003366; padding-bottom: 4px; }
.sectionBreak { background-color: #003366; color: #ffffff; padding: 6px 10px; margin: 18px 0 8px 0; }
.sectionBreak h2 { margin: 0; font-size: 16px; }
table.reportTable { border-collapse: collapse; width: 100%; margin-bottom: 12px; }
table.reportTable th, table.reportTable td { border: 1px solid #c8c8c8; padding: 3px 6px; text-align: left; vertical-align: top; }
table.reportTable th.tableHeader { background-color: #003366; color: #ffffff; font-size: 14px; }
table.reportTable td.sectionComment { background-color: #e6f0fa; font-style: italic; }
table.reportTable tr.columnHeaders th { background-color: #f5f5f5; }
table.propertyTable { border-collapse: collapse; width: 100%; }
table.propertyTable th { width: 35%; background-color: #f5f5f5; }
tr.recordDivider td { height: 6px; background-color: #e6f0fa; }
.even { background-color: #ffffff; }
.odd { background-color: #f5f5f5; }
.alert { background-color: #ffcccc; color: #c00000; }
.warning { background-color: #fff2cc; }
.success { background-color: #e2efda; color: #008000; }
"""

GRID_CSS = """
.row { display: flex; flex-wrap: wrap; margin: 0 -6px; }
.col-3, .col-4, .col-6, .col-8, .col-9, .col-12 { box-sizing: border-box; padding: 0 6px; }
.col-3 { width: 25%; } .col-4 { width: 33.333%; } .col-6 { width: 50%; }
.col-8 { width: 66.666%; } .col-9 { width: 75%; } .col-12 { width: 100%; }
"""


# ═══════════════════════════════════════════════════════════════════════════════
# TEMPLATE FAMILIES
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class TemplateFamily:
    """One markup family; every template is filled with `fill()`"""

    name: str
    document_header: str
    document_footer: str
    asset_header: str
    asset_footer: str
    group_open: str
    group_close: str
    container: str
    width_tokens: Dict[WidthClass, str] = field(default_factory=dict)
    section_break: str = (
        '<div class="sectionBreak"><h2>{2}</h2></div>'
    )
    table_open: str = '<table class="reportTable">'
    table_close: str = "</table>"
    title_row: str = '<tr><th class="tableHeader" colspan="{1}">{2}</th></tr>'
    comment_row: str = '<tr><td class="sectionComment" colspan="{1}">{2}</td></tr>'
    divider_row: str = '<tr class="recordDivider"><td colspan="{1}"></td></tr>'

    def width_token(self, width: WidthClass) -> str:
        try:
            return self.width_tokens[width]
        except KeyError:
            raise ConfigurationError(
                f"Template family {self.name!r} has no container for {width.config_name}"
            ) from None

    def wrap_container(self, width: WidthClass, content: str) -> str:
        return fill(self.container, self.width_token(width), content)


DYNAMIC_GRID = TemplateFamily(
    name="DynamicGrid",
    document_header=(
        "<!DOCTYPE html>\n<html>\n<head>\n<meta charset=\"utf-8\">\n"
        "<title>{2}</title>\n<style>" + REPORT_CSS + GRID_CSS + "</style>\n"
        "</head>\n<body>\n"
    ),
    document_footer="</body>\n</html>\n",
    asset_header='<div class="asset"><h1 class="assetName">{0}</h1>\n',
    asset_footer="</div>\n",
    group_open='<div class="row">\n',
    group_close="</div>\n",
    container='<div class="{0}">{1}</div>\n',
    width_tokens={
        WidthClass.FULL: "col-12",
        WidthClass.HALF: "col-6",
        WidthClass.THIRD: "col-4",
        WidthClass.TWO_THIRDS: "col-8",
        WidthClass.FOURTH: "col-3",
        WidthClass.THREE_FOURTHS: "col-9",
    },
)

EMAIL_FRIENDLY = TemplateFamily(
    name="EmailFriendly",
    document_header=(
        "<!DOCTYPE html>\n<html>\n<head>\n<meta charset=\"utf-8\">\n"
        "<title>{2}</title>\n<style>" + REPORT_CSS + "</style>\n"
        "</head>\n<body>\n"
    ),
    document_footer="</body>\n</html>\n",
    asset_header='<h1 class="assetName">{0}</h1>\n',
    asset_footer="<br>\n",
    group_open='<table class="layoutRow" width="100%" cellspacing="0" cellpadding="4"><tr>\n',
    group_close="</tr></table>\n",
    container='<td valign="top" width="{0}">{1}</td>\n',
    width_tokens={
        WidthClass.FULL: "100%",
        WidthClass.HALF: "50%",
        WidthClass.THIRD: "33%",
        WidthClass.TWO_THIRDS: "67%",
        WidthClass.FOURTH: "25%",
        WidthClass.THREE_FOURTHS: "75%",
    },
    section_break=(
        '<table class="sectionBreak" width="100%"><tr><td><h2>{2}</h2></td></tr></table>'
    ),
)


TEMPLATE_FAMILIES = {
    DYNAMIC_GRID.name: DYNAMIC_GRID,
    EMAIL_FRIENDLY.name: EMAIL_FRIENDLY,
}


def get_template_family(name: str) -> TemplateFamily:
    """Resolve an HTML mode name; unknown names are fatal configuration errors."""
    for key, family in TEMPLATE_FAMILIES.items():
        if key.lower() == str(name).strip().lower():
            return family
    raise ConfigurationError(
        f"Unknown HTML mode {name!r} (expected one of: {', '.join(TEMPLATE_FAMILIES)})"
    )
