"""
Tests for html_templates module.
"""

import pytest

from html_templates import (
    DYNAMIC_GRID,
    EMAIL_FRIENDLY,
    TemplateFamily,
    fill,
    get_template_family,
)
from report_model import ConfigurationError, WidthClass


class TestFill:
    """Tests for numbered placeholder substitution."""

    def test_numbered_slots(self):
        assert fill("{0}|{1}|{2}", "bigip-01", 3, "Pools") == "bigip-01|3|Pools"

    def test_values_not_rescanned(self):
        """A substituted value containing a placeholder is left as-is."""
        assert fill("{0}-{1}", "{1}", "x") == "{1}-x"

    def test_unknown_slots_untouched(self):
        assert fill("{0} {5}", "a") == "a {5}"

    def test_css_braces_survive(self):
        assert fill(".row { display: flex; } {0}", "x") == ".row { display: flex; } x"


class TestTemplateFamilies:
    """Tests for template family lookup and containers."""

    def test_lookup_is_case_insensitive(self):
        assert get_template_family("dynamicgrid") is DYNAMIC_GRID
        assert get_template_family("EmailFriendly") is EMAIL_FRIENDLY

    def test_unknown_mode(self):
        with pytest.raises(ConfigurationError):
            get_template_family("Pdf")

    @pytest.mark.parametrize("family", [DYNAMIC_GRID, EMAIL_FRIENDLY])
    def test_every_width_has_a_container(self, family):
        for width in WidthClass:
            assert family.width_token(width)

    def test_wrap_container(self):
        assert DYNAMIC_GRID.wrap_container(WidthClass.HALF, "<table></table>") == (
            '<div class="col-6"><table></table></div>\n'
        )

    def test_missing_width_token(self):
        family = TemplateFamily(
            name="Bare",
            document_header="",
            document_footer="",
            asset_header="",
            asset_footer="",
            group_open="",
            group_close="",
            container="{1}",
        )
        with pytest.raises(ConfigurationError):
            family.wrap_container(WidthClass.FULL, "x")
