"""
Layout Grouper Module for LTM Report Renderer
Decides where row-group boundaries fall while one subject's sections are
rendered in order.

A new group opens (closing the current one) when the first of these holds:
    1. the fragment's slots-per-row differs from the tracked slots-per-row
    2. the fragment alone fills a row (slots needed == slots per row)
    3. used slots + slots needed would exceed slots per row
Otherwise the fragment joins the open group. Override fragments are never
counted: inside an open group they are placed where they are, otherwise they
get a group of their own. Empty fragments are ignored.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from html_templates import TemplateFamily
from section_renderer import RenderedFragment


logger = logging.getLogger(__name__)


class GroupDecision(Enum):
    """Why a fragment did or did not open a new group"""

    ROW_SIZE_CHANGED = "row size changed"
    FILLS_ROW = "fills a row"
    OVERFLOW = "overflows row"
    JOIN = "joins open group"
    OVERRIDE = "section override"
    SKIP = "empty fragment"

    @property
    def opens_group(self) -> bool:
        return self in (
            GroupDecision.ROW_SIZE_CHANGED,
            GroupDecision.FILLS_ROW,
            GroupDecision.OVERFLOW,
        )


@dataclass
class GroupingState:
    """Slots used in the open group; reset for every subject"""

    used_slots: int = 0
    slots_per_row: int = 0
    group_open: bool = False

    def reset(self):
        self.used_slots = 0
        self.slots_per_row = 0
        self.group_open = False


class LayoutGrouper:
    """Wraps fragments in group-open/close markup as they are placed."""

    def __init__(self, templates: TemplateFamily, state: Optional[GroupingState] = None):
        self.templates = templates
        self.state = state or GroupingState()

    def decide(self, fragment: RenderedFragment) -> GroupDecision:
        """Evaluate the open-group conditions in order; first match wins."""
        if fragment.is_empty:
            return GroupDecision.SKIP
        if fragment.section_override:
            return GroupDecision.OVERRIDE

        state = self.state
        if fragment.slots_per_row != state.slots_per_row:
            return GroupDecision.ROW_SIZE_CHANGED
        if fragment.slots_needed == fragment.slots_per_row:
            return GroupDecision.FILLS_ROW
        if state.used_slots + fragment.slots_needed > fragment.slots_per_row:
            return GroupDecision.OVERFLOW
        return GroupDecision.JOIN

    def place(self, fragment: RenderedFragment) -> List[str]:
        """Return the markup pieces to append for this fragment."""
        decision = self.decide(fragment)
        if decision is GroupDecision.SKIP:
            return []
        if decision is GroupDecision.OVERRIDE:
            if self.state.group_open:
                return [fragment.markup]
            return [self.templates.group_open, fragment.markup, self.templates.group_close]

        parts: List[str] = []
        if decision.opens_group:
            parts.extend(self.close())
            parts.append(self.templates.group_open)
            self.state.group_open = True
            self.state.slots_per_row = fragment.slots_per_row
            self.state.used_slots = 0

        self.state.used_slots += fragment.slots_needed
        logger.debug(
            "Section %s: %s (%d/%d slots)",
            fragment.section_id,
            decision.value,
            self.state.used_slots,
            self.state.slots_per_row,
        )
        parts.append(fragment.markup)
        return parts

    def close(self) -> List[str]:
        """Close the open group, if any. Tracked row size is kept."""
        if not self.state.group_open:
            return []
        self.state.group_open = False
        self.state.used_slots = 0
        return [self.templates.group_close]

    def finish(self) -> List[str]:
        """Force-close at the end of a subject and reset the state."""
        parts = self.close()
        self.state.reset()
        return parts
