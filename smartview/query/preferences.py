"""
Retrieval preferences.

The settings held here correspond to the options available in the
Hyperion -> Options menu of SmartView. They are independent of a session
and are sent with every grid request.
"""

from __future__ import annotations

from typing import Literal

from lxml import etree
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..provider import ProviderKind
from ..wire import sub_element

__all__ = ["Preferences"]

MEMBER_DISPLAY_CODES = {"name": 0, "description": 1, "both": 2}
INDENT_CODES = {"none": 0, "subitems": 1, "totals": 2}


class Preferences(BaseModel):
    """Options that govern how grid retrievals operate."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    suppress_zero: bool = False
    suppress_invalid: bool = False
    suppress_missing: bool = False
    suppress_underscore: bool = False
    suppress_noaccess: bool = False

    ancestor_position: Literal["top", "bottom"] = Field(
        "bottom", description="Ancestor position when expanding (HFM only)"
    )
    zoom_mode: Literal["children", "descendents", "base"] = Field(
        "children", description="Extent to which a member is expanded on zoom in"
    )
    navigate_with_data: bool = True
    include_selection: bool = True
    within_selected_group: bool = False
    remove_unselected_groups: bool = False

    missing_text: str = "#Missing"
    no_access_text: str = "#No Access"

    member_display: Literal["name", "description", "both"] = Field(
        "name", description="How members are displayed (HFM only)"
    )
    suppress_repeated_members: bool = False
    indent: Literal["none", "subitems", "totals"] = Field(
        "none", description="Indentation of totals and sub-items"
    )
    alias_table: str = Field("none", description="Alias table (Essbase only)")

    @field_validator(
        "ancestor_position", "zoom_mode", "member_display", "indent", mode="before"
    )
    @classmethod
    def lowercase_choice(cls, v):
        """Choices are accepted in any case."""
        if isinstance(v, str):
            return v.strip().lower()
        return v

    def to_xml(
        self,
        parent: etree._Element,
        provider_kind: ProviderKind = ProviderKind.UNKNOWN,
    ) -> etree._Element:
        """Append the `preferences` block to `parent`. Some preferences are
        only sent to the provider family that understands them."""
        prefs = sub_element(parent, "preferences")
        sub_element(
            prefs,
            "row_suppression",
            zero=self.suppress_zero,
            invalid=self.suppress_invalid,
            missing=self.suppress_missing,
            underscore=self.suppress_underscore,
            noaccess=self.suppress_noaccess,
        )
        sub_element(prefs, "celltext", val=0)
        sub_element(prefs, "zoomin", ancestor=self.ancestor_position, mode=self.zoom_mode)
        sub_element(prefs, "navigate", withData=self.navigate_with_data)
        sub_element(prefs, "includeSelection", val=self.include_selection)
        sub_element(prefs, "repeatMemberLabels", val=not self.suppress_repeated_members)
        sub_element(prefs, "withinSelectedGroup", val=self.within_selected_group)
        sub_element(prefs, "removeUnselectedGroup", val=self.remove_unselected_groups)
        sub_element(
            prefs,
            "includeDescriptionInLabel",
            val=MEMBER_DISPLAY_CODES[self.member_display],
        )
        sub_element(prefs, "missingLabelText", val=self.missing_text)
        sub_element(prefs, "noAccessText", val=self.no_access_text)
        if ProviderKind(provider_kind) == ProviderKind.ESSBASE:
            sub_element(prefs, "aliasTableName", val=self.alias_table)
        sub_element(prefs, "essIndent", val=INDENT_CODES[self.indent])
        return prefs
