"""
Member filter descriptors.

A filter is a named rule the provider offers for selecting a subset of a
dimension's members (children, descendants, a generation, a member list...).
The provider describes each filter with a `compose` template used to build a
native expression from arguments, and a `decompose` regular expression used
to recognise such an expression and pull the arguments back out.
"""

from __future__ import annotations

import re
from typing import NamedTuple

from pydantic import Field, field_validator

from ..errors import ArgumentError, ProtocolError
from .base import MetadataObject

__all__ = ["Filter", "FilterArgument", "FilterSelection"]

PLACEHOLDER_PATTERN = re.compile(r"%(\d+)")


class FilterSelection(NamedTuple):
    """A resolved filter: the filter name and its positional arguments."""

    name: str
    arguments: list[str]


class FilterArgument(MetadataObject):
    """One positional argument slot of a filter."""

    type: str | None = Field(None, examples=["str", "int"])
    prompt: str | None = Field(None, examples=["Member", "Level"])

    @classmethod
    def from_xml(cls, element) -> FilterArgument:
        return cls(
            name=cls._require_name(element),
            type=element.get("type") or None,
            prompt=element.get("prompt") or None,
        )


class Filter(MetadataObject):
    """Describes a member filter available for a dimension."""

    compose: str | None = Field(
        None,
        examples=["DESCENDANTS(%0)"],
        description="Template building a native expression from arguments",
    )
    decompose: re.Pattern | None = Field(
        None,
        examples=[r"^DESCENDANTS\( *(.+) *\)$"],
        description="Pattern extracting arguments from a native expression",
    )
    arguments: tuple[FilterArgument, ...] = Field(default_factory=tuple)

    @field_validator("compose", "decompose", mode="before")
    @classmethod
    def empty_as_none(cls, v):
        """The provider sends empty attributes for filters without a
        template or pattern."""
        if isinstance(v, str) and not v:
            return None
        return v

    @classmethod
    def from_xml(cls, element) -> Filter:
        """
        Create a filter from a `filter` element of an EnumFilters response.

        Arguments are ordered by their declared `id`, falling back to
        document order.
        """
        arg_elements = element.findall("arg")
        arg_elements = sorted(
            enumerate(arg_elements),
            key=lambda item: (int(item[1].get("id", item[0])), item[0]),
        )
        return cls(
            name=cls._require_name(element),
            compose=element.get("compose"),
            decompose=element.get("decompose"),
            arguments=tuple(FilterArgument.from_xml(arg) for _, arg in arg_elements),
        )

    @property
    def argument_names(self) -> list[str]:
        return [arg.name for arg in self.arguments]

    def compose_expression(self, *args: str) -> str:
        """Build the provider-native expression for `args`."""
        if self.compose is None:
            raise ArgumentError(f"Filter '{self.name}' has no compose template")
        if len(args) != len(self.arguments):
            raise ArgumentError(
                f"Filter '{self.name}' takes {len(self.arguments)} "
                f"argument(s), {len(args)} given"
            )

        def substitute(match):
            index = int(match.group(1))
            if index >= len(args):
                raise ArgumentError(
                    f"Compose template of filter '{self.name}' refers to "
                    f"missing argument %{index}"
                )
            return str(args[index])

        return PLACEHOLDER_PATTERN.sub(substitute, self.compose)

    def decompose_expression(self, expression: str) -> list[str] | None:
        """
        Return the arguments captured from `expression`, or None when the
        expression is not an instance of this filter.

        Captures are stripped of surrounding whitespace, since provider
        patterns such as ``^ATTRIBUTE\\( *(.+) *\\)$`` leave the padding
        inside the greedy group. Member names with significant leading or
        trailing spaces can not be recovered this way.

        Raises:
            ProtocolError: If the filter declares arguments and the pattern
                captures a different number of groups
        """
        if self.decompose is None:
            return None
        match = self.decompose.search(expression)
        if not match:
            return None

        groups = match.groups()
        if self.arguments and len(groups) != len(self.arguments):
            raise ProtocolError(
                f"Decompose pattern of filter '{self.name}' captures "
                f"{len(groups)} group(s) but the filter declares "
                f"{len(self.arguments)} argument(s)"
            )
        return [(group or "").strip() for group in groups]

    def select(self, *args: str) -> FilterSelection:
        """Return a selection of this filter with `args`."""
        return FilterSelection(self.name, list(args))
