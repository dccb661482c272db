"""
Member filter expression parsers.

Turns a filter expression written by a person into the filter name and
positional arguments the provider expects. Each provider family has its own
grammar and its own default filter:

HFM
    The default (no expression, or a bare dimension name) is the whole
    hierarchy below the ``root`` sentinel: ``("[Hierarchy]", ["root"])``.
    Expressions may be written as shown in the SmartView member selection
    dialog or in HFM itself:

    - ``[Descendants](Q1)`` or ``MyList(Period)`` - filter and member
    - ``{Q1.[Descendants]}`` - member and filter
    - ``{[Base]}`` - filter applied to the dimension
    - ``{MyList}`` - member list applied to the dimension

Essbase (and unknown providers)
    The default is the hierarchy of the dimension itself:
    ``("Hierarchy", [dimension])``. Expressions are native MDX-like member
    set expressions such as ``DESCENDANTS([IS])`` and are recognised through
    the decompose patterns of the filters the provider offers.

When the static grammar does not match, the filter catalog is consulted in
order and the first filter whose decompose pattern matches wins.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable

from ..errors import UnrecognisedFilterExpression
from ..metadata import Filter, FilterSelection
from ..provider import ProviderKind

__all__ = [
    "FilterParser",
    "default_filter",
    "resolve_filter",
    "match_catalog",
]

HFM_ROOT_MEMBER = "root"
HFM_HIERARCHY_FILTER = "[Hierarchy]"
ESSBASE_HIERARCHY_FILTER = "Hierarchy"

RE_HFM_CALL = re.compile(r"^([^(]+)\(([^)]+)\)$")
RE_HFM_MEMBER_FILTER = re.compile(r"^\{(?:([\w\s]+)\.)?(\[[\w\s]+\])\}$")
RE_HFM_MEMBER_LIST = re.compile(r"^\{([\w\s]+)\}$")
RE_HFM_BARE_WORD = re.compile(r"^\w+$")


def _hfm_default(dimension: str) -> FilterSelection:
    return FilterSelection(HFM_HIERARCHY_FILTER, [HFM_ROOT_MEMBER])


def _essbase_default(dimension: str) -> FilterSelection:
    return FilterSelection(ESSBASE_HIERARCHY_FILTER, [dimension])


def _hfm_static(dimension: str, expression: str) -> FilterSelection | None:
    if RE_HFM_BARE_WORD.match(expression):
        return _hfm_default(dimension)

    match = RE_HFM_CALL.match(expression)
    if match:
        return FilterSelection(match.group(1), [match.group(2)])

    match = RE_HFM_MEMBER_FILTER.match(expression)
    if match:
        member, name = match.groups()
        return FilterSelection(name, [member or dimension])

    match = RE_HFM_MEMBER_LIST.match(expression)
    if match:
        return FilterSelection(match.group(1), [dimension])

    return None


def _essbase_static(dimension: str, expression: str) -> FilterSelection | None:
    return None


# Dialect table: (default filter, static grammar) per provider family
DIALECTS: dict[
    ProviderKind,
    tuple[
        Callable[[str], FilterSelection],
        Callable[[str, str], FilterSelection | None],
    ],
] = {
    ProviderKind.HFM: (_hfm_default, _hfm_static),
    ProviderKind.ESSBASE: (_essbase_default, _essbase_static),
    ProviderKind.UNKNOWN: (_essbase_default, _essbase_static),
}


def default_filter(kind: ProviderKind, dimension: str) -> FilterSelection:
    """Return the filter selecting all members of `dimension`."""
    default, _ = DIALECTS[ProviderKind(kind)]
    return default(dimension)


def match_catalog(expression: str, catalog: Iterable[Filter]) -> FilterSelection | None:
    """Return the first filter in `catalog` whose decompose pattern matches
    `expression`, with the captured arguments."""
    for filter_ in catalog:
        arguments = filter_.decompose_expression(expression)
        if arguments is not None:
            return FilterSelection(filter_.name, arguments)
    return None


def resolve_filter(
    kind: ProviderKind,
    dimension: str,
    expression: str | None,
    catalog: Iterable[Filter] = (),
) -> FilterSelection:
    """
    Resolve a filter expression into a filter name and arguments.

    Args:
        kind: Provider family whose grammar applies
        dimension: Dimension the filter is applied to
        expression: Filter expression, or None for the default filter
        catalog: Filters available for the dimension. Only iterated when
            the expression is not recognised by the static grammar, so a
            lazy iterable avoids fetching the catalog needlessly.

    Returns:
        FilterSelection with arguments in the filter's declared order

    Raises:
        UnrecognisedFilterExpression: If no grammar rule or catalog filter
            matches the expression
    """
    default, static = DIALECTS[ProviderKind(kind)]

    if expression is None:
        return default(dimension)

    stripped = expression.strip()
    if not stripped:
        return default(dimension)

    selection = static(dimension, stripped)
    if selection is None:
        selection = match_catalog(stripped, catalog)
    if selection is None:
        raise UnrecognisedFilterExpression(
            f"Unable to parse filter expression '{expression}'"
        )
    return selection


class FilterParser:
    """
    Filter expression parser bound to a provider family and a catalog.

    Parses filter expressions for one dimension's catalog, or for dimensions
    without catalog filters when the static grammar suffices::

        parser = FilterParser(ProviderKind.HFM)
        parser.resolve("Account", "{IS.[Descendants]}")
        # FilterSelection(name='[Descendants]', arguments=['IS'])
    """

    def __init__(self, kind: ProviderKind, catalog: Iterable[Filter] = ()):
        """
        Initialize parser.

        Args:
            kind: Provider family whose grammar applies
            catalog: Filters consulted when the static grammar fails
        """
        self.kind = ProviderKind(kind)
        self.catalog = catalog

    def default(self, dimension: str) -> FilterSelection:
        return default_filter(self.kind, dimension)

    def resolve(self, dimension: str, expression: str | None) -> FilterSelection:
        return resolve_filter(self.kind, dimension, expression, self.catalog)
