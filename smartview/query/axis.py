"""
Row and column axis specifications.

An axis specification is a one-entry mapping. The key names the
dimension(s) placed on the axis, either a single name or a tuple of names.
The value lists the members shown along the axis:

- ``{"Period": "Q1"}`` - a single member
- ``{"Period": ["Q1", "Q2"]}`` - one member per position
- ``{("Entity", "Account"): [["E1", "Sales"], ["E1", "COGS"]]}`` - member
  tuples, one member per dimension

`cross_join` builds member tuples from independent member lists.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from itertools import product
from typing import Any, TypeAlias

from ..errors import GridSpecError

__all__ = ["AxisSpec", "process_axis_spec", "process_axes", "cross_join"]

AxisSpec: TypeAlias = Mapping[str | tuple[str, ...], Any] | None


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, str)


def _dimension_names(key: Any, axis_label: str) -> list[str]:
    if isinstance(key, str):
        return [key]
    if _is_sequence(key) and all(isinstance(name, str) for name in key):
        return list(key)
    raise GridSpecError(
        f"Invalid dimension specification {key!r} for {axis_label}: expected a "
        f"dimension name or a tuple of dimension names"
    )


def _member_tuples(value: Any) -> list[list[str]]:
    if value is None:
        return []
    if isinstance(value, str):
        return [[value]]
    if not _is_sequence(value):
        return [[str(value)]]

    tuples = []
    for item in value:
        if isinstance(item, str):
            tuples.append([item])
        elif _is_sequence(item):
            tuples.append([str(member) for member in item])
        else:
            tuples.append([str(item)])
    return tuples


def process_axis_spec(
    axis_spec: AxisSpec, axis_label: str
) -> tuple[list[str], list[list[str]]]:
    """
    Expand an axis specification into dimension names and member tuples.

    Args:
        axis_spec: One-entry mapping of dimension name(s) to member(s), or
            None for an empty axis
        axis_label: Name of the axis used in error messages ("rows", "cols")

    Returns:
        Tuple of (dimension names, member tuples)

    Raises:
        GridSpecError: If the mapping has more than one entry or any tuple
            does not have one member per dimension
    """
    if not axis_spec:
        return [], []

    if not isinstance(axis_spec, Mapping):
        raise GridSpecError(
            f"Invalid {axis_label} specification {axis_spec!r}: expected a "
            f"mapping of dimension name(s) to member(s)"
        )

    if len(axis_spec) != 1:
        raise GridSpecError(
            f"Invalid {axis_label} specification: expected a single entry, "
            f"got {len(axis_spec)}"
        )

    ((key, value),) = axis_spec.items()
    dim_names = _dimension_names(key, axis_label)
    tuples = _member_tuples(value)

    for member_tuple in tuples:
        if len(member_tuple) != len(dim_names):
            raise GridSpecError(
                f"Invalid tuple size {len(member_tuple)} in {axis_label} "
                f"{member_tuple!r}: expected {len(dim_names)} member(s) for "
                f"dimension(s) {', '.join(dim_names)}"
            )

    return dim_names, tuples


def process_axes(
    rows: AxisSpec | Mapping[Any, Any], cols: AxisSpec = None
) -> tuple[list[str], list[list[str]], list[str], list[list[str]]]:
    """
    Expand the row and column specifications of a grid.

    When `cols` is None, `rows` must be a two-entry mapping holding the rows
    followed by the columns.

    Returns:
        Tuple of (row dimensions, row tuples, column dimensions, column
        tuples)

    Raises:
        GridSpecError: If either specification is invalid
    """
    if cols is None:
        if not isinstance(rows, Mapping) or len(rows) != 2:
            raise GridSpecError(
                "Expected a mapping with a rows entry followed by a cols "
                "entry when no cols specification is given"
            )
        (row_key, row_value), (col_key, col_value) = rows.items()
        rows, cols = {row_key: row_value}, {col_key: col_value}

    row_dims, row_tuples = process_axis_spec(rows, "rows")
    col_dims, col_tuples = process_axis_spec(cols, "cols")
    return row_dims, row_tuples, col_dims, col_tuples


def cross_join(*sets: Any) -> list[list[Any]] | None:
    """
    Return the cartesian product of member sets as a list of tuples.

    Each argument is either a single value or a list of values. The first
    argument varies slowest::

        cross_join("a", ["b", "c"])         # [["a", "b"], ["a", "c"]]
        cross_join(["a", "b"], ["c", "d"])  # [["a", "c"], ["a", "d"],
                                            #  ["b", "c"], ["b", "d"]]

    Returns None when called without arguments or when any argument is
    None.
    """
    if not sets or any(s is None for s in sets):
        return None

    normalized = [list(s) if _is_sequence(s) else [s] for s in sets]
    return [list(combination) for combination in product(*normalized)]
