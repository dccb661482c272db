"""
Grid model: a two dimensional slice of a cube.

A grid lays out the members of the row and column dimensions around a block
of data cells, the way the provider renders a pivot table. The first
``len(col_dims)`` rows hold the column headers, the first ``len(row_dims)``
columns hold the row headers, and the corner where both meet is blank::

    <blank>  | Q1     | Q2
    Sales    | 100.0  | 120.0
    COGS     | 40.0   | <empty>

Cells are stored flattened in row-major order together with a parallel
array of cell kinds, which is also how they travel on the wire.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from enum import IntEnum
from types import MappingProxyType
from typing import Any

from lxml import etree
from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..errors import GridSpecError, ProtocolError
from ..wire import (
    FIELD_SEPARATOR,
    find_required,
    find_text,
    join_fields,
    parse_response,
    split_fields,
    sub_element,
)
from .axis import AxisSpec, process_axes

__all__ = ["CellKind", "Grid"]


class CellKind(IntEnum):
    """Kind of a grid cell. The values are the provider's wire codes."""

    MEMBER = 0
    DATA = 2
    TEXT = 3
    UPPER_LEFT = 7


class Grid(BaseModel):
    """
    Immutable grid of header and data cells.

    Grids are either defined from row and column specifications with
    `Grid.define`, in which case the data cells are empty and the grid is a
    request template, or read from a provider response with
    `Grid.from_xml`.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    dimensions: tuple[str, ...] = Field(
        default_factory=tuple,
        description="All cube dimensions, indexed by provider ordinal",
    )
    pov_items: tuple[tuple[str, str], ...] = Field(
        default_factory=tuple,
        examples=[(("Scenario", "Actual"), ("Year", "FY24"))],
        description="Member of each dimension on neither axis",
    )
    row_dims: tuple[str, ...] = Field(default_factory=tuple)
    col_dims: tuple[str, ...] = Field(default_factory=tuple)
    row_count: int = Field(0, ge=0)
    col_count: int = Field(0, ge=0)
    values: tuple[str, ...] = Field(default_factory=tuple)
    cell_kinds: tuple[CellKind, ...] = Field(default_factory=tuple)

    @model_validator(mode="before")
    @classmethod
    def pov_from_mapping(cls, data: Any) -> Any:
        """Accept the point of view as a `pov` mapping."""
        if isinstance(data, Mapping) and "pov" in data:
            data = dict(data)
            pov = data.pop("pov") or {}
            data["pov_items"] = tuple(pov.items())
        return data

    @model_validator(mode="after")
    def validate_cell_arrays(self):
        """Cell arrays must cover exactly row_count x col_count cells."""
        size = self.row_count * self.col_count
        if len(self.values) != size or len(self.cell_kinds) != size:
            raise ValueError(
                f"Grid of {self.row_count}x{self.col_count} needs {size} cells, "
                f"got {len(self.values)} values and {len(self.cell_kinds)} kinds"
            )
        return self

    @property
    def pov(self) -> Mapping[str, str]:
        """Read-only view of the point of view members."""
        return MappingProxyType(dict(self.pov_items))

    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def define(
        cls,
        dimensions: Sequence[str] | None,
        pov: Mapping[str, str] | None,
        rows: AxisSpec | Mapping[Any, Any],
        cols: AxisSpec = None,
    ) -> Grid:
        """
        Define a request grid from row and column specifications.

        Args:
            dimensions: All cube dimensions in provider order. May be empty,
                in which case dimension membership is not checked.
            pov: Point of view; must name a member for every dimension in
                `dimensions` that is not placed on an axis. Entries for axis
                dimensions are ignored.
            rows: Row axis specification, see `smartview.query.axis`. When
                `cols` is omitted, a two-entry mapping holding the rows
                followed by the columns.
            cols: Column axis specification

        Returns:
            Grid whose header cells are populated and whose data cells are
            empty.

        Raises:
            GridSpecError: If the specification is inconsistent
        """
        row_dims, row_tuples, col_dims, col_tuples = process_axes(rows, cols)

        dimensions = list(dimensions or [])
        pov = dict(pov or {})
        grid_pov = cls._validate_layout(dimensions, pov, row_dims, col_dims)

        values: list[str] = []
        kinds: list[CellKind] = []

        for header_row in range(len(col_dims)):
            values.extend([""] * len(row_dims))
            kinds.extend([CellKind.UPPER_LEFT] * len(row_dims))
            for col_tuple in col_tuples:
                values.append(col_tuple[header_row])
                kinds.append(CellKind.MEMBER)

        for row_tuple in row_tuples:
            values.extend(row_tuple)
            kinds.extend([CellKind.MEMBER] * len(row_tuple))
            values.extend([""] * len(col_tuples))
            kinds.extend([CellKind.DATA] * len(col_tuples))

        return cls(
            dimensions=tuple(dimensions),
            pov=grid_pov,
            row_dims=tuple(row_dims),
            col_dims=tuple(col_dims),
            row_count=len(col_dims) + len(row_tuples),
            col_count=len(row_dims) + len(col_tuples),
            values=tuple(values),
            cell_kinds=tuple(kinds),
        )

    @staticmethod
    def _validate_layout(
        dimensions: list[str],
        pov: dict[str, str],
        row_dims: list[str],
        col_dims: list[str],
    ) -> dict[str, str]:
        axis_dims = row_dims + col_dims
        seen = set()
        for name in axis_dims:
            if name in seen:
                raise GridSpecError(f"Dimension '{name}' is placed on an axis twice")
            seen.add(name)

        if not dimensions:
            return {name: member for name, member in pov.items() if name not in seen}

        unknown = [name for name in axis_dims if name not in dimensions]
        if unknown:
            raise GridSpecError(
                f"Unknown dimension(s) on grid axes: {', '.join(unknown)}"
            )

        grid_pov = {}
        for name in dimensions:
            if name in seen:
                continue
            if name not in pov:
                raise GridSpecError(
                    f"No point of view member given for dimension '{name}'"
                )
            grid_pov[name] = pov[name]
        return grid_pov

    # Wire format
    # ------------------------------------------------------------------

    @property
    def dimension_order(self) -> tuple[str, ...]:
        """Dimensions in the order they are sent to the provider."""
        if self.dimensions:
            return self.dimensions
        return self.row_dims + self.col_dims + tuple(self.pov)

    def to_xml(
        self, parent: etree._Element | None = None, include_dims: bool = True
    ) -> etree._Element:
        """
        Serialize the grid to a `grid` element.

        Args:
            parent: Element to append the grid to; a detached element is
                created when None
            include_dims: Whether to emit the `dims` block describing the
                role of every dimension

        Returns:
            The `grid` element
        """
        if parent is None:
            grid = etree.Element("grid")
        else:
            grid = sub_element(parent, "grid")

        sub_element(grid, "cube")
        if include_dims:
            self.dims_to_xml(grid)

        slices = sub_element(grid, "slices")
        slice_ = sub_element(slices, "slice", rows=self.row_count, cols=self.col_count)
        data = sub_element(slice_, "data")
        range_ = sub_element(data, "range", start=0, end=len(self.values) - 1)
        sub_element(range_, "vals", join_fields(self.values))
        sub_element(range_, "types", join_fields(int(kind) for kind in self.cell_kinds))
        return grid

    def dims_to_xml(self, parent: etree._Element) -> etree._Element:
        """Append the `dims` block to `parent` and return it."""
        dims = sub_element(parent, "dims")
        pov = self.pov
        for ordinal, name in enumerate(self.dimension_order):
            if name in self.row_dims:
                role = {"row": self.row_dims.index(name)}
            elif name in self.col_dims:
                role = {"col": self.col_dims.index(name)}
            elif name in pov:
                member = pov[name]
                role = {"pov": member, "display": member}
            else:
                raise GridSpecError(
                    f"Dimension '{name}' is on neither axis and has no point of "
                    f"view member"
                )
            sub_element(dims, "dim", id=ordinal, name=name, hidden=0, expand=0, **role)
        return dims

    @classmethod
    def from_xml(cls, element: etree._Element | str | bytes) -> Grid:
        """
        Read a grid from a provider response.

        `element` may be a whole response document or the `grid` element
        itself; the `dims` block and the `slice` are looked up beneath it.

        Raises:
            ProtocolError: If the slice is missing or inconsistent
        """
        if isinstance(element, (str, bytes)):
            element = parse_response(element)

        slice_ = element.find(".//slice")
        if slice_ is None:
            raise ProtocolError("Expected element 'slice' missing from response")

        row_count = _int_attribute(slice_, "rows")
        col_count = _int_attribute(slice_, "cols")
        size = row_count * col_count

        range_ = find_required(slice_, "data/range")
        values = _split_cells(find_text(range_, "vals"), size, "values")
        types = _split_cells(find_text(range_, "types"), size, "types")

        try:
            kinds = tuple(CellKind(int(code)) for code in types)
        except ValueError as e:
            raise ProtocolError(f"Invalid cell type in response: {e}") from e

        dimensions, pov, row_dims, col_dims = _read_dims(element.findall(".//dims/dim"))

        return cls(
            dimensions=tuple(dimensions),
            pov=pov,
            row_dims=tuple(row_dims),
            col_dims=tuple(col_dims),
            row_count=row_count,
            col_count=col_count,
            values=tuple(values),
            cell_kinds=kinds,
        )

    # Cell access
    # ------------------------------------------------------------------

    def _index(self, row: int, col: int) -> int:
        if not (0 <= row < self.row_count and 0 <= col < self.col_count):
            raise IndexError(
                f"Cell ({row}, {col}) is outside of the "
                f"{self.row_count}x{self.col_count} grid"
            )
        return row * self.col_count + col

    def cell_kind(self, row: int, col: int) -> CellKind:
        """Return the kind of the cell at (`row`, `col`)."""
        return self.cell_kinds[self._index(row, col)]

    def cell(self, row: int, col: int) -> str | float | None:
        """
        Return the value of the cell at (`row`, `col`).

        Data cells are returned as floats, or None when they hold no value.
        All other cells are returned as strings.

        Raises:
            IndexError: If the position is outside of the grid
            ProtocolError: If a data cell holds a non-numeric value
        """
        index = self._index(row, col)
        value = self.values[index]
        if self.cell_kinds[index] != CellKind.DATA:
            return value
        if value == "":
            return None
        try:
            return float(value)
        except ValueError as e:
            raise ProtocolError(
                f"Data cell ({row}, {col}) holds non-numeric value {value!r}"
            ) from e

    def rows(self) -> Iterator[list[str]]:
        """Yield the raw values of each grid row."""
        for row in range(self.row_count):
            start = row * self.col_count
            yield list(self.values[start : start + self.col_count])

    def row_headers(self) -> list[tuple[str, ...]]:
        """Member tuples labelling the body rows."""
        width = len(self.row_dims)
        return [
            tuple(self.values[row * self.col_count : row * self.col_count + width])
            for row in range(len(self.col_dims), self.row_count)
        ]

    def column_headers(self) -> list[tuple[str, ...]]:
        """Member tuples labelling the body columns."""
        return [
            tuple(
                self.values[header_row * self.col_count + col]
                for header_row in range(len(self.col_dims))
            )
            for col in range(len(self.row_dims), self.col_count)
        ]

    def data(self) -> list[list[float | str | None]]:
        """Values of the body cells, row by row."""
        return [
            [self.cell(row, col) for col in range(len(self.row_dims), self.col_count)]
            for row in range(len(self.col_dims), self.row_count)
        ]

    def __repr__(self) -> str:
        return (
            f"<Grid({self.row_count}x{self.col_count}, rows={list(self.row_dims)}, "
            f"cols={list(self.col_dims)})>"
        )


def _int_attribute(element: etree._Element, name: str) -> int:
    value = element.get(name)
    try:
        number = int(value)
    except (TypeError, ValueError) as e:
        raise ProtocolError(
            f"Attribute '{name}' of '{element.tag}' is not an integer: {value!r}"
        ) from e
    if number < 0:
        raise ProtocolError(f"Attribute '{name}' of '{element.tag}' is negative")
    return number


def _split_cells(text: str, size: int, what: str) -> list[str]:
    # A single empty cell is encoded as an empty string
    fields = text.split(FIELD_SEPARATOR) if size else split_fields(text)
    if len(fields) != size:
        raise ProtocolError(f"Expected {size} cell {what} in slice, got {len(fields)}")
    return fields


def _read_dims(
    elements: list[etree._Element],
) -> tuple[list[str], dict[str, str], list[str], list[str]]:
    by_id: dict[int, etree._Element] = {}
    for dim in elements:
        ordinal = _int_attribute(dim, "id")
        if ordinal in by_id:
            raise ProtocolError(f"Duplicate dimension id {ordinal} in response")
        by_id[ordinal] = dim

    if sorted(by_id) != list(range(len(by_id))):
        raise ProtocolError(
            f"Dimension ids in response are not contiguous: {sorted(by_id)}"
        )

    dimensions = []
    pov = {}
    row_positions: dict[int, str] = {}
    col_positions: dict[int, str] = {}

    for ordinal in range(len(by_id)):
        dim = by_id[ordinal]
        name = dim.get("name")
        if not name:
            raise ProtocolError(f"Dimension {ordinal} in response has no name")
        dimensions.append(name)

        roles = [role for role in ("pov", "row", "col") if dim.get(role) is not None]
        if len(roles) != 1:
            raise ProtocolError(
                f"Dimension '{name}' must have exactly one of pov, row or col, "
                f"got {roles or 'none'}"
            )

        role = roles[0]
        if role == "pov":
            pov[name] = dim.get("pov")
            continue

        positions = row_positions if role == "row" else col_positions
        position = _int_attribute(dim, role)
        if position in positions:
            raise ProtocolError(
                f"Dimensions '{positions[position]}' and '{name}' share {role} "
                f"position {position} in response"
            )
        positions[position] = name

    row_dims = [row_positions[pos] for pos in sorted(row_positions)]
    col_dims = [col_positions[pos] for pos in sorted(col_positions)]
    return dimensions, pov, row_dims, col_dims
