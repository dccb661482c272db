"""
Tests for the Grid model: definition, wire mapping and cell access.
"""

import pytest
from lxml import etree
from pydantic import ValidationError

from smartview.errors import GridSpecError, ProtocolError
from smartview.query.axis import cross_join
from smartview.query.grid import CellKind, Grid

UL, MBR, DATA, TEXT = (
    CellKind.UPPER_LEFT,
    CellKind.MEMBER,
    CellKind.DATA,
    CellKind.TEXT,
)

DIMENSIONS = ["Account", "Period", "Entity", "Scenario"]
POV = {"Account": "Sales", "Period": "Q1", "Entity": "E1", "Scenario": "Actual"}

REFRESH_RESPONSE = """<?xml version="1.0" encoding="UTF-8"?>
<res_Refresh>
  <sID>S1</sID>
  <grid>
    <cube/>
    <dims>
      <dim id="2" name="Entity" pov="E1" display="E1" hidden="0" expand="0"/>
      <dim id="0" name="Account" row="0" hidden="0" expand="0"/>
      <dim id="1" name="Period" col="0" hidden="0" expand="0"/>
    </dims>
    <slices>
      <slice rows="2" cols="3">
        <data>
          <range start="0" end="5">
            <vals>|Q1|Q2|Sales|42.5|</vals>
            <types>7|0|0|0|2|2</types>
          </range>
        </data>
      </slice>
    </slices>
  </grid>
</res_Refresh>
"""


def slice_xml(rows, cols, vals, types, dims=""):
    return (
        f"<grid><cube/>{dims}<slices><slice rows='{rows}' cols='{cols}'><data>"
        f"<range start='0' end='0'><vals>{vals}</vals><types>{types}</types>"
        f"</range></data></slice></slices></grid>"
    )


class TestGridDefine:
    """Test Grid.define."""

    def setup_method(self):
        self.grid = Grid.define(
            DIMENSIONS,
            POV,
            {"Account": ["Sales", "COGS"]},
            {"Period": ["Q1", "Q2", "Q3"]},
        )

    def test_counts(self):
        assert self.grid.row_count == 3
        assert self.grid.col_count == 4
        assert len(self.grid.values) == 12
        assert len(self.grid.cell_kinds) == 12

    def test_layout(self):
        assert self.grid.values == (
            "", "Q1", "Q2", "Q3",
            "Sales", "", "", "",
            "COGS", "", "", "",
        )  # fmt: skip
        assert self.grid.cell_kinds == (
            UL, MBR, MBR, MBR,
            MBR, DATA, DATA, DATA,
            MBR, DATA, DATA, DATA,
        )  # fmt: skip

    def test_axis_dimensions(self):
        assert self.grid.row_dims == ("Account",)
        assert self.grid.col_dims == ("Period",)
        assert self.grid.dimensions == tuple(DIMENSIONS)

    def test_pov_excludes_axis_dimensions(self):
        assert self.grid.pov == {"Entity": "E1", "Scenario": "Actual"}

    def test_data_cells_are_empty(self):
        assert self.grid.data() == [[None, None, None], [None, None, None]]

    def test_multiple_dimensions_per_axis(self):
        grid = Grid.define(
            ["Entity", "Account", "Year", "Period"],
            {},
            {("Entity", "Account"): cross_join(["E1", "E2"], "Sales")},
            {("Year", "Period"): [["FY24", "Q1"], ["FY24", "Q2"]]},
        )

        assert grid.row_count == 2 + 2
        assert grid.col_count == 2 + 2
        assert list(grid.rows()) == [
            ["", "", "FY24", "FY24"],
            ["", "", "Q1", "Q2"],
            ["E1", "Sales", "", ""],
            ["E2", "Sales", "", ""],
        ]
        assert grid.row_headers() == [("E1", "Sales"), ("E2", "Sales")]
        assert grid.column_headers() == [("FY24", "Q1"), ("FY24", "Q2")]

    def test_combined_rows_and_cols_mapping(self):
        grid = Grid.define(
            DIMENSIONS,
            POV,
            {"Account": ["Sales", "COGS"], "Period": ["Q1", "Q2", "Q3"]},
        )

        assert grid == self.grid

    def test_combined_mapping_needs_two_entries(self):
        with pytest.raises(GridSpecError):
            Grid.define(DIMENSIONS, POV, {"Account": ["Sales"]})

    def test_tuple_arity_mismatch(self):
        with pytest.raises(GridSpecError):
            Grid.define(
                DIMENSIONS,
                POV,
                {("Account", "Entity"): [["Sales", "E1", "E2"]]},
                {"Period": "Q1"},
            )

    def test_dimension_on_both_axes(self):
        with pytest.raises(GridSpecError):
            Grid.define(DIMENSIONS, POV, {"Account": "Sales"}, {"Account": "COGS"})

    def test_unknown_axis_dimension(self):
        with pytest.raises(GridSpecError):
            Grid.define(DIMENSIONS, POV, {"Custom1": "C1"}, {"Period": "Q1"})

    def test_missing_pov_member(self):
        with pytest.raises(GridSpecError):
            Grid.define(
                DIMENSIONS, {"Entity": "E1"}, {"Account": "Sales"}, {"Period": "Q1"}
            )

    def test_caller_inputs_are_not_mutated(self):
        dimensions = list(DIMENSIONS)
        pov = dict(POV)
        Grid.define(dimensions, pov, {"Account": "Sales"}, {"Period": "Q1"})

        assert dimensions == DIMENSIONS
        assert pov == POV

    def test_grid_is_immutable(self):
        with pytest.raises(ValidationError):
            self.grid.row_count = 10

    def test_pov_is_read_only(self):
        with pytest.raises(TypeError):
            self.grid.pov["Entity"] = "E2"

        assert self.grid.pov == {"Entity": "E1", "Scenario": "Actual"}

    def test_grid_is_hashable(self):
        same = Grid.define(
            DIMENSIONS,
            POV,
            {"Account": ["Sales", "COGS"]},
            {"Period": ["Q1", "Q2", "Q3"]},
        )

        assert hash(self.grid) == hash(same)
        assert self.grid == same

    def test_inconsistent_arrays_rejected(self):
        with pytest.raises(ValidationError):
            Grid(row_count=2, col_count=2, values=("a",), cell_kinds=(MBR,))


class TestGridXML:
    """Test serialization to and from the wire format."""

    def setup_method(self):
        self.grid = Grid.define(
            DIMENSIONS,
            POV,
            {"Account": ["Sales", "COGS"]},
            {"Period": ["Q1", "Q2"]},
        )

    def test_to_xml_slice(self):
        element = self.grid.to_xml()

        assert element.tag == "grid"
        assert element.find("cube") is not None
        slice_ = element.find("slices/slice")
        assert slice_.get("rows") == "3"
        assert slice_.get("cols") == "3"
        range_ = slice_.find("data/range")
        assert range_.get("start") == "0"
        assert range_.get("end") == "8"
        assert range_.findtext("vals") == "|Q1|Q2|Sales|||COGS||"
        assert range_.findtext("types") == "7|0|0|0|2|2|0|2|2"

    def test_to_xml_dims(self):
        dims = self.grid.to_xml().findall("dims/dim")

        assert [dim.get("name") for dim in dims] == DIMENSIONS
        assert [dim.get("id") for dim in dims] == ["0", "1", "2", "3"]
        assert dims[0].get("row") == "0"
        assert dims[1].get("col") == "0"
        assert dims[2].get("pov") == "E1"
        assert dims[2].get("display") == "E1"
        assert dims[3].get("pov") == "Actual"
        for dim in dims:
            roles = [role for role in ("row", "col", "pov") if dim.get(role) is not None]
            assert len(roles) == 1

    def test_to_xml_without_dims(self):
        element = self.grid.to_xml(include_dims=False)

        assert element.find("dims") is None

    def test_to_xml_appends_to_parent(self):
        parent = etree.Element("req_Refresh")
        grid = self.grid.to_xml(parent)

        assert grid.getparent() is parent

    def test_round_trip(self):
        grid = Grid.from_xml(self.grid.to_xml())

        assert grid.row_count == self.grid.row_count
        assert grid.col_count == self.grid.col_count
        assert grid.values == self.grid.values
        assert grid.cell_kinds == self.grid.cell_kinds
        assert grid.row_dims == self.grid.row_dims
        assert grid.col_dims == self.grid.col_dims
        assert grid.pov == self.grid.pov
        assert grid.dimensions == self.grid.dimensions

    def test_round_trip_multi_dimension_axes(self):
        grid = Grid.define(
            [],
            {"Scenario": "Actual"},
            {("Entity", "Account"): cross_join(["E1", "E2"], ["Sales", "COGS"])},
            {("Year", "Period"): cross_join("FY24", ["Q1", "Q2", "Q3"])},
        )
        parsed = Grid.from_xml(etree.tostring(grid.to_xml()))

        assert parsed.values == grid.values
        assert parsed.cell_kinds == grid.cell_kinds
        assert parsed.row_dims == ("Entity", "Account")
        assert parsed.col_dims == ("Year", "Period")
        assert parsed.pov == {"Scenario": "Actual"}

    def test_from_response(self):
        grid = Grid.from_xml(REFRESH_RESPONSE.encode("utf-8"))

        assert grid.dimensions == ("Account", "Period", "Entity")
        assert grid.row_dims == ("Account",)
        assert grid.col_dims == ("Period",)
        assert grid.pov == {"Entity": "E1"}
        assert grid.row_count == 2
        assert grid.col_count == 3

    def test_trailing_empty_cell_preserved(self):
        grid = Grid.from_xml(REFRESH_RESPONSE.encode("utf-8"))

        assert len(grid.values) == 6
        assert grid.values[-1] == ""
        assert grid.cell(1, 2) is None

    def test_single_empty_cell(self):
        grid = Grid.from_xml(slice_xml(1, 1, "", "2"))

        assert grid.values == ("",)
        assert grid.cell(0, 0) is None

    def test_empty_grid(self):
        grid = Grid.from_xml(slice_xml(0, 0, "", ""))

        assert grid.values == ()
        assert list(grid.rows()) == []

    def test_missing_slice(self):
        with pytest.raises(ProtocolError):
            Grid.from_xml("<res_Refresh><grid><cube/></grid></res_Refresh>")

    def test_missing_types(self):
        xml = (
            "<grid><slices><slice rows='1' cols='1'><data><range>"
            "<vals>x</vals></range></data></slice></slices></grid>"
        )
        with pytest.raises(ProtocolError):
            Grid.from_xml(xml)

    def test_cell_count_mismatch(self):
        with pytest.raises(ProtocolError):
            Grid.from_xml(slice_xml(2, 2, "a|b|c", "0|0|0"))

    def test_unknown_cell_kind(self):
        with pytest.raises(ProtocolError):
            Grid.from_xml(slice_xml(1, 1, "a", "9"))

    def test_invalid_row_count(self):
        with pytest.raises(ProtocolError):
            Grid.from_xml(slice_xml("x", 1, "a", "0"))

    def test_dim_with_two_roles(self):
        dims = "<dims><dim id='0' name='Account' row='0' pov='Sales'/></dims>"
        with pytest.raises(ProtocolError):
            Grid.from_xml(slice_xml(1, 1, "a", "0", dims))

    @pytest.mark.parametrize("role", ["row", "col"])
    def test_dims_sharing_axis_position(self, role):
        dims = (
            f"<dims><dim id='0' name='Account' {role}='0'/>"
            f"<dim id='1' name='Entity' {role}='0'/></dims>"
        )
        with pytest.raises(ProtocolError):
            Grid.from_xml(slice_xml(1, 1, "a", "0", dims))

    def test_dim_ids_with_gap(self):
        dims = (
            "<dims><dim id='0' name='Account' row='0'/>"
            "<dim id='2' name='Period' col='0'/></dims>"
        )
        with pytest.raises(ProtocolError):
            Grid.from_xml(slice_xml(1, 1, "a", "0", dims))

    def test_malformed_document(self):
        with pytest.raises(ProtocolError):
            Grid.from_xml("<grid><slices>")


class TestGridCells:
    """Test cell access."""

    def setup_method(self):
        self.grid = Grid.from_xml(REFRESH_RESPONSE)

    def test_member_and_blank_cells_are_strings(self):
        assert self.grid.cell(0, 0) == ""
        assert self.grid.cell(0, 1) == "Q1"
        assert self.grid.cell(1, 0) == "Sales"

    def test_populated_data_cell(self):
        assert self.grid.cell(1, 1) == 42.5
        assert isinstance(self.grid.cell(1, 1), float)

    def test_empty_data_cell_is_no_value(self):
        assert self.grid.cell(1, 2) is None

    def test_zero_is_not_no_value(self):
        grid = Grid.from_xml(slice_xml(1, 1, "0", "2"))

        assert grid.cell(0, 0) == 0.0
        assert grid.cell(0, 0) is not None

    def test_cell_kind(self):
        assert self.grid.cell_kind(0, 0) == CellKind.UPPER_LEFT
        assert self.grid.cell_kind(1, 0) == CellKind.MEMBER
        assert self.grid.cell_kind(1, 1) == CellKind.DATA

    def test_text_cell(self):
        grid = Grid.from_xml(slice_xml(1, 1, "note", "3"))

        assert grid.cell(0, 0) == "note"
        assert grid.cell_kind(0, 0) == CellKind.TEXT

    def test_non_numeric_data_cell(self):
        grid = Grid.from_xml(slice_xml(1, 1, "#Missing", "2"))

        with pytest.raises(ProtocolError):
            grid.cell(0, 0)

    @pytest.mark.parametrize("row, col", [(-1, 0), (0, -1), (2, 0), (0, 3), (5, 5)])
    def test_out_of_range(self, row, col):
        with pytest.raises(IndexError):
            self.grid.cell(row, col)

    def test_headers_and_data(self):
        assert self.grid.row_headers() == [("Sales",)]
        assert self.grid.column_headers() == [("Q1",), ("Q2",)]
        assert self.grid.data() == [[42.5, None]]
