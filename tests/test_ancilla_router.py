import copy
import pytest

from patchslicer.ancilla_router import (
    graph_search_route_ancilla, do_s_gate_routing, build_routing_graph, bounded_neighbours, TWIST_TARGET,
)
from patchslicer.errors import PatchNotFoundError, UnsupportedMultiCellRoutingError, UnsupportedOperatorError
from patchslicer.layout import SimpleLayout, DistillationRegion
from patchslicer.patches import (
    Cell, Boundary, BoundaryType, PauliOperator, Patch, SingleCell, MultiCell,
)
from patchslicer.slice import Slice, first_slice_from_layout

X, Z = PauliOperator.X, PauliOperator.Z
CONNECTED = Boundary(BoundaryType.CONNECTED, True)
ROUGH = Boundary(BoundaryType.ROUGH, False)

def square(row, col, patch_id):
    patch = SimpleLayout.basic_square_patch(Cell(row, col))
    patch.id = patch_id
    return patch

def filler(row, col, patch_id):
    """Patch with no usable boundaries, only there to occupy a cell."""
    return Patch(SingleCell(Cell(row, col)), id=patch_id)

def check_region(region, source_cell, target_cell):
    cells = region.get_cells()
    assert region.is_contiguous()
    assert len(set(cells)) == len(cells)
    assert source_cell.is_adjacent(cells[0])
    assert target_cell.is_adjacent(cells[-1])
    assert source_cell not in cells and target_cell not in cells
    path = [source_cell] + cells + [target_cell]
    for prev, sub_cell, nxt in zip(path, region.cells, path[2:]):
        for neighbour in sub_cell.cell.neighbours():
            expected = CONNECTED if neighbour in (prev, nxt) else Boundary()
            assert sub_cell.get_boundary(neighbour) == expected

def test_straight_route():
    source = Patch(SingleCell(Cell(0, 0), right=ROUGH), id=0)
    target = Patch(SingleCell(Cell(0, 3), left=ROUGH), id=1)
    slice = Slice(layout=SimpleLayout(0), qubit_patches=[source, target])

    region = graph_search_route_ancilla(slice, 0, X, 1, X)

    assert region is not None
    assert region.get_cells() == [Cell(0, 1), Cell(0, 2)]
    check_region(region, Cell(0, 0), Cell(0, 3))
    assert region.cells[0].left == CONNECTED and region.cells[0].right == CONNECTED
    assert region.cells[0].top == Boundary() and region.cells[0].bottom == Boundary()

def test_route_blocked():
    source = Patch(SingleCell(Cell(0, 0), right=ROUGH), id=0)
    target = Patch(SingleCell(Cell(0, 3), left=ROUGH), id=1)
    slice = Slice(layout=SimpleLayout(0), qubit_patches=[source, target, filler(0, 1, 2), filler(0, 2, 3)])
    assert graph_search_route_ancilla(slice, 0, X, 1, X) is None

    # a single blocking cell next to both patches must not be used as a path
    slice = Slice(layout=SimpleLayout(0), qubit_patches=[
        Patch(SingleCell(Cell(0, 0), right=ROUGH), id=0),
        Patch(SingleCell(Cell(0, 2), left=ROUGH), id=1),
        filler(0, 1, 2),
    ])
    assert graph_search_route_ancilla(slice, 0, X, 1, X) is None

def test_route_wrong_boundary_type():
    source = Patch(SingleCell(Cell(0, 0), right=ROUGH), id=0)
    target = Patch(SingleCell(Cell(0, 3), left=ROUGH), id=1)
    slice = Slice(layout=SimpleLayout(0), qubit_patches=[source, target])
    assert graph_search_route_ancilla(slice, 0, Z, 1, X) is None
    assert graph_search_route_ancilla(slice, 0, X, 1, Z) is None

def test_route_around_obstacle():
    slice = Slice(layout=SimpleLayout(0), qubit_patches=[
        square(1, 0, 0),
        square(1, 2, 1),
        filler(1, 1, 2),
        filler(2, 2, 3),
    ])
    region = graph_search_route_ancilla(slice, 0, X, 1, X)
    assert region is not None
    assert region.get_cells() == [Cell(0, 0), Cell(0, 1), Cell(0, 2)]
    check_region(region, Cell(1, 0), Cell(1, 2))
    assert region.cells[0].bottom == CONNECTED
    assert region.cells[0].right == CONNECTED
    assert region.cells[0].top == Boundary() and region.cells[0].left == Boundary()

def test_route_does_not_leave_bounds():
    # all patches are on row 0, so the rough top and bottom boundaries of the
    # simple layout have nowhere to go
    slice = first_slice_from_layout(SimpleLayout(2))
    for i,patch in enumerate(slice.qubit_patches):
        patch.id = i
    assert graph_search_route_ancilla(slice, 0, X, 1, X) is None

    region = graph_search_route_ancilla(slice, 0, Z, 1, Z)
    assert region is not None
    assert region.get_cells() == [Cell(0, 1)]
    check_region(region, Cell(0, 0), Cell(0, 2))

def test_route_avoids_reserved_cells():
    class ReservedLayout(SimpleLayout):
        def distillation_regions(self):
            return [DistillationRegion((SingleCell(Cell(0, 1)),))]

    slice = first_slice_from_layout(ReservedLayout(2))
    for i,patch in enumerate(slice.qubit_patches):
        patch.id = i
    assert graph_search_route_ancilla(slice, 0, Z, 1, Z) is None

def test_self_measurement():
    slice = Slice(layout=SimpleLayout(0), qubit_patches=[square(1, 1, 0), filler(2, 2, 1)])

    region = graph_search_route_ancilla(slice, 0, X, 0, Z)

    assert region is not None
    assert len(region) == 3
    check_region(region, Cell(1, 1), Cell(1, 1))
    # leaves through a rough (top/bottom) side, returns through a smooth one
    assert region.get_cells()[0] in (Cell(0, 1), Cell(2, 1))
    assert region.get_cells()[-1] in (Cell(1, 0), Cell(1, 2))

    s_region = do_s_gate_routing(slice, 0)
    assert s_region is not None
    assert len(s_region) == 3

def test_self_measurement_infeasible():
    slice = Slice(layout=SimpleLayout(0), qubit_patches=[square(0, 0, 0), filler(0, 1, 1), filler(1, 0, 2)])
    assert do_s_gate_routing(slice, 0) is None

def test_twist_target_vertex():
    slice = Slice(layout=SimpleLayout(0), qubit_patches=[square(1, 1, 0), filler(2, 2, 1)])
    patch = slice.get_patch_by_id(0).cells
    graph, target_vertex = build_routing_graph(slice, patch, BoundaryType.ROUGH, patch, BoundaryType.SMOOTH, twist=True)
    assert target_vertex == TWIST_TARGET
    assert target_vertex != patch.cell
    assert set(graph.predecessors(TWIST_TARGET)) == {Cell(1, 0), Cell(1, 2)}
    assert set(graph.successors(Cell(1, 1))) == {Cell(0, 1), Cell(2, 1)}
    # occupied cells have no way in
    assert set(graph.predecessors(Cell(2, 2))) == set()
    assert graph.number_of_nodes() == 9 + 1

def test_bounded_neighbours():
    assert set(bounded_neighbours(Cell(0, 0), Cell(1, 1))) == {Cell(1, 0), Cell(0, 1)}
    assert bounded_neighbours(Cell(0, 0), Cell(0, 0)) == []

def test_multi_cell_rejected():
    multi = Patch(MultiCell([SingleCell(Cell(1, 0)), SingleCell(Cell(1, 1))]), id=5)
    slice = Slice(layout=SimpleLayout(0), qubit_patches=[square(0, 0, 0), multi])
    with pytest.raises(UnsupportedMultiCellRoutingError):
        graph_search_route_ancilla(slice, 0, X, 5, X)
    with pytest.raises(UnsupportedMultiCellRoutingError):
        graph_search_route_ancilla(slice, 5, Z, 0, X)

def test_missing_patch_and_bad_operator():
    slice = Slice(layout=SimpleLayout(0), qubit_patches=[square(0, 0, 0), square(0, 2, 1)])
    with pytest.raises(PatchNotFoundError):
        graph_search_route_ancilla(slice, 0, Z, 7, Z)
    with pytest.raises(UnsupportedOperatorError):
        graph_search_route_ancilla(slice, 0, PauliOperator.Y, 1, Z)
    with pytest.raises(UnsupportedOperatorError):
        graph_search_route_ancilla(slice, 0, Z, 1, PauliOperator.I)

def test_routing_does_not_mutate_slice():
    slice = Slice(layout=SimpleLayout(0), qubit_patches=[square(1, 0, 0), square(1, 2, 1), filler(2, 2, 2)])
    before = copy.deepcopy(slice.qubit_patches)
    graph_search_route_ancilla(slice, 0, X, 1, X)
    assert slice.routing_regions == []
    assert slice.qubit_patches == before

def test_adjacent_patches_need_no_ancilla():
    smooth = Boundary(BoundaryType.SMOOTH, False)
    source = Patch(SingleCell(Cell(0, 0), right=smooth), id=0)
    target = Patch(SingleCell(Cell(0, 1), left=smooth), id=1)
    slice = Slice(layout=SimpleLayout(0), qubit_patches=[source, target])

    region = graph_search_route_ancilla(slice, 0, Z, 1, Z)
    assert region is not None
    assert len(region) == 0

    # the direct merge beats a detour through free cells above
    source = Patch(SingleCell(Cell(1, 0), top=smooth, right=smooth), id=0)
    target = Patch(SingleCell(Cell(1, 1), top=smooth, left=smooth), id=1)
    slice = Slice(layout=SimpleLayout(0), qubit_patches=[source, target])

    region = graph_search_route_ancilla(slice, 0, Z, 1, Z)
    assert region is not None
    assert len(region) == 0

    # no rough boundary to start an X route from
    assert graph_search_route_ancilla(slice, 0, X, 1, Z) is None

def test_adjacent_patches_need_matching_facing_boundaries():
    smooth = Boundary(BoundaryType.SMOOTH, False)
    source = Patch(SingleCell(Cell(1, 0), top=smooth, right=smooth), id=0)
    target = Patch(SingleCell(Cell(1, 1), top=smooth, left=ROUGH), id=1)
    slice = Slice(layout=SimpleLayout(0), qubit_patches=[source, target])

    region = graph_search_route_ancilla(slice, 0, Z, 1, Z)
    assert region is not None
    assert region.get_cells() == [Cell(0, 0), Cell(0, 1)]
    check_region(region, Cell(1, 0), Cell(1, 1))
