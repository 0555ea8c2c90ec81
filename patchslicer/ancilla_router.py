"""Ancilla routing for two-patch lattice surgery measurements.

The lattice is turned into a directed graph whose vertices are cells. A path
may step from any free cell into any adjacent free cell. It must leave the
source patch through a boundary exposing the source operator and enter the
target patch through a boundary exposing the target operator. The shortest
such path, minus its two endpoints, is the routing region.
"""
from typing import Callable
import networkx as nx

from patchslicer.errors import UnsupportedMultiCellRoutingError
from patchslicer.patches import (
    Cell, Boundary, BoundaryType, PauliOperator, PatchId, SingleCell, RoutingRegion, boundary_for_operator,
)
from patchslicer.slice import Slice

NeighboursFn = Callable[[Cell, Cell], list[Cell]]

# Stand-in end vertex used when a patch is measured against itself
TWIST_TARGET = 'twist_target'

def bounded_neighbours(cell: Cell, furthest_cell: Cell) -> list[Cell]:
    """Neighbours of cell inside the box from (0,0) to furthest_cell."""
    return cell.neighbours_within_box(Cell(0, 0), furthest_cell)

def _single_cell_patch(slice: Slice, patch_id: PatchId) -> SingleCell:
    patch = slice.get_patch_by_id(patch_id)
    if not isinstance(patch.cells, SingleCell):
        raise UnsupportedMultiCellRoutingError(f'Cannot route to or from patch {patch_id}, which spans {len(patch.get_cells())} cells.')
    return patch.cells

def build_routing_graph(
        slice: Slice,
        source: SingleCell,
        source_boundary: BoundaryType,
        target: SingleCell,
        target_boundary: BoundaryType,
        twist: bool = False,
        neighbours_fn: NeighboursFn = bounded_neighbours,
    ) -> tuple[nx.DiGraph, Cell | str]:
    """Build the search graph for one routing problem.

    Args:
        slice: Slice whose occupancy constrains the route.
        source: Patch the route starts from.
        source_boundary: Boundary type the route must leave source through.
        target: Patch the route ends at.
        target_boundary: Boundary type the route must enter target through.
        twist: If True, source and target are the same patch, and the route
            ends at TWIST_TARGET instead of at the patch cell, so that the
            search does not stop at distance zero.
        neighbours_fn: Neighbour generation strategy, given a cell and the
            furthest cell of the search box.

    Returns:
        The graph and the vertex the route must reach.
    """
    furthest_cell = slice.furthest_cell()
    graph = nx.DiGraph()

    free_cells = set()
    for row in range(furthest_cell.row+1):
        for col in range(furthest_cell.col+1):
            cell = Cell(row, col)
            graph.add_node(cell)
            if slice.is_cell_free(cell):
                free_cells.add(cell)

    for cell in free_cells:
        for neighbour in neighbours_fn(cell, furthest_cell):
            if neighbour in free_cells:
                graph.add_edge(neighbour, cell, weight=1)

    for neighbour in neighbours_fn(source.cell, furthest_cell):
        boundary = source.get_boundary(neighbour)
        if boundary is None or boundary.boundary_type != source_boundary:
            continue
        if neighbour in free_cells:
            graph.add_edge(source.cell, neighbour, weight=1)
        elif not twist and neighbour == target.cell:
            # Adjacent patches with facing boundaries merge with no ancilla
            facing = target.get_boundary(source.cell)
            if facing is not None and facing.boundary_type == target_boundary:
                graph.add_edge(source.cell, target.cell, weight=1)

    target_vertex = TWIST_TARGET if twist else target.cell
    graph.add_node(target_vertex)
    for neighbour in neighbours_fn(target.cell, furthest_cell):
        boundary = target.get_boundary(neighbour)
        if boundary is not None and boundary.boundary_type == target_boundary and neighbour in free_cells:
            graph.add_edge(neighbour, target_vertex, weight=1)

    return graph, target_vertex

def graph_search_route_ancilla(
        slice: Slice,
        source: PatchId,
        source_op: PauliOperator,
        target: PatchId,
        target_op: PauliOperator,
        neighbours_fn: NeighboursFn = bounded_neighbours,
    ) -> RoutingRegion | None:
    """Find the shortest channel of free cells joining a source_op boundary of
    patch source to a target_op boundary of patch target.

    If source == target, this routes a twist (S gate) measurement from one
    boundary of the patch back to another.

    Returns:
        The routing region, in order from source to target, or None if no
        such channel exists in the current slice.
    """
    source_patch = _single_cell_patch(slice, source)
    target_patch = _single_cell_patch(slice, target)
    graph, target_vertex = build_routing_graph(
        slice,
        source_patch,
        boundary_for_operator(source_op),
        target_patch,
        boundary_for_operator(target_op),
        twist=(source == target),
        neighbours_fn=neighbours_fn,
    )

    source_vertex = source_patch.cell
    predecessors, _ = nx.dijkstra_predecessor_and_distance(graph, source_vertex)

    def predecessor(vertex):
        # The source and unreached vertices are their own predecessor
        preds = predecessors.get(vertex)
        return preds[0] if preds else vertex

    furthest_cell = slice.furthest_cell()
    path: list[SingleCell] = []
    prec = target_patch.cell
    curr = predecessor(target_vertex)
    nxt = predecessor(curr)
    while curr != nxt:
        sub_cell = SingleCell(curr)
        for neighbour in neighbours_fn(curr, furthest_cell):
            if neighbour == prec or neighbour == nxt:
                sub_cell.set_boundary(neighbour, Boundary(BoundaryType.CONNECTED, True))
        path.append(sub_cell)

        prec = curr
        curr = nxt
        nxt = predecessor(nxt)

    if curr != source_vertex:
        return None
    path.reverse()
    return RoutingRegion(path)

def do_s_gate_routing(slice: Slice, target: PatchId) -> RoutingRegion | None:
    """Route the twist ancilla for an S gate on target, from its X boundary
    around to its Z boundary."""
    return graph_search_route_ancilla(slice, target, PauliOperator.X, target, PauliOperator.Z)
