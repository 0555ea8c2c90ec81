from dataclasses import dataclass, field
from enum import Enum
import numpy as np

from patchslicer.errors import UnsupportedOperatorError

PatchId = int

@dataclass(frozen=True)
class Cell:
    """A coordinate on the 2D lattice grid. Coordinates may be negative; only
    the bounded neighbour query restricts them to a region."""
    row: int
    col: int

    def neighbours(self) -> list['Cell']:
        """The four axis-aligned cells at unit distance, in top, bottom, left,
        right order. These are not checked against any bound."""
        return [
            Cell(self.row-1, self.col),
            Cell(self.row+1, self.col),
            Cell(self.row, self.col-1),
            Cell(self.row, self.col+1),
        ]

    def neighbours_within_box(self, min_cell: 'Cell', max_cell: 'Cell') -> list['Cell']:
        """Neighbours that fall inside the rectangle spanned by min_cell and
        max_cell, both corners included."""
        return [
            n for n in self.neighbours()
            if min_cell.row <= n.row <= max_cell.row and min_cell.col <= n.col <= max_cell.col
        ]

    def is_adjacent(self, other: 'Cell') -> bool:
        return np.linalg.norm(np.array([self.row, self.col]) - np.array([other.row, other.col])) == 1

    def __str__(self):
        return f'({self.row},{self.col})'

class BoundaryType(Enum):
    NONE = 0
    ROUGH = 1
    SMOOTH = 2
    CONNECTED = 3

class PauliOperator(Enum):
    I = 0
    X = 1
    Y = 2
    Z = 3

    @classmethod
    def from_str(cls, s):
        try:
            return cls[s.strip().upper()]
        except KeyError:
            raise ValueError(f'Invalid Pauli operator string: {s}')

class PatchType(Enum):
    QUBIT = 'Qubit'
    ANCILLA = 'Ancilla'
    DISTILLATION_QUBIT = 'DistillationQubit'

class PatchActivity(Enum):
    NONE = 'None'
    UNITARY = 'Unitary'
    MEASUREMENT = 'Measurement'

def boundary_for_operator(op: PauliOperator) -> BoundaryType:
    """Boundary type that exposes the given logical operator. X operators are
    measured through rough boundaries and Z operators through smooth ones."""
    if op == PauliOperator.X:
        return BoundaryType.ROUGH
    elif op == PauliOperator.Z:
        return BoundaryType.SMOOTH
    raise UnsupportedOperatorError(f'No boundary corresponds to the {op.name} operator.')

@dataclass(frozen=True)
class Boundary:
    boundary_type: BoundaryType = BoundaryType.NONE
    is_active: bool = False

@dataclass
class SingleCell:
    """A patch occupying exactly one cell, with a boundary on each of its four
    edges."""
    cell: Cell
    top: Boundary = field(default_factory=Boundary)
    bottom: Boundary = field(default_factory=Boundary)
    left: Boundary = field(default_factory=Boundary)
    right: Boundary = field(default_factory=Boundary)

    def _side_facing(self, neighbour: Cell) -> str | None:
        top, bottom, left, right = self.cell.neighbours()
        if neighbour == top:
            return 'top'
        elif neighbour == bottom:
            return 'bottom'
        elif neighbour == left:
            return 'left'
        elif neighbour == right:
            return 'right'
        return None

    def get_boundary(self, neighbour: Cell) -> Boundary | None:
        """Return the boundary facing neighbour, or None if neighbour is not
        one of the four cells adjacent to this one."""
        side = self._side_facing(neighbour)
        if side is None:
            return None
        return getattr(self, side)

    def set_boundary(self, neighbour: Cell, boundary: Boundary) -> bool:
        """Replace the boundary facing neighbour. Returns False (and changes
        nothing) if neighbour is not adjacent."""
        side = self._side_facing(neighbour)
        if side is None:
            return False
        setattr(self, side, boundary)
        return True

    def boundaries(self) -> dict[str, Boundary]:
        return {'top': self.top, 'bottom': self.bottom, 'left': self.left, 'right': self.right}

    def get_cells(self) -> list[Cell]:
        return [self.cell]

@dataclass
class MultiCell:
    """A patch spread over several cells. Routing to or from these patches is
    not supported."""
    sub_cells: list[SingleCell] = field(default_factory=list)

    def get_cells(self) -> list[Cell]:
        return [sub_cell.cell for sub_cell in self.sub_cells]

@dataclass
class Patch:
    """A lattice region holding a logical qubit, an ancilla or a magic state.

    Attributes:
        cells: Either a SingleCell or a MultiCell occupancy.
        type: What the patch holds.
        id: Stable identifier shared by every copy of this patch across
            slices. None for transient patches.
        activity: What happens to the patch during the slice it belongs to.
    """
    cells: SingleCell | MultiCell
    type: PatchType = PatchType.QUBIT
    id: PatchId | None = None
    activity: PatchActivity = PatchActivity.NONE

    def get_cells(self) -> list[Cell]:
        return self.cells.get_cells()

    def get_a_cell(self) -> Cell:
        return self.get_cells()[0]

    def occupies(self, cell: Cell) -> bool:
        return cell in self.get_cells()

    def is_single_cell(self) -> bool:
        return isinstance(self.cells, SingleCell)

@dataclass
class RoutingRegion:
    """An ancilla channel: free cells, in path order, joining the boundaries of
    two patches for a lattice surgery measurement."""
    cells: list[SingleCell] = field(default_factory=list)

    def __len__(self):
        return len(self.cells)

    def get_cells(self) -> list[Cell]:
        return [sub_cell.cell for sub_cell in self.cells]

    def is_contiguous(self) -> bool:
        cells = self.get_cells()
        return all(a.is_adjacent(b) for a,b in zip(cells, cells[1:]))

    def as_patch(self) -> Patch:
        """View the region as a single id-less ancilla patch."""
        return Patch(MultiCell(list(self.cells)), type=PatchType.ANCILLA, id=None, activity=PatchActivity.MEASUREMENT)

class PatchIdAllocator:
    """Hands out increasing patch ids. Owned by whoever builds a computation, so
    that separate computations never share a counter."""
    def __init__(self, first_id: PatchId = 0):
        self._next_id = first_id

    def __call__(self) -> PatchId:
        return self.new_id()

    def new_id(self) -> PatchId:
        patch_id = self._next_id
        self._next_id += 1
        return patch_id

    def reserve(self, patch_id: PatchId) -> None:
        """Mark an externally chosen id as taken so it is never handed out."""
        self._next_id = max(self._next_id, patch_id + 1)
