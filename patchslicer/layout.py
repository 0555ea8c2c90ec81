from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from patchslicer.patches import Cell, Boundary, BoundaryType, SingleCell, Patch, PatchType

@dataclass(frozen=True)
class DistillationRegion:
    """Cells statically reserved for a magic state distillery. They are never
    free for routing or placement."""
    sub_cells: tuple[SingleCell, ...] = field(default_factory=tuple)

    def get_cells(self) -> list[Cell]:
        return [sub_cell.cell for sub_cell in self.sub_cells]

class Layout(ABC):
    """Static geometry of a lattice: where the logical qubits start out, and
    which cells belong to magic state production. Implementations are specific
    to a hardware topology."""

    @abstractmethod
    def core_patches(self) -> list[Patch]:
        """Initial placement of the logical qubit patches, in the order in
        which they are assigned qubit ids."""
        raise NotImplementedError

    @abstractmethod
    def magic_state_queue_locations(self) -> list[Cell]:
        raise NotImplementedError

    @abstractmethod
    def distillery_locations(self) -> list[Cell]:
        raise NotImplementedError

    @abstractmethod
    def distillation_regions(self) -> list[DistillationRegion]:
        raise NotImplementedError

    @abstractmethod
    def distilled_state_locations(self, region_idx: int) -> list[Cell]:
        """Cells where the distillation region with index region_idx may
        deposit its output state."""
        raise NotImplementedError

    @abstractmethod
    def furthest_cell(self) -> Cell:
        raise NotImplementedError

    def reserved_cells(self) -> set[Cell]:
        return set(cell for region in self.distillation_regions() for cell in region.get_cells())

class SimpleLayout(Layout):
    """A single row of square qubit patches with one free column between
    neighbours and no distillery. Only meant for testing.

    Each patch exposes its X operator on the top and bottom edges and its Z
    operator on the left and right edges.
    """
    def __init__(self, num_qubits: int, spacing: int = 2):
        if spacing < 1:
            raise ValueError(f'Patch spacing must be positive, got {spacing}.')
        self.num_qubits = num_qubits
        self.spacing = spacing

    def core_patches(self) -> list[Patch]:
        return [self.basic_square_patch(Cell(0, self.spacing*i)) for i in range(self.num_qubits)]

    def magic_state_queue_locations(self) -> list[Cell]:
        return [Cell(1, self.spacing*i) for i in range(self.num_qubits)]

    def distillery_locations(self) -> list[Cell]:
        return []

    def distillation_regions(self) -> list[DistillationRegion]:
        return []

    def distilled_state_locations(self, region_idx: int) -> list[Cell]:
        raise IndexError(f'SimpleLayout has no distillation regions, got region index {region_idx}.')

    def furthest_cell(self) -> Cell:
        if self.num_qubits == 0:
            return Cell(0, 0)
        return Cell(1, self.spacing*(self.num_qubits-1))

    @staticmethod
    def basic_square_patch(placement: Cell) -> Patch:
        return Patch(
            cells=SingleCell(
                cell=placement,
                top=Boundary(BoundaryType.ROUGH, False),
                bottom=Boundary(BoundaryType.ROUGH, False),
                left=Boundary(BoundaryType.SMOOTH, False),
                right=Boundary(BoundaryType.SMOOTH, False),
            ),
            type=PatchType.QUBIT,
            id=None,
        )
