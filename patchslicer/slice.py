from dataclasses import dataclass, field
import copy
import numpy as np

from patchslicer.errors import PatchNotFoundError
from patchslicer.layout import Layout
from patchslicer.patches import Cell, Patch, PatchActivity, PatchId, RoutingRegion

@dataclass
class Slice:
    """Occupancy of the lattice during one compiled timestep.

    Lookups are linear scans over the patches, which is fine for the tens of
    patches seen in practice. Larger lattices would want an id -> index map.

    Attributes:
        layout: Static lattice geometry. Shared between slices, never copied.
        qubit_patches: Patches holding logical qubits.
        unbound_magic_states: Magic state patches not yet consumed.
        routing_regions: Ancilla channels used during this slice only.
        distance_dependent_timesteps: Number of code distance rounds of QEC
            this slice lasts.
    """
    layout: Layout
    qubit_patches: list[Patch] = field(default_factory=list)
    unbound_magic_states: list[Patch] = field(default_factory=list)
    routing_regions: list[RoutingRegion] = field(default_factory=list)
    distance_dependent_timesteps: int = 1

    def all_patches(self) -> list[Patch]:
        """Every patch in the slice, routing regions included (as id-less
        ancilla patches)."""
        return self.qubit_patches + self.unbound_magic_states + [region.as_patch() for region in self.routing_regions]

    def qubit_patch_on_cell(self, cell: Cell) -> Patch | None:
        for patch in self.qubit_patches:
            if patch.occupies(cell):
                return patch
        return None

    def magic_state_on_cell(self, cell: Cell) -> Patch | None:
        for patch in self.unbound_magic_states:
            if patch.occupies(cell):
                return patch
        return None

    def patch_on_cell(self, cell: Cell) -> Patch | None:
        """First qubit patch or magic state occupying cell."""
        patch = self.qubit_patch_on_cell(cell)
        if patch is None:
            patch = self.magic_state_on_cell(cell)
        return patch

    def any_patch_on_cell(self, cell: Cell) -> Patch | None:
        """Like patch_on_cell, but routing regions count too."""
        patch = self.patch_on_cell(cell)
        if patch is not None:
            return patch
        for region in self.routing_regions:
            if cell in region.get_cells():
                return region.as_patch()
        return None

    def is_cell_free(self, cell: Cell) -> bool:
        if cell in self.layout.reserved_cells():
            return False
        return self.any_patch_on_cell(cell) is None

    def get_patch_by_id(self, patch_id: PatchId) -> Patch:
        """Return the patch with the given id. The returned object is the one
        stored in this slice, so changes to it are changes to the slice."""
        for patch in self.qubit_patches + self.unbound_magic_states:
            if patch.id == patch_id:
                return patch
        raise PatchNotFoundError(f'No patch with id {patch_id} in slice.')

    # Patches are plain mutable objects, so the mutable lookup is the same one.
    get_patch_by_id_mut = get_patch_by_id

    def has_patch(self, patch_id: PatchId) -> bool:
        return any(patch.id == patch_id for patch in self.qubit_patches + self.unbound_magic_states)

    def occupied_cells(self) -> list[Cell]:
        return [cell for patch in self.all_patches() for cell in patch.get_cells()]

    def furthest_cell(self) -> Cell:
        """Component-wise maximum over all occupied cells, never below (0,0)."""
        max_row, max_col = 0, 0
        for cell in self.occupied_cells():
            max_row = max(max_row, cell.row)
            max_col = max(max_col, cell.col)
        return Cell(max_row, max_col)

    def find_place_for_magic_state(self, region_idx: int) -> Cell | None:
        for cell in self.layout.distilled_state_locations(region_idx):
            if self.is_cell_free(cell):
                return cell
        return None

    def make_copy_with_cleared_activity(self) -> 'Slice':
        """Start the next slice from this one. Patches measured during this
        slice are dropped, unitary activity is cleared, and routing regions and
        magic states are left behind."""
        new_patches = []
        for patch in self.qubit_patches:
            if patch.activity == PatchActivity.MEASUREMENT:
                continue
            new_patch = copy.deepcopy(patch)
            if new_patch.activity == PatchActivity.UNITARY:
                new_patch.activity = PatchActivity.NONE
            new_patches.append(new_patch)
        return Slice(
            layout=self.layout,
            qubit_patches=new_patches,
            distance_dependent_timesteps=self.distance_dependent_timesteps,
        )

    def occupancy_grid(self) -> np.ndarray:
        """Integer grid up to furthest_cell: 0 free, 1 qubit patch, 2 magic
        state, 3 routing cell, -1 reserved for distillation."""
        furthest = self.furthest_cell()
        grid = np.zeros((furthest.row+1, furthest.col+1), dtype=int)
        for cell in self.layout.reserved_cells():
            if 0 <= cell.row <= furthest.row and 0 <= cell.col <= furthest.col:
                grid[cell.row, cell.col] = -1
        layers = [
            (1, [c for p in self.qubit_patches for c in p.get_cells()]),
            (2, [c for p in self.unbound_magic_states for c in p.get_cells()]),
            (3, [c for r in self.routing_regions for c in r.get_cells()]),
        ]
        for value, cells in layers:
            for cell in cells:
                if cell.row >= 0 and cell.col >= 0:
                    grid[cell.row, cell.col] = value
        return grid

def first_slice_from_layout(layout: Layout) -> Slice:
    """Slice 0: the core patches of the layout, not yet given ids."""
    return Slice(layout=layout, qubit_patches=layout.core_patches())
