import sys
import datetime as dt
from typing import Callable
import tqdm

from patchslicer.ancilla_router import graph_search_route_ancilla
from patchslicer.errors import NotEnoughPatchesError, RoutingInfeasibleError, UnsupportedMeasurementArityError
from patchslicer.layout import Layout, SimpleLayout
from patchslicer.logical_computation import (
    LogicalLatticeComputation, LogicalLatticeOperation, SinglePatchMeasurement, LogicalPauli,
    MultiPatchMeasurement, MagicStateRequest,
)
from patchslicer.patches import Patch, PatchActivity, PatchIdAllocator, PatchType, SingleCell
from patchslicer.slice import Slice, first_slice_from_layout

def _print_with_time(message: str) -> None:
    print(f'{dt.datetime.now().strftime("%Y-%m-%d %H:%M:%S")} | {message}')
    sys.stdout.flush()

class PatchComputation:
    """The compiled lattice surgery program: one slice per logical instruction,
    plus the initial slice."""
    def __init__(self, layout: Layout, id_allocator: PatchIdAllocator | None = None):
        """Start a computation whose only slice holds the layout's core patches.

        Args:
            layout: Lattice geometry used by every slice of the computation.
            id_allocator: Source of fresh patch ids. A new one starting at 0
                is created if not given.
        """
        self.layout = layout
        self.id_allocator = id_allocator if id_allocator is not None else PatchIdAllocator()
        self._slices: list[Slice] = [first_slice_from_layout(layout)]

    @classmethod
    def make(
            cls,
            logical_computation: LogicalLatticeComputation,
            layout_factory: Callable[[int], Layout] = SimpleLayout,
            progress_bar: bool = False,
            print_interval: dt.timedelta | None = None,
        ) -> 'PatchComputation':
        """Compile a logical computation into slices.

        Args:
            logical_computation: Qubit ids and instructions to compile.
            layout_factory: Builds the layout, given the number of logical
                qubits.
            progress_bar: If True, display a progress bar over instructions.
            print_interval: If given, print timestamped status lines at the
                start and end, and at most this often in between.

        Returns:
            The computation, with num_slices() == len(instructions) + 1.

        Raises:
            NotEnoughPatchesError: The layout has fewer core patches than there
                are qubits.
            RoutingInfeasibleError: A multi-patch measurement could not be
                routed.
        """
        num_qubits = len(logical_computation.core_qubits)
        patch_computation = cls(layout_factory(num_qubits))

        patches = patch_computation._slices[0].qubit_patches
        if len(patches) < num_qubits:
            raise NotEnoughPatchesError(f'Layout provides {len(patches)} core patches, but the computation uses {num_qubits} qubits.')
        for patch, qubit_id in zip(patches, logical_computation.core_qubits):
            patch.id = qubit_id
            patch_computation.id_allocator.reserve(qubit_id)

        instructions = logical_computation.instructions
        last_print_time = dt.datetime.now()
        if print_interval is not None:
            _print_with_time(f'Starting compilation of {len(instructions)} instructions on {num_qubits} qubits')
        pbar = tqdm.tqdm(total=len(instructions), desc='Compiled instructions') if progress_bar else None

        try:
            for i,instruction in enumerate(instructions):
                patch_computation.apply_instruction(instruction)
                if pbar is not None:
                    pbar.update(1)
                if print_interval is not None and dt.datetime.now() - last_print_time >= print_interval:
                    last_print_time = dt.datetime.now()
                    routing_count = sum(len(s.routing_regions) for s in patch_computation._slices)
                    _print_with_time(f'Compilation update: instruction {i+1}/{len(instructions)}, slices: {patch_computation.num_slices()}, routing regions: {routing_count}')
        finally:
            if pbar is not None:
                pbar.close()

        if print_interval is not None:
            _print_with_time(f'Finished compilation with {patch_computation.num_slices()} slices')

        return patch_computation

    def apply_instruction(self, instruction: LogicalLatticeOperation) -> Slice:
        """Append a slice and apply one instruction to it."""
        slice = self.new_slice()

        if isinstance(instruction, SinglePatchMeasurement):
            slice.get_patch_by_id_mut(instruction.target).activity = PatchActivity.MEASUREMENT
        elif isinstance(instruction, LogicalPauli):
            slice.get_patch_by_id_mut(instruction.target).activity = PatchActivity.UNITARY
        elif isinstance(instruction, MultiPatchMeasurement):
            if len(instruction.observable) != 2:
                raise UnsupportedMeasurementArityError(f'Multi patch measurement only supports 2 patches, got {len(instruction.observable)} in {instruction}.')
            (source_id, source_op), (target_id, target_op) = instruction.observable.items()
            routing_region = graph_search_route_ancilla(slice, source_id, source_op, target_id, target_op)
            if routing_region is None:
                raise RoutingInfeasibleError(
                    f'Could not route ancilla for {instruction} in slice {self.num_slices()-1}.',
                    slice_idx=self.num_slices()-1,
                    instruction=instruction,
                )
            slice.routing_regions.append(routing_region)
        elif isinstance(instruction, MagicStateRequest):
            # TODO: claim a distilled state location from the layout once
            # distillation is scheduled
            pass
        else:
            raise ValueError(f'Unknown instruction {instruction!r}.')

        return slice

    def add_magic_state(self, region_idx: int) -> Patch | None:
        """Place a fresh magic state in the last slice, at the first free output
        location of distillation region region_idx.

        Returns:
            The new patch, or None if every output location is occupied.
        """
        slice = self.last_slice()
        cell = slice.find_place_for_magic_state(region_idx)
        if cell is None:
            return None
        patch = Patch(
            cells=SingleCell(cell),
            type=PatchType.DISTILLATION_QUBIT,
            id=self.id_allocator.new_id(),
        )
        slice.unbound_magic_states.append(patch)
        return patch

    def num_slices(self) -> int:
        return len(self._slices)

    def slice(self, idx: int) -> Slice:
        if not 0 <= idx < len(self._slices):
            raise IndexError(f'Slice index {idx} out of range for computation with {len(self._slices)} slices.')
        return self._slices[idx]

    def last_slice(self) -> Slice:
        return self.slice(self.num_slices()-1)

    def new_slice(self) -> Slice:
        """Append a copy of the last slice, with activity cleared, and return
        it."""
        self._slices.append(self.last_slice().make_copy_with_cleared_activity())
        return self._slices[-1]

    def __len__(self):
        return self.num_slices()

    def __getitem__(self, idx: int) -> Slice:
        return self.slice(idx)

    def __iter__(self):
        return iter(self._slices)
