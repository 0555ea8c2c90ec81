"""Exceptions raised while compiling a logical computation into slices."""


class PatchComputationError(Exception):
    """Base class for all compilation errors."""


class NotEnoughPatchesError(PatchComputationError, ValueError):
    """The layout provides fewer core patches than there are logical qubits."""


class PatchNotFoundError(PatchComputationError, LookupError):
    """No patch with the requested id exists in the slice."""


class UnsupportedMultiCellRoutingError(PatchComputationError, NotImplementedError):
    """Routing was requested to or from a patch spanning several cells."""


class UnsupportedMeasurementArityError(PatchComputationError, ValueError):
    """A multi-patch measurement did not involve exactly two patches."""


class UnsupportedOperatorError(PatchComputationError, ValueError):
    """An instruction needs a boundary for an operator that has none (I or Y)."""


class RoutingInfeasibleError(PatchComputationError, RuntimeError):
    """No free channel of cells joins the boundaries of a measurement.

    The router itself reports this by returning None; this exception is how
    PatchComputation.make hands the failure back to its caller, together with
    the slice index and instruction that could not be routed.
    """

    def __init__(self, message: str, slice_idx: int | None = None, instruction=None) -> None:
        super().__init__(message)
        self.slice_idx = slice_idx
        self.instruction = instruction
