from dataclasses import dataclass, field

from patchslicer.patches import PatchId, PauliOperator

@dataclass(frozen=True)
class SinglePatchMeasurement:
    target: PatchId
    is_negative: bool = False

    def __str__(self):
        return f'MEASURE {"-" if self.is_negative else ""}{self.target}'

@dataclass(frozen=True)
class LogicalPauli:
    target: PatchId
    operator: PauliOperator = PauliOperator.X

    def __str__(self):
        return f'PAULI {self.target}:{self.operator.name}'

@dataclass(frozen=True)
class MultiPatchMeasurement:
    """Joint Pauli measurement. Only two-patch observables can be compiled."""
    # dicts are unhashable, so only is_negative feeds the hash
    observable: dict[PatchId, PauliOperator] = field(default_factory=dict, hash=False)
    is_negative: bool = False

    def __str__(self):
        terms = ','.join(f'{patch_id}:{op.name}' for patch_id, op in self.observable.items())
        return f'MULTIBODY {"-" if self.is_negative else ""}{terms}'

@dataclass(frozen=True)
class MagicStateRequest:
    target: PatchId

    def __str__(self):
        return f'REQUEST_MAGIC_STATE {self.target}'

LogicalLatticeOperation = SinglePatchMeasurement | LogicalPauli | MultiPatchMeasurement | MagicStateRequest

class LogicalLatticeComputation:
    """A logical circuit: the qubit ids it uses and the ordered operations
    applied to them."""
    def __init__(self, core_qubits: list[PatchId] | None = None, instructions: list[LogicalLatticeOperation] | None = None):
        self.core_qubits: list[PatchId] = list(core_qubits) if core_qubits is not None else []
        self.instructions: list[LogicalLatticeOperation] = list(instructions) if instructions is not None else []
        if len(set(self.core_qubits)) != len(self.core_qubits):
            raise ValueError(f'Duplicate qubit ids in {self.core_qubits}.')

    def __len__(self):
        return len(self.instructions)

    def __str__(self):
        return '\n'.join([f'QUBITS {",".join(str(q) for q in self.core_qubits)}'] + [str(instr) for instr in self.instructions])

    def measure(self, target: PatchId, is_negative: bool = False) -> int:
        return self._add_instruction(SinglePatchMeasurement(target, is_negative))

    def pauli(self, target: PatchId, operator: PauliOperator = PauliOperator.X) -> int:
        return self._add_instruction(LogicalPauli(target, operator))

    def multi_body_measure(self, observable: dict[PatchId, PauliOperator], is_negative: bool = False) -> int:
        return self._add_instruction(MultiPatchMeasurement(dict(observable), is_negative))

    def request_magic_state(self, target: PatchId) -> int:
        return self._add_instruction(MagicStateRequest(target))

    def _add_instruction(self, instruction: LogicalLatticeOperation) -> int:
        """Append an instruction and return its index."""
        self.instructions.append(instruction)
        return len(self.instructions) - 1
