"""
ZKBRIDGE Circuit Executor

Runs a circuit against a witness assignment and returns the solved witness
stack. The last entry of the stack belongs to the entry circuit; its map is
what the host sees as the execution result.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

from typing import Iterator, List, Sequence, Tuple

from tools.zkbridge.backend import ProvingBackend
from tools.zkbridge.errors import (
    BridgeError,
    CircuitExecutionFailure,
    NoWitnessProducedError,
)
from tools.zkbridge.observability import BridgeLayer, get_logger, timed_operation
from tools.zkbridge.witness import WitnessMap

logger = get_logger("executor", BridgeLayer.EXECUTOR)


class SolvedWitnessStack:
    """Ordered (function_id, WitnessMap) pairs produced by one execution."""

    def __init__(self, items: Sequence[Tuple[int, WitnessMap]] = ()):
        self._items: List[Tuple[int, WitnessMap]] = list(items)

    def final_witness(self) -> WitnessMap:
        """
        The entry circuit's solved witness.

        Raises:
            NoWitnessProducedError: the stack is empty
        """
        if not self._items:
            raise NoWitnessProducedError("Execution succeeded but produced no witness")
        return self._items[-1][1]

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Tuple[int, WitnessMap]]:
        return iter(self._items)

    def __getitem__(self, position: int) -> Tuple[int, WitnessMap]:
        return self._items[position]


class CircuitExecutor:
    """Drives backend execution and normalizes its failures."""

    def __init__(self, backend: ProvingBackend):
        self._backend = backend

    @timed_operation(logger, "execute_circuit")
    def execute(self, bytecode: str, witness: WitnessMap) -> SolvedWitnessStack:
        """
        Solve the circuit.

        Raises:
            CircuitExecutionFailure: unsatisfied constraints, malformed
                bytecode or missing inputs
        """
        try:
            items = self._backend.execute(bytecode, witness)
        except CircuitExecutionFailure:
            raise
        except BridgeError as e:
            raise CircuitExecutionFailure(f"Circuit execution failed: {e.message}", cause=e) from e
        return SolvedWitnessStack(items)
