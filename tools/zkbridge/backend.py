"""
ZKBRIDGE Proving Backend Interface

The proving backend is an external collaborator: it interprets bytecode,
solves witnesses, loads SRS points and runs the proving systems. The bridge
only depends on this protocol.

Failure contract: implementations raise BridgeError subclasses
(CircuitExecutionFailure, ProvingFailure, VerificationFailure,
SRSSetupFailure) for failures they understand. Any other exception is
treated as a backend failure for the stage in progress by the translator.

Verification returns False for a well-formed proof that does not verify and
raises VerificationFailure when the proof or key cannot be parsed.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

from typing import List, Optional, Protocol, Tuple, runtime_checkable

from tools.zkbridge.witness import WitnessMap

# (function_id, solved witness) in completion order; entry circuit last
StackItem = Tuple[int, WitnessMap]


@runtime_checkable
class ProvingBackend(Protocol):
    """Protocol implemented by proving backends."""

    name: str

    # -- Execution ------------------------------------------------------------

    def execute(self, bytecode: str, witness: WitnessMap) -> List[StackItem]:
        """Solve the circuit and return the witness stack."""
        ...

    def circuit_size(self, bytecode: str, recursive: bool) -> int:
        """Number of SRS points needed to prove this circuit."""
        ...

    # -- SRS ------------------------------------------------------------------

    def load_srs(self, num_points: int, path: Optional[str]) -> bytes:
        """Load (fetching if absent) num_points SRS points; return their digest."""
        ...

    # -- Legacy variants: vk derived alongside the proof -----------------------

    def prove_plonk(
        self, bytecode: str, witness: WitnessMap, recursive: bool, low_memory: bool
    ) -> Tuple[bytes, bytes]:
        ...

    def prove_honk(
        self, bytecode: str, witness: WitnessMap, recursive: bool, low_memory: bool
    ) -> Tuple[bytes, bytes]:
        ...

    # -- Ultra family: caller supplies the vk ----------------------------------

    def prove_ultra_honk(
        self, bytecode: str, witness: WitnessMap, vk: bytes, recursive: bool, low_memory: bool
    ) -> bytes:
        ...

    def prove_ultra_honk_keccak(
        self, bytecode: str, witness: WitnessMap, vk: bytes, recursive: bool, low_memory: bool
    ) -> bytes:
        ...

    # -- Verification ---------------------------------------------------------

    def verify_plonk(self, proof: bytes, vk: bytes, num_points: int) -> bool:
        ...

    def verify_honk(self, proof: bytes, vk: bytes) -> bool:
        ...

    def verify_ultra_honk(self, proof: bytes, vk: bytes) -> bool:
        ...

    def verify_ultra_honk_keccak(self, proof: bytes, vk: bytes) -> bool:
        ...

    # -- Verification keys ----------------------------------------------------

    def get_plonk_verification_key(self, bytecode: str, recursive: bool, low_memory: bool) -> bytes:
        ...

    def get_honk_verification_key(self, bytecode: str, recursive: bool, low_memory: bool) -> bytes:
        ...

    def get_ultra_honk_verification_key(
        self, bytecode: str, recursive: bool, low_memory: bool
    ) -> bytes:
        ...

    def get_ultra_honk_keccak_verification_key(
        self, bytecode: str, recursive: bool, low_memory: bool
    ) -> bytes:
        ...
