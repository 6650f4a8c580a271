"""
ZKBRIDGE Reference Backend

An in-process ProvingBackend that makes the bridge executable end to end.

WARNING: NOT CRYPTOGRAPHICALLY SOUND - for testing and local development.
Proofs are Ed25519 signatures over the public inputs under a key derived
from the circuit itself. They show the shape of the proving pipeline, not
zero knowledge.

Bytecode format:
    base64( gzip( JSON program ) )

    {
      "functions": [
        {
          "current_witness_index": 2,
          "private_parameters": [0, 1],
          "public_parameters": [],
          "return_values": [2],
          "opcodes": [{"kind": "mul", "lhs": 0, "rhs": 1, "out": 2}]
        }
      ]
    }

Function 0 is the entry circuit. Opcodes:

    add / sub / mul     out = lhs (op) rhs
    const               out = value ("0x..." hex)
    assert_eq           lhs == rhs
    call                solve functions[function] with inputs bound to its
                        private parameters; outputs receive its return values

Solved functions are pushed onto the witness stack as they complete, so the
entry circuit is always last.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import base64
import binascii
import gzip
import hashlib
import json
import os
import struct
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

from tools.zkbridge.backend import StackItem
from tools.zkbridge.codec import external_to_field
from tools.zkbridge.errors import (
    CircuitExecutionFailure,
    ProvingFailure,
    SRSSetupFailure,
    VerificationFailure,
)
from tools.zkbridge.field import FIELD_BYTES, FIELD_MODULUS, FieldElement
from tools.zkbridge.observability import BridgeLayer, get_logger
from tools.zkbridge.variants import ProofVariant
from tools.zkbridge.witness import WitnessMap

logger = get_logger("reference", BridgeLayer.BACKEND)

MIN_CIRCUIT_SIZE = 16
RECURSION_OVERHEAD = 256
MAX_CALL_DEPTH = 64

SRS_MAGIC = b"ZKBSRS01"
VK_MAGIC = b"ZKVK"
PROOF_MAGIC = b"ZKPF"

VARIANT_CODES = {
    ProofVariant.PLONK: 1,
    ProofVariant.HONK: 2,
    ProofVariant.ULTRA_HONK: 3,
    ProofVariant.ULTRA_HONK_KECCAK: 4,
}
CODE_VARIANTS = {code: variant for variant, code in VARIANT_CODES.items()}

# magic, variant, flags, circuit digest, circuit size, public count, public key
VK_LAYOUT = struct.Struct(">4sBB32sII32s")
# magic, variant, public count
PROOF_HEADER = struct.Struct(">4sBI")
SIGNATURE_BYTES = 64

ARITHMETIC = {
    "add": lambda a, b: a + b,
    "sub": lambda a, b: a - b,
    "mul": lambda a, b: a * b,
}
OPCODE_KINDS = set(ARITHMETIC) | {"const", "assert_eq", "call"}


# =============================================================================
# PROGRAM ENCODING
# =============================================================================

def encode_program(program: Dict[str, Any]) -> str:
    """Encode a program dict as reference bytecode."""
    raw = json.dumps(program, sort_keys=True, separators=(",", ":")).encode("utf-8")
    return base64.b64encode(gzip.compress(raw, mtime=0)).decode("ascii")


def decode_program(bytecode: str) -> Dict[str, Any]:
    """
    Decode and structurally check reference bytecode.

    Raises:
        CircuitExecutionFailure: bytecode is not a valid program
    """
    if not isinstance(bytecode, str) or not bytecode:
        raise CircuitExecutionFailure("Bytecode must be a non-empty string", offending=bytecode)
    try:
        compressed = base64.b64decode(bytecode, validate=True)
        program = json.loads(gzip.decompress(compressed).decode("utf-8"))
    except (binascii.Error, OSError, EOFError, ValueError) as e:
        raise CircuitExecutionFailure("Malformed bytecode", offending=bytecode, cause=e) from e

    _check_program(program)
    return program


def _check_program(program: Any) -> None:
    def fail(reason: str) -> None:
        raise CircuitExecutionFailure(f"Malformed program: {reason}")

    if not isinstance(program, dict):
        fail("root must be an object")
    functions = program.get("functions")
    if not isinstance(functions, list) or not functions:
        fail("'functions' must be a non-empty list")

    for fid, func in enumerate(functions):
        if not isinstance(func, dict):
            fail(f"function {fid} must be an object")
        for key in ("private_parameters", "public_parameters", "return_values", "opcodes"):
            if not isinstance(func.get(key, []), list):
                fail(f"function {fid}: '{key}' must be a list")
        for op in func.get("opcodes", []):
            if not isinstance(op, dict) or op.get("kind") not in OPCODE_KINDS:
                fail(f"function {fid}: unknown opcode {op!r}")
            if op["kind"] == "call":
                target = op.get("function")
                if not isinstance(target, int) or not 0 <= target < len(functions):
                    fail(f"function {fid}: call to unknown function {target!r}")


def circuit_digest(program: Dict[str, Any]) -> bytes:
    canonical = json.dumps(program, sort_keys=True, separators=(",", ":")).encode("utf-8")
    return hashlib.sha256(canonical).digest()


def _next_power_of_two(n: int) -> int:
    size = 1
    while size < n:
        size <<= 1
    return size


def _gate_count(program: Dict[str, Any]) -> int:
    total = 0
    for func in program["functions"]:
        total += len(func.get("opcodes", []))
        total += int(func.get("current_witness_index", 0)) + 1
    return total


# =============================================================================
# SOLVER
# =============================================================================

class _Solver:
    """Solves a program's functions, recording the witness stack."""

    def __init__(self, program: Dict[str, Any]):
        self.functions = program["functions"]
        self.stack: List[StackItem] = []

    def solve(self, fid: int, initial: Dict[int, FieldElement], depth: int = 0) -> Dict[int, FieldElement]:
        if depth > MAX_CALL_DEPTH:
            raise CircuitExecutionFailure("Call depth exceeded")
        func = self.functions[fid]
        values = dict(initial)

        required = list(func.get("private_parameters", []))
        if depth == 0:
            required += func.get("public_parameters", [])
        for param in required:
            if param not in values:
                raise CircuitExecutionFailure(
                    f"Missing input witness {param} for function {fid}", offending=param
                )

        for op in func.get("opcodes", []):
            self._apply(fid, op, values, depth)

        for out in func.get("return_values", []):
            if out not in values:
                raise CircuitExecutionFailure(f"Return witness {out} of function {fid} unsolved")

        self.stack.append((fid, WitnessMap(values)))
        return values

    def _apply(self, fid: int, op: Dict[str, Any], values: Dict[int, FieldElement], depth: int) -> None:
        kind = op["kind"]
        if kind in ARITHMETIC:
            lhs = self._read(fid, values, op.get("lhs"))
            rhs = self._read(fid, values, op.get("rhs"))
            result = ARITHMETIC[kind](lhs, rhs)
            self._write(fid, values, op.get("out"), result)
        elif kind == "const":
            self._write(fid, values, op.get("out"), external_to_field(op.get("value"), "const value"))
        elif kind == "assert_eq":
            if self._read(fid, values, op.get("lhs")) != self._read(fid, values, op.get("rhs")):
                raise CircuitExecutionFailure(
                    f"Cannot satisfy constraint in function {fid}: "
                    f"witness {op['lhs']} != witness {op['rhs']}"
                )
        elif kind == "call":
            callee = self.functions[op["function"]]
            params = callee.get("private_parameters", [])
            inputs = op.get("inputs", [])
            if len(inputs) != len(params):
                raise CircuitExecutionFailure(
                    f"Call to function {op['function']} passes {len(inputs)} inputs, "
                    f"expected {len(params)}"
                )
            bound = {p: self._read(fid, values, i) for p, i in zip(params, inputs)}
            solved = self.solve(op["function"], bound, depth + 1)
            returns = callee.get("return_values", [])
            for out, ret in zip(op.get("outputs", []), returns):
                self._write(fid, values, out, solved[ret])

    @staticmethod
    def _read(fid: int, values: Dict[int, FieldElement], index: Any) -> FieldElement:
        try:
            return values[index]
        except (KeyError, TypeError):
            raise CircuitExecutionFailure(
                f"Witness {index!r} read before assignment in function {fid}", offending=index
            ) from None

    @staticmethod
    def _write(fid: int, values: Dict[int, FieldElement], index: Any, value: FieldElement) -> None:
        if isinstance(index, bool) or not isinstance(index, int) or index < 0:
            raise CircuitExecutionFailure(f"Invalid witness index {index!r} in function {fid}")
        existing = values.get(index)
        if existing is not None and existing != value:
            raise CircuitExecutionFailure(
                f"Cannot satisfy constraint in function {fid}: witness {index} already assigned"
            )
        values[index] = value


# =============================================================================
# KEYS AND ARTIFACTS
# =============================================================================

@dataclass(frozen=True)
class ReferenceKey:
    """Parsed verification key."""
    variant: ProofVariant
    recursive: bool
    circuit_digest: bytes
    circuit_size: int
    num_public: int
    public_key: bytes

    def to_bytes(self) -> bytes:
        return VK_LAYOUT.pack(
            VK_MAGIC,
            VARIANT_CODES[self.variant],
            1 if self.recursive else 0,
            self.circuit_digest,
            self.circuit_size,
            self.num_public,
            self.public_key,
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> ReferenceKey:
        if len(data) != VK_LAYOUT.size:
            raise VerificationFailure(
                f"Verification key must be {VK_LAYOUT.size} bytes, got {len(data)}"
            )
        magic, code, flags, digest, size, num_public, public_key = VK_LAYOUT.unpack(data)
        if magic != VK_MAGIC or code not in CODE_VARIANTS or flags > 1:
            raise VerificationFailure("Malformed verification key")
        return cls(CODE_VARIANTS[code], bool(flags), digest, size, num_public, public_key)


def _signing_key(variant: ProofVariant, digest: bytes, recursive: bool) -> Ed25519PrivateKey:
    seed = hashlib.sha256(
        b"zkbridge-reference-key"
        + bytes([VARIANT_CODES[variant], 1 if recursive else 0])
        + digest
    ).digest()
    return Ed25519PrivateKey.from_private_bytes(seed)


def _transcript(variant: ProofVariant, vk: bytes, publics: bytes) -> bytes:
    hasher = hashlib.sha3_256 if variant == ProofVariant.ULTRA_HONK_KECCAK else hashlib.sha256
    return hasher(b"zkbridge-transcript" + vk + publics).digest()


def _public_inputs(program: Dict[str, Any], solved: WitnessMap) -> List[FieldElement]:
    main = program["functions"][0]
    indices = list(main.get("public_parameters", [])) + list(main.get("return_values", []))
    return [solved[i] for i in indices]


def _count_public(program: Dict[str, Any]) -> int:
    main = program["functions"][0]
    return len(main.get("public_parameters", [])) + len(main.get("return_values", []))


# =============================================================================
# BACKEND
# =============================================================================

class ReferenceBackend:
    """
    Deterministic in-process ProvingBackend.

    NOT CRYPTOGRAPHICALLY SOUND - for testing only. low_memory is accepted
    and has no effect on the artifacts produced.
    """

    name = "reference"

    # -- Execution ------------------------------------------------------------

    def execute(self, bytecode: str, witness: WitnessMap) -> List[StackItem]:
        program = decode_program(bytecode)
        solver = _Solver(program)
        solver.solve(0, dict(witness.items()))
        logger.debug("Circuit solved", functions=len(solver.stack))
        return solver.stack

    def circuit_size(self, bytecode: str, recursive: bool) -> int:
        program = decode_program(bytecode)
        gates = _gate_count(program) + 1
        if recursive:
            gates += RECURSION_OVERHEAD
        return max(MIN_CIRCUIT_SIZE, _next_power_of_two(gates))

    # -- SRS ------------------------------------------------------------------

    def load_srs(self, num_points: int, path: Optional[str]) -> bytes:
        """
        Load num_points SRS points.

        With a path, the points are cached in a file of the form
        SRS_MAGIC || count (u64 BE) || digest. A missing file, or one holding
        fewer points, is (re)generated.
        """
        digest = _srs_digest(num_points)
        if not path:
            return digest

        if os.path.exists(path):
            with open(path, "rb") as f:
                header = f.read(len(SRS_MAGIC) + 8)
            if len(header) != len(SRS_MAGIC) + 8 or not header.startswith(SRS_MAGIC):
                raise SRSSetupFailure(f"Not an SRS file: {path}", offending=path)
            (stored,) = struct.unpack(">Q", header[len(SRS_MAGIC):])
            if stored >= num_points:
                return digest
            logger.info("Cached SRS too small, regenerating", stored=stored, required=num_points)

        directory = os.path.dirname(os.path.abspath(path))
        if not os.path.isdir(directory):
            raise SRSSetupFailure(f"SRS directory does not exist: {directory}", offending=path)
        with open(path, "wb") as f:
            f.write(SRS_MAGIC + struct.pack(">Q", num_points) + digest)
        return digest

    # -- Verification keys ----------------------------------------------------

    def _key(self, variant: ProofVariant, bytecode: str, recursive: bool) -> Tuple[ReferenceKey, Ed25519PrivateKey, Dict[str, Any]]:
        program = decode_program(bytecode)
        digest = circuit_digest(program)
        signing = _signing_key(variant, digest, recursive)
        public_key = signing.public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )
        key = ReferenceKey(
            variant=variant,
            recursive=recursive,
            circuit_digest=digest,
            circuit_size=self.circuit_size(bytecode, recursive),
            num_public=_count_public(program),
            public_key=public_key,
        )
        return key, signing, program

    def _verification_key(self, variant: ProofVariant, bytecode: str, recursive: bool) -> bytes:
        try:
            key, _, _ = self._key(variant, bytecode, recursive)
        except CircuitExecutionFailure as e:
            raise ProvingFailure(f"Cannot derive verification key: {e.message}", cause=e) from e
        return key.to_bytes()

    def get_plonk_verification_key(self, bytecode: str, recursive: bool, low_memory: bool) -> bytes:
        return self._verification_key(ProofVariant.PLONK, bytecode, recursive)

    def get_honk_verification_key(self, bytecode: str, recursive: bool, low_memory: bool) -> bytes:
        return self._verification_key(ProofVariant.HONK, bytecode, recursive)

    def get_ultra_honk_verification_key(self, bytecode: str, recursive: bool, low_memory: bool) -> bytes:
        return self._verification_key(ProofVariant.ULTRA_HONK, bytecode, recursive)

    def get_ultra_honk_keccak_verification_key(
        self, bytecode: str, recursive: bool, low_memory: bool
    ) -> bytes:
        return self._verification_key(ProofVariant.ULTRA_HONK_KECCAK, bytecode, recursive)

    # -- Proving --------------------------------------------------------------

    def _prove(
        self,
        variant: ProofVariant,
        bytecode: str,
        witness: WitnessMap,
        recursive: bool,
        supplied_vk: Optional[bytes] = None,
    ) -> Tuple[bytes, bytes]:
        try:
            key, signing, program = self._key(variant, bytecode, recursive)
        except CircuitExecutionFailure as e:
            raise ProvingFailure(f"Cannot build proving key: {e.message}", cause=e) from e
        vk = key.to_bytes()
        if supplied_vk is not None and supplied_vk != vk:
            raise ProvingFailure(
                f"Supplied verification key does not match circuit for {variant.value}"
            )

        stack = self.execute(bytecode, witness)
        publics = b"".join(v.to_bytes() for v in _public_inputs(program, stack[-1][1]))

        signature = signing.sign(_transcript(variant, vk, publics))
        header = PROOF_HEADER.pack(PROOF_MAGIC, VARIANT_CODES[variant], key.num_public)
        return header + publics + signature, vk

    def prove_plonk(
        self, bytecode: str, witness: WitnessMap, recursive: bool, low_memory: bool
    ) -> Tuple[bytes, bytes]:
        return self._prove(ProofVariant.PLONK, bytecode, witness, recursive)

    def prove_honk(
        self, bytecode: str, witness: WitnessMap, recursive: bool, low_memory: bool
    ) -> Tuple[bytes, bytes]:
        return self._prove(ProofVariant.HONK, bytecode, witness, recursive)

    def prove_ultra_honk(
        self, bytecode: str, witness: WitnessMap, vk: bytes, recursive: bool, low_memory: bool
    ) -> bytes:
        proof, _ = self._prove(ProofVariant.ULTRA_HONK, bytecode, witness, recursive, vk)
        return proof

    def prove_ultra_honk_keccak(
        self, bytecode: str, witness: WitnessMap, vk: bytes, recursive: bool, low_memory: bool
    ) -> bytes:
        proof, _ = self._prove(ProofVariant.ULTRA_HONK_KECCAK, bytecode, witness, recursive, vk)
        return proof

    # -- Verification ---------------------------------------------------------

    def _verify(self, variant: ProofVariant, proof: bytes, vk: bytes) -> Tuple[bool, ReferenceKey]:
        key = ReferenceKey.from_bytes(vk)
        if key.variant != variant:
            raise VerificationFailure(
                f"Verification key is for {key.variant.value}, not {variant.value}"
            )

        if len(proof) < PROOF_HEADER.size + SIGNATURE_BYTES:
            raise VerificationFailure(f"Proof too short: {len(proof)} bytes")
        magic, code, num_public = PROOF_HEADER.unpack_from(proof)
        if magic != PROOF_MAGIC:
            raise VerificationFailure("Malformed proof: bad magic")
        if len(proof) != PROOF_HEADER.size + num_public * FIELD_BYTES + SIGNATURE_BYTES:
            raise VerificationFailure("Malformed proof: length does not match public input count")

        if code != VARIANT_CODES[variant] or num_public != key.num_public:
            return False, key

        publics = proof[PROOF_HEADER.size:-SIGNATURE_BYTES]
        for offset in range(0, len(publics), FIELD_BYTES):
            if int.from_bytes(publics[offset:offset + FIELD_BYTES], "big") >= FIELD_MODULUS:
                return False, key

        try:
            public_key = Ed25519PublicKey.from_public_bytes(key.public_key)
        except ValueError as e:
            raise VerificationFailure("Malformed verification key: bad public key", cause=e) from e

        try:
            public_key.verify(proof[-SIGNATURE_BYTES:], _transcript(variant, vk, publics))
        except InvalidSignature:
            return False, key
        return True, key

    def verify_plonk(self, proof: bytes, vk: bytes, num_points: int) -> bool:
        key = ReferenceKey.from_bytes(vk)
        if num_points < key.circuit_size:
            raise VerificationFailure(
                f"Verifier SRS of {num_points} points is smaller than circuit size "
                f"{key.circuit_size}",
                offending=num_points,
            )
        ok, _ = self._verify(ProofVariant.PLONK, proof, vk)
        return ok

    def verify_honk(self, proof: bytes, vk: bytes) -> bool:
        return self._verify(ProofVariant.HONK, proof, vk)[0]

    def verify_ultra_honk(self, proof: bytes, vk: bytes) -> bool:
        return self._verify(ProofVariant.ULTRA_HONK, proof, vk)[0]

    def verify_ultra_honk_keccak(self, proof: bytes, vk: bytes) -> bool:
        return self._verify(ProofVariant.ULTRA_HONK_KECCAK, proof, vk)[0]


def _srs_digest(num_points: int) -> bytes:
    return hashlib.sha256(b"zkbridge-reference-srs" + struct.pack(">Q", num_points)).digest()


def public_inputs_of(proof: bytes) -> List[str]:
    """Read the public inputs carried by a reference proof."""
    if len(proof) < PROOF_HEADER.size + SIGNATURE_BYTES:
        raise VerificationFailure(f"Proof too short: {len(proof)} bytes")
    publics = proof[PROOF_HEADER.size:-SIGNATURE_BYTES]
    return [
        "0x" + publics[i:i + FIELD_BYTES].hex()
        for i in range(0, len(publics), FIELD_BYTES)
    ]
