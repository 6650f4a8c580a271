"""
ZKBRIDGE circuit executor and reference backend tests.

Copyright (c) 2026 Momentum. All rights reserved.
"""

import pytest

from tools.zkbridge.backend import ProvingBackend
from tools.zkbridge.errors import (
    CircuitExecutionFailure,
    NoWitnessProducedError,
    ProvingFailure,
    VerificationFailure,
)
from tools.zkbridge.executor import CircuitExecutor, SolvedWitnessStack
from tools.zkbridge.field import FieldElement
from tools.zkbridge.reference import (
    ReferenceBackend,
    decode_program,
    encode_program,
    public_inputs_of,
)
from tools.zkbridge.witness import marshal


@pytest.fixture
def backend():
    return ReferenceBackend()


class TestExecutor:
    """Tests for circuit execution."""

    def test_multiply(self, backend, multiply_bytecode):
        stack = CircuitExecutor(backend).execute(multiply_bytecode, marshal({"0": "0x3", "1": "0x4"}))
        assert len(stack) == 1
        assert stack.final_witness()[2] == FieldElement(12)

    def test_call_stack_ends_with_entry_circuit(self, backend, call_bytecode):
        stack = CircuitExecutor(backend).execute(call_bytecode, marshal({"0": "0x3", "1": "0x1"}))
        assert [fid for fid, _ in stack] == [1, 0]
        assert stack.final_witness()[3] == FieldElement(10)
        assert stack[0][1][1] == FieldElement(9)

    def test_missing_input(self, backend, multiply_bytecode):
        with pytest.raises(CircuitExecutionFailure) as exc:
            CircuitExecutor(backend).execute(multiply_bytecode, marshal({"0": "0x3"}))
        assert "Missing input" in exc.value.message

    def test_unsatisfied_constraint(self, backend):
        program = {
            "functions": [{
                "current_witness_index": 1,
                "private_parameters": [0, 1],
                "opcodes": [{"kind": "assert_eq", "lhs": 0, "rhs": 1}],
            }]
        }
        executor = CircuitExecutor(backend)
        bytecode = encode_program(program)
        executor.execute(bytecode, marshal({"0": "0x5", "1": "0x5"}))
        with pytest.raises(CircuitExecutionFailure):
            executor.execute(bytecode, marshal({"0": "0x5", "1": "0x6"}))

    def test_const_and_sub(self, backend):
        program = {
            "functions": [{
                "current_witness_index": 2,
                "private_parameters": [0],
                "return_values": [2],
                "opcodes": [
                    {"kind": "const", "value": "0xa", "out": 1},
                    {"kind": "sub", "lhs": 0, "rhs": 1, "out": 2},
                ],
            }]
        }
        stack = CircuitExecutor(backend).execute(encode_program(program), marshal({"0": "0xb"}))
        assert stack.final_witness()[2] == FieldElement(1)

    @pytest.mark.parametrize("bytecode", ["", "!!!", "aGVsbG8="])
    def test_malformed_bytecode(self, backend, bytecode):
        with pytest.raises(CircuitExecutionFailure):
            CircuitExecutor(backend).execute(bytecode, marshal({}))

    def test_empty_stack_is_defect(self):
        with pytest.raises(NoWitnessProducedError) as exc:
            SolvedWitnessStack().final_witness()
        assert exc.value.defect


class TestReferenceBackend:
    """Tests for the reference proving backend."""

    def test_satisfies_protocol(self, backend):
        assert isinstance(backend, ProvingBackend)

    def test_program_round_trip(self, multiply_bytecode):
        program = decode_program(multiply_bytecode)
        assert program["functions"][0]["opcodes"][0]["kind"] == "mul"
        assert encode_program(program) == multiply_bytecode

    def test_vk_is_deterministic_and_variant_specific(self, backend, multiply_bytecode):
        a = backend.get_ultra_honk_verification_key(multiply_bytecode, False, False)
        b = backend.get_ultra_honk_verification_key(multiply_bytecode, False, True)
        c = backend.get_ultra_honk_keccak_verification_key(multiply_bytecode, False, False)
        assert a == b
        assert a != c

    def test_prove_and_verify_each_variant(self, backend, multiply_bytecode):
        witness = marshal({"0": "0x3", "1": "0x4"})

        proof, vk = backend.prove_plonk(multiply_bytecode, witness, False, False)
        assert backend.verify_plonk(proof, vk, 16)

        proof, vk = backend.prove_honk(multiply_bytecode, witness, False, False)
        assert backend.verify_honk(proof, vk)

        vk = backend.get_ultra_honk_verification_key(multiply_bytecode, False, False)
        proof = backend.prove_ultra_honk(multiply_bytecode, witness, vk, False, False)
        assert backend.verify_ultra_honk(proof, vk)

        vk = backend.get_ultra_honk_keccak_verification_key(multiply_bytecode, False, False)
        proof = backend.prove_ultra_honk_keccak(multiply_bytecode, witness, vk, False, False)
        assert backend.verify_ultra_honk_keccak(proof, vk)

    def test_proof_carries_public_output(self, backend, multiply_bytecode):
        witness = marshal({"0": "0x3", "1": "0x4"})
        proof, _ = backend.prove_honk(multiply_bytecode, witness, False, False)
        assert public_inputs_of(proof) == ["0x" + "0" * 62 + "0c"]

    def test_vk_for_other_circuit_rejected(self, backend, multiply_bytecode, call_bytecode):
        vk = backend.get_ultra_honk_verification_key(call_bytecode, False, False)
        with pytest.raises(ProvingFailure):
            backend.prove_ultra_honk(multiply_bytecode, marshal({"0": "0x3", "1": "0x4"}), vk, False, False)

    def test_vk_variant_mismatch_is_verification_failure(self, backend, multiply_bytecode):
        witness = marshal({"0": "0x3", "1": "0x4"})
        proof, vk = backend.prove_honk(multiply_bytecode, witness, False, False)
        with pytest.raises(VerificationFailure):
            backend.verify_ultra_honk(proof, vk)

    def test_plonk_verify_needs_enough_points(self, backend, multiply_bytecode):
        proof, vk = backend.prove_plonk(multiply_bytecode, marshal({"0": "0x3", "1": "0x4"}), False, False)
        with pytest.raises(VerificationFailure):
            backend.verify_plonk(proof, vk, 8)

    def test_tampered_public_input_fails(self, backend, multiply_bytecode):
        witness = marshal({"0": "0x3", "1": "0x4"})
        proof, vk = backend.prove_honk(multiply_bytecode, witness, False, False)
        tampered = bytearray(proof)
        tampered[9 + 31] ^= 0x01
        assert backend.verify_honk(bytes(tampered), vk) is False

    def test_truncated_proof_is_malformed(self, backend, multiply_bytecode):
        proof, vk = backend.prove_honk(multiply_bytecode, marshal({"0": "0x3", "1": "0x4"}), False, False)
        with pytest.raises(VerificationFailure):
            backend.verify_honk(proof[:-1], vk)
