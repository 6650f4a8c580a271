"""
ZKBRIDGE host boundary tests.

End-to-end flows through ProverBridge and Circuit against the reference
backend.

Copyright (c) 2026 Momentum. All rights reserved.
"""

import json
import logging
import threading

import pytest

from tools.zkbridge.boundary import Circuit, ProverBridge, create_bridge
from tools.zkbridge.config import get_config_manager
from tools.zkbridge.errors import (
    BridgeError,
    CircuitExecutionFailure,
    InputDecodingError,
    MissingParameterError,
    SRSSetupFailure,
    UnsupportedProofTypeError,
    VerificationFailure,
)
from tools.zkbridge.reference import ReferenceBackend
from tools.zkbridge.variants import ProofVariant

WITNESS = {"0": "0x3", "1": "0x4"}
TWELVE = "0x" + "0" * 62 + "0c"


class SpyBackend(ReferenceBackend):
    """Counts backend execute calls."""

    def __init__(self):
        self.executions = 0

    def execute(self, bytecode, witness):
        self.executions += 1
        return super().execute(bytecode, witness)


class ExplodingBackend(ReferenceBackend):
    """Backend whose execute fails with a non-bridge exception."""

    def execute(self, bytecode, witness):
        raise RuntimeError("solver crashed")


def _flip_hex_digit(text, position):
    digit = text[position]
    flipped = "0" if digit != "0" else "1"
    return text[:position] + flipped + text[position + 1:]


# =============================================================================
# EXECUTE
# =============================================================================

class TestExecute:
    """Circuit execution through the bridge."""

    def test_multiply(self, bridge, multiply_bytecode):
        values = bridge.execute(multiply_bytecode, WITNESS)
        assert values[-1] == TWELVE
        assert len(values) == 3
        assert all(len(v) == 66 and v.startswith("0x") for v in values)

    def test_call_returns_entry_circuit_witness(self, bridge, call_bytecode):
        values = bridge.execute(call_bytecode, {"0": "0x3", "1": "0x1"})
        assert values[-1] == "0x" + "0" * 62 + "0a"
        assert len(values) == 4

    def test_does_not_need_srs(self, bridge, multiply_bytecode):
        assert bridge.srs.current is None
        bridge.execute(multiply_bytecode, WITNESS)

    def test_unsatisfiable_is_execution_failure(self, bridge, multiply_bytecode):
        with pytest.raises(CircuitExecutionFailure) as exc:
            bridge.execute(multiply_bytecode, {"0": "0x3"})
        assert exc.value.stage == "execute"

    def test_bad_witness_rejected_before_backend(self, multiply_bytecode):
        backend = SpyBackend()
        bridge = ProverBridge(backend=backend)
        with pytest.raises(InputDecodingError) as exc:
            bridge.execute(multiply_bytecode, {"0": "0x3", "x": "0x4"})
        assert exc.value.offending == "x"
        assert backend.executions == 0

    def test_foreign_exception_is_translated(self, multiply_bytecode):
        bridge = ProverBridge(backend=ExplodingBackend())
        with pytest.raises(CircuitExecutionFailure) as exc:
            bridge.execute(multiply_bytecode, WITNESS)
        assert "solver crashed" in exc.value.message
        assert isinstance(exc.value.cause, RuntimeError)
        assert isinstance(exc.value.__cause__, RuntimeError)


# =============================================================================
# SRS
# =============================================================================

class TestSetupSRS:
    """SRS setup through the bridge."""

    def test_from_bytecode(self, bridge, multiply_bytecode):
        assert bridge.setup_srs(multiply_bytecode) == 16

    def test_recursive_flag_as_string(self, bridge, multiply_bytecode):
        assert bridge.setup_srs(multiply_bytecode, recursive="true") == 512

    def test_explicit_size_is_idempotent(self, bridge):
        assert bridge.setup_srs(64) == 64
        assert bridge.setup_srs(16) == 64
        assert bridge.srs.load_count == 1

    @pytest.mark.parametrize("value", [True, 1.5, None, b"\x00"])
    def test_bad_size_argument(self, bridge, value):
        with pytest.raises(InputDecodingError) as exc:
            bridge.setup_srs(value)
        assert exc.value.stage == "setup_srs"

    def test_bad_flag(self, bridge, multiply_bytecode):
        with pytest.raises(InputDecodingError):
            bridge.setup_srs(multiply_bytecode, recursive="maybe")


# =============================================================================
# PROVE / VERIFY
# =============================================================================

class TestProveVerify:
    """Full prove and verify flows."""

    @pytest.mark.parametrize("variant", ["ultra_honk", "ultra_honk_keccak"])
    def test_ultra_round_trip(self, bridge, multiply_bytecode, variant):
        bridge.setup_srs(multiply_bytecode)
        vk = bridge.get_verification_key(multiply_bytecode, variant)
        proof = bridge.prove(multiply_bytecode, WITNESS, variant, vk=vk)
        assert isinstance(proof, str)
        assert bridge.verify(proof, vk, variant) is True

    def test_default_variant_is_ultra_honk(self, bridge, multiply_bytecode):
        bridge.setup_srs(multiply_bytecode)
        vk = bridge.get_verification_key(multiply_bytecode)
        proof = bridge.prove(multiply_bytecode, WITNESS, vk=vk)
        assert bridge.verify(proof, vk, "ultra_honk")

    def test_configured_default_variant(self, bridge, multiply_bytecode):
        get_config_manager().set("proving.default_variant", "honk")
        bridge.setup_srs(multiply_bytecode)
        proof, vk = bridge.prove(multiply_bytecode, WITNESS)
        assert bridge.verify(proof, vk)

    def test_tampered_proof_rejected(self, bridge, multiply_bytecode):
        bridge.setup_srs(multiply_bytecode)
        vk = bridge.get_verification_key(multiply_bytecode, "ultra_honk")
        proof = bridge.prove(multiply_bytecode, WITNESS, "ultra_honk", vk=vk)
        # header is 9 bytes; the public output's last digit follows it
        tampered = _flip_hex_digit(proof, 18 + 63)
        assert bridge.verify(tampered, vk, "ultra_honk") is False

    def test_proof_against_other_vk_is_invalid(self, bridge, multiply_bytecode, call_bytecode):
        bridge.setup_srs(64)
        vk = bridge.get_verification_key(multiply_bytecode, "ultra_honk")
        other_vk = bridge.get_verification_key(call_bytecode, "ultra_honk")
        proof = bridge.prove(multiply_bytecode, WITNESS, "ultra_honk", vk=vk)
        assert bridge.verify(proof, other_vk, "ultra_honk") is False

    def test_ultra_without_vk(self, bridge, multiply_bytecode):
        bridge.setup_srs(multiply_bytecode)
        with pytest.raises(MissingParameterError) as exc:
            bridge.prove(multiply_bytecode, WITNESS, "ultra_honk")
        assert exc.value.parameter == "vk"
        assert exc.value.stage == "prove"

    @pytest.mark.parametrize("variant", ["plonk", "honk"])
    def test_legacy_returns_proof_and_vk(self, bridge, multiply_bytecode, variant):
        bridge.setup_srs(multiply_bytecode)
        result = bridge.prove(multiply_bytecode, WITNESS, variant)
        assert isinstance(result, tuple)
        proof, vk = result
        assert vk == bridge.get_verification_key(multiply_bytecode, variant)

    def test_plonk_verify_needs_num_points(self, bridge, multiply_bytecode):
        bridge.setup_srs(multiply_bytecode)
        proof, vk = bridge.prove(multiply_bytecode, WITNESS, "plonk")
        with pytest.raises(MissingParameterError):
            bridge.verify(proof, vk, "plonk")
        assert bridge.verify(proof, vk, "plonk", num_points="16")
        assert bridge.verify(proof, vk, "plonk", num_points=16)

    def test_recursive_proof(self, bridge, multiply_bytecode):
        bridge.setup_srs(multiply_bytecode, recursive=True)
        vk = bridge.get_verification_key(multiply_bytecode, "ultra_honk", recursive="1")
        proof = bridge.prove(multiply_bytecode, WITNESS, "ultra_honk", vk=vk, recursive="1", low_memory="true")
        assert bridge.verify(proof, vk, "ultra_honk")

    def test_unknown_variant(self, bridge, multiply_bytecode):
        bridge.setup_srs(multiply_bytecode)
        with pytest.raises(UnsupportedProofTypeError) as exc:
            bridge.prove(multiply_bytecode, WITNESS, "groth16")
        assert exc.value.tag == "groth16"
        assert exc.value.stage == "prove"

    def test_prove_without_srs(self, bridge, multiply_bytecode):
        with pytest.raises(SRSSetupFailure):
            bridge.prove(multiply_bytecode, WITNESS, "honk")

    def test_verify_without_srs(self, multiply_bytecode):
        prover = ProverBridge()
        prover.setup_srs(multiply_bytecode)
        proof, vk = prover.prove(multiply_bytecode, WITNESS, "honk")
        with pytest.raises(SRSSetupFailure):
            ProverBridge().verify(proof, vk, "honk")

    def test_srs_too_small(self, bridge, multiply_bytecode):
        bridge.setup_srs(8)
        with pytest.raises(SRSSetupFailure) as exc:
            bridge.get_verification_key(multiply_bytecode, "honk")
        assert "16" in exc.value.message

    def test_auto_setup(self, multiply_bytecode):
        get_config_manager().set("srs.auto_setup", True)
        bridge = ProverBridge()
        proof, vk = bridge.prove(multiply_bytecode, WITNESS, "honk")
        assert bridge.srs.current.num_points == 16
        assert bridge.verify(proof, vk, "honk")

    def test_bad_witness_never_reaches_backend(self, multiply_bytecode):
        backend = SpyBackend()
        bridge = ProverBridge(backend=backend)
        bridge.setup_srs(multiply_bytecode)
        with pytest.raises(InputDecodingError):
            bridge.prove(multiply_bytecode, {"0": "0x3", "1": "4"}, "honk")
        assert backend.executions == 0

    def test_missing_vk_rejected_before_srs_setup(self, multiply_bytecode):
        get_config_manager().set("srs.auto_setup", True)
        backend = SpyBackend()
        bridge = ProverBridge(backend=backend)
        with pytest.raises(MissingParameterError) as exc:
            bridge.prove(multiply_bytecode, WITNESS, "ultra_honk")
        assert exc.value.stage == "prove"
        assert bridge.srs.load_count == 0
        assert backend.executions == 0

    def test_missing_vk_reported_without_srs(self, bridge, multiply_bytecode):
        with pytest.raises(MissingParameterError):
            bridge.prove(multiply_bytecode, WITNESS, "ultra_honk")

    def test_vk_ignored_for_legacy_variant(self, bridge, multiply_bytecode, caplog):
        bridge.setup_srs(multiply_bytecode)
        with caplog.at_level(logging.WARNING, logger="zkbridge.boundary.boundary"):
            proof, vk = bridge.prove(multiply_bytecode, WITNESS, "honk", vk="ab" * 32)
        assert vk == bridge.get_verification_key(multiply_bytecode, "honk")
        assert bridge.verify(proof, vk, "honk")
        assert any("ignored" in r.getMessage() for r in caplog.records)

    def test_verify_rejects_trailing_newline_in_proof(self, bridge, multiply_bytecode):
        bridge.setup_srs(multiply_bytecode)
        vk = bridge.get_verification_key(multiply_bytecode, "ultra_honk")
        with pytest.raises(InputDecodingError):
            bridge.verify("abc\n", vk, "ultra_honk")

    @pytest.mark.parametrize("num_points", ["²", "16\n", " 16", "1" * 40])
    def test_num_points_must_be_ascii_digits(self, bridge, multiply_bytecode, num_points):
        bridge.setup_srs(multiply_bytecode)
        proof, vk = bridge.prove(multiply_bytecode, WITNESS, "plonk")
        with pytest.raises(InputDecodingError):
            bridge.verify(proof, vk, "plonk", num_points=num_points)

    def test_very_long_witness_key(self, bridge, multiply_bytecode):
        with pytest.raises(InputDecodingError) as exc:
            bridge.execute(multiply_bytecode, {"9" * 5000: "0x3"})
        assert exc.value.stage == "execute"

    def test_unsatisfied_witness_during_prove(self, bridge, multiply_bytecode):
        bridge.setup_srs(multiply_bytecode)
        with pytest.raises(CircuitExecutionFailure) as exc:
            bridge.prove(multiply_bytecode, {"0": "0x3"}, "honk")
        assert exc.value.stage == "prove"

    @pytest.mark.parametrize("proof", ["0x00", "abc", "zz", 12])
    def test_malformed_proof_hex(self, bridge, multiply_bytecode, proof):
        bridge.setup_srs(multiply_bytecode)
        vk = bridge.get_verification_key(multiply_bytecode, "honk")
        with pytest.raises(InputDecodingError):
            bridge.verify(proof, vk, "honk")

    def test_garbage_proof_bytes(self, bridge, multiply_bytecode):
        bridge.setup_srs(multiply_bytecode)
        vk = bridge.get_verification_key(multiply_bytecode, "honk")
        with pytest.raises(VerificationFailure):
            bridge.verify("00" * 20, vk, "honk")

    def test_errors_are_bridge_errors(self, bridge):
        with pytest.raises(BridgeError):
            bridge.verify("", "", "nope")

    def test_concurrent_provers(self, bridge, multiply_bytecode):
        bridge.setup_srs(multiply_bytecode)
        vk = bridge.get_verification_key(multiply_bytecode, "ultra_honk")
        results = []

        def worker():
            proof = bridge.prove(multiply_bytecode, WITNESS, "ultra_honk", vk=vk)
            results.append(bridge.verify(proof, vk, "ultra_honk"))

        threads = [threading.Thread(target=worker) for _ in range(6)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)
        assert results == [True] * 6


# =============================================================================
# CIRCUIT WRAPPER
# =============================================================================

def _manifest_json(bytecode):
    return json.dumps({
        "noir_version": "1.0.0",
        "hash": 1,
        "abi": {
            "parameters": [
                {"name": "a", "type": {"kind": "field"}, "visibility": "private"},
                {"name": "b", "type": {"kind": "field"}, "visibility": "private"},
            ],
            "return_type": {"abi_type": {"kind": "field"}, "visibility": "public"},
        },
        "bytecode": bytecode,
    })


class TestCircuit:
    """Circuit wrapper over the bridge."""

    def test_execute_named_inputs(self, multiply_bytecode):
        circuit = Circuit.from_json_manifest(_manifest_json(multiply_bytecode))
        assert circuit.execute({"a": 3, "b": 4})[-1] == TWELVE

    def test_requires_setup(self, multiply_bytecode):
        circuit = Circuit.from_json_manifest(_manifest_json(multiply_bytecode))
        with pytest.raises(SRSSetupFailure):
            circuit.prove({"a": 3, "b": 4})
        with pytest.raises(SRSSetupFailure):
            circuit.verify("00")

    def test_ultra_honk_round_trip(self, multiply_bytecode):
        circuit = Circuit.from_json_manifest(_manifest_json(multiply_bytecode))
        assert circuit.setup_srs() == 16
        proof = circuit.prove({"a": 3, "b": 4}, proof_variant="ultra_honk")
        assert circuit.verify(proof, proof_variant="ultra_honk")

    def test_plonk_uses_setup_size(self, multiply_bytecode):
        circuit = Circuit.from_json_manifest(_manifest_json(multiply_bytecode), size=32)
        assert circuit.setup_srs() == 32
        proof, vk = circuit.prove({"a": 3, "b": 4}, proof_variant="plonk")
        assert circuit.verify(proof, vk, proof_variant="plonk")

    def test_from_file(self, tmp_path, multiply_bytecode):
        path = tmp_path / "circuit.json"
        path.write_text(_manifest_json(multiply_bytecode))
        circuit = Circuit.from_file(path)
        assert circuit.bytecode == multiply_bytecode

    def test_missing_input(self, multiply_bytecode):
        circuit = Circuit.from_json_manifest(_manifest_json(multiply_bytecode))
        with pytest.raises(InputDecodingError) as exc:
            circuit.execute({"a": 3})
        assert exc.value.stage == "execute"

    def test_errors_carry_stage(self, multiply_bytecode):
        circuit = Circuit.from_json_manifest(_manifest_json(multiply_bytecode))
        with pytest.raises(SRSSetupFailure) as exc:
            circuit.prove({"a": 3, "b": 4})
        assert exc.value.stage == "prove"
        with pytest.raises(SRSSetupFailure) as exc:
            circuit.verify("00")
        assert exc.value.stage == "verify"

    def test_failure_reported_once(self, multiply_bytecode, caplog):
        circuit = Circuit.from_json_manifest(_manifest_json(multiply_bytecode))
        circuit.setup_srs()
        with caplog.at_level(logging.DEBUG, logger="zkbridge.boundary.translator"):
            with pytest.raises(VerificationFailure):
                circuit.verify("00" * 20, proof_variant="honk")
        reported = [
            r for r in caplog.records
            if r.name == "zkbridge.boundary.translator" and r.levelno >= logging.WARNING
        ]
        assert len(reported) == 1


class TestCreateBridge:
    """Bridge construction from config files."""

    def test_config_file_applied(self, tmp_path, multiply_bytecode):
        srs_path = tmp_path / "srs.dat"
        config = tmp_path / "zkbridge.yaml"
        config.write_text(f"srs:\n  default_path: {srs_path}\n  auto_setup: true\n")
        bridge = create_bridge(config_path=config)
        bridge.get_verification_key(multiply_bytecode, "honk")
        assert srs_path.exists()

    def test_default_config_file_in_working_directory(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("HOME", str(tmp_path / "home"))
        (tmp_path / "zkbridge.yaml").write_text("proving:\n  default_variant: honk\n")
        assert create_bridge().resolve_variant(None) is ProofVariant.HONK

    def test_no_default_config_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("HOME", str(tmp_path / "home"))
        assert create_bridge().resolve_variant(None) is ProofVariant.ULTRA_HONK


class TestPackageExports:
    """Lazy top-level exports."""

    def test_exports_resolve(self):
        import tools.zkbridge as zkbridge

        assert zkbridge.ProverBridge is ProverBridge
        assert zkbridge.ReferenceBackend is ReferenceBackend
        for name in zkbridge.__all__:
            assert getattr(zkbridge, name) is not None

    def test_unknown_attribute(self):
        import tools.zkbridge as zkbridge

        with pytest.raises(AttributeError):
            zkbridge.NotAThing
