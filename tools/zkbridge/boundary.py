"""
ZKBRIDGE Host Boundary

The operations a host calls. Each one decodes its loosely-typed arguments
exactly once, runs the pipeline, and encodes the result:

    external call
      -> witness / artifact decode        (witness.marshal, codec)
      -> SRS manager                      (prove, verify, vk)
      -> circuit executor                 (execute, prove)
      -> dispatcher                       (prove, verify, vk)
      -> result codec
    any failure -> error translator -> BridgeError raised to the host

Usage:
    bridge = create_bridge()
    bridge.setup_srs(bytecode)
    bridge.execute(bytecode, {"0": "0x3", "1": "0x4"})
    vk = bridge.get_verification_key(bytecode, "ultra_honk")
    proof = bridge.prove(bytecode, {"0": "0x3", "1": "0x4"}, "ultra_honk", vk=vk)
    assert bridge.verify(proof, vk, "ultra_honk")

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, List, Mapping, Optional, Tuple, Union

from tools.zkbridge.abi import CircuitManifest
from tools.zkbridge.backend import ProvingBackend
from tools.zkbridge.codec import decode_hex, encode_artifact, encode_witness_values
from tools.zkbridge.config import BridgeConfig, get_config, get_config_manager
from tools.zkbridge.dispatcher import Dispatcher
from tools.zkbridge.errors import InputDecodingError, MissingParameterError, SRSSetupFailure
from tools.zkbridge.executor import CircuitExecutor
from tools.zkbridge.observability import BridgeLayer, get_logger
from tools.zkbridge.reference import ReferenceBackend
from tools.zkbridge.srs import ExplicitSize, FromBytecode, SRSManager
from tools.zkbridge.translator import Stage, boundary_call
from tools.zkbridge.variants import ProofOptions, ProofVariant, make_options, parse_flag, parse_variant
from tools.zkbridge.witness import marshal

logger = get_logger("boundary", BridgeLayer.BOUNDARY)

ProveOutput = Union[str, Tuple[str, str]]

# ASCII digits only
POINTS_PATTERN = re.compile(r"[0-9]{1,19}")


def _parse_points(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise InputDecodingError(f"num_points must be an integer, got {value!r}", offending=value)
    if isinstance(value, int):
        points = value
    elif isinstance(value, str) and POINTS_PATTERN.fullmatch(value):
        points = int(value)
    else:
        raise InputDecodingError(f"num_points must be an integer, got {value!r}", offending=value)
    if points <= 0:
        raise InputDecodingError(f"num_points must be positive, got {points}", offending=value)
    return points


class ProverBridge:
    """
    Host-facing façade over a ProvingBackend.

    Holds the SRS for its lifetime. Safe to share between threads: SRS setup
    is exclusive, all other operations run concurrently.
    """

    def __init__(
        self,
        backend: Optional[ProvingBackend] = None,
        config: Optional[BridgeConfig] = None,
    ):
        self.backend = backend if backend is not None else ReferenceBackend()
        self._config = config or get_config()
        self.srs = SRSManager(
            self.backend,
            max_points=self._config.srs.max_points.get(),
            default_path=self._config.srs.default_path.get() or None,
        )
        self.executor = CircuitExecutor(self.backend)
        self.dispatcher = Dispatcher(self.backend)

    # -------------------------------------------------------------------------
    # Argument decoding
    # -------------------------------------------------------------------------

    def resolve_variant(self, proof_variant: Any) -> ProofVariant:
        if proof_variant is None:
            proof_variant = self._config.proving.default_variant.get()
        return parse_variant(proof_variant)

    def _auto_setup(self, bytecode: str, options: ProofOptions) -> None:
        if self._config.srs.auto_setup.get():
            self.srs.setup(FromBytecode(bytecode), recursive=options.recursive)

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    @boundary_call(Stage.SETUP_SRS)
    def setup_srs(
        self,
        size_or_bytecode: Union[int, str],
        path: Optional[str] = None,
        recursive: Any = False,
    ) -> int:
        """
        Load an SRS sized explicitly (int) or for a circuit (bytecode str).

        Returns the number of points now loaded.
        """
        recursive_flag = parse_flag(recursive, "recursive")
        if isinstance(size_or_bytecode, bool):
            raise InputDecodingError("SRS size must be an integer", offending=size_or_bytecode)
        if isinstance(size_or_bytecode, int):
            sizing = ExplicitSize(size_or_bytecode)
        elif isinstance(size_or_bytecode, str):
            sizing = FromBytecode(size_or_bytecode)
        else:
            raise InputDecodingError(
                f"Expected SRS size or bytecode, got {type(size_or_bytecode).__name__}",
                offending=size_or_bytecode,
            )
        if path is not None and not isinstance(path, str):
            raise InputDecodingError("SRS path must be a string", offending=path)

        handle = self.srs.setup(sizing, path, recursive_flag)
        return handle.num_points

    @boundary_call(Stage.EXECUTE)
    def execute(self, bytecode: str, witness: Mapping[Any, Any]) -> List[str]:
        """Solve the circuit; return the entry circuit's witness values in index order."""
        witness_map = marshal(witness)
        stack = self.executor.execute(bytecode, witness_map)
        solved = stack.final_witness()
        logger.info("Circuit executed", inputs=len(witness_map), outputs=len(solved))
        return encode_witness_values(solved)

    @boundary_call(Stage.PROVE)
    def prove(
        self,
        bytecode: str,
        witness: Mapping[Any, Any],
        proof_variant: Optional[str] = None,
        vk: Optional[str] = None,
        recursive: Any = False,
        low_memory: Any = False,
    ) -> ProveOutput:
        """
        Prove a witness against the circuit.

        Returns the proof hex. Legacy variants return (proof_hex, vk_hex).
        """
        variant = self.resolve_variant(proof_variant)
        if variant.requires_supplied_vk() and vk is None:
            raise MissingParameterError("vk", context=f"required for {variant.value}")
        options = make_options(recursive, low_memory)
        vk_bytes = decode_hex(vk, "vk") if vk is not None else None
        if vk_bytes is not None and variant.is_legacy:
            logger.warning("Supplied vk ignored, legacy variant derives its own", variant=variant.value)
            vk_bytes = None
        witness_map = marshal(witness)

        self._auto_setup(bytecode, options)
        with self.srs.reading() as srs:
            self.dispatcher.check_srs(srs, bytecode, options)
            solved = self.executor.execute(bytecode, witness_map).final_witness()
            result = self.dispatcher.prove(bytecode, solved, variant, options, srs, vk=vk_bytes)

        proof_hex = encode_artifact(result.proof, "proof")
        if variant.is_legacy:
            return proof_hex, encode_artifact(result.verification_key, "verification key")
        return proof_hex

    @boundary_call(Stage.VERIFY)
    def verify(
        self,
        proof: str,
        vk: str,
        proof_variant: Optional[str] = None,
        num_points: Any = None,
    ) -> bool:
        """Verify a proof. False means well formed but invalid."""
        variant = self.resolve_variant(proof_variant)
        proof_bytes = decode_hex(proof, "proof")
        vk_bytes = decode_hex(vk, "vk")
        points = _parse_points(num_points)

        with self.srs.reading() as srs:
            return self.dispatcher.verify(proof_bytes, vk_bytes, variant, srs, num_points=points)

    @boundary_call(Stage.GET_VK)
    def get_verification_key(
        self,
        bytecode: str,
        proof_variant: Optional[str] = None,
        recursive: Any = False,
        low_memory: Any = False,
    ) -> str:
        """Derive the circuit's verification key as hex."""
        variant = self.resolve_variant(proof_variant)
        options = make_options(recursive, low_memory)

        self._auto_setup(bytecode, options)
        with self.srs.reading() as srs:
            vk = self.dispatcher.derive_verification_key(bytecode, variant, options, srs)
        return encode_artifact(vk, "verification key")


class Circuit:
    """
    A compiled circuit bound to a bridge.

    Takes named inputs, lays them out with the manifest's ABI and forwards to
    the bridge. prove and verify refuse to run before setup_srs.
    """

    def __init__(
        self,
        manifest: CircuitManifest,
        bridge: Optional[ProverBridge] = None,
        size: int = 0,
    ):
        self.manifest = manifest
        self.bridge = bridge or ProverBridge()
        self.size = size
        self.num_points = 0

    @classmethod
    def from_json_manifest(
        cls,
        text: str,
        size: Optional[int] = None,
        bridge: Optional[ProverBridge] = None,
    ) -> Circuit:
        return cls(CircuitManifest.from_json(text), bridge=bridge, size=size or 0)

    @classmethod
    def from_file(cls, path: Union[str, Path], **kwargs: Any) -> Circuit:
        return cls(CircuitManifest.from_file(path), **kwargs)

    @property
    def bytecode(self) -> str:
        return self.manifest.bytecode

    def _require_srs(self) -> None:
        if self.num_points == 0:
            raise SRSSetupFailure("SRS not set up")

    @boundary_call(Stage.SETUP_SRS)
    def setup_srs(self, path: Optional[str] = None, recursive: Any = False) -> int:
        sizing = self.size if self.size > 0 else self.bytecode
        self.num_points = self.bridge.setup_srs(sizing, path, recursive)
        return self.num_points

    @boundary_call(Stage.EXECUTE)
    def execute(self, inputs: Mapping[str, Any]) -> List[str]:
        return self.bridge.execute(self.bytecode, self.manifest.witness_map(inputs))

    @boundary_call(Stage.GET_VK)
    def get_verification_key(
        self,
        proof_variant: Optional[str] = None,
        recursive: Any = False,
        low_memory: Any = False,
    ) -> str:
        return self.bridge.get_verification_key(self.bytecode, proof_variant, recursive, low_memory)

    @boundary_call(Stage.PROVE)
    def prove(
        self,
        inputs: Mapping[str, Any],
        vk: Optional[str] = None,
        proof_variant: Optional[str] = None,
        recursive: Any = False,
        low_memory: Any = False,
    ) -> ProveOutput:
        self._require_srs()
        variant = self.bridge.resolve_variant(proof_variant)
        if vk is None and variant.requires_supplied_vk():
            vk = self.get_verification_key(variant.value, recursive, low_memory)
        witness = self.manifest.witness_map(inputs)
        return self.bridge.prove(self.bytecode, witness, variant.value, vk, recursive, low_memory)

    @boundary_call(Stage.VERIFY)
    def verify(
        self,
        proof: str,
        vk: Optional[str] = None,
        proof_variant: Optional[str] = None,
        num_points: Optional[int] = None,
        recursive: Any = False,
    ) -> bool:
        self._require_srs()
        variant = self.bridge.resolve_variant(proof_variant)
        if vk is None:
            vk = self.get_verification_key(variant.value, recursive)
        if num_points is None and variant.requires_point_count():
            num_points = self.num_points
        return self.bridge.verify(proof, vk, variant.value, num_points)


def create_bridge(
    backend: Optional[ProvingBackend] = None,
    config_path: Optional[Union[str, Path]] = None,
) -> ProverBridge:
    """
    Build a bridge.

    Configuration comes from config_path if given, otherwise from the default
    config file locations.
    """
    manager = get_config_manager()
    if config_path is not None:
        manager.load_from_file(config_path)
    else:
        manager.load_defaults()
    return ProverBridge(backend=backend)
