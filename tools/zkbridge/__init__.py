"""
ZKBRIDGE: Zero-Knowledge Prover Bridge

Call-boundary façade between a managed host and a zero-knowledge circuit
prover. The bridge turns loosely-typed host input (string-keyed witnesses,
hex artifacts, string flags) into typed values, drives SRS setup, circuit
execution, proving, verification and verification-key derivation through a
pluggable proving backend, and reports every failure as a structured
BridgeError.

Architecture
────────────

    ┌─────────────────────────────────────────────────────────────────────────┐
    │                          PROVER BRIDGE                                   │
    │                                                                          │
    │  HOST SURFACE                                                           │
    │    boundary.py    ProverBridge operations, Circuit manifest wrapper     │
    │    cli.py         zkbridge command-line host                            │
    │    translator.py  Failure translation and logging for every call        │
    │                                                                          │
    │  MARSHALING & DISPATCH                                                  │
    │    witness.py     Host witness -> WitnessMap                            │
    │    abi.py         Named inputs -> host witness via circuit ABI          │
    │    codec.py       Hex and field-element text forms                      │
    │    variants.py    Proof variant tags and flags                          │
    │    srs.py         SRS lifecycle under a read-write lock                 │
    │    executor.py    Circuit execution, solved witness stack               │
    │    dispatcher.py  Variant routing over the backend                      │
    │                                                                          │
    │  BACKEND                                                                │
    │    backend.py     ProvingBackend protocol                               │
    │    reference.py   Deterministic in-process backend (not sound)          │
    │                                                                          │
    │  SUPPORT                                                                │
    │    field.py  errors.py  config.py  observability.py  hardening.py       │
    │                                                                          │
    └─────────────────────────────────────────────────────────────────────────┘

Proof Variants
──────────────

    plonk               legacy, count-parameterized verification
    honk                legacy, derives its own verification key
    ultra_honk          proves against a caller-supplied verification key
    ultra_honk_keccak   as ultra_honk, keccak transcript

Copyright (c) 2026 Momentum. All rights reserved.
"""

__version__ = "0.1.0"


def __getattr__(name):
    """Lazy import ZKBRIDGE modules on first access."""

    # Boundary exports
    if name in ("ProverBridge", "Circuit", "create_bridge"):
        from tools.zkbridge import boundary
        return getattr(boundary, name)

    # Error exports
    if name in ("BridgeError", "ErrorClass", "ErrorKind", "InputDecodingError",
                "UnsupportedProofTypeError", "MissingParameterError", "SRSSetupFailure",
                "CircuitExecutionFailure", "ProvingFailure", "VerificationFailure",
                "NoWitnessProducedError", "EncodingFailure", "ConfigError",
                "ConfigValidationError"):
        from tools.zkbridge import errors
        return getattr(errors, name)

    # Data model exports
    if name in ("FieldElement", "FIELD_MODULUS"):
        from tools.zkbridge import field
        return getattr(field, name)

    if name in ("WitnessMap", "marshal"):
        from tools.zkbridge import witness
        return getattr(witness, name)

    if name in ("ProofVariant", "ProofOptions", "parse_variant"):
        from tools.zkbridge import variants
        return getattr(variants, name)

    if name in ("CircuitManifest", "generate_witness_map"):
        from tools.zkbridge import abi
        return getattr(abi, name)

    # Backend exports
    if name == "ProvingBackend":
        from tools.zkbridge import backend
        return backend.ProvingBackend

    if name in ("ReferenceBackend", "encode_program"):
        from tools.zkbridge import reference
        return getattr(reference, name)

    # Config exports
    if name in ("get_config", "get_config_manager", "BridgeConfig"):
        from tools.zkbridge import config
        return getattr(config, name)

    raise AttributeError(f"module 'tools.zkbridge' has no attribute '{name}'")


__all__ = [
    "__version__",
    # Boundary
    "ProverBridge",
    "Circuit",
    "create_bridge",
    # Errors
    "BridgeError",
    "ErrorClass",
    "ErrorKind",
    "InputDecodingError",
    "UnsupportedProofTypeError",
    "MissingParameterError",
    "SRSSetupFailure",
    "CircuitExecutionFailure",
    "ProvingFailure",
    "VerificationFailure",
    "NoWitnessProducedError",
    "EncodingFailure",
    "ConfigError",
    "ConfigValidationError",
    # Data model
    "FieldElement",
    "FIELD_MODULUS",
    "WitnessMap",
    "marshal",
    "ProofVariant",
    "ProofOptions",
    "parse_variant",
    "CircuitManifest",
    "generate_witness_map",
    # Backend
    "ProvingBackend",
    "ReferenceBackend",
    "encode_program",
    # Config
    "get_config",
    "get_config_manager",
    "BridgeConfig",
]
