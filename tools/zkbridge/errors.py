"""
ZKBRIDGE Error Taxonomy

Every failure that crosses the host boundary is one of the kinds below.
Kinds fall into three classes:

    Caller input    InputDecodingError, UnsupportedProofTypeError,
                    MissingParameterError
    Backend         SRSSetupFailure, CircuitExecutionFailure,
                    ProvingFailure, VerificationFailure
    Defect          NoWitnessProducedError, EncodingFailure

All kinds are recoverable at the boundary: they are raised to the caller
with a structured payload (see BridgeError.to_dict). Defects additionally
mark an internal contract violation and are logged with full traceback.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorClass(Enum):
    """Coarse grouping used for logging and exit codes."""
    CALLER_INPUT = "caller_input"
    BACKEND = "backend"
    DEFECT = "defect"
    CONFIG = "config"


class ErrorKind(Enum):
    """Closed set of failure kinds surfaced at the boundary."""
    INPUT_DECODING = "input_decoding"
    UNSUPPORTED_PROOF_TYPE = "unsupported_proof_type"
    MISSING_PARAMETER = "missing_parameter"
    SRS_SETUP = "srs_setup"
    CIRCUIT_EXECUTION = "circuit_execution"
    NO_WITNESS_PRODUCED = "no_witness_produced"
    PROVING = "proving"
    VERIFICATION = "verification"
    ENCODING = "encoding"
    CONFIG = "config"


class BridgeError(Exception):
    """
    Base class for all boundary failures.

    Attributes:
        message: Human readable description
        offending: The rejected input value (caller errors only)
        stage: Name of the pipeline stage that failed, set by the translator
        cause: Underlying exception, if any
    """

    kind: ErrorKind = ErrorKind.INPUT_DECODING
    error_class: ErrorClass = ErrorClass.CALLER_INPUT

    def __init__(
        self,
        message: str,
        offending: Any = None,
        stage: str = "",
        cause: Optional[BaseException] = None,
    ):
        self.message = message
        self.offending = offending
        self.stage = stage
        self.cause = cause
        super().__init__(message)

    @property
    def recoverable(self) -> bool:
        return True

    @property
    def defect(self) -> bool:
        return self.error_class == ErrorClass.DEFECT

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "kind": self.kind.value,
            "class": self.error_class.value,
            "message": self.message,
            "recoverable": self.recoverable,
            "defect": self.defect,
        }
        if self.stage:
            d["stage"] = self.stage
        if self.offending is not None:
            d["offending"] = _preview(self.offending)
        if self.cause is not None:
            d["cause"] = f"{type(self.cause).__name__}: {self.cause}"
        return d


def _preview(value: Any, limit: int = 80) -> str:
    text = repr(value)
    if len(text) > limit:
        return text[: limit - 3] + "..."
    return text


# =============================================================================
# CALLER INPUT
# =============================================================================

class InputDecodingError(BridgeError):
    """Bad witness index, hex, UTF-8, or out-of-range field value."""
    kind = ErrorKind.INPUT_DECODING
    error_class = ErrorClass.CALLER_INPUT


class UnsupportedProofTypeError(BridgeError):
    """Proof variant tag is not one of the supported tags."""
    kind = ErrorKind.UNSUPPORTED_PROOF_TYPE
    error_class = ErrorClass.CALLER_INPUT

    def __init__(self, tag: Any, supported: Any = None):
        message = f"Unsupported proof type: {tag!r}"
        if supported:
            message += f" (supported: {', '.join(supported)})"
        super().__init__(message, offending=tag)
        self.tag = tag


class MissingParameterError(BridgeError):
    """A parameter required by the selected variant was not supplied."""
    kind = ErrorKind.MISSING_PARAMETER
    error_class = ErrorClass.CALLER_INPUT

    def __init__(self, parameter: str, context: str = ""):
        message = f"Missing required parameter: {parameter}"
        if context:
            message += f" ({context})"
        super().__init__(message, offending=parameter)
        self.parameter = parameter


# =============================================================================
# BACKEND
# =============================================================================

class SRSSetupFailure(BridgeError):
    """SRS could not be loaded, or is missing / too small for a call."""
    kind = ErrorKind.SRS_SETUP
    error_class = ErrorClass.BACKEND


class CircuitExecutionFailure(BridgeError):
    """Backend rejected the circuit or witness during execution."""
    kind = ErrorKind.CIRCUIT_EXECUTION
    error_class = ErrorClass.BACKEND


class ProvingFailure(BridgeError):
    """Backend failed to produce a proof or verification key."""
    kind = ErrorKind.PROVING
    error_class = ErrorClass.BACKEND


class VerificationFailure(BridgeError):
    """
    Verification could not be carried out (malformed proof or key).

    Distinct from a proof that is well formed but invalid, which yields False.
    """
    kind = ErrorKind.VERIFICATION
    error_class = ErrorClass.BACKEND


# =============================================================================
# DEFECTS
# =============================================================================

class NoWitnessProducedError(BridgeError):
    """Execution reported success but produced an empty witness stack."""
    kind = ErrorKind.NO_WITNESS_PRODUCED
    error_class = ErrorClass.DEFECT


class EncodingFailure(BridgeError):
    """A produced artifact failed its own hex round-trip."""
    kind = ErrorKind.ENCODING
    error_class = ErrorClass.DEFECT


# =============================================================================
# CONFIGURATION
# =============================================================================

class ConfigError(BridgeError):
    """Configuration error."""
    kind = ErrorKind.CONFIG
    error_class = ErrorClass.CONFIG


class ConfigValidationError(ConfigError):
    """Configuration validation error."""
    pass
