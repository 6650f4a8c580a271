"""
ZKBRIDGE Result Codec

Textual representations used at the host boundary:

    Proofs, verification keys   lowercase hex, no prefix
    Field elements              "0x" + 64 hex digits (32 bytes, zero padded)

Decoding failures are caller errors (InputDecodingError). A produced string
that fails its own round-trip is a defect (EncodingFailure).

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import re
from typing import Any, List

from tools.zkbridge.errors import EncodingFailure, InputDecodingError
from tools.zkbridge.field import FIELD_HEX_DIGITS, FIELD_MODULUS, FieldElement

# Patterns
HEX_PATTERN = re.compile(r"[0-9a-fA-F]*")
FIELD_PATTERN = re.compile(r"0x([0-9a-fA-F]+)")

FIELD_PREFIX = "0x"


def encode_hex(data: bytes) -> str:
    """Encode bytes as lowercase hex without prefix."""
    return bytes(data).hex()


def decode_hex(text: Any, field_name: str = "hex") -> bytes:
    """
    Decode a prefix-less hex string.

    Raises:
        InputDecodingError: on non-string input, odd length or non-hex characters
    """
    if not isinstance(text, str):
        raise InputDecodingError(
            f"{field_name}: expected hex string, got {type(text).__name__}", offending=text
        )
    if len(text) % 2 != 0:
        raise InputDecodingError(f"{field_name}: odd-length hex string", offending=text)
    if not HEX_PATTERN.fullmatch(text):
        raise InputDecodingError(f"{field_name}: contains non-hex characters", offending=text)
    return bytes.fromhex(text)


def encode_artifact(data: bytes, what: str = "artifact") -> str:
    """Encode a backend artifact and check the encoding round-trips."""
    text = encode_hex(data)
    if len(text) != 2 * len(data) or bytes.fromhex(text) != data:
        raise EncodingFailure(f"{what} hex encoding does not round-trip")
    return text


def field_to_external(element: FieldElement) -> str:
    """Canonical external form: "0x" followed by exactly 64 hex digits."""
    text = FIELD_PREFIX + element.to_hex()
    if len(text) != FIELD_HEX_DIGITS + len(FIELD_PREFIX):
        raise EncodingFailure(
            f"Field element rendered with {len(text) - 2} hex digits, expected {FIELD_HEX_DIGITS}"
        )
    return text


def external_to_field(text: Any, field_name: str = "value") -> FieldElement:
    """
    Parse a "0x"-prefixed hex field value.

    Shorter forms ("0x3") are accepted, up to 64 digits. The value must be
    below the modulus.
    """
    if not isinstance(text, str):
        raise InputDecodingError(
            f"{field_name}: expected hex string, got {type(text).__name__}", offending=text
        )
    match = FIELD_PATTERN.fullmatch(text)
    if not match:
        raise InputDecodingError(
            f"{field_name}: not a 0x-prefixed hexadecimal field value", offending=text
        )
    digits = match.group(1)
    if len(digits) > FIELD_HEX_DIGITS:
        raise InputDecodingError(
            f"{field_name}: more than {FIELD_HEX_DIGITS} hex digits", offending=text
        )
    value = int(digits, 16)
    if value >= FIELD_MODULUS:
        raise InputDecodingError(
            f"{field_name}: value is not below the field modulus", offending=text
        )
    return FieldElement(value)


def encode_field_values(values: List[FieldElement]) -> List[str]:
    return [field_to_external(v) for v in values]


def encode_witness_values(witness: Any) -> List[str]:
    """Render the values of a WitnessMap in ascending index order."""
    return encode_field_values(witness.values())
