"""
BN254 Scalar Field Elements

Witness values crossing the boundary are elements of the BN254 scalar field
(Fr). Values are always held in canonical form, 0 <= value < FIELD_MODULUS;
construction from an out-of-range integer is an error rather than a silent
reduction.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

from dataclasses import dataclass

# BN254 scalar field order (also known as Fr)
FIELD_MODULUS: int = 0x30644e72e131a029b85045b68181585d2833e84879b9709143e1f593f0000001

# Canonical external width
FIELD_BYTES = 32
FIELD_HEX_DIGITS = FIELD_BYTES * 2


@dataclass(frozen=True)
class FieldElement:
    """
    Element of the BN254 scalar field.

    Arithmetic is performed modulo FIELD_MODULUS so results remain canonical.
    """
    value: int

    def __post_init__(self):
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise TypeError(f"Field element value must be int, got {type(self.value).__name__}")
        if not 0 <= self.value < FIELD_MODULUS:
            raise ValueError("Field element out of range [0, modulus)")

    def to_bytes(self) -> bytes:
        """32-byte big-endian encoding."""
        return self.value.to_bytes(FIELD_BYTES, "big")

    def to_hex(self) -> str:
        """64 lowercase hex digits, no prefix."""
        return format(self.value, f"0{FIELD_HEX_DIGITS}x")

    def __add__(self, other: FieldElement) -> FieldElement:
        return FieldElement((self.value + other.value) % FIELD_MODULUS)

    def __sub__(self, other: FieldElement) -> FieldElement:
        return FieldElement((self.value - other.value) % FIELD_MODULUS)

    def __mul__(self, other: FieldElement) -> FieldElement:
        return FieldElement((self.value * other.value) % FIELD_MODULUS)

    def __repr__(self) -> str:
        return f"FieldElement(0x{self.to_hex()})"
