"""
Proof Variants

Closed set of supported proof-system configurations. Tags arriving from the
host are parsed exactly once, here; everything downstream works with the
ProofVariant enum and ProofOptions.

    plonk               Legacy, count-parameterized; derives its own vk
    honk                Legacy; derives its own vk
    ultra_honk          Requires a caller-supplied vk
    ultra_honk_keccak   Requires a caller-supplied vk; keccak transcript

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from tools.zkbridge.errors import InputDecodingError, UnsupportedProofTypeError


class ProofVariant(Enum):
    """Supported proving systems."""
    PLONK = "plonk"
    HONK = "honk"
    ULTRA_HONK = "ultra_honk"
    ULTRA_HONK_KECCAK = "ultra_honk_keccak"

    @property
    def is_legacy(self) -> bool:
        return self in {ProofVariant.PLONK, ProofVariant.HONK}

    def requires_supplied_vk(self) -> bool:
        return self in {ProofVariant.ULTRA_HONK, ProofVariant.ULTRA_HONK_KECCAK}

    def requires_point_count(self) -> bool:
        return self == ProofVariant.PLONK

    @classmethod
    def tags(cls) -> tuple:
        return tuple(v.value for v in cls)


@dataclass(frozen=True)
class ProofOptions:
    """Variant modifiers."""
    recursive: bool = False
    low_memory: bool = False


def parse_variant(tag: Any) -> ProofVariant:
    """
    Parse a host tag into a ProofVariant.

    Matching is exact and case-sensitive. There is no fallback variant.
    """
    if isinstance(tag, ProofVariant):
        return tag
    if isinstance(tag, str):
        for variant in ProofVariant:
            if variant.value == tag:
                return variant
    raise UnsupportedProofTypeError(tag, supported=ProofVariant.tags())


_TRUE = {"true", "1"}
_FALSE = {"false", "0", ""}


def parse_flag(value: Any, name: str) -> bool:
    """
    Parse a boolean flag as sent by hosts.

    Accepts bool, None (False), and the strings "true"/"false"/"1"/"0".
    """
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
    raise InputDecodingError(f"Flag {name!r} must be a boolean, got {value!r}", offending=value)


def make_options(recursive: Any = False, low_memory: Any = False) -> ProofOptions:
    return ProofOptions(
        recursive=parse_flag(recursive, "recursive"),
        low_memory=parse_flag(low_memory, "low_memory"),
    )
