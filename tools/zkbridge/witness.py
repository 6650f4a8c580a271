"""
ZKBRIDGE Witness Marshaler

Converts the host's loosely-typed witness assignment (string keys, hex
string values) into a WitnessMap of WitnessIndex -> FieldElement.

Marshaling is all-or-nothing: the first bad key or value raises
InputDecodingError naming it, and no partially built map escapes. Two raw
keys that normalize to the same index ("1" and "01") are rejected instead
of one silently overwriting the other.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from tools.zkbridge.codec import external_to_field, field_to_external
from tools.zkbridge.errors import InputDecodingError
from tools.zkbridge.field import FieldElement

# Witness indices are 32-bit unsigned on the backend side
MAX_WITNESS_INDEX = (1 << 32) - 1
MAX_INDEX_DIGITS = len(str(MAX_WITNESS_INDEX))

INDEX_PATTERN = re.compile(r"[0-9]+")


class WitnessMap:
    """
    Mapping of witness index to field element.

    Keys are unique. Iteration is in ascending index order so that any
    output derived from a map is deterministic.
    """

    def __init__(self, entries: Optional[Mapping[int, FieldElement]] = None):
        self._entries: Dict[int, FieldElement] = {}
        if entries:
            for index, value in entries.items():
                self.insert(index, value)

    def insert(self, index: int, value: FieldElement) -> None:
        """Insert a new entry. Re-inserting an existing index is an error."""
        _check_index(index)
        if not isinstance(value, FieldElement):
            raise TypeError(f"Witness value must be FieldElement, got {type(value).__name__}")
        if index in self._entries:
            raise InputDecodingError(f"Duplicate witness index {index}", offending=index)
        self._entries[index] = value

    def __getitem__(self, index: int) -> FieldElement:
        return self._entries[index]

    def get(self, index: int, default: Optional[FieldElement] = None) -> Optional[FieldElement]:
        return self._entries.get(index, default)

    def __contains__(self, index: object) -> bool:
        return index in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[int]:
        return iter(sorted(self._entries))

    def items(self) -> List[Tuple[int, FieldElement]]:
        return [(i, self._entries[i]) for i in sorted(self._entries)]

    def values(self) -> List[FieldElement]:
        return [self._entries[i] for i in sorted(self._entries)]

    def copy(self) -> WitnessMap:
        clone = WitnessMap()
        clone._entries = dict(self._entries)
        return clone

    def to_external(self) -> Dict[str, str]:
        """Render back to the host representation."""
        return {str(i): field_to_external(v) for i, v in self.items()}

    def __eq__(self, other: object) -> bool:
        if isinstance(other, WitnessMap):
            return self._entries == other._entries
        return NotImplemented

    def __repr__(self) -> str:
        return f"WitnessMap({len(self._entries)} entries)"


def _check_index(index: Any) -> None:
    if isinstance(index, bool) or not isinstance(index, int):
        raise TypeError(f"Witness index must be int, got {type(index).__name__}")
    if not 0 <= index <= MAX_WITNESS_INDEX:
        raise InputDecodingError(f"Witness index {index} out of range", offending=index)


def _as_text(raw: Any, what: str) -> str:
    if isinstance(raw, bytes):
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise InputDecodingError(f"Witness {what} is not valid UTF-8", offending=raw, cause=e)
    if not isinstance(raw, str):
        raise InputDecodingError(
            f"Witness {what} must be a string, got {type(raw).__name__}", offending=raw
        )
    return raw


def parse_index(raw: Any) -> int:
    """Parse an external witness key into a WitnessIndex."""
    if isinstance(raw, int) and not isinstance(raw, bool):
        index = raw
    else:
        text = _as_text(raw, "key")
        if not INDEX_PATTERN.fullmatch(text):
            raise InputDecodingError(
                f"Failed to parse witness key {text!r}: not a non-negative integer",
                offending=raw,
            )
        # leading zeros are allowed
        digits = text.lstrip("0") or "0"
        if len(digits) > MAX_INDEX_DIGITS:
            raise InputDecodingError(
                f"Witness key of {len(text)} digits out of range", offending=raw
            )
        index = int(digits)
    if not 0 <= index <= MAX_WITNESS_INDEX:
        raise InputDecodingError(f"Witness key {raw!r} out of range", offending=raw)
    return index


def parse_value(raw: Any, key: Any = None) -> FieldElement:
    """Parse an external witness value into a FieldElement."""
    text = _as_text(raw, "value")
    label = f"witness value for key {key!r}" if key is not None else "witness value"
    return external_to_field(text, field_name=label)


def marshal(raw: Mapping[Any, Any]) -> WitnessMap:
    """
    Convert an external assignment into a WitnessMap.

    Raises:
        InputDecodingError: naming the first offending key or value
    """
    if not isinstance(raw, Mapping):
        raise InputDecodingError(
            f"Witness must be a mapping, got {type(raw).__name__}", offending=raw
        )

    staged: Dict[int, FieldElement] = {}
    for key, value in raw.items():
        index = parse_index(key)
        if index in staged:
            raise InputDecodingError(
                f"Witness key {key!r} collides with an earlier key for index {index}",
                offending=key,
            )
        staged[index] = parse_value(value, key)

    result = WitnessMap()
    result._entries = staged
    return result
