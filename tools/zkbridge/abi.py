"""
ZKBRIDGE Circuit ABI

Compiled-circuit manifests and ABI-driven witness generation.

A manifest is the JSON artifact emitted by the circuit compiler. Its ABI
lists the circuit's named parameters and their types; generate_witness_map
lays a dict of named inputs out over consecutive witness indices in
parameter order, producing the string-keyed assignment that the witness
marshaler accepts.

    Type kind   Accepted input               Witnesses
    ---------   --------------------------   -------------------------------
    field       int >= 0, or "0x..." string  1
    integer     int (signed: two's compl.)   1
    boolean     bool                         1
    string      str, exactly length bytes    length (one per UTF-8 byte)
    array       (nested) list                length * witnesses(element)
    struct      dict keyed by field name     sum over fields
    tuple       list, one item per field     sum over fields

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from tools.zkbridge.errors import InputDecodingError
from tools.zkbridge.field import FIELD_MODULUS

SCALAR_KINDS = ("field", "integer", "boolean")


@dataclass
class AbiType:
    """An ABI type descriptor."""
    kind: str
    length: Optional[int] = None
    sign: Optional[str] = None
    width: Optional[int] = None
    element: Optional["AbiType"] = None
    fields: List["AbiParameter"] = field(default_factory=list)
    path: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AbiType:
        if not isinstance(data, Mapping) or not isinstance(data.get("kind"), str):
            raise InputDecodingError("ABI type must be an object with a 'kind'", offending=data)
        kind = data["kind"]
        fields_raw = data.get("fields") or []
        if kind == "tuple":
            # tuple fields are bare types
            fields = [
                AbiParameter(name=str(i), type=cls.from_dict(t))
                for i, t in enumerate(fields_raw)
            ]
        else:
            fields = [AbiParameter.from_dict(f) for f in fields_raw]
        return cls(
            kind=kind,
            length=_opt_int(data.get("length")),
            sign=data.get("sign"),
            width=_opt_int(data.get("width")),
            element=cls.from_dict(data["type"]) if data.get("type") else None,
            fields=fields,
            path=data.get("path"),
        )

    def witness_count(self) -> int:
        """Number of witnesses a value of this type occupies."""
        if self.kind in SCALAR_KINDS:
            return 1
        if self.kind == "string":
            return self._require_length()
        if self.kind == "array":
            return self._require_length() * self._require_element().witness_count()
        if self.kind in ("struct", "tuple"):
            return sum(f.type.witness_count() for f in self.fields)
        raise InputDecodingError(f"Unsupported ABI type kind: {self.kind!r}", offending=self.kind)

    def _require_length(self) -> int:
        if self.length is None:
            raise InputDecodingError(f"ABI {self.kind} type has no length", offending=self.kind)
        return self.length

    def _require_element(self) -> AbiType:
        if self.element is None:
            raise InputDecodingError("ABI array type has no element type", offending=self.kind)
        return self.element


@dataclass
class AbiParameter:
    """A named circuit parameter."""
    name: str
    type: AbiType
    visibility: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AbiParameter:
        if not isinstance(data, Mapping) or "name" not in data or "type" not in data:
            raise InputDecodingError("ABI parameter needs 'name' and 'type'", offending=data)
        return cls(
            name=str(data["name"]),
            type=AbiType.from_dict(data["type"]),
            visibility=data.get("visibility"),
        )


@dataclass
class Abi:
    parameters: List[AbiParameter] = field(default_factory=list)
    return_type: Any = None
    param_witnesses: Dict[str, Any] = field(default_factory=dict)
    return_witnesses: List[Any] = field(default_factory=list)
    error_types: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Abi:
        if not isinstance(data, Mapping):
            raise InputDecodingError("ABI must be an object", offending=data)
        return cls(
            parameters=[AbiParameter.from_dict(p) for p in data.get("parameters") or []],
            return_type=data.get("return_type"),
            param_witnesses=dict(data.get("param_witnesses") or {}),
            return_witnesses=list(data.get("return_witnesses") or []),
            error_types=dict(data.get("error_types") or {}),
        )


@dataclass
class CircuitManifest:
    """Compiled circuit artifact."""
    bytecode: str
    abi: Abi
    noir_version: str = ""
    hash: Optional[int] = None
    debug_symbols: str = ""
    file_map: Dict[str, Any] = field(default_factory=dict)
    names: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> CircuitManifest:
        if not isinstance(data, Mapping):
            raise InputDecodingError("Circuit manifest must be a JSON object", offending=data)
        bytecode = data.get("bytecode")
        if not isinstance(bytecode, str) or not bytecode:
            raise InputDecodingError("Circuit manifest has no bytecode", offending=bytecode)
        return cls(
            bytecode=bytecode,
            abi=Abi.from_dict(data.get("abi") or {}),
            noir_version=str(data.get("noir_version", "")),
            hash=_opt_int(data.get("hash")),
            debug_symbols=data.get("debug_symbols") or "",
            file_map=dict(data.get("file_map") or {}),
            names=list(data.get("names") or []),
        )

    @classmethod
    def from_json(cls, text: str) -> CircuitManifest:
        try:
            data = json.loads(text)
        except ValueError as e:
            raise InputDecodingError("Circuit manifest is not valid JSON", cause=e) from e
        return cls.from_dict(data)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> CircuitManifest:
        return cls.from_json(Path(path).read_text(encoding="utf-8"))

    def witness_map(self, inputs: Mapping[str, Any], start_index: int = 0) -> Dict[str, str]:
        return generate_witness_map(inputs, self.abi.parameters, start_index)


def _opt_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise InputDecodingError(f"Expected a number, got {value!r}", offending=value)
    if isinstance(value, float):
        if not value.is_integer():
            raise InputDecodingError(f"Expected an integer, got {value!r}", offending=value)
        return int(value)
    if isinstance(value, int):
        return value
    raise InputDecodingError(f"Expected a number, got {value!r}", offending=value)


# =============================================================================
# WITNESS GENERATION
# =============================================================================

def _scalar(value: Any, typ: AbiType, name: str) -> str:
    if isinstance(value, str):
        if not value.startswith("0x"):
            raise InputDecodingError(
                f"Expected hexadecimal number for parameter: {name}", offending=value
            )
        return value

    if isinstance(value, bool) or not isinstance(value, int):
        raise InputDecodingError(
            f"Expected integer for parameter: {name}. Got {type(value).__name__}", offending=value
        )

    if typ.kind == "integer" and typ.width:
        if typ.sign == "signed":
            low, high = -(1 << (typ.width - 1)), 1 << (typ.width - 1)
        else:
            low, high = 0, 1 << typ.width
        if not low <= value < high:
            raise InputDecodingError(
                f"Value for parameter {name} does not fit in {typ.sign or 'unsigned'} "
                f"{typ.width}-bit integer",
                offending=value,
            )
        if value < 0:
            value += 1 << typ.width
    elif value < 0:
        raise InputDecodingError(
            f"Negative value for field parameter: {name}", offending=value
        )
    elif value >= FIELD_MODULUS:
        raise InputDecodingError(
            f"Value for parameter {name} is not below the field modulus", offending=value
        )
    return f"0x{value:x}"


def _string(value: Any, typ: AbiType, name: str, pad: bool) -> List[str]:
    if not isinstance(value, str):
        raise InputDecodingError(
            f"Expected string for parameter: {name}. Got {type(value).__name__}", offending=value
        )
    data = value.encode("utf-8")
    length = typ._require_length()
    if len(data) > length or (len(data) < length and not pad):
        raise InputDecodingError(
            f"Expected string of length {length} for parameter: {name}. "
            f"Instead got {len(data)}",
            offending=value,
        )
    data = data + b"\x00" * (length - len(data))
    return [f"0x{b:x}" for b in data]


def _flatten_array(values: List[Any], element: AbiType, name: str) -> List[str]:
    out: List[str] = []
    for item in values:
        if element.kind != "array":
            out.extend(_flatten(item, element, name, pad=True))
        elif isinstance(item, (list, tuple)):
            out.extend(_flatten_array(list(item), element._require_element(), name))
        else:
            # already flattened input for a multi-dimensional array
            out.extend(_flatten(item, _leaf(element), name, pad=True))
    return out


def _leaf(typ: AbiType) -> AbiType:
    while typ.kind == "array":
        typ = typ._require_element()
    return typ


def _flatten(value: Any, typ: AbiType, name: str, pad: bool = False) -> List[str]:
    """Lay one value out as a list of hex witness values."""
    kind = typ.kind

    if kind in ("field", "integer"):
        return [_scalar(value, typ, name)]

    if kind == "boolean":
        if not isinstance(value, bool):
            raise InputDecodingError(
                f"Expected boolean for parameter: {name}. Got {type(value).__name__}",
                offending=value,
            )
        return ["0x1" if value else "0x0"]

    if kind == "string":
        return _string(value, typ, name, pad)

    if kind == "array":
        if not isinstance(value, (list, tuple)):
            raise InputDecodingError(
                f"Expected array for parameter: {name}. Got {type(value).__name__}",
                offending=value,
            )
        flat = _flatten_array(list(value), typ._require_element(), name)
        expected = typ.witness_count()
        if len(flat) != expected:
            raise InputDecodingError(
                f"Expected array of length {typ.length} for parameter: {name}. "
                f"Instead got {len(flat)} elements",
                offending=name,
            )
        return flat

    if kind == "struct":
        if not isinstance(value, Mapping):
            raise InputDecodingError(
                f"Expected struct for parameter: {name}. Got {type(value).__name__}",
                offending=value,
            )
        out: List[str] = []
        for member in typ.fields:
            if member.name not in value:
                raise InputDecodingError(
                    f"Missing parameter: {name}.{member.name}", offending=f"{name}.{member.name}"
                )
            out.extend(_flatten(value[member.name], member.type, f"{name}.{member.name}"))
        return out

    if kind == "tuple":
        if not isinstance(value, (list, tuple)) or len(value) != len(typ.fields):
            raise InputDecodingError(
                f"Expected tuple of {len(typ.fields)} items for parameter: {name}",
                offending=value,
            )
        out = []
        for i, (member, item) in enumerate(zip(typ.fields, value)):
            out.extend(_flatten(item, member.type, f"{name}.{i}"))
        return out

    raise InputDecodingError(
        f"Unsupported parameter type for {name}. Kind: {kind}", offending=kind
    )


def generate_witness_map(
    inputs: Mapping[str, Any],
    parameters: List[AbiParameter],
    start_index: int = 0,
) -> Dict[str, str]:
    """
    Lay named inputs out over consecutive witness indices.

    Raises:
        InputDecodingError: missing parameter, wrong shape or unsupported type
    """
    witness: Dict[str, str] = {}
    index = start_index
    for parameter in parameters:
        if parameter.name not in inputs or inputs[parameter.name] is None:
            raise InputDecodingError(
                f"Missing parameter: {parameter.name}", offending=parameter.name
            )
        for hex_value in _flatten(inputs[parameter.name], parameter.type, parameter.name):
            witness[str(index)] = hex_value
            index += 1
    return witness
