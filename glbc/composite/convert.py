"""Wire <-> composite conversion driven by the schema tables.

``to_canonical`` maps a GA, beta or alpha wire object onto its composite
type; ``to_version`` emits the wire object for one API version, dropping
fields that version does not carry and eliding zero values except where
the force-send policy says otherwise.
"""

from __future__ import annotations

from typing import Any

import structlog

from glbc.cloud.meta import KeyType, Version, version_rank
from glbc.composite.schema import CompositeRegistry, FieldSpec, FieldType
from glbc.errors import ConversionError

_log = structlog.get_logger(component="composite.convert")


def available_at(spec: FieldSpec, version: Version) -> bool:
    """True if the field exists in the wire schema of *version*."""
    return version_rank(spec.since) <= version_rank(version)


def to_canonical(
    registry: CompositeRegistry,
    kind: str,
    wire: Any,
    version: Version = Version.GA,
) -> Any:
    """Convert a wire object of *kind* into its composite type.

    *version* is recorded on the result as the track it was read through.

    Raises:
        ConversionError: if *wire* is not an object or a field has the wrong
            JSON type.
    """
    cls = registry.type_for_kind(kind)
    obj = _decode(registry, cls, wire, path=kind)
    obj.version = version
    obj.scope = _scope_of(obj)
    return obj


def from_wire(registry: CompositeRegistry, cls: type, wire: Any) -> Any:
    """Decode *wire* into *cls*, a registered type that is not a resource
    kind (a response item such as a network endpoint).

    Raises:
        ConversionError: as for :func:`to_canonical`.
    """
    return _decode(registry, cls, wire, path=cls.__name__)


def to_version(registry: CompositeRegistry, obj: Any, version: Version) -> dict[str, Any]:
    """Emit the wire object of *obj* for *version*."""
    kind = registry.kind_for(obj)
    return _encode(registry, obj, version, (kind,))


def _scope_of(obj: Any) -> KeyType:
    if getattr(obj, "zone", ""):
        return KeyType.ZONAL
    if getattr(obj, "region", ""):
        return KeyType.REGIONAL
    return KeyType.GLOBAL


def _decode(registry: CompositeRegistry, cls: type, wire: Any, path: str) -> Any:
    if not isinstance(wire, dict):
        raise ConversionError(f"{path}: expected an object, got {type(wire).__name__}")
    schema = registry.schema(cls)
    values: dict[str, Any] = {}
    for key, raw in wire.items():
        spec = schema.field(key)
        if spec is None:
            _log.debug("unknown_wire_field", path=path, field=key)
            continue
        if raw is None:
            continue
        values[spec.attr] = _decode_value(registry, spec, raw, f"{path}.{key}")
    return cls(**values)


def _decode_value(registry: CompositeRegistry, spec: FieldSpec, raw: Any, path: str) -> Any:
    ftype = spec.ftype
    if ftype == FieldType.STRING:
        if not isinstance(raw, str):
            raise ConversionError(f"{path}: expected string, got {type(raw).__name__}")
        return raw
    if ftype == FieldType.INT:
        # int64 values may arrive as JSON strings
        if isinstance(raw, str) and raw.lstrip("-").isdigit():
            return int(raw)
        if isinstance(raw, bool) or not isinstance(raw, int):
            raise ConversionError(f"{path}: expected integer, got {type(raw).__name__}")
        return raw
    if ftype == FieldType.FLOAT:
        if isinstance(raw, bool) or not isinstance(raw, int | float):
            raise ConversionError(f"{path}: expected number, got {type(raw).__name__}")
        return float(raw)
    if ftype == FieldType.BOOL:
        if not isinstance(raw, bool):
            raise ConversionError(f"{path}: expected boolean, got {type(raw).__name__}")
        return raw
    if ftype == FieldType.STRING_LIST:
        if not isinstance(raw, list) or not all(isinstance(v, str) for v in raw):
            raise ConversionError(f"{path}: expected list of strings")
        return list(raw)
    if ftype == FieldType.STRING_MAP:
        if not isinstance(raw, dict) or not all(isinstance(v, str) for v in raw.values()):
            raise ConversionError(f"{path}: expected map of strings")
        return dict(raw)
    if ftype == FieldType.NESTED:
        assert spec.nested is not None
        return _decode(registry, spec.nested, raw, path)
    if ftype == FieldType.NESTED_LIST:
        assert spec.nested is not None
        if not isinstance(raw, list):
            raise ConversionError(f"{path}: expected list, got {type(raw).__name__}")
        return [_decode(registry, spec.nested, item, f"{path}[{i}]") for i, item in enumerate(raw)]
    raise ConversionError(f"{path}: unsupported field type {ftype}")


def _is_zero(value: Any) -> bool:
    return value is None or value in ("", 0, False) or value == [] or value == {}


def _encode(
    registry: CompositeRegistry,
    obj: Any,
    version: Version,
    path: tuple[str, ...],
) -> dict[str, Any]:
    schema = registry.schema(type(obj))
    forced = registry.force_send(path)
    out: dict[str, Any] = {}
    for spec in schema.fields:
        if not available_at(spec, version):
            continue
        value = getattr(obj, spec.attr)
        if _is_zero(value) and spec.wire not in forced:
            continue
        if spec.ftype == FieldType.NESTED:
            if value is None:
                continue
            out[spec.wire] = _encode(registry, value, version, (*path, spec.wire))
        elif spec.ftype == FieldType.NESTED_LIST:
            out[spec.wire] = [_encode(registry, item, version, (*path, spec.wire)) for item in value]
        elif spec.ftype in (FieldType.STRING_LIST, FieldType.STRING_MAP):
            out[spec.wire] = type(value)(value)
        else:
            out[spec.wire] = value
    return out
