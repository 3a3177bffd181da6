"""
Value normalization for graph query results.

Converts the value types returned by the Neo4j Python driver and by
gremlinpython into plain, JSON-safe Python data:

- Neo4j Node / Relationship / Path -> dicts with ids, labels and properties
- gremlinpython Vertex / Edge / VertexProperty / Property / Path -> dicts
- gremlinpython ``long`` wrapper -> int
- temporal values -> ISO-8601 strings, spatial points -> srid + coordinates
- UUIDs -> strings, decimals -> int or float, bytes -> base64 strings
- mappings and sequences -> recursively normalized dicts and lists

normalize() is total and its output is JSON-serializable: other objects
become a dict of their public attributes, or their str() when they have
none. Already-plain values come back equal to the input.
"""

from __future__ import annotations

import base64
import dataclasses
import datetime as dt
import warnings
from collections.abc import Mapping
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from gremlin_python.statics import long as GremlinLong
from gremlin_python.structure.graph import Edge as GremlinEdge
from gremlin_python.structure.graph import Path as GremlinPath
from gremlin_python.structure.graph import Property as GremlinProperty
from gremlin_python.structure.graph import Vertex as GremlinVertex
from gremlin_python.structure.graph import VertexProperty as GremlinVertexProperty
from neo4j.graph import Node, Path, Relationship
from neo4j.spatial import Point
from neo4j.time import Date, DateTime, Duration, Time

_JSON_KEY_TYPES = (str, int, float, bool)


def normalize(value: Any) -> Any:
    """Recursively convert a backend value into plain data.

    Args:
        value: Any value found in a Neo4j record or a Gremlin result

    Returns:
        None, a scalar, a list or a dict (graph entities become dicts)
    """
    if value is None or isinstance(value, (bool, str, float)):
        return value

    # gremlinpython wraps 64-bit integers in an int subclass
    if isinstance(value, GremlinLong):
        return int(value)
    if isinstance(value, int):
        return value

    if isinstance(value, Node):
        return _normalize_node(value)
    if isinstance(value, Relationship):
        return _normalize_relationship(value)
    if isinstance(value, Path):
        return _normalize_path(value)

    if isinstance(value, GremlinVertexProperty):
        return {
            "id": normalize(value.id),
            "key": value.label,
            "value": normalize(value.value),
        }
    if isinstance(value, GremlinVertex):
        return {
            "id": normalize(value.id),
            "label": value.label,
            "properties": _normalize_element_properties(getattr(value, "properties", None)),
        }
    if isinstance(value, GremlinEdge):
        return {
            "id": normalize(value.id),
            "label": value.label,
            "outV": normalize(value.outV),
            "inV": normalize(value.inV),
            "properties": _normalize_element_properties(getattr(value, "properties", None)),
        }
    if isinstance(value, GremlinProperty):
        return {"key": value.key, "value": normalize(value.value)}
    if isinstance(value, GremlinPath):
        return {
            "labels": [sorted(step_labels) for step_labels in value.labels],
            "objects": [normalize(item) for item in value.objects],
        }

    # Duration and Point subclass tuple, so they must precede the sequence branch
    if isinstance(value, (Date, DateTime, Time, Duration)):
        return value.iso_format()
    if isinstance(value, Point):
        return {"srid": value.srid, "coordinates": [float(c) for c in value]}
    if isinstance(value, (dt.datetime, dt.date, dt.time)):
        return value.isoformat()
    if isinstance(value, dt.timedelta):
        return value.total_seconds()

    if isinstance(value, Enum):
        return value.name

    if isinstance(value, Mapping):
        return {_normalize_key(k): normalize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [normalize(item) for item in value]
    if isinstance(value, (set, frozenset)):
        return [normalize(item) for item in _ordered(value)]

    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {
            field.name: normalize(getattr(value, field.name))
            for field in dataclasses.fields(value)
        }

    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Decimal):
        if not value.is_finite():
            return str(value)
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(value).decode("ascii")

    # Unrecognized objects degrade to their public attributes
    attributes = getattr(value, "__dict__", None)
    if isinstance(attributes, Mapping) and not isinstance(value, type):
        return {
            key: normalize(item)
            for key, item in attributes.items()
            if not key.startswith("_")
        }
    return str(value)


def _normalize_node(node: Node) -> dict[str, Any]:
    return {
        "id": _legacy_id(node),
        "elementId": node.element_id,
        "labels": sorted(node.labels),
        "properties": _normalize_properties(node),
    }


def _normalize_relationship(rel: Relationship) -> dict[str, Any]:
    start, end = rel.start_node, rel.end_node
    return {
        "id": _legacy_id(rel),
        "elementId": rel.element_id,
        "type": rel.type,
        "startNodeId": _legacy_id(start) if start is not None else None,
        "endNodeId": _legacy_id(end) if end is not None else None,
        "properties": _normalize_properties(rel),
    }


def _normalize_path(path: Path) -> dict[str, Any]:
    nodes = path.nodes
    segments = [
        {
            "start": normalize(nodes[i]),
            "relationship": normalize(rel),
            "end": normalize(nodes[i + 1]),
        }
        for i, rel in enumerate(path.relationships)
    ]
    return {"segments": segments}


def _normalize_properties(entity: Node | Relationship) -> dict[str, Any]:
    return {key: normalize(value) for key, value in entity.items()}


def _normalize_element_properties(properties: Any) -> dict[str, Any]:
    """Flatten gremlinpython element properties into ``{key: value}``.

    Multi-valued vertex properties become lists of values.
    """
    if not properties:
        return {}
    if isinstance(properties, Mapping):
        return {_normalize_key(k): normalize(v) for k, v in properties.items()}

    flattened: dict[str, Any] = {}
    for prop in properties:
        if isinstance(prop, GremlinVertexProperty):
            key, value = prop.label, normalize(prop.value)
        elif isinstance(prop, GremlinProperty):
            key, value = prop.key, normalize(prop.value)
        else:
            continue
        if key in flattened:
            existing = flattened[key]
            flattened[key] = [*existing, value] if isinstance(existing, list) else [existing, value]
        else:
            flattened[key] = value
    return flattened


def _legacy_id(entity: Node | Relationship) -> Any:
    # Integer ids are deprecated in favour of element_id but still served
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        return getattr(entity, "id", None)


def _normalize_key(key: Any) -> Any:
    if isinstance(key, _JSON_KEY_TYPES) or key is None:
        return key
    if isinstance(key, Enum):
        return key.name
    return str(key)


def _ordered(items: set[Any] | frozenset[Any]) -> list[Any]:
    try:
        return sorted(items)
    except TypeError:
        return list(items)
