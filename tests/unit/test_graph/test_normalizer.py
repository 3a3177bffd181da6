"""
Unit tests for graph value normalization.

Neo4j graph entities are MagicMock(spec=...) objects so isinstance checks
pass; gremlinpython structure classes are constructed directly.
"""

from __future__ import annotations

import datetime as dt
import json
from decimal import Decimal
from enum import Enum
from types import SimpleNamespace
from unittest.mock import MagicMock
from uuid import UUID

import pytest
from gremlin_python.statics import long as GremlinLong
from gremlin_python.structure.graph import Edge, Path, Property, Vertex, VertexProperty
from neo4j.graph import Node, Relationship
from neo4j.graph import Path as Neo4jPath
from neo4j.spatial import CartesianPoint
from neo4j.time import Date, DateTime, Duration

from puppygraph_bridge.graph.normalizer import normalize


# =============================================================================
# Test Fixtures
# =============================================================================


def make_node(node_id: int, labels: set[str], properties: dict) -> MagicMock:
    node = MagicMock(spec=Node)
    node.id = node_id
    node.element_id = f"4:abc:{node_id}"
    node.labels = frozenset(labels)
    node.items.return_value = list(properties.items())
    return node


def make_relationship(
    rel_id: int,
    rel_type: str,
    start: MagicMock,
    end: MagicMock,
    properties: dict,
) -> MagicMock:
    rel = MagicMock(spec=Relationship)
    rel.id = rel_id
    rel.element_id = f"5:abc:{rel_id}"
    rel.type = rel_type
    rel.start_node = start
    rel.end_node = end
    rel.items.return_value = list(properties.items())
    return rel


@pytest.fixture
def marko() -> MagicMock:
    return make_node(1, {"Person"}, {"name": "marko", "age": 29})


@pytest.fixture
def lop() -> MagicMock:
    return make_node(3, {"Software"}, {"name": "lop"})


# =============================================================================
# Test: Scalars and Containers
# =============================================================================


class TestPlainValues:
    """Plain values come back unchanged."""

    @pytest.mark.parametrize("value", [None, True, False, 0, -7, 3.5, "text", ""])
    def test_scalars_unchanged(self, value: object) -> None:
        assert normalize(value) == value

    def test_nested_containers_unchanged(self) -> None:
        value = {"a": [1, {"b": [None, "x"]}], "c": {"d": 2.0}}

        assert normalize(value) == value

    def test_tuples_become_lists(self) -> None:
        assert normalize((1, 2, (3,))) == [1, 2, [3]]

    def test_sets_become_sorted_lists(self) -> None:
        assert normalize({3, 1, 2}) == [1, 2, 3]

    def test_unsortable_sets_still_become_lists(self) -> None:
        result = normalize({1, "a"})

        assert sorted(result, key=str) == [1, "a"]

    def test_gremlin_long_becomes_int(self) -> None:
        result = normalize(GremlinLong(42))

        assert result == 42
        assert type(result) is int

    def test_enum_becomes_name(self) -> None:
        class Color(Enum):
            RED = 1

        assert normalize(Color.RED) == "RED"
        assert normalize({Color.RED: 1}) == {"RED": 1}

    def test_unknown_objects_become_attribute_dicts(self) -> None:
        value = SimpleNamespace(name="marko", age=GremlinLong(29), _cache={"x": 1})

        assert normalize(value) == {"name": "marko", "age": 29}

    def test_objects_without_attributes_become_strings(self) -> None:
        assert normalize(object()).startswith("<object object")

    def test_driver_scalars_are_json_safe(self) -> None:
        identifier = UUID("12345678-1234-5678-1234-567812345678")
        value = {
            "id": identifier,
            "weight": Decimal("0.5"),
            "rank": Decimal("3"),
            "blob": b"\x00\x01",
            "ids": {identifier: [Decimal("2.25")]},
        }

        result = normalize(value)

        assert result == {
            "id": "12345678-1234-5678-1234-567812345678",
            "weight": 0.5,
            "rank": 3,
            "blob": "AAE=",
            "ids": {"12345678-1234-5678-1234-567812345678": [2.25]},
        }
        assert json.loads(json.dumps(result)) == result

    def test_non_finite_decimal_becomes_string(self) -> None:
        assert normalize(Decimal("Infinity")) == "Infinity"


# =============================================================================
# Test: Temporal and Spatial Values
# =============================================================================


class TestTemporalAndSpatial:
    """Driver temporal and spatial types become JSON-safe values."""

    def test_neo4j_date(self) -> None:
        assert normalize(Date(2024, 1, 15)) == "2024-01-15"

    def test_neo4j_datetime(self) -> None:
        assert normalize(DateTime(2024, 1, 15, 10, 30, 0)).startswith("2024-01-15T10:30:00")

    def test_neo4j_duration(self) -> None:
        result = normalize(Duration(days=1))

        assert result.startswith("P")
        assert "1D" in result

    def test_python_datetime(self) -> None:
        value = dt.datetime(2024, 1, 15, 10, 30, tzinfo=dt.timezone.utc)

        assert normalize(value) == "2024-01-15T10:30:00+00:00"

    def test_python_timedelta(self) -> None:
        assert normalize(dt.timedelta(minutes=2)) == 120.0

    def test_point(self) -> None:
        assert normalize(CartesianPoint((1, 2))) == {"srid": 7203, "coordinates": [1.0, 2.0]}


# =============================================================================
# Test: Neo4j Graph Entities
# =============================================================================


class TestNeo4jEntities:
    """Node, Relationship and Path become plain dicts."""

    def test_node(self, marko: MagicMock) -> None:
        assert normalize(marko) == {
            "id": 1,
            "elementId": "4:abc:1",
            "labels": ["Person"],
            "properties": {"name": "marko", "age": 29},
        }

    def test_relationship(self, marko: MagicMock, lop: MagicMock) -> None:
        rel = make_relationship(9, "CREATED", marko, lop, {"weight": 0.4})

        assert normalize(rel) == {
            "id": 9,
            "elementId": "5:abc:9",
            "type": "CREATED",
            "startNodeId": 1,
            "endNodeId": 3,
            "properties": {"weight": 0.4},
        }

    def test_path(self, marko: MagicMock, lop: MagicMock) -> None:
        rel = make_relationship(9, "CREATED", marko, lop, {})
        path = MagicMock(spec=Neo4jPath)
        path.nodes = (marko, lop)
        path.relationships = (rel,)

        result = normalize(path)

        assert len(result["segments"]) == 1
        segment = result["segments"][0]
        assert segment["start"]["properties"]["name"] == "marko"
        assert segment["relationship"]["type"] == "CREATED"
        assert segment["end"]["properties"]["name"] == "lop"

    def test_node_inside_record_values(self, marko: MagicMock) -> None:
        result = normalize({"n": marko, "friends": [marko]})

        assert result["n"]["labels"] == ["Person"]
        assert result["friends"][0]["id"] == 1

    def test_node_result_is_json_serializable(self, marko: MagicMock) -> None:
        json.dumps(normalize({"n": marko}))


# =============================================================================
# Test: Gremlin Structure Values
# =============================================================================


class TestGremlinStructures:
    """gremlinpython elements become plain dicts."""

    def test_vertex_with_properties(self) -> None:
        vertex = Vertex(1, "person")
        vertex.properties = [
            VertexProperty(10, "name", "marko", vertex),
            VertexProperty(11, "age", 29, vertex),
        ]

        assert normalize(vertex) == {
            "id": 1,
            "label": "person",
            "properties": {"name": "marko", "age": 29},
        }

    def test_multi_valued_vertex_property(self) -> None:
        vertex = Vertex(1, "person")
        vertex.properties = [
            VertexProperty(10, "alias", "m", vertex),
            VertexProperty(11, "alias", "mk", vertex),
        ]

        assert normalize(vertex)["properties"] == {"alias": ["m", "mk"]}

    def test_vertex_without_properties(self) -> None:
        assert normalize(Vertex(GremlinLong(7), "software")) == {
            "id": 7,
            "label": "software",
            "properties": {},
        }

    def test_edge(self) -> None:
        out_v, in_v = Vertex(1, "person"), Vertex(3, "software")
        edge = Edge(9, out_v, "created", in_v)
        edge.properties = [Property("weight", 0.4, edge)]

        result = normalize(edge)

        assert result["id"] == 9
        assert result["label"] == "created"
        assert result["outV"]["id"] == 1
        assert result["inV"]["id"] == 3
        assert result["properties"] == {"weight": 0.4}

    def test_vertex_property(self) -> None:
        assert normalize(VertexProperty(10, "name", "marko", None)) == {
            "id": 10,
            "key": "name",
            "value": "marko",
        }

    def test_property(self) -> None:
        assert normalize(Property("weight", 0.4, None)) == {"key": "weight", "value": 0.4}

    def test_path(self) -> None:
        path = Path([{"a"}, set()], [Vertex(1, "person"), "marko"])

        assert normalize(path) == {
            "labels": [["a"], []],
            "objects": [{"id": 1, "label": "person", "properties": {}}, "marko"],
        }

    def test_value_map_result(self) -> None:
        """valueMap() results are plain dicts of lists."""
        value = {"name": ["marko"], "age": [GremlinLong(29)]}

        assert normalize(value) == {"name": ["marko"], "age": [29]}
