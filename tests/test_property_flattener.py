"""
Tests for property_flattener module.
"""

from collections import namedtuple
from dataclasses import dataclass

from property_flattener import field_names, flatten, resolve_field


@dataclass
class Pool:
    name: str
    members: int
    monitor: str = None


Member = namedtuple("Member", ["address", "port", "state"])


class Node:
    def __init__(self):
        self.name = "node_a"
        self.address = "10.1.1.5"
        self._cache = {}

    @property
    def broken(self):
        raise RuntimeError("not collected")


class TestResolveField:
    """Tests for record field lookup."""

    def test_mapping(self):
        assert resolve_field({"name": "vs1"}, "name") == "vs1"

    def test_attribute(self):
        assert resolve_field(Pool("web", 2), "members") == 2

    def test_missing_returns_default(self):
        assert resolve_field({"name": "vs1"}, "port") == ""
        assert resolve_field({"name": "vs1"}, "port", None) is None
        assert resolve_field(None, "port") == ""

    def test_raising_attribute_returns_default(self):
        assert resolve_field(Node(), "broken") == ""


class TestFieldNames:
    """Tests for declared field order."""

    def test_dataclass_order(self):
        assert field_names(Pool("web", 2)) == ["name", "members", "monitor"]

    def test_namedtuple_order(self):
        assert field_names(Member("10.0.0.1", 80, "up")) == ["address", "port", "state"]

    def test_plain_object_skips_private(self):
        assert field_names(Node()) == ["name", "address"]


class TestFlatten:
    """Tests for flattening one record into label/value rows."""

    def test_preserves_declaration_order(self):
        """Field order is kept, not sorted."""
        record = {"zeta": 1, "alpha": 2, "mid": 3}
        assert [label for label, _ in flatten(record)] == ["zeta", "alpha", "mid"]

    def test_one_row_per_field_regardless_of_type(self):
        record = {"count": 3, "ratio": 0.5, "tags": ["a", "b"], "empty": None, "flag": False}
        rows = flatten(record)

        assert len(rows) == 5
        assert rows == [
            ("count", "3"),
            ("ratio", "0.5"),
            ("tags", "['a', 'b']"),
            ("empty", ""),
            ("flag", "False"),
        ]

    def test_explicit_fields_with_missing_value(self):
        """Unresolvable fields map to an empty value."""
        rows = flatten(Pool("web", 4), fields=["name", "partition", "members"])
        assert rows == [("name", "web"), ("partition", ""), ("members", "4")]

    def test_first_record_of_collection_only(self):
        """A collection flattens its first record and ignores the rest."""
        records = [{"name": "first"}, {"name": "second"}]
        assert flatten(records) == [("name", "first")]

    def test_generator_input(self):
        records = ({"name": n} for n in ("gen_first", "gen_second"))
        assert flatten(records) == [("name", "gen_first")]

    def test_empty_collection(self):
        assert flatten([]) == []
        assert flatten([], fields=["name"]) == [("name", "")]

    def test_namedtuple_is_one_record(self):
        """A namedtuple is a record, not a collection of values."""
        rows = flatten(Member("10.0.0.1", 80, "up"))

        assert len(rows) == 3
        assert rows == [("address", "10.0.0.1"), ("port", "80"), ("state", "up")]

    def test_collection_of_namedtuples(self):
        members = [Member("10.0.0.1", 80, "up"), Member("10.0.0.2", 80, "down")]
        assert flatten(members)[0] == ("address", "10.0.0.1")
