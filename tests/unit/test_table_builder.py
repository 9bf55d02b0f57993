"""Unit tests for the fluent table builder (chain steps only)."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from dbquery.common.exceptions import ValidationError
from dbquery.operations import DML


class TestDescriptorDefaults:
    """Test the descriptor a fresh table handle starts from."""

    def test_fresh_table_selects_everything(self, users):
        wire = users.to_wire()

        assert wire["type"] == "select"
        assert wire["database"] == "shop"
        assert wire["table"] == "users"
        assert wire["columns"] == ["*"]
        assert wire["where"] == []
        assert wire["orderBy"] == []
        assert wire["groupBy"] == []
        assert wire["limit"] is None
        assert wire["offset"] is None
        assert wire["data"] is None
        assert wire["aggregation"] is None

    def test_to_dict_uses_python_names(self, users):
        data = users.order_by("name").dml.to_dict()

        assert data["order_by"] == [{"column": "name", "direction": "ASC"}]
        assert "orderBy" not in data
        assert "limit" not in data

    def test_database_and_table_are_frozen(self, users):
        dml = users.dml

        with pytest.raises(PydanticValidationError):
            dml.table = "orders"


class TestChainSteps:
    """Test select, joins, ordering, grouping and pagination."""

    def test_select_accepts_varargs_and_list(self, users):
        assert users.select("id", "name").to_wire()["columns"] == ["id", "name"]
        assert users.select(["id", "name"]).to_wire()["columns"] == ["id", "name"]

    def test_select_without_columns_means_star(self, users):
        assert users.select("id").select().to_wire()["columns"] == ["*"]
        assert users.select([]).to_wire()["columns"] == ["*"]

    def test_distinct_is_independent_of_columns(self, users):
        wire = users.distinct().select("city").to_wire()

        assert wire["distinct"] is True
        assert wire["columns"] == ["city"]

    def test_joins_keep_declaration_order(self, users):
        query = (
            users.join("orders", "users.id", "=", "orders.user_id")
            .left_join("profiles", "users.id", "=", "profiles.user_id")
            .right_join("teams", "users.team_id", "=", "teams.id")
        )

        assert query.to_wire()["joins"] == [
            {"type": "INNER", "table": "orders", "on": {"column1": "users.id", "operator": "=", "column2": "orders.user_id"}},
            {"type": "LEFT", "table": "profiles", "on": {"column1": "users.id", "operator": "=", "column2": "profiles.user_id"}},
            {"type": "RIGHT", "table": "teams", "on": {"column1": "users.team_id", "operator": "=", "column2": "teams.id"}},
        ]

    def test_order_by_direction_is_case_insensitive(self, users):
        query = users.order_by("name").order_by("age", "desc")

        assert query.to_wire()["orderBy"] == [
            {"column": "name", "direction": "ASC"},
            {"column": "age", "direction": "DESC"},
        ]

    def test_order_by_rejects_unknown_direction(self, users):
        with pytest.raises(ValidationError):
            users.order_by("name", "sideways")

    def test_group_by_accumulates_without_dedup(self, users):
        query = users.group_by("city").group_by("country").group_by("city")

        assert query.to_wire()["groupBy"] == ["city", "country", "city"]

    def test_limit_then_page(self, users):
        wire = users.limit(5).page(2).to_wire()

        assert wire["limit"] == 5
        assert wire["offset"] == 5

    def test_page_without_limit_leaves_offset_unset(self, users):
        assert users.page(3).to_wire()["offset"] is None

    def test_first_page_has_zero_offset(self, users):
        assert users.limit(10).page(1).to_wire()["offset"] == 0

    @pytest.mark.parametrize("value", [-1, 1.5, "10", True])
    def test_limit_rejects_invalid_values(self, users, value):
        with pytest.raises(ValidationError):
            users.limit(value)

    @pytest.mark.parametrize("value", [0, -2])
    def test_page_rejects_values_below_one(self, users, value):
        with pytest.raises(ValidationError):
            users.limit(10).page(value)

    def test_aggregate_does_not_force_limit(self, users):
        wire = users.aggregate("sum", "amount").group_by("city").to_wire()

        assert wire["columns"] == ["SUM(amount) AS sum"]
        assert wire["aggregation"] == {"type": "SUM", "column": "amount", "alias": "sum"}
        assert wire["limit"] is None

    def test_aggregate_rejects_unknown_function(self, users):
        with pytest.raises(ValidationError):
            users.aggregate("median", "amount")


class TestCloneOnWrite:
    """Test that derived builders never share a descriptor."""

    def test_branches_are_isolated(self, users):
        base = users.select("id", "name").where("active", "=", True)

        adults = base.where("age", ">=", 18)
        minors = base.where("age", "<", 18)

        assert len(base.to_wire()["where"]) == 1
        assert [n["operator"] for n in adults.to_wire()["where"]] == ["=", ">="]
        assert [n["operator"] for n in minors.to_wire()["where"]] == ["=", "<"]

    def test_every_chain_step_returns_new_builder(self, users):
        steps = [
            lambda t: t.select("id"),
            lambda t: t.distinct(),
            lambda t: t.join("orders", "users.id", "=", "orders.user_id"),
            lambda t: t.order_by("id"),
            lambda t: t.group_by("id"),
            lambda t: t.limit(1),
            lambda t: t.page(2),
            lambda t: t.where("id", "=", 1),
            lambda t: t.or_(),
            lambda t: t.where_in("id", []),
        ]
        before = users.to_wire()

        for step in steps:
            assert step(users) is not users

        assert users.to_wire() == before

    def test_pending_connective_does_not_leak_into_base(self, users):
        base = users.where("a", "=", 1)
        base.or_()

        assert base.where("b", "=", 2).to_wire()["where"][1]["type"] == "AND"

    def test_dml_property_returns_copy(self, users):
        query = users.where("a", "=", 1)

        snapshot = query.dml
        snapshot.where.clear()

        assert isinstance(snapshot, DML)
        assert len(query.to_wire()["where"]) == 1
