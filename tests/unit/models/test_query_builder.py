# Copyright (c) Apptio Targetprocess Client contributors.
# Licensed under the MIT license.

"""Unit tests for QueryBuilder class."""

import datetime
import unittest
from unittest.mock import MagicMock

from Apptio.Targetprocess.core._auth import AuthConfig
from Apptio.Targetprocess.core.errors import ValidationError
from Apptio.Targetprocess.models.query_builder import (
    BoundQueryBuilder,
    CompiledQuery,
    QueryBuilder,
    WhereOperator,
    build_query,
)
from Apptio.Targetprocess.models.where import parse_where_clause


class TestQueryBuilder(unittest.TestCase):
    """Test cases for the QueryBuilder class."""

    def test_empty_build(self):
        """An empty builder compiles to the format marker only."""
        qb = QueryBuilder()
        self.assertEqual(qb.build(), CompiledQuery())
        self.assertEqual(qb.build_query_string(), "format=json")

    def test_methods_return_new_builders(self):
        """Builder methods never mutate the receiver."""
        base = QueryBuilder()
        narrowed = base.take(5)
        self.assertIsNot(base, narrowed)
        self.assertIsNone(base.options.take)
        self.assertEqual(narrowed.options.take, 5)

    def test_shared_prefix_is_reusable(self):
        base = QueryBuilder().where("EntityState.Name eq 'Open'")
        bugs = base.include("Severity")
        stories = base.include("Feature")
        self.assertEqual(bugs.build().include, "[Severity]")
        self.assertEqual(stories.build().include, "[Feature]")
        self.assertIsNone(base.build().include)

    def test_builder_is_frozen(self):
        with self.assertRaises(AttributeError):
            QueryBuilder().options = None

    def test_where_compiled(self):
        qb = QueryBuilder().where('EntityState.Name eq "Open"')
        self.assertEqual(qb.build().where, "EntityState.Name eq 'Open'")

    def test_where_chained_is_and_joined(self):
        qb = QueryBuilder().where("Id gt 5").where("Name contains 'Alpha and Beta'")
        self.assertEqual(qb.build().where, "Id gt '5' and Name contains 'Alpha and Beta'")

    def test_where_open_quote_does_not_absorb_next_clause(self):
        qb = QueryBuilder().where("Name eq O'Brien").where("EntityState.Name eq 'Open'")
        where = qb.build().where
        self.assertEqual(where, "Name eq 'O''Brien' and EntityState.Name eq 'Open'")
        self.assertEqual(len(parse_where_clause(where)), 2)

    def test_preset_then_where_keeps_both(self):
        qb = (QueryBuilder()
              .preset("myTasks", {"currentUser": "o'brien@example.com"})
              .where("Name eq O'Brien")
              .where("Priority.Name eq 'High'"))
        self.assertEqual(
            qb.build().where,
            "AssignedUser.Email eq 'o''brien@example.com' and Name eq 'O''Brien' "
            "and Priority.Name eq 'High'",
        )

    def test_where_validated_eagerly(self):
        with self.assertRaises(ValidationError):
            QueryBuilder().where("Name equals 'x'")
        with self.assertRaises(ValidationError):
            QueryBuilder().where("  ")

    def test_filter_typed_values(self):
        qb = (
            QueryBuilder()
            .filter("CreateDate", "gte", datetime.date(2024, 1, 1))
            .filter("IsActive", WhereOperator.EQ, True)
            .filter("AssignedUser", WhereOperator.IS_NULL)
            .filter("Id", "in", [1, 2])
        )
        self.assertEqual(
            qb.build().where,
            "CreateDate gte '2024-01-01' and IsActive eq true and AssignedUser is null and Id in ['1','2']",
        )

    def test_filter_after_where(self):
        qb = QueryBuilder().filter("Priority.Name", "eq", "High").where("EntityState.Name eq 'Open'")
        self.assertEqual(qb.build().where, "EntityState.Name eq 'Open' and Priority.Name eq 'High'")

    def test_filter_unknown_operator_raises(self):
        with self.assertRaises(ValidationError):
            QueryBuilder().filter("Name", "startswith", "A")

    def test_filter_custom_field(self):
        qb = QueryBuilder().filter("CustomField.Risk Level", "eq", "High")
        self.assertEqual(qb.build().where, "cf_RiskLevel eq 'High'")

    def test_include(self):
        qb = QueryBuilder().include("Project", "AssignedUser").include("Feature")
        self.assertEqual(qb.build().include, "[Project,AssignedUser,Feature]")

    def test_include_blank_entries_dropped(self):
        self.assertIsNone(QueryBuilder().include("", "  ").build().include)

    def test_include_invalid_raises(self):
        with self.assertRaises(ValidationError):
            QueryBuilder().include("Project!")

    def test_take(self):
        self.assertEqual(QueryBuilder().take(1).build().take, 1)
        self.assertEqual(QueryBuilder().take(1000).build().take, 1000)

    def test_take_invalid_raises(self):
        for bad in (0, -1, 1001, "5", 2.5, True):
            with self.subTest(take=bad):
                with self.assertRaises(ValidationError):
                    QueryBuilder().take(bad)

    def test_order_by_direction_dropped(self):
        qb = QueryBuilder().order_by("CreateDate desc")
        self.assertEqual(qb.build().order_by, ("CreateDate",))
        self.assertEqual(qb.build_query_string(), "format=json&orderBy=CreateDate")

    def test_order_by_multiple_indexed(self):
        qb = QueryBuilder().order_by("Priority", "CreateDate desc")
        self.assertEqual(
            qb.build_query_string(),
            "format=json&orderBy[0]=Priority&orderBy[1]=CreateDate",
        )

    def test_order_by_blank_raises(self):
        with self.assertRaises(ValidationError):
            QueryBuilder().order_by(" ")

    def test_format_override(self):
        self.assertEqual(QueryBuilder().format("xml").build_query_string(), "format=xml")

    def test_preset(self):
        qb = QueryBuilder().preset("myOpenTasks", {"currentUser": "jane@example.com"})
        self.assertEqual(
            qb.build().where,
            "AssignedUser.Email eq 'jane@example.com' and EntityState.Name eq 'Open'",
        )

    def test_preset_with_dates(self):
        qb = QueryBuilder().preset("createdToday", today=datetime.date(2024, 3, 14))
        self.assertEqual(
            qb.build().where,
            "CreateDate gte '2024-03-14' and CreateDate lt '2024-03-15'",
        )

    def test_reset_keeps_auth(self):
        auth = AuthConfig.apikey("tok")
        qb = QueryBuilder(auth=auth).where("Id gt 1").take(3).reset()
        self.assertIs(qb.auth, auth)
        self.assertEqual(qb.build(), CompiledQuery())

    def test_clone_is_equal_but_distinct(self):
        qb = QueryBuilder().take(3)
        copy = qb.clone()
        self.assertEqual(copy, qb)
        self.assertIsNot(copy, qb)

    def test_to_dict_omits_unset(self):
        self.assertEqual(QueryBuilder().to_dict(), {"format": "json"})
        self.assertEqual(
            QueryBuilder().take(5).order_by("Name").to_dict(),
            {"format": "json", "take": 5, "order_by": ["Name"]},
        )


class TestQueryString(unittest.TestCase):
    """Serialisation of compiled queries."""

    def test_full_query_with_api_key(self):
        qb = (
            QueryBuilder(auth=AuthConfig.apikey("MjM6NjQ3="))
            .where("EntityState.Name eq 'Open'")
            .include("Project", "AssignedUser")
            .take(50)
            .order_by("CreateDate desc")
        )
        self.assertEqual(
            qb.build_query_string(),
            "format=json&take=50&where=EntityState.Name+eq+%27Open%27"
            "&include=%5BProject%2CAssignedUser%5D&orderBy=CreateDate&access_token=MjM6NjQ3%3D",
        )

    def test_access_token_last_with_indexed_order(self):
        qb = QueryBuilder(auth=AuthConfig.apikey("MjM6NjQ3=")).where("Name eq 'a b'").order_by("Priority", "CreateDate")
        self.assertEqual(
            qb.build_query_string(),
            "format=json&where=Name%20eq%20'a%20b'&orderBy[0]=Priority&orderBy[1]=CreateDate"
            "&access_token=MjM6NjQ3%3D",
        )

    def test_basic_auth_adds_no_params(self):
        qb = QueryBuilder(auth=AuthConfig.basic("dXNlcjpwYXNz")).take(5)
        self.assertEqual(qb.build_params(), [("format", "json"), ("take", "5")])

    def test_params_order(self):
        params = (
            QueryBuilder(auth=AuthConfig.apikey("tok"))
            .order_by("Name")
            .include("Project")
            .where("Id gt 1")
            .take(2)
            .build_params()
        )
        self.assertEqual(
            [k for k, _ in params],
            ["format", "take", "where", "include", "orderBy", "access_token"],
        )

    def test_build_query_helper(self):
        compiled = build_query(where='Name eq "x"', include=["Project"], take=10, order_by=["Name desc"])
        self.assertEqual(
            compiled,
            CompiledQuery(where="Name eq 'x'", include="[Project]", take=10, order_by=("Name",)),
        )

    def test_build_query_helper_validates(self):
        with self.assertRaises(ValidationError):
            build_query(take=0)
        with self.assertRaises(ValidationError):
            build_query(where="")


class TestBoundQueryBuilder(unittest.TestCase):
    """Test cases for builders created by client.query.builder()."""

    def test_execute_without_client_raises(self):
        with self.assertRaises(RuntimeError):
            BoundQueryBuilder(entity_type="Bug").execute()

    def test_execute_delegates_to_query_operations(self):
        ops = MagicMock()
        ops.execute.return_value = [{"Id": 1}]
        qb = BoundQueryBuilder(entity_type="Bug", query_ops=ops).where("Id eq 1").take(1)

        self.assertEqual(qb.execute(), [{"Id": 1}])
        ops.execute.assert_called_once_with("Bug", qb)

    def test_chaining_preserves_binding(self):
        ops = MagicMock()
        qb = BoundQueryBuilder(entity_type="Task", query_ops=ops).take(3).include("UserStory")
        self.assertIsInstance(qb, BoundQueryBuilder)
        self.assertEqual(qb.entity_type, "Task")
        self.assertIs(qb.query_ops, ops)

    def test_reset_preserves_binding(self):
        ops = MagicMock()
        qb = BoundQueryBuilder(entity_type="Task", query_ops=ops).take(3).reset()
        self.assertEqual(qb.entity_type, "Task")
        self.assertIsNone(qb.options.take)


if __name__ == "__main__":
    unittest.main()
