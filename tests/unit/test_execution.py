"""Unit tests for terminal operations and the execution orchestrator."""

import asyncio
import json
import sys
from unittest.mock import AsyncMock, Mock, patch

import pytest

from dbquery.api import Database
from dbquery.common.exceptions import EngineError, ErrorCode, ValidationError
from dbquery.constants.dml import EngineAction
from dbquery.execution import EngineResponse
from dbquery.triggers import TriggerDescriptor


def _ok(data=None):
    return EngineResponse(status=200, data=data if data is not None else [])


def _leaf(column, operator, value, connective="AND"):
    return {"column": column, "operator": operator, "value": value, "type": connective, "isGroup": False}


class TestReads:
    """Test get, first, find and the aggregate shortcuts."""

    def test_get_sends_descriptor_verbatim(self, users, engine):
        engine.responses = [_ok([{"id": 1}])]
        query = users.select("id").where("age", ">", 18)

        rows = asyncio.run(query.get())

        assert rows == [{"id": 1}]
        assert engine.calls == [(EngineAction.EXECUTE, query.to_wire())]

    def test_first_forces_limit_one(self, users, engine):
        engine.responses = [_ok([{"id": 1}, {"id": 2}])]

        row = asyncio.run(users.first())

        assert row == {"id": 1}
        assert engine.executed[0]["limit"] == 1

    def test_first_without_rows_returns_none(self, users, engine):
        assert asyncio.run(users.first()) is None

    def test_find_uses_primary_key(self, users, engine):
        engine.responses = [_ok([{"id": 7}])]

        row = asyncio.run(users.find(7))

        assert row == {"id": 7}
        assert engine.executed[0]["where"] == [_leaf("id", "=", 7)]
        assert engine.executed[0]["limit"] == 1

    def test_find_with_explicit_column(self, users, engine):
        asyncio.run(users.find("ada@example.com", column="email"))

        assert engine.executed[0]["where"] == [_leaf("email", "=", "ada@example.com")]

    def test_count_unwraps_alias(self, users, engine):
        engine.responses = [_ok([{"count": 3}])]

        assert asyncio.run(users.where("active", "=", True).count()) == 3

        request = engine.executed[0]
        assert request["columns"] == ["COUNT(*) AS count"]
        assert request["aggregation"] == {"type": "COUNT", "column": "*", "alias": "count"}
        assert request["limit"] == 1

    def test_count_on_empty_result_is_zero(self, users, engine):
        assert asyncio.run(users.count()) == 0

    def test_sum_of_null_is_zero(self, users, engine):
        engine.responses = [_ok([{"sum": None}])]

        assert asyncio.run(users.sum("balance")) == 0

    @pytest.mark.parametrize(
        "method,alias,value",
        [("avg", "avg", 2.5), ("max", "max", 9), ("min", "min", 1)],
    )
    def test_other_aggregates(self, users, engine, method, alias, value):
        engine.responses = [_ok([{alias: value}])]

        assert asyncio.run(getattr(users, method)("age")) == value
        assert engine.executed[0]["columns"] == [f"{alias.upper()}(age) AS {alias}"]

    def test_branches_do_not_leak_into_each_other(self, users, engine):
        base = users.where("a", "=", 1)

        asyncio.run(base.where("x", "=", 1).get())
        asyncio.run(base.where("y", "=", 2).get())

        assert [n["column"] for n in engine.executed[0]["where"]] == ["a", "x"]
        assert [n["column"] for n in engine.executed[1]["where"]] == ["a", "y"]


class TestMutations:
    """Test insert, update and delete without triggers."""

    def test_insert_returns_input_rows(self, users, engine):
        rows = [{"name": "Ada"}, {"name": "Bob"}]

        result = asyncio.run(users.insert(rows))

        assert result == rows
        assert len(engine.executed) == 1
        assert engine.executed[0]["type"] == "insert"
        assert engine.executed[0]["data"] == rows

    @pytest.mark.parametrize("payload", [{"name": "Ada"}, [], ["Ada"], "Ada", None])
    def test_insert_rejects_malformed_payload(self, users, engine, payload):
        with pytest.raises(ValidationError) as exc_info:
            asyncio.run(users.insert(payload))

        assert exc_info.value.error_code == ErrorCode.INVALID_PAYLOAD
        assert engine.calls == []

    def test_update_without_where_never_reaches_engine(self, users, engine):
        with pytest.raises(ValidationError, match="requires at least one WHERE condition"):
            asyncio.run(users.update({"name": "x"}))

        assert engine.calls == []

    def test_update_rejects_non_dict_payload(self, users, engine):
        with pytest.raises(ValidationError):
            asyncio.run(users.where("id", "=", 1).update([{"name": "x"}]))

        assert engine.calls == []

    def test_update_sends_single_request(self, users, engine):
        result = asyncio.run(users.where("id", "=", 1).update({"name": "x"}))

        assert result == {"name": "x"}
        assert len(engine.executed) == 1
        assert engine.executed[0]["type"] == "update"
        assert engine.executed[0]["data"] == {"name": "x"}

    def test_delete_without_where_never_reaches_engine(self, users, engine):
        with pytest.raises(ValidationError) as exc_info:
            asyncio.run(users.delete())

        assert exc_info.value.error_code == ErrorCode.MISSING_CONDITION
        assert engine.calls == []

    def test_delete_returns_rows_read_before_deleting(self, users, engine):
        engine.responses = [_ok([{"id": 1, "name": "Ada"}]), _ok()]

        result = asyncio.run(users.where("id", "=", 1).limit(5).delete())

        assert result == [{"id": 1, "name": "Ada"}]
        probe, delete = engine.executed
        assert probe["type"] == "select"
        assert probe["columns"] == ["*"]
        assert probe["limit"] is None
        assert probe["where"] == [_leaf("id", "=", 1)]
        assert delete["type"] == "delete"


class TestEngineFailures:
    """Test how non-success engine statuses surface."""

    def test_failure_raises_engine_error(self, users, engine):
        engine.responses = [EngineResponse(status=500, message="boom")]

        with pytest.raises(EngineError) as exc_info:
            asyncio.run(users.get())

        assert exc_info.value.status == 500
        assert exc_info.value.message == "boom"
        assert exc_info.value.error_code == ErrorCode.ENGINE_ERROR

    def test_warning_tier_status(self, users, engine):
        engine.responses = [EngineResponse(status=600, message="careful")]

        with pytest.raises(EngineError) as exc_info:
            asyncio.run(users.get())

        assert exc_info.value.is_warning
        assert exc_info.value.error_code == ErrorCode.ENGINE_WARNING

    def test_pretty_rendition_emitted_when_enabled(self, users, engine, settings):
        settings.pretty_errors = True
        engine.responses = [EngineResponse(status=500, message="boom")]

        with patch("dbquery.execution.orchestrator.emit_engine_error") as emit:
            with pytest.raises(EngineError):
                asyncio.run(users.get())

        emit.assert_called_once_with(500, "boom")

    def test_pretty_rendition_skipped_when_disabled(self, users, engine):
        engine.responses = [EngineResponse(status=500, message="boom")]

        with patch("dbquery.execution.orchestrator.emit_engine_error") as emit:
            with pytest.raises(EngineError):
                asyncio.run(users.get())

        emit.assert_not_called()


class TestTriggeredMutations:
    """Test per-row execution around trigger hooks."""

    @pytest.fixture
    def timeline(self):
        return []

    @pytest.fixture
    def make_db(self, engine, settings, timeline):
        def factory(*events, table_ref="users", handler=None):
            triggers = [
                TriggerDescriptor(type=event, database_ref="shop", table_ref=table_ref)
                for event in events
            ]
            processor = Mock()
            processor.get_triggers = AsyncMock(return_value=triggers)

            def load(descriptor):
                if handler is not None:
                    return handler

                def record(db, old_data, new_data):
                    timeline.append((descriptor.type, old_data, new_data))

                return record

            loader = Mock()
            loader.load.side_effect = load

            database = Database(
                "shop",
                engine=engine,
                trigger_processor=processor,
                trigger_loader=loader,
                settings=settings,
            )
            asyncio.run(database.use_triggers())
            return database, loader

        return factory

    def _recording_response(self, timeline, response=None):
        def respond(action, dml):
            timeline.append(("engine", dml["type"], dml.get("data")))
            return response or _ok()

        return respond

    def test_insert_runs_hooks_around_each_row(self, make_db, engine, timeline):
        database, _ = make_db("beforeAdd", "afterAdd")
        engine.responses = [self._recording_response(timeline) for _ in range(2)]
        ada, bob = {"name": "Ada"}, {"name": "Bob"}

        asyncio.run(database.table("users").insert([ada, bob]))

        assert timeline == [
            ("beforeAdd", ada, ada),
            ("engine", "insert", [ada]),
            ("afterAdd", ada, ada),
            ("beforeAdd", bob, bob),
            ("engine", "insert", [bob]),
            ("afterAdd", bob, bob),
        ]

    def test_engine_failure_stops_loop_and_skips_after_hook(self, make_db, engine, timeline):
        database, _ = make_db("beforeAdd", "afterAdd")
        engine.responses = [
            self._recording_response(timeline, EngineResponse(status=500, message="duplicate key")),
        ]

        with pytest.raises(EngineError):
            asyncio.run(database.table("users").insert([{"name": "Ada"}, {"name": "Bob"}]))

        assert [entry[0] for entry in timeline] == ["beforeAdd", "engine"]
        assert len(engine.calls) == 1

    def test_handler_exception_propagates_unchanged(self, make_db, engine):
        def broken(db, old_data, new_data):
            raise RuntimeError("handler broke")

        database, _ = make_db("beforeAdd", handler=broken)

        with pytest.raises(RuntimeError, match="handler broke"):
            asyncio.run(database.table("users").insert([{"name": "Ada"}]))

        assert engine.calls == []

    def test_handler_receives_database_handle(self, make_db, engine):
        seen = []
        database, _ = make_db("afterAdd", handler=lambda db, old_data, new_data: seen.append(db))

        asyncio.run(database.table("users").insert([{"name": "Ada"}]))

        assert seen == [database]

    def test_async_handler_is_awaited(self, make_db, engine):
        seen = []

        async def handler(db, old_data, new_data):
            await asyncio.sleep(0)
            seen.append(new_data)

        database, _ = make_db("afterAdd", handler=handler)

        asyncio.run(database.table("users").insert([{"name": "Ada"}]))

        assert seen == [{"name": "Ada"}]

    def test_update_narrows_each_row(self, make_db, engine, timeline):
        database, _ = make_db("beforeUpdate")
        engine.responses = [_ok([{"id": 1, "name": "a"}, {"id": 2, "name": "b"}])]

        asyncio.run(database.table("users").where("name", "like", "%").update({"name": "z"}))

        probe, first, second = engine.executed
        assert probe["type"] == "select"
        assert first["type"] == "update"
        assert first["data"] == {"name": "z"}
        assert first["where"] == [
            {"type": "AND", "isGroup": True, "conditions": [_leaf("name", "LIKE", "%")]},
            _leaf("id", "=", 1),
        ]
        assert second["where"][1] == _leaf("id", "=", 2)
        assert timeline == [
            ("beforeUpdate", {"id": 1, "name": "a"}, {"id": 1, "name": "z"}),
            ("beforeUpdate", {"id": 2, "name": "b"}, {"id": 2, "name": "z"}),
        ]

    def test_delete_without_primary_key_matches_every_column(self, make_db, engine, timeline):
        database, _ = make_db("afterDelete")
        row = {"sku": "A-1", "note": None}
        engine.responses = [_ok([row])]

        result = asyncio.run(database.table("users").where("sku", "=", "A-1").delete())

        assert result == [row]
        probe, delete = engine.executed
        assert delete["type"] == "delete"
        assert delete["where"][1:] == [_leaf("sku", "=", "A-1"), _leaf("note", "IS NULL", None)]
        assert timeline == [("afterDelete", row, row)]

    def test_triggers_of_other_tables_are_ignored(self, make_db, engine):
        database, loader = make_db("beforeAdd", table_ref="orders")

        asyncio.run(database.table("users").insert([{"name": "Ada"}, {"name": "Bob"}]))

        assert len(engine.executed) == 1
        loader.load.assert_not_called()

    def test_other_phase_triggers_keep_single_request(self, make_db, engine):
        database, loader = make_db("beforeDelete")

        asyncio.run(database.table("users").insert([{"name": "Ada"}, {"name": "Bob"}]))

        assert len(engine.executed) == 1
        loader.load.assert_not_called()

    def test_reads_never_run_hooks(self, make_db, engine):
        database, loader = make_db("beforeAdd", "afterAdd")

        asyncio.run(database.table("users").get())

        loader.load.assert_not_called()


class TestTriggerLogs:
    """Test handler output capture with the default file-based collaborators."""

    def _register(self, settings, event, body):
        settings.triggers_dir.mkdir(parents=True, exist_ok=True)
        (settings.triggers_dir / "shop.json").write_text(
            json.dumps([{"type": event, "database_ref": "shop", "table_ref": "users"}])
        )
        (settings.triggers_dir / f"shop_users_{event}.py").write_text(body)

    def test_committed_output_is_appended_to_log(self, engine, settings):
        self._register(
            settings,
            "afterAdd",
            "def handle(db, old_data, new_data):\n    print('added ' + new_data['name'])\n",
        )
        database = Database("shop", engine=engine, settings=settings)
        asyncio.run(database.use_triggers())

        asyncio.run(database.table("users").insert([{"name": "Ada"}, {"name": "Bob"}]))

        log = settings.trigger_logs_dir / "shop" / "users_afterAdd.log"
        assert log.read_text() == "added Ada\nadded Bob\n"

    def test_output_is_discarded_when_engine_fails(self, engine, settings):
        self._register(
            settings,
            "beforeAdd",
            "def handle(db, old_data, new_data):\n    print('about to add')\n",
        )
        database = Database("shop", engine=engine, settings=settings)
        asyncio.run(database.use_triggers())
        engine.responses = [EngineResponse(status=500, message="nope")]

        with pytest.raises(EngineError):
            asyncio.run(database.table("users").insert([{"name": "Ada"}]))

        assert not (settings.trigger_logs_dir / "shop" / "users_beforeAdd.log").exists()

    def test_concurrent_hooked_inserts_keep_output_apart(self, engine, settings):
        settings.triggers_dir.mkdir(parents=True, exist_ok=True)
        (settings.triggers_dir / "shop.json").write_text(
            json.dumps(
                [
                    {"type": "beforeAdd", "database_ref": "shop", "table_ref": "users"},
                    {"type": "beforeAdd", "database_ref": "shop", "table_ref": "orders"},
                ]
            )
        )
        for table in ("users", "orders"):
            (settings.triggers_dir / f"shop_{table}_beforeAdd.py").write_text(
                "import asyncio\n\n"
                "async def handle(db, old_data, new_data):\n"
                f"    print('start {table} ' + new_data['name'])\n"
                "    await asyncio.sleep(0.01)\n"
                f"    print('end {table} ' + new_data['name'])\n"
            )
        database = Database("shop", engine=engine, settings=settings)
        asyncio.run(database.use_triggers())
        stdout, stderr = sys.stdout, sys.stderr

        async def both():
            await asyncio.gather(
                database.table("users").insert([{"name": "Ada"}, {"name": "Bob"}]),
                database.table("orders").insert([{"name": "o1"}]),
            )

        asyncio.run(both())

        assert sys.stdout is stdout
        assert sys.stderr is stderr
        logs = settings.trigger_logs_dir / "shop"
        assert (logs / "users_beforeAdd.log").read_text() == (
            "start users Ada\nend users Ada\nstart users Bob\nend users Bob\n"
        )
        assert (logs / "orders_beforeAdd.log").read_text() == "start orders o1\nend orders o1\n"

    def test_handler_may_issue_hooked_mutation(self, engine, settings):
        settings.triggers_dir.mkdir(parents=True, exist_ok=True)
        (settings.triggers_dir / "shop.json").write_text(
            json.dumps(
                [
                    {"type": "afterAdd", "database_ref": "shop", "table_ref": "users"},
                    {"type": "afterAdd", "database_ref": "shop", "table_ref": "audit"},
                ]
            )
        )
        (settings.triggers_dir / "shop_users_afterAdd.py").write_text(
            "async def handle(db, old_data, new_data):\n"
            "    print('user ' + new_data['name'])\n"
            "    await db.table('audit').insert([{'name': new_data['name']}])\n"
        )
        (settings.triggers_dir / "shop_audit_afterAdd.py").write_text(
            "def handle(db, old_data, new_data):\n"
            "    print('audited ' + new_data['name'])\n"
        )
        database = Database("shop", engine=engine, settings=settings)
        asyncio.run(database.use_triggers())

        asyncio.run(asyncio.wait_for(database.table("users").insert([{"name": "Ada"}]), timeout=5))

        logs = settings.trigger_logs_dir / "shop"
        assert (logs / "users_afterAdd.log").read_text() == "user Ada\n"
        assert (logs / "audit_afterAdd.log").read_text() == "audited Ada\n"


class TestComputedFields:
    """Test computed column rewriting through the orchestrator."""

    @pytest.fixture
    def computed_db(self, engine, settings):
        settings.computes_dir.mkdir(parents=True, exist_ok=True)
        (settings.computes_dir / "shop.json").write_text(
            json.dumps(
                [
                    {"column": "total", "instruction": "price * quantity"},
                    {"column": "label", "instruction": "UPPER(name)", "table_ref": "products"},
                ]
            )
        )
        database = Database("shop", engine=engine, settings=settings)
        asyncio.run(database.use_computes())
        return database

    def test_dependencies_replace_computed_column(self, computed_db, engine):
        engine.responses = [_ok([{"id": 1, "price": 2, "quantity": 3}])]

        rows = asyncio.run(computed_db.table("orders").select("id", "total").get())

        assert engine.executed[0]["columns"] == ["id", "price", "quantity"]
        assert rows == [{"id": 1, "total": 6}]

    def test_requested_dependency_is_kept(self, computed_db, engine):
        engine.responses = [_ok([{"price": 2, "quantity": 3}])]

        rows = asyncio.run(computed_db.table("orders").select("price", "total").get())

        assert engine.executed[0]["columns"] == ["price", "quantity"]
        assert rows == [{"price": 2, "total": 6}]

    def test_star_keeps_dependency_columns(self, computed_db, engine):
        engine.responses = [_ok([{"id": 1, "price": 2, "quantity": 3}])]

        rows = asyncio.run(computed_db.table("orders").select("*", "total").get())

        assert engine.executed[0]["columns"] == ["*"]
        assert rows == [{"id": 1, "price": 2, "quantity": 3, "total": 6}]

    def test_table_scoped_field_applies_only_to_its_table(self, computed_db, engine):
        asyncio.run(computed_db.table("orders").select("label").get())
        asyncio.run(computed_db.table("products").select("label").get())

        assert engine.executed[0]["columns"] == ["label"]
        assert engine.executed[1]["columns"] == ["name"]

    def test_plain_columns_pass_through(self, computed_db, engine):
        engine.responses = [_ok([{"id": 1, "price": 2}])]

        rows = asyncio.run(computed_db.table("orders").select("id", "price").get())

        assert engine.executed[0]["columns"] == ["id", "price"]
        assert rows == [{"id": 1, "price": 2}]

    def test_registry_ignored_until_enabled(self, engine, settings):
        settings.computes_dir.mkdir(parents=True, exist_ok=True)
        (settings.computes_dir / "shop.json").write_text(
            json.dumps([{"column": "total", "instruction": "price * quantity"}])
        )
        database = Database("shop", engine=engine, settings=settings)

        asyncio.run(database.table("orders").select("total").get())

        assert engine.executed[0]["columns"] == ["total"]
