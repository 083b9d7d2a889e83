from __future__ import annotations

import dataclasses
import datetime
from dataclasses import dataclass
from typing import Optional

import pytest

from sqlupsert import DbSession, Outcome, Role, UpsertConfig, Upserter, column
from sqlupsert.db.upserter import delete, get, upsert
from sqlupsert.errors import ExecutionError, NoKeyColumnsError


@dataclass
class Person:
    name: str
    age: int
    id: Optional[int] = column(role=Role.KEY, generated=True, default=None)

    def table_name(self) -> str:
        return "person"


@dataclass
class NamedPerson:
    """Same table, keyed on the natural key ``name``."""
    name: str = column(role=Role.KEY)
    age: int = 0
    id: Optional[int] = column(role=Role.OMIT, default=None)

    def table_name(self) -> str:
        return "person"


@dataclass
class Nameless:
    age: int

    def table_name(self) -> str:
        return "person"


@dataclass
class Shouted:
    """The stored ``shout`` is computed by the database from an omitted field."""
    code: str = column(role=Role.KEY)
    nick: str = column(role=Role.OMIT, default="")
    shout: Optional[str] = column(value="upper(:nick)", default=None)

    def table_name(self) -> str:
        return "shouted"


@dataclass
class Visit:
    id: int = column(role=Role.KEY)
    seen: datetime.datetime = datetime.datetime(2000, 1, 1)

    def table_name(self) -> str:
        return "visit"


def _get_by_id(engine, person_id: int) -> Person | None:
    with DbSession(engine) as session:
        return get(session, Person(name="", age=0, id=person_id))


def test_insert_then_update_by_generated_id(engine, person_table: str) -> None:
    with DbSession(engine) as session:
        result = upsert(session, Person(name="Brian Seitz", age=36))

    assert result.outcome is Outcome.INSERTED
    assert isinstance(result.record.id, int)
    assert result.record.id > 0

    p2 = _get_by_id(engine, result.record.id)
    assert p2 == result.record

    with DbSession(engine) as session:
        updated = upsert(session, dataclasses.replace(p2, age=37))
    assert updated.outcome is Outcome.UPDATED

    p3 = _get_by_id(engine, result.record.id)
    assert p3.age == 37


def test_natural_key_insert_no_change_update(engine, person_table: str) -> None:
    with DbSession(engine) as session:
        first = upsert(session, NamedPerson(name="Steven Seagal", age=64))
    assert first.outcome is Outcome.INSERTED
    assert first.record.id is not None

    with DbSession(engine) as session:
        second = upsert(session, NamedPerson(name="Steven Seagal", age=64))
    assert second.outcome is Outcome.NO_CHANGE
    assert second.record.id == first.record.id

    with DbSession(engine) as session:
        third = upsert(session, NamedPerson(name="Steven Seagal", age=65))
    assert third.outcome is Outcome.UPDATED
    assert third.record.age == 65
    assert third.record.id == first.record.id

    with DbSession(engine) as session:
        count = session.fetch_one('SELECT COUNT(*) AS n FROM "person"')
    assert count == {"n": 1}


def test_identical_upsert_twice_reports_no_change(engine, person_table: str) -> None:
    with DbSession(engine) as session:
        first = upsert(session, Person(name="Brian Seitz", age=36))
    with DbSession(engine) as session:
        second = upsert(session, first.record)

    assert (first.outcome, second.outcome) == (Outcome.INSERTED, Outcome.NO_CHANGE)


def test_without_detection_existing_row_is_updated(engine, person_table: str) -> None:
    upserter = Upserter(UpsertConfig(detect_changes=False))

    with DbSession(engine) as session:
        first = upserter.upsert(session, NamedPerson(name="Steven Seagal", age=64))
        second = upserter.upsert(session, NamedPerson(name="Steven Seagal", age=64))

    assert first.outcome is Outcome.INSERTED
    assert second.outcome is Outcome.UPDATED


def test_upsert_accepts_bare_connection(engine, person_table: str) -> None:
    with engine.begin() as conn:
        result = upsert(conn, NamedPerson(name="Steven Seagal", age=64))
    assert result.outcome is Outcome.INSERTED

    with engine.connect() as conn:
        assert get(conn, NamedPerson(name="Steven Seagal")).age == 64


def test_delete_removes_matching_row(engine, person_table: str) -> None:
    with DbSession(engine) as session:
        stored = upsert(session, Person(name="Brian Seitz", age=36)).record
        assert delete(session, stored) == 1
        assert delete(session, stored) == 0

    assert _get_by_id(engine, stored.id) is None


def test_keyless_record_is_rejected_before_any_statement(engine, person_table: str) -> None:
    with DbSession(engine) as session:
        with pytest.raises(NoKeyColumnsError):
            upsert(session, Nameless(age=1))
        with pytest.raises(NoKeyColumnsError):
            delete(session, Nameless(age=1))


def test_constraint_violation_surfaces_as_execution_error(engine, person_table: str) -> None:
    with pytest.raises(ExecutionError) as excinfo:
        with DbSession(engine) as session:
            upsert(session, Person(name="No Age", age=None))  # type: ignore[arg-type]

    assert excinfo.value.op_type == "insert"
    assert excinfo.value.statement.startswith('INSERT INTO "person"')


def test_custom_expression_binds_omitted_fields_and_always_updates(engine, table_factory) -> None:
    table_factory("shouted", "code TEXT PRIMARY KEY, shout TEXT")

    with DbSession(engine) as session:
        first = upsert(session, Shouted(code="a", nick="x"))
    assert first.outcome is Outcome.INSERTED
    assert first.record.shout == "X"

    with DbSession(engine) as session:
        second = upsert(session, Shouted(code="a", nick="y", shout="X"))
    assert second.outcome is Outcome.UPDATED
    assert second.record.shout == "Y"

    with DbSession(engine) as session:
        assert session.fetch_all('SELECT code, shout FROM "shouted"') == [{"code": "a", "shout": "Y"}]


def test_datetime_field_round_trips(engine, table_factory) -> None:
    table_factory("visit", "id INT PRIMARY KEY, seen TIMESTAMP NOT NULL")
    seen = datetime.datetime(2024, 1, 2, 3, 4, 5)

    with DbSession(engine) as session:
        first = upsert(session, Visit(id=1, seen=seen))
    with DbSession(engine) as session:
        second = upsert(session, Visit(id=1, seen=seen))

    assert first.record.seen == seen
    assert (first.outcome, second.outcome) == (Outcome.INSERTED, Outcome.NO_CHANGE)
