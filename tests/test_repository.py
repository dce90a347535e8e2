import logging
import sqlite3
from dataclasses import dataclass, field

import pytest

from ormkit.expressions import Assignment, Column, Eq, Expr
from ormkit.observability import (
    Metrics,
    Tracer,
    with_default_meter,
    with_default_tracer,
    with_logger,
    with_meter,
    with_query_logging,
    with_slow_query_threshold,
    with_tracer,
)
from ormkit.query import NotFoundError
from ormkit.repository import Repository, do_update, on_conflict
from ormkit.schema import PK, Schema, register_schema
from ormkit.session import Session, SQLiteDialect


@dataclass
class ObsTestModel:
    id: int = 0
    name: str = ""


@dataclass
class HookedModel(ObsTestModel):
    events: list = field(default_factory=list, compare=False)

    def before_create(self):
        if self.name == "forbidden":
            raise ValueError("name not allowed")
        self.events.append("before_create")

    def after_create(self):
        self.events.append("after_create")

    def before_update(self):
        self.events.append("before_update")

    def after_update(self):
        self.events.append("after_update")

    def before_delete(self):
        self.events.append("before_delete")

    def after_delete(self):
        self.events.append("after_delete")


class ObsTestSchema(Schema):
    def table_name(self):
        return "obs_test"

    def select_columns(self):
        return ["id", "name"]

    def insert_row(self, model):
        if model.id != 0:
            return ["id", "name"], [model.id, model.name]
        return ["name"], [model.name]

    def update_map(self, model):
        return {"name": model.name}

    def pk(self, model):
        return PK(Column(name="id"), model.id if model is not None else None)

    def set_pk(self, model, value):
        model.id = value

    def auto_increment(self):
        return True


register_schema(ObsTestModel, ObsTestSchema())
register_schema(HookedModel, ObsTestSchema())


class _ListHandler(logging.Handler):
    def __init__(self):
        super().__init__(logging.DEBUG)
        self.messages = []

    def emit(self, record):
        self.messages.append((record.levelno, record.getMessage()))


@pytest.fixture
def db():
    connection = sqlite3.connect(":memory:")
    connection.execute(
        "CREATE TABLE obs_test (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT NOT NULL)"
    )
    yield connection
    connection.close()


def _logger(name, level):
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False
    handler = _ListHandler()
    handler.setLevel(level)
    for old in list(logger.handlers):
        logger.removeHandler(old)
    logger.addHandler(handler)
    return logger, handler


def _names(db):
    return [row[0] for row in db.execute("SELECT name FROM obs_test ORDER BY id")]


def test_with_logger(db):
    logger, handler = _logger("ormkit.tests.repo.debug", logging.DEBUG)
    session = Session(db, SQLiteDialect(), with_logger(logger), with_query_logging(True))
    repo = Repository(session, ObsTestModel)
    model = ObsTestModel(name="Test")
    repo.create(model)
    assert model.id == 1
    assert handler.messages
    assert any("INSERT INTO obs_test" in message for _, message in handler.messages)


def test_with_slow_query_threshold(db):
    logger, handler = _logger("ormkit.tests.repo.warn", logging.WARNING)
    session = Session(db, SQLiteDialect(), with_logger(logger), with_slow_query_threshold(1e-9))
    repo = Repository(session, ObsTestModel)
    model = ObsTestModel(name="Test")
    repo.create(model)
    assert model.id == 1
    found = repo.find_one(model.id)
    assert found.name == "Test"
    warnings = [message for level, message in handler.messages if level == logging.WARNING]
    assert len(warnings) >= 1
    assert "slow query" in warnings[0]


def test_with_default_tracer(db):
    session = Session(db, SQLiteDialect(), with_default_tracer())
    repo = Repository(session, ObsTestModel)
    model = ObsTestModel(name="Test")
    repo.create(model)
    found = repo.find_one(model.id)
    assert found.name == "Test"


def test_with_explicit_tracer_records_spans(db):
    tracer = Tracer()
    session = Session(db, SQLiteDialect(), with_tracer(tracer))
    repo = Repository(session, ObsTestModel)
    model = ObsTestModel(name="Test")
    repo.create(model)
    repo.find_one(model.id)
    names = [span.name for span in tracer.spans]
    assert names == ["ormkit.Exec", "ormkit.Select"]
    assert "INSERT INTO obs_test" in tracer.spans[0].attributes["db.statement"]


def test_with_default_meter(db):
    session = Session(db, SQLiteDialect(), with_default_meter())
    repo = Repository(session, ObsTestModel)
    model = ObsTestModel(name="Test")
    repo.create(model)
    assert repo.find_one(model.id).name == "Test"


def test_with_meter_counts_operations(db):
    metrics = Metrics()
    session = Session(db, SQLiteDialect(), with_meter(metrics))
    repo = Repository(session, ObsTestModel)
    model = ObsTestModel(name="Test")
    repo.create(model)
    repo.find_one(model.id)
    assert metrics.query_count[("exec", "sqlite3")] == 1
    assert metrics.query_count[("select", "sqlite3")] == 1


def test_combined_observability(db):
    logger, handler = _logger("ormkit.tests.repo.combined", logging.DEBUG)
    session = Session(
        db,
        SQLiteDialect(),
        with_logger(logger),
        with_query_logging(True),
        with_default_tracer(),
        with_default_meter(),
        with_slow_query_threshold(0.1),
    )
    repo = Repository(session, ObsTestModel)
    model = ObsTestModel(name="Combined Test")
    repo.create(model)
    repo.find_one(model.id)
    model.name = "Updated Combined Test"
    repo.update(model)
    assert _names(db) == ["Updated Combined Test"]
    repo.delete(model.id)
    assert _names(db) == []
    assert len(handler.messages) >= 4


def test_find_one_missing_raises(db):
    repo = Repository(Session(db, SQLiteDialect()), ObsTestModel)
    with pytest.raises(NotFoundError):
        repo.find_one(42)


def test_create_runs_hooks_and_sets_id(db):
    repo = Repository(Session(db, SQLiteDialect()), HookedModel)
    model = HookedModel(name="hooked")
    repo.create(model)
    assert model.id == 1
    assert model.events == ["before_create", "after_create"]


def test_before_create_error_stops_insert(db):
    repo = Repository(Session(db, SQLiteDialect()), HookedModel)
    with pytest.raises(ValueError, match="name not allowed"):
        repo.create(HookedModel(name="forbidden"))
    assert _names(db) == []


def test_update_and_delete_model_run_hooks(db):
    repo = Repository(Session(db, SQLiteDialect()), HookedModel)
    model = HookedModel(name="a")
    repo.create(model)
    model.name = "b"
    repo.update(model)
    assert _names(db) == ["b"]
    repo.delete_model(model)
    assert _names(db) == []
    assert model.events[2:] == ["before_update", "after_update", "before_delete", "after_delete"]


def test_batch_create(db):
    repo = Repository(Session(db, SQLiteDialect()), HookedModel)
    models = [HookedModel(name=n) for n in ("x", "y", "z")]
    repo.batch_create(models)
    assert _names(db) == ["x", "y", "z"]
    assert all(m.events == ["before_create", "after_create"] for m in models)
    assert [m.id for m in models] == [0, 0, 0]
    assert repo.query().count() == 3


def test_batch_create_empty_does_nothing(db):
    repo = Repository(Session(db, SQLiteDialect()), ObsTestModel)
    repo.batch_create([])
    assert _names(db) == []


def test_upsert_defaults_to_primary_key(db):
    repo = Repository(Session(db, SQLiteDialect()), ObsTestModel)
    repo.create(ObsTestModel(id=1, name="a"))
    repo.upsert(ObsTestModel(id=1, name="b"))
    assert _names(db) == ["b"]
    repo.upsert(ObsTestModel(id=2, name="c"))
    assert _names(db) == ["b", "c"]


def test_upsert_with_options(db):
    repo = Repository(Session(db, SQLiteDialect()), ObsTestModel)
    repo.create(ObsTestModel(id=5, name="old"))
    repo.upsert(
        ObsTestModel(id=5, name="new"), on_conflict(Column(name="id")), do_update(Column(name="name"))
    )
    assert repo.find_one(5) == ObsTestModel(id=5, name="new")


def test_scoped_update_and_delete(db):
    repo = Repository(Session(db, SQLiteDialect()), ObsTestModel)
    model = ObsTestModel(name="keep")
    repo.create(model)
    scoped = repo.where(Eq(Column(name="name"), "other"))
    assert scoped is not repo
    assert repo.scopes == ()
    model.name = "changed"
    scoped.update(model)
    assert _names(db) == ["keep"]
    scoped.delete(model.id)
    assert _names(db) == ["keep"]
    with pytest.raises(NotFoundError):
        scoped.find_one(model.id)
    repo.delete(model.id)
    assert _names(db) == []


def test_update_columns(db):
    repo = Repository(Session(db, SQLiteDialect()), ObsTestModel)
    model = ObsTestModel(name="first")
    repo.create(model)
    repo.update_columns(model.id, Assignment(Column(name="name"), "second"))
    assert _names(db) == ["second"]
    repo.update_columns(model.id)
    assert _names(db) == ["second"]


def test_update_columns_embeds_expression(db):
    repo = Repository(Session(db, SQLiteDialect()), ObsTestModel)
    model = ObsTestModel(name="first")
    repo.create(model)
    repo.update_columns(model.id, Assignment(Column(name="name"), Expr("upper(?)", ["shout"])))
    assert _names(db) == ["SHOUT"]