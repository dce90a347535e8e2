from dataclasses import dataclass

import pytest

from ormkit.expressions import Column
from ormkit.schema import (
    PK,
    Schema,
    SchemaNotRegisteredError,
    load_schema,
    register_schema,
)


@dataclass
class Item:
    id: int = 0
    name: str = ""


class ItemSchema(Schema):
    def table_name(self):
        return "items"

    def select_columns(self):
        return ["id", "name"]

    def insert_row(self, model):
        if model.id:
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


class Unregistered:
    pass


def test_pk_fields():
    pk = PK(column=Column(name="id"), value=42)
    assert pk.column.name == "id"
    assert pk.value == 42


def test_pk_builds_equality():
    assert PK(Column(name="id"), 42).build() == ("id = ?", [42])


def test_register_and_load():
    schema = ItemSchema()
    register_schema(Item, schema)
    assert load_schema(Item) is schema
    assert load_schema(Item).table_name() == "items"


def test_register_replaces_previous():
    first, second = ItemSchema(), ItemSchema()
    register_schema(Item, first)
    register_schema(Item, second)
    assert load_schema(Item) is second


def test_load_unregistered_raises():
    with pytest.raises(SchemaNotRegisteredError, match="Unregistered"):
        load_schema(Unregistered)


def test_schema_is_abstract():
    with pytest.raises(TypeError):
        Schema()


def test_schema_methods_on_model():
    register_schema(Item, ItemSchema())
    schema = load_schema(Item)
    item = Item(name="widget")
    assert schema.insert_row(item) == (["name"], ["widget"])
    schema.set_pk(item, 7)
    assert item.id == 7
    pk = schema.pk(item)
    assert pk.value == 7
    assert pk.build() == ("id = ?", [7])
    assert schema.pk(None).value is None
    assert schema.insert_row(item) == (["id", "name"], [7, "widget"])