"""Pipeline test fixtures."""

import pytest

ORDERS_QUERY = "SELECT id, customer, amount FROM orders WHERE $CONDITIONS"
ORDERS_BOUNDS = "SELECT MIN(id), MAX(id) FROM orders"


@pytest.fixture
def orders_row_source(fake_row_source, describe_column):
    """Fake Postgres database with an orders table of ids 0..99."""

    def _make(bounds: tuple = (0, 99), **kwargs):
        source = fake_row_source(**kwargs)
        source.on("MIN(id)", description=[describe_column("min", 23)], rows=[bounds])
        source.on(
            "FROM orders",
            description=[
                describe_column("id", 23),
                describe_column("customer", 1043),
                describe_column("amount", 1700, 10, 2),
            ],
            rows=[(1, "acme", None)],
        )
        return source

    return _make


@pytest.fixture
def orders_config(make_config):
    """Config for a four-way split read of orders."""

    def _make(**overrides):
        properties = {
            "host": "db",
            "database": "shop",
            "user": "reader",
            "importQuery": ORDERS_QUERY,
            "boundingQuery": ORDERS_BOUNDS,
            "splitBy": "id",
            "numSplits": 4,
        }
        properties.update(overrides)
        return make_config(**properties)

    return _make
