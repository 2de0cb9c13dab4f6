"""Tests for source configuration and its validation."""

import pytest

from dbsource.core.exceptions import ConfigurationError
from dbsource.sources.config import DatabaseSourceConfig, FieldState


class AlwaysMacro:
    """Macro evaluator reporting a fixed set of macro-bearing properties."""

    def __init__(self, *props: str):
        self.props = set(props)

    def contains_macro(self, prop: str) -> bool:
        return prop in self.props


def _messages(collector) -> list[str]:
    return [f.message for f in collector.failures]


class TestFieldState:
    """Tests for the resolved / deferred / absent tri-state."""

    def test_resolved(self, make_config):
        config = make_config(importQuery="SELECT 1")
        assert config.field_state("importQuery") == FieldState.RESOLVED

    def test_absent(self, make_config):
        config = make_config(importQuery="")
        assert config.field_state("importQuery") == FieldState.ABSENT
        assert config.field_state("boundingQuery") == FieldState.ABSENT

    def test_macro_text_is_deferred(self, make_config):
        config = make_config(importQuery="SELECT * FROM ${table}")
        assert config.field_state("importQuery") == FieldState.DEFERRED

    def test_macro_fields_are_deferred(self, make_config):
        config = make_config(macroFields=["numSplits"])
        assert config.field_state("numSplits") == FieldState.DEFERRED

    def test_python_field_names_accepted(self):
        config = DatabaseSourceConfig(dialect="mysql", import_query="SELECT 1", num_splits=1)
        assert config.field_state("import_query") == FieldState.RESOLVED
        assert config.has_one_split


class TestValidate:
    """Tests for DatabaseSourceConfig.validate_config."""

    def test_single_split_needs_no_split_settings(self, make_config, collector):
        config = make_config(importQuery="SELECT * FROM t WHERE $CONDITIONS", numSplits=1)

        config.validate_config(collector)

        assert collector.failures == []

    def test_single_split_without_token(self, make_config, collector):
        config = make_config(importQuery="SELECT * FROM t", numSplits=1)
        config.validate_config(collector)
        assert collector.failures == []

    def test_every_violation_is_collected(self, make_config, collector):
        config = make_config(importQuery="SELECT * FROM t", numSplits=4)

        config.validate_config(collector)

        assert _messages(collector) == [
            "Invalid Import Query.",
            "Split-By Field Name must be specified if Number of Splits is not set to 1.",
            "Bounding Query must be specified if Number of Splits is not set to 1.",
        ]
        assert collector.failures[0].corrective_action == (
            "Import Query SELECT * FROM t must contain the string '$CONDITIONS'."
        )
        assert collector.failures[1].config_properties == ["splitBy", "numSplits"]

    def test_unset_split_count_requires_split_settings(self, make_config, collector):
        config = make_config(importQuery="SELECT * FROM t WHERE $CONDITIONS")

        config.validate_config(collector)

        assert len(collector.failures) == 2

    def test_invalid_split_count(self, make_config, collector):
        config = make_config(
            importQuery="SELECT * FROM t WHERE $CONDITIONS",
            numSplits=0,
            splitBy="id",
            boundingQuery="SELECT MIN(id), MAX(id) FROM t",
        )

        config.validate_config(collector)

        assert _messages(collector) == ["Invalid value for numSplits '0'. Must be at least 1."]

    def test_missing_import_query(self, make_config, collector):
        config = make_config(numSplits=1)
        config.validate_config(collector)
        assert _messages(collector) == ["Import Query must be specified."]

    def test_deferred_fields_are_skipped(self, make_config, collector):
        config = make_config(
            importQuery="${query}",
            numSplits=4,
            splitBy="${column}",
            boundingQuery="${bounds}",
        )

        config.validate_config(collector)

        assert collector.failures == []

    def test_deferred_split_count_skips_split_checks(self, make_config, collector):
        config = make_config(importQuery="SELECT * FROM t", macroFields=["numSplits"])
        config.validate_config(collector)
        assert collector.failures == []

    def test_invalid_fetch_size(self, make_config, collector):
        config = make_config(importQuery="SELECT 1", numSplits=1, fetchSize=0)
        config.validate_config(collector)
        assert _messages(collector) == ["Invalid fetch size '0'. Must be at least 1."]

    def test_unparseable_schema(self, make_config, collector):
        config = make_config(importQuery="SELECT 1", numSplits=1, schema="{oops")
        config.validate_config(collector)
        assert collector.failures[0].message.startswith("Unable to parse schema")
        assert collector.failures[0].config_properties == ["schema"]

    def test_unknown_dialect(self, make_config, collector):
        config = make_config(dialect="db2", importQuery="SELECT 1", numSplits=1)
        config.validate_config(collector)
        assert _messages(collector)[0].startswith("Unsupported database dialect 'db2'")

    def test_unsupported_isolation_level(self, make_config, collector):
        config = make_config(
            importQuery="SELECT 1", numSplits=1, transactionIsolationLevel="TRANSACTION_NONE"
        )
        config.validate_config(collector)
        assert collector.failures[0].config_properties == ["transactionIsolationLevel"]

    def test_collector_raises_everything_together(self, make_config, collector):
        config = make_config(importQuery="SELECT * FROM t", numSplits=4)
        config.validate_config(collector)

        with pytest.raises(ConfigurationError) as exc_info:
            collector.get_or_raise()

        assert len(exc_info.value.failures) == 3
        assert "3 configuration errors" in str(exc_info.value)


class TestAccessors:
    """Tests for derived configuration values."""

    def test_queries_are_cleaned(self, make_config):
        config = make_config(
            importQuery="  SELECT * FROM t WHERE $CONDITIONS; ",
            boundingQuery="SELECT MIN(id), MAX(id) FROM t;",
            initQueries=["SET search_path TO shop;", "  "],
        )

        assert config.get_import_query() == "SELECT * FROM t WHERE $CONDITIONS"
        assert config.get_bounding_query() == "SELECT MIN(id), MAX(id) FROM t"
        assert config.get_init_queries() == ["SET search_path TO shop"]

    def test_can_connect(self, make_config):
        assert make_config(host="db", importQuery="SELECT 1").can_connect()
        assert not make_config(host="${host}", importQuery="SELECT 1").can_connect()
        assert not make_config(host="db", importQuery="${query}").can_connect()
        assert make_config(host="db", importQuery="SELECT 1", splitBy="${col}").can_connect()

    def test_isolation_level(self, make_config):
        config = make_config(transactionIsolationLevel="transaction_read_committed")
        assert config.isolation_level == "READ COMMITTED"

    def test_password_is_secret(self, make_config):
        config = make_config(password="hunter2")
        assert "hunter2" not in repr(config)

    def test_frozen(self, make_config):
        config = make_config(importQuery="SELECT 1")
        with pytest.raises(ValueError):
            config.import_query = "SELECT 2"


class TestFromHost:
    """Tests for building a config from host properties."""

    def test_macro_properties_are_deferred(self):
        config = DatabaseSourceConfig.from_host(
            {
                "dialect": "postgres",
                "importQuery": "SELECT * FROM t WHERE $CONDITIONS",
                "numSplits": "${splits}",
                "splitBy": "${column}",
            },
            AlwaysMacro("numSplits", "splitBy"),
        )

        assert config.num_splits is None
        assert config.split_by == "${column}"
        assert config.field_state("numSplits") == FieldState.DEFERRED
        assert config.field_state("splitBy") == FieldState.DEFERRED

    def test_without_evaluator(self):
        config = DatabaseSourceConfig.from_host(
            {"dialect": "mysql", "importQuery": "SELECT 1", "numSplits": 1}
        )
        assert config.macro_fields == frozenset()
        assert config.has_one_split
