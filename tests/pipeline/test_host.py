"""Tests for the in-process host collaborators."""

import pytest

from dbsource.core.exceptions import ConfigurationError
from dbsource.core.models.base import ValidationFailure
from dbsource.pipeline.host import InMemoryLineage, LineageEntry


class TestValidationCollector:
    """Tests for ValidationCollector."""

    def test_nothing_collected(self, collector):
        collector.get_or_raise()
        assert not collector.has_failures

    def test_raises_all_failures(self, collector):
        collector.add_failure(ValidationFailure(message="first"))
        collector.add_failure(ValidationFailure(message="second", config_properties=["splitBy"]))

        with pytest.raises(ConfigurationError) as exc_info:
            collector.get_or_raise()

        assert [f.message for f in exc_info.value.failures] == ["first", "second"]
        assert "- first" in str(exc_info.value)
        assert collector.has_failures


def test_lineage_records_fields():
    lineage = InMemoryLineage()

    lineage.record_read("Read", "Read from database plugin", ("id", "name"))

    assert lineage.entries == [LineageEntry("Read", "Read from database plugin", ["id", "name"])]
