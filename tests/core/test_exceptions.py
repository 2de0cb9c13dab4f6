"""Tests for the connector error taxonomy."""

from dbsource.core.exceptions import (
    ConfigurationError,
    ConnectorError,
    QueryExecutionError,
    SchemaMismatchError,
)
from dbsource.core.models.base import ErrorType, Result, ValidationFailure
from dbsource.sources.errors import ErrorClassification


def test_single_failure_message():
    failure = ValidationFailure(message="Invalid Import Query.", corrective_action="Add it.")

    error = ConfigurationError.from_failures([failure])

    assert str(error) == "Invalid Import Query. Add it."
    assert error.failures == [failure]


def test_plain_configuration_error_carries_a_failure():
    error = ConfigurationError("Import Query must be specified.")

    assert isinstance(error, ValueError)
    assert error.failures[0].message == "Import Query must be specified."


def test_schema_mismatch_lists_fields():
    failures = [
        ValidationFailure(message="Schema field 'a' is not present in actual record"),
        ValidationFailure(message="Schema field 'b' has type 'int' but found 'long'."),
    ]

    error = SchemaMismatchError(failures)

    assert "'a'" in str(error)
    assert "'b'" in str(error)
    assert isinstance(error, ConnectorError)


def test_classified_error_exposes_phase():
    classification = ErrorClassification(
        error_type=ErrorType.SYSTEM,
        message="gone",
        detailed_message="Error occurred in the phase: 'connect'.",
        phase="connect",
    )

    error = QueryExecutionError(classification)

    assert error.phase == "connect"
    assert str(error) == "Error occurred in the phase: 'connect'."


class TestResult:
    """Tests for Result."""

    def test_ok(self):
        result = Result.ok(2, warnings=["w"])

        assert result.success
        assert result.value == 2
        assert result.error is None
        assert result.warnings == ["w"]

    def test_fail(self):
        result = Result.fail("nope")

        assert not result.success
        assert result.value is None
        assert result.error == "nope"
