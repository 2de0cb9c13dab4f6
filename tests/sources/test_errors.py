"""Tests for database error classification."""

import pytest
from sqlalchemy.exc import OperationalError

from dbsource.core.exceptions import (
    ClassifiedError,
    DriverUnavailableError,
    QueryExecutionError,
    SourceConnectionError,
)
from dbsource.core.models.base import ErrorType
from dbsource.sources.dialects.mysql import CLOUDSQL_MYSQL_DOC_URL
from dbsource.sources.dialects.postgres import POSTGRES_DOC_URL
from dbsource.sources.errors import (
    ErrorClassification,
    ErrorClassifier,
    ErrorCodeRules,
    causal_chain,
    classified_errors,
    classify,
    documentation_link,
    extract_sql_error,
    format_sql_error_message,
    is_driver_error,
)


class TestClassify:
    """Tests for error type lookup per dialect."""

    def test_postgres_unique_violation_is_user(self):
        assert classify("postgres", 23505, "23505") == ErrorType.USER

    @pytest.mark.parametrize(
        ("sql_state", "expected"),
        [
            ("01000", ErrorType.USER),
            ("02000", ErrorType.USER),
            ("08006", ErrorType.SYSTEM),
            ("0A000", ErrorType.USER),
            ("22012", ErrorType.USER),
            ("28P01", ErrorType.USER),
            ("40001", ErrorType.SYSTEM),
            ("42P01", ErrorType.USER),
            ("53100", ErrorType.SYSTEM),
            ("54000", ErrorType.SYSTEM),
            ("55P03", ErrorType.USER),
            ("57014", ErrorType.SYSTEM),
            ("58030", ErrorType.SYSTEM),
            ("P0001", ErrorType.SYSTEM),
            ("XX000", ErrorType.SYSTEM),
            ("HV000", ErrorType.UNKNOWN),
            (None, ErrorType.UNKNOWN),
            ("", ErrorType.UNKNOWN),
        ],
    )
    def test_postgres_table(self, sql_state, expected):
        assert classify("postgres", None, sql_state) == expected

    def test_sql_state_class_is_case_insensitive(self):
        assert classify("postgres", None, "0a000") == ErrorType.USER

    @pytest.mark.parametrize(
        ("code", "expected"),
        [
            (1045, ErrorType.USER),
            (1000, ErrorType.USER),
            (5999, ErrorType.USER),
            (12000, ErrorType.SYSTEM),
            (51999, ErrorType.SYSTEM),
            (999999, ErrorType.UNKNOWN),
            (6000, ErrorType.UNKNOWN),
            (None, ErrorType.UNKNOWN),
            ("1045", ErrorType.USER),
            ("not-a-code", ErrorType.UNKNOWN),
        ],
    )
    def test_mysql_ranges(self, code, expected):
        assert classify("mysql", code, "HY000") == expected

    def test_mariadb_reuses_mysql_ranges(self):
        assert classify("mariadb", 1045, None) == ErrorType.USER
        assert classify("mariadb", 12000, None) == ErrorType.SYSTEM

    def test_cloudsql_variants_share_tables(self):
        assert classify("cloudsql-mysql", 1045, None) == ErrorType.USER
        assert classify("cloudsql-postgresql", None, "23505") == ErrorType.USER

    def test_dialects_without_tables(self):
        assert classify("oracle", 942, "42000") == ErrorType.UNKNOWN
        assert classify("duckdb", None, "42000") == ErrorType.UNKNOWN

    def test_documentation_links(self):
        assert documentation_link("postgres") == POSTGRES_DOC_URL
        assert documentation_link("cloudsql-mysql") == CLOUDSQL_MYSQL_DOC_URL
        assert documentation_link("duckdb") is None


class TestComposition:
    """Tests for classifier composition."""

    def test_overrides_win_over_base_table(self):
        base = ErrorClassifier(
            name="base",
            rules=ErrorCodeRules(
                sql_state_types={"42": ErrorType.USER},
                code_ranges=((1, 10, ErrorType.USER),),
            ),
        )
        derived = base.with_overrides(
            name="derived",
            documentation_link="https://example.com/errors",
            sql_state_types={"42": ErrorType.SYSTEM},
            code_ranges=((5, 5, ErrorType.SYSTEM),),
        )

        assert derived.classify(None, "42000") == ErrorType.SYSTEM
        assert derived.classify(5, None) == ErrorType.SYSTEM
        assert derived.classify(3, None) == ErrorType.USER
        assert derived.documentation_link == "https://example.com/errors"
        # Base is untouched
        assert base.classify(None, "42000") == ErrorType.USER
        assert base.documentation_link is None


class TestFormatMessage:
    """Tests for format_sql_error_message."""

    def test_without_link(self):
        message = format_sql_error_message("schema probe", "relation does not exist", 7, "42P01")
        assert message == (
            "Error occurred in the phase: 'schema probe'. Error message: 'relation does not exist'. "
            "Error code: '7'. sqlState: '42P01'"
        )

    def test_with_link(self):
        message = format_sql_error_message(
            "bounding query", "boom", None, None, "https://example.com/errors"
        )
        assert message.endswith("sqlState: 'None'. For more details, see https://example.com/errors")


class TestCausalChain:
    """Tests for causal chain walking."""

    def test_cause_then_context(self):
        root = KeyError("root")
        middle = ValueError("middle")
        middle.__context__ = root
        top = RuntimeError("top")
        top.__cause__ = middle

        assert causal_chain(top) == [top, middle, root]

    def test_suppressed_context_is_skipped(self):
        root = KeyError("root")
        top = RuntimeError("top")
        top.__context__ = root
        top.__suppress_context__ = True

        assert causal_chain(top) == [top]

    def test_cycle_safe(self):
        a = ValueError("a")
        b = ValueError("b")
        a.__cause__ = b
        b.__cause__ = a

        assert causal_chain(a) == [a, b]


class TestExtractSqlError:
    """Tests for driver attribute extraction."""

    def test_psycopg_style(self, postgres_error):
        info = extract_sql_error(postgres_error("duplicate key", sqlstate="23505"))
        assert (info.message, info.error_code, info.sql_state) == ("duplicate key", None, "23505")

    def test_pymysql_style(self, mysql_error):
        info = extract_sql_error(mysql_error(1045, "Access denied"))
        assert (info.message, info.error_code, info.sql_state) == ("Access denied", 1045, None)

    def test_oracledb_style(self):
        class OracleErrorInfo:
            code = 942
            message = "ORA-00942: table or view does not exist"

        class DatabaseError(Exception):
            pass

        info = extract_sql_error(DatabaseError(OracleErrorInfo()))
        assert info.error_code == 942
        assert info.message.startswith("ORA-00942")

    def test_sqlalchemy_wrapper_is_unwrapped(self, postgres_error):
        wrapped = OperationalError("SELECT 1", None, postgres_error("gone", sqlstate="08006"))

        info = extract_sql_error(wrapped)

        assert info.message == "gone"
        assert info.sql_state == "08006"

    def test_driver_error_detection(self, postgres_error):
        assert is_driver_error(postgres_error("x"))
        assert is_driver_error(OperationalError("SELECT 1", None, Exception("x")))
        assert not is_driver_error(ValueError("x"))


class TestGetExceptionDetails:
    """Tests for ErrorClassifier.get_exception_details."""

    @pytest.fixture
    def postgres(self):
        from dbsource.sources.dialects import POSTGRES

        return POSTGRES.error_classifier

    def test_driver_error(self, postgres, postgres_error):
        details = postgres.get_exception_details(
            postgres_error('relation "t" does not exist', sqlstate="42P01"), "schema probe"
        )

        assert details.error_type == ErrorType.USER
        assert details.sql_state == "42P01"
        assert details.subcategory == "Syntax Error or Access Rule Violation"
        assert details.phase == "schema probe"
        assert details.category == "plugin"
        assert details.documentation_link == POSTGRES_DOC_URL
        assert details.detailed_message.startswith("Error occurred in the phase: 'schema probe'.")
        assert details.detailed_message.endswith(f"For more details, see {POSTGRES_DOC_URL}")

    def test_driver_error_found_through_cause(self, postgres, postgres_error):
        try:
            try:
                raise postgres_error("timeout", sqlstate="57014")
            except Exception as e:
                raise KeyError("lookup") from e
        except KeyError as e:
            details = postgres.get_exception_details(e, "bounding query")

        assert details.error_type == ErrorType.SYSTEM
        assert details.message == "timeout"

    def test_value_error_is_user(self, postgres):
        details = postgres.get_exception_details(ValueError("bad input"), "split execution")

        assert details.error_type == ErrorType.USER
        assert details.detailed_message == (
            "Error occurred in the phase: 'split execution'. Error message: bad input"
        )

    def test_runtime_error_is_system(self, postgres):
        details = postgres.get_exception_details(RuntimeError("no state"), "connect")
        assert details.error_type == ErrorType.SYSTEM

    def test_previously_classified_is_skipped(self, postgres, postgres_error):
        classification = ErrorClassification(
            error_type=ErrorType.USER, message="m", detailed_message="d", phase="schema probe"
        )
        try:
            try:
                raise postgres_error("inner", sqlstate="42P01")
            except Exception as e:
                raise QueryExecutionError(classification) from e
        except QueryExecutionError as e:
            outer = KeyError("outer")
            outer.__cause__ = e

        assert postgres.get_exception_details(outer, "schema probe") is None

    def test_classified_error_itself_is_skipped(self, postgres):
        classification = ErrorClassification(
            error_type=ErrorType.USER, message="m", detailed_message="d"
        )
        assert postgres.get_exception_details(ClassifiedError(classification), "x") is None

    def test_unrecognized_chain(self, postgres):
        assert postgres.get_exception_details(KeyError("k"), "schema probe") is None


class TestClassifiedErrors:
    """Tests for the classified_errors context manager."""

    def test_wraps_driver_error(self, postgres_error):
        from dbsource.sources.dialects import POSTGRES

        raw = postgres_error("boom", sqlstate="XX000")
        with pytest.raises(QueryExecutionError) as exc_info:
            with classified_errors(POSTGRES.error_classifier, "split execution"):
                raise raw

        assert exc_info.value.__cause__ is raw
        assert exc_info.value.phase == "split execution"
        assert exc_info.value.classification.error_type == ErrorType.SYSTEM

    def test_unrecognized_errors_propagate_unchanged(self):
        from dbsource.sources.dialects import POSTGRES

        with pytest.raises(KeyError):
            with classified_errors(POSTGRES.error_classifier, "split execution"):
                raise KeyError("k")

    def test_connector_errors_propagate_unchanged(self):
        from dbsource.sources.dialects import POSTGRES

        error = DriverUnavailableError("Unable to load driver 'oracle+oracledb'")
        with pytest.raises(DriverUnavailableError) as exc_info:
            with classified_errors(POSTGRES.error_classifier, "connect", SourceConnectionError):
                raise error

        assert exc_info.value is error

    def test_classified_errors_are_not_wrapped_twice(self, postgres_error):
        from dbsource.sources.dialects import POSTGRES

        classifier = POSTGRES.error_classifier
        with pytest.raises(QueryExecutionError) as exc_info:
            with classified_errors(classifier, "outer"):
                with classified_errors(classifier, "inner"):
                    raise postgres_error("boom", sqlstate="42P01")

        assert exc_info.value.phase == "inner"
