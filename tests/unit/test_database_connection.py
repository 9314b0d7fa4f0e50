"""
Unit tests for SqlConnection and connection string handling
(sql_compare/database/connection.py)
"""

import pytest

from sql_compare.database.connection import (
    DEFAULT_ODBC_DRIVER,
    SqlConnection,
    build_connection_string,
    parse_connection_string,
)
from sql_compare.database.exceptions import (
    ConnectionError,
    DatabaseException,
    QueryExecutionError,
)
from sql_compare.domain.query import Query
from tests.fake_odbc import FakeOdbc


class TestBuildConnectionString:
    """Tests for build_connection_string()."""

    def test_adds_driver_and_mars(self):
        result = build_connection_string("Server=db;Database=shop;UID=sa;PWD=secret")

        assert result == (
            f"Driver={{{DEFAULT_ODBC_DRIVER}}};Server=db;Database=shop;"
            "UID=sa;PWD=secret;MARS_Connection=yes"
        )

    def test_keeps_explicit_driver(self):
        result = build_connection_string(
            "DRIVER={ODBC Driver 17 for SQL Server};SERVER=db", odbc_driver="ignored"
        )

        assert result.startswith("DRIVER={ODBC Driver 17 for SQL Server};SERVER=db")
        assert "ignored" not in result

    def test_overrides_disabled_mars(self):
        result = build_connection_string("Driver={x};Server=db;MARS_Connection=no")

        assert "MARS_Connection=yes" in result
        assert "MARS_Connection=no" not in result

    def test_translates_ado_net_keywords(self):
        result = build_connection_string(
            "Data Source=db;Initial Catalog=shop;Integrated Security=SSPI;"
            "MultipleActiveResultSets=True",
            odbc_driver="ODBC Driver 18 for SQL Server",
        )

        assert result == (
            "Driver={ODBC Driver 18 for SQL Server};Server=db;Database=shop;"
            "Trusted_Connection=yes;MARS_Connection=yes"
        )

    def test_integrated_security_false_is_dropped(self):
        result = build_connection_string("Server=db;Integrated Security=false")

        assert "Trusted_Connection" not in result
        assert "Integrated Security" not in result

    def test_encryption_booleans_become_yes_no(self):
        result = build_connection_string(
            "Data Source=db;Encrypt=True;Trust Server Certificate=FALSE"
        )

        assert result == (
            f"Driver={{{DEFAULT_ODBC_DRIVER}}};Server=db;Encrypt=yes;"
            "TrustServerCertificate=no;MARS_Connection=yes"
        )

    def test_encryption_values_other_than_booleans_kept(self):
        result = build_connection_string("Server=db;Encrypt=strict;TrustServerCertificate=yes")

        assert "Encrypt=strict;TrustServerCertificate=yes;" in result

    def test_braced_value_may_contain_semicolon(self):
        pairs = parse_connection_string("Server=db;PWD={se;cret};UID=sa")

        assert pairs["pwd"] == ("PWD", "{se;cret}")
        assert pairs["uid"] == ("UID", "sa")

    def test_invalid_connection_string(self):
        with pytest.raises(ConnectionError):
            build_connection_string("just some text")


class TestSqlConnection:
    """Tests for SqlConnection lifecycle and execution."""

    @pytest.fixture
    def driver(self):
        return FakeOdbc()

    def test_open_connects_with_autocommit(self, driver):
        connection = SqlConnection("Server=db", driver=driver)
        connection.open()

        assert connection.is_open
        raw = driver.connections[0]
        assert raw.autocommit is True
        assert "MARS_Connection=yes" in raw.connection_string

    def test_open_failure_raises_connection_error(self):
        connection = SqlConnection("Server=db", driver=FakeOdbc(connect_error="Login failed"))

        with pytest.raises(ConnectionError) as exc_info:
            connection.open()

        assert "Login failed" in str(exc_info.value)
        assert isinstance(exc_info.value, DatabaseException)

    def test_execute_returns_reader_and_elapsed_ms(self, driver):
        with SqlConnection("Server=db", driver=driver) as connection:
            reader, elapsed_ms = connection.execute(Query("original", "SELECT 1 AS A"))

            assert reader.field_names == ("A",)
            assert reader.read() == (1,)
            assert isinstance(elapsed_ms, int)
            assert elapsed_ms >= 0
            reader.close()

    def test_both_scripts_share_one_connection(self, driver):
        with SqlConnection("Server=db", driver=driver) as connection:
            first, _ = connection.execute(Query("original", "SELECT 1 AS A"))
            second, _ = connection.execute(Query("compare", "SELECT 1 AS A"))
            first.close()
            second.close()

        assert len(driver.connections) == 1
        assert driver.connections[0].executed == ["SELECT 1 AS A", "SELECT 1 AS A"]

    def test_execute_error_raises_query_execution_error(self, driver):
        with SqlConnection("Server=db", driver=driver) as connection:
            with pytest.raises(QueryExecutionError) as exc_info:
                connection.execute(Query("compare", "SELECT oops"))

        assert exc_info.value.query_name == "compare"
        assert driver.connections[0].cursors[0].closed

    def test_execute_requires_open_connection(self, driver):
        connection = SqlConnection("Server=db", driver=driver)

        with pytest.raises(ConnectionError):
            connection.execute(Query("original", "SELECT 1 AS A"))

    def test_context_manager_closes_connection(self, driver):
        with SqlConnection("Server=db", driver=driver) as connection:
            pass

        assert not connection.is_open
        assert driver.connections[0].closed

    def test_close_on_error(self, driver):
        with pytest.raises(RuntimeError):
            with SqlConnection("Server=db", driver=driver):
                raise RuntimeError("boom")

        assert driver.connections[0].closed
