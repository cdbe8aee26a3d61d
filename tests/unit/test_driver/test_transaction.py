"""Unit tests for transactions and the retrying executor."""

from dataclasses import dataclass
from typing import Any

import pytest

from sqlrecord.adapters.dbapi import DBAPIDriver
from sqlrecord.core import IsolationLevel, RecordConfig
from sqlrecord.driver import RecordTransaction, run_in_transaction
from sqlrecord.exceptions import (
    DatabaseError,
    DuplicateEntryError,
    ErrorKind,
    Failure,
    ImproperConfigurationError,
    SerializationConflictError,
    TransactionFinalizationError,
)
from sqlrecord.mapping import column

BEGIN = ["BEGIN", "SET TRANSACTION ISOLATION LEVEL READ COMMITTED"]
UPDATE = "UPDATE counter SET n = n + $1"


@dataclass
class User:
    id: int = column("id", autoincrement=True, default=0)
    email: str = column("email", nullable=True, default="")
    token: str = column("token", default="")


def increment(calls: "list[int]") -> Any:
    def work(tx: RecordTransaction) -> int:
        calls.append(1)
        tx.execute("UPDATE counter SET n = n + ?", 1)
        return len(calls)

    return work


def test_transact_commits_once(driver: DBAPIDriver, connection: Any) -> None:
    calls: list[int] = []

    assert driver.transact(increment(calls)) == 1

    assert connection.statements == [*BEGIN, UPDATE, "COMMIT"]
    assert connection.committed == [(1,)]


def test_commit_conflict_reruns_whole_unit(driver: DBAPIDriver, connection: Any, pg_error: Any) -> None:
    connection.fail("COMMIT", pg_error("could not serialize access", "40001"))
    calls: list[int] = []

    result = driver.transact(increment(calls))

    assert result == 2
    assert connection.statements == [*BEGIN, UPDATE, "COMMIT", *BEGIN, UPDATE, "COMMIT"]
    assert connection.committed == [(1,)]


def test_statement_conflict_rolls_back_and_retries(driver: DBAPIDriver, connection: Any, pg_error: Any) -> None:
    connection.fail(UPDATE, pg_error("could not serialize access", "40001"))
    calls: list[int] = []

    result = driver.transact(increment(calls))

    assert result == 2
    assert connection.statements == [*BEGIN, UPDATE, "ROLLBACK", *BEGIN, UPDATE, "COMMIT"]
    assert connection.committed == [(1,)]


def test_retries_are_unbounded(driver: DBAPIDriver, connection: Any, pg_error: Any) -> None:
    connection.fail("COMMIT", *(pg_error("conflict", "40001") for _ in range(5)))
    calls: list[int] = []

    assert driver.transact(increment(calls)) == 6
    assert connection.statements.count("COMMIT") == 6
    assert connection.committed == [(1,)]


def test_begin_conflict_is_retried(driver: DBAPIDriver, connection: Any, pg_error: Any) -> None:
    connection.fail("BEGIN", pg_error("could not serialize access", "40001"))
    calls: list[int] = []

    assert driver.transact(increment(calls)) == 1
    assert connection.statements == ["BEGIN", *BEGIN, UPDATE, "COMMIT"]


def test_begin_failure_is_surfaced(driver: DBAPIDriver, connection: Any, pg_error: Any) -> None:
    connection.fail("BEGIN", pg_error("connection is read only", "25006"))
    calls: list[int] = []

    with pytest.raises(DatabaseError):
        driver.transact(increment(calls))

    assert calls == []
    assert connection.statements == ["BEGIN"]


def test_returned_conflict_failure_is_retried(driver: DBAPIDriver, connection: Any) -> None:
    attempts: list[int] = []

    def work(tx: RecordTransaction) -> Any:
        attempts.append(1)
        if len(attempts) == 1:
            return Failure(SerializationConflictError("conflict"), ErrorKind.SERIALIZATION_CONFLICT)
        return "done"

    assert driver.transact(work) == "done"
    assert connection.statements == [*BEGIN, "ROLLBACK", *BEGIN, "COMMIT"]


def test_duplicate_entry_is_surfaced_after_rollback(driver: DBAPIDriver, connection: Any, pg_error: Any) -> None:
    insert = "INSERT INTO user (email, token) VALUES ($1, $2)"
    connection.fail(insert, pg_error('duplicate key value violates unique constraint "user_email_key"', "23505"))
    calls: list[int] = []

    def work(tx: RecordTransaction) -> None:
        calls.append(1)
        tx.execute("INSERT INTO user (email, token) VALUES (?, ?)", User(email="a@example.com", token="t"))

    with pytest.raises(DuplicateEntryError) as exc_info:
        driver.transact(work)

    assert len(calls) == 1
    assert exc_info.value.code == "23505"
    assert connection.statements == [*BEGIN, insert, "ROLLBACK"]
    assert connection.committed == []


def test_returned_driver_failure_is_mapped(driver: DBAPIDriver, connection: Any, pg_error: Any) -> None:
    error = pg_error("duplicate key", "23505")

    with pytest.raises(DuplicateEntryError) as exc_info:
        driver.transact(lambda tx: Failure.from_exception(error, driver.error_codes))

    assert exc_info.value.__cause__ is error
    assert connection.statements == [*BEGIN, "ROLLBACK"]


def test_unexpected_errors_propagate_unchanged(driver: DBAPIDriver, connection: Any) -> None:
    def work(tx: RecordTransaction) -> None:
        msg = "bad input"
        raise ValueError(msg)

    with pytest.raises(ValueError, match="bad input"):
        driver.transact(work)

    assert connection.statements == [*BEGIN, "ROLLBACK"]


def test_returned_failure_is_raised(driver: DBAPIDriver) -> None:
    with pytest.raises(KeyError):
        driver.transact(lambda tx: Failure(KeyError("missing")))


def test_non_retryable_commit_failure_is_surfaced(driver: DBAPIDriver, connection: Any, pg_error: Any) -> None:
    connection.fail("COMMIT", pg_error("check violation", "23514"))

    with pytest.raises(DatabaseError) as exc_info:
        driver.transact(increment([]))

    assert exc_info.value.kind is ErrorKind.OTHER
    assert connection.statements.count("COMMIT") == 1
    assert "ROLLBACK" not in connection.statements


def test_rollback_failure_escalates(driver: DBAPIDriver, connection: Any, pg_error: Any) -> None:
    connection.fail(UPDATE, pg_error("duplicate key", "23505"))
    connection.fail("ROLLBACK", RuntimeError("connection lost"))

    with pytest.raises(TransactionFinalizationError) as exc_info:
        driver.transact(increment([]))

    cause = exc_info.value.__cause__
    assert isinstance(cause, RuntimeError)
    assert isinstance(cause.__context__, DuplicateEntryError)


def test_work_may_commit_itself(driver: DBAPIDriver, connection: Any) -> None:
    def work(tx: RecordTransaction) -> str:
        tx.execute("UPDATE counter SET n = n + ?", 1)
        tx.commit()
        return "ok"

    assert driver.transact(work) == "ok"
    assert connection.statements == [*BEGIN, UPDATE, "COMMIT"]


def test_work_may_roll_back_itself(driver: DBAPIDriver, connection: Any) -> None:
    def work(tx: RecordTransaction) -> str:
        tx.execute("UPDATE counter SET n = n + ?", 1)
        tx.rollback()
        return "abandoned"

    assert driver.transact(work) == "abandoned"
    assert connection.statements == [*BEGIN, UPDATE, "ROLLBACK"]
    assert connection.committed == []


def test_self_commit_conflict_is_retried(driver: DBAPIDriver, connection: Any, pg_error: Any) -> None:
    connection.fail("COMMIT", pg_error("conflict", "40001"))
    calls: list[int] = []

    def work(tx: RecordTransaction) -> int:
        calls.append(1)
        tx.execute("UPDATE counter SET n = n + ?", 1)
        tx.commit()
        return len(calls)

    assert driver.transact(work) == 2
    assert connection.committed == [(1,)]


@pytest.mark.parametrize("action", ["execute", "commit", "rollback"])
def test_finalized_transaction_rejects_statements(driver: DBAPIDriver, action: str) -> None:
    tx = driver.begin()
    tx.commit()

    with pytest.raises(ImproperConfigurationError, match="transaction already finalized"):
        if action == "execute":
            tx.execute("SELECT 1")
        else:
            getattr(tx, action)()


def test_context_manager_rolls_back_unfinalized(driver: DBAPIDriver, connection: Any) -> None:
    with driver.begin() as tx:
        tx.execute("UPDATE counter SET n = n + ?", 1)

    assert tx.finalized
    assert connection.statements == [*BEGIN, UPDATE, "ROLLBACK"]


def test_finalize_is_idempotent(driver: DBAPIDriver, connection: Any) -> None:
    tx = driver.begin()

    tx.finalize()
    tx.finalize()

    assert connection.statements.count("ROLLBACK") == 1


def test_transact_serializable(driver: DBAPIDriver, connection: Any) -> None:
    assert driver.transact_serializable(lambda tx: tx.isolation_level) is IsolationLevel.SERIALIZABLE
    assert connection.statements[:2] == ["BEGIN", "SET TRANSACTION ISOLATION LEVEL SERIALIZABLE"]


@pytest.mark.parametrize(
    ("requested", "statement"),
    [
        ("repeatable read", "SET TRANSACTION ISOLATION LEVEL REPEATABLE READ"),
        ("READ_UNCOMMITTED", "SET TRANSACTION ISOLATION LEVEL READ UNCOMMITTED"),
        (IsolationLevel.SERIALIZABLE, "SET TRANSACTION ISOLATION LEVEL SERIALIZABLE"),
    ],
)
def test_begin_applies_isolation_level(driver: DBAPIDriver, connection: Any, requested: Any, statement: str) -> None:
    tx = driver.begin(requested)

    assert connection.statements == ["BEGIN", statement]
    assert repr(tx).startswith("RecordTransaction(isolation_level=")


def test_default_isolation_level_comes_from_config(connection: Any) -> None:
    driver = DBAPIDriver(connection, RecordConfig(default_isolation_level="serializable"))

    run_in_transaction(driver, lambda tx: None)

    assert connection.statements[1] == "SET TRANSACTION ISOLATION LEVEL SERIALIZABLE"


def test_failed_isolation_level_rolls_back(driver: DBAPIDriver, connection: Any, pg_error: Any) -> None:
    statement = "SET TRANSACTION ISOLATION LEVEL SERIALIZABLE"
    connection.fail(statement, pg_error("SET TRANSACTION must be called before any query", "25001"))

    with pytest.raises(DatabaseError):
        driver.begin(IsolationLevel.SERIALIZABLE)

    assert connection.statements == ["BEGIN", statement, "ROLLBACK"]


def test_failed_rollback_after_isolation_level_escalates(driver: DBAPIDriver, connection: Any, pg_error: Any) -> None:
    statement = "SET TRANSACTION ISOLATION LEVEL SERIALIZABLE"
    connection.fail(statement, pg_error("SET TRANSACTION must be called before any query", "25001"))
    connection.fail("ROLLBACK", pg_error("terminating connection", "57P01"))

    with pytest.raises(TransactionFinalizationError, match="SERIALIZABLE failed") as exc_info:
        driver.transact_serializable(lambda tx: None)

    cause = exc_info.value.__cause__
    assert isinstance(cause, DatabaseError)
    assert cause.code == "57P01"
    assert isinstance(cause.__context__, DatabaseError)
    assert cause.__context__.code == "25001"
    assert connection.statements == ["BEGIN", statement, "ROLLBACK"]


def test_unknown_isolation_level(driver: DBAPIDriver, connection: Any) -> None:
    with pytest.raises(ImproperConfigurationError, match="Unsupported isolation level"):
        driver.begin("snapshot")

    assert connection.statements == []
