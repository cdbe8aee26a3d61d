"""Test the psycopg driver against PostgreSQL."""

from collections.abc import Generator
from dataclasses import dataclass

import psycopg
import pytest
from pytest_databases.docker.postgres import PostgresService

from sqlrecord.adapters.psycopg import PsycopgConfig, PsycopgSyncDriver
from sqlrecord.core import IsolationLevel
from sqlrecord.driver import RecordTransaction
from sqlrecord.exceptions import DuplicateEntryError, NotFoundError, SerializationConflictError
from sqlrecord.mapping import Ref, column

pytestmark = [pytest.mark.postgres, pytest.mark.xdist_group("postgres")]


@dataclass
class Member:
    id: int = column("id", autoincrement=True, default=0)
    email: str = column("email", nullable=True, default="")
    token: str = column("token", default="")


@pytest.fixture
def conninfo(postgres_service: PostgresService) -> str:
    return (
        f"host={postgres_service.host} port={postgres_service.port} user={postgres_service.user} "
        f"password={postgres_service.password} dbname={postgres_service.database}"
    )


@pytest.fixture
def psycopg_config(conninfo: str) -> Generator[PsycopgConfig, None, None]:
    config = PsycopgConfig(pool_config={"conninfo": conninfo, "min_size": 1, "max_size": 4})
    with config.provide_session() as driver:
        driver.execute("DROP TABLE IF EXISTS member")
        driver.execute("CREATE TABLE member (id SERIAL PRIMARY KEY, email TEXT UNIQUE, token TEXT NOT NULL)")
    yield config
    config.close_pool()


@pytest.fixture
def psycopg_session(psycopg_config: PsycopgConfig) -> Generator[PsycopgSyncDriver, None, None]:
    with psycopg_config.provide_session() as driver:
        yield driver


def insert(driver: PsycopgSyncDriver, member: Member) -> int:
    new_id: Ref[int] = Ref()
    driver.query_row("INSERT INTO member (email, token) VALUES (?, ?) RETURNING id", member).scan(new_id)
    return new_id.value or 0


def test_insert_and_query_one(psycopg_session: PsycopgSyncDriver) -> None:
    member_id = insert(psycopg_session, Member(email="a@example.com", token="t"))

    member = psycopg_session.query_one(Member, "SELECT id, email, token FROM member WHERE id = ?", member_id)

    assert member == Member(id=member_id, email="a@example.com", token="t")


def test_nullable_round_trip(psycopg_session: PsycopgSyncDriver) -> None:
    member_id = insert(psycopg_session, Member(email="", token="t"))
    is_null: Ref[bool] = Ref()

    psycopg_session.query_row("SELECT email IS NULL FROM member WHERE id = ?", member_id).scan(is_null)
    member = psycopg_session.query_one(Member, "SELECT id, email, token FROM member WHERE id = ?", member_id)

    assert is_null.value is True
    assert member.email == ""


def test_percent_and_literal_markers(psycopg_session: PsycopgSyncDriver) -> None:
    insert(psycopg_session, Member(email="50%?@example.com", token="t"))

    members = psycopg_session.query_all(
        Member, "SELECT id, email, token FROM member WHERE email LIKE '50%?%' AND token = ?", "t"
    )

    assert [m.email for m in members] == ["50%?@example.com"]


def test_query_one_not_found(psycopg_session: PsycopgSyncDriver) -> None:
    with pytest.raises(NotFoundError):
        psycopg_session.query_one(Member, "SELECT id, email, token FROM member WHERE id = ?", -1)


def test_duplicate_entry(psycopg_session: PsycopgSyncDriver) -> None:
    insert(psycopg_session, Member(email="a@example.com", token="t"))

    with pytest.raises(DuplicateEntryError) as exc_info:
        insert(psycopg_session, Member(email="a@example.com", token="t"))

    assert exc_info.value.code == "23505"
    assert exc_info.value.constraint == "member_email_key"
    assert isinstance(exc_info.value.__cause__, psycopg.errors.UniqueViolation)


def test_transact_rolls_back_on_duplicate(psycopg_session: PsycopgSyncDriver) -> None:
    insert(psycopg_session, Member(email="a@example.com", token="t"))

    def work(tx: RecordTransaction) -> None:
        tx.execute("INSERT INTO member (email, token) VALUES (?, ?)", Member(email="b@example.com", token="t"))
        tx.execute("INSERT INTO member (email, token) VALUES (?, ?)", Member(email="a@example.com", token="t"))

    with pytest.raises(DuplicateEntryError):
        psycopg_session.transact(work)

    assert len(psycopg_session.query_all(Member, "SELECT id, email, token FROM member")) == 1


def test_isolation_level_is_applied(psycopg_session: PsycopgSyncDriver) -> None:
    level: Ref[str] = Ref()

    def work(tx: RecordTransaction) -> None:
        tx.query_row("SHOW transaction_isolation").scan(level)

    psycopg_session.transact_serializable(work)

    assert level.value == "serializable"


def test_concurrent_update_is_retried(psycopg_session: PsycopgSyncDriver, psycopg_config: PsycopgConfig) -> None:
    member_id = insert(psycopg_session, Member(email="a@example.com", token="start"))
    attempts: list[int] = []

    with psycopg_config.provide_session() as other:

        def work(tx: RecordTransaction) -> str:
            attempts.append(1)
            token: Ref[str] = Ref()
            tx.query_row("SELECT token FROM member WHERE id = ?", member_id).scan(token)
            if len(attempts) == 1:
                other.execute("UPDATE member SET token = ? WHERE id = ?", "other", member_id)
            tx.execute("UPDATE member SET token = ? WHERE id = ?", f"{token.value}+mine", member_id)
            return token.value or ""

        seen = psycopg_session.transact(work, IsolationLevel.REPEATABLE_READ)

    final = psycopg_session.query_one(Member, "SELECT id, email, token FROM member WHERE id = ?", member_id)
    assert len(attempts) == 2
    assert seen == "other"
    assert final.token == "other+mine"


def test_serialization_conflict_outside_executor(
    psycopg_session: PsycopgSyncDriver, psycopg_config: PsycopgConfig
) -> None:
    member_id = insert(psycopg_session, Member(email="a@example.com", token="start"))

    with psycopg_config.provide_session() as other, psycopg_session.begin(IsolationLevel.REPEATABLE_READ) as tx:
        tx.query_row("SELECT token FROM member WHERE id = ?", member_id).scan(Ref())
        other.execute("UPDATE member SET token = ? WHERE id = ?", "other", member_id)
        with pytest.raises(SerializationConflictError) as exc_info:
            tx.execute("UPDATE member SET token = ? WHERE id = ?", "mine", member_id)

    assert exc_info.value.code == "40001"
