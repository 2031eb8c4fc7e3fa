"""Tests for the job repositories (in-memory and SQLite)."""

import sqlite3

import pytest

from jobplane.errors import (
    JobNotFoundError,
    PersistenceError,
    StateConflictError,
    ValidationError,
)
from jobplane.repository import InMemoryJobRepository, SqliteJobRepository
from jobplane.schemas import Job, JobStatus, JobType, SingleJobConfig


def _job(job_id="job-abc12345", status=JobStatus.INIT, queue_id="q1", **config):
    return Job(
        id=job_id,
        user_name="alice",
        queue_id=queue_id,
        job_type=JobType.SINGLE,
        config=SingleJobConfig(name=config.pop("name", "job1"), queue_id=queue_id, **config),
        status=status,
    )


@pytest.fixture(params=["memory", "sqlite"])
def repo(request, tmp_path):
    if request.param == "memory":
        return InMemoryJobRepository()
    return SqliteJobRepository(tmp_path / "jobs.db")


class TestCreateAndGet:

    def test_round_trip(self, repo):
        job = _job(image="python:3.12", env={"A": "1"})
        job.extension_template = "kind: Pod\n"
        repo.create(job)

        stored = repo.get_by_id(job.id)
        assert stored.id == job.id
        assert stored.status == JobStatus.INIT
        assert stored.config == job.config
        assert stored.extension_template == "kind: Pod\n"
        assert stored.runtime_info is None
        assert stored.activated_at is None

    def test_duplicate_id(self, repo):
        repo.create(_job())
        with pytest.raises(PersistenceError):
            repo.create(_job())

    def test_missing_job(self, repo):
        with pytest.raises(JobNotFoundError):
            repo.get_by_id("job-missing")

    def test_get_status(self, repo):
        repo.create(_job(status=JobStatus.PENDING))
        assert repo.get_status("job-abc12345") == JobStatus.PENDING

    def test_returned_job_is_a_copy(self, repo):
        repo.create(_job())
        repo.get_by_id("job-abc12345").config.name = "mutated"
        assert repo.get_by_id("job-abc12345").config.name == "job1"


class TestUpdates:
    """State machine rules enforced on every update."""

    def test_update_status_and_message(self, repo):
        repo.create(_job())
        repo.update_status("job-abc12345", "queued", JobStatus.PENDING)
        stored = repo.get_by_id("job-abc12345")
        assert stored.status == JobStatus.PENDING
        assert stored.message == "queued"

    def test_message_only_keeps_status(self, repo):
        repo.create(_job(status=JobStatus.PENDING))
        repo.update_status("job-abc12345", "waiting for resources", "")
        stored = repo.get_by_id("job-abc12345")
        assert stored.status == JobStatus.PENDING
        assert stored.message == "waiting for resources"

    def test_string_status_accepted(self, repo):
        repo.create(_job())
        assert repo.update("job-abc12345", "pending", None, "") == JobStatus.PENDING

    def test_unknown_status_rejected(self, repo):
        repo.create(_job())
        with pytest.raises(ValidationError):
            repo.update("job-abc12345", "paused", None, "")

    def test_first_running_stamps_activated_at(self, repo):
        repo.create(_job(status=JobStatus.PENDING))
        repo.update("job-abc12345", JobStatus.RUNNING, None, "")
        first = repo.get_by_id("job-abc12345").activated_at
        assert first is not None

        repo.update("job-abc12345", JobStatus.RUNNING, None, "still running")
        assert repo.get_by_id("job-abc12345").activated_at == first

    def test_activated_at_not_set_for_other_statuses(self, repo):
        repo.create(_job())
        repo.update("job-abc12345", JobStatus.PENDING, None, "")
        assert repo.get_by_id("job-abc12345").activated_at is None

    def test_runtime_info_replaced_only_when_given(self, repo):
        repo.create(_job(status=JobStatus.PENDING))
        repo.update("job-abc12345", JobStatus.RUNNING, {"pod": "p-1"}, "")
        repo.update("job-abc12345", None, None, "progress")
        assert repo.get_by_id("job-abc12345").runtime_info == {"pod": "p-1"}

        repo.update("job-abc12345", None, {"pod": "p-2"}, "")
        assert repo.get_by_id("job-abc12345").runtime_info == {"pod": "p-2"}

    def test_update_returns_resulting_status(self, repo):
        repo.create(_job(status=JobStatus.RUNNING))
        assert repo.update("job-abc12345", None, None, "msg") == JobStatus.RUNNING
        assert repo.update("job-abc12345", JobStatus.SUCCEEDED, None, "") == JobStatus.SUCCEEDED

    @pytest.mark.parametrize("terminal", [
        JobStatus.SUCCEEDED, JobStatus.FAILED, JobStatus.TERMINATED,
    ])
    def test_terminal_job_is_immutable(self, repo, terminal):
        repo.create(_job(status=terminal))
        before = repo.get_by_id("job-abc12345")

        with pytest.raises(StateConflictError) as exc_info:
            repo.update("job-abc12345", JobStatus.RUNNING, {"pod": "p"}, "revive")
        assert exc_info.value.status == terminal.value
        with pytest.raises(StateConflictError):
            repo.update_status("job-abc12345", "only a message", "")

        after = repo.get_by_id("job-abc12345")
        assert after.status == terminal
        assert after.message == before.message
        assert after.runtime_info == before.runtime_info
        assert after.updated_at == before.updated_at

    def test_expected_status_match(self, repo):
        repo.create(_job(status=JobStatus.PENDING))
        repo.update(
            "job-abc12345", JobStatus.RUNNING, None, "", expected_status=JobStatus.PENDING
        )
        assert repo.get_status("job-abc12345") == JobStatus.RUNNING

    def test_expected_status_mismatch(self, repo):
        repo.create(_job(status=JobStatus.RUNNING))
        with pytest.raises(StateConflictError, match="expected pending"):
            repo.update(
                "job-abc12345", JobStatus.FAILED, None, "", expected_status=JobStatus.PENDING
            )
        assert repo.get_status("job-abc12345") == JobStatus.RUNNING

    def test_update_missing_job(self, repo):
        with pytest.raises(JobNotFoundError):
            repo.update("job-missing", JobStatus.PENDING, None, "")


class TestDelete:

    def test_delete_hides_job(self, repo):
        repo.create(_job())
        repo.delete("job-abc12345")
        with pytest.raises(JobNotFoundError):
            repo.get_by_id("job-abc12345")

    def test_delete_twice(self, repo):
        repo.create(_job())
        repo.delete("job-abc12345")
        with pytest.raises(JobNotFoundError):
            repo.delete("job-abc12345")

    def test_deleted_job_cannot_be_updated(self, repo):
        repo.create(_job())
        repo.delete("job-abc12345")
        with pytest.raises(JobNotFoundError):
            repo.update("job-abc12345", JobStatus.PENDING, None, "")


class TestListing:

    def test_list_by_queue_filters_status_and_queue(self, repo):
        repo.create(_job("job-1", JobStatus.PENDING))
        repo.create(_job("job-2", JobStatus.RUNNING))
        repo.create(_job("job-3", JobStatus.SUCCEEDED))
        repo.create(_job("job-4", JobStatus.PENDING, queue_id="q2"))

        jobs = repo.list_by_queue("q1", [JobStatus.PENDING, JobStatus.RUNNING])
        assert sorted(j.id for j in jobs) == ["job-1", "job-2"]

    def test_list_by_queue_no_statuses(self, repo):
        repo.create(_job("job-1", JobStatus.PENDING))
        assert repo.list_by_queue("q1", []) == []

    def test_list_by_queue_unknown_status(self, repo):
        repo.create(_job("job-1", JobStatus.PENDING))
        assert repo.list_by_queue("q1", ["bogus"]) == []
        assert repo.list_by_queue("q1", [JobStatus.PENDING, "bogus"]) == []

    def test_list_by_queue_skips_deleted(self, repo):
        repo.create(_job("job-1", JobStatus.PENDING))
        repo.delete("job-1")
        assert repo.list_by_queue("q1", [JobStatus.PENDING]) == []

    def test_list_by_run_prefix(self, repo):
        repo.create(_job("job-run1-a"))
        repo.create(_job("job-run1-b"))
        repo.create(_job("job-run10-a"))
        repo.create(_job("job-abc12345"))

        assert sorted(j.id for j in repo.list_by_run_prefix("run1")) == ["job-run1-a", "job-run1-b"]
        assert [j.id for j in repo.list_by_run_prefix("run1", "job-run1-b")] == ["job-run1-b"]
        assert repo.list_by_run_prefix("run1", "job-run10-a") == []

    def test_run_id_is_matched_literally(self, repo):
        repo.create(_job("job-r_n-a"))
        repo.create(_job("job-rxn-a"))
        repo.create(_job("job-r%-a"))

        assert [j.id for j in repo.list_by_run_prefix("r_n")] == ["job-r_n-a"]
        assert [j.id for j in repo.list_by_run_prefix("r%")] == ["job-r%-a"]

    def test_run_prefix_is_case_sensitive(self, repo):
        repo.create(_job("job-RUN-a"))
        assert repo.list_by_run_prefix("run") == []


class TestSqliteSpecifics:

    @pytest.fixture
    def db_path(self, tmp_path):
        return tmp_path / "jobs.db"

    def test_soft_delete_keeps_row(self, db_path):
        repo = SqliteJobRepository(db_path)
        repo.create(_job())
        repo.delete("job-abc12345")

        conn = sqlite3.connect(db_path)
        try:
            deleted_at, = conn.execute(
                "SELECT deleted_at FROM job WHERE id = ?", ("job-abc12345",)
            ).fetchone()
        finally:
            conn.close()
        assert deleted_at is not None

    def test_update_does_not_rewrite_config(self, db_path):
        repo = SqliteJobRepository(db_path)
        repo.create(_job(status=JobStatus.PENDING))

        def config_column():
            conn = sqlite3.connect(db_path)
            try:
                return conn.execute("SELECT config FROM job").fetchone()[0]
            finally:
                conn.close()

        before = config_column()
        repo.update("job-abc12345", JobStatus.RUNNING, {"pod": "p"}, "started")
        assert config_column() == before

    def test_persists_across_instances(self, db_path):
        SqliteJobRepository(db_path).create(_job())
        assert SqliteJobRepository(db_path).get_status("job-abc12345") == JobStatus.INIT

    def test_list_by_queue_swallows_query_failure(self, db_path):
        repo = SqliteJobRepository(db_path)
        repo.create(_job(status=JobStatus.PENDING))
        conn = sqlite3.connect(db_path)
        conn.execute("DROP TABLE job")
        conn.commit()
        conn.close()

        assert repo.list_by_queue("q1", [JobStatus.PENDING]) == []

    def test_store_failure_is_persistence_error(self, db_path):
        repo = SqliteJobRepository(db_path)
        conn = sqlite3.connect(db_path)
        conn.execute("DROP TABLE job")
        conn.commit()
        conn.close()

        with pytest.raises(PersistenceError):
            repo.get_by_id("job-abc12345")
        with pytest.raises(PersistenceError):
            repo.create(_job())

    def test_concurrent_writer_wins(self, db_path, monkeypatch):
        import jobplane.repository as repository_module

        repo = SqliteJobRepository(db_path)
        other = SqliteJobRepository(db_path)
        repo.create(_job(status=JobStatus.PENDING))

        original = repository_module.plan_status_change
        interleaved_once = []

        def interleaved(*args, **kwargs):
            if not interleaved_once:
                interleaved_once.append(True)
                other.update("job-abc12345", JobStatus.FAILED, None, "lost node")
            return original(*args, **kwargs)

        monkeypatch.setattr(repository_module, "plan_status_change", interleaved)

        with pytest.raises(StateConflictError, match="modified concurrently"):
            repo.update("job-abc12345", JobStatus.RUNNING, {"pod": "p"}, "started")

        stored = repo.get_by_id("job-abc12345")
        assert stored.status == JobStatus.FAILED
        assert stored.message == "lost node"
        assert stored.runtime_info is None
        assert stored.activated_at is None
