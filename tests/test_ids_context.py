"""Tests for ID helpers and RequestContext."""

import re

import pytest

from jobplane.context import RequestContext
from jobplane.errors import OperationCancelledError
from jobplane.ids import fs_id, generate_id, generate_job_id, run_job_prefix


class TestIds:

    def test_job_id_format(self):
        assert re.fullmatch(r"job-[a-z0-9]{8}", generate_job_id())

    def test_job_ids_differ(self):
        assert len({generate_job_id() for _ in range(100)}) == 100

    def test_generate_id_length(self):
        assert re.fullmatch(r"run-[a-z0-9]{12}", generate_id("run", length=12))

    def test_fs_id_is_deterministic(self):
        assert fs_id("alice", "home") == "fs-alice-home"
        assert fs_id("alice", "home") == fs_id("alice", "home")

    def test_run_prefix(self):
        assert run_job_prefix("run42") == "job-run42-"


class TestRequestContext:

    def test_no_deadline(self):
        ctx = RequestContext(user_name="alice")
        assert ctx.remaining() is None
        ctx.check()

    def test_cancel(self):
        ctx = RequestContext()
        ctx.cancel()
        assert ctx.cancelled
        with pytest.raises(OperationCancelledError, match="cancelled"):
            ctx.check()

    def test_deadline_exceeded(self):
        ctx = RequestContext(timeout_s=0)
        assert ctx.remaining() == 0
        with pytest.raises(OperationCancelledError, match="deadline"):
            ctx.check()

    def test_remaining_counts_down(self):
        ctx = RequestContext(timeout_s=60)
        assert 0 < ctx.remaining() <= 60

    def test_request_ids_unique(self):
        assert RequestContext().request_id != RequestContext().request_id
