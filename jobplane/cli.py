"""
CLI interface for the jobplane control plane.

Provides commands to submit, stop, delete and inspect jobs against the
SQLite job store and the YAML queue/cluster directory named in config.
"""

import json
from pathlib import Path

import click

from jobplane import __version__
from jobplane.errors import JobplaneError


DEFAULT_DIRECTORY = {
    "clusters": [
        {"id": "local", "name": "local", "cluster_type": "local"},
    ],
    "queues": [
        {"id": "default", "name": "default", "cluster_id": "local", "namespace": "default"},
    ],
    "flavours": [
        {"name": "flavour1", "cpu": "1", "mem": "1Gi"},
    ],
}


@click.group()
@click.version_option(version=__version__, prog_name="jobplane")
@click.pass_context
def main(ctx):
    """
    jobplane - Job orchestration control plane.

    Submit jobs to queues and stop or delete them on their clusters.
    """
    from jobplane.config import load_config
    from jobplane.utils import setup_logging

    ctx.ensure_object(dict)
    try:
        config = load_config()
    except Exception as e:
        # `init` runs without a config; other commands check ctx.obj
        ctx.obj["config_error"] = str(e)
        return
    ctx.obj["config"] = config
    setup_logging(config.log_level, config.log_format, config.log_path)


def _require_config(ctx):
    if "config" not in ctx.obj:
        click.echo(f"✗ Config not loaded: {ctx.obj.get('config_error', 'Unknown error')}", err=True)
        click.echo("Run 'jobplane init' to create a configuration file.", err=True)
        raise SystemExit(1)
    return ctx.obj["config"]


def _build_orchestrator(config):
    from jobplane.auth import OwnerAuthorizer
    from jobplane.directory import YamlDirectory
    from jobplane.orchestrator import JobOrchestrator
    from jobplane.repository import SqliteJobRepository
    from jobplane.runtime import LOCAL_CLUSTER_TYPE, RuntimeRegistry, create_local_runtime

    return JobOrchestrator(
        repository=SqliteJobRepository(config.database),
        directory=YamlDirectory(config.directory),
        runtimes=RuntimeRegistry({LOCAL_CLUSTER_TYPE: create_local_runtime}),
        authorizer=OwnerAuthorizer(config.admins),
        runtime_timeout_s=config.runtime_timeout_s,
    )


def _orchestrator(ctx):
    config = _require_config(ctx)
    try:
        return _build_orchestrator(config)
    except (JobplaneError, FileNotFoundError) as e:
        click.echo(f"✗ {e}", err=True)
        raise SystemExit(1)


user_option = click.option(
    "--user", envvar="JOBPLANE_USER", default="root", show_default=True,
    help="User issuing the request",
)


@main.command("init")
@click.option("--force", is_flag=True, help="Overwrite existing configuration")
def init(force: bool):
    """Initialize jobplane configuration."""
    import yaml

    from jobplane.config import default_config, get_jobplane_home

    home = get_jobplane_home()
    home.mkdir(parents=True, exist_ok=True)

    cfg_path = home / "config.yaml"
    if cfg_path.exists() and not force:
        click.echo(f"Config already exists at {cfg_path}. Use --force to overwrite.", err=True)
        raise SystemExit(1)

    config = default_config(home)
    cfg_path.write_text(yaml.safe_dump(config.to_dict(), sort_keys=False))

    directory_path = config.directory
    if not directory_path.exists():
        directory_path.write_text(yaml.safe_dump(DEFAULT_DIRECTORY, sort_keys=False))

    env_path = home / ".env"
    if not env_path.exists():
        env_path.write_text("# JOBPLANE_USER=...\n")

    click.echo(f"Initialized jobplane config at {cfg_path}")


@main.command("submit")
@click.argument("request_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@user_option
@click.pass_context
def submit(ctx, request_file: Path, user: str):
    """Submit a single job from a JSON request file."""
    from jobplane.context import RequestContext
    from jobplane.schemas import CreateSingleJobRequest

    try:
        payload = json.loads(request_file.read_text())
    except json.JSONDecodeError as e:
        click.echo(f"✗ Invalid JSON in {request_file}: {e}", err=True)
        raise SystemExit(1)

    with _orchestrator(ctx) as orchestrator:
        try:
            request = CreateSingleJobRequest.from_dict(payload)
            response = orchestrator.create_single_job(request, RequestContext(user_name=user))
        except JobplaneError as e:
            click.echo(f"✗ Submit failed: {e}", err=True)
            raise SystemExit(1)

    click.echo(json.dumps(response.to_dict()))


@main.command("stop")
@click.argument("job_id")
@user_option
@click.option("--timeout", type=float, default=None, help="Request deadline in seconds")
@click.pass_context
def stop(ctx, job_id: str, user: str, timeout: float | None):
    """Stop a job on its cluster."""
    from jobplane.context import RequestContext

    with _orchestrator(ctx) as orchestrator:
        try:
            orchestrator.stop_job(RequestContext(user_name=user, timeout_s=timeout), job_id)
        except JobplaneError as e:
            click.echo(f"✗ Stop {job_id} failed: {e}", err=True)
            raise SystemExit(1)
    click.echo(f"✓ {job_id} stopped")


@main.command("delete")
@click.argument("job_id")
@user_option
@click.option("--timeout", type=float, default=None, help="Request deadline in seconds")
@click.pass_context
def delete(ctx, job_id: str, user: str, timeout: float | None):
    """Delete a job from its cluster and from the job store."""
    from jobplane.context import RequestContext

    with _orchestrator(ctx) as orchestrator:
        try:
            orchestrator.delete_job(RequestContext(user_name=user, timeout_s=timeout), job_id)
        except JobplaneError as e:
            click.echo(f"✗ Delete {job_id} failed: {e}", err=True)
            raise SystemExit(1)
    click.echo(f"✓ {job_id} deleted")


@main.group("jobs")
def jobs_group():
    """Inspect jobs."""
    pass


@jobs_group.command("show")
@click.argument("job_id")
@click.pass_context
def show_job(ctx, job_id: str):
    """Show a job record."""
    with _orchestrator(ctx) as orchestrator:
        try:
            job = orchestrator.get_job(job_id)
        except JobplaneError as e:
            click.echo(f"✗ {e}", err=True)
            raise SystemExit(1)
    click.echo(json.dumps(job.to_dict(), indent=2))


@jobs_group.command("list")
@click.option("--queue", "queue_id", required=True, help="Queue ID")
@click.option(
    "--status", "statuses", multiple=True,
    help="Status filter (repeatable). Defaults to every non-terminal status.",
)
@click.pass_context
def list_jobs(ctx, queue_id: str, statuses: tuple[str, ...]):
    """List jobs of a queue."""
    from jobplane.schemas import JobStatus
    from jobplane.utils import print_jobs_table

    try:
        wanted = [JobStatus.from_string(s) for s in statuses] or [
            s for s in JobStatus if not s.is_terminal
        ]
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--status")

    with _orchestrator(ctx) as orchestrator:
        jobs = orchestrator.list_queue_jobs(queue_id, wanted)

    if not jobs:
        click.echo(f"No jobs in queue {queue_id}.")
        return
    print_jobs_table(jobs, title=f"Queue {queue_id}")


@jobs_group.command("run")
@click.argument("run_id")
@click.option("--job", "job_id", default="", help="Narrow to one job ID")
@click.pass_context
def list_run_jobs(ctx, run_id: str, job_id: str):
    """List jobs spawned by a pipeline run."""
    from jobplane.utils import print_jobs_table

    with _orchestrator(ctx) as orchestrator:
        try:
            jobs = orchestrator.list_run_jobs(run_id, job_id)
        except JobplaneError as e:
            click.echo(f"✗ {e}", err=True)
            raise SystemExit(1)

    if not jobs:
        click.echo(f"No jobs for run {run_id}.")
        return
    print_jobs_table(jobs, title=f"Run {run_id}")


if __name__ == "__main__":
    main()
