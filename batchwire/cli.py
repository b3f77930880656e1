"""
CLI interface for batchwire.

Provides commands to initialize configuration, run the trigger pollers,
run a single poll, launch a job directly and list registered jobs.
"""

import signal
import threading

import click
import yaml

from batchwire import __version__


def _load_app(ctx):
    """Build the Application from the loaded config, or exit."""
    from batchwire.app import Application
    from batchwire.utils import setup_logging

    if "config" not in ctx.obj:
        click.echo(f"✗ Config not loaded: {ctx.obj.get('config_error', 'Unknown error')}", err=True)
        click.echo("Run 'batchwire init' to create a configuration file.", err=True)
        raise SystemExit(1)

    config = ctx.obj["config"]
    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.log_file,
    )
    return Application.from_config(config)


def _parse_params(params: tuple[str, ...]) -> dict[str, str]:
    parsed = {}
    for param in params:
        key, sep, value = param.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected key=value, got {param!r}", param_hint="-p")
        parsed[key] = value
    return parsed


def _report(execution) -> None:
    symbol = "✓" if execution.status.value == "COMPLETED" else "✗"
    click.echo(
        f"{symbol} {execution.job_name} [{execution.id}] {execution.status.value} "
        f"{dict(execution.parameters)}"
    )


@click.group()
@click.version_option(version=__version__, prog_name="batchwire")
@click.pass_context
def main(ctx):
    """
    batchwire - Event-triggered batch job runner.

    Polls a drop folder and an external record table and launches the
    matching jobs.
    """
    from batchwire.config import load_config

    ctx.ensure_object(dict)
    try:
        ctx.obj["config"] = load_config()
    except Exception as e:
        # init does not need a config; other commands check ctx.obj
        ctx.obj["config_error"] = str(e)


@main.command("init")
@click.option("--force", is_flag=True, help="Overwrite existing configuration")
def init(force: bool):
    """Initialize batchwire configuration."""
    from batchwire.config import BatchwireConfig, get_batchwire_home

    home = get_batchwire_home()
    if not home.exists():
        home.mkdir(parents=True)

    cfg_path = home / "config.yaml"
    if cfg_path.exists() and not force:
        click.echo(f"Config already exists at {cfg_path}. Use --force to overwrite.", err=True)
        raise SystemExit(1)

    default_cfg = BatchwireConfig(env_file=str(home / ".env")).to_dict()
    cfg_path.write_text(yaml.safe_dump(default_cfg, sort_keys=False))

    env_path = home / ".env"
    if not env_path.exists():
        env_path.write_text("# BATCHWIRE_DATABASE_URL=postgresql+psycopg://...\n")

    click.echo(f"Initialized batchwire config at {cfg_path}")


@main.command("run")
@click.pass_context
def run(ctx):
    """Poll both trigger sources until interrupted."""
    app = _load_app(ctx)
    stop = threading.Event()
    previous = signal.signal(signal.SIGTERM, lambda signum, frame: stop.set())
    app.start()
    click.echo(f"Watching {app.config.watch_path} and table {app.config.record_table}. Ctrl-C to stop.")
    try:
        while not stop.wait(1.0):
            pass
    except KeyboardInterrupt:
        pass
    finally:
        click.echo("Shutting down; waiting for running jobs...")
        app.shutdown(wait=True)
        signal.signal(signal.SIGTERM, previous)


@main.command("poll")
@click.option(
    "--source",
    type=click.Choice(["file", "record", "all"]),
    default="all",
    show_default=True,
    help="Trigger source to poll",
)
@click.pass_context
def poll(ctx, source: str):
    """Poll once, wait for launched jobs and report them."""
    app = _load_app(ctx)
    try:
        executions = app.tick(source)
        for execution in executions:
            execution.wait()
            _report(execution)
        if not executions:
            click.echo("No new events.")
    finally:
        app.shutdown(wait=True)


@main.command("launch")
@click.argument("job")
@click.option("-p", "--param", "params", multiple=True, help="Job parameter as key=value")
@click.pass_context
def launch(ctx, job: str, params: tuple[str, ...]):
    """
    Launch JOB directly and wait for it.

    Examples:

        batchwire launch exampleJob -p file_path=/tmp/in.txt

        batchwire launch dummyJob -p end_date=2024-01-31
    """
    from batchwire.errors import LaunchError
    from batchwire.schemas import JobLaunchRequest

    parameters = _parse_params(params)
    app = _load_app(ctx)
    try:
        try:
            execution = app.gateway.launch(JobLaunchRequest(job_name=job, parameters=parameters))
        except LaunchError as e:
            click.echo(f"✗ {e}", err=True)
            raise SystemExit(1)
        execution.wait()
        _report(execution)
        if execution.error:
            click.echo(f"  {execution.error['message']}", err=True)
            raise SystemExit(1)
    finally:
        app.shutdown(wait=True)


@main.group("jobs")
def jobs_group():
    """Inspect registered jobs."""
    pass


@jobs_group.command("list")
def list_jobs():
    """List registered jobs and their steps."""
    from batchwire.jobs import register_builtin_jobs
    from batchwire.registry import JobRegistry

    registry = JobRegistry()
    registry.discover()
    register_builtin_jobs(registry)
    for name in registry.list_jobs():
        job = registry.get(name)
        click.echo(f"{name}:")
        for step in job.steps:
            click.echo(f"  {step.name} ({step.kind.value})")
