"""Command-line interface for the local development environment."""

import functools
import logging
from functools import cached_property
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

import click

from . import certs, database, docker, protos
from .errors import ConfigError, DevEnvError, ToolFailedError
from .paths import ROOT_ENV_VAR, ProjectPaths, find_project_root
from .settings import Settings, load_settings

logger = logging.getLogger(__name__)

try:
    __version__ = version("devenv")
except PackageNotFoundError:
    # Running from a source checkout without an install
    __version__ = "0.0.0+source"

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"

# Commands that run without the container engine
NO_ENGINE_COMMANDS = {"help"}


class Environment:
    """Project paths and settings, resolved on first use."""

    def __init__(self, root: Path | None = None):
        self._root = root

    @cached_property
    def paths(self) -> ProjectPaths:
        if self._root is not None:
            return ProjectPaths(self._root.resolve())
        try:
            return ProjectPaths(find_project_root())
        except FileNotFoundError as e:
            raise ConfigError(
                f"Project root not found from {Path.cwd()}.\n"
                f"Run inside the repository or set {ROOT_ENV_VAR}."
            ) from e

    @cached_property
    def settings(self) -> Settings:
        try:
            root = self.paths.root
        except ConfigError:
            # Configuration still works outside a checkout, just without .env
            root = None
        return load_settings(root)


pass_env = click.make_pass_decorator(Environment)


def reports_errors(func):
    """Turn devenv errors into CLI failures.

    External tool failures keep the tool's exit status; everything else
    exits 1 with the message on stderr.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except ToolFailedError as e:
            logger.debug("%s", e)
            click.get_current_context().exit(e.returncode)
        except DevEnvError as e:
            raise click.ClickException(str(e)) from e

    return wrapper


def exit_with(returncode: int) -> None:
    """Pass an external tool's exit status through as our own."""
    if returncode != 0:
        click.get_current_context().exit(returncode)


@click.group(invoke_without_command=True)
@click.option(
    "--root",
    type=click.Path(path_type=Path, file_okay=False, exists=True),
    default=None,
    envvar=ROOT_ENV_VAR,
    help="Project root (default: search upward from the working directory).",
)
@click.option("--verbose", "-v", is_flag=True, help="Log every external command.")
@click.version_option(version=__version__, prog_name="devenv")
@click.pass_context
def cli(ctx: click.Context, root: Path | None, verbose: bool) -> None:
    """Local development environment for the server.

    Runs PostgreSQL in Docker with TLS enabled, applies migrations,
    loads seed data and regenerates protobuf bindings.

    Typical session:

        eval "$(devenv init)"

        devenv dbstart && devenv dbmigrate && devenv dbseed
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
    )

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help(), err=True)
        ctx.exit(1)

    if ctx.invoked_subcommand not in NO_ENGINE_COMMANDS:
        try:
            docker.require_engine()
        except DevEnvError as e:
            raise click.ClickException(str(e)) from e

    ctx.obj = Environment(root)


@cli.command("help")
@click.pass_context
def help_(ctx: click.Context) -> None:
    """Show this message on stderr."""
    click.echo(ctx.parent.get_help(), err=True)


@cli.command()
@pass_env
@reports_errors
def init(env: Environment) -> None:
    """Print export statements for the current configuration.

    Load them into your shell with:

        eval "$(devenv init)"
    """
    for line in env.settings.export_lines():
        click.echo(line)


@cli.command()
@pass_env
@reports_errors
def dburl(env: Environment) -> None:
    """Print the database connection URL."""
    click.echo(env.settings.database_url)


@cli.command()
@pass_env
@reports_errors
def dbstart(env: Environment) -> None:
    """Start the database container with fresh TLS certificates.

    Fails if the container is already running.
    """
    database.start(env.settings, env.paths, echo=click.echo)
    click.echo(click.style("Database started!", fg="green"))
    click.echo(f"URL: {env.settings.database_url}")


@cli.command()
@pass_env
@reports_errors
def dbstop(env: Environment) -> None:
    """Remove the database container (no-op if it does not exist)."""
    database.stop(env.settings)
    click.echo(f"Stopped {env.settings.db_container_name}")


@cli.command()
@pass_env
@reports_errors
def dbstatus(env: Environment) -> None:
    """Report whether the database container is running.

    Exits 1 when it is not, for use in scripts.
    """
    name = env.settings.db_container_name
    if database.is_running(env.settings):
        click.echo(f"{name}: " + click.style("running", fg="green"))
    else:
        click.echo(f"{name}: " + click.style("not running", fg="red"))
        click.get_current_context().exit(1)


@cli.command()
@pass_env
@reports_errors
def dbshell(env: Environment) -> None:
    """Open an interactive psql session in the database container."""
    exit_with(database.shell(env.settings))


@cli.command(
    context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False}
)
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@pass_env
@reports_errors
def dbmigrate(env: Environment, args: tuple[str, ...]) -> None:
    """Run database migrations (default: up).

    Extra arguments go to the migration tool unchanged.

    Examples:

        devenv dbmigrate             # apply all pending migrations

        devenv dbmigrate down 1      # roll back one migration

        devenv dbmigrate version     # show the current version
    """
    exit_with(database.migrate(env.settings, env.paths, args))


@cli.command()
@pass_env
@reports_errors
def dbseed(env: Environment) -> None:
    """Load testdata/seed.sql into the running database."""
    exit_with(database.seed(env.settings, env.paths))


@cli.command()
@click.option(
    "--out",
    "-o",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Output directory (default: .devenv/certs under the project root).",
)
@pass_env
@reports_errors
def dbcerts(env: Environment, out: Path | None) -> None:
    """Regenerate the self-signed TLS certificates."""
    bundle = certs.provision(out or env.paths.certs_dir)
    click.echo(click.style("Certificates generated!", fg="green"))
    for path in bundle.files():
        click.echo(f"  {path}")


@cli.command()
@pass_env
@reports_errors
def toolchain(env: Environment) -> None:
    """Build the protoc toolchain image."""
    exit_with(protos.build_toolchain(env.paths))
    click.echo(click.style(f"Built {protos.TOOLCHAIN_IMAGE}", fg="green"))


@cli.command("protos")
@pass_env
@reports_errors
def protos_(env: Environment) -> None:
    """Regenerate Go server bindings from the .proto definitions.

    Requires the toolchain image (see 'devenv toolchain').
    """
    exit_with(protos.compile_protos(env.paths))
    click.echo(click.style("Protos compiled!", fg="green"))
