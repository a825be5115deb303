"""Local PostgreSQL container lifecycle, migrations, shell and seeding."""

from typing import Callable, Sequence

from . import docker
from .certs import provision
from .errors import DatabaseNotRunningError, DatabaseRunningError, MissingPathError
from .paths import ProjectPaths
from .settings import Settings

Echo = Callable[[str], None]

CONTAINER_PORT = 5432
CERT_MOUNT = "/var/lib/postgresql/server.crt"
KEY_MOUNT = "/var/lib/postgresql/server.key"

SHM_SIZE = "256m"
SERVER_FLAGS = {
    "ssl": "on",
    "ssl_cert_file": CERT_MOUNT,
    "ssl_key_file": KEY_MOUNT,
    "max_connections": "200",
    "shared_buffers": "256MB",
}

MIGRATE_IMAGE = "migrate/migrate"
MIGRATIONS_MOUNT = "/migrations"
DEFAULT_MIGRATE_ARGS = ("up",)


def _quiet(_: str) -> None:
    pass


def is_running(settings: Settings) -> bool:
    return docker.is_running(settings.db_container_name)


def start(settings: Settings, paths: ProjectPaths, echo: Echo = _quiet) -> None:
    """Provision certificates and launch the database container.

    Raises:
        DatabaseRunningError: The container is already running. Nothing
            else is attempted in that case.
        CertificateError: Certificates could not be generated.
        ToolFailedError: docker pull/run failed.
    """
    name = settings.db_container_name
    if docker.is_running(name):
        raise DatabaseRunningError(name)

    echo(f"Generating certificates in {paths.certs_dir}")
    bundle = provision(paths.certs_dir)

    echo(f"Pulling {settings.db_image}")
    docker.pull(settings.db_image)

    # A stopped container with the same name would block `docker run`
    docker.remove(name)

    command = []
    for flag, value in SERVER_FLAGS.items():
        command += ["-c", f"{flag}={value}"]

    echo(f"Starting {name} on port {settings.db_port}")
    docker.run_detached(
        name,
        settings.db_image,
        env={
            "POSTGRES_DB": settings.db_name,
            "POSTGRES_USER": settings.db_user,
            "POSTGRES_PASSWORD": settings.db_password,
        },
        ports=[f"{settings.db_port}:{CONTAINER_PORT}"],
        volumes=[
            (bundle.server_cert, CERT_MOUNT, True),
            (bundle.server_key, KEY_MOUNT, True),
        ],
        options=["--shm-size", SHM_SIZE],
        command=command,
    )


def stop(settings: Settings) -> None:
    """Remove the database container whether or not it exists."""
    docker.remove(settings.db_container_name)


def _require_running(settings: Settings) -> None:
    if not docker.is_running(settings.db_container_name):
        raise DatabaseNotRunningError(settings.db_container_name)


def _psql(settings: Settings) -> list[str]:
    return ["psql", "-U", settings.db_user, "-d", settings.db_name]


def shell(settings: Settings) -> int:
    """Open an interactive psql session; returns psql's exit status."""
    _require_running(settings)
    return docker.exec_(
        settings.db_container_name,
        _psql(settings),
        env={"PGPASSWORD": settings.db_password},
        interactive=True,
        tty=True,
    )


def seed(settings: Settings, paths: ProjectPaths) -> int:
    """Feed the seed SQL file to psql; returns psql's exit status."""
    seed_file = paths.seed_file
    if not seed_file.is_file():
        raise MissingPathError(f"Seed file not found: {seed_file}")
    _require_running(settings)

    with open(seed_file, encoding="utf-8") as f:
        return docker.exec_(
            settings.db_container_name,
            [*_psql(settings), "-v", "ON_ERROR_STOP=1"],
            env={"PGPASSWORD": settings.db_password},
            interactive=True,
            stdin=f,
        )


def migrate(settings: Settings, paths: ProjectPaths, args: Sequence[str] = ()) -> int:
    """Run the migration tool; returns its exit status.

    Args:
        args: Migration subcommand and arguments, ``up`` when empty.
    """
    migrations = paths.migrations_dir
    if not migrations.is_dir():
        raise MissingPathError(f"Migrations directory not found: {migrations}")

    url = settings.database_url
    return docker.run(
        MIGRATE_IMAGE,
        ["-path", MIGRATIONS_MOUNT, "-database", url, *(args or DEFAULT_MIGRATE_ARGS)],
        volumes=[(migrations, MIGRATIONS_MOUNT, True)],
        options=["--network", "host"],
        secrets=[url],
    )
