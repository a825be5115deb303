"""Thin wrappers over the docker CLI."""

import logging
from pathlib import Path
from typing import Mapping, Sequence

from . import process
from .errors import EngineMissingError

logger = logging.getLogger(__name__)

DOCKER = "docker"


def require_engine() -> None:
    """Fail unless the docker binary is available."""
    if process.which(DOCKER) is None:
        raise EngineMissingError(DOCKER)


def is_running(name: str) -> bool:
    """True only when the container reports exactly the 'running' state."""
    result = process.run(
        [DOCKER, "inspect", "-f", "{{.State.Status}}", name],
        capture=True,
    )
    if result.returncode != 0:
        return False
    return result.stdout.strip() == "running"


def remove(name: str) -> None:
    """Force-remove a container. Absent containers are ignored."""
    result = process.run([DOCKER, "rm", "-f", name], capture=True)
    if result.returncode != 0:
        logger.debug("docker rm -f %s: %s", name, result.stderr.strip())


def pull(image: str) -> None:
    process.check([DOCKER, "pull", image])


def image_exists(tag: str) -> bool:
    result = process.run([DOCKER, "image", "inspect", tag], capture=True)
    return result.returncode == 0


def build(tag: str, dockerfile: Path, context: Path) -> int:
    return process.run(
        [DOCKER, "build", "-t", tag, "-f", str(dockerfile), str(context)]
    ).returncode


def _volume_args(volumes: Sequence[tuple[Path, str, bool]]) -> list[str]:
    args = []
    for host, target, read_only in volumes:
        spec = f"{host}:{target}"
        if read_only:
            spec += ":ro"
        args += ["-v", spec]
    return args


def _env_args(names: Sequence[str]) -> list[str]:
    # Values are passed through the client environment, never on the
    # command line.
    args = []
    for name in names:
        args += ["-e", name]
    return args


def run_detached(
    name: str,
    image: str,
    *,
    env: Mapping[str, str],
    ports: Sequence[str] = (),
    volumes: Sequence[tuple[Path, str, bool]] = (),
    options: Sequence[str] = (),
    command: Sequence[str] = (),
) -> None:
    """Start a named background container."""
    cmd = [DOCKER, "run", "-d", "--name", name]
    for port in ports:
        cmd += ["-p", port]
    cmd += _env_args(list(env))
    cmd += _volume_args(volumes)
    cmd += list(options)
    cmd += [image, *command]
    process.check(cmd, env=env)


def run(
    image: str,
    command: Sequence[str],
    *,
    volumes: Sequence[tuple[Path, str, bool]] = (),
    options: Sequence[str] = (),
    secrets: Sequence[str] = (),
) -> int:
    """Run a disposable container and return its exit status."""
    cmd = [DOCKER, "run", "--rm", *options, *_volume_args(volumes), image, *command]
    return process.run(cmd, secrets=secrets).returncode


def exec_(
    name: str,
    command: Sequence[str],
    *,
    env: Mapping[str, str] | None = None,
    interactive: bool = False,
    tty: bool = False,
    stdin=None,
) -> int:
    """Run a command inside a running container and return its exit status."""
    cmd = [DOCKER, "exec"]
    if interactive and tty:
        cmd.append("-it")
    elif interactive:
        cmd.append("-i")
    cmd += _env_args(list(env or {}))
    cmd += [name, *command]
    return process.run(cmd, stdin=stdin, env=env).returncode
