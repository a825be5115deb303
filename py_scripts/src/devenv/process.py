"""Subprocess helpers shared by every command.

All external tools (docker, openssl, sudo) are invoked through ``run`` so
that commands are logged in one place and tests can swap in a fake.
"""

import logging
import os
import shlex
import shutil
import subprocess
from typing import IO, Iterable, Mapping, Sequence

from .errors import ToolFailedError

logger = logging.getLogger(__name__)

REDACTED = "****"


def which(binary: str) -> str | None:
    """Return the full path of ``binary`` on PATH, or None."""
    return shutil.which(binary)


def _redact(text: str, secrets: Iterable[str]) -> str:
    for secret in secrets:
        if secret:
            text = text.replace(secret, REDACTED)
    return text


def run(
    cmd: Sequence[str],
    *,
    stdin: IO | None = None,
    capture: bool = False,
    env: Mapping[str, str] | None = None,
    secrets: Iterable[str] = (),
) -> subprocess.CompletedProcess:
    """Run a command to completion.

    Args:
        cmd: Program and arguments.
        stdin: Optional file object fed to the process.
        capture: Capture stdout/stderr as text instead of inheriting them.
        env: Extra environment variables layered over ``os.environ``.
        secrets: Strings masked out of the debug log line.

    Returns:
        The completed process. A non-zero exit status is not an error here.
    """
    logger.debug("$ %s", _redact(shlex.join(cmd), secrets))
    full_env = {**os.environ, **env} if env else None
    return subprocess.run(
        list(cmd),
        stdin=stdin,
        capture_output=capture,
        text=True,
        env=full_env,
    )


def check(cmd: Sequence[str], **kwargs) -> subprocess.CompletedProcess:
    """Run a command and raise ToolFailedError on a non-zero exit."""
    result = run(cmd, **kwargs)
    if result.returncode != 0:
        raise ToolFailedError(cmd, result.returncode)
    return result
