"""Exceptions raised by devenv operations.

Domain modules raise these and never print. The CLI turns them into
``click.ClickException`` (exit 1), except ``ToolFailedError`` whose
exit code is passed through unchanged.
"""

from typing import Sequence


class DevEnvError(Exception):
    """Base class for all devenv failures."""


class ConfigError(DevEnvError):
    """Environment configuration could not be parsed."""


class EngineMissingError(DevEnvError):
    """The container engine binary is not installed."""

    def __init__(self, binary: str = "docker"):
        super().__init__(f"{binary} is not installed or not on PATH")
        self.binary = binary


class DatabaseRunningError(DevEnvError):
    """A database container with the configured name is already running."""

    def __init__(self, name: str):
        super().__init__(
            f"Database container '{name}' is already running.\n"
            f"Run 'devenv dbstop' first to recreate it."
        )
        self.name = name


class CertificateError(DevEnvError):
    """Certificate provisioning failed."""


class DatabaseNotRunningError(DevEnvError):
    """The database container is not running."""

    def __init__(self, name: str):
        super().__init__(
            f"Database container '{name}' is not running.\n"
            f"Run 'devenv dbstart' first."
        )
        self.name = name


class MissingPathError(DevEnvError):
    """A file or directory the command reads from does not exist."""


class NoProtoFilesError(DevEnvError):
    """No protocol definition files were found to compile."""


class ToolchainMissingError(DevEnvError):
    """The protoc toolchain image has not been built."""

    def __init__(self, tag: str):
        super().__init__(
            f"Toolchain image '{tag}' not found.\n"
            f"Run 'devenv toolchain' first to build it."
        )
        self.tag = tag


class ToolFailedError(DevEnvError):
    """An external tool exited with a non-zero status."""

    def __init__(self, command: Sequence[str], returncode: int):
        super().__init__(f"{command[0]} exited with status {returncode}")
        self.command = list(command)
        self.returncode = returncode
