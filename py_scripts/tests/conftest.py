"""Shared fixtures: a recording stand-in for external commands."""

import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

import pytest

from devenv import process
from devenv.settings import EXPORTED

CONFIG_VARS = (*EXPORTED, "DB_IMAGE", "DB_CONTAINER_NAME", "DEVENV_ROOT")


@dataclass
class Call:
    cmd: list[str]
    kwargs: dict = field(default_factory=dict)


@dataclass
class Rule:
    prefix: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str
    action: Callable | None


class FakeProcess:
    """Replaces devenv.process.run/which and records every command.

    Unmatched commands succeed with empty output. Later rules win.
    """

    __test__ = False

    def __init__(self):
        self.calls: list[Call] = []
        self.rules: list[Rule] = []
        self.available = {"docker", "openssl", "sudo"}

    def on(
        self,
        *prefix: str,
        returncode: int = 0,
        stdout: str = "",
        stderr: str = "",
        action: Callable | None = None,
    ) -> None:
        self.rules.append(Rule(prefix, returncode, stdout, stderr, action))

    def which(self, binary: str) -> str | None:
        return f"/usr/bin/{binary}" if binary in self.available else None

    def run(self, cmd, **kwargs) -> subprocess.CompletedProcess:
        cmd = list(cmd)
        self.calls.append(Call(cmd, kwargs))
        for rule in reversed(self.rules):
            if tuple(cmd[: len(rule.prefix)]) == rule.prefix:
                if rule.action is not None:
                    rule.action(cmd, kwargs)
                return subprocess.CompletedProcess(cmd, rule.returncode, rule.stdout, rule.stderr)
        return subprocess.CompletedProcess(cmd, 0, "", "")

    @property
    def commands(self) -> list[list[str]]:
        return [call.cmd for call in self.calls]

    def find(self, *prefix: str) -> list[Call]:
        return [c for c in self.calls if tuple(c.cmd[: len(prefix)]) == prefix]


def write_openssl_outputs(cmd: list[str], kwargs: dict) -> None:
    """Create the files an openssl invocation would have written."""
    for flag in ("-out", "-keyout"):
        if flag in cmd:
            Path(cmd[cmd.index(flag) + 1]).write_text(f"fake {flag} from {cmd[1]}\n")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's shell configuration out of the tests."""
    for name in CONFIG_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fake(monkeypatch) -> FakeProcess:
    """Fake process layer with openssl producing placeholder files."""
    fake = FakeProcess()
    fake.on("openssl", action=write_openssl_outputs)
    monkeypatch.setattr(process, "run", fake.run)
    monkeypatch.setattr(process, "which", fake.which)
    return fake
