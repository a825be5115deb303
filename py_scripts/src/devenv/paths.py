"""Project path layout - single source of truth for file locations.

The project root is located by searching upward from the working
directory for a root marker, so the CLI works from any subdirectory.
"""

import os
from dataclasses import dataclass
from pathlib import Path

import pyrootutils

ROOT_ENV_VAR = "DEVENV_ROOT"
ROOT_INDICATORS = (".project-root", ".git", "go.mod", "pyproject.toml")

# Relative to the project root
CERTS_SUBDIR = Path(".devenv") / "certs"
MIGRATIONS_SUBDIR = Path("migrations")
SEED_FILE = Path("testdata") / "seed.sql"
TOOLCHAIN_DOCKERFILE = Path("docker") / "protoc.Dockerfile"
PROTO_SUBDIRS = (Path("proto") / "api", Path("proto") / "internal")


def find_project_root(search_from: Path | None = None) -> Path:
    """Find the project root.

    ``DEVENV_ROOT`` wins when set; otherwise search upward for a marker.

    Raises:
        FileNotFoundError: If no marker is found.
    """
    if override := os.environ.get(ROOT_ENV_VAR):
        return Path(override).resolve()
    return pyrootutils.find_root(
        search_from=search_from or Path.cwd(),
        indicator=list(ROOT_INDICATORS),
    )


@dataclass(frozen=True)
class ProjectPaths:
    """Fixed locations the commands read from and write to."""

    root: Path

    @property
    def certs_dir(self) -> Path:
        return self.root / CERTS_SUBDIR

    @property
    def migrations_dir(self) -> Path:
        return self.root / MIGRATIONS_SUBDIR

    @property
    def seed_file(self) -> Path:
        return self.root / SEED_FILE

    @property
    def toolchain_dockerfile(self) -> Path:
        return self.root / TOOLCHAIN_DOCKERFILE

    @property
    def toolchain_context(self) -> Path:
        return self.toolchain_dockerfile.parent

    @property
    def proto_dirs(self) -> tuple[Path, ...]:
        return tuple(self.root / sub for sub in PROTO_SUBDIRS)
