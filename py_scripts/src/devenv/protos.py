"""Protoc toolchain image and code generation."""

import logging
import os
from pathlib import Path

from . import docker
from .errors import MissingPathError, NoProtoFilesError, ToolchainMissingError
from .paths import ProjectPaths

logger = logging.getLogger(__name__)

TOOLCHAIN_IMAGE = "devenv-protoc:latest"

# Server bindings, written next to each .proto
PROTOC_OUTPUTS = (
    "--go_out=paths=source_relative:.",
    "--go-grpc_out=paths=source_relative:.",
)


def build_toolchain(paths: ProjectPaths) -> int:
    """Build the toolchain image; returns docker build's exit status."""
    dockerfile = paths.toolchain_dockerfile
    if not dockerfile.is_file():
        raise MissingPathError(f"Toolchain build file not found: {dockerfile}")
    return docker.build(TOOLCHAIN_IMAGE, dockerfile, paths.toolchain_context)


def find_proto_files(paths: ProjectPaths) -> list[Path]:
    """All .proto files in the definition directories, relative to the root."""
    found = []
    for directory in paths.proto_dirs:
        if not directory.is_dir():
            logger.debug("No proto directory at %s", directory)
            continue
        found += sorted(p.relative_to(paths.root) for p in directory.glob("*.proto"))
    return found


def compile_protos(paths: ProjectPaths) -> int:
    """Regenerate server bindings inside the toolchain container.

    Returns:
        protoc's exit status.

    Raises:
        ToolchainMissingError: The toolchain image has not been built.
        NoProtoFilesError: There is nothing to compile.
    """
    if not docker.image_exists(TOOLCHAIN_IMAGE):
        raise ToolchainMissingError(TOOLCHAIN_IMAGE)

    files = find_proto_files(paths)
    if not files:
        dirs = ", ".join(str(d) for d in paths.proto_dirs)
        raise NoProtoFilesError(f"No .proto files found in {dirs}")

    root = str(paths.root)
    return docker.run(
        TOOLCHAIN_IMAGE,
        ["protoc", "-I", ".", *PROTOC_OUTPUTS, *map(str, files)],
        volumes=[(paths.root, root, False)],
        options=["-w", root, "--user", f"{os.getuid()}:{os.getgid()}"],
    )
