"""Tests for the protoc toolchain and code generation."""

import os

import pytest

from devenv import protos
from devenv.errors import MissingPathError, NoProtoFilesError, ToolchainMissingError
from devenv.paths import ProjectPaths

TAG = protos.TOOLCHAIN_IMAGE


@pytest.fixture
def paths(tmp_path):
    return ProjectPaths(tmp_path)


def add_proto(paths: ProjectPaths, relative: str) -> None:
    path = paths.root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text('syntax = "proto3";\n')


class TestBuildToolchain:
    """Tests for build_toolchain()."""

    def test_builds_from_dockerfile(self, fake, paths):
        add_proto(paths, "docker/protoc.Dockerfile")
        assert protos.build_toolchain(paths) == 0
        assert fake.commands == [[
            "docker", "build", "-t", TAG,
            "-f", str(paths.toolchain_dockerfile), str(paths.root / "docker"),
        ]]

    def test_build_failure_propagates(self, fake, paths):
        add_proto(paths, "docker/protoc.Dockerfile")
        fake.on("docker", "build", returncode=2)
        assert protos.build_toolchain(paths) == 2

    def test_missing_dockerfile(self, fake, paths):
        with pytest.raises(MissingPathError, match="protoc.Dockerfile"):
            protos.build_toolchain(paths)
        assert fake.calls == []


class TestFindProtoFiles:
    """Tests for find_proto_files()."""

    def test_collects_both_directories(self, paths):
        add_proto(paths, "proto/internal/b.proto")
        add_proto(paths, "proto/api/z.proto")
        add_proto(paths, "proto/api/a.proto")
        (paths.root / "proto/api/README.md").write_text("docs")
        add_proto(paths, "proto/other/c.proto")

        found = [str(p) for p in protos.find_proto_files(paths)]
        assert found == ["proto/api/a.proto", "proto/api/z.proto", "proto/internal/b.proto"]

    def test_missing_directories(self, paths):
        assert protos.find_proto_files(paths) == []


class TestCompileProtos:
    """Tests for compile_protos()."""

    def test_requires_toolchain_image(self, fake, paths):
        add_proto(paths, "proto/api/a.proto")
        fake.on("docker", "image", "inspect", returncode=1)

        with pytest.raises(ToolchainMissingError, match="devenv toolchain"):
            protos.compile_protos(paths)

        assert fake.commands == [["docker", "image", "inspect", TAG]]

    def test_compiles_in_container(self, fake, paths):
        add_proto(paths, "proto/api/a.proto")
        add_proto(paths, "proto/internal/b.proto")
        root = str(paths.root)

        assert protos.compile_protos(paths) == 0

        cmd = fake.find("docker", "run")[0].cmd
        assert cmd[:3] == ["docker", "run", "--rm"]
        assert ["-w", root] == cmd[cmd.index("-w"):cmd.index("-w") + 2]
        assert f"{os.getuid()}:{os.getgid()}" in cmd
        assert f"{root}:{root}" in cmd
        assert cmd[cmd.index(TAG) + 1:] == [
            "protoc", "-I", ".",
            "--go_out=paths=source_relative:.",
            "--go-grpc_out=paths=source_relative:.",
            "proto/api/a.proto", "proto/internal/b.proto",
        ]

    def test_compiler_failure_propagates(self, fake, paths):
        add_proto(paths, "proto/api/a.proto")
        fake.on("docker", "run", returncode=1)
        assert protos.compile_protos(paths) == 1

    def test_nothing_to_compile(self, fake, paths):
        with pytest.raises(NoProtoFilesError):
            protos.compile_protos(paths)
        assert fake.find("docker", "run") == []
