from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Dict, List, Mapping

import pytest

pytest.importorskip("google.protobuf")

from google.protobuf import descriptor_pb2

from protoroute import cli
from protoroute.config import GeneratorConfig
from protoroute.model import ModuleId


class _RecordingGenerator:
    """Emit a one-line marker per module and remember what was requested."""

    def __init__(self) -> None:
        self.requests: List[List[ModuleId]] = []
        self.configs: List[GeneratorConfig] = []

    def generate(
        self,
        request: Mapping[ModuleId, descriptor_pb2.FileDescriptorProto],
        config: GeneratorConfig,
    ) -> Dict[ModuleId, str]:
        self.requests.append(list(request))
        self.configs.append(config)
        return {module: f"// {module}" for module in request}


def _write_descriptor(tmp_path: Path, packages: List[tuple[str, str]]) -> Path:
    descriptor_set = descriptor_pb2.FileDescriptorSet()
    for name, package in packages:
        file_proto = descriptor_set.file.add()
        file_proto.name = name
        file_proto.package = package
        message = file_proto.message_type.add()
        message.name = "Thing"

    descriptor_path = tmp_path / "set.pb"
    descriptor_path.write_bytes(descriptor_set.SerializeToString())
    return descriptor_path


def test_main_routes_every_package_once(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    descriptor_path = _write_descriptor(
        tmp_path, [("a.proto", "a"), ("b.proto", "b.v1"), ("c.proto", "c")]
    )
    output = tmp_path / "all.rs"
    routed = tmp_path / "gen" / "b.rs"
    generator = _RecordingGenerator()

    exit_code = cli.main(
        [
            "-i",
            str(descriptor_path),
            "-o",
            str(output),
            "--module-output-map",
            f"b::v1={routed}",
            "--module-in-file",
            "c.proto=outer",
            "--create-directory",
        ],
        generator=generator,
    )

    assert exit_code == 0
    assert output.read_text(encoding="utf-8") == "// a\npub mod outer {\n// c\n}\n"
    assert routed.read_text(encoding="utf-8") == "// b::v1\n"

    captured = capsys.readouterr()
    assert captured.out.splitlines() == [str(output), str(routed)]


def test_main_reads_stdin(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    descriptor_path = _write_descriptor(tmp_path, [("root.proto", "")])
    monkeypatch.setattr("sys.stdin", io.TextIOWrapper(io.BytesIO(descriptor_path.read_bytes())))
    output = tmp_path / "lib.rs"

    exit_code = cli.main(["-i", "-", "-o", str(output)], generator=_RecordingGenerator())

    assert exit_code == 0
    assert output.read_text(encoding="utf-8") == "// _\n"


def test_main_rejects_malformed_flag_before_reading(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    output = tmp_path / "all.rs"
    generator = _RecordingGenerator()

    with caplog.at_level(logging.ERROR):
        exit_code = cli.main(
            [
                "-i",
                str(tmp_path / "never-read.pb"),
                "-o",
                str(output),
                "--output-map",
                "novalue",
            ],
            generator=generator,
        )

    assert exit_code == 1
    assert "novalue" in caplog.text
    assert generator.requests == []
    assert list(tmp_path.iterdir()) == []


def test_main_rejects_duplicate_modules_before_generation(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    descriptor_path = _write_descriptor(tmp_path, [("one.proto", "dup"), ("two.proto", "dup")])
    output = tmp_path / "all.rs"
    generator = _RecordingGenerator()

    with caplog.at_level(logging.ERROR):
        exit_code = cli.main(["-i", str(descriptor_path), "-o", str(output)], generator=generator)

    assert exit_code == 1
    assert "module duplicate: dup" in caplog.text
    assert generator.requests == []
    assert not output.exists()


def test_main_reports_module_without_output(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    descriptor_path = _write_descriptor(tmp_path, [("a.proto", "a")])

    with caplog.at_level(logging.ERROR):
        exit_code = cli.main(["-i", str(descriptor_path)], generator=_RecordingGenerator())

    assert exit_code == 1
    assert "module a has no output" in caplog.text


def test_main_reports_unreadable_input(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.ERROR):
        exit_code = cli.main(
            ["-i", str(tmp_path / "missing.pb"), "-o", str(tmp_path / "out.rs")],
            generator=_RecordingGenerator(),
        )

    assert exit_code == 1
    assert "failed to read input file" in caplog.text


def test_main_adds_reflection_attributes(tmp_path: Path) -> None:
    descriptor_path = _write_descriptor(tmp_path, [("shop.proto", "shop")])
    generator = _RecordingGenerator()

    exit_code = cli.main(
        [
            "-i",
            str(descriptor_path),
            "-o",
            str(tmp_path / "shop.rs"),
            "--type-attribute",
            ".shop=#[derive(Hash)]",
            "--proto-reflect-byte",
            "crate::PROTO_DEF",
        ],
        generator=generator,
    )

    assert exit_code == 0
    config = generator.configs[0]
    assert config.type_attributes[0] == (".shop", "#[derive(Hash)]")
    assert (
        "shop.Thing",
        '#[prost_reflect(message_name = "shop.Thing")]',
    ) in config.type_attributes
    assert len(config.type_attributes) == 4
