"""Code generator contract and the protoc plugin backed implementation."""

from __future__ import annotations

import logging
import shlex
import subprocess
from pathlib import PurePosixPath
from typing import Callable, Dict, List, Mapping, Optional, Protocol, Sequence

from google.protobuf import descriptor_pb2
from google.protobuf.compiler import plugin_pb2
from google.protobuf.message import DecodeError

from .config import GeneratorConfig
from .errors import GeneratorError
from .model import ROOT_MODULE_NAME, GeneratedUnit, ModuleId

logger = logging.getLogger(__name__)

DEFAULT_PLUGIN_COMMAND = "protoc-gen-prost"

GenerationRequest = Mapping[ModuleId, descriptor_pb2.FileDescriptorProto]
Runner = Callable[..., "subprocess.CompletedProcess[bytes]"]


class ICodeGenerator(Protocol):
    """Produce one source text per module of the request."""

    def generate(
        self, request: GenerationRequest, config: GeneratorConfig
    ) -> Mapping[ModuleId, str]:
        ...


def check_generated(
    request: GenerationRequest, generated: Mapping[ModuleId, str]
) -> List[GeneratedUnit]:
    """Validate generator output and return units in request order."""

    unknown = [module for module in generated if module not in request]
    if unknown:
        names = ", ".join(str(module) for module in unknown)
        raise GeneratorError(f"generator returned unknown module(s): {names}")

    units: List[GeneratedUnit] = []
    for module in request:
        if module not in generated:
            raise GeneratorError(f"generator returned no output for module {module}")
        units.append(GeneratedUnit(module=module, content=generated[module]))
    return units


def _escape_parameter(value: str) -> str:
    return value.replace("\\", "\\\\").replace(",", "\\,")


def build_parameter(config: GeneratorConfig) -> str:
    """Render *config* as a plugin parameter string.

    Entries take the form ``category=selector=value`` joined by commas, with
    literal commas and backslashes escaped.
    """

    entries = [
        f"{category}={_escape_parameter(selector)}={_escape_parameter(value)}"
        for category, selector, value in config.iter_parameters()
    ]
    return ",".join(entries)


def module_for_output_name(name: str, modules: Sequence[ModuleId]) -> ModuleId:
    """Map a plugin output file name such as ``a.b.rs`` back to its module."""

    stem = PurePosixPath(name).name
    if "." in stem:
        stem = stem.rsplit(".", 1)[0]

    if stem == ROOT_MODULE_NAME or stem.startswith(ROOT_MODULE_NAME + "."):
        root = ModuleId()
        if root in modules:
            return root

    best: Optional[ModuleId] = None
    for module in modules:
        if module.is_root:
            continue
        package = module.package
        if stem == package or stem.startswith(package + "."):
            if best is None or len(module.segments) > len(best.segments):
                best = module
    if best is None:
        raise GeneratorError(f"generator produced {name!r} for an unknown module")
    return best


class PluginGenerator:
    """Run an external protoc plugin and collect its output per module."""

    def __init__(
        self,
        command: str | Sequence[str] = DEFAULT_PLUGIN_COMMAND,
        *,
        runner: Runner = subprocess.run,
    ) -> None:
        if isinstance(command, str):
            self._argv = shlex.split(command)
        else:
            self._argv = list(command)
        if not self._argv:
            raise GeneratorError("generator command is empty")
        self._runner = runner

    @property
    def argv(self) -> List[str]:
        return list(self._argv)

    def build_request(
        self, request: GenerationRequest, config: GeneratorConfig
    ) -> plugin_pb2.CodeGeneratorRequest:
        plugin_request = plugin_pb2.CodeGeneratorRequest()
        plugin_request.proto_file.extend(request.values())
        plugin_request.file_to_generate.extend(
            file_proto.name for file_proto in request.values()
        )
        plugin_request.parameter = build_parameter(config)
        return plugin_request

    def generate(
        self, request: GenerationRequest, config: GeneratorConfig
    ) -> Dict[ModuleId, str]:
        plugin_request = self.build_request(request, config)
        logger.debug("running %s for %d module(s)", " ".join(self._argv), len(request))
        try:
            completed = self._runner(
                self._argv,
                input=plugin_request.SerializeToString(),
                capture_output=True,
                check=False,
            )
        except OSError as exc:
            raise GeneratorError(f"failed to run generator {self._argv[0]}: {exc}") from exc

        if completed.returncode != 0:
            stderr = (completed.stderr or b"").decode("utf-8", errors="replace").strip()
            raise GeneratorError(
                f"generator {self._argv[0]} exited with status {completed.returncode}: {stderr}"
            )

        response = plugin_pb2.CodeGeneratorResponse()
        try:
            response.ParseFromString(completed.stdout)
        except DecodeError as exc:
            raise GeneratorError(f"generator {self._argv[0]} returned a malformed response") from exc
        if response.error:
            raise GeneratorError(f"generator {self._argv[0]} reported: {response.error}")

        modules = list(request)
        chunks: Dict[ModuleId, List[str]] = {}
        for output_file in response.file:
            module = module_for_output_name(output_file.name, modules)
            chunks.setdefault(module, []).append(output_file.content)

        generated: Dict[ModuleId, str] = {}
        for module in modules:
            parts = chunks.get(module)
            if parts is None:
                logger.debug("generator produced no file for module %s", module)
                generated[module] = ""
                continue
            generated[module] = _join_chunks(parts)
        return generated


def _join_chunks(parts: Sequence[str]) -> str:
    joined = ""
    for part in parts:
        if joined and not joined.endswith("\n"):
            joined += "\n"
        joined += part
    return joined


__all__ = [
    "DEFAULT_PLUGIN_COMMAND",
    "GenerationRequest",
    "ICodeGenerator",
    "PluginGenerator",
    "build_parameter",
    "check_generated",
    "module_for_output_name",
]
