"""Configuration helpers for protoroute generation and routing."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from google.protobuf import descriptor_pb2

from .descriptor_loader import iter_message_names
from .errors import FlagFormatError
from .model import ModuleId

logger = logging.getLogger(__name__)

FlagPair = Tuple[str, str]

EXTERN_PATH = "extern_path"
FIELD_ATTRIBUTE = "field_attribute"
TYPE_ATTRIBUTE = "type_attribute"
MESSAGE_ATTRIBUTE = "message_attribute"
ENUM_ATTRIBUTE = "enum_attribute"
CLIENT_ATTRIBUTE = "client_attribute"
SERVER_ATTRIBUTE = "server_attribute"

PARAMETER_CATEGORIES: Tuple[str, ...] = (
    EXTERN_PATH,
    FIELD_ATTRIBUTE,
    TYPE_ATTRIBUTE,
    MESSAGE_ATTRIBUTE,
    ENUM_ATTRIBUTE,
    CLIENT_ATTRIBUTE,
    SERVER_ATTRIBUTE,
)

REFLECT_DERIVE_ATTRIBUTE = "#[derive(::prost_reflect::ReflectMessage)]"


def split_flag(value: str, flag: str = "argument") -> FlagPair:
    """Split ``selector=value`` on the first ``=``."""

    selector, separator, rest = value.partition("=")
    if not separator:
        raise FlagFormatError(f"{flag} {value!r} is not in the form of a=b")
    return selector, rest


def parse_flags(values: Optional[Iterable[str]], flag: str = "argument") -> List[FlagPair]:
    """Parse repeated ``selector=value`` flags into ordered pairs."""

    if not values:
        return []
    return [split_flag(value, flag) for value in values]


def parse_flag_map(values: Optional[Iterable[str]], flag: str = "argument") -> Dict[str, str]:
    return dict(parse_flags(values, flag))


def split_module_path(value: str) -> Tuple[str, ...]:
    """Split a ``a::b::c`` (or ``a.b.c``) module list into segments."""

    return ModuleId.parse(value).segments


def reflection_attributes(full_name: str, byte_reference: str) -> Tuple[str, str, str]:
    return (
        REFLECT_DERIVE_ATTRIBUTE,
        f'#[prost_reflect(message_name = "{full_name}")]',
        f'#[prost_reflect(file_descriptor_set_bytes = "{byte_reference}")]',
    )


@dataclass(slots=True)
class GeneratorConfig:
    """Per-entity overrides forwarded to the code generator."""

    extern_paths: List[FlagPair] = field(default_factory=list)
    field_attributes: List[FlagPair] = field(default_factory=list)
    type_attributes: List[FlagPair] = field(default_factory=list)
    message_attributes: List[FlagPair] = field(default_factory=list)
    enum_attributes: List[FlagPair] = field(default_factory=list)
    client_attributes: List[FlagPair] = field(default_factory=list)
    server_attributes: List[FlagPair] = field(default_factory=list)

    @classmethod
    def from_flags(
        cls,
        *,
        extern_path: Optional[Sequence[str]] = None,
        field_attribute: Optional[Sequence[str]] = None,
        type_attribute: Optional[Sequence[str]] = None,
        message_attribute: Optional[Sequence[str]] = None,
        enum_attribute: Optional[Sequence[str]] = None,
        client_attribute: Optional[Sequence[str]] = None,
        server_attribute: Optional[Sequence[str]] = None,
    ) -> "GeneratorConfig":
        return cls(
            extern_paths=parse_flags(extern_path, "--extern-path"),
            field_attributes=parse_flags(field_attribute, "--field-attribute"),
            type_attributes=parse_flags(type_attribute, "--type-attribute"),
            message_attributes=parse_flags(message_attribute, "--message-attribute"),
            enum_attributes=parse_flags(enum_attribute, "--enum-attribute"),
            client_attributes=parse_flags(client_attribute, "--client-attribute"),
            server_attributes=parse_flags(server_attribute, "--server-attribute"),
        )

    def add_type_attribute(self, selector: str, attribute: str) -> "GeneratorConfig":
        self.type_attributes.append((selector, attribute))
        return self

    def add_reflection(
        self,
        files: Iterable[descriptor_pb2.FileDescriptorProto],
        byte_reference: str,
    ) -> int:
        """Decorate every message for runtime reflection.

        Each message receives the reflection derive, its fully qualified name
        and a reference to the byte symbol holding the encoded descriptor
        pool. Returns the number of decorated messages. Calling this twice
        adds the attributes twice.
        """

        count = 0
        for full_name in iter_message_names(files):
            for attribute in reflection_attributes(full_name, byte_reference):
                self.add_type_attribute(full_name, attribute)
            count += 1
        logger.debug("added reflection attributes to %d message(s)", count)
        return count

    def iter_parameters(self) -> Iterator[Tuple[str, str, str]]:
        """Yield ``(category, selector, value)`` triples in category order."""

        tables = (
            self.extern_paths,
            self.field_attributes,
            self.type_attributes,
            self.message_attributes,
            self.enum_attributes,
            self.client_attributes,
            self.server_attributes,
        )
        for category, table in zip(PARAMETER_CATEGORIES, tables):
            for selector, value in table:
                yield category, selector, value


@dataclass(slots=True)
class RouteConfig:
    """Output routing and wrapping rules."""

    output: Optional[Path] = None
    output_map: Dict[str, Path] = field(default_factory=dict)
    module_output_map: Dict[ModuleId, Path] = field(default_factory=dict)
    module_in_file: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    create_directory: bool = False

    @classmethod
    def from_flags(
        cls,
        *,
        output: Optional[str | Path] = None,
        output_map: Optional[Sequence[str]] = None,
        module_output_map: Optional[Sequence[str]] = None,
        module_in_file: Optional[Sequence[str]] = None,
        create_directory: bool = False,
    ) -> "RouteConfig":
        file_routes = {
            source: Path(target)
            for source, target in parse_flag_map(output_map, "--output-map").items()
        }
        module_routes = {
            ModuleId.parse(module): Path(target)
            for module, target in parse_flags(module_output_map, "--module-output-map")
        }
        wraps = {
            key: split_module_path(modules)
            for key, modules in parse_flags(module_in_file, "--module-in-file")
        }
        return cls(
            output=Path(output) if output is not None else None,
            output_map=file_routes,
            module_output_map=module_routes,
            module_in_file=wraps,
            create_directory=create_directory,
        )

    def wrap_for(self, source_path: Optional[str], module: ModuleId) -> Tuple[str, ...]:
        """Return the wrap registered for *source_path*, else for *module*."""

        if source_path is not None and source_path in self.module_in_file:
            return self.module_in_file[source_path]
        for key, segments in self.module_in_file.items():
            # Keys naming a .proto file never address a module.
            if key.endswith(".proto"):
                continue
            if ModuleId.parse(key) == module:
                return segments
        return ()


__all__ = [
    "GeneratorConfig",
    "PARAMETER_CATEGORIES",
    "RouteConfig",
    "parse_flag_map",
    "parse_flags",
    "reflection_attributes",
    "split_flag",
    "split_module_path",
]
