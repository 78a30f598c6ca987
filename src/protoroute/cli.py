"""Command-line entry point routing generated protobuf modules to files."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import BinaryIO, List, Optional, Sequence

from .config import GeneratorConfig, RouteConfig
from .descriptor_loader import DescriptorLoader
from .errors import ProtoRouteError
from .generator import DEFAULT_PLUGIN_COMMAND, ICodeGenerator, PluginGenerator, check_generated
from .modules import ModuleResolver
from .router import OutputRouter

logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def run(
    args: argparse.Namespace,
    *,
    generator: Optional[ICodeGenerator] = None,
    stdin: Optional[BinaryIO] = None,
) -> List[Path]:
    """Execute the load, resolve, generate and route pipeline.

    All flags are validated before the input is read so that a malformed
    flag never leaves partial output behind.
    """

    generator_config = GeneratorConfig.from_flags(
        extern_path=args.extern_path,
        field_attribute=args.field_attribute,
        type_attribute=args.type_attribute,
        message_attribute=args.message_attribute,
        enum_attribute=args.enum_attribute,
        client_attribute=args.client_attribute,
        server_attribute=args.server_attribute,
    )
    route_config = RouteConfig.from_flags(
        output=args.output,
        output_map=args.output_map,
        module_output_map=args.module_output_map,
        module_in_file=args.module_in_file,
        create_directory=args.create_directory,
    )

    loader = DescriptorLoader(args.input, stdin=stdin)
    files = loader.load()

    if args.reflection_byte_reference:
        generator_config.add_reflection(files, args.reflection_byte_reference)

    resolver = ModuleResolver()
    request = resolver.resolve(files)

    if generator is None:
        generator = PluginGenerator(args.generator)
    units = check_generated(request, generator.generate(request, generator_config))

    with OutputRouter(route_config, resolver.sources) as router:
        router.route_all(units)
    logger.info("routed %d module(s) into %d file(s)", len(units), len(router.written))
    return router.written


def _build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="protoc-gen-route",
        description=(
            "Generate sources from a FileDescriptorSet and route each protobuf package "
            "to its output file. Output paths are relative to the working directory."
        ),
    )
    parser.add_argument(
        "-i",
        "--input",
        required=True,
        help="Path to a serialized FileDescriptorSet, or '-' to read standard input",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        help="Shared output file for every module without an explicit route",
    )
    parser.add_argument(
        "--extern-path",
        action="append",
        help="Map a proto package to an external path, e.g. '.a.b.c=::x::y'",
    )
    parser.add_argument(
        "--field-attribute",
        action="append",
        help="Attach an attribute to a field, in the form 'path=attribute'",
    )
    parser.add_argument(
        "--type-attribute",
        action="append",
        help="Attach an attribute to a message or enum type, in the form 'path=attribute'",
    )
    parser.add_argument(
        "--message-attribute",
        action="append",
        help="Attach an attribute to a message type, in the form 'path=attribute'",
    )
    parser.add_argument(
        "--enum-attribute",
        action="append",
        help="Attach an attribute to an enum type, in the form 'path=attribute'",
    )
    parser.add_argument(
        "--client-attribute",
        action="append",
        help="Attach an attribute to generated RPC clients, in the form 'path=attribute'",
    )
    parser.add_argument(
        "--server-attribute",
        action="append",
        help="Attach an attribute to generated RPC servers, in the form 'path=attribute'",
    )
    parser.add_argument(
        "--output-map",
        action="append",
        help="Route an input file to its own output, e.g. 'path/to/input.proto=path/to/output.rs'",
    )
    parser.add_argument(
        "--module-output-map",
        action="append",
        help="Route a module to its own output, e.g. 'a::b::c=path/to/output.rs'",
    )
    parser.add_argument(
        "--module-in-file",
        action="append",
        help=(
            "Wrap an input file or module in extra module declarations, "
            "e.g. 'path/to/input.proto=a::b::c'"
        ),
    )
    parser.add_argument(
        "--create-directory",
        action="store_true",
        help="Create missing parent directories of output files",
    )
    parser.add_argument(
        "--reflection-byte-reference",
        "--proto-reflect-byte",
        dest="reflection_byte_reference",
        help=(
            "Symbol holding the encoded descriptor set for reflection, "
            "e.g. 'crate::PROTO_DEF'; enables reflection attributes on every message"
        ),
    )
    parser.add_argument(
        "--generator",
        default=DEFAULT_PLUGIN_COMMAND,
        help=f"protoc plugin command producing the sources (default: {DEFAULT_PLUGIN_COMMAND})",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (repeat for debug output)",
    )
    return parser


def _configure_logging(verbosity: int) -> None:
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format=_LOG_FORMAT, stream=sys.stderr)


def main(
    argv: Sequence[str] | None = None,
    *,
    generator: Optional[ICodeGenerator] = None,
) -> int:
    """CLI entry point used by ``protoc-gen-route`` and ``python -m protoroute``."""

    parser = _build_argument_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    try:
        written = run(args, generator=generator)
    except ProtoRouteError as exc:
        logger.error("%s", exc)
        return 1

    for path in written:
        print(path)

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
