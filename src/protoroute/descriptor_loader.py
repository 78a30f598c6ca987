"""Read serialized FileDescriptorSet payloads into descriptor protos."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import BinaryIO, Iterable, Iterator, List, Optional

from google.protobuf import descriptor_pb2
from google.protobuf.message import DecodeError

from .errors import DescriptorDecodeError

logger = logging.getLogger(__name__)

STDIN_SELECTOR = "-"


def read_input(source: str | Path, *, stdin: Optional[BinaryIO] = None) -> bytes:
    """Return the raw bytes named by *source*.

    ``"-"`` reads the whole of standard input; anything else is treated as a
    file path.
    """

    if str(source) == STDIN_SELECTOR:
        stream = stdin if stdin is not None else sys.stdin.buffer
        try:
            return stream.read()
        except OSError as exc:
            raise DescriptorDecodeError(f"failed to read from stdin: {exc}") from exc

    path = Path(source)
    try:
        return path.read_bytes()
    except OSError as exc:
        raise DescriptorDecodeError(f"failed to read input file {path}: {exc}") from exc


def decode_descriptor_set(payload: bytes) -> descriptor_pb2.FileDescriptorSet:
    descriptor_set = descriptor_pb2.FileDescriptorSet()
    try:
        descriptor_set.ParseFromString(payload)
    except DecodeError as exc:
        raise DescriptorDecodeError(f"input is not a valid FileDescriptorSet: {exc}") from exc
    return descriptor_set


def iter_message_names(
    files: Iterable[descriptor_pb2.FileDescriptorProto],
) -> Iterator[str]:
    """Yield the fully qualified name of every message, nested ones included.

    Map entry messages are skipped since no type is generated for them.
    """

    for file_proto in files:
        prefix = file_proto.package
        for message_proto in file_proto.message_type:
            yield from _iter_nested_names(message_proto, prefix)


def _iter_nested_names(
    message_proto: descriptor_pb2.DescriptorProto, prefix: str
) -> Iterator[str]:
    if message_proto.options.map_entry:
        return
    full_name = f"{prefix}.{message_proto.name}" if prefix else message_proto.name
    yield full_name
    for nested_proto in message_proto.nested_type:
        yield from _iter_nested_names(nested_proto, full_name)


class DescriptorLoader:
    """Load the descriptor set named by an input selector."""

    def __init__(self, source: str | Path, *, stdin: Optional[BinaryIO] = None) -> None:
        self._source = source
        self._stdin = stdin
        self._payload = b""
        self._files: List[descriptor_pb2.FileDescriptorProto] = []
        self._loaded = False

    @property
    def payload(self) -> bytes:
        """Raw serialized descriptor set after :meth:`load`."""

        self.load()
        return self._payload

    @property
    def files(self) -> List[descriptor_pb2.FileDescriptorProto]:
        """File descriptors in input order after :meth:`load`."""

        self.load()
        return self._files

    def load(self) -> List[descriptor_pb2.FileDescriptorProto]:
        """Read and decode the input. Subsequent calls return cached results."""

        if self._loaded:
            return self._files

        payload = read_input(self._source, stdin=self._stdin)
        descriptor_set = decode_descriptor_set(payload)
        self._payload = payload
        self._files = list(descriptor_set.file)
        self._loaded = True
        logger.debug(
            "loaded %d file descriptor(s) from %s (%d bytes)",
            len(self._files),
            "stdin" if str(self._source) == STDIN_SELECTOR else self._source,
            len(payload),
        )
        return self._files


__all__ = [
    "DescriptorLoader",
    "STDIN_SELECTOR",
    "decode_descriptor_set",
    "iter_message_names",
    "read_input",
]
