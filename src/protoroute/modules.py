"""Resolve file descriptors to the modules they generate."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List

from google.protobuf import descriptor_pb2

from .errors import DuplicateModuleError
from .model import ModuleId

logger = logging.getLogger(__name__)


class ModuleResolver:
    """Map every descriptor to a unique :class:`ModuleId`.

    The resolver remembers which source file produced each module so that
    routes keyed by ``.proto`` path can be applied after generation.
    """

    def __init__(self) -> None:
        self._request: Dict[ModuleId, descriptor_pb2.FileDescriptorProto] = {}
        self._sources: Dict[ModuleId, str] = {}

    @property
    def modules(self) -> List[ModuleId]:
        return list(self._request)

    @property
    def sources(self) -> Dict[ModuleId, str]:
        """Mapping of module to the source path that declared it."""

        return dict(self._sources)

    @property
    def request(self) -> Dict[ModuleId, descriptor_pb2.FileDescriptorProto]:
        return dict(self._request)

    def resolve(
        self, files: Iterable[descriptor_pb2.FileDescriptorProto]
    ) -> Dict[ModuleId, descriptor_pb2.FileDescriptorProto]:
        """Return the generation request keyed by module, in input order."""

        for file_proto in files:
            module = ModuleId.from_package(file_proto.package)
            existing = self._sources.get(module)
            if existing is not None:
                raise DuplicateModuleError(
                    f"module duplicate: {module} (from {existing} and {file_proto.name})"
                )
            self._sources[module] = file_proto.name
            self._request[module] = file_proto
            logger.debug("resolved %s -> module %s", file_proto.name, module)
        return self.request

    def source_path(self, module: ModuleId) -> str:
        """Return the source ``.proto`` path that produced *module*."""

        try:
            return self._sources[module]
        except KeyError as exc:
            raise KeyError(f"Module '{module}' has not been resolved") from exc


__all__ = ["ModuleResolver"]
