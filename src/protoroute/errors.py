"""Exception hierarchy shared by the protoroute pipeline."""

from __future__ import annotations


class ProtoRouteError(Exception):
    """Base class for every fatal protoroute condition."""


class DescriptorDecodeError(ProtoRouteError):
    """The input could not be read or is not a valid descriptor set."""


class ConfigurationError(ProtoRouteError, ValueError):
    """A static misconfiguration detected before or during routing."""


class FlagFormatError(ConfigurationError):
    """A repeated flag value is not in the ``selector=value`` form."""


class DuplicateModuleError(ConfigurationError):
    """Two descriptors resolve to the same module identifier."""


class MissingOutputError(ConfigurationError):
    """A module matched no route and no fallback output was configured."""


class RouteConflictError(ConfigurationError):
    """An exclusive destination was claimed by more than one module."""


class GeneratorError(ProtoRouteError):
    """The code generator failed or returned an incomplete result."""


class OutputWriteError(ProtoRouteError, OSError):
    """A destination directory or file could not be created or written."""


__all__ = [
    "ConfigurationError",
    "DescriptorDecodeError",
    "DuplicateModuleError",
    "FlagFormatError",
    "GeneratorError",
    "MissingOutputError",
    "OutputWriteError",
    "ProtoRouteError",
    "RouteConflictError",
]
