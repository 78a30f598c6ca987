"""Dataclasses describing modules, generated units and routing decisions."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

ROOT_MODULE_NAME = "_"


@dataclass(frozen=True, slots=True)
class ModuleId:
    """Hierarchical module path derived from a protobuf package name."""

    segments: Tuple[str, ...] = ()

    @classmethod
    def from_package(cls, package: Optional[str]) -> "ModuleId":
        """Split a dotted package name; an empty package maps to the root module."""

        if not package:
            return cls()
        return cls(tuple(segment for segment in package.split(".") if segment))

    @classmethod
    def parse(cls, text: str) -> "ModuleId":
        """Parse ``a::b::c`` or ``a.b.c``, with or without a leading root marker."""

        stripped = text.strip()
        if stripped in ("", ROOT_MODULE_NAME, ".", "::"):
            return cls()
        if "::" in stripped:
            parts = stripped.split("::")
        else:
            parts = stripped.split(".")
        return cls(tuple(part.strip() for part in parts if part.strip()))

    @property
    def is_root(self) -> bool:
        return not self.segments

    @property
    def package(self) -> str:
        """Dotted protobuf package form of the module."""

        return ".".join(self.segments)

    def __str__(self) -> str:
        if not self.segments:
            return ROOT_MODULE_NAME
        return "::".join(self.segments)


@dataclass(frozen=True, slots=True)
class GeneratedUnit:
    """Source text produced by the generator for a single module."""

    module: ModuleId
    content: str


@dataclass(frozen=True, slots=True)
class Destination:
    """Resolved output location for a generated unit."""

    path: Path
    exclusive: bool
    rule: str
    wrap: Tuple[str, ...] = ()


__all__ = ["Destination", "GeneratedUnit", "ModuleId", "ROOT_MODULE_NAME"]
