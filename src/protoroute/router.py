"""Route generated module sources to their output files."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from types import TracebackType
from typing import Callable, Iterable, List, Mapping, Optional, Sequence, Set, TextIO, Tuple, Type

from .config import RouteConfig
from .errors import MissingOutputError, OutputWriteError, RouteConflictError
from .model import Destination, GeneratedUnit, ModuleId

logger = logging.getLogger(__name__)

PathResolver = Callable[[RouteConfig, ModuleId, Optional[str]], Optional[Path]]


def wrap_in_modules(content: str, segments: Sequence[str]) -> str:
    """Nest *content* inside one ``pub mod`` block per segment.

    With no segments the content is returned unchanged.
    """

    if not segments:
        return content
    opening = "".join(f"pub mod {segment} {{\n" for segment in segments)
    body = content if content.endswith("\n") else content + "\n"
    return opening + body + "}\n" * len(segments)


def resolve_file_route(
    config: RouteConfig, module: ModuleId, source_path: Optional[str]
) -> Optional[Path]:
    if source_path is None:
        return None
    return config.output_map.get(source_path)


def resolve_module_route(
    config: RouteConfig, module: ModuleId, source_path: Optional[str]
) -> Optional[Path]:
    return config.module_output_map.get(module)


def resolve_fallback(
    config: RouteConfig, module: ModuleId, source_path: Optional[str]
) -> Optional[Path]:
    return config.output


@dataclass(frozen=True, slots=True)
class RouteStrategy:
    """A single row of the routing decision table."""

    rule: str
    exclusive: bool
    resolve: PathResolver


# Tried in order; the first strategy returning a path wins.
ROUTE_STRATEGIES: Tuple[RouteStrategy, ...] = (
    RouteStrategy("output-map", True, resolve_file_route),
    RouteStrategy("module-output-map", True, resolve_module_route),
    RouteStrategy("output", False, resolve_fallback),
)


class OutputRouter:
    """Write generated units to files according to a :class:`RouteConfig`.

    Explicit routes are exclusive: the file is truncated, written once and
    closed. Every other unit is appended to the shared fallback file, which
    is opened lazily on first use and stays open until :meth:`close` (or the
    end of the ``with`` block).
    """

    def __init__(
        self,
        config: RouteConfig,
        sources: Mapping[ModuleId, str],
        *,
        strategies: Sequence[RouteStrategy] = ROUTE_STRATEGIES,
    ) -> None:
        self._config = config
        self._sources = sources
        self._strategies = tuple(strategies)
        self._fallback: Optional[TextIO] = None
        self._fallback_path: Optional[Path] = None
        self._claimed: Set[Path] = set()
        self._written: List[Path] = []
        self._closed = False

    def __enter__(self) -> "OutputRouter":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        traceback: Optional[TracebackType],
    ) -> None:
        if exc is None:
            self.close()
            return
        # Keep the error that aborted routing; a failed close is only logged.
        try:
            self.close()
        except OutputWriteError as close_exc:
            logger.error("%s", close_exc)

    @property
    def written(self) -> List[Path]:
        """Distinct destination paths in the order they were first written."""

        return list(self._written)

    def resolve(self, module: ModuleId) -> Destination:
        """Return the destination for *module* without writing anything."""

        source_path = self._sources.get(module)
        for strategy in self._strategies:
            path = strategy.resolve(self._config, module, source_path)
            if path is None:
                continue
            return Destination(
                path=path,
                exclusive=strategy.exclusive,
                rule=strategy.rule,
                wrap=self._config.wrap_for(source_path, module),
            )
        raise MissingOutputError(f"module {module} has no output")

    def route(self, unit: GeneratedUnit) -> Destination:
        if self._closed:
            raise RuntimeError("OutputRouter is closed")

        destination = self.resolve(unit.module)
        logger.debug(
            "module %s -> %s (%s%s)",
            unit.module,
            destination.path,
            destination.rule,
            f", wrapped in {'::'.join(destination.wrap)}" if destination.wrap else "",
        )
        text = wrap_in_modules(unit.content, destination.wrap)
        if not text.endswith("\n"):
            text += "\n"

        if destination.exclusive:
            self._write_exclusive(destination.path, text)
        else:
            self._append_fallback(destination.path, text)
        return destination

    def route_all(self, units: Iterable[GeneratedUnit]) -> List[Destination]:
        return [self.route(unit) for unit in units]

    def close(self) -> None:
        self._closed = True
        if self._fallback is None:
            return
        handle, self._fallback = self._fallback, None
        try:
            handle.close()
        except OSError as exc:
            raise OutputWriteError(f"failed to close {self._fallback_path}: {exc}") from exc

    def _write_exclusive(self, path: Path, text: str) -> None:
        # Compare resolved paths so aliases of one file are treated as the same file.
        resolved = path.resolve()
        fallback = self._config.output
        if resolved in self._claimed or (fallback is not None and resolved == fallback.resolve()):
            raise RouteConflictError(f"output {path} is claimed by more than one module")
        self._claimed.add(resolved)

        self._prepare_parent(path)
        try:
            with path.open("w", encoding="utf-8") as handle:
                handle.write(text)
        except OSError as exc:
            raise OutputWriteError(f"failed to write file {path}: {exc}") from exc
        self._written.append(path)
        logger.info("wrote %s", path)

    def _append_fallback(self, path: Path, text: str) -> None:
        if self._fallback is None:
            self._prepare_parent(path)
            try:
                self._fallback = path.open("w", encoding="utf-8")
            except OSError as exc:
                raise OutputWriteError(f"failed to create file {path}: {exc}") from exc
            self._fallback_path = path
            self._written.append(path)
            logger.info("opened shared output %s", path)
        try:
            self._fallback.write(text)
        except OSError as exc:
            raise OutputWriteError(f"failed to write file {path}: {exc}") from exc

    def _prepare_parent(self, path: Path) -> None:
        if not self._config.create_directory:
            return
        parent = path.parent
        if parent == Path("."):
            return
        try:
            parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise OutputWriteError(f"failed to create directory {parent}: {exc}") from exc
        logger.debug("ensured directory %s", parent)


__all__ = [
    "OutputRouter",
    "ROUTE_STRATEGIES",
    "RouteStrategy",
    "resolve_fallback",
    "resolve_file_route",
    "resolve_module_route",
    "wrap_in_modules",
]
