"""protoroute package initialization."""

from __future__ import annotations

from . import errors, model
from .model import Destination, GeneratedUnit, ModuleId

__all__ = [
    "DescriptorLoader",
    "Destination",
    "GeneratedUnit",
    "GeneratorConfig",
    "ICodeGenerator",
    "ModuleId",
    "ModuleResolver",
    "OutputRouter",
    "PluginGenerator",
    "RouteConfig",
    "errors",
    "model",
    "wrap_in_modules",
]


def __getattr__(name: str):
    if name == "DescriptorLoader":
        from .descriptor_loader import DescriptorLoader

        return DescriptorLoader

    if name in {"GeneratorConfig", "RouteConfig"}:
        from .config import GeneratorConfig, RouteConfig

        mapping = {
            "GeneratorConfig": GeneratorConfig,
            "RouteConfig": RouteConfig,
        }
        return mapping[name]

    if name in {"ICodeGenerator", "PluginGenerator"}:
        from .generator import ICodeGenerator, PluginGenerator

        mapping = {
            "ICodeGenerator": ICodeGenerator,
            "PluginGenerator": PluginGenerator,
        }
        return mapping[name]

    if name == "ModuleResolver":
        from .modules import ModuleResolver

        return ModuleResolver

    if name in {"OutputRouter", "wrap_in_modules"}:
        from .router import OutputRouter, wrap_in_modules

        mapping = {
            "OutputRouter": OutputRouter,
            "wrap_in_modules": wrap_in_modules,
        }
        return mapping[name]

    raise AttributeError(name)
