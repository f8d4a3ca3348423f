"""
Processor registration system with decorator support.

This module provides a centralized registry for all processors, enabling
auto-discovery and registration through decorators, so pipelines can be
assembled from processor names (e.g. on the command line).
"""

from __future__ import annotations

import logging
import pkgutil
from collections.abc import Callable, Mapping
from importlib import import_module

from gcodexform.config import TRACE
from gcodexform.processors.base import CommandProcessor

logger = logging.getLogger(__name__)

# Modules in gcodexform.processors that hold no registered processors
_SKIP_MODULES = {"base", "registry", "transform"}


class ProcessorRegistry:
    """
    Singleton registry for processor classes.

    Processors register themselves using the @register_processor decorator.
    The registry supports auto-discovery of decorated processors and
    provides a centralized lookup mechanism.
    """

    _instance: ProcessorRegistry | None = None

    def __new__(cls) -> ProcessorRegistry:
        """Ensure singleton pattern."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        """Initialize the registry (only runs once due to singleton)."""
        if not hasattr(self, "_initialized"):
            self._processors: dict[str, type[CommandProcessor]] = {}
            self._discovered = False
            self._initialized = True

    def register(self, name: str, processor_class: type[CommandProcessor]) -> None:
        """
        Register a processor class with the given name.

        Args:
            name: The processor name (case-insensitive)
            processor_class: The processor class to register

        Raises:
            ValueError: If a different class is already registered under the name
        """
        key = name.lower()
        existing = self._processors.get(key)
        if existing is not None:
            if existing is not processor_class:
                raise ValueError(
                    f"Processor '{key}' is already registered with class {existing.__name__}. "
                    f"Cannot register with {processor_class.__name__}"
                )
            return
        self._processors[key] = processor_class
        logger.debug(f"Registered processor '{key}' -> {processor_class.__name__}")

    def get_processor_class(self, name: str) -> type[CommandProcessor] | None:
        """
        Retrieve a processor class by name.

        Returns:
            The processor class if found, None otherwise
        """
        if not self._discovered:
            self.discover_processors()
        return self._processors.get(name.lower())

    def list_registered_processors(self) -> list[str]:
        """Sorted list of all registered processor names."""
        if not self._discovered:
            self.discover_processors()
        return sorted(self._processors)

    def discover_processors(self) -> None:
        """
        Auto-discover and register all decorated processors.

        Imports every module in the gcodexform.processors package to trigger
        the @register_processor decorators.
        """
        if self._discovered:
            return

        logger.debug("Discovering processors...")
        package = import_module("gcodexform.processors")

        for _, modname, ispkg in pkgutil.iter_modules(package.__path__):
            if ispkg or modname in _SKIP_MODULES:
                continue
            full_module_name = f"gcodexform.processors.{modname}"
            try:
                import_module(full_module_name)
                logger.log(TRACE, "imported processor module %s", full_module_name)
            except ImportError as e:
                logger.warning(f"Failed to import {full_module_name}: {e}")

        self._discovered = True
        logger.debug(f"Processor discovery complete. {len(self._processors)} processors registered.")

    def create_processor(self, name: str, options: Mapping[str, str] | None = None) -> CommandProcessor:
        """
        Create a processor instance from its name and string options.

        Raises:
            ValueError: Unknown processor name or invalid options
        """
        processor_class = self.get_processor_class(name)
        if processor_class is None:
            available = ", ".join(self.list_registered_processors())
            raise ValueError(f"Unknown processor '{name}'. Available: {available}")
        processor = processor_class.from_options(dict(options or {}))
        logger.debug(f"Created processor '{name.lower()}' with options {dict(options or {})}")
        return processor


# Global registry instance
_registry = ProcessorRegistry()


def register_processor(name: str) -> Callable[[type[CommandProcessor]], type[CommandProcessor]]:
    """
    Decorator to register a processor class.

    Usage:
        @register_processor("mirror")
        class MirrorProcessor(TransformProcessor):
            ...
    """

    def decorator(cls: type[CommandProcessor]) -> type[CommandProcessor]:
        if not issubclass(cls, CommandProcessor):
            raise TypeError(f"Class {cls.__name__} must inherit from CommandProcessor")
        _registry.register(name, cls)
        cls._registered_name = name.lower()
        return cls

    return decorator


def parse_stage_spec(spec: str) -> tuple[str, dict[str, str]]:
    """
    Split a --stage argument into a processor name and options

    Args:
        spec: 'name' or 'name:key=value,key=value'

    Returns:
        (name, options)

    Raises:
        ValueError: Empty name or an option without '='
    """
    name, _, rest = spec.partition(":")
    name = name.strip()
    if not name:
        raise ValueError(f"Missing processor name in stage {spec!r}")
    options: dict[str, str] = {}
    for item in rest.split(","):
        if not item.strip():
            continue
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"Stage option {item!r} must look like key=value")
        options[key.strip().lower()] = value.strip()
    return name, options


# Module-level convenience functions that delegate to the registry singleton
get_processor_class = _registry.get_processor_class
list_registered_processors = _registry.list_registered_processors
discover_processors = _registry.discover_processors
create_processor = _registry.create_processor
