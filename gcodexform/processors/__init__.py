"""
Command processors

Each processor turns one GCODE command into zero or more commands given the
modal state before it. Modules in this package register their processors
with @register_processor and are discovered by the registry.
"""

from .base import CommandProcessor
from .registry import create_processor, get_processor_class, list_registered_processors, register_processor

__all__ = [
    "CommandProcessor",
    "register_processor",
    "get_processor_class",
    "list_registered_processors",
    "create_processor",
]
