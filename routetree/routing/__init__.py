"""Declarative route trees and their compiler.

This package contains:
- Route nodes and controller declarations
- The inherited compile context
- The compiler producing flat dispatch entries
"""

from .compiler import DispatchEntry, RouteCompiler, compile_routes, format_path
from .context import RouteContext
from .controller import Controller, ControllerFactory, handler
from .route import Route

__all__ = [
    "Controller",
    "ControllerFactory",
    "DispatchEntry",
    "Route",
    "RouteCompiler",
    "RouteContext",
    "compile_routes",
    "format_path",
    "handler",
]
