"""Shared type aliases used across perch modules."""

from collections.abc import Callable
from typing import Any, TypeAlias

# Route handler: a callable, or a (class, method name) pair resolved lazily
Handler: TypeAlias = Callable[..., Any] | tuple[type, str]

# Provider: zero-argument factory registered against a type annotation
Provider: TypeAlias = Callable[[], Any]
