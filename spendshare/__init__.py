"""SpendShare: REST backend for personal and group expense tracking."""

from __future__ import annotations

__all__ = [
    "__version__",
    "config",
    "crud",
    "database",
    "logging",
    "models",
    "schemas",
    "security",
    "server",
]

__version__ = "1.0.0"
