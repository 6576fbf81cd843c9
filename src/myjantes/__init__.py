"""
MyJantes back-office toolkit.

Typed client, local form rules and command-line tooling for the MyJantes
garage platform. All business state lives on the remote API; this package
fetches, validates, summarises and submits.
"""

__version__ = "0.1.0"

__all__ = [
    "api",
    "cli",
    "config",
    "domain",
    "errors",
    "logging",
    "paths",
    "proxy",
    "services",
]
