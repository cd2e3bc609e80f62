"""
Service-level exceptions.

These exceptions are **framework-agnostic** and never import Flask, HTTP or
SQLAlchemy. Expected auth failures are not exceptions at all (see
:mod:`library_auth.services.auth.results`); what remains here are conditions
that must stop the process or surface to operators.
"""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """
    Raised at startup when required auth settings are missing or invalid.

    Never raised while serving a request.
    """
