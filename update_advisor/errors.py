"""
Error taxonomy for the update advisor.
"""

from __future__ import annotations

from typing import List, Optional


class AdvisorError(Exception):
    """Base exception for the update advisor."""


class UsageError(AdvisorError):
    """Bad arguments or an unusable target environment."""

    def __init__(self, message: str, alternatives: Optional[List[str]] = None,
                 suggestions: Optional[List[str]] = None):
        self.alternatives = alternatives or []
        self.suggestions = suggestions or []
        super().__init__(message)


class ToolMissingError(AdvisorError):
    """A required command-line collaborator is not installed."""

    def __init__(self, tool: str, install_hint: str = ""):
        self.tool = tool
        self.install_hint = install_hint
        super().__init__(f"Required command '{tool}' not found")


class SourceUnavailableError(AdvisorError):
    """A package source could not be queried; recoverable per source."""

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"{source} unavailable: {reason}")
