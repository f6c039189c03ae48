"""Data models for bugsync."""

from .bug import Bug, BugDraft, BugUpdate, BugStatus

__all__ = ["Bug", "BugDraft", "BugUpdate", "BugStatus"]
