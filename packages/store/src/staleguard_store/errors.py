from __future__ import annotations


class StoreError(Exception):
    """Base class for revision state store failures."""


class WorkflowNotFoundError(StoreError):
    """The named workflow does not exist in the repository."""


class ArtifactError(StoreError):
    """An artifact could not be uploaded, downloaded or read."""


class StateFormatError(StoreError):
    """A state artifact does not contain a head/base pair."""
