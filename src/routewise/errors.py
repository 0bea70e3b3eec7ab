"""Error taxonomy shared by the planner, the monitor and the provider adapters."""

from __future__ import annotations


class RouteWiseError(RuntimeError):
    pass


class CollaboratorUnavailable(RouteWiseError):
    """A collaborator call timed out, failed on the network, or returned an error status."""

    def __init__(self, message: str, *, collaborator: str | None = None) -> None:
        super().__init__(message)
        self.collaborator = collaborator


class ConfigurationMissing(CollaboratorUnavailable):
    """No credential is configured for the collaborator."""


class MalformedSnapshot(RouteWiseError):
    """A collaborator payload did not have the expected shape."""


class NoCandidates(RouteWiseError, ValueError):
    """The path source produced no candidate routes to rank."""

    def __init__(self, message: str = "No candidate routes to evaluate.") -> None:
        super().__init__(message)
