"""Exceptions raised by the ambient organizer."""


class OrganizerError(Exception):
    """Base class for organizer errors."""


class ContentUnreadable(OrganizerError):
    """Text could not be extracted from a file."""

    def __init__(self, path: str, reason: str = ""):
        self.path = path
        self.reason = reason
        msg = f"Cannot read content of {path}"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)


class TargetNotFound(OrganizerError):
    """A project or knowledge item id/title did not resolve."""

    def __init__(self, kind: str, target: str):
        self.kind = kind
        self.target = target
        super().__init__(f"{kind} not found: {target}")


class InvalidTransition(OrganizerError):
    """A conversation mode change that is not allowed from the current mode."""

    def __init__(self, from_mode, to_kind: str):
        self.from_mode = from_mode
        self.to_kind = to_kind
        super().__init__(f"Cannot move conversation from {from_mode} to {to_kind}")


class PersistenceWriteFailed(OrganizerError):
    """Saving engine state failed. In-memory state is still valid."""

    def __init__(self, key: str, cause: Exception):
        self.key = key
        self.cause = cause
        super().__init__(f"Failed to save '{key}': {cause}")
