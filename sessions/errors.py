from __future__ import annotations


class SessionError(Exception):
    """Base class for gaming-session failures surfaced to the requester."""


class SessionValidationError(SessionError):
    pass


class SessionNotFoundError(SessionError):
    def __init__(self, session_id: str):
        super().__init__(f"session not found: {session_id}")
        self.session_id = session_id


class SessionPermissionError(SessionError):
    def __init__(self, session_id: str, requester_id: int, host_id: int):
        super().__init__(f"user {requester_id} is not the host of {session_id}")
        self.session_id = session_id
        self.requester_id = requester_id
        self.host_id = host_id


class RenderSinkError(Exception):
    """Display update failed; never rolls back session state."""


class NotificationSinkError(Exception):
    """Mention delivery failed; never affects session state."""
