"""
Storyboard Studio Exceptions

Error hierarchy for the storyboard core. Validation errors are raised before any
external call; generation errors carry a typed failure code from the backend.
"""

from enum import Enum


class StudioError(Exception):
    """Base exception for all studio errors."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================

class ConfigurationError(StudioError):
    """Raised when there's an issue with configuration."""
    pass


class MissingConfigError(ConfigurationError):
    """Raised when a required configuration value is missing."""
    pass


# =============================================================================
# VALIDATION ERRORS
# =============================================================================

class ValidationError(StudioError):
    """Rejected user action; nothing was sent to the backend."""
    pass


class UnknownGroupError(ValidationError):

    def __init__(self, group_index: int, group_count: int):
        super().__init__(
            f"Group {group_index} does not exist",
            {"group_index": group_index, "group_count": group_count},
        )


class EmptyGroupError(ValidationError):
    """All shots of the group are blank; generation is not attempted."""

    def __init__(self, group_index: int):
        super().__init__(f"Group {group_index + 1} has no shot content to draw", {"group_index": group_index})


class NothingToRefineError(ValidationError):

    def __init__(self, group_index: int):
        super().__init__(f"Nothing to refine: group {group_index + 1} has no image yet", {"group_index": group_index})


class InvalidPanelError(ValidationError):

    def __init__(self, panel_number: int, panel_count: int):
        super().__init__(
            f"Panel {panel_number} is outside 1..{panel_count}",
            {"panel_number": panel_number, "panel_count": panel_count},
        )


class ReorderBoundaryError(ValidationError):

    def __init__(self, group_index: int, direction: str):
        super().__init__(
            f"Cannot move group {group_index + 1} {direction}: already at the edge",
            {"group_index": group_index, "direction": direction},
        )


class ShotLockedError(ValidationError):

    def __init__(self, shot_id: int):
        super().__init__(f"Shot {shot_id} is locked", {"shot_id": shot_id})


class InvalidFieldError(ValidationError):

    def __init__(self, field: str):
        super().__init__(f"Shot field '{field}' cannot be edited", {"field": field})


class GroupBusyError(ValidationError):
    """A generation or script draft for this group is still outstanding."""

    def __init__(self, group_index: int, activity: str = "generating"):
        super().__init__(
            f"Group {group_index + 1} is already {activity}", {"group_index": group_index, "activity": activity}
        )


class HistoryEntryNotFoundError(ValidationError):

    def __init__(self, group_index: int, ref: str):
        super().__init__(
            f"Version '{ref}' is not in the history of group {group_index + 1}",
            {"group_index": group_index, "ref": ref},
        )


# =============================================================================
# GENERATION ERRORS
# =============================================================================

class FailureCode(str, Enum):
    """Backend failure kinds the caller branches on."""
    PERMISSION_DENIED = "PERMISSION_DENIED"
    POLICY_BLOCKED = "POLICY_BLOCKED"
    BAD_REQUEST = "BAD_REQUEST"
    RATE_LIMITED = "RATE_LIMITED"
    NO_IMAGE_RETURNED = "NO_IMAGE_RETURNED"
    UNKNOWN = "UNKNOWN"


class GenerationError(StudioError):
    """Raised when the generation backend fails a request."""

    def __init__(self, code: FailureCode, reason: str, details: dict = None):
        details = dict(details or {})
        details["code"] = code.value
        super().__init__(f"{code.value}: {reason}", details)
        self.code = code
        self.reason = reason


class StaleGenerationError(StudioError):
    """A generation finished after its group was reset; the result was dropped."""

    def __init__(self, group_index: int):
        super().__init__(f"Discarded late result for group {group_index + 1}", {"group_index": group_index})


class ScriptGenerationError(StudioError):
    """Raised when the text model returns something unusable."""
    pass


# =============================================================================
# PERSISTENCE ERRORS
# =============================================================================

class PersistenceError(StudioError):
    """Raised when a storyboard cannot be written or read."""
    pass


# =============================================================================
# INVARIANTS
# =============================================================================

class InvariantError(AssertionError):
    """Programming error: the storyboard aggregate is internally inconsistent."""
    pass
