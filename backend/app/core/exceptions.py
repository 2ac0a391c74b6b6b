"""Error taxonomy for the project/emission core.

Services raise these; the HTTP layer maps ``status_code`` onto the response.
"""


class EmissionTrackerError(Exception):
    """Base exception for the application."""

    status_code = 500

    def __init__(self, detail: str = ""):
        self.detail = detail or self.__class__.__doc__ or ""
        super().__init__(self.detail)


class NotFoundError(EmissionTrackerError):
    """Referenced entity does not exist (archived rows count as absent)."""

    status_code = 404


class UnauthorizedError(EmissionTrackerError):
    """Missing or invalid identity."""

    status_code = 401


class ForbiddenError(EmissionTrackerError):
    """Caller lacks the role or membership the operation requires."""

    status_code = 403


class ConflictError(EmissionTrackerError):
    """Operation conflicts with current state."""

    status_code = 409


class WriteRaceError(ConflictError):
    """A concurrent transaction inserted the same unique row first."""


class NextStageRaceError(WriteRaceError):
    """Another transaction created the next-stage instance first."""

    def __init__(self, project_group_id, stage: str):
        self.project_group_id = project_group_id
        self.stage = stage
        super().__init__(f"Next stage '{stage}' already created for project group {project_group_id}")


class ProgressRecordRaceError(WriteRaceError):
    """Another transaction recorded the same user's stage completion first."""

    def __init__(self, stage_instance_id, user_id, stage: str):
        self.stage_instance_id = stage_instance_id
        self.user_id = user_id
        self.stage = stage
        super().__init__(f"Progress for '{stage}' already recorded by user {user_id} on {stage_instance_id}")


class ValidationError(EmissionTrackerError):
    """Request is missing required data or carries malformed values."""

    status_code = 422


class TransientStoreError(EmissionTrackerError):
    """Store connectivity was lost; the whole unit of work may be retried."""

    status_code = 503


class ServiceUnavailableError(EmissionTrackerError):
    """Store stayed unavailable after bounded retries."""

    status_code = 503

    def __init__(self, operation: str, attempts: int):
        self.operation = operation
        self.attempts = attempts
        super().__init__(f"Store unavailable for '{operation}' after {attempts} attempts")
