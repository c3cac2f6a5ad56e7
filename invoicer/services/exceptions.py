class ServiceError(Exception):
    """Base exception for service layer failures."""

    def __init__(self, message: str, *, cause: Exception | None = None):
        super().__init__(message)
        self.cause = cause


class DownstreamServiceError(ServiceError):
    """Raised when the billing backend returns an error response."""

    def __init__(self, message: str, status_code: int | None = None, *, cause: Exception | None = None):
        super().__init__(message, cause=cause)
        self.status_code = status_code


class InvalidScheduleState(ServiceError):
    """Raised when a schedule cannot be advanced in its current state."""

    def __init__(self, message: str, *, schedule_id: str | None = None, status: str | None = None):
        super().__init__(message)
        self.schedule_id = schedule_id
        self.status = status


class NonRecurringSchedule(InvalidScheduleState):
    """Raised when a ONE_TIME schedule is asked for another billing date."""


class NotFoundError(ServiceError):
    """Raised when a requested record does not exist."""


class ScheduleNotFound(NotFoundError):
    pass


class ClientNotFound(NotFoundError):
    pass


class InvoiceNotFound(NotFoundError):
    pass
