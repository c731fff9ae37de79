"""Domain exceptions raised by stores and services; routers translate them to HTTP errors"""


class ApplicationNotFound(Exception):
    """Raised when an application id does not exist"""

    def __init__(self, application_id: str):
        super().__init__(f"Application not found: {application_id}")
        self.application_id = application_id


class SlotContentionError(Exception):
    """Raised when the slot list could not be rewritten after repeated compare-and-swap conflicts"""

    def __init__(self, event_id: str, attempts: int):
        super().__init__(f"Slot list of event {event_id} still contended after {attempts} attempts")
        self.event_id = event_id
        self.attempts = attempts


class CancellationIncomplete(Exception):
    """
    Raised when the application was canceled but a later side effect failed.
    Re-invoking the cancellation finishes the remaining steps.
    """

    def __init__(self, application_id: str, completed_steps: list[str], cause: Exception):
        super().__init__(
            f"Cancellation of {application_id} stopped after {completed_steps or 'no steps'}: {cause}"
        )
        self.application_id = application_id
        self.completed_steps = completed_steps
        self.cause = cause


class LineApiError(Exception):
    """Raised when the LINE Messaging API returns a non-2xx response"""

    def __init__(self, status_code: int, body: str):
        super().__init__(f"LINE API error {status_code}: {body[:200]}")
        self.status_code = status_code
        self.body = body
