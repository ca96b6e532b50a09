"""Failures raised when the backing store or identity provider misbehaves."""


class StoreFailure(Exception):
    """Generic failure talking to the document store.

    Carries the underlying driver message; callers are expected to surface it
    rather than retry.
    """

    def __init__(self, detail: str, status_code: int = 503) -> None:
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code


class IdentityError(Exception):
    """Raised by the identity gateway for rejected credentials or tokens."""

    def __init__(self, detail: str, status_code: int = 401) -> None:
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code
