from __future__ import annotations


class CupError(Exception):
    """Base class for failures the API reports as structured errors."""

    status_code = 500
    public_message: str | None = None

    @property
    def message(self) -> str:
        return self.public_message or str(self)


class ValidationError(CupError, ValueError):
    status_code = 400


class NotFoundError(CupError, LookupError):
    status_code = 404


class IntegrityViolation(CupError):
    # detail is logged, never returned to the client
    status_code = 500
    public_message = "Invalid timeplan data"
