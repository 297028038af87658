"""Error taxonomy shared by stores, services and routes.

Each error carries the HTTP status the API layer answers with; the app's
exception handler turns any SoundshareError into ``{success: false, message}``.
"""


class SoundshareError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SoundshareError):
    status_code = 400


class Unauthorized(SoundshareError):
    status_code = 401


class Forbidden(SoundshareError):
    status_code = 403


class NotFound(SoundshareError):
    status_code = 404


class StoreFailure(SoundshareError):
    """Unexpected persistence error; message is passed through for diagnostics."""

    status_code = 500
