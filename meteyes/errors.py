"""Error taxonomy shared by the gallery client and the insight proxy.

- ValidationError: bad local input, raised before any network call.
- UpstreamError: the remote call completed but signalled failure (carries status).
- NetworkError: transport-level failure, no response received.
- InvalidStateError: controller command issued in a mode that does not accept it.
- StorageUnavailableError: the persisted key/value storage cannot be read or written.

A missing artwork is not an error: per-item fetches return None.
"""


class MetEyesError(Exception):
    """Base class for all MetEyes errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(MetEyesError):
    pass


class UpstreamError(MetEyesError):
    """A remote call returned a non-2xx status."""

    def __init__(self, message: str, status: int):
        super().__init__(message)
        self.status = status

    @property
    def is_rate_limited(self) -> bool:
        return self.status == 429


class NetworkError(MetEyesError):
    pass


class InvalidStateError(MetEyesError):
    pass


class StorageUnavailableError(MetEyesError):
    pass
