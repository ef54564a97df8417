"""Error taxonomy for the observation pipeline.

Every error raised while resolving a credential, fetching an observation or
converting it derives from WeatherUndergroundError. They carry enough context
(station id, offending field, HTTP status) for callers to log them; the
pipeline itself never logs the errors it raises.
"""


class WeatherUndergroundError(Exception):
    """Base exception for Weather Underground pipeline errors."""

    def __init__(self, message: str, *, station_id: str | None = None):
        super().__init__(message)
        self.station_id = station_id


class CredentialError(WeatherUndergroundError):
    """Raised when the API key cannot be obtained."""

    pass


class TransportError(WeatherUndergroundError):
    """Raised on connection failure, timeout or non-success status code."""

    def __init__(
        self,
        message: str,
        *,
        station_id: str | None = None,
        status_code: int | None = None,
        timed_out: bool = False,
    ):
        super().__init__(message, station_id=station_id)
        self.status_code = status_code
        self.timed_out = timed_out

    @property
    def unauthorized(self) -> bool:
        """True when the service rejected the API key."""
        return self.status_code in (401, 403)


class DecodeError(WeatherUndergroundError):
    """Raised when a response body is not the expected structured format."""

    pass


class ValidationError(WeatherUndergroundError):
    """Raised when a structurally valid payload holds an invalid field.

    Example:
        >>> err = ValidationError("humidity", "140 is outside [0, 100]")
        >>> err.field
        'humidity'
        >>> str(err)
        'humidity: 140 is outside [0, 100]'
    """

    def __init__(self, field: str, reason: str, *, station_id: str | None = None):
        super().__init__(f"{field}: {reason}", station_id=station_id)
        self.field = field
        self.reason = reason


class InfluxWriteError(Exception):
    """Raised when a point cannot be written to InfluxDB."""

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
