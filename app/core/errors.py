class ConfigurationError(Exception):
    pass


class TelemetryQueryError(Exception):
    """Base for failures that abort a whole telemetry request."""


class QueryExecutionError(TelemetryQueryError):
    pass


class CursorIterationError(TelemetryQueryError):
    pass


class InvalidQueryParameter(ValueError):
    pass
