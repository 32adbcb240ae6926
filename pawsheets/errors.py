# pawsheets/errors.py


class PawSheetsError(Exception):
    """Base class for errors raised at a worksheet operation boundary."""


class NotFound(PawSheetsError):
    """No record matches the requested worksheet id."""


class ValidationRefusal(PawSheetsError):
    """A protected mutation was refused; nothing was changed."""


class UpstreamFailure(PawSheetsError):
    """The store, blob storage or API call failed."""


class MalformedStoredData(PawSheetsError):
    """Stored columns/rows/styles could not be parsed."""
