class CalendarError(Exception):
    """Base class for every failure raised by the calendar engine."""


class ConversionFailure(CalendarError):
    """
    A lunar date could not be converted to the solar calendar.

    Recoverable: the affected holiday is skipped for that year and every
    other holiday is still computed.
    """


class ValidationFailure(CalendarError):
    """Input rejected before anything was written (missing or inverted dates)."""


class PersistenceFailure(CalendarError):
    """Read or write error reported by the store."""


class PartialReplaceFailure(PersistenceFailure):
    """
    A replace-write deleted the year's old rows but failed to insert the new ones.

    The caller must not assume the previous data still exists.
    """

    def __init__(self, table: str, academic_year: int, cause: Exception):
        self.table = table
        self.academic_year = academic_year
        self.cause = cause
        super().__init__(
            f"{table}: rows for {academic_year} were deleted but the new rows "
            f"could not be inserted ({cause})"
        )
