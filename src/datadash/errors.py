"""Exception hierarchy for the DataDash tabular engine."""


class DataDashError(Exception):
    """Base error class for the tabular engine."""


class MissingBaseTableError(DataDashError, KeyError):
    """Raised when a data model references a base table that was never loaded."""

    def __init__(self, table_id: str):
        self.table_id = table_id
        super().__init__(f"Base table '{table_id}' not found")

    def __str__(self) -> str:
        # KeyError would otherwise wrap the message in quotes
        return self.args[0]


class EmptyWorkbookError(DataDashError, ValueError):
    """Raised when no sheet of an input produced any rows."""


class UnsupportedFileError(DataDashError, ValueError):
    """Raised when the row source cannot read a file type."""


class ModelValidationError(DataDashError, ValueError):
    """Raised by strict data model validation."""

    def __init__(self, problems):
        self.problems = list(problems)
        super().__init__("Invalid data model: " + "; ".join(self.problems))
