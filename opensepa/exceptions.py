class SepaError(Exception):
    """
    Base class for every error raised by OpenSEPA.
    """


class InvalidStateError(SepaError):
    """
    Raised when a builder operation is invoked in a state that does not allow it,
    e.g. setting the group header twice or adding a batch before the header.
    """


class InvalidAmountError(SepaError, ValueError):
    """
    Raised when a monetary amount is not a strictly positive EUR value with at most
    two fractional digits.
    """


class SerializationError(SepaError):
    """
    Raised when an incomplete document tree is handed to the XML writer.
    """


class StatementParseError(SepaError, ValueError):
    """
    Raised when a payload cannot be read as a camt.053.001.02 statement.
    """
