"""
Tally error taxonomy.

Recoverable errors (NotFound, InvalidInput) are raised by the ledger and turned
into 4xx responses by the API. Everything under Unrecoverable aborts the current
request with a 500 and leaves the stored state untouched.
"""


class TallyError(Exception):
    """Base for all store errors. `msg` is what the caller gets back."""
    code = "TallyError"

    def __init__(self, msg: str):
        self.msg = msg
        super().__init__(msg)


class NotFound(TallyError):
    code = "NotFound"


class InvalidInput(TallyError):
    code = "InvalidInput"


class Unrecoverable(TallyError):
    code = "Unrecoverable"


class EncodingError(Unrecoverable):
    """Encoded record would exceed the declared maximum size."""


class CorruptRecordError(Unrecoverable):
    """Stored bytes could not be decoded."""


class CounterOverflowError(Unrecoverable):
    pass


class PartitionMismatchError(Unrecoverable):
    """Partition on disk does not belong to the component opening it."""


class DurableWriteError(Unrecoverable):
    pass


class SumOverflowError(Unrecoverable):
    """Total of the amount field is beyond the float range."""
