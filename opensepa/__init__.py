"""
OpenSEPA: builds ISO 20022 SEPA Direct Debit Initiation (pain.008.001.02) documents
and reads Bank-to-Customer Statements (camt.053.001.02) into usable structured data.
"""

from .builder import DirectDebitInitiation, PaymentInstructionBuilder
from .exceptions import (
    InvalidAmountError,
    InvalidStateError,
    SepaError,
    SerializationError,
    StatementParseError,
)
from .models import (
    AccountStatement,
    BankToCustomerStatement,
    DirectDebitDocument,
    DirectDebitTransaction,
    GroupHeader,
    LocalInstrument,
    PaymentInstruction,
    SequenceType,
)
from .parser import BankToCustomerStatementReader
from .validator import Validator
from .writer import XMLWriter

__all__ = [
    "DirectDebitInitiation",
    "PaymentInstructionBuilder",
    "DirectDebitDocument",
    "DirectDebitTransaction",
    "GroupHeader",
    "PaymentInstruction",
    "SequenceType",
    "LocalInstrument",
    "XMLWriter",
    "BankToCustomerStatementReader",
    "BankToCustomerStatement",
    "AccountStatement",
    "Validator",
    "SepaError",
    "InvalidStateError",
    "InvalidAmountError",
    "SerializationError",
    "StatementParseError",
]
