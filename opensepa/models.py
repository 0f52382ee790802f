from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Tuple


class SequenceType(str, Enum):
    """
    SEPA direct debit sequence type (SeqTp) of a payment instruction.
    """

    ONE_OFF = "OOFF"
    FIRST = "FRST"
    RECURRING = "RCUR"
    FINAL = "FNAL"


class LocalInstrument(str, Enum):
    """
    SEPA direct debit scheme (LclInstrm/Cd) a payment instruction is collected under.
    """

    CORE = "CORE"
    COR1 = "COR1"
    B2B = "B2B"


@dataclass(frozen=True)
class GroupHeader:
    """
    Message level identification of a pain.008 document (GrpHdr).
    """

    message_id: str
    initiating_party_name: str
    creation_date_time: datetime


@dataclass(frozen=True)
class DirectDebitTransaction:
    """
    A single collection from one debtor (DrctDbtTxInf).

    Attributes:
        instruction_id (str): Point-to-point reference (PmtId/InstrId).
        end_to_end_id (str): Reference passed unchanged to the debtor (PmtId/EndToEndId).
        amount (Decimal): Instructed amount in EUR, always quantized to two decimals.
        mandate_id (str): Unique reference of the signed mandate (MndtId).
        mandate_signature_date (date): Date the debtor signed the mandate (DtOfSgntr).
        original_debtor_iban (Optional[str]):
            IBAN the mandate was signed for, when the debtor has since moved accounts.
        replacement_debtor_iban (Optional[str]):
            New IBAN to collect from when reporting an account change.
        creditor_scheme_id (Optional[str]):
            Transaction specific creditor scheme id, overriding the batch level one.
    """

    instruction_id: str
    end_to_end_id: str
    amount: Decimal
    mandate_id: str
    mandate_signature_date: date
    debtor_name: str
    debtor_iban: str
    debtor_bic: str
    debtor_country: str
    debtor_address_lines: Tuple[str, ...] = ()
    remittance_information: Optional[str] = None
    original_debtor_iban: Optional[str] = None
    replacement_debtor_iban: Optional[str] = None
    creditor_scheme_id: Optional[str] = None

    @property
    def amends_debtor_account(self) -> bool:
        """True when either IBAN of an account change was supplied."""
        return bool(self.original_debtor_iban or self.replacement_debtor_iban)

    @property
    def collection_iban(self) -> str:
        """The account the amount is collected from (DbtrAcct)."""
        return self.replacement_debtor_iban or self.debtor_iban

    @property
    def mandate_iban(self) -> str:
        """The account the mandate was originally signed for (OrgnlDbtrAcct)."""
        return self.original_debtor_iban or self.debtor_iban


@dataclass(frozen=True)
class PaymentInstruction:
    """
    A batch of collections sharing a creditor, collection date and sequence type (PmtInf).
    """

    payment_info_id: str
    requested_collection_date: date
    creditor_name: str
    sequence_type: SequenceType
    creditor_country: str
    creditor_address_lines: Tuple[str, ...]
    creditor_iban: str
    creditor_bic: str
    creditor_scheme_id: Optional[str] = None
    local_instrument: LocalInstrument = LocalInstrument.CORE
    transactions: Tuple[DirectDebitTransaction, ...] = ()

    @property
    def number_of_transactions(self) -> int:
        return len(self.transactions)

    @property
    def control_sum(self) -> Decimal:
        return sum((tx.amount for tx in self.transactions), Decimal("0.00"))

    def effective_creditor_scheme_id(self, transaction: DirectDebitTransaction) -> Optional[str]:
        """
        Resolves the creditor scheme id that applies to one of this batch's transactions.
        """
        return transaction.creditor_scheme_id or self.creditor_scheme_id

    @property
    def has_creditor_scheme_id(self) -> bool:
        """True when every transaction resolves to some creditor scheme id."""
        return all(self.effective_creditor_scheme_id(tx) for tx in self.transactions)


@dataclass(frozen=True)
class DirectDebitDocument:
    """
    Immutable snapshot of a complete Customer Direct Debit Initiation (pain.008.001.02).

    Totals are derived from the contained transactions every time they are read.
    """

    group_header: GroupHeader
    payment_instructions: Tuple[PaymentInstruction, ...] = ()

    @property
    def message_id(self) -> str:
        return self.group_header.message_id

    @property
    def number_of_transactions(self) -> int:
        return sum(pi.number_of_transactions for pi in self.payment_instructions)

    @property
    def control_sum(self) -> Decimal:
        return sum((pi.control_sum for pi in self.payment_instructions), Decimal("0.00"))


@dataclass
class MessagePagination:
    """
    Page position of a statement message (GrpHdr/MsgPgntn).
    """

    page_number: str
    last_page: bool


@dataclass
class ReportingPeriod:
    """
    Period covered by an account statement (Stmt/FrToDt).
    """

    from_date_time: Optional[datetime] = None
    to_date_time: Optional[datetime] = None


@dataclass
class StatementBalance:
    type: Optional[str] = None
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    credit_debit_indicator: Optional[str] = None
    date: Optional[str] = None


@dataclass
class StatementEntry:
    reference: Optional[str] = None
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    credit_debit_indicator: Optional[str] = None
    status: Optional[str] = None
    booking_date: Optional[str] = None
    value_date: Optional[str] = None
    remittance_information: Optional[str] = None


@dataclass
class AccountStatement:
    """
    One account statement (Stmt) inside a camt.053 message.

    Attributes:
        statement_id (str): Unique statement identification (Id).
        creation_date_time (Optional[datetime]): When the statement was generated (CreDtTm).
        period (Optional[ReportingPeriod]): Reporting window the statement covers.
        electronic_sequence_number (Optional[str]): Bank assigned sequence (ElctrncSeqNb).
        account_iban (Optional[str]): IBAN of the reported account.
        account_currency (Optional[str]): Currency of the reported account.
    """

    statement_id: str
    creation_date_time: Optional[datetime] = None
    period: Optional[ReportingPeriod] = None
    electronic_sequence_number: Optional[str] = None
    account_iban: Optional[str] = None
    account_currency: Optional[str] = None
    balances: List[StatementBalance] = field(default_factory=list)
    entries: List[StatementEntry] = field(default_factory=list)

    @property
    def from_date_time(self) -> Optional[datetime]:
        return self.period.from_date_time if self.period else None

    @property
    def to_date_time(self) -> Optional[datetime]:
        return self.period.to_date_time if self.period else None


@dataclass
class BankToCustomerStatement:
    """
    Structured representation of a parsed Bank-to-Customer Statement (camt.053.001.02).
    """

    message_id: str
    creation_date_time: Optional[datetime] = None
    pagination: Optional[MessagePagination] = None
    statements: List[AccountStatement] = field(default_factory=list)

    def to_dict(self) -> dict:
        """
        Converts the parsed dataclass into a standard Python dictionary.
        """
        return asdict(self)


@dataclass
class ValidationReport:
    """
    Outcome of a pre-flight data validation run.

    Attributes:
        is_valid (bool): True if no formatting or checksum errors were found.
        errors (List[str]): One message per failed rule, prefixed with its location.
    """

    is_valid: bool
    errors: List[str]
