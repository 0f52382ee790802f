import logging
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import IO, Any, Dict, List, Optional, Sequence, Union

from opensepa.exceptions import InvalidAmountError, InvalidStateError, SerializationError
from opensepa.models import (
    DirectDebitDocument,
    DirectDebitTransaction,
    GroupHeader,
    LocalInstrument,
    PaymentInstruction,
    SequenceType,
)
from opensepa.writer import XMLWriter

logger = logging.getLogger(__name__)

AmountLike = Union[Decimal, str, int, float]

_CENT = Decimal("0.01")
# InstdAmt allows 18 digits in total, two of them fractional.
_AMOUNT_LIMIT = Decimal("1e16")


def to_amount(value: AmountLike) -> Decimal:
    """
    Converts a caller supplied amount into a two-decimal EUR Decimal.

    Floats are routed through ``str`` so that ``1.01`` stays ``1.01``.

    Raises:
        InvalidAmountError: If the value is not a finite, strictly positive number
            with at most two fractional digits and 18 digits in total.
    """
    if isinstance(value, bool):
        raise InvalidAmountError(f"Invalid amount: {value!r}")
    if isinstance(value, float):
        value = str(value)
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmountError(f"Invalid amount: {value!r}") from None

    if not amount.is_finite():
        raise InvalidAmountError(f"Invalid amount: {value!r}")
    if amount <= 0:
        raise InvalidAmountError(f"Amount must be strictly positive, got {amount}")
    if amount >= _AMOUNT_LIMIT:
        raise InvalidAmountError(f"Amount {amount} exceeds 18 total digits")
    if amount.as_tuple().exponent < -2 and amount != amount.quantize(_CENT):
        raise InvalidAmountError(f"Amount {amount} has more than two fractional digits")
    return amount.quantize(_CENT)


def _as_date(value: Union[date, datetime]) -> date:
    return value.date() if isinstance(value, datetime) else value


class PaymentInstructionBuilder:
    """
    Mutable staging area for one payment instruction (batch) of a direct debit initiation.

    Instances are handed out by :meth:`DirectDebitInitiation.payment_instruction`.
    """

    def __init__(
        self,
        payment_info_id: str,
        requested_collection_date: date,
        creditor_name: str,
        sequence_type: SequenceType,
        creditor_country: str,
        creditor_address_lines: Sequence[str],
        creditor_iban: str,
        creditor_bic: str,
        creditor_scheme_id: Optional[str] = None,
        local_instrument: LocalInstrument = LocalInstrument.CORE,
    ):
        self.payment_info_id = payment_info_id
        self.requested_collection_date = _as_date(requested_collection_date)
        self.creditor_name = creditor_name
        self.sequence_type = SequenceType(sequence_type)
        self.creditor_country = creditor_country
        self.creditor_address_lines = tuple(creditor_address_lines or ())
        self.creditor_iban = creditor_iban
        self.creditor_bic = creditor_bic
        self.creditor_scheme_id = creditor_scheme_id
        self.local_instrument = LocalInstrument(local_instrument)
        self.transactions: List[DirectDebitTransaction] = []

    def add_transaction(
        self,
        instruction_id: str,
        end_to_end_id: str,
        amount: AmountLike,
        mandate_id: str,
        mandate_signature_date: date,
        original_debtor_iban: Optional[str],
        debtor_name: str,
        debtor_iban: str,
        debtor_bic: str,
        debtor_country: str,
        debtor_address_lines: Sequence[str],
        remittance_information: Optional[str],
        replacement_debtor_iban: Optional[str] = None,
        creditor_scheme_id: Optional[str] = None,
    ) -> DirectDebitTransaction:
        """
        Appends a collection to this batch.

        Supplying either ``original_debtor_iban`` or ``replacement_debtor_iban`` marks the
        mandate as amended and makes the writer emit the account change block.

        Args:
            amount: Strictly positive EUR amount, at most two fractional digits.
            creditor_scheme_id: Overrides the batch level scheme id for this transaction only.

        Returns:
            DirectDebitTransaction: The stored, immutable transaction.

        Raises:
            InvalidAmountError: If the amount is zero, negative or malformed.
        """
        transaction = DirectDebitTransaction(
            instruction_id=instruction_id,
            end_to_end_id=end_to_end_id,
            amount=to_amount(amount),
            mandate_id=mandate_id,
            mandate_signature_date=_as_date(mandate_signature_date),
            debtor_name=debtor_name,
            debtor_iban=debtor_iban,
            debtor_bic=debtor_bic,
            debtor_country=debtor_country,
            debtor_address_lines=tuple(debtor_address_lines or ()),
            remittance_information=remittance_information,
            original_debtor_iban=original_debtor_iban or None,
            replacement_debtor_iban=replacement_debtor_iban or None,
            creditor_scheme_id=creditor_scheme_id or None,
        )
        self.transactions.append(transaction)
        logger.debug(
            "Added transaction %s (%s EUR) to payment instruction %s",
            end_to_end_id,
            transaction.amount,
            self.payment_info_id,
        )
        return transaction

    @property
    def number_of_transactions(self) -> int:
        return len(self.transactions)

    @property
    def control_sum(self) -> Decimal:
        return sum((tx.amount for tx in self.transactions), Decimal("0.00"))

    def build(self) -> PaymentInstruction:
        """Freezes the current state of the batch."""
        return PaymentInstruction(
            payment_info_id=self.payment_info_id,
            requested_collection_date=self.requested_collection_date,
            creditor_name=self.creditor_name,
            sequence_type=self.sequence_type,
            creditor_country=self.creditor_country,
            creditor_address_lines=self.creditor_address_lines,
            creditor_iban=self.creditor_iban,
            creditor_bic=self.creditor_bic,
            creditor_scheme_id=self.creditor_scheme_id,
            local_instrument=self.local_instrument,
            transactions=tuple(self.transactions),
        )


class DirectDebitInitiation:
    """
    Incrementally assembles a SEPA Customer Direct Debit Initiation (pain.008.001.02).

    Usage follows the shape of the document: set the group header once, request one
    :class:`PaymentInstructionBuilder` per batch, add transactions to each, then write.

    Example:
        >>> initiation = DirectDebitInitiation()
        >>> initiation.build_group_header("MSGID001", "IPNORGANISATIENAAM", now)
        >>> batch = initiation.payment_instruction("PAYID001", ...)
        >>> batch.add_transaction("INSTR1", "E2E1", "1.01", ...)
        >>> xml_bytes = initiation.to_xml()
    """

    def __init__(self):
        self.group_header: Optional[GroupHeader] = None
        self._instructions: Dict[str, PaymentInstructionBuilder] = {}

    def build_group_header(
        self, message_id: str, initiating_party_name: str, creation_date_time: datetime
    ) -> GroupHeader:
        """
        Sets the message level identification. Must be called exactly once, before any
        payment instruction is requested.

        Raises:
            InvalidStateError: If the header is already set, an identifier is empty or the
                creation timestamp is not a datetime.
        """
        if self.group_header is not None:
            raise InvalidStateError(
                f"Group header already set for message '{self.group_header.message_id}'."
            )
        if not message_id:
            raise InvalidStateError("Group header requires a non-empty message id.")
        if not initiating_party_name:
            raise InvalidStateError("Group header requires a non-empty initiating party name.")
        if not isinstance(creation_date_time, datetime):
            raise InvalidStateError(
                f"Group header requires a creation datetime, got {creation_date_time!r}."
            )

        self.group_header = GroupHeader(
            message_id=message_id,
            initiating_party_name=initiating_party_name,
            creation_date_time=creation_date_time,
        )
        logger.debug("Group header set for message %s", message_id)
        return self.group_header

    def payment_instruction(
        self,
        payment_info_id: str,
        requested_collection_date: date,
        creditor_name: str,
        sequence_type: SequenceType,
        creditor_country: str,
        creditor_address_lines: Sequence[str],
        creditor_iban: str,
        creditor_bic: str,
        creditor_scheme_id: Optional[str] = None,
        local_instrument: LocalInstrument = LocalInstrument.CORE,
    ) -> PaymentInstructionBuilder:
        """
        Opens a new batch and returns the handle used to add its transactions.

        IBAN and BIC are stored verbatim; use :class:`opensepa.validator.Validator` to check
        them before submission.

        Raises:
            InvalidStateError: If the group header is not set yet or the payment
                information id is already in use within this message.
        """
        if self.group_header is None:
            raise InvalidStateError("Group header must be set before adding payment instructions.")
        if payment_info_id in self._instructions:
            raise InvalidStateError(f"Duplicate payment information id '{payment_info_id}'.")

        instruction = PaymentInstructionBuilder(
            payment_info_id,
            requested_collection_date,
            creditor_name,
            sequence_type,
            creditor_country,
            creditor_address_lines,
            creditor_iban,
            creditor_bic,
            creditor_scheme_id=creditor_scheme_id,
            local_instrument=local_instrument,
        )
        if instruction.requested_collection_date < self.group_header.creation_date_time.date():
            logger.warning(
                "Payment instruction %s requests collection on %s, before message creation %s",
                payment_info_id,
                instruction.requested_collection_date.isoformat(),
                self.group_header.creation_date_time.isoformat(),
            )

        self._instructions[payment_info_id] = instruction
        logger.debug("Opened payment instruction %s (%s)", payment_info_id, instruction.sequence_type.value)
        return instruction

    def add_transaction(self, payment_info_id: str, **kwargs: Any) -> DirectDebitTransaction:
        """
        Adds a transaction to a previously opened batch, addressed by its payment
        information id. Keyword arguments are those of
        :meth:`PaymentInstructionBuilder.add_transaction`.

        Raises:
            InvalidStateError: If no batch with that id exists.
        """
        instruction = self._instructions.get(payment_info_id)
        if instruction is None:
            raise InvalidStateError(f"Unknown payment information id '{payment_info_id}'.")
        kwargs.setdefault("original_debtor_iban", None)
        kwargs.setdefault("remittance_information", None)
        return instruction.add_transaction(**kwargs)

    @property
    def payment_instructions(self) -> List[PaymentInstructionBuilder]:
        return list(self._instructions.values())

    @property
    def number_of_transactions(self) -> int:
        return sum(pi.number_of_transactions for pi in self._instructions.values())

    @property
    def control_sum(self) -> Decimal:
        return sum((pi.control_sum for pi in self._instructions.values()), Decimal("0.00"))

    def build(self) -> DirectDebitDocument:
        """
        Takes an immutable snapshot of the message as it stands.

        Raises:
            SerializationError: If the group header has not been set.
        """
        if self.group_header is None:
            raise SerializationError("Cannot build a document without a group header.")
        return DirectDebitDocument(
            group_header=self.group_header,
            payment_instructions=tuple(pi.build() for pi in self._instructions.values()),
        )

    def to_xml(self, schema_location: bool = False) -> bytes:
        """
        Renders the current message to pain.008.001.02 XML bytes.

        Args:
            schema_location: Also declare the ``xsi`` namespace and ``xsi:schemaLocation``.
        """
        return XMLWriter(schema_location=schema_location).to_xml(self.build())

    def write(self, sink: IO[bytes]) -> None:
        """
        Writes the document, declaring only the pain.008 default namespace.
        """
        XMLWriter().write(self.build(), sink)

    def write_with_xmlns_xsi(self, sink: IO[bytes]) -> None:
        """
        Writes the document with the ``xsi`` namespace and a schema location attribute.
        """
        XMLWriter(schema_location=True).write(self.build(), sink)
