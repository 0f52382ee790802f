from datetime import date, datetime

import pytest

from opensepa.builder import DirectDebitInitiation
from opensepa.models import SequenceType

PAIN008_NS = {"ns": "urn:iso:std:iso:20022:tech:xsd:pain.008.001.02"}


def add_ing_transaction(instruction, **overrides):
    """Adds the ING sample transaction, with any field overridden by keyword."""
    fields = dict(
        instruction_id="01-E30220000000382012",
        end_to_end_id="E2EID001",
        amount="1.01",
        mandate_id="MANDAATIDNR001",
        mandate_signature_date=date(2011, 12, 31),
        original_debtor_iban=None,
        debtor_name="NAAM",
        debtor_iban="NL98INGB0000000002",
        debtor_bic="INGBNL2A",
        debtor_country="DE",
        debtor_address_lines=["123, ABC street", "32547 Frankfurt Germany"],
        remittance_information="Omschrijving / vrije tekst",
    )
    fields.update(overrides)
    return instruction.add_transaction(**fields)


@pytest.fixture
def initiation():
    """A message with the ING sample group header set."""
    debit_initiation = DirectDebitInitiation()
    debit_initiation.build_group_header(
        "MSGID001", "IPNORGANISATIENAAM", datetime(2012, 2, 22, 9, 29, 54)
    )
    return debit_initiation


@pytest.fixture
def ing_instruction(initiation):
    """The ING sample one-off batch, without transactions."""
    return initiation.payment_instruction(
        "PAYID001",
        date(2012, 2, 5),
        "NAAM",
        SequenceType.ONE_OFF,
        "NL",
        ["Dorpstraat 1", "Amsterdam"],
        "NL28INGB0000000001",
        "INGBNL2A",
    )
