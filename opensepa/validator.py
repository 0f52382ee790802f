import re
from typing import List, Optional

from opensepa.models import (
    DirectDebitDocument,
    DirectDebitTransaction,
    PaymentInstruction,
    ValidationReport,
)


class Validator:
    """
    Pre-validation of a direct debit document's data against SEPA formatting rules.

    The builder stores IBANs, BICs and free text verbatim; run this before submitting
    a document to a bank.
    """

    _bic_pattern = re.compile(r"\A[A-Z]{4}[A-Z]{2}[A-Z0-9]{2}([A-Z0-9]{3})?\Z")
    _iban_format_pattern = re.compile(r"\A[A-Z]{2}[0-9]{2}[A-Z0-9]{11,30}\Z")
    _country_pattern = re.compile(r"\A[A-Z]{2}\Z")

    MAX_ID_LENGTH = 35
    MAX_NAME_LENGTH = 70
    MAX_ADDRESS_LINES = 2
    MAX_REMITTANCE_LENGTH = 140

    @staticmethod
    def _validate_bic(bic: Optional[str]) -> Optional[str]:
        """
        Validates ISO 9362 BIC formatting (8 or 11 characters).
        """
        if not bic:
            return "BIC is missing."

        if not Validator._bic_pattern.match(bic):
            return f"Invalid BIC format: '{bic}'. Must match ISO 9362 standard 8 or 11 characters."

        return None

    @staticmethod
    def _validate_iban_checksum(iban: Optional[str]) -> Optional[str]:
        """
        Validates an International Bank Account Number (IBAN) using the
        Modulo-97 algorithm.
        Returns None if valid, or an error string if invalid.
        """
        if not iban:
            return "IBAN is missing."

        if not Validator._iban_format_pattern.match(iban):
            return f"Invalid IBAN format: '{iban}' does not meet ISO 13616 standards."

        # Move the country code and check digits to the end, then map A=10 .. Z=35
        rearranged = iban[4:] + iban[:4]
        numeric_iban = "".join(
            str(ord(char) - 55) if char.isalpha() else char for char in rearranged
        )

        if int(numeric_iban) % 97 != 1:
            return f"Invalid IBAN checksum: '{iban}'. Failed international Modulo-97 algorithm."

        return None

    @staticmethod
    def _validate_country(country: Optional[str]) -> Optional[str]:
        if country and not Validator._country_pattern.match(country):
            return f"Invalid country code: '{country}'. Must be ISO 3166 alpha-2."
        return None

    @staticmethod
    def _validate_length(label: str, value: Optional[str], limit: int) -> Optional[str]:
        if value is None:
            return None
        if not value.strip():
            return f"{label} is present but is an empty string."
        if len(value) > limit:
            return f"{label} exceeds {limit} characters: '{value}'."
        return None

    @staticmethod
    def _validate_address(label: str, address_lines) -> List[str]:
        errors = []
        if len(address_lines) > Validator.MAX_ADDRESS_LINES:
            errors.append(f"{label} has {len(address_lines)} address lines, at most 2 are allowed.")
        for line in address_lines:
            err = Validator._validate_length(f"{label} address line", line, Validator.MAX_NAME_LENGTH)
            if err:
                errors.append(err)
        return errors

    @staticmethod
    def _validate_instruction(instruction: PaymentInstruction) -> List[str]:
        prefix = f"[Payment Instruction {instruction.payment_info_id}]"
        errors = []

        checks = [
            Validator._validate_length("PmtInfId", instruction.payment_info_id, Validator.MAX_ID_LENGTH),
            Validator._validate_length("Creditor name", instruction.creditor_name, Validator.MAX_NAME_LENGTH),
            Validator._validate_country(instruction.creditor_country),
            Validator._validate_iban_checksum(instruction.creditor_iban),
            Validator._validate_bic(instruction.creditor_bic),
        ]
        errors.extend(f"{prefix} {err}" for err in checks if err)
        errors.extend(
            f"{prefix} {err}"
            for err in Validator._validate_address("Creditor", instruction.creditor_address_lines)
        )

        if not instruction.has_creditor_scheme_id:
            errors.append(f"{prefix} No creditor scheme id at batch level or on every transaction.")

        for transaction in instruction.transactions:
            errors.extend(Validator._validate_transaction(transaction))
        return errors

    @staticmethod
    def _validate_transaction(transaction: DirectDebitTransaction) -> List[str]:
        prefix = f"[Transaction {transaction.end_to_end_id}]"
        checks = [
            Validator._validate_length("InstrId", transaction.instruction_id, Validator.MAX_ID_LENGTH),
            Validator._validate_length("EndToEndId", transaction.end_to_end_id, Validator.MAX_ID_LENGTH),
            Validator._validate_length("MndtId", transaction.mandate_id, Validator.MAX_ID_LENGTH),
            Validator._validate_length("Debtor name", transaction.debtor_name, Validator.MAX_NAME_LENGTH),
            Validator._validate_length(
                "Remittance information",
                transaction.remittance_information,
                Validator.MAX_REMITTANCE_LENGTH,
            ),
            Validator._validate_country(transaction.debtor_country),
            Validator._validate_iban_checksum(transaction.debtor_iban),
            Validator._validate_bic(transaction.debtor_bic),
        ]
        if transaction.original_debtor_iban:
            checks.append(Validator._validate_iban_checksum(transaction.original_debtor_iban))
        if transaction.replacement_debtor_iban:
            checks.append(Validator._validate_iban_checksum(transaction.replacement_debtor_iban))

        errors = [f"{prefix} {err}" for err in checks if err]
        errors.extend(
            f"{prefix} {err}"
            for err in Validator._validate_address("Debtor", transaction.debtor_address_lines)
        )
        return errors

    @staticmethod
    def validate(document: DirectDebitDocument) -> ValidationReport:
        """
        Executes the full suite of validation rules against a built direct debit document.
        Returns a structured ValidationReport containing analytical results.
        """
        errors = []

        header = document.group_header
        for err in (
            Validator._validate_length("MsgId", header.message_id, Validator.MAX_ID_LENGTH),
            Validator._validate_length(
                "Initiating party name", header.initiating_party_name, Validator.MAX_NAME_LENGTH
            ),
        ):
            if err:
                errors.append(f"[Group Header] {err}")

        for instruction in document.payment_instructions:
            errors.extend(Validator._validate_instruction(instruction))

        return ValidationReport(is_valid=len(errors) == 0, errors=errors)
