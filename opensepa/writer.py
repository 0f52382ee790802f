import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import IO, Optional

from lxml import etree

from opensepa.exceptions import SerializationError
from opensepa.models import DirectDebitDocument, DirectDebitTransaction, PaymentInstruction

logger = logging.getLogger(__name__)


def format_amount(amount: Decimal) -> str:
    """Renders an amount with exactly two fractional digits."""
    return f"{amount.quantize(Decimal('0.01')):f}"


def format_date_time(value: datetime) -> str:
    """
    Renders an ISO 8601 date-time with an explicit UTC offset. Naive values are taken as UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.replace(microsecond=0).isoformat()


class XMLWriter:
    """
    Compiles a :class:`DirectDebitDocument` into ISO 20022 pain.008.001.02 XML (lxml byte
    streams).

    Both output variants share one element tree; ``schema_location`` only changes the
    namespace declarations on the root element.
    """

    SCHEMA = "pain.008.001.02"
    XSI_NAMESPACE = "http://www.w3.org/2001/XMLSchema-instance"
    CURRENCY = "EUR"
    PAYMENT_METHOD = "DD"
    SERVICE_LEVEL = "SEPA"
    CHARGE_BEARER = "SLEV"
    SCHEME_NAME = "SEPA"

    def __init__(self, schema_location: bool = False, pretty_print: bool = True):
        """
        Args:
            schema_location: Declare ``xmlns:xsi`` and point ``xsi:schemaLocation`` at the
                pain.008.001.02 schema.
            pretty_print: Indent the output.
        """
        self.namespace = f"urn:iso:std:iso:20022:tech:xsd:{self.SCHEMA}"
        self.schema_location = schema_location
        self.pretty_print = pretty_print

        self.nsmap = {None: self.namespace}
        if schema_location:
            self.nsmap["xsi"] = self.XSI_NAMESPACE

    def to_xml(self, document: DirectDebitDocument) -> bytes:
        """
        Renders the document and returns the UTF-8 encoded bytes.

        Raises:
            SerializationError: If the document has no payment instruction or one of its
                payment instructions has no transaction.
        """
        self._check_complete(document)

        root = etree.Element("Document", nsmap=self.nsmap)
        if self.schema_location:
            root.set(
                f"{{{self.XSI_NAMESPACE}}}schemaLocation",
                f"{self.namespace} {self.SCHEMA}.xsd",
            )

        initiation = etree.SubElement(root, "CstmrDrctDbtInitn")
        self._build_group_header(initiation, document)
        for instruction in document.payment_instructions:
            self._build_payment_information(initiation, instruction)

        logger.debug(
            "Rendered message %s: %d payment instruction(s), %d transaction(s), control sum %s",
            document.message_id,
            len(document.payment_instructions),
            document.number_of_transactions,
            format_amount(document.control_sum),
        )
        return etree.tostring(
            root,
            pretty_print=self.pretty_print,
            xml_declaration=True,
            encoding="UTF-8",
        )

    def write(self, document: DirectDebitDocument, sink: IO[bytes]) -> None:
        """
        Renders the document and writes all bytes to a binary sink. Errors raised by the
        sink propagate unchanged.
        """
        sink.write(self.to_xml(document))

    def _check_complete(self, document: DirectDebitDocument) -> None:
        if document.group_header is None:
            raise SerializationError("Document has no group header.")
        if not document.payment_instructions:
            raise SerializationError(
                f"Message '{document.message_id}' must contain at least one payment instruction."
            )
        for instruction in document.payment_instructions:
            if not instruction.transactions:
                raise SerializationError(
                    f"Payment instruction '{instruction.payment_info_id}' has no transactions."
                )

    @staticmethod
    def _text(parent: etree._Element, tag: str, text: str) -> etree._Element:
        element = etree.SubElement(parent, tag)
        element.text = text
        return element

    def _build_group_header(self, root: etree._Element, document: DirectDebitDocument):
        """Builds the GrpHdr node."""
        header = document.group_header
        grp_hdr = etree.SubElement(root, "GrpHdr")
        self._text(grp_hdr, "MsgId", header.message_id)
        self._text(grp_hdr, "CreDtTm", format_date_time(header.creation_date_time))
        self._text(grp_hdr, "NbOfTxs", str(document.number_of_transactions))
        self._text(grp_hdr, "CtrlSum", format_amount(document.control_sum))
        initg_pty = etree.SubElement(grp_hdr, "InitgPty")
        self._text(initg_pty, "Nm", header.initiating_party_name)

    def _build_payment_information(self, root: etree._Element, instruction: PaymentInstruction):
        """Builds one PmtInf node with its DrctDbtTxInf children."""
        pmt_inf = etree.SubElement(root, "PmtInf")
        self._text(pmt_inf, "PmtInfId", instruction.payment_info_id)
        self._text(pmt_inf, "PmtMtd", self.PAYMENT_METHOD)
        self._text(pmt_inf, "NbOfTxs", str(instruction.number_of_transactions))
        self._text(pmt_inf, "CtrlSum", format_amount(instruction.control_sum))

        pmt_tp_inf = etree.SubElement(pmt_inf, "PmtTpInf")
        svc_lvl = etree.SubElement(pmt_tp_inf, "SvcLvl")
        self._text(svc_lvl, "Cd", self.SERVICE_LEVEL)
        lcl_instrm = etree.SubElement(pmt_tp_inf, "LclInstrm")
        self._text(lcl_instrm, "Cd", instruction.local_instrument.value)
        self._text(pmt_tp_inf, "SeqTp", instruction.sequence_type.value)

        self._text(pmt_inf, "ReqdColltnDt", instruction.requested_collection_date.isoformat())

        cdtr = etree.SubElement(pmt_inf, "Cdtr")
        self._text(cdtr, "Nm", instruction.creditor_name)
        self._build_postal_address(
            cdtr, instruction.creditor_country, instruction.creditor_address_lines
        )

        self._build_account(pmt_inf, "CdtrAcct", instruction.creditor_iban)
        self._build_agent(pmt_inf, "CdtrAgt", instruction.creditor_bic)
        self._text(pmt_inf, "ChrgBr", self.CHARGE_BEARER)

        if instruction.creditor_scheme_id:
            self._build_creditor_scheme_id(pmt_inf, instruction.creditor_scheme_id)

        for transaction in instruction.transactions:
            self._build_transaction(pmt_inf, instruction, transaction)

    def _build_transaction(
        self,
        pmt_inf: etree._Element,
        instruction: PaymentInstruction,
        transaction: DirectDebitTransaction,
    ):
        """Builds a DrctDbtTxInf node."""
        tx_inf = etree.SubElement(pmt_inf, "DrctDbtTxInf")

        pmt_id = etree.SubElement(tx_inf, "PmtId")
        self._text(pmt_id, "InstrId", transaction.instruction_id)
        self._text(pmt_id, "EndToEndId", transaction.end_to_end_id)

        instd_amt = self._text(tx_inf, "InstdAmt", format_amount(transaction.amount))
        instd_amt.set("Ccy", self.CURRENCY)

        drct_dbt_tx = etree.SubElement(tx_inf, "DrctDbtTx")
        mndt_rltd_inf = etree.SubElement(drct_dbt_tx, "MndtRltdInf")
        self._text(mndt_rltd_inf, "MndtId", transaction.mandate_id)
        self._text(mndt_rltd_inf, "DtOfSgntr", transaction.mandate_signature_date.isoformat())
        if transaction.amends_debtor_account:
            self._text(mndt_rltd_inf, "AmdmntInd", "true")
            amdmnt = etree.SubElement(mndt_rltd_inf, "AmdmntInfDtls")
            self._build_account(amdmnt, "OrgnlDbtrAcct", transaction.mandate_iban)

        scheme_id = self._transaction_scheme_id(instruction, transaction)
        if scheme_id:
            self._build_creditor_scheme_id(drct_dbt_tx, scheme_id)

        self._build_agent(tx_inf, "DbtrAgt", transaction.debtor_bic)

        dbtr = etree.SubElement(tx_inf, "Dbtr")
        self._text(dbtr, "Nm", transaction.debtor_name)
        self._build_postal_address(dbtr, transaction.debtor_country, transaction.debtor_address_lines)

        self._build_account(tx_inf, "DbtrAcct", transaction.collection_iban)

        if transaction.remittance_information:
            rmt_inf = etree.SubElement(tx_inf, "RmtInf")
            self._text(rmt_inf, "Ustrd", transaction.remittance_information)

    @staticmethod
    def _transaction_scheme_id(
        instruction: PaymentInstruction, transaction: DirectDebitTransaction
    ) -> Optional[str]:
        # Only rendered per transaction where it differs from the batch level id.
        effective = instruction.effective_creditor_scheme_id(transaction)
        if effective and effective != instruction.creditor_scheme_id:
            return effective
        return None

    def _build_creditor_scheme_id(self, parent: etree._Element, scheme_id: str):
        """Builds a CdtrSchmeId node."""
        cdtr_schme_id = etree.SubElement(parent, "CdtrSchmeId")
        id_node = etree.SubElement(cdtr_schme_id, "Id")
        prvt_id = etree.SubElement(id_node, "PrvtId")
        othr = etree.SubElement(prvt_id, "Othr")
        self._text(othr, "Id", scheme_id)
        schme_nm = etree.SubElement(othr, "SchmeNm")
        self._text(schme_nm, "Prtry", self.SCHEME_NAME)

    def _build_account(self, parent: etree._Element, tag: str, iban: str):
        account = etree.SubElement(parent, tag)
        id_node = etree.SubElement(account, "Id")
        self._text(id_node, "IBAN", iban)

    def _build_agent(self, parent: etree._Element, tag: str, bic: str):
        agent = etree.SubElement(parent, tag)
        fin_instn_id = etree.SubElement(agent, "FinInstnId")
        self._text(fin_instn_id, "BIC", bic)

    def _build_postal_address(self, parent: etree._Element, country: str, address_lines):
        """Builds a PstlAdr node."""
        if not country and not address_lines:
            return
        pstl_adr = etree.SubElement(parent, "PstlAdr")
        if country:
            self._text(pstl_adr, "Ctry", country)
        for line in address_lines:
            self._text(pstl_adr, "AdrLine", line)
