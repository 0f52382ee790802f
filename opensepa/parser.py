import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import IO, Any, List, Optional, Union

from lxml import etree

from opensepa.exceptions import StatementParseError
from opensepa.models import (
    AccountStatement,
    BankToCustomerStatement,
    MessagePagination,
    ReportingPeriod,
    StatementBalance,
    StatementEntry,
)

logger = logging.getLogger(__name__)


def _parse_date_time(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise StatementParseError(f"Invalid ISO date-time '{value}'.") from None


def _parse_decimal(value: Optional[str]) -> Optional[Decimal]:
    if not value:
        return None
    try:
        return Decimal(value)
    except InvalidOperation:
        raise StatementParseError(f"Invalid amount '{value}'.") from None


class BankToCustomerStatementReader:
    """
    Reads ISO 20022 Bank-to-Customer Statement (camt.053.001.02) documents into
    :class:`BankToCustomerStatement` dataclasses.
    """

    NAMESPACE = "urn:iso:std:iso:20022:tech:xsd:camt.053.001.02"

    def __init__(self, message_data: Union[bytes, IO[bytes]]):
        if not isinstance(message_data, bytes):
            message_data = message_data.read()

        # Entities are never expanded and nothing is fetched from the network.
        xml_parser = etree.XMLParser(resolve_entities=False, no_network=True)
        try:
            self.tree = etree.fromstring(message_data.strip(), parser=xml_parser)
        except (etree.XMLSyntaxError, ValueError) as e:
            raise StatementParseError(f"Malformed statement XML: {e}") from e

        # The root may be bound to the default namespace or to a prefix.
        root_ns = etree.QName(self.tree).namespace
        if root_ns != self.NAMESPACE:
            raise StatementParseError(
                f"Unsupported namespace '{root_ns}'. Expected '{self.NAMESPACE}'."
            )
        self.ns = {"ns": root_ns}

    @classmethod
    def read(cls, source: Union[bytes, IO[bytes]]) -> BankToCustomerStatement:
        """
        Parses a camt.053.001.02 payload given as bytes or a binary stream.

        Raises:
            StatementParseError: If the payload is not well formed, not a camt.053.001.02
                document, or lacks the group header message id or a statement id.
        """
        return cls(source).parse()

    def _get_text_from(self, element: Any, xpath_expr: str) -> Optional[str]:
        if element is None:
            return None
        result = element.xpath(xpath_expr, namespaces=self.ns)
        if not result:
            return None
        value = result[0]
        if isinstance(value, str):
            return value.strip() or None
        return value.text.strip() if value.text else None

    def _get_nodes_from(self, element: Any, xpath_expr: str) -> list:
        return element.xpath(xpath_expr, namespaces=self.ns)

    def parse(self) -> BankToCustomerStatement:
        grp_hdr = self._get_nodes_from(self.tree, "./ns:BkToCstmrStmt/ns:GrpHdr")
        if not grp_hdr:
            raise StatementParseError("Statement is missing BkToCstmrStmt/GrpHdr.")
        grp_hdr = grp_hdr[0]

        message_id = self._get_text_from(grp_hdr, "./ns:MsgId/text()")
        if not message_id:
            raise StatementParseError("Statement group header is missing MsgId.")

        pagination = None
        page_number = self._get_text_from(grp_hdr, "./ns:MsgPgntn/ns:PgNb/text()")
        if page_number is not None:
            last_page = self._get_text_from(grp_hdr, "./ns:MsgPgntn/ns:LastPgInd/text()")
            pagination = MessagePagination(
                page_number=page_number,
                last_page=last_page in ("true", "1"),
            )

        statements = [
            self._parse_statement(stmt_el)
            for stmt_el in self._get_nodes_from(self.tree, "./ns:BkToCstmrStmt/ns:Stmt")
        ]
        logger.debug("Read statement message %s with %d statement(s)", message_id, len(statements))

        return BankToCustomerStatement(
            message_id=message_id,
            creation_date_time=_parse_date_time(self._get_text_from(grp_hdr, "./ns:CreDtTm/text()")),
            pagination=pagination,
            statements=statements,
        )

    def _parse_statement(self, stmt_el: Any) -> AccountStatement:
        statement_id = self._get_text_from(stmt_el, "./ns:Id/text()")
        if not statement_id:
            raise StatementParseError("Account statement is missing Id.")

        period = None
        if self._get_nodes_from(stmt_el, "./ns:FrToDt"):
            period = ReportingPeriod(
                from_date_time=_parse_date_time(
                    self._get_text_from(stmt_el, "./ns:FrToDt/ns:FrDtTm/text()")
                ),
                to_date_time=_parse_date_time(
                    self._get_text_from(stmt_el, "./ns:FrToDt/ns:ToDtTm/text()")
                ),
            )

        return AccountStatement(
            statement_id=statement_id,
            creation_date_time=_parse_date_time(self._get_text_from(stmt_el, "./ns:CreDtTm/text()")),
            period=period,
            electronic_sequence_number=self._get_text_from(stmt_el, "./ns:ElctrncSeqNb/text()"),
            account_iban=self._get_text_from(stmt_el, "./ns:Acct/ns:Id/ns:IBAN/text()"),
            account_currency=self._get_text_from(stmt_el, "./ns:Acct/ns:Ccy/text()"),
            balances=self._parse_balances(stmt_el),
            entries=self._parse_entries(stmt_el),
        )

    def _parse_balances(self, stmt_el: Any) -> List[StatementBalance]:
        balances = []
        for bal_el in self._get_nodes_from(stmt_el, "./ns:Bal"):
            balances.append(
                StatementBalance(
                    type=self._get_text_from(
                        bal_el,
                        "./ns:Tp/ns:CdOrPrtry/ns:Cd/text() | ./ns:Tp/ns:CdOrPrtry/ns:Prtry/text()",
                    ),
                    amount=_parse_decimal(self._get_text_from(bal_el, "./ns:Amt/text()")),
                    currency=self._get_text_from(bal_el, "./ns:Amt/@Ccy"),
                    credit_debit_indicator=self._get_text_from(bal_el, "./ns:CdtDbtInd/text()"),
                    date=self._get_text_from(bal_el, "./ns:Dt/ns:Dt/text() | ./ns:Dt/ns:DtTm/text()"),
                )
            )
        return balances

    def _parse_entries(self, stmt_el: Any) -> List[StatementEntry]:
        entries = []
        for entry_el in self._get_nodes_from(stmt_el, "./ns:Ntry"):
            entries.append(
                StatementEntry(
                    reference=self._get_text_from(entry_el, "./ns:NtryRef/text()"),
                    amount=_parse_decimal(self._get_text_from(entry_el, "./ns:Amt/text()")),
                    currency=self._get_text_from(entry_el, "./ns:Amt/@Ccy"),
                    credit_debit_indicator=self._get_text_from(entry_el, "./ns:CdtDbtInd/text()"),
                    status=self._get_text_from(entry_el, "./ns:Sts/text()"),
                    booking_date=self._get_text_from(
                        entry_el, "./ns:BookgDt/ns:Dt/text() | ./ns:BookgDt/ns:DtTm/text()"
                    ),
                    value_date=self._get_text_from(
                        entry_el, "./ns:ValDt/ns:Dt/text() | ./ns:ValDt/ns:DtTm/text()"
                    ),
                    remittance_information=self._get_text_from(
                        entry_el, ".//ns:RmtInf/ns:Ustrd/text()"
                    ),
                )
            )
        return entries
