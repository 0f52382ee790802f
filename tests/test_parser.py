import io
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from opensepa.exceptions import StatementParseError
from opensepa.models import BankToCustomerStatement
from opensepa.parser import BankToCustomerStatementReader

MOCK_CAMT053 = b"""<?xml version="1.0" encoding="UTF-8"?>
<Document xmlns="urn:iso:std:iso:20022:tech:xsd:camt.053.001.02">
    <BkToCstmrStmt>
        <GrpHdr>
            <MsgId>AAAASESS-FP-STAT001</MsgId>
            <CreDtTm>2010-10-18T17:00:00+01:00</CreDtTm>
            <MsgPgntn>
                <PgNb>1</PgNb>
                <LastPgInd>true</LastPgInd>
            </MsgPgntn>
        </GrpHdr>
        <Stmt>
            <Id>AAAASESS-FP-STAT001</Id>
            <ElctrncSeqNb>1</ElctrncSeqNb>
            <CreDtTm>2010-10-18T17:00:00+01:00</CreDtTm>
            <FrToDt>
                <FrDtTm>2010-10-18T08:00:00+01:00</FrDtTm>
                <ToDtTm>2010-10-18T17:00:00+01:00</ToDtTm>
            </FrToDt>
            <Acct>
                <Id>
                    <IBAN>SE5130000000000000000001</IBAN>
                </Id>
                <Ccy>SEK</Ccy>
            </Acct>
            <Bal>
                <Tp><CdOrPrtry><Cd>OPBD</Cd></CdOrPrtry></Tp>
                <Amt Ccy="SEK">500000</Amt>
                <CdtDbtInd>CRDT</CdtDbtInd>
                <Dt><Dt>2010-10-15</Dt></Dt>
            </Bal>
            <Bal>
                <Tp><CdOrPrtry><Cd>CLBD</Cd></CdOrPrtry></Tp>
                <Amt Ccy="SEK">435678.50</Amt>
                <CdtDbtInd>CRDT</CdtDbtInd>
                <Dt><Dt>2010-10-18</Dt></Dt>
            </Bal>
            <Ntry>
                <NtryRef>NTRY001</NtryRef>
                <Amt Ccy="SEK">105678.50</Amt>
                <CdtDbtInd>CRDT</CdtDbtInd>
                <Sts>BOOK</Sts>
                <BookgDt><Dt>2010-10-18</Dt></BookgDt>
                <ValDt><Dt>2010-10-18</Dt></ValDt>
                <NtryDtls>
                    <TxDtls>
                        <RmtInf><Ustrd>Invoice 4711</Ustrd></RmtInf>
                    </TxDtls>
                </NtryDtls>
            </Ntry>
            <Ntry>
                <Amt Ccy="SEK">200000</Amt>
                <CdtDbtInd>DBIT</CdtDbtInd>
                <Sts>BOOK</Sts>
                <BookgDt><DtTm>2010-10-18T12:00:00+01:00</DtTm></BookgDt>
            </Ntry>
        </Stmt>
    </BkToCstmrStmt>
</Document>
"""

MOCK_TWO_STATEMENTS = b"""<?xml version="1.0" encoding="UTF-8"?>
<Document xmlns="urn:iso:std:iso:20022:tech:xsd:camt.053.001.02">
    <BkToCstmrStmt>
        <GrpHdr>
            <MsgId>MULTI01</MsgId>
            <CreDtTm>2012-02-22T09:29:54</CreDtTm>
        </GrpHdr>
        <Stmt>
            <Id>STMT-A</Id>
            <CreDtTm>2012-02-22T09:29:54</CreDtTm>
        </Stmt>
        <Stmt>
            <Id>STMT-B</Id>
            <CreDtTm>2012-02-22T09:29:55</CreDtTm>
        </Stmt>
    </BkToCstmrStmt>
</Document>
"""

MOCK_PREFIXED = b"""<?xml version="1.0" encoding="UTF-8"?>
<camt:Document xmlns:camt="urn:iso:std:iso:20022:tech:xsd:camt.053.001.02">
    <camt:BkToCstmrStmt>
        <camt:GrpHdr>
            <camt:MsgId>PREFIX01</camt:MsgId>
            <camt:CreDtTm>2010-10-18T17:00:00+01:00</camt:CreDtTm>
        </camt:GrpHdr>
        <camt:Stmt>
            <camt:Id>STMT-P</camt:Id>
            <camt:FrToDt>
                <camt:FrDtTm>2010-10-18T08:00:00+01:00</camt:FrDtTm>
                <camt:ToDtTm>2010-10-18T17:00:00+01:00</camt:ToDtTm>
            </camt:FrToDt>
        </camt:Stmt>
    </camt:BkToCstmrStmt>
</camt:Document>
"""

MOCK_STATEMENT_WITHOUT_ID = b"""<?xml version="1.0" encoding="UTF-8"?>
<Document xmlns="urn:iso:std:iso:20022:tech:xsd:camt.053.001.02">
    <BkToCstmrStmt>
        <GrpHdr>
            <MsgId>NOID01</MsgId>
        </GrpHdr>
        <Stmt>
            <CreDtTm>2012-02-22T09:29:54</CreDtTm>
        </Stmt>
    </BkToCstmrStmt>
</Document>
"""

CET = timezone(timedelta(hours=1))


def test_group_header():
    """Tests extraction of the statement group header and pagination."""
    statement = BankToCustomerStatementReader.read(MOCK_CAMT053)

    assert isinstance(statement, BankToCustomerStatement)
    assert statement.message_id == "AAAASESS-FP-STAT001"
    assert statement.creation_date_time == datetime(2010, 10, 18, 17, 0, tzinfo=CET)
    assert statement.pagination.page_number == "1"
    assert statement.pagination.last_page is True


def test_account_statement():
    """Tests extraction of statement identification, period and account."""
    statement = BankToCustomerStatementReader.read(MOCK_CAMT053)

    assert len(statement.statements) == 1
    stmt = statement.statements[0]
    assert stmt.statement_id == "AAAASESS-FP-STAT001"
    assert stmt.creation_date_time == datetime(2010, 10, 18, 17, 0, tzinfo=CET)
    assert stmt.from_date_time == datetime(2010, 10, 18, 8, 0, tzinfo=CET)
    assert stmt.to_date_time == datetime(2010, 10, 18, 17, 0, tzinfo=CET)
    assert stmt.electronic_sequence_number == "1"
    assert stmt.account_iban == "SE5130000000000000000001"
    assert stmt.account_currency == "SEK"


def test_balances_and_entries():
    """Tests extraction of balances and booked entries."""
    stmt = BankToCustomerStatementReader.read(MOCK_CAMT053).statements[0]

    assert [b.type for b in stmt.balances] == ["OPBD", "CLBD"]
    assert stmt.balances[1].amount == Decimal("435678.50")
    assert stmt.balances[1].currency == "SEK"
    assert stmt.balances[1].date == "2010-10-18"

    assert len(stmt.entries) == 2
    credit, debit = stmt.entries
    assert credit.reference == "NTRY001"
    assert credit.amount == Decimal("105678.50")
    assert credit.credit_debit_indicator == "CRDT"
    assert credit.status == "BOOK"
    assert credit.value_date == "2010-10-18"
    assert credit.remittance_information == "Invoice 4711"
    assert debit.reference is None
    assert debit.credit_debit_indicator == "DBIT"
    assert debit.booking_date == "2010-10-18T12:00:00+01:00"


def test_reads_from_binary_stream():
    """Tests reading a statement from a binary file-like object."""
    statement = BankToCustomerStatementReader.read(io.BytesIO(MOCK_TWO_STATEMENTS))

    assert statement.message_id == "MULTI01"
    assert [s.statement_id for s in statement.statements] == ["STMT-A", "STMT-B"]


def test_optional_blocks_absent():
    """Tests that missing optional blocks are reported as None or empty lists."""
    statement = BankToCustomerStatementReader.read(MOCK_TWO_STATEMENTS)
    stmt = statement.statements[0]

    assert statement.pagination is None
    assert statement.creation_date_time == datetime(2012, 2, 22, 9, 29, 54)
    assert stmt.period is None
    assert stmt.from_date_time is None
    assert stmt.balances == []
    assert stmt.entries == []


def test_to_dict():
    """Tests the dictionary form of a parsed statement."""
    data = BankToCustomerStatementReader.read(MOCK_CAMT053).to_dict()

    assert data["message_id"] == "AAAASESS-FP-STAT001"
    assert data["pagination"] == {"page_number": "1", "last_page": True}
    assert data["statements"][0]["period"]["from_date_time"] == datetime(2010, 10, 18, 8, 0, tzinfo=CET)


@pytest.mark.parametrize(
    "payload",
    [
        b"",
        b"<Document><unclosed></Document>",
        b'<Document xmlns="urn:iso:std:iso:20022:tech:xsd:pain.008.001.02"><CstmrDrctDbtInitn/></Document>',
        b'<Document xmlns="urn:iso:std:iso:20022:tech:xsd:camt.053.001.02"><BkToCstmrStmt/></Document>',
        b'<Document xmlns="urn:iso:std:iso:20022:tech:xsd:camt.053.001.02"><BkToCstmrStmt><GrpHdr/></BkToCstmrStmt></Document>',
    ],
)
def test_rejects_unreadable_payloads(payload):
    """Tests that malformed or foreign payloads raise StatementParseError."""
    with pytest.raises(StatementParseError):
        BankToCustomerStatementReader.read(payload)


def test_rejects_invalid_timestamp():
    """Tests that an unparseable statement timestamp raises StatementParseError."""
    payload = MOCK_TWO_STATEMENTS.replace(b"2012-02-22T09:29:55", b"yesterday")

    with pytest.raises(StatementParseError):
        BankToCustomerStatementReader.read(payload)


def test_reads_prefixed_namespace():
    """Tests a statement whose root binds the camt.053 namespace to a prefix."""
    statement = BankToCustomerStatementReader.read(MOCK_PREFIXED)

    assert statement.message_id == "PREFIX01"
    assert statement.creation_date_time == datetime(2010, 10, 18, 17, 0, tzinfo=CET)
    assert [s.statement_id for s in statement.statements] == ["STMT-P"]
    assert statement.statements[0].from_date_time == datetime(2010, 10, 18, 8, 0, tzinfo=CET)


def test_rejects_statement_without_id():
    """Tests that an account statement lacking its Id raises StatementParseError."""
    with pytest.raises(StatementParseError):
        BankToCustomerStatementReader.read(MOCK_STATEMENT_WITHOUT_ID)
