from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from opensepa.models import BankToCustomerStatement


class PydanticMessagePagination(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    page_number: str
    last_page: bool


class PydanticReportingPeriod(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    from_date_time: Optional[datetime] = None
    to_date_time: Optional[datetime] = None


class PydanticStatementBalance(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    type: Optional[str] = None
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    credit_debit_indicator: Optional[str] = None
    date: Optional[str] = None


class PydanticStatementEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    reference: Optional[str] = None
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    credit_debit_indicator: Optional[str] = None
    status: Optional[str] = None
    booking_date: Optional[str] = None
    value_date: Optional[str] = None
    remittance_information: Optional[str] = None


class PydanticAccountStatement(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    statement_id: str
    creation_date_time: Optional[datetime] = None
    period: Optional[PydanticReportingPeriod] = None
    electronic_sequence_number: Optional[str] = None
    account_iban: Optional[str] = None
    account_currency: Optional[str] = None
    balances: List[PydanticStatementBalance] = []
    entries: List[PydanticStatementEntry] = []


class PydanticBankToCustomerStatement(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    message_id: str
    creation_date_time: Optional[datetime] = None
    pagination: Optional[PydanticMessagePagination] = None
    statements: List[PydanticAccountStatement] = []


def from_dataclass(statement: BankToCustomerStatement) -> PydanticBankToCustomerStatement:
    """
    Converts a parsed statement dataclass into its Pydantic equivalent.
    """
    return PydanticBankToCustomerStatement.model_validate(statement)
