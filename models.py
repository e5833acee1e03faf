# models.py  (pydantic models: SOAP operation requests/results + REST I/O)
from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import ClassVar, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from error_codes import DomainErrorCode
from soap_response import ATTR_PREFIX, TEXT_KEY, unwrap_text

# (element name, text or nested fields), rendered in list order
SoapField = Tuple[str, Union[str, List["SoapField"]]]


def _text(value) -> str:
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


# ---- SOAP operation requests ----
class ProductItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    quantity: int = Field(..., ge=0)
    price: Decimal


class OperationRequest(BaseModel, ABC):
    model_config = ConfigDict(frozen=True)

    operation: ClassVar[str]

    @abstractmethod
    def soap_fields(self) -> List[SoapField]:
        ...


class PerformConsumptionRequest(OperationRequest):
    operation: ClassVar[str] = "PerformConsumption"

    id_transaction: str
    tag_number: str
    machine_number: str
    products: Tuple[ProductItem, ...] = ()
    # PerformConsumption has no timestamp element; the order time is not sent
    date: Optional[datetime] = None

    def soap_fields(self) -> List[SoapField]:
        items = [
            ("ConsumptionItemData", [
                ("Product", p.code),
                ("Quantity", _text(p.quantity)),
                ("UnitPrice", _text(p.price)),
            ])
            for p in self.products
        ]
        return [("data", [
            ("ConsumptionAccount", self.tag_number),
            ("ConsumptionUid", self.id_transaction),
            ("Items", items),
            ("PosEid", self.machine_number),
        ])]


class ReverseConsumptionRequest(OperationRequest):
    operation: ClassVar[str] = "ReverseConsumption"

    id_transaction: str

    def soap_fields(self) -> List[SoapField]:
        return [("data", [("ConsumptionUid", self.id_transaction)])]


class GetBalanceRequest(OperationRequest):
    operation: ClassVar[str] = "GetBalance"

    tag_number: str
    machine_number: str

    def soap_fields(self) -> List[SoapField]:
        return [("data", [
            ("ConsumptionAccount", self.tag_number),
            ("PosEid", self.machine_number),
        ])]


class PerformSaleRequest(OperationRequest):
    operation: ClassVar[str] = "PerformSale"

    id_transaction: str
    tag_number: str
    machine_number: str
    products: Tuple[ProductItem, ...] = ()
    date: datetime

    def soap_fields(self) -> List[SoapField]:
        items = [
            ("ProductItem", [
                ("Code", p.code),
                ("Quantity", _text(p.quantity)),
                ("Price", _text(p.price)),
            ])
            for p in self.products
        ]
        return [
            ("IdTransaction", self.id_transaction),
            ("TagNumber", self.tag_number),
            ("MachineNumber", self.machine_number),
            ("Products", items),
            ("Date", _text(self.date)),
        ]


class CancelSaleRequest(OperationRequest):
    operation: ClassVar[str] = "CancelSale"

    id_transaction: str
    machine_number: str
    date: Optional[datetime] = None

    def soap_fields(self) -> List[SoapField]:
        fields: List[SoapField] = [
            ("IdTransaction", self.id_transaction),
            ("MachineNumber", self.machine_number),
        ]
        if self.date is not None:
            fields.append(("Date", _text(self.date)))
        return fields


class SearchAccountsRequest(OperationRequest):
    operation: ClassVar[str] = "SearchAccounts"

    tag_number: Optional[str] = None
    name: Optional[str] = None
    document: Optional[str] = None

    def soap_fields(self) -> List[SoapField]:
        pairs = (("TagNumber", self.tag_number), ("Name", self.name), ("Document", self.document))
        return [(k, v) for k, v in pairs if v]


# ---- SOAP operation results ----
class SoapResult(BaseModel):
    """Whatever subset of fields the remote service chose to return."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    # field whose presence makes the result meaningful
    outcome_field: ClassVar[str] = "status"

    @model_validator(mode="before")
    @classmethod
    def _drop_empty(cls, data):
        if isinstance(data, BaseModel):
            return data
        if not isinstance(data, dict):
            return {}
        cleaned = {}
        for key, value in data.items():
            if key.startswith(ATTR_PREFIX) or key == TEXT_KEY:
                continue
            value = unwrap_text(value)
            if value is None or value == "":
                continue
            cleaned[key] = value
        return cleaned

    @property
    def has_outcome(self) -> bool:
        return getattr(self, self.outcome_field) is not None


class ConsumptionResult(SoapResult):
    status: Optional[str] = Field(None, alias="Status")
    message: Optional[str] = Field(None, alias="Message")
    available_credit: Optional[Decimal] = Field(None, alias="AvailableCredit")
    customer_name: Optional[str] = Field(None, alias="CustomerName")
    print_order_ticket_number: Optional[str] = Field(None, alias="PrintOrderTicketNumber")
    total: Optional[Decimal] = Field(None, alias="Total")

    @property
    def succeeded(self) -> bool:
        return self.status == "Success"


class SaleResult(ConsumptionResult):
    pass


class ReversalResult(SoapResult):
    status: Optional[str] = Field(None, alias="Status")
    message: Optional[str] = Field(None, alias="Message")

    @property
    def succeeded(self) -> bool:
        return self.status == "Success"


class CancelSaleResult(ReversalResult):
    pass


class BalanceResult(SoapResult):
    outcome_field: ClassVar[str] = "available_credit"

    available_credit: Optional[Decimal] = Field(None, alias="AvailableCredit")
    consumption_account: Optional[str] = Field(None, alias="ConsumptionAccount")
    customer_name: Optional[str] = Field(None, alias="CustomerName")
    document: Optional[str] = Field(None, alias="Document")


class AccountResult(SoapResult):
    outcome_field: ClassVar[str] = "tag_number"

    id: Optional[str] = Field(None, alias="Id")
    name: Optional[str] = Field(None, alias="Name")
    document: Optional[str] = Field(None, alias="Document")
    tag_number: Optional[str] = Field(None, alias="TagNumber")
    balance: Optional[Decimal] = Field(None, alias="Balance")
    active: Optional[bool] = Field(None, alias="Active")


class SearchAccountsResult(SoapResult):
    status: Optional[str] = Field(None, alias="Status")
    message: Optional[str] = Field(None, alias="Message")
    accounts: List[AccountResult] = Field(default_factory=list, alias="Accounts")

    @field_validator("accounts", mode="before")
    @classmethod
    def _accounts_list(cls, value):
        # <Accounts><AccountResult/>...</Accounts>; a single account is not a list
        if isinstance(value, dict):
            value = value.get("AccountResult", [])
        if value is None or value == "":
            return []
        if not isinstance(value, list):
            return [value]
        return value


# ---- REST input ----
class ProductIn(BaseModel):
    upc_code: str
    quantity: int = Field(..., ge=0)
    unit_value: Decimal = Field(..., description="Unit price, e.g. \"3.50\"")


class AuthorizationIn(BaseModel):
    order_uuid: str
    occurred_at: datetime
    tag_number: str
    machine_asset_number: str
    products: List[ProductIn]


# ---- REST output / business outcomes ----
class AuthorizationOut(BaseModel):
    authorized: bool
    error_code: Optional[DomainErrorCode] = None
    tag_holder_name: Optional[str] = None


class RollbackOut(BaseModel):
    rolled_back: bool
    error_code: Optional[DomainErrorCode] = None


class BalanceOutcome(BaseModel):
    current_balance: Optional[Decimal] = None
    error_code: Optional[DomainErrorCode] = None
    message: Optional[str] = None


class BalanceOut(BaseModel):
    current_balance: float


class HealthOut(BaseModel):
    status: str
    remote: Optional[bool] = None
