# vmachine.py
"""Client for the Vmachine SOAP service (vending-machine credit accounts).

Raw operations (``perform_consumption``, ``get_balance``...) return typed
results and raise ``VmachineError`` subclasses. The business flows used by the
REST layer (``authorize``, ``rollback``, ``balance``) never raise: every
failure comes back as a declined outcome with one ``DomainErrorCode``.
"""
import logging
from datetime import datetime
from typing import Iterable, Optional, Type, TypeVar

from pydantic import ValidationError

import config
from error_codes import CallSite, DomainErrorCode, classify
from errors import DecodeFailure, TransportFailure, VmachineError
from models import (
    AuthorizationOut,
    BalanceOutcome,
    BalanceResult,
    CancelSaleRequest,
    CancelSaleResult,
    ConsumptionResult,
    GetBalanceRequest,
    OperationRequest,
    PerformConsumptionRequest,
    PerformSaleRequest,
    ProductItem,
    ReversalResult,
    ReverseConsumptionRequest,
    RollbackOut,
    SaleResult,
    SearchAccountsRequest,
    SearchAccountsResult,
    SoapResult,
)
from soap_envelope import build_envelope
from soap_response import decode_xml, extract_result, fault_from_failure, fault_from_tree
from soap_transport import SoapTransport

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=SoapResult)


class VmachineClient:
    def __init__(
        self,
        endpoint: Optional[str] = None,
        auth_key: str = "",
        timeout: float = 30.0,
        verify_tls: bool = False,
        transport: Optional[SoapTransport] = None,
    ) -> None:
        if transport is None:
            if not endpoint:
                raise ValueError("endpoint or transport is required")
            transport = SoapTransport(endpoint, timeout=timeout, verify=verify_tls)
        self.transport = transport
        self.auth_key = auth_key

    @classmethod
    def from_config(cls) -> "VmachineClient":
        return cls(
            endpoint=config.VMACHINE_ENDPOINT,
            auth_key=config.VMACHINE_AUTH_KEY,
            timeout=config.VMACHINE_TIMEOUT_S,
            verify_tls=config.VMACHINE_VERIFY_TLS,
        )

    @property
    def endpoint(self) -> str:
        return self.transport.endpoint

    # ---- SOAP round trip ----
    async def call(self, request: OperationRequest, result_type: Type[R]) -> R:
        op = request.operation
        envelope = build_envelope(request, self.auth_key)

        try:
            raw = await self.transport.post(op, envelope)
        except TransportFailure as failure:
            fault = fault_from_failure(failure)
            if fault is not None:
                logger.warning(f"{op} fault: {fault.message}")
                raise fault from failure
            logger.error(f"{op} transport failure: {failure}")
            raise

        tree = decode_xml(raw)
        fault = fault_from_tree(tree)
        if fault is not None:
            logger.warning(f"{op} fault in successful response: {fault.message}")
            raise fault

        node = extract_result(tree, op)
        try:
            result = result_type.model_validate(node)
        except ValidationError as e:
            raise DecodeFailure(f"{op} result has unexpected values", e) from e

        if not result.has_outcome:
            # no Result element anywhere: nothing was extracted
            if node is tree:
                raise DecodeFailure(f"{op} response has no result element")
            logger.warning(f"{op} result has no {result.outcome_field}")
        return result

    # ---- raw operations ----
    async def perform_consumption(self, request: PerformConsumptionRequest) -> ConsumptionResult:
        return await self.call(request, ConsumptionResult)

    async def reverse_consumption(self, request: ReverseConsumptionRequest) -> ReversalResult:
        return await self.call(request, ReversalResult)

    async def get_balance(self, request: GetBalanceRequest) -> BalanceResult:
        return await self.call(request, BalanceResult)

    async def perform_sale(self, request: PerformSaleRequest) -> SaleResult:
        return await self.call(request, SaleResult)

    async def cancel_sale(self, request: CancelSaleRequest) -> CancelSaleResult:
        return await self.call(request, CancelSaleResult)

    async def search_accounts(self, request: SearchAccountsRequest) -> SearchAccountsResult:
        return await self.call(request, SearchAccountsResult)

    async def test_connection(self) -> bool:
        try:
            await self.search_accounts(SearchAccountsRequest())
            return True
        except VmachineError as e:
            logger.error(f"Connection test against {self.endpoint} failed: {e}")
            return False

    # ---- business flows used by the REST layer ----
    async def authorize(
        self,
        order_uuid: str,
        tag_number: str,
        machine_asset_number: str,
        occurred_at: Optional[datetime],
        products: Iterable[ProductItem],
    ) -> AuthorizationOut:
        try:
            result = await self.perform_consumption(PerformConsumptionRequest(
                id_transaction=order_uuid,
                tag_number=tag_number,
                machine_number=machine_asset_number,
                products=tuple(products),
                date=occurred_at,
            ))
        except VmachineError as e:
            logger.error(f"[Authorization] order {order_uuid} failed: {e}")
            return AuthorizationOut(authorized=False, error_code=classify(str(e)))
        except Exception:
            logger.exception(f"[Authorization] order {order_uuid} failed unexpectedly")
            return AuthorizationOut(authorized=False, error_code=DomainErrorCode.INTERNAL_ERROR)

        if result.succeeded:
            return AuthorizationOut(authorized=True, tag_holder_name=result.customer_name)

        error_code = classify(result.message, result.status)
        logger.info(f"[Authorization] order {order_uuid} declined: {result.status} -> {error_code.value}")
        return AuthorizationOut(
            authorized=False,
            error_code=error_code,
            tag_holder_name=result.customer_name,
        )

    async def rollback(self, order_uuid: str) -> RollbackOut:
        try:
            result = await self.reverse_consumption(ReverseConsumptionRequest(id_transaction=order_uuid))
        except VmachineError as e:
            logger.error(f"[Rollback] order {order_uuid} failed: {e}")
            return RollbackOut(rolled_back=False, error_code=classify(str(e), site=CallSite.ROLLBACK))
        except Exception:
            logger.exception(f"[Rollback] order {order_uuid} failed unexpectedly")
            return RollbackOut(rolled_back=False, error_code=DomainErrorCode.INTERNAL_ERROR)

        if result.succeeded:
            return RollbackOut(rolled_back=True)
        return RollbackOut(
            rolled_back=False,
            error_code=classify(result.message, result.status, site=CallSite.ROLLBACK),
        )

    async def balance(self, tag_number: str, machine_asset_number: str) -> BalanceOutcome:
        try:
            result = await self.get_balance(GetBalanceRequest(
                tag_number=tag_number,
                machine_number=machine_asset_number,
            ))
        except VmachineError as e:
            logger.error(f"[Balance] tag {tag_number} failed: {e}")
            return BalanceOutcome(
                error_code=classify(str(e), site=CallSite.BALANCE),
                message=str(e),
            )
        except Exception as e:
            logger.exception(f"[Balance] tag {tag_number} failed unexpectedly")
            return BalanceOutcome(error_code=DomainErrorCode.INTERNAL_ERROR, message=str(e))

        return BalanceOutcome(current_balance=result.available_credit or 0)
