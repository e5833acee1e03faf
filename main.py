# main.py
import logging

from fastapi import FastAPI, HTTPException, Depends, Header, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from config import API_KEY, CORS_ALLOW_ORIGINS, LOG_LEVEL, PORT
from error_codes import DomainErrorCode
from models import (
    AuthorizationIn, AuthorizationOut, RollbackOut, BalanceOut, HealthOut, ProductItem
)
from db import get_db, init_db
from storage import get_order, record_authorization, mark_rolled_back
from vmachine import VmachineClient

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger("authorizer")

API_PREFIX = "/vmpay/v1/authorizer"

app = FastAPI(
    title="VMpay External Authorizers API",
    version="v1",
    description=(
        "Purchase authorization for VMpay vending machines, backed by the Vmachine SOAP service. "
        "TLS verification towards Vmachine is disabled unless VMACHINE_VERIFY_TLS=true."
    ),
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

init_db()

# One explicitly configured client; swap it through app.dependency_overrides in tests
app.state.vmachine = VmachineClient.from_config()

def get_vmachine(request: Request) -> VmachineClient:
    return request.app.state.vmachine

# --------------------- Auth & validation ---------------------
def require_api_key(api_key: str | None = Header(None, alias="API-Key")) -> str:
    if not api_key:
        raise HTTPException(status_code=401, detail="API Key not provided")
    if api_key != API_KEY:
        raise HTTPException(status_code=403, detail="API Key not authorized")
    return api_key

def require_json(request: Request) -> None:
    content_type = request.headers.get("content-type", "")
    if "application/json" not in content_type:
        raise HTTPException(status_code=415, detail="Content-Type must be application/json")

@app.exception_handler(RequestValidationError)
async def validation_error(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"error": "Missing or invalid fields", "details": jsonable_encoder(exc.errors())},
    )

# --------------------- Health ---------------------
@app.get("/health", response_model=HealthOut, response_model_exclude_none=True)
async def health(check_remote: bool = False, vmachine: VmachineClient = Depends(get_vmachine)):
    if check_remote:
        return HealthOut(status="ok", remote=await vmachine.test_connection())
    return HealthOut(status="ok")

# --------------------- Authorizations ---------------------
@app.post(
    f"{API_PREFIX}/authorizations",
    response_model=AuthorizationOut,
    response_model_exclude_none=True,
    dependencies=[Depends(require_api_key), Depends(require_json)],
    tags=["Authorizations"],
)
async def authorize(
    entry: AuthorizationIn,
    db: Session = Depends(get_db),
    vmachine: VmachineClient = Depends(get_vmachine),
):
    products = [
        ProductItem(code=p.upc_code, quantity=p.quantity, price=p.unit_value)
        for p in entry.products
    ]
    outcome = await vmachine.authorize(
        order_uuid=entry.order_uuid,
        tag_number=entry.tag_number,
        machine_asset_number=entry.machine_asset_number,
        occurred_at=entry.occurred_at,
        products=products,
    )

    record_authorization(
        db,
        entry.order_uuid,
        authorized=outcome.authorized,
        tag_holder_name=outcome.tag_holder_name,
        error_code=outcome.error_code.value if outcome.error_code else None,
    )
    return outcome

@app.post(
    f"{API_PREFIX}/authorizations/{{order_uuid}}/rollback",
    response_model=RollbackOut,
    response_model_exclude_none=True,
    dependencies=[Depends(require_api_key)],
    tags=["Authorizations"],
)
async def rollback(
    order_uuid: str,
    db: Session = Depends(get_db),
    vmachine: VmachineClient = Depends(get_vmachine),
):
    order = get_order(db, order_uuid)
    if order is not None and order.rolled_back:
        return RollbackOut(rolled_back=False, error_code=DomainErrorCode.PREVIOUSLY_ROLLED_BACK)

    outcome = await vmachine.rollback(order_uuid)
    if outcome.rolled_back:
        mark_rolled_back(db, order_uuid)
    return outcome

# --------------------- Tags ---------------------
@app.get(
    f"{API_PREFIX}/tags/{{tag_number}}/balance",
    response_model=BalanceOut,
    dependencies=[Depends(require_api_key)],
    tags=["Tags"],
)
async def balance(
    tag_number: str,
    machine_asset_number: str = Query(...),
    vmachine: VmachineClient = Depends(get_vmachine),
):
    outcome = await vmachine.balance(tag_number, machine_asset_number)
    if outcome.error_code == DomainErrorCode.INVALID_TAG:
        raise HTTPException(404, detail="Tag not found or inactive/blocked")
    if outcome.error_code is not None:
        raise HTTPException(500, detail=outcome.message or "Balance query to the external service failed")
    return BalanceOut(current_balance=float(outcome.current_balance or 0))

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=PORT)
