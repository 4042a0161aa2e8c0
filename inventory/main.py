import logging
import os
import time
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, Request, Response, status
from fastapi.responses import JSONResponse, PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

from .contract import PATH_PRODUCTS
from .db import SessionLocal, init_db
from .errors import AddressError, InsufficientStock, InventoryError, NotFound, ValidationError
from .schemas import ProductIn, ProductOut, ProductPatch, SaleIn, SaleOut
from .store import InventoryStore

APP_NAME = "inventory"

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)

# Optional prefix for routes. Leave empty ("") if your Gateway strips /api/inventory.
# If your Gateway does NOT strip the prefix, set API_PREFIX="/api/inventory".
API_PREFIX = os.getenv("API_PREFIX", "").strip()
if API_PREFIX and not API_PREFIX.startswith("/"):
    API_PREFIX = "/" + API_PREFIX
API_PREFIX = API_PREFIX.rstrip("/")

app = FastAPI(title=APP_NAME)
router = APIRouter(prefix=API_PREFIX)

_store = InventoryStore(SessionLocal)


def get_store() -> InventoryStore:
    return _store


# ---- Startup: ensure schema + tables exist (idempotent) ----
@app.on_event("startup")
def on_startup():
    init_db()
    logger.info("%s started, tables ready", APP_NAME)


# ---- Prometheus metrics ----
REQS = Counter("http_requests_total", "Total HTTP requests", ["service", "path", "method", "status"])
LAT  = Histogram("http_request_duration_seconds", "Request latency", ["service", "path", "method"])
SALES = Counter("inventory_sales_total", "Units sold through the sale endpoint")
SALES_FAILED = Counter("inventory_sale_failures_total", "Refused sales", ["reason"])

@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    REQS.labels(APP_NAME, request.url.path, request.method, response.status_code).inc()
    LAT.labels(APP_NAME, request.url.path, request.method).observe(time.time() - start)
    return response


# ---- Error mapping ----
STATUS_BY_ERROR = (
    (ValidationError, 422),
    (NotFound, 404),
    (InsufficientStock, 409),
    (AddressError, 400),
)

@app.exception_handler(InventoryError)
async def inventory_error_handler(request: Request, exc: InventoryError):
    code = next((c for cls, c in STATUS_BY_ERROR if isinstance(exc, cls)), 400)
    body = {"detail": exc.message, **exc.details}
    if isinstance(exc, ValidationError) and exc.errors:
        body["errors"] = exc.errors
    return JSONResponse(status_code=code, content=body)


@app.get("/health", response_class=PlainTextResponse)
def health():
    return "ok"

@app.get("/metrics")
def metrics():
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


@router.get(f"/{PATH_PRODUCTS}", response_model=List[ProductOut])
def list_products(
    id: Optional[int] = None,
    name: Optional[str] = None,
    supplier_name: Optional[str] = None,
    supplier_contact: Optional[str] = None,
    quantity: Optional[int] = None,
    price: Optional[str] = None,
    sort: Optional[str] = None,
    store: InventoryStore = Depends(get_store),
):
    filters = {
        k: v
        for k, v in {
            "id": id,
            "name": name,
            "supplier_name": supplier_name,
            "supplier_contact": supplier_contact,
            "quantity": quantity,
            "price": price,
        }.items()
        if v is not None
    }
    # sort=quantity,-name
    keys = [k for k in sort.split(",") if k] if sort else None
    return store.list(filters, keys)

@router.post(f"/{PATH_PRODUCTS}", response_model=ProductOut, status_code=status.HTTP_201_CREATED)
def create_product(payload: ProductIn, response: Response, store: InventoryStore = Depends(get_store)):
    pid = store.insert(
        payload.name,
        payload.price,
        payload.quantity,
        payload.supplier_name,
        payload.supplier_contact,
    )
    response.headers["Location"] = f"{API_PREFIX}/{PATH_PRODUCTS}/{pid}"
    return store.get(pid)

@router.get(f"/{PATH_PRODUCTS}/{{pid}}", response_model=ProductOut)
def get_product(pid: int, store: InventoryStore = Depends(get_store)):
    return store.get(pid)

@router.put(f"/{PATH_PRODUCTS}/{{pid}}", response_model=ProductOut)
def replace_product(pid: int, payload: ProductIn, store: InventoryStore = Depends(get_store)):
    store.update(pid, payload.model_dump())
    return store.get(pid)

@router.patch(f"/{PATH_PRODUCTS}/{{pid}}", response_model=ProductOut)
def update_product(pid: int, payload: ProductPatch, store: InventoryStore = Depends(get_store)):
    store.update(pid, payload.model_dump(exclude_unset=True))
    return store.get(pid)

@router.delete(f"/{PATH_PRODUCTS}/{{pid}}", status_code=204)
def delete_product(pid: int, store: InventoryStore = Depends(get_store)):
    if not store.delete(pid):
        raise NotFound(pid)
    return Response(status_code=204)

@router.post(f"/{PATH_PRODUCTS}/{{pid}}/sale", response_model=SaleOut)
def sell_product(pid: int, payload: Optional[SaleIn] = None, store: InventoryStore = Depends(get_store)):
    amount = payload.amount if payload else 1
    try:
        remaining = store.decrement_quantity(pid, amount)
    except InsufficientStock:
        SALES_FAILED.labels(reason="insufficient_stock").inc()
        raise
    except NotFound:
        SALES_FAILED.labels(reason="missing_product").inc()
        raise
    SALES.inc(amount)
    return SaleOut(id=pid, quantity=remaining)

app.include_router(router)
