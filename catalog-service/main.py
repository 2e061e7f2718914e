import sys
import time
import uuid
from contextlib import asynccontextmanager
from typing import List

from fastapi import Depends, FastAPI, Path, Request, Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

from config import SERVICE_NAME, Settings, get_settings
from errors import NotFoundError, StorageError
from models import Product
from schemas import DeleteResponse, ProductCreate, ProductResponse, ProductUpdate
from storage import ProductStorage, open_storage


def configure_logging(settings: Settings) -> None:
    # Logs JSON dans un fichier (rotation quotidienne) + console
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level)
    logger.add(
        sink=settings.log_file,
        format="{time:YYYY-MM-DDTHH:mm:ss.SSSZ} | {level} | {message} | {extra}",
        level=settings.log_level,
        serialize=True,
        rotation="1 day",
    )


configure_logging(get_settings())

# Prometheus metrics
REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["service", "method", "endpoint", "status"]
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["service", "method", "endpoint"]
)
ERROR_COUNT = Counter(
    "http_errors_total",
    "Total HTTP errors",
    ["service", "endpoint", "error_type"]
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Any bootstrap error propagates and aborts startup
    storage = open_storage(get_settings())
    app.state.storage = storage
    try:
        yield
    finally:
        try:
            storage.cleanup()
        except Exception as e:
            logger.error(f"Cleanup failed: {e}")


app = FastAPI(title="Catalog Service", lifespan=lifespan)


def get_storage(request: Request) -> ProductStorage:
    """Dependency returning the storage built at startup"""
    return request.app.state.storage


# Middleware pour logger les requests avec correlation ID
@app.middleware("http")
async def log_requests(request: Request, call_next):
    trace_id = request.headers.get("X-Trace-ID", str(uuid.uuid4()))
    start_time = time.time()

    with logger.contextualize(trace_id=trace_id, service=SERVICE_NAME):
        logger.info(
            f"Request: {request.method} {request.url.path}",
            extra={"method": request.method, "url": str(request.url), "trace_id": trace_id}
        )

        response = await call_next(request)

        latency = time.time() - start_time
        REQUEST_COUNT.labels(
            service=SERVICE_NAME,
            method=request.method,
            endpoint=request.url.path,
            status=response.status_code
        ).inc()
        REQUEST_LATENCY.labels(
            service=SERVICE_NAME,
            method=request.method,
            endpoint=request.url.path
        ).observe(latency)

        logger.info(
            f"Response status: {response.status_code}",
            extra={"status": response.status_code, "latency": latency, "trace_id": trace_id}
        )

        response.headers["X-Trace-ID"] = trace_id
        return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Malformed request on {request.url.path}: {exc.errors()}")
    ERROR_COUNT.labels(service=SERVICE_NAME, endpoint=request.url.path, error_type="bad_request").inc()
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    logger.warning(str(exc))
    ERROR_COUNT.labels(service=SERVICE_NAME, endpoint=request.url.path, error_type="not_found").inc()
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    logger.error(f"Storage error: {exc}")
    ERROR_COUNT.labels(service=SERVICE_NAME, endpoint=request.url.path, error_type="storage_error").inc()
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"detail": str(exc)})


@app.get("/metrics")
async def metrics():
    """Endpoint /metrics compatible Prometheus"""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.get("/health")
async def health():
    """Health check endpoint"""
    return {"status": "healthy", "service": SERVICE_NAME}


# Storage calls block (boto3), so the routes below are plain functions run in the threadpool

@app.get("/", response_model=List[ProductResponse])
def get_all_products(storage: ProductStorage = Depends(get_storage)):
    logger.info("Fetching all products")
    return storage.list_products()


@app.post("/product", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
def create_product(body: ProductCreate, storage: ProductStorage = Depends(get_storage)):
    product_id = body.id
    if product_id is None:
        existing = storage.list_products()
        product_id = max(p.id for p in existing) + 1 if existing else 1

    product = Product(id=product_id, name=body.name, price=body.price)
    logger.info(f"Creating product {product}")
    storage.add_product(product)
    return product


@app.get("/product/{product_id}", response_model=ProductResponse)
def get_product(product_id: int = Path(ge=0), storage: ProductStorage = Depends(get_storage)):
    logger.info(f"Fetching product {product_id}")
    return storage.get_product(product_id)


@app.put("/product/{product_id}", response_model=ProductResponse)
def update_product(
    body: ProductUpdate,
    product_id: int = Path(ge=0),
    storage: ProductStorage = Depends(get_storage),
):
    product = Product(id=product_id, name=body.name, price=body.price)
    logger.info(f"Updating product {product}")
    storage.update_product(product)
    return product


@app.delete("/product/{product_id}", response_model=DeleteResponse)
def delete_product(product_id: int = Path(ge=0), storage: ProductStorage = Depends(get_storage)):
    logger.info(f"Deleting product {product_id}")
    storage.delete_product(Product(id=product_id, name="", price=0))
    return DeleteResponse()


if __name__ == "__main__":
    port = get_settings().port
    logger.info(f"Starting Catalog Service on port {port}")
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=port)
