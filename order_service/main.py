from fastapi import FastAPI, Depends, HTTPException, Request, Query
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uuid
import logging
from typing import Optional

from . import config
from .auth import current_customer_id
from .catalog import ProductCatalog
from .database import OrderDB
from .errors import OrderNotFound, OrderServiceError, ValidationError
from .log import configure_logging, request_id_var
from .models import OrderCreate, OrderResponse, OrderStatusUpdate, OrderUpdate, StandardResponse
from .payment import PaymentClient
from .publisher import QueuePublisher
from .service import OrderService
from .status import OrderStatus

logger = logging.getLogger(__name__)


def build_order_service() -> OrderService:
    """Wire the order service from environment configuration."""
    return OrderService(
        repo=OrderDB(config.DATABASE_URL),
        catalog=ProductCatalog(config.CATALOG_URL) if config.CATALOG_URL else None,
        payments=PaymentClient(config.PAYMENT_URL) if config.PAYMENT_URL else None,
        publisher=QueuePublisher() if config.RABBIT_HOST else None,
        order_queue=config.ORDER_QUEUE,
        payment_pending_queue=config.PAYMENT_PENDING_QUEUE,
    )


def get_order_service(request: Request) -> OrderService:
    return request.app.state.order_service


def _error(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=StandardResponse(
            success=False,
            error={"code": code, "message": message}
        ).model_dump()
    )


def _ok(data: dict) -> StandardResponse:
    return StandardResponse(success=True, data=data)


def _order_data(order) -> dict:
    return OrderResponse.from_order(order).model_dump(mode="json")


def create_app(order_service: OrderService) -> FastAPI:
    app = FastAPI(
        title="Order Service",
        version="1.0.0",
        description="Order management service"
    )
    app.state.order_service = order_service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def add_request_id(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        token = request_id_var.set(request_id)
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)
        response.headers["X-Request-ID"] = request_id
        return response

    @app.exception_handler(OrderServiceError)
    async def order_error_handler(request: Request, exc: OrderServiceError):
        if isinstance(exc, OrderNotFound):
            status_code = 404
        elif isinstance(exc, ValidationError):
            status_code = 400
        else:
            status_code = 500
        logger.error(f"{exc.code}: {exc} - {request.method} {request.url.path}")
        return _error(status_code, exc.code, str(exc))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Invalid request body for {request.url.path}: {exc.errors()}")
        return _error(400, "INVALID_ORDER", "; ".join(err["msg"] for err in exc.errors()))

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        logger.warning(f"HTTPException: {exc.status_code} - {exc.detail}")
        return _error(exc.status_code, "HTTP_ERROR", str(exc.detail))

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled exception: {exc}")
        return _error(500, "INTERNAL_ERROR", "Internal server error")

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "service": "order-service"}

    @app.get("/v1/orders", response_model=StandardResponse)
    def list_orders(
        status: Optional[str] = Query(None, description="Filter by status name"),
        customer_id: str = Depends(current_customer_id),
        service: OrderService = Depends(get_order_service)
    ):
        if status:
            orders = service.get_by_status(OrderStatus.from_name(status))
        else:
            orders = service.get_all()

        logger.info(f"Orders list accessed by customer: {customer_id} - Total: {len(orders)}")
        return _ok({"orders": [_order_data(order) for order in orders], "total": len(orders)})

    @app.get("/v1/orders/{order_id}", response_model=StandardResponse)
    def get_order(
        order_id: str,
        customer_id: str = Depends(current_customer_id),
        service: OrderService = Depends(get_order_service)
    ):
        order = service.get_by_id(order_id)
        if order is None:
            raise OrderNotFound(order_id)
        return _ok(_order_data(order))

    @app.post("/v1/orders", response_model=StandardResponse, status_code=201)
    def create_order(
        order_data: OrderCreate,
        customer_id: str = Depends(current_customer_id),
        service: OrderService = Depends(get_order_service)
    ):
        logger.info(f"Creating order for customer: {customer_id}")
        order = service.create(customer_id, order_data.items)
        return _ok(_order_data(order))

    @app.put("/v1/orders/{order_id}", response_model=StandardResponse)
    def update_order(
        order_id: str,
        order_data: OrderUpdate,
        customer_id: str = Depends(current_customer_id),
        service: OrderService = Depends(get_order_service)
    ):
        order = service.update(order_id, customer_id, order_data.items)
        return _ok(_order_data(order))

    @app.patch("/v1/orders/{order_id}/status", response_model=StandardResponse)
    def update_order_status(
        order_id: str,
        status_update: OrderStatusUpdate,
        customer_id: str = Depends(current_customer_id),
        service: OrderService = Depends(get_order_service)
    ):
        status = OrderStatus.from_name(status_update.status)
        order = service.update_status(order_id, status)
        logger.info(f"Order status updated: {order_id} -> {status.name} by customer: {customer_id}")
        return _ok(_order_data(order))

    @app.post("/v1/orders/{order_id}/checkout", response_model=StandardResponse)
    def checkout_order(
        order_id: str,
        customer_id: str = Depends(current_customer_id),
        service: OrderService = Depends(get_order_service)
    ):
        order = service.checkout_order(order_id)
        logger.info(f"Order checked out: {order_id} by customer: {customer_id}")
        return _ok(_order_data(order))

    return app


def main():
    import uvicorn

    configure_logging()
    uvicorn.run(create_app(build_order_service()), host="0.0.0.0", port=config.PORT, log_level="info")


if __name__ == "__main__":
    main()
