import os
import secrets
from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import BackgroundTasks, Depends, FastAPI, HTTPException, Request, WebSocket, WebSocketDisconnect, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pymongo import MongoClient
from pymongo.errors import PyMongoError

from config import Settings
from database import CatalogReader, InvalidOrderId, OrderNotFound, OrderStore, connect
from logging_setup import configure_logging
from notifications import NEW_ORDER, STATUS_UPDATED, NotificationHub
from payments import PaymentGateway, PaymentGatewayError, PaymentInitiator, RazorpayGateway
from schemas import OrderCreate, OrderCreated, OrderTracking, PaymentRequest, StatusUpdate

logger = structlog.get_logger(__name__)

ADMIN_PREFIX = "/api/admin"


def key_matches(supplied: Optional[str], expected: str) -> bool:
    if not supplied:
        return False
    return secrets.compare_digest(supplied.encode(), expected.encode())


# Services, resolved from app.state

def get_catalog(request: Request) -> CatalogReader:
    return request.app.state.catalog


def get_orders(request: Request) -> OrderStore:
    return request.app.state.orders


def get_payments(request: Request) -> PaymentInitiator:
    return request.app.state.payments


def get_hub(request: Request) -> NotificationHub:
    return request.app.state.hub


def create_app(
    settings: Optional[Settings] = None,
    mongo_client: Optional[MongoClient] = None,
    gateway: Optional[PaymentGateway] = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        client = mongo_client if mongo_client is not None else connect(settings.database_url)
        db = client[settings.database_name]
        if gateway is None and not settings.razorpay_key_id:
            logger.warning("Razorpay credentials missing, payment orders will fail")
        if gateway is not None:
            payment_gateway = gateway
        else:
            payment_gateway = RazorpayGateway(settings.razorpay_key_id, settings.razorpay_key_secret)

        app.state.catalog = CatalogReader(db)
        app.state.orders = OrderStore(db)
        app.state.payments = PaymentInitiator(payment_gateway, settings.payment_currency)
        app.state.hub = NotificationHub()
        logger.info("Storefront API ready", database=settings.database_name)
        yield
        await app.state.hub.close()
        payment_gateway.close()
        if mongo_client is None:
            client.close()

    app = FastAPI(title="Storefront Orders API", version="1.0.0", lifespan=lifespan)

    @app.middleware("http")
    async def admin_key_middleware(request: Request, call_next):
        """Reject admin routes unless x-admin-key carries the shared secret."""
        if request.url.path.startswith(ADMIN_PREFIX):
            if not key_matches(request.headers.get("x-admin-key"), settings.admin_key):
                logger.warning("Rejected admin request", path=request.url.path)
                return JSONResponse({"detail": "Unauthorized"}, status_code=401)
        return await call_next(request)

    # Outermost: CORS preflights are answered before the admin check
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        errors = jsonable_encoder(exc.errors())
        fields = sorted({".".join(str(p) for p in e.get("loc", ())[1:]) or "body" for e in errors})
        return JSONResponse(
            {"detail": f"Invalid request: {', '.join(fields)}", "errors": errors},
            status_code=400,
        )

    @app.exception_handler(InvalidOrderId)
    async def invalid_order_id(request: Request, exc: InvalidOrderId):
        return JSONResponse({"detail": "Invalid order id"}, status_code=400)

    @app.exception_handler(OrderNotFound)
    async def order_not_found(request: Request, exc: OrderNotFound):
        return JSONResponse({"detail": "Order not found"}, status_code=404)

    # Routes
    @app.get("/", response_class=PlainTextResponse)
    def root():
        return "Storefront API running"

    @app.get("/api/products")
    def list_products(catalog: CatalogReader = Depends(get_catalog)):
        try:
            return catalog.list_products()
        except PyMongoError:
            logger.exception("Product fetch failed")
            raise HTTPException(status_code=500, detail="Error fetching products")

    @app.post("/api/orders", status_code=201, response_model=OrderCreated)
    def create_order(
        payload: OrderCreate,
        background_tasks: BackgroundTasks,
        orders: OrderStore = Depends(get_orders),
        hub: NotificationHub = Depends(get_hub),
    ):
        logger.debug("Order received", customer=payload.customerName, items=len(payload.items))
        try:
            order = orders.create(payload)
        except PyMongoError:
            logger.exception("Order save failed")
            raise HTTPException(status_code=500, detail="Error saving order")
        background_tasks.add_task(hub.publish, NEW_ORDER, order)
        return OrderCreated(orderId=order["id"], customerName=order["customerName"], total=order["total"])

    @app.get("/api/orders/track/{order_id}", response_model=OrderTracking)
    def track_order(order_id: str, orders: OrderStore = Depends(get_orders)):
        try:
            return orders.track(order_id)
        except PyMongoError:
            logger.exception("Order lookup failed", order_id=order_id)
            raise HTTPException(status_code=500, detail="Error fetching order")

    @app.post("/api/payments/create-order")
    def create_payment_order(payload: PaymentRequest, payments: PaymentInitiator = Depends(get_payments)):
        try:
            return payments.create_order(payload.amount)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc))
        except PaymentGatewayError:
            logger.exception("Payment order creation failed", amount=payload.amount)
            raise HTTPException(status_code=500, detail="Error creating payment order")

    @app.get(ADMIN_PREFIX + "/orders")
    def list_orders(orders: OrderStore = Depends(get_orders)):
        try:
            return orders.list_all()
        except PyMongoError:
            logger.exception("Order listing failed")
            raise HTTPException(status_code=500, detail="Error fetching orders")

    @app.put(ADMIN_PREFIX + "/order-status/{order_id}")
    def update_order_status(
        order_id: str,
        payload: StatusUpdate,
        background_tasks: BackgroundTasks,
        orders: OrderStore = Depends(get_orders),
        hub: NotificationHub = Depends(get_hub),
    ):
        try:
            order = orders.update_status(order_id, payload.status)
        except PyMongoError:
            logger.exception("Order status update failed", order_id=order_id)
            raise HTTPException(status_code=500, detail="Error updating order")
        background_tasks.add_task(hub.publish, STATUS_UPDATED, order)
        return order

    @app.websocket("/ws/admin")
    async def admin_events(websocket: WebSocket):
        supplied = websocket.headers.get("x-admin-key") or websocket.query_params.get("key")
        if not key_matches(supplied, settings.admin_key):
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return
        hub: NotificationHub = websocket.app.state.hub
        await hub.connect(websocket)
        try:
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            pass
        finally:
            hub.disconnect(websocket)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 5000))
    uvicorn.run(app, host="0.0.0.0", port=port)
