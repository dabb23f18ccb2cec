import logging
import os
from contextlib import asynccontextmanager, contextmanager
from typing import Any, Dict, Optional

from fastapi import Body, Depends, FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import inspect, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from database import get_db, init_db
from models import Order, Payment, Product, User
from payments import DEFAULT_CARD_DATA, EncryptionError, PaymentGateway, PaymentGatewayError
from repository import OrderRepository, PaymentRepository, ProductRepository, UserRepository
from schemas import (
    MAX_ID, OrderIn, OrderOut, PaymentIn, PaymentOut, PaymentUpdate,
    ProductIn, ProductOut, ProductUpdate, UserIn, UserOut, UserUpdate,
)
from validation import (
    DECODE_ERROR, ORDER_MESSAGES, PAYMENT_MESSAGES, PRODUCT_MESSAGES, USER_MESSAGES, validate,
)

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app):
    init_db()
    yield


app = FastAPI(title="E-Commerce Store API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Error rendering: every failure is {"error": "..."}
@app.exception_handler(StarletteHTTPException)
async def http_error(request, exc):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


@app.exception_handler(RequestValidationError)
async def request_decode_error(request, exc):
    return JSONResponse(status_code=400, content={"error": DECODE_ERROR})


@app.exception_handler(SQLAlchemyError)
async def database_error(request, exc):
    log.error("Database error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Database error"})


@contextmanager
def storage_errors(message):
    try:
        yield
    except SQLAlchemyError:
        log.exception(message)
        raise HTTPException(status_code=500, detail=message)


# Utility helpers
def as_id(raw: str) -> Optional[int]:
    if not (raw.isascii() and raw.isdigit()):
        return None
    value = int(raw)
    return value if 0 < value <= MAX_ID else None


def parse_id(raw: str, entity: str) -> int:
    value = as_id(raw)
    if value is None:
        raise HTTPException(status_code=400, detail=f"Invalid {entity} ID")
    return value


def empty_result(message, status_code=404):
    return JSONResponse(status_code=status_code, content={"message": message})


# Dependencies
payment_gateway = PaymentGateway.from_env()


def get_gateway():
    return payment_gateway


def user_repository(db: Session = Depends(get_db)):
    return UserRepository(db)


def product_repository(db: Session = Depends(get_db)):
    return ProductRepository(db)


def order_repository(db: Session = Depends(get_db)):
    return OrderRepository(db)


def payment_repository(db: Session = Depends(get_db)):
    return PaymentRepository(db)


@app.get("/")
def read_root():
    return {"message": "E-Commerce Store API running"}


@app.get("/test")
def test_database(db: Session = Depends(get_db)):
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": "✅ Set" if os.getenv("DATABASE_URL") else "❌ Not Set (using default)",
        "dialect": db.get_bind().dialect.name,
        "connection_status": "Not Connected",
        "tables": [],
    }
    try:
        db.execute(text("SELECT 1"))
        response["connection_status"] = "Connected"
        response["database"] = "✅ Available"
        try:
            response["tables"] = inspect(db.get_bind()).get_table_names()[:10]
            response["database"] = "✅ Connected & Working"
        except SQLAlchemyError as e:
            response["database"] = f"⚠️ Connected but Error: {str(e)[:80]}"
    except SQLAlchemyError as e:
        response["database"] = f"❌ Error: {str(e)[:80]}"
    return response


# Users
@app.post("/user", status_code=201)
def create_user(body: Dict[str, Any] = Body(...), users: UserRepository = Depends(user_repository)):
    payload = validate(UserIn, body, USER_MESSAGES)

    if users.get_by_email(payload.email) is not None:
        raise HTTPException(status_code=400, detail="Email already exists")

    with storage_errors("Error saving user"):
        users.save(User(**payload.model_dump()))
    return {"message": "User created successfully!"}


@app.get("/user")
def list_users(users: UserRepository = Depends(user_repository)):
    rows = users.get_all()
    if not rows:
        return empty_result("Users not found")
    return [UserOut.model_validate(u) for u in rows]


@app.get("/user/search/email/{email}")
def search_users_by_email(email: str, users: UserRepository = Depends(user_repository)):
    user = users.get_by_email(email)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return UserOut.model_validate(user)


@app.get("/user/search/{name}")
def search_users_by_name(name: str, users: UserRepository = Depends(user_repository)):
    rows = users.search_by_name(name)
    if not rows:
        return empty_result("Users not found")
    return [UserOut.model_validate(u) for u in rows]


@app.get("/user/{user_id}")
def get_user(user_id: str, users: UserRepository = Depends(user_repository)):
    user = users.get_by_id(parse_id(user_id, "user"))
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return UserOut.model_validate(user)


@app.put("/user/{user_id}")
def update_user(user_id: str, body: Dict[str, Any] = Body(...), users: UserRepository = Depends(user_repository)):
    uid = parse_id(user_id, "user")
    payload = validate(UserUpdate, body, USER_MESSAGES)

    existing = users.get_by_id(uid)
    if existing is None:
        raise HTTPException(status_code=404, detail="User not found")

    if payload.email is not None and payload.email != existing.email:
        if users.get_by_email(payload.email) is not None:
            raise HTTPException(status_code=400, detail="Email already exists")

    updates = {k: v for k, v in payload.model_dump().items() if v is not None}
    with storage_errors("Error updating user"):
        users.update(uid, updates)
    return {"message": "User updated successfully!"}


@app.delete("/user/{user_id}")
def delete_user(user_id: str, users: UserRepository = Depends(user_repository)):
    uid = parse_id(user_id, "user")
    if users.get_by_id(uid) is None:
        raise HTTPException(status_code=404, detail="User not found")
    with storage_errors("Error deleting user"):
        users.delete(uid)
    return {"message": "User deleted successfully!"}


# Products
@app.post("/products", status_code=201)
def create_product(body: Dict[str, Any] = Body(...), products: ProductRepository = Depends(product_repository)):
    payload = validate(ProductIn, body, PRODUCT_MESSAGES)
    with storage_errors("Error saving product"):
        products.save(Product(**payload.model_dump()))
    return {"message": "Product created successfully!"}


@app.get("/products")
def list_products(products: ProductRepository = Depends(product_repository)):
    rows = products.get_all()
    if not rows:
        return empty_result("Products not found")
    return [ProductOut.model_validate(p) for p in rows]


@app.get("/products/search/category/{category}")
def search_products_by_category(category: str, products: ProductRepository = Depends(product_repository)):
    rows = products.search_by_category(category)
    if not rows:
        return empty_result("Products not found")
    return [ProductOut.model_validate(p) for p in rows]


@app.get("/products/search/{name}")
def search_products_by_name(name: str, products: ProductRepository = Depends(product_repository)):
    rows = products.search_by_name(name)
    if not rows:
        return empty_result("Products not found")
    return [ProductOut.model_validate(p) for p in rows]


@app.get("/products/{product_id}")
def get_product(product_id: str, products: ProductRepository = Depends(product_repository)):
    product = products.get_by_id(parse_id(product_id, "product"))
    if product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return ProductOut.model_validate(product)


@app.put("/products/{product_id}")
def update_product(product_id: str, body: Dict[str, Any] = Body(...), products: ProductRepository = Depends(product_repository)):
    pid = parse_id(product_id, "product")
    payload = validate(ProductUpdate, body, PRODUCT_MESSAGES)

    if products.get_by_id(pid) is None:
        raise HTTPException(status_code=404, detail="Product not found")

    updates = {k: v for k, v in payload.model_dump().items() if v is not None}
    with storage_errors("Error updating product"):
        products.update(pid, updates)
    return {"message": "Product updated successfully!"}


@app.delete("/products/{product_id}")
def delete_product(product_id: str, products: ProductRepository = Depends(product_repository)):
    pid = parse_id(product_id, "product")
    if products.get_by_id(pid) is None:
        raise HTTPException(status_code=404, detail="Product not found")
    with storage_errors("Error deleting product"):
        products.delete(pid)
    return {"message": "Product deleted successfully!"}


# Orders
@app.post("/orders", status_code=201)
def create_order(
    body: Dict[str, Any] = Body(...),
    orders: OrderRepository = Depends(order_repository),
    users: UserRepository = Depends(user_repository),
    products: ProductRepository = Depends(product_repository),
):
    payload = validate(OrderIn, body, ORDER_MESSAGES)

    # referenced rows are checked here, not by foreign keys
    if users.get_by_id(payload.user_id) is None:
        raise HTTPException(status_code=404, detail="User not found")
    for product_id in payload.product_ids:
        if products.get_by_id(product_id) is None:
            raise HTTPException(status_code=404, detail=f"Product with ID {product_id} not found")

    with storage_errors("Error saving order"):
        orders.save(Order(**payload.model_dump()))
    return {"message": "Order created successfully!"}


@app.get("/orders")
def list_orders(orders: OrderRepository = Depends(order_repository)):
    rows = orders.get_all()
    if not rows:
        return empty_result("No orders found", status_code=200)
    return [OrderOut.model_validate(o) for o in rows]


@app.get("/orders/search")
def search_orders_by_status(status: str = "", orders: OrderRepository = Depends(order_repository)):
    rows = orders.search_by_status(status)
    if not rows:
        return empty_result("No orders found for the given status", status_code=200)
    return [OrderOut.model_validate(o) for o in rows]


@app.get("/orders/search/{user}")
def search_orders_by_user(user: str, orders: OrderRepository = Depends(order_repository)):
    user_id = as_id(user)
    rows = orders.search_by_user_id(user_id) if user_id is not None else []
    if not rows:
        return empty_result("No orders found", status_code=200)
    return [OrderOut.model_validate(o) for o in rows]


@app.get("/orders/{order_id}")
def get_order(order_id: str, orders: OrderRepository = Depends(order_repository)):
    order = orders.get_by_id(parse_id(order_id, "order"))
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")
    return OrderOut.model_validate(order)


@app.put("/orders/{order_id}")
def update_order(order_id: str, body: Dict[str, Any] = Body(...), orders: OrderRepository = Depends(order_repository)):
    oid = parse_id(order_id, "order")
    payload = validate(OrderIn, body, ORDER_MESSAGES)

    existing = orders.get_by_id(oid)
    if existing is None:
        raise HTTPException(status_code=404, detail="Order not found")

    updates = payload.model_dump()
    # the order date is fixed at creation
    updates["order_date"] = existing.order_date

    with storage_errors("Error updating order"):
        orders.update(oid, updates)
    return {"message": "Order updated successfully!"}


@app.delete("/orders/{order_id}")
def delete_order(order_id: str, orders: OrderRepository = Depends(order_repository)):
    oid = parse_id(order_id, "order")
    if orders.get_by_id(oid) is None:
        raise HTTPException(status_code=404, detail="Order not found")
    with storage_errors("Error deleting order"):
        orders.delete(oid)
    return {"message": "Order deleted successfully!"}


# Payments
@app.post("/payments", status_code=201)
def create_payment(
    body: Dict[str, Any] = Body(...),
    payments: PaymentRepository = Depends(payment_repository),
    gateway: PaymentGateway = Depends(get_gateway),
):
    payload = validate(PaymentIn, body, PAYMENT_MESSAGES)

    try:
        token = gateway.get_token()
    except PaymentGatewayError as e:
        log.error("Failed to get payment token: %s", e)
        raise HTTPException(status_code=500, detail=str(e))

    try:
        cryptogram = gateway.encrypt(DEFAULT_CARD_DATA)
    except EncryptionError as e:
        log.error("Encryption failed: %s", e)
        raise HTTPException(status_code=500, detail="Encryption failed")

    try:
        status = gateway.charge(token, cryptogram, amount=payload.amount, order_id=payload.order_id)
    except PaymentGatewayError as e:
        log.error("Failed to make payment: %s", e)
        raise HTTPException(status_code=500, detail="Failed to make payment")

    # the gateway's answer wins over anything the client sent
    payment = Payment(**payload.model_dump(exclude={"payment_status"}), payment_status=status)
    with storage_errors("Error saving payment"):
        payments.save(payment)
    return PaymentOut.model_validate(payment)


@app.get("/payments")
def list_payments(payments: PaymentRepository = Depends(payment_repository)):
    return [PaymentOut.model_validate(p) for p in payments.get_all()]


@app.get("/payments/search")
def search_payments_by_status(status: str = "", payments: PaymentRepository = Depends(payment_repository)):
    return [PaymentOut.model_validate(p) for p in payments.search_by_status(status)]


@app.get("/payments/search/user/{user_id}")
def search_payments_by_user(user_id: str, payments: PaymentRepository = Depends(payment_repository)):
    uid = as_id(user_id)
    rows = payments.search_by_user_id(uid) if uid is not None else []
    return [PaymentOut.model_validate(p) for p in rows]


@app.get("/payments/search/{order_id}")
def search_payments_by_order(order_id: str, payments: PaymentRepository = Depends(payment_repository)):
    oid = as_id(order_id)
    rows = payments.search_by_order_id(oid) if oid is not None else []
    return [PaymentOut.model_validate(p) for p in rows]


@app.get("/payments/{payment_id}")
def get_payment(payment_id: str, payments: PaymentRepository = Depends(payment_repository)):
    payment = payments.get_by_id(parse_id(payment_id, "payment"))
    if payment is None:
        raise HTTPException(status_code=404, detail="Payment not found")
    return PaymentOut.model_validate(payment)


@app.put("/payments/{payment_id}")
def update_payment(payment_id: str, body: Dict[str, Any] = Body(...), payments: PaymentRepository = Depends(payment_repository)):
    pid = parse_id(payment_id, "payment")
    payload = validate(PaymentUpdate, body, PAYMENT_MESSAGES)

    if payments.get_by_id(pid) is None:
        raise HTTPException(status_code=404, detail="Payment not found")

    updates = {k: v for k, v in payload.model_dump().items() if v is not None}
    with storage_errors("Error updating payment"):
        payment = payments.update(pid, updates)
    return PaymentOut.model_validate(payment)


@app.delete("/payments/{payment_id}")
def delete_payment(payment_id: str, payments: PaymentRepository = Depends(payment_repository)):
    pid = parse_id(payment_id, "payment")
    if payments.get_by_id(pid) is None:
        raise HTTPException(status_code=404, detail="Payment not found")
    with storage_errors("Error deleting payment"):
        payments.delete(pid)
    return {"message": "Payment deleted successfully!"}


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
