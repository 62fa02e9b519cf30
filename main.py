import os
import time
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError, PyMongoError

import database
from config import Settings, get_settings, settings
from database import (
    create_document,
    delete_document,
    get_db,
    get_document,
    get_documents,
    parse_object_id,
    update_document,
)
from logging_config import get_logger, setup_logging
from pricing import (
    DELIVERY_STATUSES,
    InvalidStatus,
    InvalidTransition,
    check_transition,
    compute_satisfaction_display,
    delivery_indicator,
    price_order,
)
from schemas import (
    Order as OrderSchema,
    OrderCreate,
    OrderUpdate,
    Product as ProductSchema,
    ProductUpdate,
    QuoteRequest,
    SigninRequest,
    User as UserSchema,
)

setup_logging(settings.log_level, settings.log_file or None)
log = get_logger(__name__)

AUTH_COOKIE = "auth_token"
NAME_COOKIE = "auth_name"
CLEARABLE_PRODUCT_FIELDS = ("description", "image")
CLEARABLE_ORDER_FIELDS = ("customer_satisfaction",)


@asynccontextmanager
async def lifespan(app: FastAPI):
    db = database.init_db()
    try:
        database.ensure_indexes(db)
    except PyMongoError as e:
        log.warning(f"Could not create indexes: {e}")
    yield
    database.close_db()


app = FastAPI(title="Order Dashboard API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(InvalidStatus)
async def invalid_status_handler(request: Request, exc: InvalidStatus):
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(InvalidTransition)
async def invalid_transition_handler(request: Request, exc: InvalidTransition):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(DuplicateKeyError)
async def duplicate_key_handler(request: Request, exc: DuplicateKeyError):
    log.warning(f"Duplicate key on {request.url.path}: {exc.details}")
    return JSONResponse(status_code=409, content={"detail": "Duplicate value"})


def serialize_doc(doc: Dict[str, Any]):
    if not doc:
        return doc
    out = {}
    for k, v in doc.items():
        if k == "_id":
            out["id"] = str(v)
        elif k == "password":
            continue
        elif hasattr(v, "isoformat"):
            out[k] = v.isoformat()
        else:
            out[k] = v
    return out


def require_object_id(value: str, label: str):
    oid = parse_object_id(value)
    if oid is None:
        raise HTTPException(status_code=400, detail=f"Invalid {label} id")
    return oid


def get_optional_db() -> Optional[Database]:
    return database.db


def current_user(request: Request, db: Database = Depends(get_db)) -> Dict[str, Any]:
    token = request.cookies.get(AUTH_COOKIE)
    user = get_document(db, "user", token) if token else None
    if not user:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user


def require_user(
    request: Request,
    db: Database = Depends(get_db),
    app_settings: Settings = Depends(get_settings),
) -> Optional[Dict[str, Any]]:
    if not app_settings.require_auth:
        return None
    return current_user(request, db)


@app.get("/")
def read_root():
    return {"message": "Order dashboard backend is running"}


@app.get("/test")
def test_database(db: Optional[Database] = Depends(get_optional_db)):
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": "✅ Set" if os.getenv("DATABASE_URL") else "❌ Not Set",
        "database_name": None,
        "connection_status": "Not Connected",
        "collections": []
    }
    if db is None:
        response["database"] = "⚠️  Available but not initialized"
        return response
    response["database"] = "✅ Available"
    response["database_name"] = db.name
    response["connection_status"] = "Connected"
    try:
        collections = db.list_collection_names()
        response["collections"] = collections[:10]
        response["database"] = "✅ Connected & Working"
    except PyMongoError as e:
        response["database"] = f"⚠️  Connected but Error: {str(e)[:50]}"
    return response


# Auth
@app.post("/api/auth/signup", status_code=201)
def signup(payload: UserSchema, db: Database = Depends(get_db)):
    if db["user"].find_one({"email": payload.email}):
        raise HTTPException(status_code=409, detail="Email already used")
    new_id = create_document(db, "user", payload)
    log.info(f"User {new_id} signed up")
    return {"id": new_id, "name": payload.name, "email": payload.email}


@app.post("/api/auth/signin")
def signin(payload: SigninRequest, response: Response, db: Database = Depends(get_db)):
    user = db["user"].find_one({"email": payload.email})
    if not user or user.get("password") != payload.password:
        log.warning(f"Failed sign-in for {payload.email}")
        raise HTTPException(status_code=401, detail="Invalid credentials")
    response.set_cookie(AUTH_COOKIE, str(user["_id"]), httponly=True, samesite="lax", path="/")
    response.set_cookie(NAME_COOKIE, user["name"], samesite="lax", path="/")
    return {"id": str(user["_id"]), "name": user["name"], "email": user["email"]}


@app.delete("/api/auth/signin")
def signout(response: Response):
    response.delete_cookie(AUTH_COOKIE, path="/")
    response.delete_cookie(NAME_COOKIE, path="/")
    return {"ok": True}


@app.get("/api/me")
def me(user: Dict[str, Any] = Depends(current_user)):
    return serialize_doc(user)


# Products
@app.get("/api/products")
def list_products(limit: int = 100, db: Database = Depends(get_db)):
    docs = get_documents(db, "product", {}, limit)
    return [serialize_doc(d) for d in docs]


@app.post("/api/products", status_code=201)
def create_product(payload: ProductSchema, db: Database = Depends(get_db), user=Depends(require_user)):
    if db["product"].find_one({"name": payload.name}):
        raise HTTPException(status_code=409, detail="Product name already exists")
    new_id = create_document(db, "product", payload)
    log.info(f"Product {new_id} created ({payload.sku})")
    return serialize_doc(get_document(db, "product", new_id))


@app.get("/api/products/{product_id}")
def get_product(product_id: str, db: Database = Depends(get_db)):
    require_object_id(product_id, "product")
    doc = get_document(db, "product", product_id)
    if not doc:
        raise HTTPException(status_code=404, detail="Product not found")
    return serialize_doc(doc)


@app.put("/api/products/{product_id}")
def update_product(product_id: str, payload: ProductUpdate, db: Database = Depends(get_db), user=Depends(require_user)):
    oid = require_object_id(product_id, "product")
    changes = {
        k: v for k, v in payload.model_dump(exclude_unset=True).items()
        if v is not None or k in CLEARABLE_PRODUCT_FIELDS
    }
    if changes.get("name") and db["product"].find_one({"name": changes["name"], "_id": {"$ne": oid}}):
        raise HTTPException(status_code=409, detail="Product name already exists")
    doc = update_document(db, "product", oid, changes)
    if not doc:
        raise HTTPException(status_code=404, detail="Product not found")
    log.info(f"Product {product_id} updated: {sorted(changes)}")
    return serialize_doc(doc)


@app.delete("/api/products/{product_id}")
def delete_product(product_id: str, db: Database = Depends(get_db), user=Depends(require_user)):
    oid = require_object_id(product_id, "product")
    # orders keep their dangling product_id references
    if not delete_document(db, "product", oid):
        raise HTTPException(status_code=404, detail="Product not found")
    log.info(f"Product {product_id} deleted")
    return {"ok": True}


# Orders
def generate_order_code() -> str:
    return f"ORD-{str(int(time.time() * 1000))[-6:]}"


def price_lookup(db: Database) -> Dict[str, float]:
    return {str(p["_id"]): p.get("price", 0) for p in get_documents(db, "product")}


def serialize_order(doc: Dict[str, Any], products: Optional[Dict[str, Dict[str, Any]]] = None):
    out = serialize_doc(doc)
    status = doc.get("delivery_status")
    if products is not None:
        out["items"] = [
            {**item, "product": serialize_doc(products[item["product_id"]]) if item.get("product_id") in products else None}
            for item in doc.get("items", [])
        ]
    if status in DELIVERY_STATUSES:
        glyph, title = compute_satisfaction_display(status, doc.get("customer_satisfaction"))
        out["progress_indicator"] = delivery_indicator(status)
        out["satisfaction"] = {"glyph": glyph, "title": title}
    return out


def referenced_products(db: Database, orders: List[Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    oids = {parse_object_id(item.get("product_id")) for o in orders for item in o.get("items", [])}
    oids.discard(None)
    if not oids:
        return {}
    return {str(p["_id"]): p for p in db["product"].find({"_id": {"$in": list(oids)}})}


@app.post("/api/orders/quote")
def quote_order(payload: QuoteRequest, db: Database = Depends(get_db)):
    pricing = price_order(payload.items, price_lookup(db), payload.shipping_cost, payload.delivery_status)
    return {
        "subtotal": round(pricing.subtotal, 2),
        "total": round(pricing.total, 2),
        "delivery_progress": pricing.delivery_progress,
    }


@app.post("/api/orders", status_code=201)
def create_order(order: OrderCreate, db: Database = Depends(get_db), user=Depends(require_user)):
    pricing = price_order(order.items, price_lookup(db), order.shipping_cost, order.delivery_status)
    satisfaction = order.customer_satisfaction if order.delivery_status == "Delivered" else None

    order_doc = OrderSchema(
        order_code=order.order_code or generate_order_code(),
        client_name=order.client_name,
        delivery_address=order.delivery_address,
        payment_status=order.payment_status,
        delivery_status=order.delivery_status,
        expected_delivery_date=order.expected_delivery_date,
        items=order.items,
        shipping_cost=order.shipping_cost,
        total_amount=pricing.total,
        delivery_progress=pricing.delivery_progress,
        customer_satisfaction=satisfaction,
    )

    order_id = create_document(db, "order", order_doc)
    log.info(f"[Order: {order_doc.order_code}] Created {order_id}, total {pricing.total:.2f}")
    created = get_document(db, "order", order_id)
    return serialize_order(created, referenced_products(db, [created]))


@app.get("/api/orders")
def list_orders(limit: int = 50, db: Database = Depends(get_db)):
    docs = get_documents(db, "order", {}, limit)
    products = referenced_products(db, docs)
    return [serialize_order(d, products) for d in docs]


@app.get("/api/orders/{order_id}")
def get_order(order_id: str, db: Database = Depends(get_db)):
    require_object_id(order_id, "order")
    doc = get_document(db, "order", order_id)
    if not doc:
        raise HTTPException(status_code=404, detail="Order not found")
    return serialize_order(doc, referenced_products(db, [doc]))


@app.put("/api/orders/{order_id}")
def update_order(
    order_id: str,
    payload: OrderUpdate,
    db: Database = Depends(get_db),
    app_settings: Settings = Depends(get_settings),
    user=Depends(require_user),
):
    oid = require_object_id(order_id, "order")
    existing = get_document(db, "order", oid)
    if not existing:
        raise HTTPException(status_code=404, detail="Order not found")

    changes = {
        k: v for k, v in payload.model_dump(exclude_unset=True).items()
        if v is not None or k in CLEARABLE_ORDER_FIELDS
    }
    status = changes.get("delivery_status") or existing.get("delivery_status", "Pending")
    if app_settings.strict_status_transitions and "delivery_status" in changes:
        check_transition(existing.get("delivery_status", "Pending"), status)

    items = changes.get("items", existing.get("items", []))
    shipping = changes.get("shipping_cost", existing.get("shipping_cost", 0))
    pricing = price_order(items, price_lookup(db), shipping, status)
    changes["total_amount"] = pricing.total
    changes["delivery_progress"] = pricing.delivery_progress
    if status != "Delivered":
        changes["customer_satisfaction"] = None

    doc = update_document(db, "order", oid, changes)
    if not doc:
        raise HTTPException(status_code=404, detail="Order not found")
    log.info(f"[Order: {doc.get('order_code')}] Updated, status {status}, total {pricing.total:.2f}")
    return serialize_order(doc, referenced_products(db, [doc]))


@app.delete("/api/orders/{order_id}")
def delete_order(order_id: str, db: Database = Depends(get_db), user=Depends(require_user)):
    oid = require_object_id(order_id, "order")
    if not delete_document(db, "order", oid):
        raise HTTPException(status_code=404, detail="Order not found")
    log.info(f"Order {order_id} deleted")
    return {"ok": True}


# Dashboard
@app.get("/api/stats")
def stats(db: Database = Depends(get_db), user=Depends(require_user)):
    orders = get_documents(db, "order")
    return {
        "total_products": db["product"].count_documents({}),
        "total_orders": len(orders),
        "delivered_orders": sum(1 for o in orders if o.get("delivery_status") == "Delivered"),
        "total_sales": round(sum(o.get("total_amount") or 0 for o in orders), 2),
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
