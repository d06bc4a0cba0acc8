import logging
from collections import Counter
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional, Dict, Any

from fastapi import FastAPI, HTTPException, Header, Query, Depends
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from prometheus_client import Counter as MetricCounter, generate_latest, CONTENT_TYPE_LATEST
from pydantic import BaseModel
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

import database
from analytics import aggregate, cutoff, to_millis
from config import LOG_LEVEL, PORT
from database import create_document, get_documents, new_id, to_str_id, ensure_admin
from schemas import (
    Product, UserRegister, LoginReq, OrderIn, OrderStatusUpdate, ForumTopicIn,
    CommentIn, CategoryItem, Slide, AnalyticsEvent, TimeRange, can_transition,
)
from seed import DEFAULT_PRODUCTS

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("motovibe.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        ensure_admin()
    except PyMongoError as e:
        logger.error("Admin account not seeded: %s", e)
    yield


app = FastAPI(title="MotoVibe API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

orders_total = MetricCounter("motovibe_orders_total", "Order creation attempts", ["status"])
revenue_total = MetricCounter("motovibe_revenue_total", "Revenue of created orders in TRY")


# ---------------------- Helpers ----------------------

def get_db():
    if database.db is None:
        raise HTTPException(status_code=503, detail="Database not available")
    return database.db


def public_user(doc: Dict[str, Any]) -> Dict[str, Any]:
    d = to_str_id(doc)
    d.pop("password", None)
    return d


def require_admin(x_user_id: Optional[str] = Header(None), db=Depends(get_db)) -> Dict[str, Any]:
    """Admin rights come from the stored user record, never from the client."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Login required")
    user = db["user"].find_one({"_id": x_user_id})
    if not user or not user.get("is_admin"):
        raise HTTPException(status_code=403, detail="Admin access required")
    return user


def find_or_404(db, collection: str, item_id: str, label: str) -> Dict[str, Any]:
    doc = db[collection].find_one({"_id": item_id})
    if not doc:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return doc


def create_and_fetch(db, collection: str, data: Dict[str, Any]) -> Dict[str, Any]:
    inserted_id = create_document(collection, data, database=db)
    return to_str_id(db[collection].find_one({"_id": inserted_id}))


def update_and_fetch(db, collection: str, item_id: str, data: Dict[str, Any], label: str) -> Dict[str, Any]:
    data = {**data, "updated_at": datetime.now(timezone.utc)}
    updated = db[collection].find_one_and_update(
        {"_id": item_id}, {"$set": data}, return_document=ReturnDocument.AFTER
    )
    if not updated:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return to_str_id(updated)


def delete_or_404(db, collection: str, item_id: str, label: str) -> Dict[str, str]:
    res = db[collection].delete_one({"_id": item_id})
    if res.deleted_count == 0:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return {"status": "ok"}


def today() -> str:
    return datetime.now(timezone.utc).date().isoformat()


# ---------------------- Root & Health ----------------------

@app.get("/")
def read_root():
    return {"message": "MotoVibe API running"}


STORE_COLLECTIONS = [
    "product", "user", "order", "category", "slide", "forum_topic", "analytics_event", "visit",
]


@app.get("/test")
def diagnostics(db=Depends(get_db)) -> Dict[str, Any]:
    """Database connectivity plus document counts per store collection."""
    response: Dict[str, Any] = {
        "backend": "✅ Running",
        "database_name": db.name,
        "connection_status": "Not Connected",
        "collections": {},
    }
    try:
        response["collections"] = {name: db[name].count_documents({}) for name in STORE_COLLECTIONS}
        response["connection_status"] = "Connected"
    except PyMongoError as e:
        response["connection_status"] = f"⚠️ Error: {str(e)[:80]}"
    return response


@app.get("/metrics")
def metrics():
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


# ---------------------- Products ----------------------

class SeedRequest(BaseModel):
    force: bool = False


@app.get("/api/products")
def list_products(category: Optional[str] = None, db=Depends(get_db)) -> List[Dict[str, Any]]:
    filt = {"category": category} if category else {}
    docs = db["product"].find(filt).sort("created_at", -1)
    return [to_str_id(d) for d in docs]


@app.get("/api/products/{product_id}")
def get_product(product_id: str, db=Depends(get_db)) -> Dict[str, Any]:
    return to_str_id(find_or_404(db, "product", product_id, "Product"))


@app.post("/api/products", status_code=201)
def create_product(product: Product, admin=Depends(require_admin), db=Depends(get_db)) -> Dict[str, Any]:
    created = create_and_fetch(db, "product", product.model_dump(exclude={"id"}))
    logger.info("Product %s created by %s", created["id"], admin["email"])
    return created


@app.put("/api/products/{product_id}")
def update_product(product_id: str, product: Product, admin=Depends(require_admin),
                   db=Depends(get_db)) -> Dict[str, Any]:
    return update_and_fetch(db, "product", product_id, product.model_dump(exclude={"id"}), "Product")


@app.delete("/api/products/{product_id}")
def delete_product(product_id: str, admin=Depends(require_admin), db=Depends(get_db)) -> Dict[str, str]:
    result = delete_or_404(db, "product", product_id, "Product")
    logger.info("Product %s deleted by %s", product_id, admin["email"])
    return result


@app.post("/api/products/seed")
def seed_products(payload: SeedRequest, admin=Depends(require_admin), db=Depends(get_db)):
    count = db["product"].count_documents({})
    if count > 0 and not payload.force:
        return {"inserted": 0, "message": "Products already exist"}

    if payload.force:
        db["product"].delete_many({})

    now = datetime.now(timezone.utc)
    docs = []
    for p in DEFAULT_PRODUCTS:
        doc = {k: v for k, v in p.items() if k != "id"}
        doc.update({"_id": p["id"], "created_at": now, "updated_at": now})
        docs.append(doc)
    res = db["product"].insert_many(docs)
    return {"inserted": len(res.inserted_ids)}


# ---------------------- Users ----------------------

@app.post("/api/auth/register", status_code=201)
def register_user(user: UserRegister, db=Depends(get_db)) -> Dict[str, Any]:
    email = user.email.lower()
    if db["user"].find_one({"email": email}):
        raise HTTPException(status_code=409, detail="Email already registered")
    doc = {
        "name": user.name,
        "email": email,
        "password": user.password,  # NOTE: demo only; do NOT store plain text in production
        "is_admin": False,
        "join_date": today(),
        "phone": user.phone,
        "address": user.address,
    }
    inserted_id = create_document("user", doc, database=db)
    logger.info("Registered user %s", email)
    return public_user(db["user"].find_one({"_id": inserted_id}))


@app.post("/api/auth/login")
def login(req: LoginReq, db=Depends(get_db)) -> Dict[str, Any]:
    user = db["user"].find_one({"email": req.email.lower()})
    if not user or user.get("password") != req.password:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return public_user(user)


# ---------------------- Orders ----------------------

def reserve_stock(db, order: OrderIn) -> None:
    """Check and decrement stock for every line; all or nothing."""
    needed: Counter = Counter()
    names = {}
    for item in order.items:
        needed[item.product_id] += item.quantity
        names[item.product_id] = item.name

    for pid, qty in needed.items():
        product = db["product"].find_one({"_id": pid})
        if not product:
            raise HTTPException(status_code=404, detail=f"Product {names[pid]} not found")
        if product.get("stock", 0) < qty:
            raise HTTPException(status_code=409, detail=f"Insufficient stock for {product.get('name', names[pid])}")

    taken = []
    for pid, qty in needed.items():
        res = db["product"].update_one(
            {"_id": pid, "stock": {"$gte": qty}},
            {"$inc": {"stock": -qty}, "$set": {"updated_at": datetime.now(timezone.utc)}},
        )
        if res.modified_count == 0:
            # lost a race with another checkout; put back what we took
            for done_pid, done_qty in taken:
                db["product"].update_one({"_id": done_pid}, {"$inc": {"stock": done_qty}})
            raise HTTPException(status_code=409, detail=f"Insufficient stock for {names[pid]}")
        taken.append((pid, qty))


@app.post("/api/orders", status_code=201)
def create_order(order: OrderIn, db=Depends(get_db)) -> Dict[str, Any]:
    calc_total = sum(i.price * i.quantity for i in order.items)
    if round(calc_total, 2) != round(order.total, 2):
        orders_total.labels(status="rejected").inc()
        raise HTTPException(status_code=400, detail="Total mismatch")
    if not db["user"].find_one({"_id": order.user_id}):
        orders_total.labels(status="rejected").inc()
        raise HTTPException(status_code=400, detail="Unknown user")

    try:
        reserve_stock(db, order)
    except HTTPException:
        orders_total.labels(status="rejected").inc()
        raise

    doc = order.model_dump()
    doc.update({"status": "preparing", "date": datetime.now(timezone.utc).isoformat()})
    created = create_and_fetch(db, "order", doc)

    orders_total.labels(status="success").inc()
    revenue_total.inc(order.total)
    logger.info("Order %s (%s) created for %s, total %.2f", created["id"], order.code, order.user_id, order.total)
    return created


@app.get("/api/orders")
def list_orders(user_id: Optional[str] = Query(None, alias="userId"), x_user_id: Optional[str] = Header(None),
                db=Depends(get_db)) -> List[Dict[str, Any]]:
    if user_id:
        q: Dict[str, Any] = {"user_id": user_id}
    else:
        require_admin(x_user_id, db)
        q = {}
    orders = db["order"].find(q).sort("date", -1)
    return [to_str_id(o) for o in orders]


@app.get("/api/orders/{order_id}")
def get_order(order_id: str, db=Depends(get_db)) -> Dict[str, Any]:
    return to_str_id(find_or_404(db, "order", order_id, "Order"))


@app.put("/api/orders/{order_id}")
def update_order_status(order_id: str, update: OrderStatusUpdate, admin=Depends(require_admin),
                        db=Depends(get_db)) -> Dict[str, Any]:
    order = find_or_404(db, "order", order_id, "Order")
    current = order.get("status", "preparing")
    if not can_transition(current, update.status):
        raise HTTPException(status_code=409, detail=f"Cannot change status from {current} to {update.status}")
    if current == update.status:
        return to_str_id(order)
    logger.info("Order %s: %s -> %s by %s", order_id, current, update.status, admin["email"])
    return update_and_fetch(db, "order", order_id, {"status": update.status}, "Order")


# ---------------------- Categories & Slides ----------------------

@app.get("/api/categories")
def list_categories(db=Depends(get_db)) -> List[Dict[str, Any]]:
    return [to_str_id(d) for d in get_documents("category", database=db)]


@app.get("/api/categories/{category_id}")
def get_category(category_id: str, db=Depends(get_db)) -> Dict[str, Any]:
    return to_str_id(find_or_404(db, "category", category_id, "Category"))


@app.post("/api/categories", status_code=201)
def create_category(category: CategoryItem, admin=Depends(require_admin), db=Depends(get_db)) -> Dict[str, Any]:
    return create_and_fetch(db, "category", category.model_dump(exclude={"id"}))


@app.put("/api/categories/{category_id}")
def update_category(category_id: str, category: CategoryItem, admin=Depends(require_admin),
                    db=Depends(get_db)) -> Dict[str, Any]:
    return update_and_fetch(db, "category", category_id, category.model_dump(exclude={"id"}), "Category")


@app.delete("/api/categories/{category_id}")
def delete_category(category_id: str, admin=Depends(require_admin), db=Depends(get_db)) -> Dict[str, str]:
    return delete_or_404(db, "category", category_id, "Category")


@app.get("/api/slides")
def list_slides(db=Depends(get_db)) -> List[Dict[str, Any]]:
    return [to_str_id(d) for d in get_documents("slide", database=db)]


@app.get("/api/slides/{slide_id}")
def get_slide(slide_id: str, db=Depends(get_db)) -> Dict[str, Any]:
    return to_str_id(find_or_404(db, "slide", slide_id, "Slide"))


@app.post("/api/slides", status_code=201)
def create_slide(slide: Slide, admin=Depends(require_admin), db=Depends(get_db)) -> Dict[str, Any]:
    return create_and_fetch(db, "slide", slide.model_dump(exclude={"id"}))


@app.put("/api/slides/{slide_id}")
def update_slide(slide_id: str, slide: Slide, admin=Depends(require_admin), db=Depends(get_db)) -> Dict[str, Any]:
    return update_and_fetch(db, "slide", slide_id, slide.model_dump(exclude={"id"}), "Slide")


@app.delete("/api/slides/{slide_id}")
def delete_slide(slide_id: str, admin=Depends(require_admin), db=Depends(get_db)) -> Dict[str, str]:
    return delete_or_404(db, "slide", slide_id, "Slide")


# ---------------------- Forum ----------------------

@app.get("/api/forum/topics")
def list_topics(db=Depends(get_db)) -> List[Dict[str, Any]]:
    topics = db["forum_topic"].find({}).sort("created_at", -1)
    return [to_str_id(t) for t in topics]


@app.post("/api/forum/topics", status_code=201)
def create_topic(topic: ForumTopicIn, db=Depends(get_db)) -> Dict[str, Any]:
    doc = topic.model_dump()
    doc.update({"date": today(), "likes": 0, "views": 0, "comments": []})
    return create_and_fetch(db, "forum_topic", doc)


@app.post("/api/forum/topics/{topic_id}/comments", status_code=201)
def add_comment(topic_id: str, comment: CommentIn, db=Depends(get_db)) -> Dict[str, Any]:
    doc = {**comment.model_dump(), "id": new_id(), "date": today(), "likes": 0}
    res = db["forum_topic"].update_one({"_id": topic_id}, {"$push": {"comments": doc}})
    if res.matched_count == 0:
        raise HTTPException(status_code=404, detail="Topic not found")
    return doc


def _bump(db, topic_id: str, field: str) -> Dict[str, Any]:
    updated = db["forum_topic"].find_one_and_update(
        {"_id": topic_id}, {"$inc": {field: 1}}, return_document=ReturnDocument.AFTER
    )
    if not updated:
        raise HTTPException(status_code=404, detail="Topic not found")
    return to_str_id(updated)


@app.post("/api/forum/topics/{topic_id}/like")
def like_topic(topic_id: str, db=Depends(get_db)) -> Dict[str, Any]:
    # no per-user tracking: every call adds one like
    return _bump(db, topic_id, "likes")


@app.post("/api/forum/topics/{topic_id}/view")
def view_topic(topic_id: str, db=Depends(get_db)) -> Dict[str, Any]:
    return _bump(db, topic_id, "views")


# ---------------------- Stats & Analytics ----------------------

@app.get("/api/stats")
def visitor_stats(db=Depends(get_db)) -> Dict[str, int]:
    total = 0
    today_visits = 0
    day = today()
    for doc in db["visit"].find({}):
        total += doc.get("count", 0)
        if doc["_id"] == day:
            today_visits = doc.get("count", 0)
    return {"total_visits": total, "today_visits": today_visits}


@app.post("/api/stats/visit")
def record_visit(db=Depends(get_db)) -> Dict[str, bool]:
    db["visit"].update_one({"_id": today()}, {"$inc": {"count": 1}}, upsert=True)
    return {"success": True}


@app.post("/api/analytics/event", status_code=201)
def track_event(event: AnalyticsEvent, db=Depends(get_db)) -> Dict[str, Any]:
    return create_and_fetch(db, "analytics_event", event.model_dump(exclude={"id"}))


@app.get("/api/analytics/dashboard")
def analytics_dashboard(time_range: TimeRange = Query("7d", alias="range"), admin=Depends(require_admin),
                        db=Depends(get_db)) -> Dict[str, Any]:
    now = datetime.now(timezone.utc)
    since = to_millis(cutoff(time_range, now))
    events = [to_str_id(e) for e in db["analytics_event"].find({"timestamp": {"$gte": since}})]
    return aggregate(events, time_range, now=now).model_dump()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=PORT)
