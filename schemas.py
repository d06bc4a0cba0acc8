"""
Database Schemas for MotoVibe (Motorcycle Gear Store)

Each Pydantic model describes a document in MongoDB. Collection names are
the lowercase of the entity (e.g., Product -> "product"). The same models
are shared by the API and by the client-side services.
"""

from pydantic import BaseModel, Field, EmailStr, model_validator
from typing import Optional, List, Literal


ProductCategory = Literal[
    "Kask", "Mont", "Eldiven", "Bot", "Pantolon", "Koruma", "İnterkom", "Aksesuar"
]
OrderStatus = Literal["preparing", "shipped", "delivered", "cancelled"]
ForumCategory = Literal["Genel", "Teknik", "Gezi", "Ekipman", "Etkinlik"]
EventType = Literal["view_product", "add_to_cart", "checkout_start", "session_duration"]
TimeRange = Literal["24h", "7d", "30d"]
SlideAction = Literal["shop", "blog", "contact"]

# Allowed status moves; re-setting the current status is always accepted.
ORDER_TRANSITIONS = {
    "preparing": {"shipped", "cancelled"},
    "shipped": {"delivered", "cancelled"},
    "delivered": set(),
    "cancelled": set(),
}


def can_transition(current: str, new: str) -> bool:
    return current == new or new in ORDER_TRANSITIONS.get(current, set())


class Product(BaseModel):
    """
    Products collection schema
    Collection: "product"
    """
    id: Optional[str] = None
    name: str = Field(..., min_length=1, description="Product name")
    description: str = Field("", description="Product description")
    price: float = Field(..., gt=0, description="Price in TRY")
    category: ProductCategory = Field(..., description="Gear type")
    image: str = Field("", description="Cover image URL")
    images: List[str] = Field(default_factory=list, description="Gallery, first entry is the cover")
    rating: float = Field(0, ge=0, le=5)
    features: List[str] = Field(default_factory=list)
    stock: int = Field(0, ge=0, description="Units in stock")

    @model_validator(mode="after")
    def _sync_cover(self):
        if not self.images and self.image:
            self.images = [self.image]
        if not self.image and self.images:
            self.image = self.images[0]
        return self


class User(BaseModel):
    """
    Users collection schema (public view, password never included)
    Collection: "user"
    """
    id: str
    name: str
    email: EmailStr
    is_admin: bool = False
    join_date: str = ""
    phone: Optional[str] = None
    address: Optional[str] = None


class UserRegister(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=1)
    phone: Optional[str] = None
    address: Optional[str] = None


class LoginReq(BaseModel):
    email: EmailStr
    password: str


class OrderItem(BaseModel):
    """Frozen copy of a cart line at checkout time."""
    product_id: str
    name: str
    price: float = Field(..., ge=0)
    quantity: int = Field(..., ge=1)
    image: str = ""


class OrderIn(BaseModel):
    user_id: str
    code: Optional[str] = Field(None, description="Display code, e.g. MV-2024-1234")
    items: List[OrderItem] = Field(..., min_length=1)
    total: float = Field(..., ge=0)


class Order(OrderIn):
    """
    Orders collection schema
    Collection: "order"
    """
    id: str
    date: str
    status: OrderStatus = "preparing"


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class ForumComment(BaseModel):
    id: str
    author_id: str
    author_name: str
    content: str
    date: str
    likes: int = 0


class CommentIn(BaseModel):
    author_id: str
    author_name: str
    content: str = Field(..., min_length=1)


class ForumTopicIn(BaseModel):
    author_id: str
    author_name: str
    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    category: ForumCategory = "Genel"
    tags: List[str] = Field(default_factory=list)


class ForumTopic(ForumTopicIn):
    """
    Forum topics collection schema
    Collection: "forum_topic"
    """
    id: str
    date: str
    likes: int = 0
    views: int = 0
    comments: List[ForumComment] = Field(default_factory=list)


class CategoryItem(BaseModel):
    """
    Homepage category tiles
    Collection: "category"
    """
    id: Optional[str] = None
    name: str = Field(..., min_length=1)
    type: ProductCategory
    image: str = Field(..., min_length=1)
    desc: str = ""
    count: str = ""
    class_name: Optional[str] = None


class Slide(BaseModel):
    """
    Homepage hero slides
    Collection: "slide"
    """
    id: Optional[str] = None
    image: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    subtitle: Optional[str] = None
    cta: Optional[str] = None
    action: Optional[SlideAction] = "shop"


class AnalyticsEvent(BaseModel):
    """
    Append-only analytics facts
    Collection: "analytics_event"
    """
    id: Optional[str] = None
    type: EventType
    timestamp: int = Field(..., ge=0, description="Epoch milliseconds")
    user_id: Optional[str] = None
    user_name: Optional[str] = None
    product_id: Optional[str] = None
    product_name: Optional[str] = None
    duration: Optional[int] = Field(None, ge=0, description="Seconds, session events only")


class NamedCount(BaseModel):
    name: str
    count: int


class TimelinePoint(BaseModel):
    label: str
    value: int


class AnalyticsDashboard(BaseModel):
    total_product_views: int = 0
    total_add_to_cart: int = 0
    total_checkouts: int = 0
    avg_session_duration: int = 0
    top_viewed_products: List[NamedCount] = Field(default_factory=list)
    top_added_products: List[NamedCount] = Field(default_factory=list)
    activity_timeline: List[TimelinePoint] = Field(default_factory=list)


class VisitorStats(BaseModel):
    total_visits: int = 0
    today_visits: int = 0
