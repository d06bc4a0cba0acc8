"""
Default datasets: seed data for a fresh store and the fallback shown when
the catalog, slides, categories or forum cannot be loaded.
"""

import uuid

_NAMESPACE = uuid.UUID("6d6f746f-7669-6265-0000-000000000000")


def seed_id(kind: str, n: int) -> str:
    """Stable identifier for seed record `n` of a kind."""
    return str(uuid.uuid5(_NAMESPACE, f"{kind}-{n}"))


def _img(photo: str) -> str:
    return f"https://images.unsplash.com/{photo}?q=80&w=800&auto=format&fit=crop"


DEFAULT_PRODUCTS = [
    {
        "id": seed_id("product", 1),
        "name": "AeroSpeed Carbon Pro Kask",
        "description": "Yüksek hız aerodinamiği için tasarlanmış ultra hafif karbon fiber kask.",
        "price": 8500,
        "category": "Kask",
        "image": _img("photo-1620916566398-39f1143ab7be"),
        "images": [_img("photo-1620916566398-39f1143ab7be")],
        "rating": 4.8,
        "features": ["Karbon Fiber Kabuk", "Pinlock Dahil", "ECE 22.06 Sertifikalı"],
        "stock": 15,
    },
    {
        "id": seed_id("product", 2),
        "name": "Urban Rider Deri Mont",
        "description": "Şehir içi sürüşler için şık ve korumalı deri mont.",
        "price": 5200,
        "category": "Mont",
        "image": _img("photo-1559582930-bb01987cf4dd"),
        "images": [_img("photo-1559582930-bb01987cf4dd")],
        "rating": 4.6,
        "features": ["%100 Gerçek Deri", "D3O Omuz ve Dirsek Koruma", "Termal İçlik"],
        "stock": 8,
    },
    {
        "id": seed_id("product", 3),
        "name": "StormChaser Su Geçirmez Eldiven",
        "description": "Gore-Tex teknolojili touring eldiveni.",
        "price": 1800,
        "category": "Eldiven",
        "image": _img("photo-1555481771-16417c6f656c"),
        "images": [_img("photo-1555481771-16417c6f656c")],
        "rating": 4.5,
        "features": ["Gore-Tex Membran", "Dokunmatik Ekran Uyumlu"],
        "stock": 25,
    },
    {
        "id": seed_id("product", 4),
        "name": "Enduro Tech Adventure Bot",
        "description": "Zorlu arazi koşulları ve uzun yolculuklar için adventure botu.",
        "price": 6750,
        "category": "Bot",
        "image": _img("photo-1555813456-96e25216239e"),
        "images": [_img("photo-1555813456-96e25216239e")],
        "rating": 4.9,
        "features": ["Su Geçirmez", "Kaymaz Taban", "Hızlı Bağlama Sistemi"],
        "stock": 12,
    },
    {
        "id": seed_id("product", 5),
        "name": "ProVision İnterkom Sistemi",
        "description": "Grup sürüşleri için uzun menzilli Bluetooth interkom.",
        "price": 2900,
        "category": "İnterkom",
        "image": _img("photo-1505740420928-5e560c06d30e"),
        "images": [_img("photo-1505740420928-5e560c06d30e")],
        "rating": 4.7,
        "features": ["1.2km Menzil", "4 Kişilik Konferans"],
        "stock": 30,
    },
    {
        "id": seed_id("product", 6),
        "name": "ProMoto Seramik Zincir Yağı",
        "description": "Sıçrama yapmayan özel formüllü seramik zincir yağı.",
        "price": 450,
        "category": "Aksesuar",
        "image": _img("photo-1589210094065-a19f47447548"),
        "images": [_img("photo-1589210094065-a19f47447548")],
        "rating": 4.9,
        "features": ["Seramik Kaplama", "O-Ring/X-Ring Uyumlu"],
        "stock": 50,
    },
]

DEFAULT_SLIDES = [
    {
        "id": seed_id("slide", 1),
        "image": "https://images.unsplash.com/photo-1609630875171-b1321377ee65?q=80&w=1920&auto=format&fit=crop",
        "title": "RIDE THE FUTURE",
        "subtitle": "YAPAY ZEKA DESTEKLİ EKİPMAN SEÇİMİ İLE TANIŞIN.",
        "cta": "ALIŞVERİŞE BAŞLA",
        "action": "shop",
    },
    {
        "id": seed_id("slide", 2),
        "image": "https://images.unsplash.com/photo-1558981408-db0ecd8a1ee4?q=80&w=1920&auto=format&fit=crop",
        "title": "CARBON & SPEED",
        "subtitle": "PROFESYONELLER İÇİN GELİŞTİRİLMİŞ KASK KOLEKSİYONU.",
        "cta": "KASKLARI GÖR",
        "action": "shop",
    },
    {
        "id": seed_id("slide", 3),
        "image": "https://images.unsplash.com/photo-1547053265-a0c602077e65?q=80&w=1920&auto=format&fit=crop",
        "title": "OFFROAD SPIRIT",
        "subtitle": "SINIRLARI ZORLAYAN MACERALAR İÇİN HAZIR OL.",
        "cta": "KEŞFET",
        "action": "shop",
    },
]

DEFAULT_CATEGORIES = [
    {
        "id": seed_id("category", 1),
        "name": "KASKLAR",
        "type": "Kask",
        "image": _img("photo-1620916566398-39f1143ab7be"),
        "desc": "Maksimum Güvenlik",
        "count": "142 Model",
        "class_name": "col-span-2 row-span-2",
    },
    {
        "id": seed_id("category", 2),
        "name": "MONTLAR",
        "type": "Mont",
        "image": _img("photo-1559582930-bb01987cf4dd"),
        "desc": "4 Mevsim Koruma",
        "count": "85 Model",
        "class_name": "col-span-2 row-span-1",
    },
    {
        "id": seed_id("category", 3),
        "name": "ELDİVENLER",
        "type": "Eldiven",
        "image": _img("photo-1555481771-16417c6f656c"),
        "desc": "Hassas Kontrol",
        "count": "64 Model",
        "class_name": "col-span-1 row-span-1",
    },
    {
        "id": seed_id("category", 4),
        "name": "İNTERKOM",
        "type": "İnterkom",
        "image": _img("photo-1505740420928-5e560c06d30e"),
        "desc": "İletişim",
        "count": "12 Model",
        "class_name": "col-span-1 md:col-span-2 row-span-1",
    },
]

DEFAULT_TOPICS = [
    {
        "id": seed_id("topic", 1),
        "author_id": "system",
        "author_name": "MotoVibe Admin",
        "title": "MotoVibe Topluluğuna Hoş Geldiniz!",
        "content": "Merhaba arkadaşlar...",
        "category": "Genel",
        "date": "2024-01-01",
        "likes": 42,
        "views": 1250,
        "comments": [],
        "tags": ["Duyuru"],
    },
]
