"""Built-in seed dataset used on first boot and after a corrupt snapshot."""

from .models import (
    Category,
    CourierSettings,
    Database,
    PixelSettings,
    Product,
    StoreSettings,
    User,
)

_DESCRIPTION = (
    "Lansy Nature Shampoo Bar.\n"
    "Main Ingredients: Cacumen Biotae, Isatis Indigotica.\n"
    "Features: Expert Craftsmanship, Ancient Techniques.\n"
    "Security: 7Roots Verified Authentic.\n\n"
    "A premium herbal shampoo bar formulated with traditional ingredients "
    "for scalp health and hair vitality."
)

# (id, name, short description, images, stock, rating, reviews, is_main)
_PRODUCT_ROWS = [
    ("1", "Nature Shampoo Bar - Single Box", "Cacumen Biotae & Isatis Indigotica",
     ["front", "hand", "side"], 50, 5.0, 12, True),
    ("2", "Nature Shampoo Bar - Unboxed", "Expert Craftsmanship",
     ["hand", "front", "side"], 45, 5.0, 8, False),
    ("3", "Nature Shampoo Bar - Bundle", "Ancient Techniques",
     ["side", "front", "hand"], 60, 4.8, 15, False),
    ("4", "Nature Shampoo Bar - Verified", "7Roots Verified",
     ["side", "front", "hand"], 30, 5.0, 5, False),
]


def seed_products() -> list[Product]:
    return [
        Product(
            id=pid,
            name=name,
            price=650.0,
            original_price=850.0,
            purchase_cost=300.0,
            internal_price=650.0,
            stock=stock,
            images=[f"/images/lansy-{view}.jpg" for view in views],
            sizes=["Standard"],
            colors=["#2E8B57"],
            category="Natural Soap",
            is_active=True,
            is_main=is_main,
            description=_DESCRIPTION,
            short_description=short,
            rating=rating,
            review_count=reviews,
            product_code=f"#LANSY-NATURE-00{pid}",
            delivery_regions=["Nationwide"],
        )
        for pid, name, short, views, stock, rating, reviews, is_main in _PRODUCT_ROWS
    ]


def seed_database() -> Database:
    """Return a fresh copy of the seed dataset."""
    return Database(
        products=seed_products(),
        categories=[
            Category(id="1", name="Natural Soap"),
            Category(id="2", name="Hair Care"),
        ],
        orders=[],
        users=[
            User(id="1", name="Admin User", email="admin@dataflow.com", role="Admin"),
            User(id="2", name="Demo Customer", email="customer@demo.com"),
        ],
        notifications=[],
        store_settings=StoreSettings(
            whatsapp_number="+8801604783479",
            whatsapp_order_link="https://wa.me/8801604783479",
        ),
        courier_settings=CourierSettings(),
        pixel_settings=PixelSettings(),
    )
