"""
Load the sample drink menu into the ``products`` table.

    python -m cafe_bot.seed_menu

Does nothing if the table already has products.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from .models import Product


logger = logging.getLogger(__name__)

STANDARD_SIZES = [
    {"name": "small", "price_modifier": -0.50},
    {"name": "medium", "price_modifier": 0},
    {"name": "large", "price_modifier": 0.50},
]

FRAPPE_SIZES = [
    {"name": "medium", "price_modifier": 0},
    {"name": "large", "price_modifier": 0.75},
]

SAMPLE_MENU = [
    # Hot coffee
    {
        "name": "Americano",
        "description": "Rich espresso with hot water",
        "category": "hot",
        "base_price": 3.50,
        "sizes": STANDARD_SIZES,
        "add_ons": [
            {"name": "Extra Shot", "price": 0.75},
            {"name": "Vanilla Syrup", "price": 0.50},
            {"name": "Caramel Syrup", "price": 0.50},
        ],
    },
    {
        "name": "Cappuccino",
        "description": "Espresso with steamed milk and foam",
        "category": "hot",
        "base_price": 4.25,
        "sizes": STANDARD_SIZES,
        "add_ons": [
            {"name": "Extra Shot", "price": 0.75},
            {"name": "Cinnamon", "price": 0.25},
            {"name": "Chocolate Powder", "price": 0.25},
        ],
    },
    {
        "name": "Latte",
        "description": "Espresso with steamed milk",
        "category": "hot",
        "base_price": 4.75,
        "sizes": STANDARD_SIZES,
        "add_ons": [
            {"name": "Extra Shot", "price": 0.75},
            {"name": "Vanilla Syrup", "price": 0.50},
            {"name": "Hazelnut Syrup", "price": 0.50},
        ],
    },
    # Iced coffee
    {
        "name": "Iced Americano",
        "description": "Espresso with cold water over ice",
        "category": "iced",
        "base_price": 3.75,
        "sizes": STANDARD_SIZES,
        "add_ons": [
            {"name": "Extra Shot", "price": 0.75},
            {"name": "Simple Syrup", "price": 0.50},
            {"name": "Vanilla Syrup", "price": 0.50},
        ],
    },
    {
        "name": "Iced Latte",
        "description": "Espresso with cold milk over ice",
        "category": "iced",
        "base_price": 5.00,
        "sizes": STANDARD_SIZES,
        "add_ons": [
            {"name": "Extra Shot", "price": 0.75},
            {"name": "Caramel Syrup", "price": 0.50},
            {"name": "Vanilla Syrup", "price": 0.50},
        ],
    },
    # Frappes
    {
        "name": "Caramel Frappe",
        "description": "Blended coffee with caramel and whipped cream",
        "category": "frappe",
        "base_price": 5.75,
        "sizes": FRAPPE_SIZES,
        "add_ons": [
            {"name": "Extra Shot", "price": 0.75},
            {"name": "Extra Whipped Cream", "price": 0.50},
            {"name": "Chocolate Drizzle", "price": 0.50},
        ],
    },
    {
        "name": "Mocha Frappe",
        "description": "Blended coffee with chocolate and whipped cream",
        "category": "frappe",
        "base_price": 5.75,
        "sizes": FRAPPE_SIZES,
        "add_ons": [
            {"name": "Extra Shot", "price": 0.75},
            {"name": "Extra Whipped Cream", "price": 0.50},
            {"name": "Caramel Drizzle", "price": 0.50},
        ],
    },
]


def seed_menu(db: Optional[Session] = None) -> int:
    """Insert the sample menu. Returns the number of products added."""
    owns_session = db is None
    if owns_session:
        from .db import SessionLocal
        db = SessionLocal()
    try:
        existing = db.query(Product).count()
        if existing > 0:
            logger.info("Menu already has %d products. Not seeding again.", existing)
            return 0

        for entry in SAMPLE_MENU:
            db.add(Product(available=True, **entry))
        db.commit()
        logger.info("Seeded %d products", len(SAMPLE_MENU))
        return len(SAMPLE_MENU)
    finally:
        if owns_session:
            db.close()


if __name__ == "__main__":
    from .logging_config import setup_logging

    setup_logging()
    seed_menu()
