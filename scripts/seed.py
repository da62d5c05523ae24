#!/usr/bin/env python3
"""
Seed a development database with users, categories and products.

Existing shop data is removed first (children before parents, so foreign
keys hold), which makes every run produce the same dataset.

Usage:
    python scripts/seed.py
"""

import asyncio
import sys
from decimal import Decimal
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from sqlalchemy import delete

from db import create_db_and_tables, session_execute
from enums.user_role import UserRole
from models.cart import Cart
from models.cartItem import CartItem
from models.category import Category, CategoryDTO
from models.order import Order
from models.orderItem import OrderItem
from models.product import Product, ProductDTO
from models.user import User, UserDTO
from repositories.category import CategoryRepository
from repositories.product import ProductRepository
from repositories.user import UserRepository
from utils.slug import slugify
from utils.transaction_manager import TransactionManager

# Deletion order: children first
TABLES_TO_CLEAR = [OrderItem, Order, CartItem, Cart, Product, Category, User]

USERS = [
    UserDTO(email="admin@example.com", username="admin", name="Shop Admin", role=UserRole.ADMIN),
    UserDTO(email="jane@example.com", username="jane", name="Jane Doe", role=UserRole.USER),
    UserDTO(email="bob@example.com", username="bob", name="Bob Smith", role=UserRole.USER),
]

CATALOG = {
    ("Electronics", "Phones, laptops and accessories"): [
        ("Wireless Mouse", "Ergonomic 2.4 GHz mouse", Decimal("24.99"), 50),
        ("USB-C Charger 65W", "GaN fast charger", Decimal("39.90"), 30),
        ("Noise Cancelling Headphones", "Over-ear, 30h battery", Decimal("199.00"), 10),
    ],
    ("Books", "Fiction and non-fiction"): [
        ("The Pragmatic Programmer", "20th anniversary edition", Decimal("42.50"), 15),
        ("Fluent Python", "Clear, concise, and effective programming", Decimal("55.00"), 8),
    ],
    ("Home", None): [
        ("Ceramic Mug", "350 ml, dishwasher safe", Decimal("9.95"), 120),
    ],
}


async def seed():
    async with TransactionManager.atomic_transaction("seed") as session:
        for model in TABLES_TO_CLEAR:
            result = await session_execute(delete(model), session)
            print(f"🗑️  {model.__tablename__}: {result.rowcount} row(s) removed")

        for user in USERS:
            user_id = await UserRepository.create(user, session)
            print(f"👤 User {user_id}: {user.email} ({user.role.value})")

        product_count = 0
        for (category_name, description), products in CATALOG.items():
            category_id = await CategoryRepository.create(CategoryDTO(
                name=category_name,
                description=description,
                slug=slugify(category_name),
            ), session)
            print(f"📁 Category {category_id}: {category_name}")

            for name, product_description, price, stock in products:
                product_id = await ProductRepository.create(ProductDTO(
                    name=name,
                    description=product_description,
                    slug=slugify(name),
                    price=price,
                    stock=stock,
                    category_id=category_id,
                    image_urls=[],
                ), session)
                print(f"   📦 Product {product_id}: {name} ({price}, stock={stock})")
                product_count += 1

    print(f"\n✅ Seed complete: {len(USERS)} user(s), {len(CATALOG)} categories, {product_count} product(s)")
    print("   Issue a token with: python tools/issue_token.py --user-id <id> [--role ADMIN]")


async def main():
    await create_db_and_tables()
    await seed()


if __name__ == "__main__":
    asyncio.run(main())
