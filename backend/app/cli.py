"""Management CLI.

Usage:
    python -m app.cli create-tables            # Create all tables from model metadata
    python -m app.cli seed                     # One user per role + sample products/orders
    python -m app.cli show-permissions <role>  # Print a role's default permissions
"""

import asyncio
import sys
from decimal import Decimal

from sqlalchemy import select

from app.auth.password import hash_password
from app.auth.roles import ROLE_RANK, Role, default_permissions, parse_role
from app.database import Base, async_session, engine
from app.errors import ConfigurationError
from app.models import Order, OrderItem, OrderStatus, Product, User
from app.utils.numbering import generate_order_number

SEED_USERS = [
    # email, password, name, role
    ("superadmin@merchant-hub.com", "SuperAdmin@123", "Super Administrator", Role.SUPER_ADMIN),
    ("admin@merchant-hub.com", "Admin@123", "System Administrator", Role.ADMIN),
    ("merchant1@merchant-hub.com", "Merchant@123", "Tech Store Merchant", Role.MERCHANT),
    ("customer@merchant-hub.com", "Customer@123", "John Customer", Role.CUSTOMER),
    ("viewer@merchant-hub.com", "Viewer@123", "Read Only Viewer", Role.VIEWER),
]

SEED_PRODUCTS = [
    # sku, name, price, stock
    ("LAPTOP-001", "Developer Laptop 14\"", Decimal("129999.000"), 10),
    ("MOUSE-001", "Wireless Mouse", Decimal("2499.000"), 150),
    ("KEYB-001", "Mechanical Keyboard", Decimal("8999.000"), 40),
]


async def create_tables():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    print("Tables created.")


async def _get_or_create_user(db, email, password, name, role, parent_id=None) -> User:
    user = (await db.execute(select(User).where(User.email == email))).scalar_one_or_none()
    if user:
        print(f"  {role.value}: {email} already exists (ID: {user.id})")
        return user

    user = User(
        email=email,
        hashed_password=hash_password(password),
        name=name,
        role=role,
        parent_user_id=parent_id,
        is_active=True,
        is_verified=True,
    )
    db.add(user)
    await db.flush()
    print(f"  {role.value}: {email} created (ID: {user.id})")
    return user


async def seed():
    async with async_session() as db:
        print("Creating users...")
        users: dict[Role, User] = {}
        for email, password, name, role in SEED_USERS:
            parent = users.get(Role.SUPER_ADMIN)
            users[role] = await _get_or_create_user(
                db, email, password, name, role,
                parent_id=parent.id if parent and role is Role.ADMIN else None,
            )

        # Merchants get their own id as merchant_id at creation time
        merchant = users[Role.MERCHANT]
        if merchant.merchant_id is None:
            merchant.merchant_id = merchant.id

        print("Creating products...")
        products = []
        for sku, name, price, stock in SEED_PRODUCTS:
            product = (
                await db.execute(select(Product).where(Product.sku == sku))
            ).scalar_one_or_none()
            if product is None:
                product = Product(
                    sku=sku, name=name, price=price, stock=stock,
                    merchant_id=merchant.id, created_by=merchant.id,
                )
                db.add(product)
                await db.flush()
                print(f"  {sku} created (ID: {product.id})")
            products.append(product)

        print("Creating orders...")
        customer = users[Role.CUSTOMER]
        existing = await db.execute(select(Order.id).where(Order.customer_id == customer.id).limit(1))
        if existing.scalar_one_or_none() is not None:
            products = []
            print("  sample orders already exist")
        for status, product in zip((OrderStatus.PENDING, OrderStatus.SHIPPED), products):
            order = Order(
                order_number=generate_order_number(),
                customer_id=customer.id,
                merchant_id=merchant.id,
                status=status,
                total_amount=Decimal(product.price).quantize(Decimal("0.01")),
                items=[
                    OrderItem(
                        product_id=product.id,
                        quantity=1,
                        unit_price=Decimal(product.price).quantize(Decimal("0.01")),
                        subtotal=Decimal(product.price).quantize(Decimal("0.01")),
                    )
                ],
            )
            db.add(order)
            await db.flush()
            print(f"  {order.order_number} ({status.value}) created")

        await db.commit()
    print("Seed complete.")


def show_permissions(role_name: str):
    try:
        role = parse_role(role_name)
    except ConfigurationError:
        print(f"Unknown role '{role_name}'. Choose from: {', '.join(r.value for r in Role)}")
        sys.exit(1)
    print(f"{role.value} (rank {ROLE_RANK[role]}):")
    for perm in sorted(default_permissions(role), key=lambda p: p.value):
        print(f"  {perm.value}")


if __name__ == "__main__":
    cmd = sys.argv[1] if len(sys.argv) > 1 else ""
    if cmd == "create-tables":
        asyncio.run(create_tables())
    elif cmd == "seed":
        asyncio.run(seed())
    elif cmd == "show-permissions" and len(sys.argv) > 2:
        show_permissions(sys.argv[2])
    else:
        print("Usage: python -m app.cli [create-tables|seed|show-permissions <role>]")
