from __future__ import annotations

import random
from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from modules.inventory.constants import StockAction
from modules.inventory.models import Product, ProductVariant
from modules.inventory.repositories import StockDjangoRepository
from modules.inventory.services import InventoryAdjuster
from modules.orders.constants import OrderStatus
from modules.orders.models import Order, OrderItem

CUSTOMERS = [
    ("Aarav Sharma", "aarav@example.com", "+91 98765 43210", "12 MG Road, Bengaluru"),
    ("Diya Patel", "diya@example.com", "+91 98111 22334", "4 Park Street, Kolkata"),
    ("Kabir Singh", "kabir@example.com", "+91 99887 66554", "221 Linking Rd, Mumbai"),
    ("Meera Iyer", "", "+91 90000 11122", "7 Anna Salai, Chennai"),
    ("Rohan Gupta", "rohan@example.com", "", "18 Sector 17, Chandigarh"),
]

CATALOG = [
    # sku, name, price, stock, variants
    ("TEE-001", "Cotton T-Shirt", Decimal("499.00"), 0, ["S", "M", "L"]),
    ("HOOD-001", "Zip Hoodie", Decimal("1499.00"), 0, ["M", "L"]),
    ("MUG-001", "Ceramic Mug", Decimal("299.00"), 120, []),
    ("CAP-001", "Baseball Cap", Decimal("399.00"), 80, []),
    ("BAG-001", "Canvas Tote", Decimal("349.00"), 60, []),
]

STATUS_WEIGHTS = [
    (OrderStatus.PENDING, 0.20),
    (OrderStatus.CONFIRMED, 0.20),
    (OrderStatus.PACKED, 0.10),
    (OrderStatus.DISPATCHED, 0.15),
    (OrderStatus.OUT_FOR_DELIVERY, 0.05),
    (OrderStatus.DELIVERED, 0.20),
    (OrderStatus.CANCEL, 0.10),
]


class Command(BaseCommand):
    help = "Seed database with realistic development data."

    def add_arguments(self, parser):
        parser.add_argument("--orders", type=int, default=30)

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        users_created = self._seed_users()
        lines = self._seed_catalog()
        orders_created = self._seed_orders(lines, options["orders"])

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"users={users_created}, "
                f"stock_lines={len(lines)}, "
                f"orders={orders_created}"
            )
        )

    def _seed_users(self) -> int:
        User = get_user_model()
        if User.objects.filter(username="admin").exists():
            return 0
        User.objects.create_superuser("admin", password="admin123")
        return 1

    def _seed_catalog(self) -> list[tuple[Product, ProductVariant | None]]:
        """Return every sellable line: a variant, or a product without any."""
        self.stdout.write("Creating products...")
        lines: list[tuple[Product, ProductVariant | None]] = []
        for sku, name, price, stock, sizes in CATALOG:
            product, _ = Product.objects.get_or_create(
                sku=sku,
                defaults={"name": name, "price": price, "stock_quantity": stock},
            )
            if not sizes:
                lines.append((product, None))
                continue
            for size in sizes:
                variant, _ = ProductVariant.objects.get_or_create(
                    product=product,
                    sku=f"{sku}-{size}",
                    defaults={
                        "name": f"{name} ({size})",
                        "stock_quantity": random.randint(20, 60),
                    },
                )
                lines.append((product, variant))
        self.stdout.write(self.style.SUCCESS("Creating products... Done!"))
        return lines

    def _seed_orders(
        self, lines: list[tuple[Product, ProductVariant | None]], count: int
    ) -> int:
        self.stdout.write("Creating orders...")
        if not lines:
            self.stdout.write(self.style.WARNING("Skipping orders (no products)."))
            return 0

        adjuster = InventoryAdjuster(StockDjangoRepository())
        statuses = [s for s, _ in STATUS_WEIGHTS]
        weights = [w for _, w in STATUS_WEIGHTS]

        for _ in range(count):
            name, email, phone, address = random.choice(CUSTOMERS)
            status = random.choices(statuses, weights=weights, k=1)[0]
            with transaction.atomic():
                order = Order.objects.create(
                    status=status,
                    customer_name=name,
                    customer_email=email,
                    customer_phone=phone,
                    delivery_address=address,
                    delivery_fee=Decimal("49.00"),
                )
                subtotal = Decimal("0.00")
                for product, variant in random.sample(lines, k=random.randint(1, 3)):
                    item = OrderItem.objects.create(
                        order=order,
                        product=product,
                        variant=variant,
                        product_name=variant.name if variant else product.name,
                        quantity=random.randint(1, 3),
                        unit_price=(variant and variant.price) or product.price,
                    )
                    subtotal += item.total_price

                # Orders placed past pending already hold their stock.
                if order.stock_committed:
                    adjuster.apply(
                        StockAction.REDUCE, order.items.all(), order_id=order.id
                    )

                created_at = timezone.now() - timedelta(days=random.randint(0, 30))
                Order.objects.filter(id=order.id).update(
                    subtotal=subtotal,
                    total_amount=subtotal + order.delivery_fee,
                    created_at=created_at,
                )

        self.stdout.write(self.style.SUCCESS("Creating orders... Done!"))
        return count
