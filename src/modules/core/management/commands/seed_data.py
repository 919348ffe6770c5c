from __future__ import annotations

import random
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand

from modules.catalog.models import Category, Product, ProductStatus
from modules.shipping.constants import ALL_COUNTRIES
from modules.shipping.models import Country, DeliveryRule


class Command(BaseCommand):
    help = "Seed database with storefront development data."

    def add_arguments(self, parser):
        parser.add_argument("--admin-password", default="admin123")

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        users_created = self._seed_users(options["admin_password"])
        countries = self._seed_countries()
        rules = self._seed_delivery_rules()
        categories = self._seed_categories()
        products = self._seed_products(categories)

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"users={users_created}, "
                f"countries={len(countries)}, "
                f"delivery_rules={len(rules)}, "
                f"categories={len(categories)}, "
                f"products={len(products)}"
            )
        )

    def _seed_users(self, admin_password: str) -> int:
        User = get_user_model()
        if User.objects.filter(username="admin").exists():
            return 0
        User.objects.create_superuser("admin", password=admin_password)
        return 1

    def _seed_countries(self) -> list[Country]:
        self.stdout.write("Creating countries...")
        countries: list[Country] = []
        seed_countries = [
            ("US", "United States", Decimal("5.00"), Decimal("8.00")),
            ("CA", "Canada", Decimal("8.00"), Decimal("13.00")),
            ("GB", "United Kingdom", Decimal("10.00"), Decimal("20.00")),
            ("DE", "Germany", Decimal("10.00"), Decimal("19.00")),
            ("AE", "United Arab Emirates", Decimal("12.00"), Decimal("5.00")),
            ("PK", "Pakistan", Decimal("15.00"), Decimal("17.00")),
            ("IN", "India", Decimal("12.00"), Decimal("18.00")),
            ("AU", "Australia", Decimal("14.00"), Decimal("10.00")),
        ]
        for code, name, base_cost, tax in seed_countries:
            country, _ = Country.objects.get_or_create(
                country_code=code,
                defaults={
                    "country_name": name,
                    "base_cost": base_cost,
                    "tax_percentage": tax,
                    "is_active": True,
                },
            )
            countries.append(country)
        self.stdout.write(self.style.SUCCESS("Creating countries... Done!"))
        return countries

    def _seed_delivery_rules(self) -> list[DeliveryRule]:
        self.stdout.write("Creating delivery rules...")
        rules: list[DeliveryRule] = []
        bands = [
            (1, 3, ALL_COUNTRIES, Decimal("10.00"), "Standard delivery (5-7 days)"),
            (4, 10, ALL_COUNTRIES, Decimal("18.00"), "Standard delivery (5-7 days)"),
            (11, 100, ALL_COUNTRIES, Decimal("30.00"), "Bulk freight (7-14 days)"),
            (1, 3, "US", Decimal("8.00"), "Domestic ground (3-5 days)"),
            (4, 10, "US", Decimal("12.00"), "Domestic ground (3-5 days)"),
        ]
        for min_pieces, max_pieces, country, cost, description in bands:
            rule, _ = DeliveryRule.objects.get_or_create(
                min_pieces=min_pieces,
                max_pieces=max_pieces,
                country=country,
                defaults={
                    "delivery_cost": cost,
                    "description": description,
                    "is_active": True,
                },
            )
            rules.append(rule)
        self.stdout.write(self.style.SUCCESS("Creating delivery rules... Done!"))
        return rules

    def _seed_categories(self) -> dict[str, Category]:
        self.stdout.write("Creating categories...")
        categories: dict[str, Category] = {}
        for position, name in enumerate(["Apparel", "Accessories", "Home"]):
            category, _ = Category.objects.get_or_create(
                name=name, defaults={"sort_order": position, "is_active": True}
            )
            categories[name] = category
        self.stdout.write(self.style.SUCCESS("Creating categories... Done!"))
        return categories

    def _seed_products(self, categories: dict[str, Category]) -> list[Product]:
        self.stdout.write("Creating products...")
        products: list[Product] = []
        catalog = [
            ("Linen Shirt", "Apparel", Decimal("42.00"), True),
            ("Denim Jacket", "Apparel", Decimal("89.00"), False),
            ("Wool Scarf", "Accessories", Decimal("25.00"), True),
            ("Leather Belt", "Accessories", Decimal("35.00"), False),
            ("Canvas Tote", "Accessories", Decimal("19.50"), False),
            ("Ceramic Mug", "Home", Decimal("12.00"), False),
            ("Throw Blanket", "Home", Decimal("55.00"), True),
            ("Scented Candle", "Home", Decimal("16.00"), False),
        ]
        for name, category, price, featured in catalog:
            product, _ = Product.objects.get_or_create(
                name=name,
                defaults={
                    "category": categories[category],
                    "price": price,
                    "currency": "USD",
                    "stock_quantity": random.randint(0, 60),
                    "featured": featured,
                    "status": ProductStatus.ACTIVE,
                },
            )
            products.append(product)
        self.stdout.write(self.style.SUCCESS("Creating products... Done!"))
        return products
