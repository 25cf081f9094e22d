"""
Management command to seed the database with sample data.

Generates:
- Products across every category, gender and size
- Demo customers with password "password123"
- One administrator ("admin" / the --admin-password value)

Usage:
    python manage.py seed_data
    python manage.py seed_data --clear  # Clear existing data first
"""
import random
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction

from accounts import services as accounts
from accounts.models import Credential, DocumentType
from catalog.models import Product, Category, Gender, Size

DEMO_PASSWORD = 'password123'


class Command(BaseCommand):
    help = 'Seed the database with sample products, customers and an administrator'

    def add_arguments(self, parser):
        parser.add_argument(
            '--clear',
            action='store_true',
            help='Clear existing data before seeding',
        )
        parser.add_argument(
            '--products',
            type=int,
            default=200,
            help='Number of products to create (default: 200)',
        )
        parser.add_argument(
            '--customers',
            type=int,
            default=20,
            help='Number of customers to create (default: 20)',
        )
        parser.add_argument(
            '--admin-password',
            default='admin',
            help='Password for the seeded "admin" administrator (default: admin)',
        )

    def handle(self, *args, **options):
        if options['clear']:
            self.stdout.write('Clearing existing data...')
            self._clear_data()

        self.stdout.write('Starting database seeding...')

        with transaction.atomic():
            self._create_products(options['products'])
            self._create_customers(options['customers'])
            self._create_administrator(options['admin_password'])

        self.stdout.write(self.style.SUCCESS('Database seeding completed successfully!'))

    def _clear_data(self):
        """Clear all existing data, dependants first."""
        from orders.models import Order
        from carts.models import Cart, LineItem

        Order.objects.all().delete()
        LineItem.objects.all().delete()
        Cart.objects.all().delete()
        Product.objects.all().delete()
        Credential.objects.all().delete()

        self.stdout.write(self.style.WARNING('All existing data cleared.'))

    def _create_products(self, count):
        """Create sample products with realistic data."""
        models_by_category = {
            Category.DEPORTIVO: ['Training Shoe', 'Court Trainer', 'Cross Trainer'],
            Category.CASUAL: ['Canvas Sneaker', 'Slip-On', 'Leather Loafer'],
            Category.RUNNING: ['Road Runner', 'Trail Runner', 'Racing Flat'],
            Category.FUTBOL: ['Firm Ground Boot', 'Indoor Boot', 'Turf Boot'],
            Category.FORMAL: ['Oxford', 'Derby', 'Chelsea Boot'],
        }
        brands = ['Nike', 'Adidas', 'Puma', 'Reebok', 'New Balance', 'Asics', 'Clarks']
        colors = ['Black', 'White', 'Navy', 'Gray', 'Brown', 'Red', 'Blue']

        products = []
        self.stdout.write(f'Creating {count} products...')

        for i in range(count):
            category = random.choice(Category.values)
            brand = random.choice(brands)
            name = f"{brand} {random.choice(colors)} {random.choice(models_by_category[category])}"

            products.append(Product(
                name=name,
                description=f"{Category(category).label} footwear by {brand}.",
                price=Decimal(str(round(random.uniform(20, 300), 2))),
                available_units=random.randint(0, 50),
                category=category,
                gender=random.choice(Gender.values),
                size=random.choice(Size.values),
                brand=brand,
            ))

        Product.objects.bulk_create(products)
        self.stdout.write(self.style.SUCCESS(f'Created {len(products)} products'))
        return products

    def _create_customers(self, count):
        first_names = ['Ana', 'Luis', 'María', 'Carlos', 'Sofía', 'Andrés', 'Valentina', 'Juan']
        last_names = ['García', 'Rodríguez', 'Martínez', 'López', 'Gómez', 'Díaz', 'Torres']

        customers = []
        for i in range(count):
            username = f"customer{i + 1}"
            if Credential.objects.filter(kind=Credential.Kind.CUSTOMER, username=username).exists():
                continue
            customers.append(accounts.register_customer(
                username=username,
                password=DEMO_PASSWORD,
                first_names=random.choice(first_names),
                last_names=random.choice(last_names),
                document_type=random.choice(DocumentType.values),
                document_number=str(random.randint(10_000_000, 99_999_999)),
            ))

        self.stdout.write(self.style.SUCCESS(f'Created {len(customers)} customers'))
        return customers

    def _create_administrator(self, password):
        if Credential.objects.filter(kind=Credential.Kind.ADMINISTRATOR, username='admin').exists():
            self.stdout.write('Administrator "admin" already exists')
            return None
        administrator = accounts.register_administrator('admin', password)
        self.stdout.write(self.style.SUCCESS('Created administrator "admin"'))
        return administrator
