import os
import sys
import django
import random
from decimal import Decimal
from faker import Faker

# Add project root to Python path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Set up Django environment
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'sensasiwangi.settings')
django.setup()

from marketplace.exceptions import SambatanError
from marketplace.models import User, MarketplaceProduct
from marketplace.services import create_sambatan, join_sambatan, verify_payment

fake = Faker('id_ID')

PERFUME_NOTES = [
    "Oud", "Mawar", "Melati", "Cendana", "Vanila", "Kopi",
    "Teh Hijau", "Jeruk Bali", "Nilam", "Kenanga", "Rempah", "Amber"
]

SIZES = ["10ml", "30ml", "50ml", "100ml"]


def create_users(num_buyers=20, num_sellers=5):
    print(f"Creating {num_buyers} buyers and {num_sellers} sellers...")

    users = []
    for index in range(num_buyers + num_sellers):
        email = fake.unique.email()
        user = User.objects.create_user(
            username=f"{email.split('@')[0]}{index}",
            email=email,
            password='password123',
            full_name=fake.name(),
        )
        users.append(user)

    admin = User.objects.create_user(
        username='moderator',
        email=fake.unique.email(),
        password='password123',
        full_name='Moderator Sensasiwangi',
        is_staff=True,
    )

    print(f"Created {len(users)} users and staff account {admin.email}.")
    return users[:num_buyers], users[num_buyers:], admin


def create_products(sellers):
    print("Creating products...")
    products = []

    for seller in sellers:
        # Each seller lists 2-5 products
        for _ in range(random.randint(2, 5)):
            is_sambatan = random.random() < 0.6
            product = MarketplaceProduct.objects.create(
                seller=seller,
                name=f"{random.choice(PERFUME_NOTES)} {random.choice(['Noir', 'Royale', 'Pagi', 'Senja'])} "
                     f"{random.choice(SIZES)}",
                description=fake.paragraph(),
                price=Decimal(random.randint(50, 1500) * 1000),
                moderation_status=random.choice(['approved', 'approved', 'pending']),
                is_sambatan=is_sambatan,
                min_participants=2 if is_sambatan else None,
                max_participants=random.randint(5, 20) if is_sambatan else None,
            )
            products.append(product)

    print(f"Created {len(products)} products.")
    return products


def create_sambatans(buyers, products, admin):
    print("Creating Sambatan campaigns...")
    campaigns = []

    candidates = [p for p in products if p.is_sambatan and p.is_listed]
    for product in candidates:
        initiator = random.choice(buyers)
        try:
            sambatan = create_sambatan(
                initiator,
                product,
                random.randint(product.min_participants, product.max_participants),
                expiration_days=random.randint(1, 14),
            )
        except SambatanError as e:
            print(f"Skipped {product.name}: {e}")
            continue

        # Fill some campaigns, leave others open
        joiners = random.sample([b for b in buyers if b != initiator], k=min(len(buyers) - 1, 8))
        for buyer in joiners:
            sambatan.refresh_from_db()
            if sambatan.status != 'open':
                break
            try:
                join_sambatan(sambatan.id, buyer, random.randint(1, max(1, sambatan.remaining_slots)))
            except SambatanError:
                continue

        sambatan.refresh_from_db()
        if sambatan.status == 'closed' and random.random() < 0.5:
            for participation in sambatan.participants.all():
                verify_payment(sambatan.id, participation.participant_id, approve=True, admin=admin)

        sambatan.refresh_from_db()
        campaigns.append(sambatan)

    print(f"Created {len(campaigns)} Sambatan campaigns.")
    return campaigns


def main():
    print("Starting database population...")

    buyers, sellers, admin = create_users(num_buyers=20, num_sellers=5)

    products = create_products(sellers)

    campaigns = create_sambatans(buyers, products, admin)

    by_status = {}
    for sambatan in campaigns:
        by_status[sambatan.status] = by_status.get(sambatan.status, 0) + 1
    print(f"Campaign statuses: {by_status}")

    print("Database population completed successfully!")


if __name__ == '__main__':
    main()
