import os
import sys
import django
import random
from datetime import timedelta
from django.utils import timezone
from faker import Faker

# Add project root to Python path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Set up Django environment
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'skillswap.settings')
django.setup()

from exchange import moderation, ratings, swaps
from exchange.exceptions import ExchangeError
from exchange.models import User

fake = Faker()

SKILLS = [
    "Guitar", "Piano", "Spanish", "French", "Python", "Photography",
    "Cooking", "Yoga", "Drawing", "Public Speaking", "Excel", "Knitting",
]


def create_users(num_users=20):
    print(f"Creating {num_users} members...")

    users = []
    for _ in range(num_users):
        email = fake.unique.email()
        username = email.split('@')[0]
        offered = random.sample(SKILLS, random.randint(1, 3))
        wanted = random.sample([skill for skill in SKILLS if skill not in offered], random.randint(1, 3))
        user = User.objects.create_user(
            username=username,
            email=email,
            password='password123',
            first_name=fake.first_name(),
            last_name=fake.last_name(),
            display_name=fake.name(),
            location=fake.city(),
            availability=random.choice(["weekends", "evenings", "weekday mornings", "flexible"]),
            skills_offered=offered,
            skills_wanted=wanted,
        )
        users.append(user)

    print(f"Created {len(users)} members.")
    return users


def create_swaps(users, num_swaps=40):
    print("Creating swaps...")
    created = []

    for _ in range(num_swaps):
        requester, provider = random.sample(users, 2)
        try:
            swap = swaps.create_request(
                requester,
                provider.id,
                random.choice(requester.skills_offered),
                random.choice(provider.skills_offered),
                message=fake.sentence(),
            )
        except ExchangeError:
            # Duplicate pairing
            continue
        created.append(swap)

    print(f"Created {len(created)} swap requests.")
    return created


def advance_swaps(created):
    """Walk a random share of the requests through the lifecycle."""
    print("Advancing swaps...")
    completed = []

    for swap in created:
        requester, provider = swap.requester, swap.provider
        outcome = random.choice(['pending', 'rejected', 'cancelled', 'accepted', 'in_progress', 'completed', 'completed'])

        if outcome == 'pending':
            continue
        if outcome == 'rejected':
            swaps.reject(swap.id, provider, fake.sentence())
            continue
        if outcome == 'cancelled':
            swaps.cancel(swap.id, random.choice([requester, provider]), fake.sentence())
            continue

        swaps.accept(swap.id, provider)
        swaps.schedule(swap.id, requester, timezone.now() + timedelta(days=random.randint(1, 30)))
        if outcome == 'accepted':
            continue

        swaps.start(swap.id, requester)
        if outcome == 'in_progress':
            continue

        swaps.mark_completed(swap.id, requester)
        completed.append(swaps.mark_completed(swap.id, provider))

    print(f"Completed {len(completed)} swaps.")
    return completed


def create_feedback(completed):
    print("Creating feedback...")
    count = 0

    for swap in completed:
        for reviewer in (swap.requester, swap.provider):
            # Not every participant leaves feedback
            if random.random() < 0.3:
                continue
            categories = {
                name: random.randint(3, 5)
                for name in random.sample(['skill_quality', 'communication', 'reliability', 'professionalism'], 2)
            }
            ratings.submit_feedback(
                swap.id,
                reviewer,
                random.randint(2, 5),
                comment=fake.paragraph(),
                categories=categories,
            )
            count += 1

    print(f"Created {count} feedback entries.")


def main():
    print("Starting database population...")

    # Create Members
    users = create_users(num_users=20)

    # Create and progress Swaps
    created = create_swaps(users)
    completed = advance_swaps(created)

    # Create Feedback
    create_feedback(completed)

    # Ban one member to exercise moderation
    moderation.ban_user(random.choice(users).id, "Seeded ban")

    print("Database population completed successfully!")


if __name__ == '__main__':
    main()
