#!/usr/bin/env python3
"""
Seed data script for development and testing

Creates demo drivers in the configured store, then follows between them through
the graph service so the edge sets and the stats counters agree.
"""
import argparse
import asyncio
import random
import sys
from pathlib import Path

# Add the project root to the Python path
current_dir = Path(__file__).parent
root_dir = current_dir.parent
sys.path.insert(0, str(root_dir))

FIRST_NAMES = ["Jack", "Ava", "Liam", "Mia", "Noah", "Isla", "Oscar", "Ella", "Harry", "Freya"]
ROLES = ["Driver", "Trainee", "Dispatcher", "Event Staff", "Convoy Lead"]

async def seed_users(repository, count: int = 10) -> list:
    """Seed users"""
    print(f"👥 Seeding {count} users...")

    user_ids = []
    for i in range(count):
        name = random.choice(FIRST_NAMES)
        user_id = f"demo_{name.lower()}_{i}"

        if await repository.user_exists(user_id):
            print(f"⏭️  {user_id} already exists")
            user_ids.append(user_id)
            continue

        await repository.put_user(user_id, {
            "displayName": f"{name} {i}",
            "bio": f"{random.choice(ROLES)} at Armstrong Haulage",
            "email": f"{user_id}@example.com",
        })
        user_ids.append(user_id)

    print(f"✅ {len(user_ids)} users ready")
    return user_ids

async def seed_follows(repository, user_ids: list, follows_per_user: int = 3) -> int:
    """Seed follow relationships"""
    from haulage.exceptions import ConflictError
    from haulage.services.follow_service import FollowService

    print(f"🔗 Seeding follows ({follows_per_user} per user)...")

    service = FollowService(repository)
    created = 0
    for user_id in user_ids:
        others = [other for other in user_ids if other != user_id]
        for target in random.sample(others, min(follows_per_user, len(others))):
            try:
                await service.follow(user_id, target)
                created += 1
            except ConflictError:
                continue

    print(f"✅ Created {created} follows")
    return created

async def main(count: int, follows_per_user: int):
    from haulage.db.session import get_repository, close_repository

    repository = get_repository()
    print(f"🌱 Seeding the {repository.name} store")
    try:
        user_ids = await seed_users(repository, count)
        await seed_follows(repository, user_ids, follows_per_user)
    finally:
        await close_repository()

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed demo users and follows")
    parser.add_argument("--users", type=int, default=10)
    parser.add_argument("--follows", type=int, default=3)
    args = parser.parse_args()

    asyncio.run(main(args.users, args.follows))
