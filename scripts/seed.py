"""Database seeder: users, tagged articles, comments, follows and favorites.

Every row is written through the store layer, so the seeded data obeys the
same rules as the API (unique tags, favorites_count kept in step with the
favorite relation).
"""
import argparse
import asyncio
import random
import time

from article_api.database import Base, async_session, engine
from article_api.security import hash_password
from article_api.store import article_store, comment_store, user_store

TAGS = ["python", "fastapi", "postgresql", "redis", "docker", "kubernetes",
        "react", "typescript", "aws", "devops", "testing", "performance",
        "security", "microservices", "graphql", "rest-api"]

# Shared by every seeded account; satisfies the password strength rules.
SEED_PASSWORD = "Seed-Pass-1"


async def seed(small: bool = False):
    num_users = 10 if small else 50
    num_articles = 100 if small else 2000
    num_comments_per_article = 2 if small else 5

    print(f"Seeding: {num_users} users, {num_articles} articles, ~{num_articles * num_comments_per_article} comments")
    start = time.perf_counter()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    # Argon2 is deliberately slow; hash once and reuse.
    password_hash = hash_password(SEED_PASSWORD)

    async with async_session() as session:
        users = []
        for i in range(num_users):
            user = await user_store.create(session, {
                "username": f"user{i:04d}",
                "email": f"user{i:04d}@example.com",
                "password": password_hash,
                "name": f"Seed User {i}",
                "bio": f"I am test user number {i}. I write about technology.",
            })
            users.append(user)
        print(f"  Created {len(users)} users")

        follows = 0
        for user in users:
            for other in random.sample(users, k=min(5, len(users))):
                if other.id != user.id and await user_store.follow(session, user, other):
                    follows += 1
        print(f"  Created {follows} follows")

        total_comments = 0
        favorites = 0
        for i in range(num_articles):
            topic = random.choice(TAGS)
            article = await article_store.create(
                session,
                {
                    "title": f"Article {i}: How to optimize {topic} applications",
                    "description": f"A guide to optimizing {topic} applications for production.",
                    "body": f"This is the full content of article {i}. " * 20,
                    "user_id": random.choice(users).id,
                },
                random.sample(TAGS, k=random.randint(1, 4)),
            )

            for _ in range(random.randint(1, num_comments_per_article)):
                await comment_store.create(session, {
                    "body": f"Great article! Very helpful for understanding {topic}.",
                    "user_id": random.choice(users).id,
                    "article_id": article.id,
                })
                total_comments += 1

            for fan in random.sample(users, k=random.randint(0, min(5, len(users)))):
                result = await article_store.add_favorite(session, article, fan)
                favorites += result.relation_changed

            if (i + 1) % 500 == 0:
                await session.commit()
                print(f"  {i + 1} articles created")

        await session.commit()

    elapsed = time.perf_counter() - start
    print(f"\nSeeding complete in {elapsed:.1f}s")
    print(f"  Users: {num_users} (password {SEED_PASSWORD!r})")
    print(f"  Articles: {num_articles}")
    print(f"  Comments: {total_comments}")
    print(f"  Favorites: {favorites}")
    print(f"  Tags: {len(TAGS)}")


def main():
    parser = argparse.ArgumentParser(description="Seed the article database")
    parser.add_argument("--small", action="store_true", help="Use small dataset (100 articles)")
    args = parser.parse_args()
    asyncio.run(seed(small=args.small))


if __name__ == "__main__":
    main()
