"""Populate the database with demo users, posts, comments and likes."""
import asyncio
import argparse
import random
import time
from datetime import datetime, timezone, timedelta

from social_api.database import engine, async_session, Base
from social_api.models import User, Post, Comment, PostLike
from social_api.security import hash_password

DEMO_PASSWORD = "password"

TOPICS = ["coffee", "running", "python", "gardening", "jazz", "hiking",
          "photography", "baking", "chess", "cycling", "movies", "travel"]


async def seed(small: bool = False):
    num_users = 5 if small else 50
    num_posts = 30 if small else 2000
    max_comments = 2 if small else 5

    print(f"Seeding: {num_users} users, {num_posts} posts, up to {max_comments} comments per post")
    start = time.perf_counter()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    # Every demo account shares one password, so hash it once.
    password_hash = await hash_password(DEMO_PASSWORD)

    async with async_session() as session:
        users = []
        for i in range(num_users):
            user = User(
                name=f"User {i}",
                username=f"user_{i:04d}",
                password_hash=password_hash,
                bio=f"I post about {random.choice(TOPICS)}.",
            )
            session.add(user)
            users.append(user)
        await session.flush()
        print(f"  Created {len(users)} users (password: {DEMO_PASSWORD!r})")

        posts = []
        for i in range(num_posts):
            created = datetime.now(timezone.utc) - timedelta(minutes=random.randint(0, 60 * 24 * 90))
            post = Post(
                body=f"Post {i}: some thoughts on {random.choice(TOPICS)}.",
                author_id=random.choice(users).id,
                created_at=created,
                updated_at=created,
            )
            session.add(post)
            posts.append(post)
        await session.flush()
        print(f"  Created {len(posts)} posts")

        total_comments = 0
        total_likes = 0
        for post in posts:
            for _ in range(random.randint(0, max_comments)):
                session.add(Comment(
                    content=f"Nice one about post {post.id}!",
                    post_id=post.id,
                    author_id=random.choice(users).id,
                ))
                total_comments += 1
            # One like per (post, user), so sample without replacement.
            for liker in random.sample(users, k=random.randint(0, min(3, len(users)))):
                session.add(PostLike(post_id=post.id, author_id=liker.id))
                total_likes += 1
        await session.commit()

    elapsed = time.perf_counter() - start
    print(f"\nSeeding complete in {elapsed:.1f}s")
    print(f"  Users: {num_users}")
    print(f"  Posts: {num_posts}")
    print(f"  Comments: {total_comments}")
    print(f"  Likes: {total_likes}")


def main():
    parser = argparse.ArgumentParser(description="Seed the social database")
    parser.add_argument("--small", action="store_true", help="Use small dataset (30 posts)")
    args = parser.parse_args()
    asyncio.run(seed(small=args.small))


if __name__ == "__main__":
    main()
