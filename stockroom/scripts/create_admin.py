import asyncio
import os

from sqlalchemy import select

from stockroom.core.db import Database, build_database
from stockroom.core.security import hash_password
from stockroom.constants.roles import ADMIN
from stockroom.models.users.user_models import User


async def create_admin(database: Database, username: str, password: str) -> bool:
    """Create the first admin account. Returns False if the username is taken."""
    if database.is_sqlite:
        await database.create_all()

    async with database.session() as session:
        exists = await session.scalar(select(User.id).where(User.username == username))
        if exists:
            return False

        session.add(
            User(
                username=username,
                full_name="Administrator",
                password_hash=hash_password(password),
                role=ADMIN,
                is_active=True,
            )
        )
        await session.commit()
        return True


async def main():
    database = build_database()
    username = os.getenv("ADMIN_USERNAME", "admin")
    try:
        created = await create_admin(database, username, os.getenv("ADMIN_PASSWORD", "admin123"))
    finally:
        await database.dispose()

    if created:
        print(f"Admin user '{username}' created!")
    else:
        print(f"User '{username}' already exists")


if __name__ == "__main__":
    asyncio.run(main())
