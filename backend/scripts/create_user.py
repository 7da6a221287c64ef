"""Create (or reset the password of) the account that may see secret gifts and edit them."""

import argparse
import asyncio
import getpass

from sqlalchemy import select

from gift_reveal.core.security import get_password_hash
from gift_reveal.db.session import async_session_factory, ensure_schema_ready
from gift_reveal.models.models import User


async def run(username: str, password: str, reset: bool) -> None:
    await ensure_schema_ready()
    async with async_session_factory() as session:
        result = await session.execute(select(User).where(User.username == username))
        user = result.scalar_one_or_none()
        if user is not None and not reset:
            print(f"user exists id={user.id} username={user.username} (use --reset to change the password)")
            return
        if user is None:
            user = User(username=username, hashed_password=get_password_hash(password))
            session.add(user)
        else:
            user.hashed_password = get_password_hash(password)
        await session.commit()
        print(f"user saved id={user.id} username={user.username}")


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("username")
    parser.add_argument("--password", help="prompted when omitted")
    parser.add_argument("--reset", action="store_true")
    args = parser.parse_args()
    password = args.password or getpass.getpass("Password: ")
    if not password:
        parser.error("password must not be empty")
    asyncio.run(run(args.username.strip(), password, args.reset))


if __name__ == "__main__":
    main()
