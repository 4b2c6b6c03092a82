"""
Create or update a principal (out-of-band provisioning).

Usage:
    python scripts/create_admin.py --email admin@herbario.example --password "<password>"
    python scripts/create_admin.py --email editor@herbario.example --password "<password>" --no-admin
"""

import argparse
import asyncio
import sys

sys.path.insert(0, ".")

from sqlalchemy import select

from herbario.database import close_db, init_db, session_scope
from herbario.kernel.identity.password import hash_password
from herbario.kernel.models.user import User
from herbario.schemas.auth import EMAIL_PATTERN, PASSWORD_MAX_LENGTH, PASSWORD_MIN_LENGTH


async def provision(email: str, password: str, is_admin: bool) -> str:
    await init_db()
    async with session_scope() as session:
        result = await session.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()
        if user is None:
            user = User(email=email, password_hash=hash_password(password), is_admin=is_admin)
            session.add(user)
            action = "Created"
        else:
            user.password_hash = hash_password(password)
            user.is_admin = is_admin
            action = "Updated"
    await close_db()
    return f"{action} {'admin' if is_admin else 'user'} {email}"


def main() -> int:
    parser = argparse.ArgumentParser(description="Create or update a Herbario principal")
    parser.add_argument("--email", required=True)
    parser.add_argument("--password", required=True)
    parser.add_argument("--no-admin", action="store_true", help="create a non-admin principal")
    args = parser.parse_args()

    email = args.email.strip()
    if not EMAIL_PATTERN.match(email):
        parser.error("invalid email")
    if not PASSWORD_MIN_LENGTH <= len(args.password) <= PASSWORD_MAX_LENGTH:
        parser.error(f"password must be {PASSWORD_MIN_LENGTH}-{PASSWORD_MAX_LENGTH} characters")

    print(asyncio.run(provision(email, args.password, not args.no_admin)))
    return 0


if __name__ == "__main__":
    sys.exit(main())
