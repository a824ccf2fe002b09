"""
Create Admin User Script
Create an Acclaim administrator, or promote an existing portal user.
"""

import asyncio
import getpass
import sys
from pathlib import Path

# Add parent directory to path to import portal modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select

from portal.auth.utils import hash_password, normalize_email
from portal.database.connection import async_session_factory
from portal.models import User
from portal.services.repository import PortalRepository


async def list_admins() -> None:
    """List all current admin users."""
    async with async_session_factory() as session:
        stmt = select(User).where(User.is_admin.is_(True)).order_by(User.email)
        admins = (await session.execute(stmt)).scalars().all()

        if not admins:
            print("\nNo admin users found.")
            return

        print(f"\nCurrent admin users ({len(admins)}):")
        print("-" * 60)
        for admin in admins:
            status = "active" if admin.is_active else "inactive"
            sso = ", SSO linked" if admin.azure_id else ""
            print(f"  - {admin.email} ({status}{sso})")
        print("-" * 60)


async def create_admin(email: str, password: str, first_name: str = "", last_name: str = "") -> None:
    """Create a new admin user or promote an existing user to admin."""
    async with async_session_factory() as session:
        normalized_email = normalize_email(email)
        existing_user = await PortalRepository(session).get_user_by_email(normalized_email)

        if existing_user:
            if existing_user.is_admin:
                print(f"\nUser {normalized_email} is already an admin.")
                return

            existing_user.is_admin = True
            existing_user.password_hash = hash_password(password)
            existing_user.temporary_password = None
            await session.commit()
            print(f"\nPromoted {normalized_email} to admin.")
            return

        user = User(
            email=normalized_email,
            first_name=first_name or None,
            last_name=last_name or None,
            password_hash=hash_password(password),
            is_active=True,
            is_admin=True,
        )
        session.add(user)
        await session.commit()
        print(f"\nCreated new admin user: {normalized_email}")


async def main() -> None:
    print("=" * 60)
    print("Create Acclaim Admin User")
    print("=" * 60)

    await list_admins()

    print("\n" + "=" * 60)
    email = input("Email address: ").strip()
    if not email:
        print("\nEmail is required.")
        sys.exit(1)

    first_name = input("First name (optional): ").strip()
    last_name = input("Last name (optional): ").strip()

    password = getpass.getpass("Password: ").strip()
    if not password:
        print("\nPassword is required.")
        sys.exit(1)

    confirm = input(f"\nCreate admin user '{email}'? (yes/no): ").strip().lower()
    if confirm not in ["yes", "y"]:
        print("\nCancelled.")
        sys.exit(0)

    try:
        await create_admin(email, password, first_name, last_name)
    except Exception as e:
        print(f"\nUnexpected error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
