# create_librarian.py
import asyncio
import sys
from getpass import getpass

from app.core.exceptions import AlreadyExists
from app.db.database import close_db, init_db
from app.models.enum import UserRole
from app.services.membership import MembershipStore


async def create_initial_librarian():
    """Create the first Librarian account against the configured database."""
    print("--- Create Initial Librarian ---")

    try:
        await init_db()
    except Exception as e:
        print(f"Error connecting to database: {e}")
        return 1

    while True:
        name = input("Enter librarian name: ").strip()
        if name:
            break
        print("Name cannot be empty.")

    while True:
        email = input("Enter librarian email: ").strip()
        if email:
            break
        print("Email cannot be empty.")

    while True:
        password = getpass("Enter password (min 6 characters): ")
        if len(password) < 6:
            print("Password must be at least 6 characters.")
            continue
        if password != getpass("Confirm password: "):
            print("Passwords do not match. Please try again.")
            continue
        break

    members = MembershipStore()
    try:
        user = await members.create_user(UserRole.LIBRARIAN, name=name, email=email, password=password)
        print(f"Librarian '{user.email}' created (borrow limit {user.max_borrow_limit}).")
        return 0
    except AlreadyExists as e:
        print(f"Error: {e.detail}")
        return 1
    finally:
        close_db()
        print("Database connection closed.")


if __name__ == "__main__":
    sys.exit(asyncio.run(create_initial_librarian()))
