"""
Create a stored user, by default with the admin role.
Run from the project root:

    python scripts/create_admin.py

You will be prompted for email, password, and name.
"""

import getpass
import os
import sys

# Make sure the project root is on the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from storefront.core.exceptions import StorefrontError
from storefront.database import SessionLocal, init_db
from storefront.services.auth import create_user


def main():
    # Ensure the tables exist
    init_db()

    db = SessionLocal()
    try:
        print("\n── Storefront · Create Admin User ──\n")

        email = input("Email: ").strip()
        if not email:
            print("Email cannot be empty.")
            return

        password = getpass.getpass("Password (min 8 chars): ")
        if len(password) < 8:
            print("Password too short.")
            return

        name = input("Name (default: Administrator): ").strip() or "Administrator"

        role = input("Role [user / admin] (default: admin): ").strip()
        if role not in ("user", "admin"):
            role = "admin"

        try:
            user = create_user(db, email, password, name, role, email_verified=True)
        except StorefrontError as exc:
            print(f"Could not create user: {exc.message}")
            return
        print(f"\n✓ User created: {user.email} (role: {user.role}, id: {user.id})\n")

    finally:
        db.close()


if __name__ == "__main__":
    main()
