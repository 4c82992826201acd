"""
One-time script to create an admin account.
Run from the project root:

    python scripts/create_admin.py

You will be prompted for name, email and password.
"""

import getpass
import os
import sys

# Make sure the project root is on the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from floodwatch.core.exceptions import FloodWatchError
from floodwatch.database import SessionLocal, init_db
from floodwatch.services.auth import create_user, get_user_by_email


def main():
    init_db()

    db = SessionLocal()
    try:
        print("\n── FloodWatch · Create Admin Account ──\n")

        email = input("Email: ").strip()
        if not email:
            print("Email cannot be empty.")
            return

        existing = get_user_by_email(db, email)
        if existing:
            print(f"User {email} already exists (role: {existing.role}).")
            return

        password = getpass.getpass("Password (min 6 chars): ").strip()
        if len(password) < 6:
            print("Password too short.")
            return

        name = input("Name: ").strip() or "Administrator"

        try:
            user = create_user(db, name, email, password, role="admin")
        except FloodWatchError as exc:
            print(f"Could not create admin: {exc.message}")
            return
        print(f"\n✓ Admin created: {user.email} (id: {user.id})\n")

    finally:
        db.close()


if __name__ == "__main__":
    main()
