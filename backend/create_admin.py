"""
Promote an existing account to admin.

Usage:
    python create_admin.py <email@example.com>
"""
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent))

from sqlalchemy import select

from zynkly.lib.db import get_db_context
from zynkly.models.users import User, UserRole


def create_admin(email: str) -> int:
    email = email.strip().lower()

    with get_db_context() as db:
        user = db.execute(select(User).where(User.email == email)).scalar_one_or_none()

        if user is None:
            print(f"❌ User with email \"{email}\" not found!")
            print("   Register this email through the app first, then run this script again.")
            return 1

        if user.role == UserRole.ADMIN:
            print(f"✅ User \"{user.name}\" ({user.email}) is already an admin!")
            return 0

        user.role = UserRole.ADMIN
        print(f"✅ User \"{user.name}\" ({user.email}) is now an admin!")

    return 0


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("Usage: python create_admin.py <email@example.com>")
        sys.exit(1)
    sys.exit(create_admin(sys.argv[1]))
