#!/usr/bin/env python3
"""
Admin User Setup Script
Usage: python scripts/set_admin.py email@domain.com
"""

import asyncio
import sys
import os
from sqlalchemy import select, func

# Make the resume_tailor package importable when run from a checkout
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from resume_tailor.db import async_session_maker
from resume_tailor.models_db import User


async def _find_user(db, email: str):
    result = await db.execute(select(User).where(func.lower(User.email) == email.strip().lower()))
    return result.scalars().first()


async def set_user_admin(email: str, is_admin: bool = True, session_factory=async_session_maker) -> bool:
    """Grant or revoke admin access for the user with this email"""
    async with session_factory() as db:
        try:
            user = await _find_user(db, email)
            if not user:
                print(f"❌ User with email '{email}' not found")
                return False

            if bool(user.is_admin) == is_admin:
                state = "already an admin" if is_admin else "not an admin"
                print(f"✅ User '{email}' is {state}")
                return True

            user.is_admin = is_admin
            await db.commit()

            action = "is now an admin" if is_admin else "is no longer an admin"
            print(f"✅ User '{email}' (ID: {user.id}) {action}")
            return True

        except Exception as e:
            print(f"❌ Error updating admin status: {e}")
            await db.rollback()
            return False


async def list_admins(session_factory=async_session_maker) -> list:
    """Print and return the emails of all admin users"""
    async with session_factory() as db:
        result = await db.execute(select(User).where(User.is_admin.is_(True)).order_by(User.email))
        admins = result.scalars().all()

    if not admins:
        print("No admin users found")
        return []

    print(f"Admin Users ({len(admins)}):")
    for admin in admins:
        print(f"  - {admin.email} - ID: {admin.id}")
    return [admin.email for admin in admins]


def print_usage():
    print("Admin Management Script")
    print("Usage:")
    print("  python scripts/set_admin.py <email>              - Set user as admin")
    print("  python scripts/set_admin.py --list               - List all admins")
    print("  python scripts/set_admin.py --remove <email>     - Remove admin status")
    print("  python scripts/set_admin.py --help               - Show this help")


async def main(argv=None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if not args:
        print_usage()
        return 1

    command = args[0]

    if command == "--help":
        print_usage()
        return 0
    if command == "--list":
        await list_admins()
        return 0
    if command == "--remove":
        if len(args) < 2:
            print("❌ Email required for --remove")
            print_usage()
            return 1
        return 0 if await set_user_admin(args[1], is_admin=False) else 1
    if command.startswith("--"):
        print(f"❌ Unknown option: {command}")
        print_usage()
        return 1

    if "@" not in command:
        print("❌ Invalid email format")
        return 1
    return 0 if await set_user_admin(command) else 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
