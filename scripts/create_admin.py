#!/usr/bin/env python3
"""Create (or promote) an active admin account.

Usage:
    python scripts/create_admin.py --email admin@example.com --name "Site Admin"
    python scripts/create_admin.py --email existing@example.com --promote

The password is read from --password or prompted for. Database settings come
from the environment / .env (DATABASE_URL, JWT_SECRET).
"""

import argparse
import asyncio
import getpass
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(PROJECT_ROOT / ".env")

from sqlalchemy import select  # noqa: E402

from hrms.auth.security import hash_password  # noqa: E402
from hrms.common.audit import create_audit_entry  # noqa: E402
from hrms.common.constants import UserRole, UserStatus  # noqa: E402
from hrms.common.logging import configure_logging  # noqa: E402
from hrms.database import async_session_factory, engine  # noqa: E402
from hrms.users.models import User  # noqa: E402

logger = logging.getLogger("create_admin")


async def create_admin(email: str, full_name: str, password: Optional[str], promote: bool) -> int:
    email = email.strip().lower()
    async with async_session_factory() as db:
        user = (await db.execute(select(User).where(User.email == email))).scalars().first()

        if user is not None:
            if not promote:
                logger.error("%s already exists; pass --promote to make it an admin", email)
                return 1
            old_role = user.role
            user.role = UserRole.admin
            user.status = UserStatus.active
            user.approved_at = user.approved_at or datetime.now(timezone.utc)
            action = "promote"
            logger.info("Promoting %s from %s to admin", email, old_role.value)
        else:
            if not password:
                logger.error("A password is required to create a new account")
                return 1
            user = User(
                email=email,
                full_name=full_name,
                password_hash=hash_password(password),
                role=UserRole.admin,
                status=UserStatus.active,
                approved_at=datetime.now(timezone.utc),
            )
            db.add(user)
            action = "create"
            logger.info("Creating admin %s", email)

        await db.flush()
        await create_audit_entry(
            db,
            action=action,
            entity_type="user",
            entity_id=user.id,
            new_values={"role": UserRole.admin.value, "source": "create_admin script"},
        )
        await db.commit()

    await engine.dispose()
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Create or promote an HRMS admin")
    parser.add_argument("--email", required=True, help="Admin email address")
    parser.add_argument("--name", default="Administrator", help="Full name for a new account")
    parser.add_argument("--password", help="Password (prompted if omitted for new accounts)")
    parser.add_argument("--promote", action="store_true",
                        help="Promote an existing account instead of failing")
    parser.add_argument("--log-level", default="info")
    args = parser.parse_args()

    configure_logging(args.log_level)

    password = args.password
    if password is None and not args.promote:
        password = getpass.getpass("Password: ")

    sys.exit(asyncio.run(create_admin(args.email, args.name, password, args.promote)))


if __name__ == "__main__":
    main()
