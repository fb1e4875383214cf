#!/usr/bin/env python3
"""Create the database schema and seed the first administrator."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from sqlalchemy import select  # noqa: E402

from financeos.core.log import get_logger, init_logging, log_context  # noqa: E402
from financeos.core.security import SecurityProvider  # noqa: E402
from financeos.db import session_scope  # noqa: E402
from financeos.models import Base, Profile, Role, UserRole  # noqa: E402
from financeos.services.security_code_service import SecurityCodeService  # noqa: E402

logger = get_logger(__name__)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--admin-email", required=True, help="Login e-mail of the administrator")
    parser.add_argument("--admin-password", required=True, help="Initial password")
    parser.add_argument("--admin-name", default="Administrador", help="Display name")
    parser.add_argument("--database-url", default=None, help="Override the configured database URL")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    init_logging()
    email = args.admin_email.strip().lower()

    with log_context.scope(job="init_db"), session_scope(args.database_url) as session:
        Base.metadata.create_all(session.get_bind())
        logger.info("Schema created (%d tables)", len(Base.metadata.tables))

        profile = session.execute(select(Profile).where(Profile.email == email)).scalar_one_or_none()
        if profile is not None:
            logger.info("Administrator %s already exists, nothing to seed", email)
            return

        profile = Profile(
            email=email,
            name=args.admin_name,
            password_hash=SecurityProvider.hash_password(args.admin_password),
        )
        session.add(profile)
        session.flush()
        session.add(UserRole(user_id=profile.id, role=Role.ADMIN.value))
        session.commit()

        code = SecurityCodeService().issue_code(session, profile.id)
        logger.info("Administrator %s created with id %s", email, profile.id)
        print(f"Security code for {email}: {code.code}")


if __name__ == "__main__":
    main()
