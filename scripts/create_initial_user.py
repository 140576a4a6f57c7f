"""Utility script to create an initial administrator in the database."""

from __future__ import annotations

import argparse
import logging
from getpass import getpass

from sqlalchemy.exc import SQLAlchemyError

from taskhub.application.use_cases.users import create_user
from taskhub.config import get_settings
from taskhub.domain.entities import Role
from taskhub.infrastructure.database import SessionLocal, initialize_database
from taskhub.logging_config import configure_logging

logger = logging.getLogger("taskhub.scripts.create_initial_user")


def parse_args() -> argparse.Namespace:
    """Parse command line arguments for user creation."""

    parser = argparse.ArgumentParser(
        description="Create an initial user for the TaskHub service.",
    )
    parser.add_argument("--first-name", default="Admin", help="First name (default: Admin)")
    parser.add_argument("--last-name", default="User", help="Last name (default: User)")
    parser.add_argument(
        "--email",
        default="admin@example.com",
        help="Email address (default: admin@example.com)",
    )
    parser.add_argument(
        "--password",
        default=None,
        help="Password. Prompted interactively when omitted.",
    )
    parser.add_argument(
        "--role",
        action="append",
        choices=[role.value for role in Role],
        help="Role to grant; repeat for several. Defaults to admin.",
    )
    return parser.parse_args()


def main() -> None:
    """Create a user using the provided command line arguments."""

    configure_logging(get_settings().log_level)
    args = parse_args()

    password = args.password or getpass("Password for the new user: ")
    if not password:
        raise SystemExit("No valid password was provided.")

    initialize_database()

    session = SessionLocal()
    try:
        user = create_user(
            session,
            email=args.email,
            first_name=args.first_name,
            last_name=args.last_name,
            password=password,
            roles=args.role or [Role.ADMIN],
        )
    except ValueError as exc:
        session.rollback()
        raise SystemExit(f"Could not create the user: {exc}") from exc
    except SQLAlchemyError as exc:
        session.rollback()
        raise SystemExit(f"Database error while saving the user: {exc}") from exc
    else:
        logger.info(
            "User created: id=%s email=%s roles=%s",
            user.id,
            user.email,
            ",".join(role.value for role in user.roles),
        )
    finally:
        session.close()


if __name__ == "__main__":
    main()
