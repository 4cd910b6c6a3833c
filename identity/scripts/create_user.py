"""
Create an account (e.g. the first admin). Run from project root:
  python -m identity.scripts.create_user USERNAME EMAIL PASSWORD [--role ROLE]
Example:
  python -m identity.scripts.create_user admin admin@example.com 'S3cure!pass' --role Admin
"""
import argparse
import logging
import sys

from identity.core.config import get_settings
from identity.core.database import SessionLocal
from identity.services.auth_engine import DEFAULT_ROLE, AuthEngine
from identity.services.results import Failure

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Create an identity account without the HTTP API.")
    parser.add_argument("username", help="Username (letters, digits and -._@+)")
    parser.add_argument("email", help="Email address")
    parser.add_argument("password", help="Password (8-128 chars, mixed case, digit and symbol)")
    parser.add_argument("--role", default=DEFAULT_ROLE, help=f"Role to assign (default: {DEFAULT_ROLE})")
    parser.add_argument("--first-name", default="", help="First name")
    parser.add_argument("--last-name", default="", help="Last name")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    db = SessionLocal()
    try:
        engine = AuthEngine(db, get_settings())
        result = engine.register(
            username=args.username,
            email=args.email,
            password=args.password,
            first_name=args.first_name,
            last_name=args.last_name,
            role=args.role,
        )
        if isinstance(result, Failure):
            print(result.message, file=sys.stderr)
            for field, messages in result.errors.items():
                for message in messages:
                    print(f"  {field}: {message}", file=sys.stderr)
            return 1
        print(f"Created user '{args.username}' ({result.value}) with role '{args.role}'.")
        return 0
    except Exception as e:
        logger.exception("Create user failed: %s", e)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
