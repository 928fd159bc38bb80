"""Print a development access token for an existing staff user.

Usage:
    python -m opd_backend.print_access_token EMAIL
"""
import sys

from opd_backend.auth.jwt_handler import create_access_token
from opd_backend.database import SessionLocal
from opd_backend.models import doctor  # noqa: F401
from opd_backend.models.user import User


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if len(args) != 1:
        print("Usage: python -m opd_backend.print_access_token EMAIL", file=sys.stderr)
        return 2

    email = args[0].strip().lower()
    db = SessionLocal()
    try:
        user = db.query(User).filter(User.email == email).first()
    finally:
        db.close()

    if user is None:
        print(f"No staff user with email {email}", file=sys.stderr)
        return 1

    print(create_access_token(subject=user.email, role=user.role))
    return 0


if __name__ == "__main__":
    sys.exit(main())
