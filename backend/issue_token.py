"""
Mint or revoke session tokens from the command line.

Logins only ever produce "User" tokens; this is how an operator gets an
"Admin" one:

    python issue_token.py issue --user-id 1 --role Admin
    python issue_token.py revoke <token>
"""

import argparse
import sys

from account_service.core.database import Base, SessionLocal, engine
from account_service.core.errors import AccountError
from account_service.services.token_service import ADMIN_ROLE, USER_ROLE, get_token_service
from account_service.storage.credential_store import credential_store


def issue(user_id: int, role: str) -> str:
    db = SessionLocal()
    try:
        if credential_store.get_user(db, user_id) is None:
            raise SystemExit(f"No user with id {user_id}")
        return get_token_service().issue(db, user_id, role)
    finally:
        db.close()


def revoke(token: str) -> bool:
    db = SessionLocal()
    try:
        return get_token_service().revoke(db, token)
    finally:
        db.close()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    commands = parser.add_subparsers(dest="command", required=True)

    issue_parser = commands.add_parser("issue", help="issue a token for an existing user")
    issue_parser.add_argument("--user-id", type=int, required=True)
    issue_parser.add_argument("--role", choices=[USER_ROLE, ADMIN_ROLE], default=USER_ROLE)

    revoke_parser = commands.add_parser("revoke", help="revoke a token")
    revoke_parser.add_argument("token")

    args = parser.parse_args(argv)
    Base.metadata.create_all(bind=engine)

    try:
        if args.command == "issue":
            print(issue(args.user_id, args.role))
        elif revoke(args.token):
            print("Token revoked")
        else:
            print("Token was already absent")
    except AccountError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
