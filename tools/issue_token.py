#!/usr/bin/env python3
"""
Issue a signed bearer token for local development and manual API testing.

In production tokens come from the external auth service; this tool signs
with the same JWT_SECRET so the API accepts them.

Usage:
    python tools/issue_token.py --user-id 1
    python tools/issue_token.py --user-id 1 --role ADMIN --ttl-minutes 120
"""

import argparse
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import jwt

import config
from enums.user_role import UserRole


def issue_token(user_id: int, role: UserRole = UserRole.USER, ttl_minutes: int = 60,
                secret: str | None = None, algorithm: str | None = None) -> str:
    """Sign a token with 'sub' (user id as string), 'role', 'iat' and 'exp'."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "role": role.value,
        "iat": now,
        "exp": now + timedelta(minutes=ttl_minutes),
    }
    if config.JWT_AUDIENCE:
        payload["aud"] = config.JWT_AUDIENCE
    return jwt.encode(payload, secret or config.JWT_SECRET, algorithm=algorithm or config.JWT_ALGORITHM)


def main():
    parser = argparse.ArgumentParser(
        description="Issue a development bearer token",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Token for a regular user
  python tools/issue_token.py --user-id 2

  # Admin token valid for two hours
  python tools/issue_token.py --user-id 1 --role ADMIN --ttl-minutes 120
        """
    )
    parser.add_argument("--user-id", type=int, required=True, help="User ID placed in the 'sub' claim")
    parser.add_argument("--role", choices=[role.value for role in UserRole], default=UserRole.USER.value,
                        help="Role claim (default: USER)")
    parser.add_argument("--ttl-minutes", type=int, default=60, help="Token lifetime in minutes (default: 60)")

    args = parser.parse_args()
    if args.ttl_minutes <= 0:
        print("❌ --ttl-minutes must be positive", file=sys.stderr)
        sys.exit(1)

    print(issue_token(args.user_id, UserRole(args.role), args.ttl_minutes))


if __name__ == "__main__":
    main()
