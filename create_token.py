"""Print a long-lived access token for an existing account.

Usage:
    python create_token.py --email admin@example.com [--days 365]
"""
import argparse
import sys

from beauty_marketplace_api.app.core.config import settings
from beauty_marketplace_api.app.core.security import create_access_token


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Mint an access token")
    parser.add_argument("--email", required=True)
    parser.add_argument("--days", type=int, default=365)
    args = parser.parse_args(argv)
    if not settings.secret_key:
        print("SECRET_KEY is empty", file=sys.stderr)
        return 1
    print(create_access_token({"sub": args.email.strip().lower()}, expires_delta=args.days * 24 * 60 * 60))
    return 0


if __name__ == "__main__":
    sys.exit(main())
