#!/usr/bin/env python3
"""
Password hash utility for the accepted_users setting of sso-auth-py
"""
import getpass
import json
import sys

from sso_auth.handlers.password import BCRYPT_COST_FACTOR, hash_password


def main(argv=None):
    import argparse
    parser = argparse.ArgumentParser(description="Generate bcrypt hashes for sso-auth-py accepted_users")
    parser.add_argument("--user", "-u", required=True, help="Username")
    parser.add_argument("--password", "-p", help="Password (prompted when omitted)")
    parser.add_argument("--rounds", "-r", type=int, default=BCRYPT_COST_FACTOR, help="bcrypt cost factor")
    parser.add_argument("--format", "-f", choices=["hash", "json", "env"],
                        default="hash", help="Output format")

    args = parser.parse_args(argv)
    password = args.password or getpass.getpass(f"Password for {args.user}: ")
    if not password:
        print("❌ Password cannot be empty")
        sys.exit(1)

    password_hash = hash_password(password, cost_factor=args.rounds)

    if args.format == "hash":
        print(password_hash)
    elif args.format == "json":
        print(json.dumps({args.user: password_hash}))
    elif args.format == "env":
        print(f"SSO_AUTH_ACCEPTED_USERS='{json.dumps({args.user: password_hash})}'")


if __name__ == "__main__":
    main()
