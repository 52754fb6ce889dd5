#!/usr/bin/env python3
"""CLI tool to create a BLOB_EDITOR_USERS entry.

Prints "login:salt:digest" where digest is sha256(salt + password) in hex.
Join several entries with commas.

Usage:
    # Prompt for the password, random salt
    python scripts/hash_password.py admin

    # Fixed salt, password on the command line
    python scripts/hash_password.py admin --salt pepper --password secret

    # No salt
    python scripts/hash_password.py admin --no-salt
"""

import argparse
import getpass
import secrets
import sys
from pathlib import Path

# Allow running from the repository root without installing
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from auth.basic_auth import hash_secret  # noqa: E402


def build_entry(login: str, password: str, salt: str) -> str:
    if ":" in login or ":" in salt or "," in login or "," in salt:
        raise ValueError("login and salt must not contain ':' or ','")
    return f"{login}:{salt}:{hash_secret(password, salt)}"


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create a BLOB_EDITOR_USERS entry")
    parser.add_argument("login", help="Basic auth user name")
    parser.add_argument("--password", help="Password (prompted when omitted)")
    salt_group = parser.add_mutually_exclusive_group()
    salt_group.add_argument("--salt", help="Salt to use (random when omitted)")
    salt_group.add_argument("--no-salt", action="store_true", help="Hash the bare password")
    args = parser.parse_args(argv)

    password = args.password
    if password is None:
        password = getpass.getpass("Password: ")
        if password != getpass.getpass("Repeat password: "):
            print("Passwords do not match", file=sys.stderr)
            return 1
    if not password:
        print("Empty password refused", file=sys.stderr)
        return 1

    if args.no_salt:
        salt = ""
    elif args.salt is not None:
        salt = args.salt
    else:
        salt = secrets.token_hex(8)

    try:
        print(build_entry(args.login, password, salt))
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
