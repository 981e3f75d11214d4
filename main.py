#!/usr/bin/env python3
"""
CrudAdmin maintenance commands.

Usage:
  python main.py seed
  python main.py seed --count 250
  python main.py clean-customers
  python main.py create-user admin@example.com

Reads DATABASE_URL and SESSION_SECRET from the environment (or .env) through
the same Settings the web app uses, so commands always hit the app's database.
"""

import argparse
import getpass
import random
import sys
import uuid
from typing import Optional

from pydantic import ValidationError

from api.models import RegisterForm, first_error
from auth.credentials import register
from auth.store import UserStore
from core.config import get_settings
from customers.models import Customer
from customers.store import CustomerStore

_FIRST_NAMES = [
    "Ada", "Alan", "Barbara", "Claude", "Donald", "Edsger", "Frances", "Grace",
    "Hedy", "Ivan", "John", "Katherine", "Linus", "Margaret", "Niklaus", "Radia",
]  # fmt: skip
_LAST_NAMES = [
    "Lovelace", "Turing", "Liskov", "Shannon", "Knuth", "Dijkstra", "Allen", "Hopper",
    "Lamarr", "Sutherland", "Backus", "Johnson", "Torvalds", "Hamilton", "Wirth", "Perlman",
]  # fmt: skip
_STREETS = ["Main St", "Oak Ave", "Maple Dr", "Cedar Ln", "Pine Rd", "Elm St", "Lake View", "Hill Crest"]


def fake_customers(count: int, rng: Optional[random.Random] = None) -> list[Customer]:
    """Generate `count` plausible customers with unique emails."""
    rng = rng or random.Random()
    customers: list[Customer] = []
    for _ in range(count):
        first = rng.choice(_FIRST_NAMES)
        last = rng.choice(_LAST_NAMES)
        tag = uuid.uuid4().hex[:8]
        customers.append(
            Customer(
                name=f"{first} {last}",
                email=f"{first.lower()}.{last.lower()}.{tag}@example.com",
                phone=f"555-{rng.randint(100, 999)}-{rng.randint(1000, 9999)}",
                address=f"{rng.randint(1, 9999)} {rng.choice(_STREETS)}",
            )
        )
    return customers


def cmd_seed(count: int) -> int:
    store = CustomerStore(get_settings().database_url)
    try:
        print("Seeding database...")
        print(f"Creating {count} customers...")
        store.create_many(fake_customers(count))
        print("Seeding completed.")
    finally:
        store.close()
    return 0


def cmd_clean_customers() -> int:
    store = CustomerStore(get_settings().database_url)
    try:
        print("Deleting all customers...")
        removed = store.delete_all()
        print(f"All customers deleted ({removed}).")
    finally:
        store.close()
    return 0


def cmd_create_user(email: str, password: Optional[str] = None) -> int:
    """Create a login account. Prompts for the password when not given."""
    if password is None:
        password = getpass.getpass("Password: ")
        if getpass.getpass("Confirm password: ") != password:
            print("  [!] Passwords do not match.")
            return 1
    try:
        form = RegisterForm(email=email, password=password)
    except ValidationError as exc:
        print(f"  [!] {first_error(exc)}")
        return 1

    store = UserStore(get_settings().database_url)
    try:
        result = register(store, form.email, form.password)
    finally:
        store.close()
    if result.error is not None or result.user is None:
        print(f"  [!] {result.error}")
        return 1
    print(f"Created user {result.user.email} ({result.user.id})")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="crudadmin",
        description="Maintenance commands for the CrudAdmin database.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py seed --count 100
  python main.py clean-customers
  python main.py create-user admin@example.com
        """,
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    seed = sub.add_parser("seed", help="Insert generated customers")
    seed.add_argument(
        "--count",
        type=int,
        default=100,
        metavar="N",
        help="Number of customers to create (default: 100)",
    )
    sub.add_parser("clean-customers", help="Delete every customer")
    create_user = sub.add_parser("create-user", help="Create a login account")
    create_user.add_argument("email", metavar="EMAIL", help="Email address for the new account")

    args = parser.parse_args(argv)

    if args.command == "seed":
        if args.count < 1:
            parser.error("--count must be at least 1")
        return cmd_seed(args.count)
    if args.command == "clean-customers":
        return cmd_clean_customers()
    if args.command == "create-user":
        return cmd_create_user(args.email)

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
