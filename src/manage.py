"""Commerce database management CLI.

Creates or drops the relational schema for every aggregate and projection of
the commerce domain. Only does anything when a SQL provider is configured
(``PROTEAN_ENV=production``).

Usage:
    python src/manage.py setup-db   # Create all tables
    python src/manage.py drop-db    # Drop all tables
"""

import argparse
import sys


def _initialized_domain():
    from commerce.domain import commerce

    commerce.init()
    return commerce


def setup_database():
    from commerce.utils.db import setup_db

    domain = _initialized_domain()
    print(f"Creating {domain.name} database schema...")
    setup_db(domain)
    print("Done.")


def drop_database():
    from commerce.utils.db import drop_db

    domain = _initialized_domain()
    print(f"Dropping {domain.name} database schema...")
    drop_db(domain)
    print("Done.")


def main():
    parser = argparse.ArgumentParser(description="Commerce database management")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
