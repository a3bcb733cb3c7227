#!/usr/bin/env python3
"""Create the tables, the predefined roles and the demo users in the configured database."""
import argparse
import logging

from common.database import Base, SessionLocal, engine
from common.roles import RoleManager
from common.seed import seed_demo_users, seed_predefined_roles
from common.users import UserManager


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--skip-users", action="store_true", help="only seed the role catalog")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)s | %(name)s | %(message)s")
    Base.metadata.create_all(bind=engine)

    with SessionLocal() as db:
        role_ids = seed_predefined_roles(db, RoleManager())
        if not args.skip_users:
            seed_demo_users(db, UserManager(), role_ids)

    print(f"Seeded {len(role_ids)} roles.")


if __name__ == "__main__":
    main()
