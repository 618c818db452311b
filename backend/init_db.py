# init_db.py

import argparse
import logging
import sys

from sqlalchemy import inspect

from tempchat.core.config import DATA_DIR
from tempchat.core.errors import ChatError
from tempchat.core.security import hash_password
from tempchat.core.user import create_user
from tempchat.infra.migrate_json import migrate_legacy_json
from tempchat.infra.sqlite import db_session, engine, init_db
from tempchat.utils.logger import setup_logger

logger = logging.getLogger("init_db")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Create the TempChat schema and import legacy data")
    parser.add_argument("--data-dir", default=str(DATA_DIR),
                        help="directory holding users.json / messages.json")
    parser.add_argument("--skip-migration", action="store_true",
                        help="do not import legacy JSON files")
    parser.add_argument("--create-user", nargs=2, metavar=("USERNAME", "PASSWORD"),
                        help="add an account after setup")
    parser.add_argument("--admin", action="store_true", help="make --create-user an admin")
    args = parser.parse_args(argv)

    setup_logger()
    init_db()

    if not args.skip_migration:
        with db_session() as db:
            migrate_legacy_json(db, args.data_dir)

    if args.create_user:
        username, password = args.create_user
        try:
            with db_session() as db:
                create_user(db, username, hash_password(password), is_admin=args.admin)
        except ChatError as e:
            logger.error("Could not create %s: %s", username, e.message)
            return 1

    for table in inspect(engine).get_table_names():
        logger.info("Table ready: %s", table)
    return 0


if __name__ == "__main__":
    sys.exit(main())
