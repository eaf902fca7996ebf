#!/usr/bin/env python3
"""
Icon auto-assignment management script

Usage:
    python scripts/manage_icons.py init-db                          # Create missing tables
    python scripts/manage_icons.py import-rules                     # Import rules from default CSV
    python scripts/manage_icons.py import-rules --rules-file x.csv  # Import rules from a file
    python scripts/manage_icons.py resync --company 3               # Re-evaluate every icon of company 3
"""
import sys
import os

# Add project root to Python path (so `import client_icons` works without install)
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import argparse
import logging

from client_icons.core.config import Config
from client_icons.core.exceptions import AppException
from client_icons.core.logging import setup_logging
from client_icons.importers import IconRuleImporter
from client_icons.services import BackgroundTaskRunner, DatabaseService, IconRuleEngine

logger = logging.getLogger("client_icons.scripts.manage_icons")


# ------------------------
# CLI arguments
# ------------------------
def parse_arguments(argv=None):
    parser = argparse.ArgumentParser(
        description="Manage icon auto-assignment rules.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s init-db
  %(prog)s import-rules --rules-file db_files/rules/icon_rules.csv
  %(prog)s resync --company 3 --timeout 600
        """
    )

    parser.add_argument(
        "--database-url",
        default=None,
        help="Database URL (default: DATABASE_URL from environment)"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        default=Config.app.VERBOSE,
        help="Technical logging"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-db", help="Create missing tables")

    import_parser = subparsers.add_parser("import-rules", help="Import icon rules from CSV")
    import_parser.add_argument(
        "--rules-file",
        default=Config.paths.ICON_RULES_CSV_PATH,
        help="Path to icon rules CSV"
    )
    import_parser.add_argument(
        "--no-reevaluate",
        action="store_true",
        help="Do not re-evaluate clients for changed icons"
    )

    resync_parser = subparsers.add_parser("resync", help="Re-evaluate every icon of a company")
    resync_parser.add_argument("--company", type=int, required=True, help="Company id")
    resync_parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds to wait for the walks; queued walks are cancelled after it"
    )

    return parser.parse_args(argv)


# ------------------------
# Commands
# ------------------------
def init_db(database: DatabaseService):
    database.create_all()
    logger.info("✅ Database tables verified/created")


def import_rules(database: DatabaseService, engine: IconRuleEngine, rules_file: str, reevaluate: bool):
    if not os.path.exists(rules_file):
        logger.warning(f"⚠️ Icon rules CSV not found: {rules_file}")
        return

    with database.get_session() as session:
        changed = IconRuleImporter(session, engine.evaluator).import_from_csv(rules_file)

    if not reevaluate:
        logger.info(f"Skipping re-evaluation of {len(changed)} changed icons")
        return

    for icon in changed:
        engine.reevaluate_icon_for_all_clients(icon)


def resync(engine: IconRuleEngine, company_id: int):
    scheduled = engine.resync_company(company_id)
    logger.info(f"📋 {scheduled} icon walks scheduled for company {company_id}")


# ------------------------
# Main execution
# ------------------------
def main(argv=None) -> int:
    args = parse_arguments(argv)
    setup_logging(args.verbose)

    try:
        Config.validate()
    except AppException as e:
        logger.error(f"❌ {e.message}")
        return 2

    logger.debug(Config.summary())

    database = DatabaseService(args.database_url)
    runner = BackgroundTaskRunner()
    engine = IconRuleEngine(database, runner=runner)

    try:
        if args.command == "init-db":
            init_db(database)
        elif args.command == "import-rules":
            import_rules(database, engine, args.rules_file, reevaluate=not args.no_reevaluate)
        elif args.command == "resync":
            resync(engine, args.company)

        if runner.pending_count:
            logger.info(f"⏳ Waiting for {runner.pending_count} background walks...")
            if not runner.wait_for_pending(getattr(args, "timeout", None)):
                logger.warning("⚠️ Timeout reached: cancelling walks that have not started")
                runner.shutdown(wait=True, cancel_pending=True)

        logger.info("✅ Done")
        return 0

    except AppException as e:
        logger.error(f"❌ {e.message}")
        return 1

    finally:
        engine.shutdown(wait=True)
        database.dispose()


if __name__ == "__main__":
    sys.exit(main())
