#!/usr/bin/env python3
"""
Public Folder Migration Tool - Main CLI Entry Point

Inventories the public folders of an on-premises mail service, asks the
operator to confirm, migrates every folder to the cloud destination one at a
time, and saves a self-contained HTML report of the run.
"""

import argparse
import logging
import sys
from typing import List, Optional

from config_loader import ConfigLoader, get_nested
from logger import LOGGER_NAME, RunLog, log_config, setup_logging
from orchestrator import MigrationOrchestrator

__version__ = "1.0.0"


def create_argument_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for CLI."""
    parser = argparse.ArgumentParser(
        description="Migrate public folders from an on-premises mail service to the cloud",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Inventory, confirm, migrate and report
  python migrate.py --config config.yaml

  # Inventory and summary only
  python migrate.py --dry-run

  # Name the batch and write the report without asking where
  python migrate.py --batch-label Wave1 --report-path ./reports/wave1.html

  # Verbose logging
  python migrate.py -v
        """
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    parser.add_argument(
        '--config',
        type=str,
        default='config.yaml',
        help='Path to configuration YAML file (default: config.yaml)'
    )

    parser.add_argument(
        '--batch-label',
        type=str,
        help='Name of the migration batch (default: PFMigration_<timestamp>)'
    )

    parser.add_argument(
        '--dry-run',
        action=argparse.BooleanOptionalAction,
        default=None,
        help='Collect and summarize the inventory without migrating'
    )

    parser.add_argument(
        '--top',
        type=int,
        help='Number of largest folders shown in the summary'
    )

    parser.add_argument(
        '--report-path',
        type=str,
        help='Write the report here instead of asking for a location'
    )

    parser.add_argument(
        '--no-open',
        action='store_true',
        help='Do not offer to open the report after saving it'
    )

    parser.add_argument(
        '--log-file',
        type=str,
        help='Also write the console log to this file'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='count',
        default=0,
        help='Increase verbosity (-v for DEBUG)'
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    setup_logging(verbosity=args.verbose)
    logger = logging.getLogger(LOGGER_NAME)

    try:
        logger.debug(f"Loading configuration from {args.config}")
        config = ConfigLoader.load(args.config)
        config = ConfigLoader.merge_with_args(config, args)
        ConfigLoader.validate(config)

        setup_logging(
            verbosity=args.verbose,
            log_file=get_nested(config, 'logging.file'),
            log_format=get_nested(config, 'logging.format'),
            date_format=get_nested(config, 'logging.date_format'),
            level=get_nested(config, 'logging.level')
        )
        log_config(config)

        orchestrator = MigrationOrchestrator.from_config(config, run_log=RunLog())
        summary = orchestrator.run()
        return summary.exit_code

    except FileNotFoundError as e:
        logger.error(f"File not found: {e}")
        return 1
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        return 1
    except KeyboardInterrupt:
        print("\nMigration interrupted by user", file=sys.stderr)
        return 130
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=args.verbose > 0)
        return 1


if __name__ == "__main__":
    sys.exit(main())
