"""
bcm-log-monitor: one monitoring pass over /var, meant to run from cron.

Exit codes: 0 when the run completed (whatever the usage), 1 on a
configuration error, 2 when another instance holds the lock.
"""

import argparse
import sys
from typing import List, Optional

from bcmguard import __version__
from bcmguard.config import ConfigError, load_config
from bcmguard.monitor import MonitorRunner, MonitorStatus
from bcmguard.system import HostSystemControl, HostSystemFacts

from .common import setup_logging

EXIT_CONFIG_ERROR = 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bcm-log-monitor",
        description="Report /var usage, raise threshold alerts and clean up old reports",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Cron entry, every 30 minutes
  */30 * * * * root /usr/local/bin/bcm-log-monitor /etc/bcmguard/bcmguard.yaml
        """
    )
    parser.add_argument('config', nargs='?', default=None,
                        help='Path to configuration file (default: $BCMGUARD_CONFIG or configs/bcmguard.yaml)')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Enable verbose logging')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    runner = MonitorRunner(
        config=config,
        facts=HostSystemFacts(),
        control=HostSystemControl(),
        interactive=sys.stdout.isatty(),
    )
    outcome = runner.run()

    if outcome.status == MonitorStatus.ALREADY_RUNNING:
        print(f"Another bcm-log-monitor instance is running (lock: {config.lock_file})", file=sys.stderr)
    return outcome.exit_code


if __name__ == "__main__":
    sys.exit(main())
