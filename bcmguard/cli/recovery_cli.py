"""
bcm-recovery: recover a head node whose /var partition filled up.

Runs Pre-flight, Backup & Reclaim, Service Restoration and Preventive
Configuration in order and stops at the first failure.
"""

import argparse
import sys
from typing import List, Optional

from bcmguard import __version__
from bcmguard.config import ConfigError, load_config, resolve_config_path
from bcmguard.recovery import EXIT_FATAL, OutcomeStatus, RecoveryOrchestrator, RunOutcome
from bcmguard.reporting import ReportSink, RunContext
from bcmguard.system import ConsoleConfirmation, HostSystemControl, HostSystemFacts

from .common import setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bcm-recovery",
        description="Recover a BCM head node from a full /var partition",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Full recovery with the default configuration
  sudo bcm-recovery

  # Truncate the syslog without backing it up first
  sudo bcm-recovery --skip-backup /etc/bcmguard/bcmguard.yaml
        """
    )
    parser.add_argument('config', nargs='?', default=None,
                        help='Path to configuration file (default: $BCMGUARD_CONFIG or configs/bcmguard.yaml)')
    parser.add_argument('--skip-backup', action='store_true',
                        help='Truncate the syslog without copying it first (data is lost)')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Enable verbose logging')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser


def print_outcome(outcome: RunOutcome) -> None:
    if outcome.status == OutcomeStatus.SUCCESS:
        print("Recovery completed successfully.")
    elif outcome.status == OutcomeStatus.ABORTED:
        print(f"Recovery aborted by operator during {outcome.phase.value}: {outcome.reason}")
    else:
        print(f"Recovery FAILED in phase '{outcome.phase.value}': {outcome.reason}")
    print(f"Log file: {outcome.log_file}")
    if outcome.backup_dir:
        print(f"Backup directory: {outcome.backup_dir}")


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_FATAL

    context = RunContext.for_recovery(config)
    orchestrator = RecoveryOrchestrator(
        config=config,
        facts=HostSystemFacts(),
        control=HostSystemControl(),
        confirm=ConsoleConfirmation(),
        context=context,
        sink=ReportSink.for_context(context),
        config_path=str(resolve_config_path(args.config)),
    )
    if not sys.stdin.isatty():
        print("stdin is not a terminal: confirmation prompts will be declined", file=sys.stderr)

    outcome = orchestrator.run(skip_backup=args.skip_backup)
    print_outcome(outcome)
    return outcome.exit_code


if __name__ == "__main__":
    sys.exit(main())
