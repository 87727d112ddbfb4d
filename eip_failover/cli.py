"""Command-line interface for EIP failover"""

import signal
import sys
import argparse
from typing import Optional

from . import __version__
from .config import Config
from .failover import EIPFailover
from .exceptions import EIPFailoverError


def create_parser() -> argparse.ArgumentParser:
    """Create and configure argument parser"""
    parser = argparse.ArgumentParser(
        prog='eip-failover',
        description='Claim one Elastic IP from a Consul-managed pool and bind it to this instance',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Compete for an address under the default prefix
  %(prog)s

  # Compete for an address under another prefix
  %(prog)s --prefix haproxy/eip/

  # Keep the slot locked until SIGTERM
  %(prog)s --hold
        """
    )

    parser.add_argument(
        '--prefix',
        default=EIPFailover.DEFAULT_PREFIX,
        help=f'Consul key prefix (default: {EIPFailover.DEFAULT_PREFIX})'
    )

    parser.add_argument(
        '-c', '--config',
        default=Config.DEFAULT_CONFIG_PATH,
        help=f'Path to optional configuration file (default: {Config.DEFAULT_CONFIG_PATH})'
    )

    parser.add_argument(
        '--hold',
        action='store_true',
        help='Keep the slot lock alive after binding and release it on SIGTERM/SIGINT'
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    return parser


def _raise_interrupt(signum, frame):
    raise KeyboardInterrupt


def main(argv: Optional[list] = None) -> int:
    """
    Main entry point for CLI

    Args:
        argv: Optional command line arguments (for testing)

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        config = Config(args.config)
        failover = EIPFailover(config, prefix=args.prefix)
        failover.execute_failover()

        if args.hold:
            signal.signal(signal.SIGTERM, _raise_interrupt)
            failover.hold()
        return 0

    except EIPFailoverError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return 130
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
