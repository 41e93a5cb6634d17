"""
peggylsp – command line entry point.

Usage
-----
    peggylsp                     # stdio mode (default, for use with editors)
    peggylsp --tcp 2087          # listen on TCP port (useful for debugging)
    peggylsp --debounce-ms 500   # initial validation delay, until the client
                                 # sends its own configuration
"""
from __future__ import annotations

import argparse
import logging
import sys


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog='peggylsp',
        description='Language Server (LSP) for Peggy grammar files (.peggy, .pegjs).',
    )
    mode = p.add_mutually_exclusive_group()
    mode.add_argument(
        '--stdio',
        action='store_true',
        default=False,
        help='Communicate over stdin/stdout (default when no flag given)',
    )
    mode.add_argument(
        '--tcp',
        metavar='PORT',
        type=int,
        default=None,
        help='Listen for connections on 127.0.0.1:PORT instead of stdio',
    )
    p.add_argument(
        '--debounce-ms',
        metavar='MS',
        type=int,
        default=None,
        help='Delay before revalidating a changed grammar (default: 200)',
    )
    p.add_argument(
        '--log-level',
        metavar='LEVEL',
        default='WARNING',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='Logging level written to stderr (default: WARNING)',
    )
    p.add_argument(
        '--version',
        action='store_true',
        default=False,
        help='Print the peggylsp version and exit',
    )
    return p


def peggylsp(argv: list[str] | None = None) -> None:
    """Entry point for the ``peggylsp`` command."""
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format='%(levelname)s %(name)s: %(message)s',
        stream=sys.stderr,
    )

    if args.version:
        from peggylsp import __version__
        print(f'peggylsp {__version__}')
        sys.exit(0)

    from peggylsp.server import server

    if args.debounce_ms is not None:
        server.apply_settings(server.settings.updated({'debounceMS': args.debounce_ms}))

    if args.tcp is not None:
        server.start_tcp('127.0.0.1', args.tcp)
    else:
        server.start_io()


if __name__ == '__main__':
    peggylsp()
