#!/usr/bin/env python3
"""
TicketDrop Client - Main Entry Point

Peer-to-peer file sharing with copy-pasteable tickets.

Usage:
    python main_client.py                                  # GUI (default)
    python main_client.py --send PATH                      # share a file headless
    python main_client.py --receive TICKET [--dest DIR]    # fetch a file headless

Options:
    --host HOST              Address the engine listens on
    --advertise-host HOST    Address written into tickets
    --debug                  Verbose logging
"""

import sys
import os
import argparse
import asyncio
import logging

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from common.constants import PROGRESS_LOG_INTERVAL


class ProgressPrinter:
    """Progress callback that logs roughly every PROGRESS_LOG_INTERVAL bytes."""

    def __init__(self, tag: str):
        self.tag = tag
        self.last_logged = -1

    def __call__(self, done: int, total: int):
        from ticketdrop.utils.logger import logger

        finished = done >= total
        if not finished and self.last_logged >= 0 and done - self.last_logged < PROGRESS_LOG_INTERVAL:
            return
        self.last_logged = done
        percent = (done / total * 100) if total > 0 else 100.0
        logger.info(f"[{self.tag}] Progress: {done}/{total} bytes ({min(percent, 100.0):.1f}%)")
        if finished:
            self.last_logged = -1


async def send_headless(engine, path: str) -> int:
    """Share ``path`` and keep serving until interrupted."""
    from ticketdrop.engine.base import EngineError
    from ticketdrop.utils.logger import logger

    try:
        ticket = await engine.begin_send(path, ProgressPrinter("SEND"))
    except EngineError as e:
        logger.log_error("share", e)
        return 1

    print(f"\nTicket:\n{ticket}\n")
    logger.info("[INFO] Sharing - press Ctrl+C to stop")
    try:
        await asyncio.Event().wait()
    finally:
        await engine.shutdown()
    return 0


async def receive_headless(engine, ticket: str, dest_dir: str) -> int:
    """Redeem ``ticket`` into ``dest_dir``."""
    from ticketdrop.engine.base import EngineError
    from ticketdrop.utils.logger import logger

    os.makedirs(dest_dir, exist_ok=True)
    try:
        saved = await engine.begin_receive(ticket, dest_dir, ProgressPrinter("RECEIVE"))
    except EngineError as e:
        logger.log_error("receive", e)
        return 1
    finally:
        await engine.shutdown()

    logger.info(f"[SUCCESS] Saved to {saved}")
    return 0


def run_gui_client(config) -> int:
    """Run the GUI client."""
    try:
        from ticketdrop.ui.client_gui import run_gui
    except ImportError:
        print("[ERROR] PyQt6 not installed. Install with: pip install PyQt6")
        sys.exit(1)

    return run_gui(config)


def run_cli_client(config, args) -> int:
    """Run a single headless transfer."""
    from ticketdrop.engine.lan_engine import LanEngine
    from ticketdrop.utils.logger import logger

    engine = LanEngine(**config.get_engine_settings())
    try:
        if args.send:
            return asyncio.run(send_headless(engine, args.send))
        return asyncio.run(receive_headless(engine, args.receive, args.dest or config.default_download_dir))
    except KeyboardInterrupt:
        logger.info("[INFO] Interrupted by user")
        return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='TicketDrop - peer-to-peer file sharing')
    parser.add_argument('--host', type=str, default=None,
                        help='Address the transfer engine listens on (default: 0.0.0.0)')
    parser.add_argument('--advertise-host', type=str, default=None,
                        help='Address written into tickets (default: auto-detect)')
    parser.add_argument('--debug', action='store_true',
                        help='Enable debug logging')

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument('--send', type=str, metavar='PATH',
                      help='Share a file without the GUI')
    mode.add_argument('--receive', type=str, metavar='TICKET',
                      help='Redeem a ticket without the GUI')
    parser.add_argument('--dest', type=str, default=None,
                        help='Destination directory for --receive (default: ~/downloads)')
    return parser


def main(argv=None):
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.dest and not args.receive:
        parser.error('--dest requires --receive')

    from ticketdrop.utils.config import ClientConfig
    from ticketdrop.utils.logger import logger

    config = ClientConfig.from_env()
    if args.host:
        config.bind_host = args.host
    if args.advertise_host:
        config.advertise_host = args.advertise_host
    if args.debug:
        config.log_level = logging.DEBUG
    logger.set_level(config.log_level)

    if args.send or args.receive:
        sys.exit(run_cli_client(config, args))
    sys.exit(run_gui_client(config))


if __name__ == "__main__":
    main()
