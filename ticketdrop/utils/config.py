"""
Client configuration module.

This module handles client-side configuration settings.
"""

import logging
import os
import socket
from pathlib import Path
from typing import Optional

from common.constants import (
    DEFAULT_BIND_HOST, DEFAULT_ADVERTISE_HOST, PROBE_ADDRESS, CHUNK_SIZE,
    CONNECT_TIMEOUT, IO_TIMEOUT, GRACE_DELAY_MS, DOWNLOAD_DIR
)
from ticketdrop.utils.logger import logger


class ClientConfig:
    """Client configuration class."""

    def __init__(self, bind_host: str = DEFAULT_BIND_HOST, advertise_host: Optional[str] = DEFAULT_ADVERTISE_HOST):
        self.bind_host = bind_host
        self.advertise_host = advertise_host

        # File transfer settings
        self.chunk_size = CHUNK_SIZE
        self.default_download_dir = str(Path.home() / DOWNLOAD_DIR)

        # Connection settings
        self.connect_timeout = CONNECT_TIMEOUT  # seconds
        self.io_timeout = IO_TIMEOUT  # seconds

        # Session settings
        self.grace_delay_ms = GRACE_DELAY_MS
        self.log_level = logging.INFO

    @classmethod
    def from_env(cls) -> 'ClientConfig':
        """Build a configuration from TICKETDROP_* environment variables."""
        config = cls(
            bind_host=os.environ.get('TICKETDROP_BIND_HOST', DEFAULT_BIND_HOST),
            advertise_host=os.environ.get('TICKETDROP_ADVERTISE_HOST') or DEFAULT_ADVERTISE_HOST,
        )
        download_dir = os.environ.get('TICKETDROP_DOWNLOAD_DIR')
        if download_dir:
            config.default_download_dir = download_dir
        grace = os.environ.get('TICKETDROP_GRACE_MS')
        if grace:
            try:
                config.grace_delay_ms = max(0, int(grace))
            except ValueError:
                logger.warning(f"[CONFIG] Ignoring invalid TICKETDROP_GRACE_MS={grace!r}")
        return config

    def resolve_advertise_host(self) -> str:
        """Address written into tickets; detected from the default route when unset."""
        if self.advertise_host:
            return self.advertise_host
        if self.bind_host not in ('0.0.0.0', '', '::'):
            return self.bind_host

        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            # No packet is sent; connect() only selects the outbound interface
            sock.connect(PROBE_ADDRESS)
            return sock.getsockname()[0]
        except OSError:
            return '127.0.0.1'
        finally:
            sock.close()

    def get_engine_settings(self):
        """Get engine settings."""
        return {
            'bind_host': self.bind_host,
            'advertise_host': self.resolve_advertise_host(),
            'chunk_size': self.chunk_size,
            'connect_timeout': self.connect_timeout,
            'io_timeout': self.io_timeout
        }
