"""
Shared constants for TicketDrop.

This module contains all constants used across the session core, the engine
and the user interface.
"""

from enum import Enum

# Network Configuration
DEFAULT_BIND_HOST = '0.0.0.0'
DEFAULT_ADVERTISE_HOST = None  # auto-detect
PROBE_ADDRESS = ('10.255.255.255', 1)

# Buffer Sizes
CHUNK_SIZE = 64 * 1024
HASH_CHUNK_SIZE = 1024 * 1024
PROGRESS_LOG_INTERVAL = 1024 * 1024  # Log progress every 1MB

# Timeouts
CONNECT_TIMEOUT = 10.0  # seconds
IO_TIMEOUT = 30.0  # seconds
SHUTDOWN_TIMEOUT = 2.0  # seconds
ENGINE_STOP_WAIT_MS = 3000

# Session
GRACE_DELAY_MS = 500  # completion animation window
DEFAULT_PROGRESS_TOTAL = 100

# Tickets
TICKET_PREFIX = 'td1'

# File Transfer
DOWNLOAD_DIR = 'downloads'
PARTIAL_SUFFIX = '.part'

# Accepted file types for the picker
FILE_FILTER_EXTENSIONS = [
    'txt', 'jpg', 'jpeg', 'png', 'gif', 'pdf', 'doc', 'docx', 'xls', 'xlsx',
    'csv', 'mp4', 'mp3', 'zip', 'rar', '7z', 'tar', 'gz',
]


class Role(Enum):
    """Which transfer flow owns the session."""
    IDLE = 'idle'
    SENDING = 'sending'
    RECEIVING = 'receiving'


# Message Types
class MessageTypes:
    # Receiver to Sender
    FETCH = 'fetch'

    # Sender to Receiver
    FILE_HEADER = 'file_header'
    ERROR = 'error'
