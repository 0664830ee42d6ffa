"""
Protocol definitions for TicketDrop.

This module defines the data structures shared by the session core and the
engine, the ticket format, and the handshake messages exchanged between a
sending and a receiving peer.
"""

import base64
import binascii
import json
from dataclasses import dataclass
from typing import Dict, Any, Optional

from common.constants import DEFAULT_PROGRESS_TOTAL, TICKET_PREFIX, MessageTypes, Role


@dataclass(frozen=True)
class Progress:
    """Last known progress sample."""
    done: int = 0
    total: int = DEFAULT_PROGRESS_TOTAL

    @property
    def percent(self) -> float:
        """Displayed percentage, clamped to [0, 100]."""
        if self.total <= 0:
            return 0.0
        return max(0.0, min(100.0, self.done / self.total * 100))

    @property
    def is_complete(self) -> bool:
        return self.done >= self.total


@dataclass
class TransferResult:
    """Outcome of a share or receive attempt, delivered to the UI."""
    role: Role
    success: bool
    error: Optional[str] = None
    ticket: Optional[str] = None
    path: Optional[str] = None


@dataclass(frozen=True)
class TicketInfo:
    """Everything a receiver needs to fetch a shared file."""
    host: str
    port: int
    token: str
    name: str
    size: int
    sha256: str


def encode_ticket(info: TicketInfo) -> str:
    """Serialize ticket info into an opaque, copy-pasteable string."""
    payload = json.dumps({
        "host": info.host,
        "port": info.port,
        "token": info.token,
        "name": info.name,
        "size": info.size,
        "sha256": info.sha256,
    }, separators=(',', ':')).encode('utf-8')
    encoded = base64.urlsafe_b64encode(payload).decode('ascii').rstrip('=')
    return TICKET_PREFIX + encoded


def decode_ticket(ticket: str) -> TicketInfo:
    """
    Parse a ticket string.

    Raises:
        ValueError: if the ticket is malformed.
    """
    ticket = ticket.strip()
    if not ticket.startswith(TICKET_PREFIX):
        raise ValueError("unknown ticket format")

    body = ticket[len(TICKET_PREFIX):]
    body += '=' * (-len(body) % 4)
    try:
        data = json.loads(base64.urlsafe_b64decode(body.encode('ascii')))
    except (binascii.Error, UnicodeError, ValueError) as e:
        raise ValueError(f"undecodable ticket: {e}") from e

    if not isinstance(data, dict):
        raise ValueError("ticket payload is not an object")

    try:
        info = TicketInfo(
            host=str(data['host']),
            port=int(data['port']),
            token=str(data['token']),
            name=str(data['name']),
            size=int(data['size']),
            sha256=str(data['sha256']),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise ValueError(f"incomplete ticket: {e}") from e

    if not 0 < info.port < 65536 or info.size < 0:
        raise ValueError("ticket fields out of range")
    return info


def create_fetch_message(token: str) -> Dict[str, Any]:
    """Create the receiver's fetch request."""
    return {
        "type": MessageTypes.FETCH,
        "token": token
    }


def create_file_header_message(name: str, size: int) -> Dict[str, Any]:
    """Create the sender's file header."""
    return {
        "type": MessageTypes.FILE_HEADER,
        "name": name,
        "size": size
    }


def create_error_message(error: str) -> Dict[str, Any]:
    """Create an error message."""
    return {
        "type": MessageTypes.ERROR,
        "message": error
    }


def encode_message(message: Dict[str, Any]) -> bytes:
    """Frame a message as one JSON line."""
    return json.dumps(message).encode('utf-8') + b'\n'


def decode_message(line: bytes) -> Dict[str, Any]:
    """
    Parse one JSON line.

    Raises:
        ValueError: if the line is not a JSON object.
    """
    message = json.loads(line.decode('utf-8').strip())
    if not isinstance(message, dict):
        raise ValueError("message is not an object")
    return message
