"""
TicketDrop client package.

This package contains all client-side functionality including:
- Transfer session core (state store, send/receive flows)
- Transfer engine and its worker thread
- User interface
- Configuration and utilities
"""

__version__ = "0.1.0"
