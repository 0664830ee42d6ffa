"""
Transfer engine package.

Handles:
- The engine interface consumed by the session core
- The engine thread hosting the asyncio loop
- The direct LAN reference engine
"""
