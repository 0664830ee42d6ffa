"""
LAN transfer engine.

Reference ``TransferEngine`` that moves a single file between two peers over
a direct asyncio TCP stream.

Sender side: ``begin_send`` hashes the file, starts a listener on an
ephemeral port and returns a ticket carrying host, port, a random token, the
file name, size and SHA-256. Each peer that presents the token gets a JSON
header line followed by the raw file bytes.

Receiver side: ``begin_receive`` decodes the ticket, fetches the bytes into a
temporary file inside the destination directory, verifies size and checksum
and moves the file into place.
"""

import asyncio
import hashlib
import hmac
import os
import secrets
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Set

from common.constants import (
    CHUNK_SIZE, HASH_CHUNK_SIZE, CONNECT_TIMEOUT, IO_TIMEOUT, SHUTDOWN_TIMEOUT,
    PARTIAL_SUFFIX, MessageTypes
)
from common.protocol_definitions import (
    TicketInfo, encode_ticket, decode_ticket, create_fetch_message,
    create_file_header_message, create_error_message, encode_message, decode_message
)
from ticketdrop.engine.base import TransferEngine, EngineError, ProgressCallback
from ticketdrop.utils.logger import logger


@dataclass
class _Share:
    path: Path
    name: str
    size: int
    token: str
    sha256: str
    on_progress: ProgressCallback


class LanEngine(TransferEngine):
    """Direct TCP engine for peers on the same network."""

    def __init__(self, bind_host: str = '0.0.0.0', advertise_host: str = '127.0.0.1',
                 chunk_size: int = CHUNK_SIZE, connect_timeout: float = CONNECT_TIMEOUT,
                 io_timeout: float = IO_TIMEOUT):
        self.bind_host = bind_host
        self.advertise_host = advertise_host
        self.chunk_size = chunk_size
        self.connect_timeout = connect_timeout
        self.io_timeout = io_timeout

        self._server: Optional[asyncio.AbstractServer] = None
        self._share: Optional[_Share] = None
        self._preparing = False
        self._epoch = 0
        self._tasks: Set[asyncio.Task] = set()

    @property
    def is_sharing(self) -> bool:
        return self._server is not None

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------

    async def begin_send(self, path: str, on_progress: ProgressCallback) -> str:
        if self._server is not None or self._preparing:
            raise EngineError("Cannot share twice without disconnecting first")

        try:
            file_path = Path(path).resolve()
            if not file_path.exists():
                raise EngineError(f"File not found: {path}")
            if not file_path.is_file():
                raise EngineError(f"Not a file: {path}")
            size = file_path.stat().st_size
        except OSError as e:
            raise EngineError(f"Invalid file path: {e}") from e

        epoch = self._epoch
        task = asyncio.current_task()
        self._tasks.add(task)
        self._preparing = True
        try:
            logger.info(f"[ENGINE] Hashing {file_path.name} ({size} bytes)")
            digest = await self._hash_file(file_path, size, on_progress, epoch)

            token = secrets.token_urlsafe(16)
            share = _Share(file_path, file_path.name, size, token, digest, on_progress)
            try:
                server = await asyncio.start_server(
                    lambda r, w: self._serve_peer(r, w, share), self.bind_host, 0
                )
            except OSError as e:
                raise EngineError(f"Failed to start listener: {e}") from e

            if epoch != self._epoch:
                server.close()
                raise EngineError("Share cancelled")

            self._server = server
            self._share = share
        finally:
            self._preparing = False
            self._tasks.discard(task)

        port = self._server.sockets[0].getsockname()[1]
        logger.info(f"[ENGINE] Listening on {self.bind_host}:{port} for {share.name}")
        return encode_ticket(TicketInfo(
            host=self.advertise_host,
            port=port,
            token=share.token,
            name=share.name,
            size=share.size,
            sha256=share.sha256,
        ))

    async def _hash_file(self, path: Path, size: int, on_progress: ProgressCallback, epoch: int) -> str:
        loop = asyncio.get_running_loop()
        digest = hashlib.sha256()
        hashed = 0
        on_progress(0, size)
        try:
            with open(path, 'rb') as f:
                while True:
                    count = await loop.run_in_executor(None, self._hash_chunk, f, digest)
                    if epoch != self._epoch:
                        raise EngineError("Share cancelled")
                    if not count:
                        break
                    hashed += count
                    on_progress(hashed, size)
        except OSError as e:
            raise EngineError(f"Cannot read {path.name}: {e}") from e
        return digest.hexdigest()

    @staticmethod
    def _hash_chunk(f, digest) -> int:
        data = f.read(HASH_CHUNK_SIZE)
        digest.update(data)
        return len(data)

    @staticmethod
    def _write_chunk(f, digest, data: bytes):
        f.write(data)
        digest.update(data)

    async def _serve_peer(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter, share: _Share):
        """Answer one fetch request with the shared file."""
        task = asyncio.current_task()
        self._tasks.add(task)
        addr = writer.get_extra_info('peername')
        logger.info(f"[ENGINE] Peer connected from {addr}")

        try:
            line = await asyncio.wait_for(reader.readline(), timeout=self.io_timeout)
            try:
                request = decode_message(line)
            except ValueError:
                request = {}

            token = str(request.get('token', ''))
            if request.get('type') != MessageTypes.FETCH or not hmac.compare_digest(token, share.token):
                logger.warning(f"[ENGINE] Rejected fetch from {addr}: bad token")
                writer.write(encode_message(create_error_message("Ticket is not valid for this share")))
                await writer.drain()
                return

            writer.write(encode_message(create_file_header_message(share.name, share.size)))
            await writer.drain()

            loop = asyncio.get_running_loop()
            sent = 0
            share.on_progress(0, share.size)
            with open(share.path, 'rb') as f:
                while True:
                    data = await loop.run_in_executor(None, f.read, self.chunk_size)
                    if not data:
                        break
                    writer.write(data)
                    await asyncio.wait_for(writer.drain(), timeout=self.io_timeout)
                    sent += len(data)
                    share.on_progress(sent, share.size)

            logger.info(f"[ENGINE] Sent {share.name} to {addr} ({sent} bytes)")

        except asyncio.TimeoutError:
            logger.warning(f"[ENGINE] Transfer to {addr} timed out")
        except (ConnectionError, OSError) as e:
            logger.warning(f"[ENGINE] Transfer to {addr} failed: {e}")
        finally:
            self._tasks.discard(task)
            await self._close_writer(writer)

    # ------------------------------------------------------------------
    # Receiving
    # ------------------------------------------------------------------

    async def begin_receive(self, ticket: str, dest_dir: str, on_progress: ProgressCallback) -> str:
        try:
            info = decode_ticket(ticket)
        except ValueError as e:
            raise EngineError(f"Invalid ticket: {e}") from e

        dest = Path(dest_dir)
        if not dest.is_dir():
            raise EngineError(f"Not a directory: {dest_dir}")

        # Sanitize filename to prevent path traversal
        safe_name = os.path.basename(info.name.replace('\\', '/'))
        if not safe_name or safe_name in ('.', '..'):
            raise EngineError(f"Invalid file name in ticket: {info.name!r}")

        task = asyncio.current_task()
        self._tasks.add(task)
        try:
            return await self._fetch(info, dest, safe_name, on_progress)
        finally:
            self._tasks.discard(task)

    async def _fetch(self, info: TicketInfo, dest: Path, safe_name: str, on_progress: ProgressCallback) -> str:
        logger.info(f"[ENGINE] Connecting to {info.host}:{info.port}...")
        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(info.host, info.port),
                timeout=self.connect_timeout
            )
        except asyncio.TimeoutError as e:
            raise EngineError(f"Timed out connecting to {info.host}:{info.port}") from e
        except OSError as e:
            raise EngineError(f"Peer unreachable: {e}") from e

        part_path = dest / f".{safe_name}.{info.token[:8]}{PARTIAL_SUFFIX}"
        try:
            writer.write(encode_message(create_fetch_message(info.token)))
            await writer.drain()

            line = await asyncio.wait_for(reader.readline(), timeout=self.io_timeout)
            if not line:
                raise EngineError("Peer closed the connection")
            try:
                header = decode_message(line)
            except ValueError as e:
                raise EngineError("Malformed reply from peer") from e

            if header.get('type') == MessageTypes.ERROR:
                raise EngineError(header.get('message') or "Peer refused the ticket")
            size = header.get('size')
            if header.get('type') != MessageTypes.FILE_HEADER or size != info.size:
                raise EngineError("Peer is not sharing the file this ticket describes")

            loop = asyncio.get_running_loop()
            digest = hashlib.sha256()
            received = 0
            on_progress(0, size)
            with open(part_path, 'wb') as f:
                while received < size:
                    data = await asyncio.wait_for(
                        reader.read(min(self.chunk_size, size - received)),
                        timeout=self.io_timeout
                    )
                    if not data:
                        break
                    await loop.run_in_executor(None, self._write_chunk, f, digest, data)
                    received += len(data)
                    on_progress(received, size)

            if received != size:
                raise EngineError(f"Incomplete download: {received}/{size} bytes")
            if digest.hexdigest() != info.sha256:
                raise EngineError("Checksum mismatch, file discarded")

            final_path = self._unique_path(dest / safe_name)
            os.replace(part_path, final_path)
            logger.info(f"[ENGINE] Download complete: {final_path}")
            return str(final_path)

        except asyncio.TimeoutError as e:
            raise EngineError("Transfer timed out") from e
        except (ConnectionError, OSError) as e:
            raise EngineError(f"Transfer failed: {e}") from e
        finally:
            part_path.unlink(missing_ok=True)
            await self._close_writer(writer)

    @staticmethod
    def _unique_path(path: Path) -> Path:
        """Return ``path`` or the first ``name (n).ext`` variant that does not exist."""
        if not path.exists():
            return path
        n = 1
        while True:
            candidate = path.with_name(f"{path.stem} ({n}){path.suffix}")
            if not candidate.exists():
                return candidate
            n += 1

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def shutdown(self) -> None:
        self._epoch += 1
        server, self._server = self._server, None
        self._share = None

        if server is not None:
            logger.info("[ENGINE] Shutting down share")
            server.close()

        current = asyncio.current_task()
        tasks = [t for t in self._tasks if t is not current and not t.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.wait(tasks, timeout=SHUTDOWN_TIMEOUT)

        if server is not None:
            try:
                await asyncio.wait_for(server.wait_closed(), timeout=SHUTDOWN_TIMEOUT)
            except asyncio.TimeoutError:
                logger.warning("[ENGINE] Listener did not close within timeout")

    @staticmethod
    async def _close_writer(writer: asyncio.StreamWriter):
        writer.close()
        try:
            await asyncio.wait_for(writer.wait_closed(), timeout=SHUTDOWN_TIMEOUT)
        except (asyncio.TimeoutError, ConnectionError, OSError) as e:
            logger.debug(f"[ENGINE] Error closing connection: {e}")
