#!/usr/bin/env python3
"""
Integration tests for the LAN engine over localhost.
"""

import asyncio
import dataclasses
import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from common.protocol_definitions import encode_ticket, decode_ticket
from ticketdrop.engine.base import EngineError
from ticketdrop.engine.lan_engine import LanEngine


class Recorder:
    """Collects (done, total) samples."""

    def __init__(self):
        self.samples = []

    def __call__(self, done, total):
        self.samples.append((done, total))


class TestLanEngine(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.root = Path(self.tmp.name)
        self.dest = self.root / "incoming"
        self.dest.mkdir()
        self.sender = LanEngine(bind_host='127.0.0.1', advertise_host='127.0.0.1', chunk_size=4096)
        self.receiver = LanEngine(bind_host='127.0.0.1', advertise_host='127.0.0.1', chunk_size=4096)

    async def asyncTearDown(self):
        await self.sender.shutdown()
        await self.receiver.shutdown()
        self.tmp.cleanup()

    def make_file(self, name="report.pdf", size=100_000) -> Path:
        path = self.root / name
        path.write_bytes(os.urandom(size))
        return path

    async def wait_for(self, predicate, timeout=2.0):
        deadline = asyncio.get_running_loop().time() + timeout
        while not predicate():
            if asyncio.get_running_loop().time() > deadline:
                self.fail("condition not met in time")
            await asyncio.sleep(0.02)

    async def test_send_and_receive(self):
        source = self.make_file()
        size = source.stat().st_size
        sent = Recorder()
        received = Recorder()

        ticket = await self.sender.begin_send(str(source), sent)
        self.assertTrue(self.sender.is_sharing)
        self.assertEqual(decode_ticket(ticket).name, "report.pdf")

        saved = await self.receiver.begin_receive(ticket, str(self.dest), received)

        self.assertEqual(Path(saved), self.dest / "report.pdf")
        self.assertEqual(Path(saved).read_bytes(), source.read_bytes())
        self.assertEqual(received.samples[0], (0, size))
        self.assertEqual(received.samples[-1], (size, size))
        dones = [done for done, _ in received.samples]
        self.assertEqual(dones, sorted(dones))

        # hashing phase plus the peer download both reach the total
        await self.wait_for(lambda: sent.samples.count((size, size)) >= 2)
        self.assertEqual(sent.samples[0], (0, size))

        leftovers = [p.name for p in self.dest.iterdir() if p.name.endswith(".part")]
        self.assertEqual(leftovers, [])

    async def test_empty_file(self):
        source = self.make_file("empty.txt", 0)
        received = Recorder()

        ticket = await self.sender.begin_send(str(source), Recorder())
        saved = await self.receiver.begin_receive(ticket, str(self.dest), received)

        self.assertEqual(Path(saved).read_bytes(), b"")
        self.assertEqual(received.samples, [(0, 0)])

    async def test_name_clash_gets_suffix(self):
        source = self.make_file("notes.txt", 10)
        (self.dest / "notes.txt").write_text("existing")

        ticket = await self.sender.begin_send(str(source), Recorder())
        saved = await self.receiver.begin_receive(ticket, str(self.dest), Recorder())

        self.assertEqual(Path(saved).name, "notes (1).txt")
        self.assertEqual((self.dest / "notes.txt").read_text(), "existing")

    async def test_send_missing_file(self):
        with self.assertRaises(EngineError):
            await self.sender.begin_send(str(self.root / "missing.bin"), Recorder())
        self.assertFalse(self.sender.is_sharing)

    async def test_send_directory(self):
        with self.assertRaises(EngineError):
            await self.sender.begin_send(str(self.dest), Recorder())

    async def test_share_twice_requires_shutdown(self):
        source = self.make_file()
        await self.sender.begin_send(str(source), Recorder())
        with self.assertRaises(EngineError):
            await self.sender.begin_send(str(source), Recorder())

        await self.sender.shutdown()
        ticket = await self.sender.begin_send(str(source), Recorder())
        self.assertTrue(ticket)

    async def test_receive_malformed_ticket(self):
        with self.assertRaises(EngineError) as ctx:
            await self.receiver.begin_receive("not-a-ticket", str(self.dest), Recorder())
        self.assertIn("Invalid ticket", str(ctx.exception))

    async def test_receive_into_missing_directory(self):
        source = self.make_file()
        ticket = await self.sender.begin_send(str(source), Recorder())
        with self.assertRaises(EngineError):
            await self.receiver.begin_receive(ticket, str(self.root / "nope"), Recorder())

    async def test_wrong_token_is_refused(self):
        source = self.make_file()
        ticket = await self.sender.begin_send(str(source), Recorder())
        forged = encode_ticket(dataclasses.replace(decode_ticket(ticket), token="guess"))

        with self.assertRaises(EngineError) as ctx:
            await self.receiver.begin_receive(forged, str(self.dest), Recorder())

        self.assertIn("not valid", str(ctx.exception))
        self.assertEqual(list(self.dest.iterdir()), [])

    async def test_checksum_mismatch_discards_file(self):
        source = self.make_file(size=5000)
        ticket = await self.sender.begin_send(str(source), Recorder())
        tampered = encode_ticket(dataclasses.replace(decode_ticket(ticket), sha256="0" * 64))

        with self.assertRaises(EngineError) as ctx:
            await self.receiver.begin_receive(tampered, str(self.dest), Recorder())

        self.assertIn("Checksum", str(ctx.exception))
        self.assertEqual(list(self.dest.iterdir()), [])

    async def test_receive_after_sender_shutdown(self):
        source = self.make_file()
        ticket = await self.sender.begin_send(str(source), Recorder())
        await self.sender.shutdown()
        self.assertFalse(self.sender.is_sharing)

        with self.assertRaises(EngineError):
            await self.receiver.begin_receive(ticket, str(self.dest), Recorder())

    @patch('ticketdrop.engine.lan_engine.HASH_CHUNK_SIZE', 4096)
    async def test_shutdown_while_hashing_allows_new_share(self):
        large = self.make_file("movie.mkv", 4 * 1024 * 1024)
        small = self.make_file("note.txt", 10)
        started = asyncio.Event()

        def on_progress(done, total):
            if done > 0:
                started.set()

        share = asyncio.create_task(self.sender.begin_send(str(large), on_progress))
        await asyncio.wait_for(started.wait(), timeout=2.0)
        await self.sender.shutdown()

        with self.assertRaises((asyncio.CancelledError, EngineError)):
            await share
        self.assertFalse(self.sender.is_sharing)

        ticket = await self.sender.begin_send(str(small), Recorder())
        self.assertEqual(decode_ticket(ticket).name, "note.txt")

    async def test_shutdown_is_idempotent(self):
        await self.sender.shutdown()
        await self.sender.shutdown()
        self.assertFalse(self.sender.is_sharing)


if __name__ == '__main__':
    unittest.main()
