"""clamd client speaking the INSTREAM protocol over asyncio streams."""

from __future__ import annotations

import asyncio
import logging
import re
import struct
from dataclasses import dataclass
from typing import Optional

from .exceptions import VirusScanError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 8192

_FOUND = re.compile(r"^(?:stream|instream\(\S*\)):\s*(?P<signature>.+?)\s+FOUND$")


@dataclass(frozen=True)
class VirusScanResult:
    is_infected: bool = False
    viruses: tuple[str, ...] = ()


def parse_reply(reply: str) -> VirusScanResult:
    """Interpret a clamd INSTREAM reply line."""
    line = reply.strip().rstrip("\0").strip()
    if line.endswith("OK"):
        return VirusScanResult()
    match = _FOUND.match(line)
    if match:
        return VirusScanResult(True, (match.group("signature"),))
    raise VirusScanError(f"Unexpected clamd reply: {line!r}")


class ClamdClient:
    """Streams bytes to clamd over a unix socket or TCP."""

    def __init__(
        self,
        socket_path: Optional[str] = "/var/run/clamav/clamd.ctl",
        host: str = "",
        port: int = 3310,
        chunk_size: int = CHUNK_SIZE,
    ):
        self.socket_path = socket_path
        self.host = host
        self.port = port
        self.chunk_size = chunk_size

    @classmethod
    def from_config(cls, config) -> "ClamdClient":
        return cls(socket_path=config.clamd_socket, host=config.clamd_host, port=config.clamd_port)

    async def _connect(self) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
        try:
            if self.host:
                return await asyncio.open_connection(self.host, self.port)
            if self.socket_path:
                return await asyncio.open_unix_connection(self.socket_path)
        except OSError as exc:
            raise VirusScanError(f"Cannot connect to clamd: {exc}") from exc
        raise VirusScanError("No clamd socket or host configured")

    async def scan_bytes(self, data: bytes) -> VirusScanResult:
        """Scan `data` with clamd. Raises VirusScanError when clamd cannot answer."""
        reader, writer = await self._connect()
        try:
            writer.write(b"zINSTREAM\0")
            for offset in range(0, len(data), self.chunk_size):
                chunk = data[offset : offset + self.chunk_size]
                writer.write(struct.pack("!L", len(chunk)) + chunk)
                await writer.drain()
            writer.write(struct.pack("!L", 0))
            await writer.drain()

            reply = await reader.read()
        except OSError as exc:
            raise VirusScanError(f"clamd stream failed: {exc}") from exc
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except OSError as exc:
                logger.debug("Error closing clamd connection: %s", exc)

        result = parse_reply(reply.decode("utf-8", errors="replace"))
        if result.is_infected:
            logger.debug("clamd found %s", ", ".join(result.viruses))
        return result
