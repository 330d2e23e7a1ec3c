"""
Specials - Liquidsoap Telnet Client
Pushes special programs onto the live queue over the telnet control port
"""
import logging
import socket
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from .config.liquidsoap import LiquidsoapConfig

logger = logging.getLogger(__name__)

END_MARKER = b"END"


@dataclass
class PushResult:
    """Outcome of a push request."""

    success: bool
    message: str = ""


class BroadcastInjector(Protocol):
    """Anything that can put a file on air immediately."""

    def push(self, file_path: Path | str) -> PushResult:
        ...


class LiquidsoapClient:
    """Client for the Liquidsoap telnet server"""

    def __init__(self, settings: LiquidsoapConfig | None = None):
        self.settings = settings or LiquidsoapConfig()

    def send_command(self, command: str) -> str:
        """
        Send command to Liquidsoap and return response

        Reads until a line containing END, the response size cap, EOF or
        the read timeout, whichever comes first.

        Args:
            command: Liquidsoap command (without trailing newline)

        Returns:
            Raw response text

        Raises:
            ConnectionError: If the connection cannot be made or the
                command cannot be sent
        """
        host = self.settings.host
        port = self.settings.port
        timeout = self.settings.timeout_sec

        try:
            sock = socket.create_connection((host, port), timeout=timeout)
        except OSError as e:
            logger.error(f"Cannot connect to Liquidsoap at {host}:{port}: {e}")
            raise ConnectionError(f"{e} ({host}:{port})") from e

        with sock:
            try:
                sock.sendall(f"{command}\n".encode())
            except OSError as e:
                raise ConnectionError(f"send failed: {e}") from e

            buffer = b""
            while True:
                try:
                    chunk = sock.recv(4096)
                except socket.timeout:
                    # Liquidsoap does not always terminate replies
                    logger.warning(f"Liquidsoap read timed out after {timeout}s")
                    break
                except OSError as e:
                    logger.warning(f"Liquidsoap read failed: {e}")
                    break

                if not chunk:
                    break
                buffer += chunk
                if END_MARKER in buffer:
                    break
                if len(buffer) > self.settings.max_response_bytes:
                    break

        return buffer.decode("utf-8", errors="replace")

    def push(self, file_path: Path | str) -> PushResult:
        """
        Push a file onto the specials queue

        Replies vary between Liquidsoap versions, so any reply without
        "error" in it (any case) counts as success.

        Args:
            file_path: Absolute path of the audio file

        Returns:
            PushResult with Liquidsoap's reply as the message
        """
        path = str(file_path)
        if "\n" in path or "\r" in path:
            return PushResult(False, "Refusing to push path containing a newline")

        try:
            response = self.send_command(f"{self.settings.push_command} {path}")
        except ConnectionError as e:
            return PushResult(False, f"Telnet connect failed: {e}")

        message = response.strip()
        if "error" in response.lower():
            logger.error(f"Liquidsoap rejected push: {message}")
            return PushResult(False, message)

        logger.info(f"Pushed {path} via {self.settings.push_command}")
        return PushResult(True, message)
