"""TCP server for the student database and its link to the turnstile device."""

from __future__ import annotations

import argparse
import logging
import socket
import threading
import time
from typing import Any, Optional, Sequence

from .database import Database, DatabaseError
from .dbjson import DbJsonInterface
from .protocol import REQUEST_TERMINATOR, ProtocolError, encode_reply, encode_request

logger = logging.getLogger(__name__)

DEFAULT_PORT = 1234
ESP_HOST = "192.168.137.250"
ESP_PORT = 8025
ESP_TIMEOUT = 3.0
ESP_NOT_LIVE = b"isnotLive"
POLL_INTERVAL = 20.0
PAGE_SIZE = 4
REQUEST_READ_TIMEOUT = 1.0


def _read(conn: socket.socket, terminator: Optional[bytes] = None) -> bytes:
    """Read until the peer closes, the timeout expires or ``terminator`` shows up."""
    received = bytearray()
    while True:
        try:
            chunk = conn.recv(4096)
        except socket.timeout:
            break
        except OSError as exc:
            logger.warning("read failed: %s", exc)
            break
        if not chunk:
            break
        received += chunk
        if terminator is not None and terminator in received:
            break
    return bytes(received)


class EspLink:
    """Talks to the turnstile device, one request per connection.

    Every call returns the device's raw reply, or ``b"isnotLive"`` when
    the device cannot be reached.
    """

    def __init__(self, host: str = ESP_HOST, port: int = ESP_PORT, timeout: float = ESP_TIMEOUT) -> None:
        self.host = host
        self.port = port
        self.timeout = timeout

    def _exchange(self, message: bytes) -> bytes:
        try:
            conn = socket.create_connection((self.host, self.port), timeout=self.timeout)
        except OSError:
            logger.warning("Nao foi possivel estabelecer conexao com o dispositivo")
            return ESP_NOT_LIVE
        with conn:
            try:
                conn.sendall(message)
            except OSError as exc:
                logger.warning("write to device failed: %s", exc)
                return ESP_NOT_LIVE
            reply = _read(conn)
        logger.info("Device says: %r", reply)
        return reply

    def talk(self, there_is: str) -> bytes:
        """Ask the device a question such as ``"WhatDoYouWant"`` or ``"getUpdates"``."""
        return self._exchange(encode_request([{"ThereIs": there_is}]))

    def send(self, data: Any) -> bytes:
        """Send a reply to the device: bytes or text as is, anything else as a JSON array."""
        if isinstance(data, bytes):
            message = data + REQUEST_TERMINATOR
        elif isinstance(data, str):
            message = data.encode("utf-8") + REQUEST_TERMINATOR
        else:
            message = encode_request(data)
        return self._exchange(message)


class RuServer:
    """Answers client requests and periodically polls the turnstile device."""

    def __init__(
        self,
        handler: DbJsonInterface,
        esp: Optional[EspLink] = None,
        host: str = "",
        port: int = DEFAULT_PORT,
    ) -> None:
        self.handler = handler
        self.esp = esp
        self._oscillate = False
        self._stop = threading.Event()
        self._serving = False
        self._listener = socket.create_server((host, port))

    @property
    def server_address(self) -> tuple[str, int]:
        host, port = self._listener.getsockname()[:2]
        return host, port

    def __enter__(self) -> "RuServer":
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()

    def handle_request(self, data: bytes | str) -> bytes:
        """Answer one client request with the bytes to send back."""
        try:
            payload, _ = self.handler.handle(data)
        except (ProtocolError, DatabaseError) as exc:
            logger.warning("request not answered: %s", exc)
            payload = ""
        return encode_reply(payload)

    def poll_esp(self) -> list[bytes]:
        """Ask the device what it wants and serve it; return the device's answers to what was sent."""
        if self.esp is None:
            return []
        there_is = "getUpdates" if self._oscillate else "WhatDoYouWant"
        self._oscillate = not self._oscillate

        response = self.esp.talk(there_is)
        if response == ESP_NOT_LIVE:
            return []

        answers: list[bytes] = []
        index = 0
        while True:
            try:
                payload, more = self.handler.handle(response, index, PAGE_SIZE)
            except (ProtocolError, DatabaseError) as exc:
                logger.warning("device request not understood: %s", exc)
                break
            index += PAGE_SIZE
            if not more:
                break
            if payload == "nothing":
                logger.info("Ele nao quis nada agora...")
            elif payload == "Good":
                logger.info("ESP disse: %r", response)
            else:
                logger.info("ESP disse: %r", response)
                answer = self.esp.send(payload)
                logger.info("ESP disse depois: %r", answer)
                answers.append(answer)
        return answers

    def _serve_connection(self, conn: socket.socket) -> None:
        with conn:
            conn.settimeout(REQUEST_READ_TIMEOUT)
            data = _read(conn, REQUEST_TERMINATOR)
            logger.info("Client sent %d bytes", len(data))
            reply = self.handle_request(data)
            try:
                conn.sendall(reply)
            except OSError as exc:
                logger.warning("reply not sent: %s", exc)

    def serve_forever(self, poll_interval: Optional[float] = POLL_INTERVAL) -> None:
        """Serve clients until :meth:`shutdown`; poll the device every ``poll_interval`` seconds."""
        self._serving = True
        next_poll = None if poll_interval is None else time.monotonic() + poll_interval
        try:
            while not self._stop.is_set():
                wait = 0.5
                if next_poll is not None:
                    wait = min(wait, next_poll - time.monotonic())
                self._listener.settimeout(max(wait, 0.01))
                try:
                    conn, _ = self._listener.accept()
                except socket.timeout:
                    conn = None
                except OSError:
                    if self._stop.is_set():
                        break
                    raise
                if conn is not None:
                    self._serve_connection(conn)
                if next_poll is not None and time.monotonic() >= next_poll:
                    self.poll_esp()
                    next_poll = time.monotonic() + poll_interval
        finally:
            self._serving = False
            self._listener.close()

    def shutdown(self) -> None:
        """Stop serving and release the listening socket."""
        self._stop.set()
        if not self._serving:
            self._listener.close()


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="rucontrol-server", description="Student credit server.")
    parser.add_argument("--database", default="ru_control.db", help="SQLite file holding the students")
    parser.add_argument("--host", default="", help="address to listen on")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    parser.add_argument("--esp-host", default=ESP_HOST)
    parser.add_argument("--esp-port", type=int, default=ESP_PORT)
    parser.add_argument("--poll-interval", type=float, default=POLL_INTERVAL)
    parser.add_argument("--no-esp", action="store_true", help="do not poll the turnstile device")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    print("Saida OK!")

    handler = DbJsonInterface(Database(args.database))
    esp = None if args.no_esp else EspLink(args.esp_host, args.esp_port)
    try:
        server = RuServer(handler, esp, args.host, args.port)
    except OSError:
        print("Não foi possível conectar o Servidor :/")
        return 1
    print("Servidor foi iniciado!")

    try:
        server.serve_forever(None if esp is None else args.poll_interval)
    except KeyboardInterrupt:
        pass
    finally:
        server.shutdown()
        handler.database.close()
    return 0