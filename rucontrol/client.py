"""TCP client for the student credit server."""

from __future__ import annotations

import socket
from typing import Any

from .aluno import Aluno
from .client_interface import ClientJsonInterface
from .protocol import REPLY_TERMINATOR, encode_request

DEFAULT_HOST = "192.168.137.148"
DEFAULT_PORT = 1234
DEFAULT_TIMEOUT = 3.0

_NO_CONNECTION = "Nao foi possivel estabelecer conexao com o servidor!"
_BAD_REPLY = "Erro no interpretador JSON"


class ServerUnavailable(ConnectionError):
    """Raised when the server cannot be reached or does not answer."""


class RequestFailed(Exception):
    """Raised when the server reports that a request failed."""

    def __init__(self, request: str, error_text: str) -> None:
        super().__init__(f"{request}: {error_text}" if error_text else request)
        self.request = request
        self.error_text = error_text


class RuClient:
    """Sends one request per connection and interprets the reply.

    Malformed replies raise :class:`rucontrol.protocol.ProtocolError`.
    """

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.host = host
        self.port = port
        self.timeout = timeout

    def _exchange(self, request: dict[str, Any]) -> bytes:
        try:
            conn = socket.create_connection((self.host, self.port), timeout=self.timeout)
        except OSError as exc:
            raise ServerUnavailable(_NO_CONNECTION) from exc

        with conn:
            try:
                conn.sendall(encode_request([request]))
                conn.shutdown(socket.SHUT_WR)
            except OSError as exc:
                raise ServerUnavailable(_NO_CONNECTION) from exc

            received = bytearray()
            while True:
                try:
                    chunk = conn.recv(4096)
                except socket.timeout:
                    break
                except OSError as exc:
                    raise ServerUnavailable(str(exc)) from exc
                if not chunk:
                    break
                received += chunk
                if received.endswith(REPLY_TERMINATOR):
                    break

        if not received:
            raise ServerUnavailable("server sent no reply")
        return bytes(received)

    def _interpret(self, request: dict[str, Any]) -> ClientJsonInterface:
        interpreter = ClientJsonInterface()
        interpreter.receive(self._exchange(request))
        return interpreter

    def _feedback_request(self, request: dict[str, Any]) -> None:
        name = request["IWant"]
        interpreter = self._interpret(request)
        if interpreter.flag == f"{name}:Ok":
            return
        if interpreter.flag == f"{name}:Error":
            raise RequestFailed(name, interpreter.error_text)
        raise RequestFailed(name, f"{interpreter.error_text}\n{_BAD_REPLY}")

    def search_aluno(self, matricula: int) -> Aluno:
        """Fetch one student by registration number."""
        interpreter = self._interpret({"IWant": "rAluno", "Matricula": int(matricula)})
        if interpreter.flag == "aluno":
            return interpreter.aluno
        if interpreter.flag == "rAluno:Error":
            raise RequestFailed("rAluno", interpreter.error_text)
        raise RequestFailed("rAluno", f"{interpreter.error_text}\n{_BAD_REPLY}")

    def _aluno_request(self, name: str, aluno: Aluno) -> None:
        fields = aluno.to_json()
        self._feedback_request({"IWant": name, **fields})

    def add_aluno(self, aluno: Aluno) -> None:
        """Store a new student."""
        self._aluno_request("addAluno", aluno)

    def update_aluno(self, aluno: Aluno) -> None:
        """Overwrite a stored student."""
        self._aluno_request("updateAluno", aluno)

    def delete_aluno(self, matricula: int) -> None:
        """Remove a student."""
        self._feedback_request({"IWant": "delAluno", "Matricula": int(matricula)})

    def add_credit_card(self, matricula: int, amount: float) -> None:
        """Add credit to a student's card balance."""
        self._feedback_request(
            {"IWant": "changeCard", "Matricula": int(matricula), "Amount": float(amount)}
        )

    def add_credit_mobile(self, matricula: int, amount: float) -> None:
        """Add credit to a student's mobile balance."""
        self._feedback_request(
            {"IWant": "changeMobile", "Matricula": int(matricula), "Amount": float(amount)}
        )