"""Interpretation of server replies on the client side."""

from __future__ import annotations

from typing import Any

from .aluno import Aluno, _as_float, _as_int, _as_str
from .protocol import ProtocolError, decode_message


class ClientJsonInterface:
    """Reads server replies and remembers what the last one said.

    ``flag`` is ``"aluno"`` after a single student, ``"lista"`` after a
    list, and ``"<request>:Ok"`` or ``"<request>:Error"`` after feedback.
    """

    def __init__(self) -> None:
        self.aluno = Aluno()
        self.alunos: list[Aluno] = []
        self.flag = ""
        self.error_text = ""

    def receive(self, data: bytes | str) -> str:
        """Interpret one reply and return the resulting flag."""
        header, rest = decode_message(data)
        kind = header.get("ThereIs")
        if kind == "Aluno":
            self._receive_alunos(header, rest)
        elif kind == "Feedback":
            self._receive_feedback(header)
        elif kind == "SaldoCard":
            self.aluno.credits_card = _as_float(self._balance_source(header, rest).get("creditsCard"))
        elif kind == "SaldoMobile":
            self.aluno.credits_mobile = _as_float(self._balance_source(header, rest).get("creditsMobile"))
        else:
            raise ProtocolError("Erro na leitura do cabecalho do JSON")
        return self.flag

    def _receive_alunos(self, header: dict[str, Any], rest: list[Any]) -> None:
        howmuch = _as_int(header.get("HowMuch"))
        if len(rest) == 1 and isinstance(rest[0], list):
            rest = rest[0]
        if len(rest) < howmuch:
            raise ProtocolError(f"expected {howmuch} students, got {len(rest)}")
        if howmuch == 1:
            self.aluno = Aluno.from_json(rest[0])
            self.flag = "aluno"
        else:
            self.alunos = [Aluno.from_json(item) for item in rest[:howmuch]]
            self.flag = "lista"

    def _receive_feedback(self, header: dict[str, Any]) -> None:
        you_try = _as_str(header.get("youTry"))
        outcome = "Ok" if header.get("Acknowledge") == "noError" else "Error"
        self.flag = f"{you_try}:{outcome}"
        self.error_text = _as_str(header.get("ErrorText"))

    @staticmethod
    def _balance_source(header: dict[str, Any], rest: list[Any]) -> dict[str, Any]:
        if rest and isinstance(rest[0], dict):
            return rest[0]
        return header