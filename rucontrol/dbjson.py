"""Answers JSON requests against the student database."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Union

from .aluno import Aluno, _as_float, _as_int, _as_str
from .database import AlunoNotFound, Database, DatabaseError
from .protocol import ProtocolError, decode_message, feedback

logger = logging.getLogger(__name__)

RU_PRICE = 1.5
NOT_UNDERSTOOD = "Nao sei o que voce quis dizer.."

Payload = Union[list, str]


class DbJsonInterface:
    """Turns wire requests into database operations and builds the replies.

    Replies are JSON-ready lists, or plain strings (``"Good"``,
    ``"nothing"``, or ``""`` when there is nothing to send).
    """

    def __init__(self, database: Database, ru_price: float = RU_PRICE) -> None:
        self.database = database
        self.ru_price = ru_price

    def _ensure_connected(self) -> None:
        if not self.database.is_connected():
            self.database.connect()

    def handle(self, data: bytes | str, index: int = 0, size: int = 0) -> tuple[Payload, bool]:
        """Answer one request.

        Returns the reply and whether a paged student listing has more
        entries from ``index`` on. ``size`` of 0 disables paging.
        """
        header, rest = decode_message(data)
        request = _as_str(header.get("IWant"))

        if request == "rAluno":
            return self.request_aluno(_as_int(header.get("Matricula")), index, size)
        if request == "addAluno":
            return self.add_aluno(Aluno.from_json(header)), False
        if request == "updateAluno":
            return self.update_aluno(Aluno.from_json(header)), False
        if request == "updateAlunos":
            howmuch = _as_int(header.get("HowMuch"))
            entries = rest[0] if rest and isinstance(rest[0], list) else []
            if len(entries) < howmuch:
                raise ProtocolError(f"expected {howmuch} entries, got {len(entries)}")
            self.debit_entries(entries[:howmuch])
            return "Good", False
        if request == "delAluno":
            return self.delete_aluno(_as_int(header.get("Matricula"))), False
        if request == "changeCard":
            return (
                self.add_credit_card(_as_int(header.get("Matricula")), _as_float(header.get("Amount"))),
                False,
            )
        if request == "changeMobile":
            return (
                self.add_credit_mobile(_as_int(header.get("Matricula")), _as_float(header.get("Amount"))),
                False,
            )
        if request == "nothing":
            return "nothing", False

        logger.warning("Erro na leitura do cabecalho do JSON")
        return feedback(request, False, NOT_UNDERSTOOD), False

    def request_aluno(self, matricula: int, index: int = 0, size: int = 0) -> tuple[Payload, bool]:
        """Look up one student, or list all of them when ``matricula`` is 0."""
        self._ensure_connected()

        if matricula != 0:
            try:
                aluno = self.database.search_aluno(matricula)
            except AlunoNotFound as exc:
                return feedback("rAluno", False, str(exc)), False
            return [{"ThereIs": "Aluno", "HowMuch": 1}, aluno.to_json()], False

        alunos = self.database.all_alunos()
        howmuch = len(alunos)
        has_more = True
        if size != 0:
            alunos = alunos[index:]
            has_more = bool(alunos)
            if howmuch > size + index:
                howmuch = size
            else:
                howmuch -= index
        if howmuch <= 0:
            return "", has_more

        listing = [aluno.to_json() for aluno in alunos[:howmuch]]
        return [{"ThereIs": "Aluno", "HowMuch": howmuch}, listing], has_more

    def _store(self, you_try: str, action, argument) -> list[dict[str, Any]]:
        self._ensure_connected()
        try:
            action(argument)
        except DatabaseError as exc:
            return feedback(you_try, False, str(exc))
        return feedback(you_try, True, "")

    def add_aluno(self, aluno: Aluno) -> list[dict[str, Any]]:
        return self._store("addAluno", self.database.add_aluno, aluno)

    def update_aluno(self, aluno: Aluno) -> list[dict[str, Any]]:
        return self._store("updateAluno", self.database.update_aluno, aluno)

    def delete_aluno(self, matricula: int) -> list[dict[str, Any]]:
        return self._store("delAluno", self.database.delete_aluno, matricula)

    def _add_credit(self, you_try: str, matricula: int, amount: float, field: str) -> list[dict[str, Any]]:
        self._ensure_connected()
        try:
            aluno = self.database.search_aluno(matricula)
            setattr(aluno, field, getattr(aluno, field) + amount)
            self.database.update_aluno(aluno)
        except DatabaseError as exc:
            return feedback(you_try, False, str(exc))
        return feedback(you_try, True)

    def add_credit_card(self, matricula: int, amount: float) -> list[dict[str, Any]]:
        return self._add_credit("changeCard", matricula, amount, "credits_card")

    def add_credit_mobile(self, matricula: int, amount: float) -> list[dict[str, Any]]:
        return self._add_credit("changeMobile", matricula, amount, "credits_mobile")

    def debit_entries(self, entries: Iterable[Any]) -> list[Aluno]:
        """Charge one meal per entry from the credit it names; return those charged."""
        self._ensure_connected()
        charged: list[Aluno] = []
        for entry in entries:
            entry = entry if isinstance(entry, dict) else {}
            try:
                aluno = self.database.search_aluno(_as_int(entry.get("Matricula")))
            except AlunoNotFound:
                logger.warning("Aluno %s nao encontrado", entry.get("Matricula"))
                continue
            credit = entry.get("credit")
            if credit == "Mobile":
                aluno.credits_mobile -= self.ru_price
            elif credit == "Card":
                aluno.credits_card -= self.ru_price
            else:
                logger.warning("Erro ao debitar credito de %s.", aluno.nome)
                continue
            self.database.update_aluno(aluno)
            charged.append(aluno)
        return charged