"""Student storage on SQLite."""

from __future__ import annotations

import sqlite3
from typing import Optional

from .aluno import Aluno

_SCHEMA = (
    "CREATE TABLE IF NOT EXISTS cliente ("
    "matricula INTEGER PRIMARY KEY, "
    "nome TEXT, "
    "creditsmobile REAL, "
    "creditscard REAL, "
    "senhaapp TEXT)"
)


class DatabaseError(Exception):
    """Raised when the database refuses an operation."""


class AlunoNotFound(DatabaseError):
    """Raised when no student has the requested registration number."""


class Database:
    """Keeps students in the ``cliente`` table."""

    def __init__(self, path: str = ":memory:") -> None:
        self.path = path
        self._conn: Optional[sqlite3.Connection] = None

    def __enter__(self) -> "Database":
        self.connect()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def connect(self) -> None:
        """Open the database and make sure the table exists."""
        if self._conn is not None:
            return
        try:
            conn = sqlite3.connect(self.path)
            conn.execute(_SCHEMA)
            conn.commit()
        except sqlite3.Error as exc:
            raise DatabaseError(str(exc)) from exc
        self._conn = conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def is_connected(self) -> bool:
        return self._conn is not None

    def _execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        if self._conn is None:
            raise DatabaseError("database is not connected")
        try:
            cursor = self._conn.execute(sql, params)
            self._conn.commit()
        except sqlite3.Error as exc:
            self._conn.rollback()
            raise DatabaseError(str(exc)) from exc
        return cursor

    def add_aluno(self, aluno: Aluno) -> None:
        self._execute(
            "INSERT INTO cliente VALUES (?, ?, ?, ?, ?)",
            (aluno.matricula, aluno.nome, aluno.credits_mobile, aluno.credits_card, aluno.senha),
        )

    def update_aluno(self, aluno: Aluno) -> None:
        """Overwrite the stored fields; a missing student is not an error."""
        self._execute(
            "UPDATE cliente SET nome = ?, creditsmobile = ?, creditscard = ?, senhaapp = ? "
            "WHERE matricula = ?",
            (aluno.nome, aluno.credits_mobile, aluno.credits_card, aluno.senha, aluno.matricula),
        )

    def delete_aluno(self, matricula: int) -> None:
        """Delete a student; a missing student is not an error."""
        self._execute("DELETE FROM cliente WHERE matricula = ?", (matricula,))

    def search_aluno(self, matricula: int) -> Aluno:
        row = self._execute(
            "SELECT matricula, nome, creditsmobile, creditscard, senhaapp "
            "FROM cliente WHERE matricula = ?",
            (matricula,),
        ).fetchone()
        aluno = Aluno() if row is None else self._from_row(row)
        if aluno.is_empty:
            raise AlunoNotFound("Aluno nao encontrado no banco de dados")
        return aluno

    def all_alunos(self) -> list[Aluno]:
        """Return every student, last stored first, without passwords."""
        rows = self._execute(
            "SELECT matricula, nome, creditsmobile, creditscard FROM cliente ORDER BY rowid"
        ).fetchall()
        return [self._from_row((*row, "")) for row in reversed(rows)]

    @staticmethod
    def _from_row(row: tuple) -> Aluno:
        matricula, nome, mobile, card, senha = row
        return Aluno(
            matricula=max(int(matricula or 0), 0),
            nome=nome or "",
            credits_mobile=float(mobile or 0.0),
            credits_card=float(card or 0.0),
            senha=senha or "",
        )