"""Student record shared by the server, the database and the clients."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

DEFAULT_NAME = "Empty"


def _as_int(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return 0


def _as_float(value: Any) -> float:
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    return 0.0


def _as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


@dataclass
class Aluno:
    """A student with card and mobile credit balances.

    An empty name falls back to ``"Empty"``, which marks a record that
    was never filled in.
    """

    matricula: int = 0
    nome: str = DEFAULT_NAME
    credits_mobile: float = 0.0
    credits_card: float = 0.0
    senha: str = ""

    def __post_init__(self) -> None:
        if self.matricula < 0:
            raise ValueError(f"matricula must not be negative: {self.matricula}")
        if not self.nome:
            self.nome = DEFAULT_NAME
        self.credits_mobile = float(self.credits_mobile)
        self.credits_card = float(self.credits_card)
        if self.senha is None:
            self.senha = ""

    @property
    def is_empty(self) -> bool:
        """True when the record carries no real student name."""
        return self.nome == DEFAULT_NAME

    def to_json(self) -> dict[str, Any]:
        """Return the wire representation of this student."""
        return {
            "Matricula": int(self.matricula),
            "Nome": self.nome,
            "creditsCard": self.credits_card,
            "creditsMobile": self.credits_mobile,
            "senhaApp": self.senha,
        }

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "Aluno":
        """Build a student from its wire representation; missing fields take defaults."""
        if not isinstance(data, Mapping):
            data = {}
        matricula = _as_int(data.get("Matricula"))
        return cls(
            matricula=max(matricula, 0),
            nome=_as_str(data.get("Nome")),
            credits_mobile=_as_float(data.get("creditsMobile")),
            credits_card=_as_float(data.get("creditsCard")),
            senha=_as_str(data.get("senhaApp")),
        )