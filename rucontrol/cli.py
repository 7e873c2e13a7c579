"""Command-line front end for the student credit server."""

from __future__ import annotations

import argparse
import dataclasses
import sys
from typing import Callable, Optional, Sequence

from .aluno import Aluno
from .client import DEFAULT_HOST, DEFAULT_PORT, DEFAULT_TIMEOUT, RequestFailed, RuClient, ServerUnavailable
from .protocol import ProtocolError

_NO_CONNECTION = "Nao foi possivel estabelecer conexao com o servidor! :/"


def save_aluno(client: RuClient, aluno: Aluno) -> str:
    """Add a student, or update it when adding fails; return ``"added"`` or ``"updated"``."""
    try:
        client.add_aluno(aluno)
    except RequestFailed:
        client.update_aluno(aluno)
        return "updated"
    return "added"


def add_credits(client: RuClient, aluno: Aluno, amount: float, card: bool = False, mobile: bool = False) -> Aluno:
    """Add ``amount`` to the chosen balances, store the result and return it."""
    if amount == 0:
        raise ValueError("Coloque um valor que faça sentido.")
    if not (card or mobile):
        raise ValueError("Escolha Cartão ou Movel para receber os creditos.")
    updated = dataclasses.replace(
        aluno,
        credits_card=aluno.credits_card + amount if card else aluno.credits_card,
        credits_mobile=aluno.credits_mobile + amount if mobile else aluno.credits_mobile,
    )
    client.update_aluno(updated)
    return updated


def _show(aluno: Aluno) -> None:
    print(f"Matricula: {aluno.matricula}")
    print(f"Nome:     {aluno.nome}")
    print(f"Saldo Cartão:  R$ {aluno.credits_card:.2f}")
    print(f"Saldo Movel:   R$ {aluno.credits_mobile:.2f}")


def _search(client: RuClient, args: argparse.Namespace) -> int:
    try:
        aluno = client.search_aluno(args.matricula)
    except RequestFailed as exc:
        print(f"Aluno nao encontrado!\nDataBase responde: {exc.error_text}", file=sys.stderr)
        return 1
    _show(aluno)
    return 0


def _save(client: RuClient, args: argparse.Namespace) -> int:
    aluno = Aluno(args.matricula, args.nome, args.mobile, args.card, args.senha)
    try:
        save_aluno(client, aluno)
    except RequestFailed as exc:
        print(f"Não foi possivel adiciona-lo!\nDataBase respondeu: {exc.error_text}", file=sys.stderr)
        return 1
    print("Aluno adicionado corretamente!")
    return 0


def _delete(client: RuClient, args: argparse.Namespace) -> int:
    try:
        client.delete_aluno(args.matricula)
    except RequestFailed as exc:
        print(f"Não foi possivel deleta-lo!\nDataBase responde: {exc.error_text}", file=sys.stderr)
        return 1
    print("Aluno deletado!")
    return 0


def _credit(client: RuClient, args: argparse.Namespace) -> int:
    try:
        aluno = client.search_aluno(args.matricula)
    except RequestFailed as exc:
        print(f"Aluno nao encontrado!\nDataBase responde: {exc.error_text}", file=sys.stderr)
        return 1
    try:
        aluno = add_credits(client, aluno, args.amount, card=args.card, mobile=args.mobile)
    except ValueError as exc:
        print(f"Valor inadequado: {exc}", file=sys.stderr)
        return 1
    except RequestFailed as exc:
        print(f"Não foi possível adicionar os creditos!\n{exc.error_text}", file=sys.stderr)
        return 1
    print("Creditos adicionados corretamente!")
    _show(aluno)
    return 0


_COMMANDS: dict[str, Callable[[RuClient, argparse.Namespace], int]] = {
    "search": _search,
    "save": _save,
    "delete": _delete,
    "credit": _credit,
}


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="rucontrol", description="Manage students and their meal credits.")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    parser.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT)
    commands = parser.add_subparsers(dest="command", required=True)

    search = commands.add_parser("search", help="show a student")
    search.add_argument("matricula", type=int)

    save = commands.add_parser("save", help="add or update a student")
    save.add_argument("matricula", type=int)
    save.add_argument("nome")
    save.add_argument("--card", type=float, default=0.0)
    save.add_argument("--mobile", type=float, default=0.0)
    save.add_argument("--senha", default="")

    delete = commands.add_parser("delete", help="remove a student")
    delete.add_argument("matricula", type=int)

    credit = commands.add_parser("credit", help="add credits to a student")
    credit.add_argument("matricula", type=int)
    credit.add_argument("amount", type=float)
    credit.add_argument("--card", action="store_true")
    credit.add_argument("--mobile", action="store_true")

    args = parser.parse_args(argv)
    client = RuClient(args.host, args.port, args.timeout)
    try:
        return _COMMANDS[args.command](client, args)
    except ServerUnavailable:
        print(_NO_CONNECTION, file=sys.stderr)
        return 1
    except ProtocolError as exc:
        print(f"Erro no interpretador JSON: {exc}", file=sys.stderr)
        return 1