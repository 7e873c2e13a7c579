import socket
import threading

import pytest

from rucontrol.aluno import Aluno
from rucontrol.cli import add_credits, main, save_aluno
from rucontrol.client import RequestFailed, RuClient
from rucontrol.database import Database
from rucontrol.dbjson import DbJsonInterface
from rucontrol.server import RuServer


class FakeClient:
    def __init__(self, fail_add=False, fail_update=False):
        self.fail_add = fail_add
        self.fail_update = fail_update
        self.calls = []

    def add_aluno(self, aluno):
        self.calls.append(("add", aluno))
        if self.fail_add:
            raise RequestFailed("addAluno", "duplicate")

    def update_aluno(self, aluno):
        self.calls.append(("update", aluno))
        if self.fail_update:
            raise RequestFailed("updateAluno", "refused")


@pytest.fixture
def port(tmp_path):
    server = RuServer(DbJsonInterface(Database(str(tmp_path / "ru.db"))), None, "127.0.0.1", 0)
    thread = threading.Thread(target=server.serve_forever, args=(None,), daemon=True)
    thread.start()
    yield server.server_address[1]
    server.shutdown()
    thread.join(3)


def _run(port, *args):
    return main(["--host", "127.0.0.1", "--port", str(port), "--timeout", "3", *args])


def test_save_aluno_adds():
    client = FakeClient()
    aluno = Aluno(7, "Ana")
    assert save_aluno(client, aluno) == "added"
    assert client.calls == [("add", aluno)]


def test_save_aluno_falls_back_to_update():
    client = FakeClient(fail_add=True)
    aluno = Aluno(7, "Ana")
    assert save_aluno(client, aluno) == "updated"
    assert [name for name, _ in client.calls] == ["add", "update"]


def test_save_aluno_both_fail():
    client = FakeClient(fail_add=True, fail_update=True)
    with pytest.raises(RequestFailed) as info:
        save_aluno(client, Aluno(7, "Ana"))
    assert info.value.request == "updateAluno"


def test_add_credits_card_only():
    client = FakeClient()
    aluno = Aluno(7, "Ana", 1.0, 2.0)
    updated = add_credits(client, aluno, 3.0, card=True)
    assert updated.credits_card == pytest.approx(aluno.credits_card + 3.0)
    assert updated.credits_mobile == pytest.approx(aluno.credits_mobile)
    assert aluno.credits_card == pytest.approx(2.0)
    assert client.calls == [("update", updated)]


def test_add_credits_both():
    client = FakeClient()
    aluno = Aluno(7, "Ana", 1.0, 2.0)
    updated = add_credits(client, aluno, 0.5, card=True, mobile=True)
    assert updated.credits_card == pytest.approx(2.0 + 0.5)
    assert updated.credits_mobile == pytest.approx(1.0 + 0.5)


def test_add_credits_zero_rejected():
    client = FakeClient()
    with pytest.raises(ValueError):
        add_credits(client, Aluno(7, "Ana"), 0.0, card=True)
    assert client.calls == []


def test_add_credits_needs_a_target():
    with pytest.raises(ValueError):
        add_credits(FakeClient(), Aluno(7, "Ana"), 1.0)


def test_main_save_search_credit_delete(port, capsys):
    assert _run(port, "save", "7", "Ana", "--card", "10", "--mobile", "1", "--senha", "password") == 0
    assert _run(port, "search", "7") == 0
    assert "Ana" in capsys.readouterr().out

    assert _run(port, "credit", "7", "2.5", "--card") == 0
    aluno = RuClient("127.0.0.1", port, 3).search_aluno(7)
    assert aluno.credits_card == pytest.approx(10.0 + 2.5)
    assert aluno.credits_mobile == pytest.approx(1.0)

    assert _run(port, "delete", "7") == 0
    assert _run(port, "search", "7") == 1
    assert "Aluno nao encontrado!" in capsys.readouterr().err


def test_main_save_twice_updates(port):
    assert _run(port, "save", "9", "Bia") == 0
    assert _run(port, "save", "9", "Bea", "--mobile", "4") == 0
    aluno = RuClient("127.0.0.1", port, 3).search_aluno(9)
    assert aluno.nome == "Bea"
    assert aluno.credits_mobile == pytest.approx(4.0)


def test_main_server_unreachable(capsys):
    sock = socket.create_server(("127.0.0.1", 0))
    closed = sock.getsockname()[1]
    sock.close()
    assert main(["--host", "127.0.0.1", "--port", str(closed), "--timeout", "1", "search", "1"]) == 1
    assert "Nao foi possivel estabelecer conexao com o servidor!" in capsys.readouterr().err