import json
import socket
import threading

import pytest

from rucontrol.aluno import Aluno
from rucontrol.client import RequestFailed, RuClient, ServerUnavailable
from rucontrol.database import Database
from rucontrol.dbjson import DbJsonInterface
from rucontrol.protocol import (
    REQUEST_TERMINATOR,
    ProtocolError,
    decode_message,
    encode_reply,
    feedback,
)


class _FakeServer:
    def __init__(self, responder):
        self.responder = responder
        self.requests = []
        self._stop = threading.Event()
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.sock.bind(("127.0.0.1", 0))
        self.sock.listen(5)
        self.sock.settimeout(0.1)
        self.port = self.sock.getsockname()[1]
        self.thread = threading.Thread(target=self._run, daemon=True)
        self.thread.start()

    def _run(self):
        while not self._stop.is_set():
            try:
                conn, _ = self.sock.accept()
            except socket.timeout:
                continue
            except OSError:
                return
            with conn:
                conn.settimeout(2.0)
                data = b""
                while REQUEST_TERMINATOR not in data:
                    chunk = conn.recv(4096)
                    if not chunk:
                        break
                    data += chunk
                self.requests.append(data)
                reply = self.responder(data)
                if reply:
                    conn.sendall(reply)

    def stop(self):
        self._stop.set()
        self.thread.join(timeout=2.0)
        self.sock.close()


@pytest.fixture
def db_server():
    handler = DbJsonInterface(Database(":memory:"))
    server = _FakeServer(lambda data: encode_reply(handler.handle(data)[0]))
    yield server
    server.stop()


@pytest.fixture
def client(db_server):
    return RuClient("127.0.0.1", db_server.port, timeout=2.0)


def _canned(reply):
    return _FakeServer(lambda data: reply)


def test_add_then_search_round_trip(client):
    aluno = Aluno(matricula=42, nome="Maria", credits_mobile=2.5, credits_card=4.0, senha="password")
    client.add_aluno(aluno)
    found = client.search_aluno(42)
    assert found == aluno


def test_search_missing_student_raises(client):
    with pytest.raises(RequestFailed) as info:
        client.search_aluno(999)
    assert info.value.request == "rAluno"
    assert info.value.error_text == "Aluno nao encontrado no banco de dados"


def test_adding_twice_fails(client):
    aluno = Aluno(matricula=7, nome="Joao")
    client.add_aluno(aluno)
    with pytest.raises(RequestFailed) as info:
        client.add_aluno(aluno)
    assert info.value.request == "addAluno"


def test_update_changes_stored_student(client):
    client.add_aluno(Aluno(matricula=8, nome="Ana"))
    changed = Aluno(matricula=8, nome="Ana Paula", credits_card=1.5)
    client.update_aluno(changed)
    assert client.search_aluno(8) == changed


def test_delete_removes_student(client):
    client.add_aluno(Aluno(matricula=9, nome="Pedro"))
    client.delete_aluno(9)
    with pytest.raises(RequestFailed):
        client.search_aluno(9)


def test_add_credit_card_increases_card_balance(client):
    original = Aluno(matricula=10, nome="Lia", credits_card=2.0, credits_mobile=1.0)
    client.add_aluno(original)
    client.add_credit_card(10, 3.0)
    found = client.search_aluno(10)
    assert found.credits_card == original.credits_card + 3.0
    assert found.credits_mobile == original.credits_mobile


def test_add_credit_mobile_increases_mobile_balance(client):
    original = Aluno(matricula=11, nome="Rui", credits_card=2.0, credits_mobile=1.0)
    client.add_aluno(original)
    client.add_credit_mobile(11, 0.5)
    found = client.search_aluno(11)
    assert found.credits_mobile == original.credits_mobile + 0.5
    assert found.credits_card == original.credits_card


def test_add_credit_for_missing_student_fails(client):
    with pytest.raises(RequestFailed) as info:
        client.add_credit_mobile(12345, 1.0)
    assert info.value.request == "changeMobile"


def test_delete_request_on_the_wire():
    server = _canned(encode_reply(feedback("delAluno", True, "")))
    try:
        RuClient("127.0.0.1", server.port, timeout=2.0).delete_aluno(7)
        raw = server.requests[0]
    finally:
        server.stop()
    assert raw.endswith(REQUEST_TERMINATOR)
    header, rest = decode_message(raw)
    assert header == {"IWant": "delAluno", "Matricula": 7}
    assert rest == []


def test_add_request_carries_all_fields():
    server = _canned(encode_reply(feedback("addAluno", True, "")))
    aluno = Aluno(matricula=3, nome="Bia", credits_mobile=1.0, credits_card=2.0, senha="password")
    try:
        RuClient("127.0.0.1", server.port, timeout=2.0).add_aluno(aluno)
        raw = server.requests[0]
    finally:
        server.stop()
    header, _ = decode_message(raw)
    assert header["IWant"] == "addAluno"
    assert Aluno.from_json(header) == aluno


def test_unexpected_feedback_is_a_failure():
    server = _canned(encode_reply(feedback("somethingElse", True, "")))
    try:
        with pytest.raises(RequestFailed) as info:
            RuClient("127.0.0.1", server.port, timeout=2.0).update_aluno(Aluno(matricula=1, nome="X"))
    finally:
        server.stop()
    assert "Erro no interpretador JSON" in info.value.error_text


def test_malformed_reply_raises_protocol_error():
    server = _canned(b"not json at all")
    try:
        with pytest.raises(ProtocolError):
            RuClient("127.0.0.1", server.port, timeout=2.0).search_aluno(1)
    finally:
        server.stop()


def test_list_reply_to_search_is_a_failure():
    listing = [{"ThereIs": "Aluno", "HowMuch": 2}, [Aluno(1, "A").to_json(), Aluno(2, "B").to_json()]]
    server = _canned(json.dumps(listing).encode() + b"\n\n\r\n")
    try:
        with pytest.raises(RequestFailed) as info:
            RuClient("127.0.0.1", server.port, timeout=2.0).search_aluno(0)
    finally:
        server.stop()
    assert info.value.request == "rAluno"


def test_empty_reply_means_unavailable():
    server = _canned(b"")
    try:
        with pytest.raises(ServerUnavailable):
            RuClient("127.0.0.1", server.port, timeout=2.0).delete_aluno(1)
    finally:
        server.stop()


def test_unreachable_server_raises():
    probe = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    probe.bind(("127.0.0.1", 0))
    port = probe.getsockname()[1]
    probe.close()
    with pytest.raises(ServerUnavailable) as info:
        RuClient("127.0.0.1", port, timeout=1.0).search_aluno(1)
    assert "Nao foi possivel estabelecer conexao com o servidor!" in str(info.value)