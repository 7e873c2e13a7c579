# rucontrol

`rucontrol` keeps track of the meal credits that students hold at a
university restaurant. Every student (`rucontrol.aluno.Aluno`) has a
registration number (`matricula`), a name (`nome`), an app password
(`senha`) and two balances: `credits_card` and `credits_mobile`. A student
with an empty name is stored under the name `"Empty"`, which marks a record
that was never filled in.

The package has these modules:

- `rucontrol.aluno` – the `Aluno` dataclass and its JSON form
  (`to_json`, `from_json`);
- `rucontrol.protocol` – encoding and decoding of the wire messages
  (`encode_request`, `encode_reply`, `decode_message`, `feedback`,
  `request_name`, `ProtocolError`);
- `rucontrol.database` – SQLite storage of students (`Database`,
  `DatabaseError`, `AlunoNotFound`);
- `rucontrol.dbjson` – `DbJsonInterface`, which answers requests against
  the database;
- `rucontrol.client_interface` – `ClientJsonInterface`, which interprets
  server replies;
- `rucontrol.client` – `RuClient`, a TCP client (`ServerUnavailable`,
  `RequestFailed`);
- `rucontrol.server` – `RuServer`, the TCP server, and `EspLink`, its
  link to the turnstile terminal;
- `rucontrol.cli` – the command line, with `save_aluno` and `add_credits`.

## Running the server

    rucontrol-server --help

Options:

- `--database` – SQLite file holding the students (default `ru_control.db`);
- `--host`, `--port` – address to listen on (default all interfaces, port 1234);
- `--esp-host`, `--esp-port` – the turnstile terminal to poll
  (default `192.168.137.250`, port 8025);
- `--poll-interval` – seconds between polls (default 20);
- `--no-esp` – do not poll the terminal at all.

The server answers one request per connection. On every poll it asks the
terminal alternately `WhatDoYouWant` and `getUpdates`, answers what the
terminal asks for (student listings are sent in pages of four), and for an
`updateAlunos` request debits one meal from each listed student. When the
terminal cannot be reached the poll is skipped.

## Using the command line

    rucontrol --help

Commands (each takes `--host`, `--port` and `--timeout` before the command
name; the default server is `192.168.137.148`, port 1234):

- `rucontrol search MATRICULA` – show a student and both balances;
- `rucontrol save MATRICULA NOME [--card X] [--mobile X] [--senha S]` – add a
  student, or update it if adding is refused;
- `rucontrol delete MATRICULA` – remove a student;
- `rucontrol credit MATRICULA AMOUNT [--card] [--mobile]` – add `AMOUNT` to
  the chosen balances. The amount must not be zero and at least one of
  `--card` and `--mobile` must be given.

Each command exits with 0 on success and 1 on failure, including when the
server cannot be reached.

## Using it from Python

```python
from rucontrol.aluno import Aluno
from rucontrol.client import RequestFailed, RuClient, ServerUnavailable

client = RuClient(host="localhost", port=1234, timeout=3.0)
senha = "password"

try:
    client.add_aluno(
        Aluno(matricula=1001, nome="Maria", credits_mobile=0.0,
              credits_card=10.0, senha=senha)
    )
    aluno = client.search_aluno(1001)
    print(aluno.nome, aluno.credits_card, aluno.credits_mobile)
    client.add_credit_card(1001, 5.0)
except RequestFailed as exc:
    print("server refused:", exc.request, exc.error_text)
except ServerUnavailable:
    print("server is not reachable")
```

`RuClient` also has `update_aluno`, `delete_aluno` and `add_credit_mobile`.
A malformed reply raises `rucontrol.protocol.ProtocolError`.

On the server side the request handling can be driven without a socket:

```python
from rucontrol.database import Database
from rucontrol.dbjson import DbJsonInterface

database = Database(":memory:")
database.connect()
handler = DbJsonInterface(database, ru_price=1.5)

reply, has_more = handler.handle(b'[{"IWant": "rAluno", "Matricula": 0}]')
```

`handle` returns the reply (a JSON-ready list, or a plain string such as
`"Good"`, `"nothing"` or `""`) and whether a paged listing has more entries.

## The protocol

Every message is a JSON array whose first element is a header object.
Requests end with `\r\n\r\n\r\n`, server replies with `\n\n\r\n`.

Requests carry `"IWant"`: `rAluno`, `addAluno`, `updateAluno`, `delAluno`,
`changeCard`, `changeMobile` (both with `Amount`), `updateAlunos` or
`nothing`. Replies carry `"ThereIs"`: either `"Aluno"` with `HowMuch`
followed by the student records, or `"Feedback"` with `youTry`,
`Acknowledge` (`noError` or `Error`) and usually `ErrorText`.

Asking for `rAluno` with `Matricula` 0 returns every student, the most
recently stored first and without passwords. An `updateAlunos` request holds
a list of entries; each one debits the meal price from the balance named in
its `credit` field (`Card` or `Mobile`). An unknown request gets an `Error`
feedback.

## What the package does not do

- It has no graphical windows; the command line is the only front end.
- It does not include the turnstile terminal itself; it only talks to one
  over TCP.
- Storage is SQLite only.

## Running the tests

Install the `test` extra and run pytest from the project directory.