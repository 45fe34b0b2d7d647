"""
Client tests - one message per connection
"""

import pytest

import receiver_client
from receiver_client import main, send_message
from receiver_server import open_listener

LOCALHOST = "127.0.0.1"


@pytest.fixture
def listener():
    s = open_listener(0)
    s.settimeout(5)
    yield s
    s.close()


def read_one(listener):
    conn, _ = listener.accept()
    with conn:
        conn.settimeout(5)
        chunks = []
        while True:
            data = conn.recv(4096)
            if not data:
                break
            chunks.append(data)
    return b"".join(chunks)


def test_send_message_text(listener):
    assert send_message(LOCALHOST, listener.getsockname()[1], "hello") == 5
    assert read_one(listener) == b"hello"


def test_send_message_bytes(listener):
    assert send_message(LOCALHOST, listener.getsockname()[1], b"a\0b") == 3
    assert read_one(listener) == b"a\0b"


def test_main_sends_single_message(listener, capsys):
    port = listener.getsockname()[1]
    assert main(["receiver_client.py", LOCALHOST, str(port), "terminate"]) == 0
    assert read_one(listener) == b"terminate"
    assert f"[SENT] 9 bytes -> {LOCALHOST}:{port}" in capsys.readouterr().out


def test_main_prompt_uses_one_connection_per_line(listener, monkeypatch):
    replies = iter(["hello", "terminate", "never sent"])
    monkeypatch.setattr("builtins.input", lambda prompt="": next(replies))

    assert main(["receiver_client.py", LOCALHOST, str(listener.getsockname()[1])]) == 0
    assert read_one(listener) == b"hello"
    assert read_one(listener) == b"terminate"


def test_main_usage(capsys):
    assert main(["receiver_client.py"]) == -1
    assert capsys.readouterr().err.startswith("Usage: receiver_client.py <host> <port>")


def test_main_bad_port(capsys):
    assert main(["receiver_client.py", LOCALHOST, "http", "hi"]) == -1
    assert "invalid port" in capsys.readouterr().err


def test_main_reports_connection_failure(monkeypatch, capsys):
    def refuse(*args, **kwargs):
        raise ConnectionRefusedError(111, "Connection refused")

    monkeypatch.setattr(receiver_client.socket, "create_connection", refuse)
    assert main(["receiver_client.py", LOCALHOST, "9", "hi"]) == -1
    assert capsys.readouterr().err.startswith("Error: ")
