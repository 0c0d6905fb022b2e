from __future__ import annotations

import signal
import socket
import struct
import subprocess
import sys
import threading
from pathlib import Path

import pytest

import palconcli

ROOT = Path(__file__).resolve().parents[1]


def frame(kind: int, payload: bytes = b"") -> bytes:
    return struct.pack("<iii", len(payload), 0, kind) + payload + b"\x00\x00"


def recv_exact(conn: socket.socket, n: int) -> bytes:
    data = b""
    while len(data) < n:
        chunk = conn.recv(n - len(data))
        if not chunk:
            raise ConnectionError("closed")
        data += chunk
    return data


class FakeServer(threading.Thread):
    """Accepts one client and answers each request with the next canned reply."""

    def __init__(self, replies):
        super().__init__(daemon=True)
        self.replies = list(replies)
        self.requests = []
        self.sock = socket.socket()
        self.sock.bind(("127.0.0.1", 0))
        self.sock.listen(1)
        self.sock.settimeout(5)
        self.address = "127.0.0.1:%d" % self.sock.getsockname()[1]

    def run(self):
        conn, _ = self.sock.accept()
        with conn:
            conn.settimeout(5)
            for reply in self.replies:
                length, _, kind = struct.unpack("<iii", recv_exact(conn, 12))
                body = recv_exact(conn, length + 2)[:-2]
                self.requests.append((kind, body))
                conn.sendall(reply)
            while conn.recv(4096):
                pass
        self.sock.close()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv("SERVER_ADDRESS", raising=False)
    monkeypatch.delenv("SERVER_PASSWORD", raising=False)


def test_exec_prints_payload(capsys):
    srv = FakeServer([frame(2), frame(0, b"Broadcasted: Hello!\n")])
    srv.start()
    rc = palconcli.main(["--address", srv.address, "--password", "pw", "exec", "Broadcast", "Hello!"])
    srv.join(5)
    assert rc == 0
    assert capsys.readouterr().out == "Broadcasted: Hello!\n"
    assert srv.requests == [(3, b"pw"), (2, b"Broadcast Hello!")]


def test_ping(capsys):
    srv = FakeServer([frame(2), frame(0)])
    srv.start()
    rc = palconcli.main(["--address", srv.address, "--password", "pw", "ping"])
    srv.join(5)
    assert rc == 0
    assert "pong from" in capsys.readouterr().out
    assert srv.requests[1] == (-1, b"")


def test_bad_password(capsys):
    srv = FakeServer([frame(-1)])
    srv.start()
    rc = palconcli.main(["--address", srv.address, "--password", "nope", "exec", "Info"])
    srv.join(5)
    assert rc == 1
    assert "Failed to authenticate" in capsys.readouterr().err


def test_password_from_env(monkeypatch, capsys):
    srv = FakeServer([frame(2), frame(0, b"ok")])
    srv.start()
    monkeypatch.setenv("SERVER_ADDRESS", srv.address)
    monkeypatch.setenv("SERVER_PASSWORD", "envpw")
    rc = palconcli.main(["exec", "Info"])
    srv.join(5)
    assert rc == 0
    assert srv.requests[0] == (3, b"envpw")


def test_bad_address(capsys):
    rc = palconcli.main(["--address", "host:notaport", "exec", "Info"])
    assert rc == 1
    err = capsys.readouterr().err
    assert "IO error" in err
    assert "notaport" in err


def run_console(address):
    return subprocess.Popen(
        [sys.executable, str(ROOT / "palconcli.py"), "--address", address, "--password", "pw", "console", "--plain"],
        cwd=ROOT,
        stdin=subprocess.PIPE,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
    )


@pytest.mark.skipif(sys.platform == "win32", reason="pipe stdin and SIGINT are POSIX here")
def test_plain_console_runs_commands_from_stdin():
    srv = FakeServer([frame(2), frame(0, b"Pals online: 0")])
    srv.start()
    proc = run_console(srv.address)
    out, err = proc.communicate(b"ShowPlayers\n/quit\n", timeout=10)
    srv.join(5)
    assert proc.returncode == 0, err
    assert b"Interactive RCON. Type /quit to exit." in out
    assert b"Pals online: 0" in out
    assert srv.requests == [(3, b"pw"), (2, b"ShowPlayers")]


@pytest.mark.skipif(sys.platform == "win32", reason="pipe stdin and SIGINT are POSIX here")
def test_plain_console_exits_on_sigint():
    srv = FakeServer([frame(2)])
    srv.start()
    proc = run_console(srv.address)
    try:
        assert proc.stdout.readline() == b"Interactive RCON. Type /quit to exit.\n"
        assert proc.stdout.read(2) == b"> "
        proc.send_signal(signal.SIGINT)
        proc.wait(timeout=4)
    finally:
        if proc.poll() is None:
            proc.kill()
            proc.wait()
        proc.stdin.close()
        proc.stdout.close()
        proc.stderr.close()
    srv.join(5)
    assert proc.returncode == 0


def test_subcommand_required():
    with pytest.raises(SystemExit):
        palconcli.build_parser().parse_args([])


def test_console_options():
    args = palconcli.build_parser().parse_args(["--timeout", "2.5", "console", "--plain", "--keepalive", "10"])
    assert args.timeout == 2.5
    assert args.plain is True
    assert args.keepalive == 10.0
