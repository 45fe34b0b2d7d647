#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
socket-receiver - TCP server
Accepts one client at a time, reads a single buffer from it, prints the
peer address and the message, and exits once a client sends `terminate`.

Usage: receiver_server.py <port>
"""

import errno
import select
import signal
import socket
import sys
import threading
import time

from event_log import log_event
from receiver_config import BUFFER_SIZE, MAXPENDING, initialize
from receiver_errors import (
    AcceptError,
    BindError,
    ListenError,
    ReceiveError,
    ServerError,
    SocketCreationError,
)

HOST = "0.0.0.0"
TERMINATE = b"terminate"
POLL_INTERVAL = 0.2  # seconds between stop-event checks

# accept() failures that only concern the pending connection
RETRY_ACCEPT_ERRORS = {
    errno.ECONNABORTED,
    errno.EPROTO,
    errno.EINTR,
}
# resource exhaustion: retrying at once would fail again
BACKOFF_ACCEPT_ERRORS = {
    errno.EMFILE,
    errno.ENFILE,
    errno.ENOBUFS,
    errno.ENOMEM,
}
TRANSIENT_ACCEPT_ERRORS = RETRY_ACCEPT_ERRORS | BACKOFF_ACCEPT_ERRORS

# journals that already failed; reported once each
broken_journals = set()


def note(log_file, data):
    if not log_file or log_file in broken_journals:
        return
    try:
        log_event(log_file, data)
    except OSError as e:
        broken_journals.add(log_file)
        print(f"Error: (journal) {log_file}: {e.strerror or e}; journal disabled", file=sys.stderr)


def open_listener(port, backlog=MAXPENDING):
    """Create a TCP socket bound to the wildcard address and put it in listen mode."""
    try:
        s = socket.socket(socket.AF_INET, socket.SOCK_STREAM, socket.IPPROTO_TCP)
    except OSError as e:
        raise SocketCreationError("socket", e) from e

    try:
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            s.bind((HOST, port))
        except (OSError, OverflowError) as e:
            raise BindError("bind", e) from e
        try:
            s.listen(backlog)
        except OSError as e:
            raise ListenError("listen", e) from e
    except BaseException:
        s.close()
        raise
    return s


def accept_client(listener, stop_event=None, poll_interval=POLL_INTERVAL):
    """
    Wait for the next connection and return (conn, addr).
    Without a stop event this blocks until a client arrives. With one,
    returns None as soon as the event is set.
    """
    if stop_event is None:
        try:
            return listener.accept()
        except OSError as e:
            raise AcceptError("accept", e) from e

    # non-blocking, so a connection that vanishes after select() cannot hang accept()
    listener.setblocking(False)
    while not stop_event.is_set():
        try:
            readable, _, _ = select.select([listener], [], [], poll_interval)
            if not readable:
                continue
            conn, addr = listener.accept()
        except BlockingIOError:
            continue
        except (OSError, ValueError) as e:
            raise AcceptError("accept", e) from e
        conn.setblocking(True)
        return conn, addr
    return None


def receive_message(conn, buffer_size=BUFFER_SIZE) -> bytes:
    """One recv() of at most buffer_size bytes, cut at the first NUL."""
    try:
        data = conn.recv(buffer_size)
    except OSError as e:
        raise ReceiveError("recv", e) from e
    return data.split(b"\0", 1)[0]


def is_transient(err: ServerError) -> bool:
    if isinstance(err, ReceiveError):
        return True
    return isinstance(err, AcceptError) and err.errno in TRANSIENT_ACCEPT_ERRORS


def back_off(stop_event=None, delay=POLL_INTERVAL):
    if stop_event is not None:
        stop_event.wait(delay)
    else:
        time.sleep(delay)


def report_error(err, log_file=None):
    print(f"Error: {err}", file=sys.stderr)
    note(log_file, {"type": "ERROR", "kind": type(err).__name__, "msg": str(err)})


def tcp_receiver(listener, buffer_size=BUFFER_SIZE, stop_event=None,
                 keep_going=False, log_file=None):
    """
    Service clients one at a time until one sends `terminate`.

    Accept and receive failures end the loop unless keep_going is set, in
    which case per-connection failures are reported and the next client is
    accepted. A set stop_event ends the loop between clients.
    """
    while True:
        try:
            accepted = accept_client(listener, stop_event)
        except AcceptError as e:
            if keep_going and is_transient(e):
                report_error(e, log_file)
                if e.errno in BACKOFF_ACCEPT_ERRORS:
                    back_off(stop_event)
                continue
            raise
        if accepted is None:
            note(log_file, {"type": "STOP", "reason": "shutdown"})
            return

        conn, addr = accepted
        with conn:
            print(f"[client: {addr[0]}]")
            note(log_file, {"type": "CLIENT", "ip": addr[0], "port": addr[1]})

            try:
                msg = receive_message(conn, buffer_size)
            except ReceiveError as e:
                if keep_going:
                    report_error(e, log_file)
                    continue
                raise

            text = msg.decode(errors="ignore")
            print(f"message: {text}")
            note(log_file, {"type": "MESSAGE", "ip": addr[0], "msg": text, "bytes": len(msg)})

            if msg == TERMINATE:
                note(log_file, {"type": "STOP", "reason": "terminate"})
                return


def tcp_server(config, stop_event=None):
    """Run the receiver on config.port; the listener is closed on every exit path."""
    with open_listener(config.port, config.backlog) as s:
        print(f"[LISTEN] {HOST}:{config.port}")
        note(config.log_file, {"type": "LISTEN", "host": HOST, "port": config.port})
        tcp_receiver(
            s,
            buffer_size=config.buffer_size,
            stop_event=stop_event,
            keep_going=config.keep_going,
            log_file=config.log_file,
        )


def main(argv=None, stop_event=None):
    argv = sys.argv if argv is None else argv
    config = None
    try:
        config = initialize(argv)
        tcp_server(config, stop_event)
    except ServerError as e:
        report_error(e, config.log_file if config else None)
        return -1
    return 0


def run():
    stop_event = threading.Event()

    def signal_handler(sig, frame):
        print(f"\n[STOP] signal {sig}", file=sys.stderr)
        stop_event.set()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)
    sys.exit(main(sys.argv, stop_event))


if __name__ == "__main__":
    run()
