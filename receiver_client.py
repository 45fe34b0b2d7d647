# receiver_client.py
import socket
import sys


def send_message(host, port, message, timeout=5.0):
    """Open a connection, send one message, close. Returns bytes sent."""
    data = message.encode() if isinstance(message, str) else bytes(message)
    with socket.create_connection((host, port), timeout=timeout) as s:
        s.sendall(data)
        s.shutdown(socket.SHUT_WR)
    return len(data)


def main(argv=None):
    argv = sys.argv if argv is None else argv
    if len(argv) not in (3, 4):
        print(f"Usage: {argv[0]} <host> <port> [message]", file=sys.stderr)
        return -1

    host = argv[1]
    try:
        port = int(argv[2])
    except ValueError:
        print(f"Error: invalid port: {argv[2]!r}", file=sys.stderr)
        return -1

    try:
        if len(argv) == 4:
            n = send_message(host, port, argv[3])
            print(f"[SENT] {n} bytes -> {host}:{port}")
            return 0

        # the server reads once per connection, so each line gets its own
        print(f"[TARGET] {host}:{port} (type and Enter, 'terminate' stops the server)")
        while True:
            line = input("> ")
            n = send_message(host, port, line)
            print(f"[SENT] {n} bytes")
            if line == "terminate":
                return 0
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return -1
    except (EOFError, KeyboardInterrupt):
        print()
        return 0


if __name__ == "__main__":
    sys.exit(main())
