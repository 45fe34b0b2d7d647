# receiver_config.py
import os
from dataclasses import dataclass
from typing import Optional

from receiver_errors import UsageError

MAXPENDING = 5
BUFFER_SIZE = 8192  # one BUFSIZ

ENV_BUFSIZE = "RECEIVER_BUFSIZE"
ENV_KEEP_GOING = "RECEIVER_KEEP_GOING"
ENV_LOG_FILE = "RECEIVER_LOG_FILE"

TRUTHY = {"1", "true", "yes", "on"}
FALSY = {"", "0", "false", "no", "off"}


@dataclass(frozen=True)
class ServerConfig:
    port: int
    backlog: int = MAXPENDING
    buffer_size: int = BUFFER_SIZE
    keep_going: bool = False
    log_file: Optional[str] = None


def parse_port(text: str) -> int:
    text = text.strip()
    if not (text.isascii() and text.isdigit()):
        raise UsageError(f"invalid port: {text!r}")
    port = int(text)
    if not 1 <= port <= 65535:
        raise UsageError(f"port out of range (1-65535): {port}")
    return port


def parse_flag(name: str, text: str) -> bool:
    value = text.strip().lower()
    if value in TRUTHY:
        return True
    if value in FALSY:
        return False
    raise UsageError(f"{name} must be a boolean, got {text!r}")


def load_settings(environ=None) -> dict:
    """Read the tuning knobs from the environment, over the defaults."""
    environ = os.environ if environ is None else environ
    settings = {
        "buffer_size": BUFFER_SIZE,
        "keep_going": False,
        "log_file": None,
    }

    raw = environ.get(ENV_BUFSIZE)
    if raw is not None:
        digits = raw.strip()
        if not (digits.isascii() and digits.isdigit()) or int(digits) < 1:
            raise UsageError(f"{ENV_BUFSIZE} must be a positive integer, got {raw!r}")
        settings["buffer_size"] = int(digits)

    raw = environ.get(ENV_KEEP_GOING)
    if raw is not None:
        settings["keep_going"] = parse_flag(ENV_KEEP_GOING, raw)

    raw = environ.get(ENV_LOG_FILE)
    if raw:
        try:
            open(raw, "a", encoding="utf-8").close()
        except OSError as e:
            raise UsageError(f"{ENV_LOG_FILE} is not writable: {raw}: {e.strerror or e}") from e
        settings["log_file"] = raw

    return settings


def initialize(argv, environ=None) -> ServerConfig:
    """Build the configuration from `<prog> <port>` and the environment."""
    prog = os.path.basename(argv[0]) if argv else "receiver_server.py"
    if len(argv) != 2:
        raise UsageError(f"Usage: {prog} <port>")

    port = parse_port(argv[1])
    return ServerConfig(port=port, **load_settings(environ))
