# event_log.py
import json
from datetime import datetime


def log_event(path, data: dict):
    """Append one server event to the journal (JSON Lines)."""
    with open(path, "a", encoding="utf-8") as f:
        line = json.dumps({
            "timestamp": datetime.now().isoformat(),
            "data": data
        }, ensure_ascii=False)
        f.write(line + "\n")
