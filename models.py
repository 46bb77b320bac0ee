from dataclasses import dataclass, field, asdict
import threading

from certs import DEFAULT_EVENT_LABEL

DEFAULT_EVENT = "Community Event"


@dataclass(frozen=True)
class Participant:
    name: str
    email: str = ""

    def to_dict(self): return asdict(self)


@dataclass
class EventSession:
    """Current event and uploaded roster. Lives as long as the process;
    handlers read it through snapshot() before rendering."""
    current_event: str = DEFAULT_EVENT
    participants: list = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def snapshot(self):
        with self._lock:
            return self.current_event, tuple(self.participants)

    def replace_roster(self, participants, event: str = None):
        with self._lock:
            if event:
                self.current_event = event
            self.participants = list(participants)
            return self.current_event, len(self.participants)

    def resolve_event(self, requested: str = None) -> str:
        requested = (requested or "").strip()
        if requested:
            return requested
        event, _ = self.snapshot()
        return (event or "").strip() or DEFAULT_EVENT_LABEL
