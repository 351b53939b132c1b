import signal
from enum import Enum


class SignalKind(Enum):
    INTERRUPT = signal.SIGINT
    TERMINATE = signal.SIGTERM
    KILL = signal.SIGKILL
