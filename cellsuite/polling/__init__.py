from .conditions import (
    Condition as Condition,
    contains as contains,
    equal as equal,
    has_length as has_length,
    is_true as is_true,
    negate as negate,
    satisfies as satisfies,
)
from .consistently import consistently as consistently
from .eventually import eventually as eventually
from .poll_timing import PollTiming as PollTiming
from .poller import Poller as Poller
