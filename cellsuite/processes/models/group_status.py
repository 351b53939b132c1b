from enum import Enum


class GroupStatus(Enum):
    FORMING = "FORMING"
    UP = "UP"
    TEARING_DOWN = "TEARING_DOWN"
    DOWN = "DOWN"
