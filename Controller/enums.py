from enum import Enum, auto

# Which way lines are propagated inside a frame
class Direction(Enum):
    TO_MASK = auto()
    TO_IMAGE = auto()

# Colour of the status line
class StatusKind(Enum):
    INFO = auto()
    OK = auto()
    ERROR = auto()
