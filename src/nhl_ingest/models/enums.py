from enum import Enum, IntEnum


class GameType(IntEnum):
    PRESEASON = 1
    REGULAR_SEASON = 2
    PLAYOFFS = 3


class PlayerCategory(str, Enum):
    SKATER = "skater"
    GOALIE = "goalie"


class IngestionState(str, Enum):
    IDLE = "IDLE"
    RESUMING = "RESUMING"
    ITERATING_TEAMS = "ITERATING_TEAMS"
    ITERATING_PLAYERS = "ITERATING_PLAYERS"
    FLUSHING = "FLUSHING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
