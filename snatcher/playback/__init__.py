"""
Playback package: the player state machine, pause control and status snapshots.
"""

from .controller import PlaybackController
from .status import Status, MonitorState
from .player import (
    Player,
    PlayerState,
    ProgressEvent,
    FinishedEvent,
    ClosedEvent,
)

__all__ = [
    'PlaybackController',
    'Status',
    'MonitorState',
    'Player',
    'PlayerState',
    'ProgressEvent',
    'FinishedEvent',
    'ClosedEvent',
]
