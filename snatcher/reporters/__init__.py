"""
Reporters package: render Player events in the terminal.
"""

from .base import (
    StatusReporter,
    format_status_line,
    progress_percent,
    report_event,
    should_save_position,
    saved_position_hint,
    save_position,
)
from .ticker import TickerReporter, Outcome

__all__ = [
    'StatusReporter',
    'format_status_line',
    'progress_percent',
    'report_event',
    'should_save_position',
    'saved_position_hint',
    'save_position',
    'TickerReporter',
    'Outcome',
]
