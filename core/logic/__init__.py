"""
Core Business Logic Package.

Contains business logic that operates on pure data models.
Separated from models to maintain clean architecture.

Exports:
    State transitions: can_job_transition, is_job_terminal,
    get_job_terminal_states, get_job_active_states
"""

from .transitions import (
    can_job_transition,
    get_job_terminal_states,
    get_job_active_states,
    is_job_terminal,
    get_job_update_sources,
)

__all__ = [
    'can_job_transition',
    'get_job_terminal_states',
    'get_job_active_states',
    'is_job_terminal',
    'get_job_update_sources',
]
