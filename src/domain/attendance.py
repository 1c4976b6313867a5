"""
Attendance toggle rules for the host check-in screen.

The toggle is a two-state flip between REGISTERED and CHECKED_IN.
NO_SHOW is only set by deposit capture/reconciliation outside this
service; once an attendee is NO_SHOW the toggle refuses to move them.
"""

from .exceptions import InvalidStatusTransition
from .ports import AttendeeStatus

TOGGLEABLE = frozenset({AttendeeStatus.REGISTERED, AttendeeStatus.CHECKED_IN})


def next_attendance_status(current: AttendeeStatus) -> AttendeeStatus:
    """Status produced by a single host toggle from `current`."""
    check_toggle(current, AttendeeStatus.CHECKED_IN)
    if current == AttendeeStatus.CHECKED_IN:
        return AttendeeStatus.REGISTERED
    return AttendeeStatus.CHECKED_IN


def check_toggle(current: AttendeeStatus, desired: AttendeeStatus) -> None:
    """
    Validate a host-requested status change.

    Raises:
        InvalidStatusTransition: desired is not toggleable, or current is NO_SHOW
    """
    if desired not in TOGGLEABLE:
        raise InvalidStatusTransition(f"cannot set status to {desired.value}")
    if current not in TOGGLEABLE:
        raise InvalidStatusTransition(f"cannot change status from {current.value}")
