"""Data models for the room booking dialog."""

from .booking import BookingRequest, Candidate
from .envelope import InvocationEvent, InvocationResponse
from .session import DialogState, SessionAttributes

__all__ = [
    "BookingRequest",
    "Candidate",
    "DialogState",
    "InvocationEvent",
    "InvocationResponse",
    "SessionAttributes",
]
