"""Shared subscription seats and invitations."""

from pocketbook.subscriptions.seats import SeatAllocator

__all__ = ["SeatAllocator"]
