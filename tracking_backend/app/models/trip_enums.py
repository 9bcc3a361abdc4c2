"""
Trip-related enumerations.
"""

import enum


class TripStatus(str, enum.Enum):
    """Trip status enumeration."""
    SCHEDULED = "SCHEDULED"  # Sold and waiting at the terminal
    DEPARTED = "DEPARTED"  # On the road, positions accepted
    COMPLETED = "COMPLETED"  # Arrived; tracking switched off externally
    CANCELLED = "CANCELLED"  # Trip cancelled
