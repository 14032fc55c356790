"""Event bus, TCP transport, failure detector and BEB/RB/URB broadcast for local nodes."""

__version__ = "0.1.0"