"""pairlink - pair a PC and a phone with a code and relay messages."""

__version__ = "0.1.0"
