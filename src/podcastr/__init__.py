"""Podcastr - a queue-driven podcast episode player.

This package provides:
- An observable player state store (queue, current episode, play/loop/shuffle)
- Reconciliation between that store and an audio playback device
- A terminal player built on Textual
"""

__version__ = "0.1.0"
