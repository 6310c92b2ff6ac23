"""Podcastr player.

Holds the player state store, the device synchronization layer that keeps
an audio device in step with it, and the Textual front end that drives both.
"""

__version__ = "0.1.0"
