"""Playback device services for the podcastr player."""
