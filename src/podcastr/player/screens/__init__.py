"""Textual screens for the podcastr player."""
