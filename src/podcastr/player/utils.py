"""Display helpers for the podcastr player."""


def format_duration(seconds: float) -> str:
    """Format a duration as HH:MM:SS.

    Args:
        seconds: Duration in seconds (fractions are dropped, negatives clamp to 0)

    Returns:
        Zero-padded time string, e.g. "01:02:03"
    """
    total = max(0, int(seconds))
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"
