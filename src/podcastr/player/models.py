"""Data models for the podcastr player.

Provides the Episode value type and a loader for JSON episode lists.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional


class EpisodeFileError(ValueError):
    """Raised when an episode list file cannot be parsed."""


@dataclass(frozen=True)
class Episode:
    """A playable podcast episode.

    Episodes are supplied from outside the player and never modified by it.

    Attributes:
        id: Unique episode ID
        title: Display title
        members: Hosts and guests, as a display string
        thumbnail: Thumbnail image reference
        url: Media resource reference (local path or http(s) URL)
        duration: Duration in seconds
        published_at: Optional publication date string
        description: Optional episode description
    """

    id: str
    title: str
    members: str
    thumbnail: str
    url: str
    duration: int
    published_at: Optional[str] = None
    description: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Episode":
        """Create an Episode from a dictionary.

        Accepts the flat shape produced by to_dict() as well as the feed API
        shape, where the media reference and duration live under "file".

        Args:
            data: Episode dictionary

        Returns:
            Episode instance

        Raises:
            EpisodeFileError: If required fields are missing or invalid
        """
        media = data.get("file") or {}
        url = data.get("url", media.get("url"))
        duration = data.get("duration", media.get("duration"))

        missing = [
            name
            for name, value in (("id", data.get("id")), ("title", data.get("title")), ("url", url), ("duration", duration))
            if value is None
        ]
        if missing:
            raise EpisodeFileError(f"Episode is missing required field(s): {', '.join(missing)}")

        try:
            duration_seconds = int(duration)
        except (TypeError, ValueError) as e:
            raise EpisodeFileError(f"Invalid duration for episode {data['id']}: {duration!r}") from e

        if duration_seconds < 0:
            raise EpisodeFileError(f"Negative duration for episode {data['id']}: {duration_seconds}")

        return cls(
            id=str(data["id"]),
            title=data["title"],
            members=data.get("members", ""),
            thumbnail=data.get("thumbnail", ""),
            url=url,
            duration=duration_seconds,
            published_at=data.get("published_at"),
            description=data.get("description"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert Episode to a flat dictionary.

        Returns:
            Dictionary representation of the episode
        """
        return {
            "id": self.id,
            "title": self.title,
            "members": self.members,
            "thumbnail": self.thumbnail,
            "url": self.url,
            "duration": self.duration,
            "published_at": self.published_at,
            "description": self.description,
        }


def load_episodes(path: Path) -> list[Episode]:
    """Load an episode list from a JSON file.

    The file holds either a list of episodes or an object with an
    "episodes" list.

    Args:
        path: Path to the JSON file

    Returns:
        Episodes in file order

    Raises:
        FileNotFoundError: If the file does not exist
        EpisodeFileError: If the content is not a valid episode list
    """
    if not path.exists():
        raise FileNotFoundError(f"Episode file not found: {path}")

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise EpisodeFileError(f"Invalid JSON in {path}: {e}") from e

    if isinstance(data, dict):
        data = data.get("episodes")

    if not isinstance(data, list):
        raise EpisodeFileError(f"Expected a list of episodes in {path}")

    episodes = []
    for entry in data:
        if not isinstance(entry, dict):
            raise EpisodeFileError(f"Expected an object per episode in {path}, got {type(entry).__name__}")
        episodes.append(Episode.from_dict(entry))
    return episodes
