"""
Royalty-free demo track lookup
"""
import random
from typing import Dict, List, Optional
from core.logger import setup_logger

logger = setup_logger(__name__)

DEMO_TRACKS: List[Dict[str, str]] = [
    {
        "title": "Peaceful Ambient",
        "url": "https://www.soundjay.com/misc/sounds/bell-ringing-05.wav",
        "duration": "0:30",
    },
    {
        "title": "Gentle Piano",
        "url": "https://archive.org/download/testmp3testfile/mpthreetest.mp3",
        "duration": "0:27",
    },
    {
        "title": "Nature Sounds",
        "url": "https://www.soundjay.com/misc/sounds/bell-ringing-05.wav",
        "duration": "1:00",
    },
]

class MusicService:
    """Picks a track from a small royalty-free catalogue"""

    def __init__(self, tracks: Optional[List[Dict[str, str]]] = None, rng: Optional[random.Random] = None):
        self.tracks = tracks or DEMO_TRACKS
        self.rng = rng or random.Random()

    async def lookup_track(self, query: str) -> Dict[str, str]:
        """
        Find a track for a query

        Returns:
            Dict with title, url and duration label
        """
        query = (query or "").strip().lower()
        matches = [t for t in self.tracks if query and any(w in t["title"].lower() for w in query.split())]
        track = dict(self.rng.choice(matches or self.tracks))
        logger.info(f"Music lookup {query!r} -> {track['title']}")
        return track
