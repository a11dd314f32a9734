"""Data models for podcast production."""

from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True)
class ChunkPlan:
    index: int              # 1-based position in the run
    total_chunks: int
    minutes: int
    target_word_count: int
    is_first: bool
    is_final: bool


@dataclass(frozen=True)
class Segment:
    speaker: str
    voice_id: str          # one of the two canonical voices after sanitizing
    text: str
    tone: str | None = None


@dataclass(frozen=True)
class Episode:
    """One generation run's output. Replaced wholesale, never edited."""

    segments: tuple[Segment, ...]
    title: str = ""
    description: str = ""
    topic: str = ""
    minutes: int = 0
    deep: bool = False
    subchapter_id: str = ""

    def __len__(self) -> int:
        return len(self.segments)


class PlaybackStatus(Enum):
    IDLE = "idle"
    PLAYING = "playing"
    SUSPENDED = "suspended"


@dataclass(frozen=True)
class PlaybackState:
    status: PlaybackStatus = PlaybackStatus.IDLE
    current_index: int = -1
