"""Shared fixtures for podcast producer tests."""

import pytest

from fakes import FakeOutput, FakeSynthesizer
from podcast_producer.constants import FEMALE_PERSONA, FEMALE_VOICE, MALE_PERSONA, MALE_VOICE
from podcast_producer.models import Episode, Segment


@pytest.fixture
def sample_segments():
    """Pre-built sanitized segments alternating between the hosts."""
    return (
        Segment(speaker=MALE_PERSONA, voice_id=MALE_VOICE, text="Have you ever felt time stop?", tone="intrigued"),
        Segment(speaker=FEMALE_PERSONA, voice_id=FEMALE_VOICE, text="Every time I breathe slowly.", tone=None),
        Segment(speaker=MALE_PERSONA, voice_id=MALE_VOICE, text="Let's explore that.", tone="warm"),
    )


@pytest.fixture
def sample_episode(sample_segments):
    return Episode(
        segments=sample_segments,
        title="Quantum Fields",
        description="Consciousness and the observer effect",
        minutes=5,
        subchapter_id="1.2",
    )


@pytest.fixture
def fake_synthesizer():
    return FakeSynthesizer()


@pytest.fixture
def fake_output():
    return FakeOutput()


@pytest.fixture
def manual_output():
    return FakeOutput(manual=True)
