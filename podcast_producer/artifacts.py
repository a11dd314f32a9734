"""Project directories and the script.json episode artifact."""

import json
import os
import re

from podcast_producer.constants import OUTPUT_DIR
from podcast_producer.models import Episode, Segment

SUBDIRS = ["final"]


def slugify(title: str) -> str:
    """Convert an episode title to a project directory slug.

    "Quantum Fields & Faith" → "quantum_fields_faith"
    """
    slug = re.sub(r"[^\w]+", "_", title).strip("_").lower()
    return slug or "episode"


def init_project_dir(slug: str, output_base: str = OUTPUT_DIR) -> str:
    """Create output/<slug>/ and its subdirectories. Returns the project path."""
    project_dir = os.path.join(output_base, slug)
    for subdir in SUBDIRS:
        os.makedirs(os.path.join(project_dir, subdir), exist_ok=True)
    return project_dir


def write_artifact(project_dir: str, filename: str, data: dict) -> str:
    """Write JSON artifact to project_dir/filename.

    Returns path to the written file.
    """
    path = os.path.join(project_dir, filename)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
    return path


def load_artifact(project_dir: str, filename: str) -> dict | None:
    """Read JSON artifact. Returns None if file doesn't exist."""
    path = os.path.join(project_dir, filename)
    if not os.path.exists(path):
        return None
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def episode_to_dict(episode: Episode) -> dict:
    return {
        "metadata": {
            "title": episode.title,
            "description": episode.description,
            "topic": episode.topic,
            "minutes": episode.minutes,
            "deep": episode.deep,
            "subchapter_id": episode.subchapter_id,
        },
        "segments": [
            {"speaker": s.speaker, "voiceId": s.voice_id, "text": s.text, "tone": s.tone}
            for s in episode.segments
        ],
    }


def episode_from_dict(data: dict) -> Episode:
    metadata = data.get("metadata", {})
    return Episode(
        segments=tuple(
            Segment(
                speaker=s["speaker"],
                voice_id=s["voiceId"],
                text=s["text"],
                tone=s.get("tone"),
            )
            for s in data.get("segments", [])
        ),
        title=metadata.get("title", ""),
        description=metadata.get("description", ""),
        topic=metadata.get("topic", ""),
        minutes=metadata.get("minutes", 0),
        deep=metadata.get("deep", False),
        subchapter_id=metadata.get("subchapter_id", ""),
    )


def save_episode(project_dir: str, episode: Episode) -> str:
    """Write the episode to script.json, replacing any previous one."""
    return write_artifact(project_dir, "script.json", episode_to_dict(episode))


def load_episode(project_dir: str) -> Episode | None:
    data = load_artifact(project_dir, "script.json")
    if data is None:
        return None
    return episode_from_dict(data)


def get_project_status(project_dir: str) -> dict:
    """Return dict describing the state of each pipeline step."""
    status = {}

    data = load_artifact(project_dir, "script.json")
    if data is not None:
        status["script"] = {"state": "done", "segments": len(data.get("segments", []))}
    else:
        status["script"] = {"state": "pending"}

    final_dir = os.path.join(project_dir, "final")
    files = os.listdir(final_dir) if os.path.isdir(final_dir) else []
    audio = [f for f in files if f.endswith((".wav", ".mp3"))]
    transcripts = [f for f in files if f.endswith("_script.txt")]
    status["audio"] = {"state": "done", "files": len(audio)} if audio else {"state": "pending"}
    status["transcript"] = {"state": "done" if transcripts else "pending"}

    return status


def list_projects(output_base: str = OUTPUT_DIR) -> list[str]:
    """List all project slugs under the output directory.

    Returns sorted list of directory names that contain a script.json.
    """
    if not os.path.exists(output_base):
        return []
    projects = []
    for name in os.listdir(output_base):
        project_dir = os.path.join(output_base, name)
        if os.path.isdir(project_dir):
            script = os.path.join(project_dir, "script.json")
            if os.path.exists(script):
                projects.append(name)
    return sorted(projects)
