"""CLI interface with subcommand routing and pipeline orchestration."""

import argparse
import asyncio
import logging
import os
import shutil
import sys

from podcast_producer.artifacts import (
    get_project_status,
    init_project_dir,
    list_projects,
    load_episode,
    save_episode,
    slugify,
)
from podcast_producer.assembly import AudioDownloader
from podcast_producer.config import Settings, load_settings
from podcast_producer.constants import (
    DEFAULT_MINUTES,
    EDGE_VOICES,
    FEMALE_PERSONA,
    FEMALE_VOICE,
    FREE_ROAM_CHAPTER,
    FREE_ROAM_DESCRIPTION,
    FREE_ROAM_ID,
    FREE_ROAM_SUBCHAPTER,
    MALE_PERSONA,
    MALE_VOICE,
    VERSION,
)
from podcast_producer.errors import PodcastError
from podcast_producer.exporter import export_audio, export_transcript, write_manifest
from podcast_producer.llm import GeminiTextClient
from podcast_producer.models import Episode, PlaybackState, PlaybackStatus
from podcast_producer.planner import plan_chunks
from podcast_producer.player import FfplayOutput, PlaybackController
from podcast_producer.prompts import TopicContext, load_bibliography
from podcast_producer.script import generate_script
from podcast_producer.tts import create_synthesizer

PLAYBACK_HELP = "Commands: [Enter]/p play-pause, s stop, <n> jump to segment n, q quit"


def setup_logging(verbose: bool = False) -> None:
    """Configure the root logger for console output."""
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt="%H:%M:%S"
    ))
    root.addHandler(handler)


def _check_binary(name: str) -> None:
    """Verify an ffmpeg-suite binary is installed."""
    if not shutil.which(name):
        print(f"Error: {name} is required but not found.", file=sys.stderr)
        print("Install ffmpeg (which ships ffplay) with: brew install ffmpeg", file=sys.stderr)
        raise SystemExit(1)


def _get_project_dir(settings: Settings, slug: str) -> str:
    """Get project directory path, verify it holds an episode."""
    project_dir = os.path.join(settings.output_dir, slug)
    if not os.path.exists(os.path.join(project_dir, "script.json")):
        print(f"Error: Project '{slug}' not found.", file=sys.stderr)
        print("Run 'podcast-producer new ...' to generate an episode.", file=sys.stderr)
        raise SystemExit(1)
    return project_dir


def _load_project(settings: Settings, slug: str) -> tuple[str, Episode]:
    project_dir = _get_project_dir(settings, slug)
    episode = load_episode(project_dir)
    if not episode.segments:
        print(f"Error: Project '{slug}' has an empty script.", file=sys.stderr)
        raise SystemExit(1)
    return project_dir, episode


def _topic_from_args(args) -> TopicContext:
    if args.subchapter:
        return TopicContext(
            chapter_title=args.chapter or FREE_ROAM_CHAPTER,
            subchapter_title=args.subchapter,
            description=args.description or "",
            subchapter_id=args.id or slugify(args.subchapter),
            custom_topic=args.topic or "",
        )
    return TopicContext(
        chapter_title=FREE_ROAM_CHAPTER,
        subchapter_title=FREE_ROAM_SUBCHAPTER,
        description=FREE_ROAM_DESCRIPTION,
        subchapter_id=FREE_ROAM_ID,
        custom_topic=args.topic or "",
    )


def cmd_new(args):
    """Generate a new episode script and store it as a project."""
    if not args.subchapter and not (args.topic or "").strip():
        print("Error: In free mode, give a --topic for the podcast.", file=sys.stderr)
        raise SystemExit(1)
    if args.minutes <= 0:
        print(f"Error: --minutes must be positive, got {args.minutes}", file=sys.stderr)
        raise SystemExit(1)

    settings = load_settings()
    text_client = GeminiTextClient.from_settings(settings)
    bibliography = load_bibliography(args.bibliography or settings.bibliography_path)
    topic = _topic_from_args(args)

    chunks = len(plan_chunks(args.minutes))
    mode = "deep" if args.deep else "quick"
    print(f"Generating {args.minutes}-minute {mode} script in {chunks} chunk(s)...")
    if topic.uses_web_search:
        print(f"Deep research topic: {topic.custom_topic} (web search on)")

    episode = asyncio.run(generate_script(
        topic, args.minutes, text_client, deep=args.deep, bibliography=bibliography,
    ))

    slug = args.slug or slugify(episode.title)
    project_dir = init_project_dir(slug, output_base=settings.output_dir)
    save_episode(project_dir, episode)

    speakers = sorted({s.speaker for s in episode.segments})
    print(f"Created project: {slug}")
    print(f"Generated {len(episode.segments)} segments ({', '.join(speakers)})")
    print(f"Run 'podcast-producer play {slug}' to listen, or 'podcast-producer render {slug}' to export audio.")


def _print_state(episode: Episode):
    """Build an on_change callback that prints the segment being played."""
    def on_change(state: PlaybackState):
        if state.status is PlaybackStatus.IDLE:
            print("[stopped]")
        elif state.status is PlaybackStatus.SUSPENDED:
            print("[paused]")
        else:
            seg = episode.segments[state.current_index]
            preview = seg.text if len(seg.text) <= 70 else seg.text[:67] + "..."
            print(f"[{state.current_index + 1}/{len(episode.segments)}] {seg.speaker}: {preview}")
    return on_change


async def handle_command(controller: PlaybackController, line: str) -> bool:
    """Apply one console command. Returns False when the user quits."""
    command = line.strip().lower()
    if command in ("", "p"):
        await controller.toggle()
    elif command == "s":
        await controller.stop()
    elif command == "q":
        await controller.stop()
        return False
    elif command.isdigit():
        number = int(command)
        if 1 <= number <= len(controller.episode.segments):
            await controller.select(number - 1)
        else:
            print(f"No segment {number}. Episode has {len(controller.episode.segments)} segments.")
    else:
        print(PLAYBACK_HELP)
    return True


async def run_console(controller: PlaybackController, start: int = 0, stream=sys.stdin) -> None:
    """Drive playback from input lines until 'q' or end of input.

    Lines are read in a worker thread, so stdin may be a tty, a pipe or a
    redirected file.
    """
    print(PLAYBACK_HELP)
    await controller.play(start)
    while True:
        line = await asyncio.to_thread(stream.readline)
        if not line:
            await controller.stop()
            break
        if not await handle_command(controller, line):
            break


def cmd_play(args):
    """Play an episode interactively."""
    _check_binary("ffplay")
    settings = load_settings()
    _, episode = _load_project(settings, args.slug)
    if settings.speech_engine == "edge":
        _check_binary("ffmpeg")

    synthesizer = create_synthesizer(settings)
    controller = PlaybackController(episode, synthesizer, FfplayOutput(), on_change=_print_state(episode))
    asyncio.run(run_console(controller, start=max(args.start - 1, 0)))


def cmd_render(args):
    """Synthesize every segment and write the assembled audio file."""
    settings = load_settings()
    project_dir, episode = _load_project(settings, args.slug)
    if args.format == "mp3" or settings.speech_engine == "edge":
        _check_binary("ffmpeg")

    downloader = AudioDownloader(create_synthesizer(settings))
    print(f"Synthesizing {len(episode.segments)} segments...")
    wav_bytes = asyncio.run(downloader.download(episode))
    if wav_bytes is None:
        print("Error: No segment could be synthesized; no audio written.", file=sys.stderr)
        raise SystemExit(1)

    final_dir = os.path.join(project_dir, "final")
    path = export_audio(wav_bytes, final_dir, episode.title or args.slug, args.format)
    write_manifest(final_dir, episode, path, {
        "speech_engine": settings.speech_engine,
        "tts_model": settings.tts_model if settings.speech_engine == "gemini" else None,
        "format": args.format,
    })
    print(f"Done: {path}")


def cmd_transcript(args):
    """Write the plain-text script."""
    settings = load_settings()
    project_dir, episode = _load_project(settings, args.slug)
    path = export_transcript(episode, os.path.join(project_dir, "final"))
    print(f"Done: {path}")


def cmd_status(args):
    """Show project status."""
    settings = load_settings()
    project_dir, episode = _load_project(settings, args.slug)
    status = get_project_status(project_dir)

    print(f"Project: {args.slug}")
    print(f"Title:   {episode.title}")
    mode = "deep" if episode.deep else "quick"
    print(f"Length:  {episode.minutes} min requested ({mode})")
    if episode.topic:
        print(f"Topic:   {episode.topic}")
    counts = {}
    for seg in episode.segments:
        counts[seg.speaker] = counts.get(seg.speaker, 0) + 1
    print(f"Segments: {len(episode.segments)}")
    for speaker, count in sorted(counts.items()):
        print(f"  {speaker:<20} {count}")

    print("Steps:")
    for step in ["script", "audio", "transcript"]:
        state = status.get(step, {"state": "pending"})["state"]
        marker = "[done]" if state == "done" else "[----]"
        print(f"  {marker} {step}")


def cmd_list(args):
    """List all projects."""
    settings = load_settings()
    projects = list_projects(output_base=settings.output_dir)
    if not projects:
        print("No projects found.")
        return
    print("Projects:")
    for name in projects:
        status = get_project_status(os.path.join(settings.output_dir, name))
        marker = "[done]" if status["audio"]["state"] == "done" else "[----]"
        print(f"  {marker} {name}")


def cmd_voices(args):
    """List the two canonical voices."""
    print("Voices:")
    for persona, voice in ((MALE_PERSONA, MALE_VOICE), (FEMALE_PERSONA, FEMALE_VOICE)):
        print(f"  {persona:<18} → {voice} (edge-tts: {EDGE_VOICES[voice]})")


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="podcast-producer",
        description="Podcast Producer: turn book chapters into two-voice podcast episodes",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # new
    new_parser = subparsers.add_parser(
        "new",
        help="Generate a new episode script",
        description="Generate a new episode script. Generation is all-or-nothing: "
                    "if any chunk fails, nothing from the run is kept.",
    )
    new_parser.add_argument("--chapter", help="Chapter title")
    new_parser.add_argument("--subchapter", help="Subchapter title (omit for free mode)")
    new_parser.add_argument("--description", help="Subchapter description/context")
    new_parser.add_argument("--id", help="Subchapter id (bibliography key)")
    new_parser.add_argument("--topic", help="Custom topic; turns on web-search grounding")
    new_parser.add_argument("--minutes", type=int, default=DEFAULT_MINUTES, help="Episode length in minutes")
    new_parser.add_argument("--deep", action="store_true", help="Deep mode (larger thinking budget)")
    new_parser.add_argument("--bibliography", help="Path to bibliography JSON (id → citations)")
    new_parser.add_argument("--slug", help="Project slug (default: from title)")
    new_parser.set_defaults(func=cmd_new)

    # play
    play_parser = subparsers.add_parser("play", help="Play an episode interactively")
    play_parser.add_argument("slug", help="Project slug")
    play_parser.add_argument("--start", type=int, default=1, help="Segment number to start from")
    play_parser.set_defaults(func=cmd_play)

    # render
    render_parser = subparsers.add_parser("render", help="Export the episode audio")
    render_parser.add_argument("slug", help="Project slug")
    render_parser.add_argument("--format", choices=["wav", "mp3"], default="wav", help="Audio format")
    render_parser.set_defaults(func=cmd_render)

    # transcript
    transcript_parser = subparsers.add_parser("transcript", help="Export the script as text")
    transcript_parser.add_argument("slug", help="Project slug")
    transcript_parser.set_defaults(func=cmd_transcript)

    # status
    status_parser = subparsers.add_parser("status", help="Show project status")
    status_parser.add_argument("slug", help="Project slug")
    status_parser.set_defaults(func=cmd_status)

    # list
    list_parser = subparsers.add_parser("list", help="List all projects")
    list_parser.set_defaults(func=cmd_list)

    # voices
    voices_parser = subparsers.add_parser("voices", help="List available voices")
    voices_parser.set_defaults(func=cmd_voices)

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return

    setup_logging(args.verbose)
    try:
        args.func(args)
    except PodcastError as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(1)
