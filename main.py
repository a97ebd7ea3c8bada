#!/usr/bin/env python3
"""
HandPrompt - gesture-driven structured prompt sculpting.
Command-line entry point.

Usage:
    python main.py --prompt "bronze dancer mid-leap"     # Generate from text
    python main.py --prompt-file prompt.json             # Generate from a structured prompt
    python main.py --expand "a quiet harbor at dawn"     # Expand text to a structured prompt
    python main.py --replay frames.json                  # Replay recorded landmark frames
    python main.py --replay frames.json --export out.json

Replay file format: JSON list of frames; each frame is a list of hands
{"landmarks": [[x, y, z], ...21], "handedness": "Right"}.
"""

import sys
import os
import json
import argparse
import logging

from dotenv import load_dotenv

# Add project root to path
PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, PROJECT_ROOT)

from modules.utils.config import Config
from modules.utils.logger import setup_logging
from modules.generation.client import GenerationClient
from modules.generation.errors import GenerationError
from core.events import Events
from core.session import create_session
from core.types import HandObservation

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="HandPrompt - sculpt image prompts with hand gestures",
    )
    parser.add_argument("--config", default=None, help="Path to config.yaml")
    parser.add_argument("--log-level", default=None,
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--prompt", help="Generate an image from free text")
    source.add_argument("--prompt-file", help="Generate from a structured prompt JSON file")
    source.add_argument("--expand", help="Expand free text into a structured prompt")
    source.add_argument("--replay", help="Replay recorded landmark frames through a session")
    parser.add_argument("--export", help="Write the resulting structured prompt to this file")
    return parser.parse_args(argv)


def _print_result(result):
    print(json.dumps({
        "image_url": result.image_url,
        "seed": result.seed,
        "request_id": result.request_id,
    }, indent=2))


def run_generate(config: Config, prompt) -> int:
    client = GenerationClient(config.generation)
    try:
        result = client.generate(prompt)
    except GenerationError as e:
        logger.error("Generation failed [%s]: %s", e.code, e.message)
        print(json.dumps(e.to_dict(), indent=2, default=str))
        return 1
    finally:
        client.close()
    _print_result(result)
    return 0


def run_expand(config: Config, text: str, export_path=None) -> int:
    client = GenerationClient(config.generation)
    try:
        expanded = client.expand_prompt(text)
    except GenerationError as e:
        logger.error("Expansion failed [%s]: %s", e.code, e.message)
        return 1
    finally:
        client.close()

    output = json.dumps(expanded, indent=2)
    if export_path:
        with open(export_path, "w") as f:
            f.write(output)
        logger.info("Structured prompt written to %s", export_path)
    else:
        print(output)
    return 0


def run_replay(config: Config, replay_path: str, export_path=None) -> int:
    with open(replay_path, "r") as f:
        frames = json.load(f)

    session = create_session(config)
    failures = []
    session.events.subscribe(Events.GENERATION_FAILED, lambda error: failures.append(error))
    session.events.subscribe(Events.GENERATION_COMPLETED, lambda result: _print_result(result))

    logger.info("Replaying %d frames", len(frames))
    for frame in frames:
        hands = [HandObservation.from_dict(h) for h in frame]
        session.process_frame(hands)
    session.close()

    if export_path:
        with open(export_path, "w") as f:
            f.write(session.state.export_json())
        logger.info("Structured prompt written to %s", export_path)
    else:
        print(session.state.export_json())

    return 1 if failures else 0


def main(argv=None) -> int:
    load_dotenv()
    args = parse_args(argv)

    config = Config().load(args.config)
    setup_logging(config.logging_config, level=args.log_level)

    if args.prompt:
        return run_generate(config, args.prompt)
    if args.prompt_file:
        with open(args.prompt_file, "r") as f:
            return run_generate(config, json.load(f))
    if args.expand:
        return run_expand(config, args.expand, args.export)
    if args.replay:
        return run_replay(config, args.replay, args.export)

    print("Nothing to do. Use --prompt, --prompt-file, --expand or --replay.")
    return 2


if __name__ == "__main__":
    sys.exit(main())
