# SPDX-License-Identifier: GPL-3.0-or-later
"""Command-line host for compiling and playing visual novel scripts."""

from __future__ import annotations

import argparse
import json
import logging
import os
from typing import Callable, Sequence

from novel.compiler import compile_file
from novel.config import NovelConfig, load_novel_config
from novel.engine import ScriptEngine
from novel.errors import CompileError, NovelError
from novel.host import ConsoleHost, load_characters, tick


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cli_novel",
        description="Compile and play line-based visual novel scripts",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to novel_config.yaml (defaults to the repository copy)",
    )
    sub = parser.add_subparsers(dest="cmd", required=True)

    checkp = sub.add_parser("check", help="Compile a script and report the first error")
    checkp.add_argument("script", nargs="?", default=None)

    compilep = sub.add_parser("compile", help="Print the compiled transitions")
    compilep.add_argument("script", nargs="?", default=None)
    compilep.add_argument("--json", action="store_true", help="Print JSON payloads")

    playp = sub.add_parser("play", help="Play a script on the console")
    playp.add_argument("script", nargs="?", default=None)
    playp.add_argument(
        "--characters",
        default=None,
        help="Directory with one folder per character (defaults to configuration)",
    )
    return parser


def _script_path(config: NovelConfig, script: str | None) -> str:
    return script or str(config.script_file)


def cmd_check(config: NovelConfig, script: str | None) -> int:
    path = _script_path(config, script)
    try:
        transitions = compile_file(path, log_line_limit=config.log_line_limit)
    except (CompileError, OSError) as exc:
        print(f"{path}: {exc}")
        return 1
    print(f"{path}: OK ({len(transitions)} transitions)")
    return 0


def cmd_compile(config: NovelConfig, script: str | None, as_json: bool = False) -> int:
    path = _script_path(config, script)
    try:
        transitions = compile_file(path, log_line_limit=config.log_line_limit)
    except (CompileError, OSError) as exc:
        print(f"{path}: {exc}")
        return 1
    if as_json:
        print(json.dumps([t.to_payload() for t in transitions], indent=2))
        return 0
    for idx, transition in enumerate(transitions, 1):
        print(f"{idx}. {transition.to_line()}")
    return 0


def cmd_play(
    config: NovelConfig,
    script: str | None,
    characters_dir: str | None = None,
    *,
    input_fn: Callable[[str], str] = input,
    output: Callable[[str], None] = print,
) -> int:
    host = ConsoleHost(output)
    characters_root = characters_dir or config.characters_root
    try:
        characters = load_characters(
            characters_root, host.load_image_handle, config=config
        )
    except (NovelError, OSError) as exc:
        output(f"{characters_root}: {exc}")
        return 1
    engine = ScriptEngine(characters, config, lookup_sprite=host.lookup_sprite)
    path = _script_path(config, script)
    try:
        engine.compile_file(path)
    except (CompileError, OSError) as exc:
        output(f"{path}: {exc}")
        return 1
    while True:
        try:
            report = tick(engine, host)
        except NovelError as exc:
            logger.error("Playback stopped: %s", exc)
            output(f"[ Playback stopped: {exc} ]")
            return 1
        for error in report.errors:
            output(f"[ Skipped: {error} ]")
        if engine.status == "blocked":
            try:
                input_fn("")
            except EOFError:
                logger.info("Input closed; stopping playback")
                break
            engine.advance()
            continue
        if engine.state.is_finished:
            break
    logger.info("Playback finished (%s)", engine.state.end_reason or engine.status)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO"))
    args = build_parser().parse_args(argv)
    config = load_novel_config(args.config)

    if args.cmd == "check":
        return cmd_check(config, args.script)
    if args.cmd == "compile":
        return cmd_compile(config, args.script, as_json=args.json)
    if args.cmd == "play":
        return cmd_play(config, args.script, args.characters)
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
