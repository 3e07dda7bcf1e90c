"""Flask web service hosting visual novel playback over HTTP."""

# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations

import json
import logging
import os
import threading
from html import escape
from pathlib import Path
from typing import Any, Dict, List

from dotenv import load_dotenv
from flask import Flask, Response, redirect, send_from_directory

from novel.characters import CharacterRecord, CharacterRegistry
from novel.compiler import compile_file
from novel.config import NovelConfig, load_novel_config
from novel.engine import ScriptEngine
from novel.errors import NovelError
from novel.host import load_characters, tick
from novel.state import PlaybackState


logger = logging.getLogger(__name__)

STATUS_LABELS = {
    "idle": "No script loaded",
    "running": "Playing",
    "blocked": "Waiting for the reader",
    "ended": "The end",
    "exhausted": "Script finished",
}


load_dotenv()


# Expose the active configuration at module scope so tests can patch it.
current_config: NovelConfig = load_novel_config(os.environ.get("NOVEL_CONFIG"))


class WebHost:
    """Host that hands out sprite handles as URLs below ``/assets``."""

    def __init__(self, assets_root: Path) -> None:
        self.assets_root = Path(assets_root)

    def load_image_handle(self, path: Path) -> str:
        try:
            relative = Path(path).resolve().relative_to(self.assets_root.resolve())
        except ValueError:
            logger.warning("Sprite %s lies outside of %s", path, self.assets_root)
            return Path(path).as_posix()
        return "/assets/" + relative.as_posix()

    def lookup_sprite(self, record: CharacterRecord, outfit: str, emotion: str) -> Any:
        return record.sprite_for(outfit, emotion)

    def render_current_frame(
        self, state: PlaybackState, characters: CharacterRegistry
    ) -> None:
        # Frames are rendered per request by ``_render_frame``.
        return None


def _render_page(body: str, title: str = "Visual Novel") -> str:
    return (
        "<!DOCTYPE html><html><head>"
        + f"<title>{escape(title, False)}</title>"
        + "<meta charset='utf-8'>"
        + "</head><body>"
        + body
        + "</body></html>"
    )


def _character_html(record: CharacterRecord) -> str:
    label = f"{record.name} ({record.current_outfit}/{record.current_emotion})"
    if record.current_sprite is None:
        return f"<figure class='character'><figcaption>{escape(label, False)}</figcaption></figure>"
    return (
        "<figure class='character'>"
        + f"<img src='{escape(str(record.current_sprite), quote=True)}' "
        + f"alt='{escape(label, quote=True)}'>"
        + f"<figcaption>{escape(label, False)}</figcaption>"
        + "</figure>"
    )


def _render_frame(
    state: PlaybackState,
    characters: CharacterRegistry,
    load_error: str | None = None,
    playback_error: str | None = None,
) -> str:
    """Return the HTML body for the current frame."""

    if load_error:
        return (
            "<section class='error'>"
            + "<h1>Script could not be loaded</h1>"
            + f"<pre>{escape(load_error, False)}</pre>"
            + "<form method='post' action='/reload'><button type='submit'>Reload</button></form>"
            + "</section>"
        )
    background = state.current_background or "(none)"
    parts: List[str] = [
        f"<section class='stage' data-background='{escape(state.current_background, quote=True)}'>",
        f"<p class='background'>Background: {escape(background, False)}</p>",
    ]
    parts.extend(_character_html(record) for record in characters)
    parts.append("</section>")
    if state.current_dialogue is not None:
        parts.append(
            "<section class='dialogue'>"
            + f"<h2>{escape(state.current_dialogue.character, False)}</h2>"
            + f"<p>{escape(state.current_dialogue.message, False)}</p>"
            + "<form method='post' action='/advance'><button type='submit'>Next</button></form>"
            + "</section>"
        )
    if playback_error:
        parts.append(
            f"<p class='error'>Playback error: {escape(playback_error, False)}</p>"
        )
    status_label = STATUS_LABELS.get(state.status, state.status)
    parts.append(f"<p class='status'>{escape(status_label, False)}</p>")
    if state.is_finished:
        parts.append(
            "<form method='post' action='/reload'><button type='submit'>Play again</button></form>"
        )
    return "".join(parts)


def create_app(config: NovelConfig | None = None) -> Flask:
    """Return a configured Flask application serving one playback session."""

    logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO"))
    app = Flask(__name__)
    config_in_use = config or current_config
    host = WebHost(config_in_use.assets_root)
    engine = ScriptEngine(
        CharacterRegistry(), config_in_use, lookup_sprite=host.lookup_sprite
    )
    state_lock = threading.Lock()
    load_status: Dict[str, str | None] = {"error": None, "playback_error": None}

    def _reload_script() -> None:
        # Characters are re-read so a replay starts from their default emotions.
        script_file = config_in_use.script_file
        try:
            characters = load_characters(
                config_in_use.characters_root,
                host.load_image_handle,
                config=config_in_use,
            )
            transitions = compile_file(
                script_file, log_line_limit=config_in_use.log_line_limit
            )
        except NovelError as exc:
            logger.error("Unable to load script %s: %s", script_file, exc)
            load_status["error"] = str(exc)
            return
        except OSError as exc:
            logger.error("Unable to read script %s: %s", script_file, exc)
            load_status["error"] = f"Unable to read script {script_file}: {exc}"
            return
        engine.characters = characters
        engine.load(transitions)
        load_status["error"] = None
        load_status["playback_error"] = None

    def _poll_engine() -> None:
        # Under the error or raise policies a failed transition is already
        # consumed, so the next poll continues after it.
        try:
            report = tick(engine, host)
        except NovelError as exc:
            logger.error("Playback error: %s", exc)
            load_status["playback_error"] = str(exc)
            return
        for error in report.errors:
            logger.warning("Skipped transition during poll: %s", error)

    _reload_script()

    @app.route("/assets/<path:filename>")
    def assets(filename: str) -> Response:
        return send_from_directory(config_in_use.assets_root, filename)

    @app.route("/", methods=["GET"])
    def frame() -> str:
        with state_lock:
            _poll_engine()
            body = _render_frame(
                engine.state,
                engine.characters,
                load_status["error"],
                load_status["playback_error"],
            )
        return _render_page(body)

    @app.route("/state", methods=["GET"])
    def state_snapshot() -> Response:
        with state_lock:
            payload = {
                "state": engine.state.snapshot(),
                "characters": engine.characters.to_payload(),
                "error": load_status["error"],
                "playback_error": load_status["playback_error"],
            }
        return Response(json.dumps(payload), mimetype="application/json")

    @app.route("/transitions", methods=["GET"])
    def transitions() -> Response:
        with state_lock:
            payload = [t.to_payload() for t in engine.state.transitions]
        return Response(json.dumps(payload), mimetype="application/json")

    @app.route("/advance", methods=["POST"])
    def advance() -> Response:
        with state_lock:
            if engine.advance():
                load_status["playback_error"] = None
                _poll_engine()
        return redirect("/")

    @app.route("/reload", methods=["POST"])
    def reload() -> Response:
        logger.info("Reloading script %s", config_in_use.script_file)
        with state_lock:
            _reload_script()
        return redirect("/")

    return app


if __name__ == "__main__":  # pragma: no cover
    create_app().run(
        host=os.environ.get("HOST", "127.0.0.1"),
        port=int(os.environ.get("PORT", "5000")),
    )
