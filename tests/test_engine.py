import logging
import os
import sys
import unittest
from unittest.mock import patch

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from novel.characters import CharacterRecord, CharacterRegistry
from novel.config import NovelConfig
from novel.engine import ScriptEngine
from novel.errors import PlaybackError, SpriteLookupError, UnknownCommand
from novel.transitions import Background, End, Log, Say, SetEmotion


def _nayu() -> CharacterRecord:
    record = CharacterRecord(
        name="Nayu",
        current_outfit="school",
        current_emotion="neutral",
        allowed_emotions=frozenset({"neutral", "happy", "sad"}),
        sprites={"school": {"neutral": "n.png", "happy": "h.png"}},
    )
    record.resolve_sprite()
    return record


def _engine(config: NovelConfig | None = None) -> ScriptEngine:
    return ScriptEngine(CharacterRegistry([_nayu()]), config or NovelConfig())


class ScriptEngineTests(unittest.TestCase):
    def test_new_engine_is_idle_and_poll_is_noop(self):
        engine = _engine()

        report = engine.poll()

        self.assertEqual(engine.status, "idle")
        self.assertTrue(report.is_noop)
        self.assertEqual(report.status, "idle")

    def test_drains_sequence_in_order_in_one_poll(self):
        engine = _engine()
        transitions = [
            Log("first"),
            Background("forest"),
            SetEmotion("Nayu", "happy"),
            Background("lake"),
            Log("last"),
        ]
        engine.load(transitions)

        report = engine.poll()

        self.assertEqual(report.applied, transitions)
        self.assertEqual(engine.state.history, transitions)
        self.assertEqual(engine.status, "exhausted")
        self.assertEqual(engine.state.end_reason, "exhausted")
        self.assertEqual(engine.state.current_background, "lake")
        self.assertEqual(engine.characters.find("Nayu").current_emotion, "happy")

    def test_polling_exhausted_engine_is_noop(self):
        engine = _engine()
        engine.load([Background("forest")])
        engine.poll()
        before = engine.state.snapshot()

        report = engine.poll()

        self.assertTrue(report.is_noop)
        self.assertEqual(report.status, "exhausted")
        self.assertEqual(engine.state.snapshot(), before)

    def test_empty_script_exhausts_immediately(self):
        engine = _engine()
        engine.load([])

        report = engine.poll()

        self.assertTrue(report.is_noop)
        self.assertEqual(engine.status, "exhausted")

    def test_say_blocks_until_advanced(self):
        engine = _engine()
        engine.compile(
            "bg background=`classroom`\n"
            "say character=`Nayu` msg=`Hi`\n"
            "bg background=`hallway`\n"
        )

        first = engine.poll()
        self.assertEqual(first.applied, [Background("classroom"), Say("Nayu", "Hi")])
        self.assertEqual(engine.status, "blocked")
        self.assertEqual(engine.state.current_dialogue.message, "Hi")

        self.assertTrue(engine.poll().is_noop)
        self.assertEqual(engine.state.current_background, "classroom")

        self.assertTrue(engine.advance())
        self.assertIsNone(engine.state.current_dialogue)
        second = engine.poll()

        self.assertEqual(second.applied, [Background("hallway")])
        self.assertEqual(engine.status, "exhausted")
        self.assertEqual(engine.state.history.count(Say("Nayu", "Hi")), 1)

    def test_advance_without_block_is_ignored(self):
        engine = _engine()
        self.assertFalse(engine.advance())
        engine.load([Log("a")])
        self.assertFalse(engine.advance())
        engine.poll()
        self.assertFalse(engine.advance())

    def test_end_is_terminal(self):
        engine = _engine()
        engine.load([Log("a"), End(), Log("never")])

        report = engine.poll()

        self.assertEqual(report.applied, [Log("a"), End()])
        self.assertEqual(engine.status, "ended")
        self.assertEqual(engine.state.end_reason, "end")
        self.assertEqual(engine.state.remaining, 1)
        self.assertTrue(engine.poll().is_noop)
        self.assertFalse(engine.advance())
        with self.assertRaises(PlaybackError):
            engine.restart()

    def test_end_after_say_waits_for_dismissal(self):
        engine = _engine()
        engine.load([Say("Nayu", "Bye"), End()])

        engine.poll()
        self.assertEqual(engine.status, "blocked")
        engine.advance()
        engine.poll()

        self.assertEqual(engine.status, "ended")

    def test_restart_replays_after_exhaustion(self):
        engine = _engine()
        transitions = [Background("a"), Background("b")]
        engine.load(transitions)
        engine.poll()

        engine.restart()

        self.assertEqual(engine.status, "running")
        self.assertEqual(engine.state.current_background, "")
        self.assertEqual(engine.state.history, [])
        self.assertEqual(engine.poll().applied, transitions)

    def test_restart_without_script_fails(self):
        with self.assertRaises(PlaybackError):
            _engine().restart()

    def test_bounded_drain(self):
        engine = _engine(NovelConfig(max_transitions_per_poll=2))
        engine.load([Log(str(i)) for i in range(5)])

        sizes = []
        for _ in range(3):
            sizes.append(len(engine.poll().applied))

        self.assertEqual(sizes, [2, 2, 1])
        self.assertEqual(engine.status, "exhausted")
        self.assertEqual([t.message for t in engine.state.history], list("01234"))

    def test_lookup_error_is_skipped_by_default(self):
        engine = _engine()
        engine.load([Background("a"), SetEmotion("Nayu", "sad"), Background("b")])

        with self.assertLogs("novel.engine", level=logging.ERROR):
            report = engine.poll()

        self.assertEqual(report.applied, [Background("a"), Background("b")])
        self.assertEqual(len(report.errors), 1)
        self.assertIsInstance(report.errors[0], SpriteLookupError)
        self.assertEqual(engine.status, "exhausted")
        self.assertEqual(engine.characters.find("Nayu").current_emotion, "neutral")

    def test_lookup_error_can_be_raised_to_host(self):
        engine = _engine(NovelConfig(lookup_error_policy="raise"))
        engine.load([SetEmotion("Nayu", "sad"), Background("after")])

        with self.assertRaises(SpriteLookupError):
            engine.poll()

        report = engine.poll()
        self.assertEqual(report.applied, [Background("after")])

    def test_compile_error_leaves_previous_script_loaded(self):
        engine = _engine()
        engine.compile("log msg=`a`")

        with self.assertRaises(UnknownCommand):
            engine.compile("log msg=`b`\njump target=`x`")

        self.assertEqual(engine.state.transitions, [Log("a")])
        self.assertEqual(engine.status, "running")

    def test_recompile_replaces_sequence_and_cursor(self):
        engine = _engine()
        engine.compile("bg background=`a`\nsay character=`Nayu` msg=`wait`")
        engine.poll()
        self.assertEqual(engine.status, "blocked")

        engine.compile("log msg=`fresh`")

        self.assertEqual(engine.status, "running")
        self.assertEqual(engine.state.cursor, 0)
        self.assertFalse(engine.state.blocking)
        self.assertEqual(engine.state.current_background, "")

    def test_compile_file(self):
        import tempfile
        from pathlib import Path

        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "script.txt"
            path.write_text("bg background=`forest`\nend\n", encoding="utf-8")
            engine = _engine()
            engine.compile_file(path)

        self.assertEqual(engine.state.transitions, [Background("forest"), End()])

    @patch("novel.engine.load_novel_config")
    def test_default_config_is_loaded(self, mock_load):
        mock_load.return_value = NovelConfig(max_transitions_per_poll=1)

        engine = ScriptEngine()

        mock_load.assert_called_once_with()
        self.assertEqual(engine.config.max_transitions_per_poll, 1)
        self.assertEqual(len(engine.characters), 0)


if __name__ == "__main__":
    unittest.main()
