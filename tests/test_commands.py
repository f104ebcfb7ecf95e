"""Tests for the secret-store commands, driven through the engine."""

from __future__ import annotations

import pytest

from tagaloop import persistence as persistence_module
from tagaloop.engine import EngineState
from tagaloop.persistence import backup_path


def _add(engine, label: str, value: str) -> str:
    engine.feed(f"add {label}")
    engine.feed(value)
    return engine.session.store.list(lambda l: l == label)[-1].id


@pytest.fixture
def saved(engine):
    """Engine on a store holding one saved entry; returns its id."""
    entry_id = _add(engine, "bank", "1234")
    engine.session.store.mark_saved()
    return entry_id


class TestAdd:
    """Tests for the add command."""

    def test_prompts_for_secret_value(self, engine):
        engine.feed("add github token")
        assert engine.state == EngineState.AWAITING
        assert engine.prompt == "Value: "
        assert engine.awaiting_secret is True

        engine.feed("ghp_abc")
        entries = engine.session.store.list()
        assert [(e.label, e.value) for e in entries] == [("github token", "ghp_abc")]
        assert engine.state == EngineState.IDLE

    @pytest.mark.parametrize("label,value", [
        ("bank", "1234"),
        ("[red]markup[/red]", "[b]not bold[/b]"),
        ("emoji 🔑", "spaces in  value"),
    ])
    def test_add_then_show(self, engine, read_output, label, value):
        """show prints exactly what add stored."""
        entry_id = _add(engine, label, value)
        engine.feed(f"show {entry_id}")
        out = read_output()
        assert f"Label:   {label}" in out
        assert f"Value:   {value}" in out
        engine.feed("list")
        assert entry_id in read_output()

    def test_missing_label(self, engine, read_output):
        engine.feed("add")
        assert "Usage: add <label>" in read_output()
        assert engine.state == EngineState.IDLE

    def test_empty_value_cancels(self, saved, engine, read_output):
        engine.feed("add other")
        engine.feed("")
        assert "Nothing added." in read_output()
        assert len(engine.session.store) == 1
        assert engine.session.store.dirty is False

    def test_reports_new_id(self, engine, read_output):
        entry_id = _add(engine, "x", "y")
        assert f"Added {entry_id}" in read_output()


class TestRelabel:
    """Tests for the relabel command."""

    def test_relabel(self, saved, engine):
        engine.feed(f"relabel {saved} savings account")
        assert engine.session.store.get(saved).label == "savings account"
        assert engine.session.store.dirty is True

    def test_unknown_id(self, saved, engine, read_output):
        engine.feed("relabel nosuchid new label")
        assert "No entry with id 'nosuchid'" in read_output()
        assert len(engine.session.store) == 1
        assert engine.session.store.dirty is False

    def test_missing_label_is_usage_error(self, saved, engine, read_output):
        """A missing label is reported before the id is looked up."""
        engine.feed("relabel nosuchid")
        out = read_output()
        assert "Usage: relabel <id> <new label>" in out
        assert "No entry" not in out


class TestAlter:
    """Tests for the alter command."""

    def test_shows_old_value_then_replaces(self, saved, engine, read_output):
        engine.feed(f"alter {saved}")
        assert "Old value: 1234" in read_output()
        assert engine.prompt == "New value: "
        assert engine.awaiting_secret is True

        engine.feed("5678")
        assert engine.session.store.get(saved).value == "5678"
        assert engine.session.store.dirty is True

    def test_empty_answer_keeps_value(self, saved, engine, read_output):
        engine.feed(f"alter {saved}")
        engine.feed("")
        assert "Unchanged." in read_output()
        assert engine.session.store.get(saved).value == "1234"
        assert engine.session.store.dirty is False

    def test_unknown_id_does_not_prompt(self, saved, engine, read_output):
        engine.feed("alter nosuchid")
        assert "No entry with id 'nosuchid'" in read_output()
        assert engine.state == EngineState.IDLE
        assert engine.session.store.dirty is False

    def test_missing_id(self, engine, read_output):
        engine.feed("alter")
        assert "Usage: alter <id>" in read_output()


class TestRemoveAndShow:
    """Tests for remove and show."""

    def test_remove(self, saved, engine, read_output):
        engine.feed(f"remove {saved}")
        assert saved not in engine.session.store
        assert engine.session.store.dirty is True
        assert f"Removed {saved}" in read_output()

    def test_remove_unknown(self, saved, engine, read_output):
        engine.feed("remove nosuchid")
        assert "No entry with id 'nosuchid'" in read_output()
        assert len(engine.session.store) == 1
        assert engine.session.store.dirty is False

    def test_show_unknown(self, engine, read_output):
        engine.feed("show nosuchid")
        assert "No entry with id 'nosuchid'" in read_output()

    def test_show_does_not_dirty(self, saved, engine):
        engine.feed(f"show {saved}")
        assert engine.session.store.dirty is False


class TestList:
    """Tests for the list command."""

    @pytest.fixture
    def populated(self, engine):
        ids = {}
        for label, value in [("Bank", "x"), ("email", "bank pin"), ("BANKING app", "y")]:
            ids[label] = _add(engine, label, value)
        return ids

    def test_empty_pattern_lists_all(self, populated, engine, read_output):
        engine.feed("list")
        out = read_output()
        for entry_id in populated.values():
            assert entry_id in out

    def test_pattern_case_insensitive_labels_only(self, populated, engine, read_output):
        before = len(read_output())
        engine.feed("list bank")
        out = read_output()[before:]
        assert populated["Bank"] in out
        assert populated["BANKING app"] in out
        assert populated["email"] not in out

    def test_regex_pattern(self, populated, engine, read_output):
        before = len(read_output())
        engine.feed("list ^bank$")
        out = read_output()[before:]
        assert populated["Bank"] in out
        assert populated["BANKING app"] not in out

    def test_bad_pattern(self, engine, read_output):
        engine.feed("list [unclosed")
        assert "Bad pattern" in read_output()

    def test_no_matches(self, engine, read_output):
        engine.feed("list anything")
        assert "No entries." in read_output()


class TestSave:
    """Tests for save and save exit."""

    def test_save_writes_and_clears_dirty(self, engine, read_output):
        _add(engine, "bank", "1234")
        engine.feed("save")
        assert engine.session.path.exists()
        assert engine.session.store.dirty is False
        assert engine.prompt == "tagaloop> "
        assert "Saved" in read_output()
        assert not engine.closed

    def test_save_exit(self, engine):
        engine.feed("save exit")
        assert engine.session.path.exists()
        assert engine.closed

    def test_bad_argument(self, engine, read_output):
        engine.feed("save later")
        assert "Usage: save [exit]" in read_output()
        assert not engine.session.path.exists()

    def test_failed_save_reports_recovery(self, engine, read_output, monkeypatch):
        engine.feed("save")
        previous = engine.session.path.read_text(encoding="utf-8")
        _add(engine, "bank", "1234")

        def fail(path, text):
            raise OSError("disk full")

        monkeypatch.setattr(persistence_module, "_write_private", fail)
        engine.feed("save exit")

        out = read_output()
        assert "Save failed: disk full" in out
        assert "Previous contents restored" in out
        assert not engine.closed
        assert engine.session.store.dirty is True
        assert engine.session.path.read_text(encoding="utf-8") == previous

    def test_conflict_reported(self, engine, read_output, monkeypatch):
        engine.feed("save")
        _add(engine, "bank", "1234")

        def partial(path, text):
            path.write_text("partial", encoding="utf-8")
            raise OSError("disk full")

        monkeypatch.setattr(persistence_module, "_write_private", partial)
        engine.feed("save")
        assert "manually" in read_output()
        assert backup_path(engine.session.path).exists()

        engine.feed("save")
        assert "both exist after a failed save" in " ".join(read_output().split())
        assert engine.session.store.dirty is True

    def test_save_completes_exit(self, engine):
        assert engine.registry.lookup("save").completion_values(engine.session) == ["exit"]


class TestExit:
    """Tests for the exit command."""

    def test_exit_when_clean(self, saved, engine):
        engine.feed("exit")
        assert engine.closed

    def test_exit_with_changes_asks(self, engine):
        _add(engine, "bank", "1234")
        engine.feed("exit")
        assert engine.state == EngineState.AWAITING
        assert "Discard unsaved changes?" in engine.prompt

    def test_decline_keeps_session(self, engine):
        _add(engine, "bank", "1234")
        engine.feed("exit")
        engine.feed("n")
        assert not engine.closed
        assert engine.state == EngineState.IDLE

    def test_confirm_closes(self, engine):
        _add(engine, "bank", "1234")
        engine.feed("exit")
        engine.feed("yes")
        assert engine.closed


class TestHelpAndCompletion:
    """Tests for help output and id completion."""

    def test_help_mentions_every_command(self, engine, read_output):
        engine.feed("help")
        out = read_output()
        for keyword in ["add", "relabel", "alter", "remove", "show", "list", "save", "exit", "help"]:
            assert keyword in out, f"Help missing '{keyword}'"

    def test_help_for_command(self, engine, read_output):
        engine.feed("help alter")
        out = read_output()
        assert "alter <id>" in out
        assert "    An empty value leaves it unchanged." in out

    def test_help_unknown_command(self, engine, read_output):
        engine.feed("help nope")
        assert "Command 'nope' not recognized" in read_output()
        assert not engine.closed

    def test_ids_complete(self, engine):
        first = _add(engine, "a", "1")
        second = _add(engine, "b", "2")
        assert engine.complete("show ") == sorted([first, second])
        assert engine.complete(f"remove {first[:4]}") == [
            i for i in sorted([first, second]) if i.startswith(first[:4])
        ]

    def test_comment_ignored(self, engine, read_output):
        engine.feed("# just a note")
        assert read_output() == ""
