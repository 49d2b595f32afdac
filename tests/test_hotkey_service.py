"""Tests for chord parsing and the HotkeyDispatcher."""

import pytest

from snapink.core.hotkey_service import (
    DEFAULT_HOTKEYS,
    Action,
    Chord,
    HotkeyDispatcher,
    Key,
    Modifier,
    chords_from_config,
    chords_to_config,
    find_conflicts,
    parse_key,
)
from snapink.errors import HotkeyConflictError


@pytest.fixture
def dispatcher(hotkey_backend):
    dispatcher = HotkeyDispatcher(hotkey_backend)
    dispatcher.register_all()
    return dispatcher


class TestChord:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("ctrl+s", Chord(Modifier.CTRL, Key.S)),
            ("Control+s", Chord(Modifier.CTRL, Key.S)),
            (" alt + q ", Chord(Modifier.ALT, Key.Q)),
            ("SHIFT+Z", Chord(Modifier.SHIFT, Key.Z)),
        ],
    )
    def test_parse(self, text, expected):
        assert Chord.parse(text) == expected

    @pytest.mark.parametrize("text", ["ctrl", "ctrl+s+x", "meta+s", "ctrl+1", "ctrl+ab", ""])
    def test_parse_rejects_bad_text(self, text):
        with pytest.raises(ValueError):
            Chord.parse(text)

    def test_str(self):
        assert str(Chord(Modifier.ALT, Key.P)) == "ALT+P"

    def test_parse_key_is_case_insensitive(self):
        assert parse_key("x") is Key.X

    def test_config_round_trip(self):
        assert chords_from_config(chords_to_config(DEFAULT_HOTKEYS)) == DEFAULT_HOTKEYS


class TestConfigChords:
    def test_defaults(self):
        assert DEFAULT_HOTKEYS[Action.SAVE] == Chord(Modifier.CTRL, Key.S)
        assert DEFAULT_HOTKEYS[Action.CROP] == Chord(Modifier.CTRL, Key.X)
        assert len(DEFAULT_HOTKEYS) == len(Action)
        assert find_conflicts(DEFAULT_HOTKEYS) == []

    def test_overrides_and_bad_entries(self):
        chords = chords_from_config({
            "Save": "alt+s",
            "Pen": "not a chord",
            "Paint": "ctrl+q",
        })

        assert chords[Action.SAVE] == Chord(Modifier.ALT, Key.S)
        assert chords[Action.PEN] == DEFAULT_HOTKEYS[Action.PEN]
        assert len(chords) == len(Action)

    def test_duplicate_chords_fall_back_to_defaults(self, hotkey_backend):
        chords = chords_from_config({"Copy": "ctrl+s", "Take": "alt+t"})

        assert chords == DEFAULT_HOTKEYS

        dispatcher = HotkeyDispatcher(hotkey_backend, chords)
        dispatcher.register_all()
        assert set(dispatcher.handles) == set(Action)

    def test_to_config_uses_lowercase(self):
        assert chords_to_config({Action.TAKE: Chord(Modifier.SHIFT, Key.T)}) == {
            "Take": "shift+t"
        }


class TestRegistration:
    def test_register_all_registers_every_chord(self, dispatcher, hotkey_backend):
        assert set(hotkey_backend.registered.values()) == set(DEFAULT_HOTKEYS.values())
        assert set(dispatcher.handles) == set(Action)

    def test_registration_is_best_effort(self, hotkey_backend):
        hotkey_backend.fail_for.add(DEFAULT_HOTKEYS[Action.COPY])
        dispatcher = HotkeyDispatcher(hotkey_backend)

        dispatcher.register_all()

        assert Action.COPY not in dispatcher.handles
        assert len(dispatcher.handles) == len(Action) - 1

    def test_shutdown_releases_everything(self, dispatcher, hotkey_backend):
        dispatcher.shutdown()

        assert hotkey_backend.registered == {}
        assert dispatcher.handles == {}
        assert hotkey_backend.stopped


class TestEditing:
    def test_stage_only_changes_draft(self, dispatcher, hotkey_backend):
        before = dict(hotkey_backend.registered)
        dispatcher.begin_edit()

        dispatcher.stage_edit(Action.TAKE, Modifier.ALT, Key.T)

        assert dispatcher.draft[Action.TAKE] == Chord(Modifier.ALT, Key.T)
        assert dispatcher.committed == DEFAULT_HOTKEYS
        assert hotkey_backend.registered == before

    def test_conflicting_commit_is_rejected(self, dispatcher, hotkey_backend):
        before = dict(hotkey_backend.registered)
        dispatcher.begin_edit()
        dispatcher.stage_edit(Action.COPY, Modifier.CTRL, Key.S)

        with pytest.raises(HotkeyConflictError) as exc_info:
            dispatcher.commit()

        assert exc_info.value.conflicts == [Chord(Modifier.CTRL, Key.S)]
        assert "CTRL+S" in str(exc_info.value)
        assert dispatcher.committed == DEFAULT_HOTKEYS
        assert dispatcher.draft[Action.COPY] == Chord(Modifier.CTRL, Key.S)
        assert hotkey_backend.registered == before

    def test_commit_reregisters(self, dispatcher, hotkey_backend):
        dispatcher.begin_edit()
        dispatcher.stage_edit(Action.TAKE, Modifier.ALT, Key.T)

        dispatcher.commit()

        assert dispatcher.committed[Action.TAKE] == Chord(Modifier.ALT, Key.T)
        assert Chord(Modifier.CTRL, Key.T) not in hotkey_backend.registered.values()
        handle = hotkey_backend.handle_for(Chord(Modifier.ALT, Key.T))
        assert dispatcher.dispatch(handle) is Action.TAKE

    def test_swap_is_not_a_conflict(self, dispatcher):
        dispatcher.begin_edit()
        dispatcher.stage_edit(Action.UNDO, Modifier.CTRL, Key.Y)
        dispatcher.stage_edit(Action.REDO, Modifier.CTRL, Key.Z)

        dispatcher.commit()

        assert dispatcher.committed[Action.UNDO] == Chord(Modifier.CTRL, Key.Y)

    def test_cancel_discards_draft(self, dispatcher):
        dispatcher.begin_edit()
        dispatcher.stage_edit(Action.COPY, Modifier.CTRL, Key.S)

        dispatcher.cancel_edit()

        assert dispatcher.draft == DEFAULT_HOTKEYS


class TestDispatch:
    @pytest.mark.parametrize("action", list(Action))
    def test_fired_handle_maps_to_action(self, dispatcher, hotkey_backend, action):
        hotkey_backend.fire(hotkey_backend.handle_for(DEFAULT_HOTKEYS[action]))

        assert dispatcher.poll() is action

    def test_unknown_handle(self, dispatcher):
        assert dispatcher.dispatch(9999) is None

    def test_poll_without_events(self, dispatcher):
        assert dispatcher.poll() is None

    def test_old_handles_are_dead_after_commit(self, dispatcher, hotkey_backend):
        old_handle = hotkey_backend.handle_for(DEFAULT_HOTKEYS[Action.TAKE])
        dispatcher.begin_edit()
        dispatcher.stage_edit(Action.TAKE, Modifier.ALT, Key.T)
        dispatcher.commit()

        assert dispatcher.dispatch(old_handle) is None
