"""Unit tests for the two-phase jingle upload."""

from pathlib import Path

import pytest

from scjingle.diagnostics import CHANNEL_LENGTH_MISMATCH, CHORD_INDEX_OUT_OF_RANGE, Diagnostics
from scjingle.errors import (
    AcknowledgementMismatchError,
    BadIndexError,
    CapacityExceededError,
    ProtocolError,
    TransportError,
)
from scjingle.protocol import AddJingleCommand, NoteCommand
from scjingle.score_builder import parse_score_file
from scjingle.score_models import Measure, Note, Part, Score
from scjingle.transport import Transport
from scjingle.uploader import JingleUploader
from scjingle.window_selector import Channel, WindowSelector


class _RecordingTransport(Transport):
    """Acknowledges every command, optionally failing the n-th one."""

    def __init__(self, fail_at: int | None = None, error: TransportError | None = None) -> None:
        self.fail_at = fail_at
        self.error = error or TransportError("link dropped")
        self.sent: list[tuple[str, str]] = []

    def send(self, command: str, expected_response: str) -> None:
        if self.fail_at is not None and len(self.sent) + 1 == self.fail_at:
            raise self.error
        self.sent.append((command, expected_response))


def _sample_selector(diagnostics: Diagnostics | None = None) -> WindowSelector:
    """Part 0: C-E-G where the middle note is a dyad. Part 1: a single long note."""
    melody = Part(measures=[Measure(notes=[Note([261.63], 1.0), Note([329.63, 392.0], 1.0), Note([392.0], 2.0)])])
    drone = Part(measures=[Measure(notes=[Note([130.81], 4.0)])])
    score = Score(parts=[melody, drone], divisions_per_quarter=1, tempo_bpm=120.0)
    return WindowSelector(score, diagnostics=diagnostics)


def test_commands_start_with_allocation_then_alternate_channels() -> None:
    commands = JingleUploader(_sample_selector()).build_commands(2)

    assert commands[0] == AddJingleCommand(3, 3)
    notes = commands[1:]
    assert len(notes) == 6
    assert all(isinstance(command, NoteCommand) for command in notes)
    assert [(c.note_index, c.channel) for c in notes] == [
        (0, Channel.RIGHT), (0, Channel.LEFT),
        (1, Channel.RIGHT), (1, Channel.LEFT),
        (2, Channel.RIGHT), (2, Channel.LEFT),
    ]
    assert {c.jingle_index for c in notes} == {2}
    assert [c.duration_ms for c in notes[::2]] == [500, 500, 1000]


def test_left_chord_member_and_octave_are_applied() -> None:
    selector = _sample_selector()
    selector.set_chord_index(Channel.LEFT, 1)
    selector.set_octave_adjust(Channel.LEFT, 0.5)
    diagnostics = Diagnostics()

    commands = JingleUploader(selector, diagnostics=diagnostics).build_commands(0)
    left = [c for c in commands[1:] if c.channel is Channel.LEFT]

    assert [c.frequency for c in left] == [0, 196, 0]
    assert diagnostics.kinds() == [CHORD_INDEX_OUT_OF_RANGE, CHORD_INDEX_OUT_OF_RANGE]


def test_shorter_left_channel_is_padded_with_silence() -> None:
    diagnostics = Diagnostics()
    selector = _sample_selector(diagnostics)
    selector.set_part_index(Channel.LEFT, 1)

    commands = JingleUploader(selector).build_commands(0)
    left = [c for c in commands[1:] if c.channel is Channel.LEFT]

    assert [(c.frequency, c.duration_ms) for c in left] == [(130, 2000), (0, 500), (0, 1000)]
    assert diagnostics.kinds() == [CHANNEL_LENGTH_MISMATCH]


def test_longer_left_channel_is_truncated() -> None:
    diagnostics = Diagnostics()
    selector = _sample_selector(diagnostics)
    selector.set_part_index(Channel.RIGHT, 1)

    commands = JingleUploader(selector).build_commands(0)

    assert commands[0] == AddJingleCommand(1, 1)
    assert len(commands) == 3
    assert diagnostics.kinds() == [CHANNEL_LENGTH_MISMATCH]


def test_negative_jingle_index_is_rejected() -> None:
    with pytest.raises(BadIndexError):
        JingleUploader(_sample_selector()).build_commands(-1)


def test_capacity_is_enforced_before_sending() -> None:
    transport = _RecordingTransport()
    uploader = JingleUploader(_sample_selector(), capacity_bytes=10)
    with pytest.raises(CapacityExceededError):
        uploader.upload(transport, 0)
    assert transport.sent == []


def test_capacity_check_can_be_disabled() -> None:
    uploader = JingleUploader(_sample_selector(), capacity_bytes=None)
    assert len(uploader.build_commands(0)) == 7


def test_capacity_counts_padded_left_channel() -> None:
    selector = _sample_selector()
    selector.set_part_index(Channel.LEFT, 1)
    assert selector.estimate_storage_bytes() == 4 + 6 * (3 + 1)

    transport = _RecordingTransport()
    with pytest.raises(CapacityExceededError):
        JingleUploader(selector, capacity_bytes=30).upload(transport, 0)
    assert transport.sent == []
    assert len(JingleUploader(selector, capacity_bytes=40).build_commands(0)) == 7


def test_capacity_ignores_truncated_left_notes() -> None:
    selector = _sample_selector()
    selector.set_part_index(Channel.RIGHT, 1)

    commands = JingleUploader(selector, capacity_bytes=16).build_commands(0)

    assert commands[0] == AddJingleCommand(1, 1)


def test_upload_sends_every_command_with_its_acknowledgement() -> None:
    transport = _RecordingTransport()
    progress: list[tuple[int, int]] = []

    sent = JingleUploader(_sample_selector()).upload(transport, 1, progress=lambda s, t: progress.append((s, t)))

    assert sent == 7
    assert transport.sent[0] == ("jingle add 3 3\n", "jingle add 3 3\n\rJingle added successfully.\n\r")
    for command, expected in transport.sent[1:]:
        assert command.startswith("jingle note 1 ")
        assert expected == command + "\rNote updated successfully.\n\r"
    assert progress[-1] == (7, 7)


def test_failed_acknowledgement_aborts_without_retry() -> None:
    error = AcknowledgementMismatchError("cmd", "expected", "garbage")
    transport = _RecordingTransport(fail_at=4, error=error)

    with pytest.raises(ProtocolError, match="Command 4/7") as excinfo:
        JingleUploader(_sample_selector()).upload(transport, 0)

    assert len(transport.sent) == 3
    assert excinfo.value.__cause__ is error


def test_failed_allocation_sends_no_notes() -> None:
    transport = _RecordingTransport(fail_at=1)
    with pytest.raises(ProtocolError):
        JingleUploader(_sample_selector()).upload(transport, 0)
    assert transport.sent == []


def test_end_to_end_two_quarter_notes(simple_score_path: Path) -> None:
    selector = WindowSelector(parse_score_file(simple_score_path))
    transport = _RecordingTransport()

    JingleUploader(selector).upload(transport, 0)

    commands = [command for command, _ in transport.sent]
    assert commands[0] == "jingle add 2 2\n"
    assert commands[1:] == [
        "jingle note 0 right 0 128 261 600\n",
        "jingle note 0 left 0 128 261 600\n",
        "jingle note 0 right 1 128 261 600\n",
        "jingle note 0 left 1 128 261 600\n",
    ]
