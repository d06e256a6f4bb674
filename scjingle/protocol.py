"""Wire format of the controller's jingle command line."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from scjingle.diagnostics import CHORD_INDEX_OUT_OF_RANGE, Diagnostics
from scjingle.errors import ProtocolError
from scjingle.score_models import Note
from scjingle.window_selector import Channel, ChannelConfig

DUTY_CYCLE = 128
MS_PER_MINUTE = 60 * 1000

JINGLE_ADDED_ACK = "\rJingle added successfully.\n\r"
NOTE_UPDATED_ACK = "\rNote updated successfully.\n\r"


def _split_fields(line: str, keyword: str, count: int) -> list[str]:
    fields = line.rstrip("\n").split(" ")
    if fields[:2] != ["jingle", keyword] or len(fields) != count:
        raise ProtocolError(f"Not a 'jingle {keyword}' command with {count} fields: {line!r}")
    return fields


def _to_int(value: str, line: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ProtocolError(f"Non-integer field {value!r} in {line!r}") from None


@dataclass(frozen=True)
class AddJingleCommand:
    """Allocates a jingle slot holding the given number of notes per channel."""

    right_notes: int
    left_notes: int

    def encode(self) -> str:
        return f"jingle add {self.right_notes} {self.left_notes}\n"

    def expected_response(self) -> str:
        return self.encode() + JINGLE_ADDED_ACK

    @classmethod
    def decode(cls, line: str) -> AddJingleCommand:
        fields = _split_fields(line, "add", 4)
        return cls(right_notes=_to_int(fields[2], line), left_notes=_to_int(fields[3], line))


@dataclass(frozen=True)
class NoteCommand:
    """Programs one note of one channel of a jingle."""

    jingle_index: int
    channel: Channel
    note_index: int
    frequency: int
    duration_ms: int
    duty_cycle: int = DUTY_CYCLE

    def encode(self) -> str:
        return (
            f"jingle note {self.jingle_index} {self.channel.value} {self.note_index} "
            f"{self.duty_cycle} {self.frequency} {self.duration_ms}\n"
        )

    def expected_response(self) -> str:
        return self.encode() + NOTE_UPDATED_ACK

    @classmethod
    def decode(cls, line: str) -> NoteCommand:
        fields = _split_fields(line, "note", 8)
        try:
            channel = Channel(fields[3])
        except ValueError:
            raise ProtocolError(f"Unknown channel {fields[3]!r} in {line!r}") from None
        return cls(
            jingle_index=_to_int(fields[2], line),
            channel=channel,
            note_index=_to_int(fields[4], line),
            duty_cycle=_to_int(fields[5], line),
            frequency=_to_int(fields[6], line),
            duration_ms=_to_int(fields[7], line),
        )


Command = Union[AddJingleCommand, NoteCommand]


def channel_frequency(note: Note, config: ChannelConfig, diagnostics: Diagnostics) -> float:
    """Frequency a channel plays for ``note`` after chord and octave selection."""
    if config.chord_index >= len(note.frequencies):
        diagnostics.warn(
            CHORD_INDEX_OUT_OF_RANGE,
            f"Chord index {config.chord_index} out of range for a note with "
            f"{len(note.frequencies)} member(s); sending silence",
        )
        return 0.0
    return note.frequencies[config.chord_index] * config.octave_adjust


def duration_ms(length: float, tempo_bpm: float) -> int:
    """Milliseconds taken by ``length`` quarter notes at ``tempo_bpm``."""
    return int(length * MS_PER_MINUTE / tempo_bpm)


def encode_note(
    note: Note,
    channel: Channel,
    config: ChannelConfig,
    jingle_index: int,
    note_index: int,
    tempo_bpm: float,
    diagnostics: Diagnostics,
) -> NoteCommand:
    """Build the command programming ``note`` at ``note_index`` of a channel."""
    return NoteCommand(
        jingle_index=jingle_index,
        channel=channel,
        note_index=note_index,
        frequency=int(channel_frequency(note, config, diagnostics)),
        duration_ms=duration_ms(note.length, tempo_bpm),
    )
