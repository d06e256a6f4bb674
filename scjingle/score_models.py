"""Data models for a parsed score: parts, measures, notes and rewind frames."""

from dataclasses import dataclass, field

DEFAULT_DIVISIONS = 1
DEFAULT_TEMPO_BPM = 100.0


@dataclass
class Note:
    """
    One playing event: a single pitch or a chord of simultaneous pitches.

    Attributes:
        frequencies: Chord members in Hz, in the order they were notated.
                     A frequency of 0 is a rest.
        length:      Duration in quarter notes, shared by every chord member.
    """

    frequencies: list[float]
    length: float

    @property
    def chord_width(self) -> int:
        return len(self.frequencies)


@dataclass
class Measure:
    """Notes of one measure in playing order."""

    notes: list[Note] = field(default_factory=list)
    xml_duration_sum: int = 0


@dataclass
class Part:
    """
    One linear line of notes.

    Declared MusicXML parts and the extra voices introduced by <backup>
    elements are both represented as Parts.
    """

    measures: list[Measure] = field(default_factory=list)

    def notes_in(self, measure_start: int, measure_end: int) -> list[Note]:
        """Flatten measures ``[measure_start, measure_end)`` into one list."""
        return [
            note
            for measure in self.measures[measure_start:measure_end]
            for note in measure.notes
        ]


@dataclass
class Score:
    """All parts of a parsed score plus the timing values in force at its end."""

    parts: list[Part] = field(default_factory=list)
    divisions_per_quarter: int = DEFAULT_DIVISIONS
    tempo_bpm: float = DEFAULT_TEMPO_BPM


@dataclass
class BackupFrame:
    """
    An open rewind of the time cursor.

    Attributes:
        remaining:   Ticks of the rewound span not yet covered by notes.
        return_part: Part index to resume once the span has been played back.
    """

    remaining: int
    return_part: int
