"""ScoreBuilder: rebuilds parts, measures and notes from a MusicXML token stream."""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from scjingle.diagnostics import CHORD_LENGTH_MISMATCH, UNREADABLE_TEMPO, Diagnostics
from scjingle.errors import (
    BackupUnderflowError,
    MalformedBackupError,
    MalformedMarkupError,
    OrphanChordError,
    UnconsumedBackupError,
)
from scjingle.pitch import frequency_for
from scjingle.score_models import BackupFrame, Measure, Note, Part, Score
from scjingle.tokens import EndElement, EndOfDocument, StartElement, Text, Token, iter_tokens

logger = logging.getLogger(__name__)

MAX_BACKUP_DEPTH = 16

# First number in a <per-minute> value such as "ca. 60" or "120-132".
TEMPO_NUMBER = re.compile(r"\d+(?:\.\d+)?")


@dataclass
class ParserState:
    """
    Everything the builder mutates while walking one token stream.

    Attributes:
        score:        The score under construction (also holds the current
                      divisions and tempo).
        current_part: Index of the Part the next sequential note is written to.
        backups:      Open rewinds, innermost last.
    """

    score: Score = field(default_factory=Score)
    current_part: int = 0
    backups: list[BackupFrame] = field(default_factory=list)


class ScoreBuilder:
    """
    Turns MusicXML tokens into a Score of linear Parts.

    MusicXML writes a second voice on a staff by moving the time cursor
    back with <backup> and notating the overlapping notes again. Instead of
    tracking concurrent voices, each rewound span is written into an extra
    Part: the cursor moves to the next Part slot when a backup opens, and
    returns to the original Part once notes have covered the rewound
    duration. At every measure and part boundary all open rewinds must be
    fully covered, otherwise the parse fails.

    Usage:

        score = ScoreBuilder().build(iter_tokens("song.musicxml"))
    """

    def __init__(self, diagnostics: Diagnostics | None = None, legacy_pitch: bool = False) -> None:
        """
        Args:
            diagnostics:  Receives non-fatal findings; a private collector is
                          created when omitted.
            legacy_pitch: Use the iterated semitone multiplication when
                          resolving pitches (see ``frequency_for``).
        """
        self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()
        self.legacy_pitch = legacy_pitch

    # ------------------------------------------------------------------
    # Private helpers: token access
    # ------------------------------------------------------------------

    def _next_token(self, stream: Iterator[Token], context: str) -> Token:
        token = next(stream, None)
        if token is None or isinstance(token, EndOfDocument):
            raise MalformedMarkupError(f"Document ended inside <{context}>")
        return token

    def _children(self, stream: Iterator[Token], parent: str) -> Iterator[StartElement]:
        """Yield the start tokens nested in ``parent`` up to its end tag."""
        while True:
            token = self._next_token(stream, parent)
            if isinstance(token, EndElement) and token.name == parent:
                return
            if isinstance(token, StartElement):
                yield token

    def _read_text(self, stream: Iterator[Token], element: str) -> str:
        token = self._next_token(stream, element)
        if not isinstance(token, Text):
            raise MalformedMarkupError(f"<{element}> has no text content")
        return token.value.strip()

    def _read_int(self, stream: Iterator[Token], element: str) -> int:
        text = self._read_text(stream, element)
        try:
            return int(text)
        except ValueError:
            raise MalformedMarkupError(f"<{element}> must be an integer, got {text!r}") from None

    def _read_float(self, stream: Iterator[Token], element: str) -> float:
        text = self._read_text(stream, element)
        try:
            return float(text)
        except ValueError:
            raise MalformedMarkupError(f"<{element}> must be a number, got {text!r}") from None

    def _expect_start(self, token: StartElement, name: str) -> None:
        if token.name != name:
            raise MalformedMarkupError(f"Expected <{name}>, got <{token.name}>")

    # ------------------------------------------------------------------
    # Private helpers: cursor movement
    # ------------------------------------------------------------------

    def _drain_backups(self, state: ParserState, boundary: str) -> None:
        """Close every open rewind, innermost first, restoring the cursor."""
        while state.backups:
            frame = state.backups[-1]
            if frame.remaining != 0:
                raise UnconsumedBackupError(
                    f"Reached {boundary} with {len(state.backups)} open backup(s); "
                    f"innermost still has {frame.remaining} tick(s) to cover"
                )
            state.backups.pop()
            state.current_part = frame.return_part

    def _target_measure(self, state: ParserState) -> Measure:
        """Return the measure the next note goes to, creating Parts lazily."""
        parts = state.score.parts
        while len(parts) <= state.current_part:
            parts.append(Part())

        part = parts[state.current_part]
        if not part.measures:
            # A voice that first appears mid-score starts level with its origin.
            aligned = 1
            if state.backups:
                origin = parts[state.backups[-1].return_part]
                aligned = max(1, len(origin.measures))
            part.measures.extend(Measure() for _ in range(aligned))
        return part.measures[-1]

    # ------------------------------------------------------------------
    # Private helpers: element handlers
    # ------------------------------------------------------------------

    def _open_measure(self, state: ParserState) -> None:
        self._drain_backups(state, "start of measure")
        for part in state.score.parts[state.current_part:]:
            part.measures.append(Measure())

    def _close_part(self, state: ParserState) -> None:
        self._drain_backups(state, "end of part")
        state.current_part = len(state.score.parts)

    def _parse_backup(self, state: ParserState, start: StartElement, stream: Iterator[Token]) -> None:
        self._expect_start(start, "backup")

        duration = 0
        for child in self._children(stream, "backup"):
            if child.name == "duration":
                duration = self._read_int(stream, "duration")

        if duration <= 0:
            raise MalformedBackupError(f"<backup> needs a positive duration, got {duration}")
        if len(state.backups) >= MAX_BACKUP_DEPTH:
            raise MalformedMarkupError(f"More than {MAX_BACKUP_DEPTH} nested backups")

        state.backups.append(BackupFrame(remaining=duration, return_part=state.current_part))
        state.current_part += 1

    def _parse_pitch(self, start: StartElement, stream: Iterator[Token]) -> float:
        self._expect_start(start, "pitch")

        step = ""
        alter = 0.0
        octave = 0
        for child in self._children(stream, "pitch"):
            if child.name == "step":
                step = self._read_text(stream, "step")
            elif child.name == "alter":
                alter = self._read_float(stream, "alter")
            elif child.name == "octave":
                octave = self._read_int(stream, "octave")

        return frequency_for(step, alter, octave, legacy=self.legacy_pitch)

    def _parse_note(self, state: ParserState, start: StartElement, stream: Iterator[Token]) -> None:
        self._expect_start(start, "note")

        # The rewound span has been played back: resume the original voice.
        if state.backups and state.backups[-1].remaining == 0:
            frame = state.backups.pop()
            state.current_part = frame.return_part

        frequency = 0.0
        raw_duration = 0
        is_chord = False
        for child in self._children(stream, "note"):
            if child.name == "pitch":
                frequency = self._parse_pitch(child, stream)
            elif child.name == "duration":
                raw_duration = self._read_int(stream, "duration")
                if raw_duration < 0:
                    raise MalformedMarkupError(f"Negative note duration {raw_duration}")
            elif child.name == "chord":
                is_chord = True

        length = raw_duration / state.score.divisions_per_quarter
        measure = self._target_measure(state)

        if is_chord:
            if not measure.notes:
                raise OrphanChordError(
                    f"Chord note in part {state.current_part} has no preceding note in its measure"
                )
            previous = measure.notes[-1]
            if round(previous.length) != round(length):
                self.diagnostics.warn(
                    CHORD_LENGTH_MISMATCH,
                    f"Chord member length {length} differs from {previous.length} "
                    f"in part {state.current_part}; keeping {previous.length}",
                )
            previous.frequencies.append(frequency)
            return

        measure.notes.append(Note(frequencies=[frequency], length=length))
        measure.xml_duration_sum += raw_duration

        if state.backups:
            frame = state.backups[-1]
            if raw_duration > frame.remaining:
                raise BackupUnderflowError(
                    f"Note duration {raw_duration} exceeds the {frame.remaining} "
                    f"tick(s) left of the open backup"
                )
            frame.remaining -= raw_duration

    def _read_tempo(self, state: ParserState, stream: Iterator[Token]) -> None:
        text = self._read_text(stream, "per-minute")
        match = TEMPO_NUMBER.search(text)
        tempo = float(match.group()) if match else 0.0
        if tempo <= 0:
            self.diagnostics.warn(
                UNREADABLE_TEMPO,
                f"<per-minute> {text!r} has no usable tempo; keeping {state.score.tempo_bpm:g} BPM",
            )
            return
        state.score.tempo_bpm = tempo

    def _on_start(self, state: ParserState, token: StartElement, stream: Iterator[Token]) -> None:
        name = token.name
        if name == "note":
            self._parse_note(state, token, stream)
        elif name == "backup":
            self._parse_backup(state, token, stream)
        elif name == "measure":
            self._open_measure(state)
        elif name == "divisions":
            divisions = self._read_int(stream, name)
            if divisions <= 0:
                raise MalformedMarkupError(f"<divisions> must be positive, got {divisions}")
            state.score.divisions_per_quarter = divisions
        elif name == "per-minute":
            self._read_tempo(state, stream)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def build(self, tokens: Iterable[Token]) -> Score:
        """
        Consume ``tokens`` and return the parsed Score.

        Raises:
            ScoreParseError: On the first structural problem; no partial
                             score is returned.
        """
        state = ParserState()
        stream = iter(tokens)

        for token in stream:
            if isinstance(token, EndOfDocument):
                break
            if isinstance(token, StartElement):
                self._on_start(state, token, stream)
            elif isinstance(token, EndElement) and token.name == "part":
                self._close_part(state)

        score = state.score
        logger.info(
            "Parsed %d part(s), %d measure(s), tempo %g BPM",
            len(score.parts),
            len(score.parts[0].measures) if score.parts else 0,
            score.tempo_bpm,
        )
        return score


def parse_score_file(
    path: str | os.PathLike[str],
    diagnostics: Diagnostics | None = None,
    legacy_pitch: bool = False,
) -> Score:
    """Tokenize and build the score stored at ``path``."""
    builder = ScoreBuilder(diagnostics=diagnostics, legacy_pitch=legacy_pitch)
    return builder.build(iter_tokens(path))
