"""WindowSelector: chooses which part and measures each output channel plays."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from scjingle.diagnostics import INVALID_RANGE, Diagnostics
from scjingle.errors import (
    BadIndexError,
    BadMeasureRangeError,
    BadPartIndexError,
    CapacityExceededError,
)
from scjingle.score_models import Note, Score

logger = logging.getLogger(__name__)

# ── Device storage layout ───────────────────────────────────────────────────
JINGLE_HEADER_BYTES = 4  # per-jingle header (note counts per channel)
BYTES_PER_NOTE = 6       # one stored note: frequency, duration, duty cycle


class Channel(str, Enum):
    """Haptic output channel of the controller. RIGHT is the primary one."""

    RIGHT = "right"
    LEFT = "left"


@dataclass
class ChannelConfig:
    """
    Per-channel selection settings.

    Attributes:
        part_index:    Part the channel takes its notes from.
        octave_adjust: Multiplier applied to every frequency (2.0 = one
                       octave up, 0.5 = one octave down).
        chord_index:   Which chord member to play when a note is a chord.
    """

    part_index: int = 0
    octave_adjust: float = 1.0
    chord_index: int = 0


class WindowSelector:
    """
    Read-only view over a parsed Score that carries the channel configuration.

    The measure window is half-open, ``[measure_start, measure_end)``, and
    shared by both channels. A new selector covers the whole score with both
    channels on part 0. Every mutator validates against the score and raises
    instead of clamping.
    """

    def __init__(self, score: Score, diagnostics: Diagnostics | None = None) -> None:
        self.score = score
        self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()
        self.channels: dict[Channel, ChannelConfig] = {
            Channel.RIGHT: ChannelConfig(),
            Channel.LEFT: ChannelConfig(),
        }
        self.measure_start = 0
        self.measure_end = self.total_measures()

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _check_part(self, part_index: int) -> None:
        if not 0 <= part_index < len(self.score.parts):
            raise BadPartIndexError(
                f"Part index {part_index} out of range; score has {len(self.score.parts)} part(s)"
            )

    def _check_range(self, measure_start: int, measure_end: int) -> None:
        total = self.total_measures()
        if not 0 <= measure_start < measure_end <= total:
            raise BadMeasureRangeError(
                f"Measure range [{measure_start}, {measure_end}) is not within [0, {total})"
            )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def total_measures(self) -> int:
        """Measure count of the first part; 0 for an empty score."""
        if not self.score.parts:
            return 0
        return len(self.score.parts[0].measures)

    def max_chord_width(self, part_index: int, measure_start: int, measure_end: int) -> int:
        """
        Size of the largest chord in a part over ``[measure_start, measure_end)``.

        Lets a user put both channels on the same part but on different chord
        members. Out-of-bounds input is reported as a diagnostic and yields 0.
        """
        if not 0 <= part_index < len(self.score.parts):
            self.diagnostics.warn(INVALID_RANGE, f"Part index {part_index} out of range")
            return 0

        part = self.score.parts[part_index]
        if not 0 <= measure_start < measure_end <= len(part.measures):
            self.diagnostics.warn(
                INVALID_RANGE,
                f"Measure range [{measure_start}, {measure_end}) invalid for part {part_index} "
                f"with {len(part.measures)} measure(s)",
            )
            return 0

        return max(
            (note.chord_width for note in part.notes_in(measure_start, measure_end)),
            default=0,
        )

    def selected_notes(self, channel: Channel) -> list[Note]:
        """
        Notes the channel plays, in measure order then notated order.

        Raises:
            BadPartIndexError:    If the channel's part does not exist.
            BadMeasureRangeError: If the window is empty or out of bounds.
        """
        config = self.channels[channel]
        self._check_part(config.part_index)
        self._check_range(self.measure_start, self.measure_end)
        part = self.score.parts[config.part_index]
        return part.notes_in(self.measure_start, self.measure_end)

    def estimate_storage_bytes(self) -> int:
        """Bytes the two selected windows occupy, counting each channel's own notes."""
        note_count = sum(len(self.selected_notes(channel)) for channel in Channel)
        return JINGLE_HEADER_BYTES + BYTES_PER_NOTE * note_count

    def upload_storage_bytes(self) -> int:
        """
        Bytes an upload of the current selection writes to the device.

        Both channels are stored with the RIGHT channel's note count, since
        the LEFT channel is padded with silence or truncated to match it.
        """
        note_count = 2 * len(self.selected_notes(Channel.RIGHT))
        return JINGLE_HEADER_BYTES + BYTES_PER_NOTE * note_count

    def check_capacity(self, capacity_bytes: int) -> int:
        """
        Return the upload size, refusing selections that do not fit.

        Raises:
            CapacityExceededError: If the upload size exceeds ``capacity_bytes``.
        """
        needed = self.upload_storage_bytes()
        if needed > capacity_bytes:
            raise CapacityExceededError(
                f"Selection needs {needed} bytes but the device holds {capacity_bytes}; "
                "narrow the measure range"
            )
        return needed

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def set_part_index(self, channel: Channel, part_index: int) -> None:
        self._check_part(part_index)
        self.channels[channel].part_index = part_index

    def set_measure_range(self, measure_start: int, measure_end: int) -> None:
        self._check_range(measure_start, measure_end)
        self.measure_start = measure_start
        self.measure_end = measure_end

    def set_measure_start(self, measure_start: int) -> None:
        self.set_measure_range(measure_start, self.measure_end)

    def set_measure_end(self, measure_end: int) -> None:
        self.set_measure_range(self.measure_start, measure_end)

    def set_octave_adjust(self, channel: Channel, octave_adjust: float) -> None:
        if octave_adjust <= 0:
            raise BadIndexError(f"Octave adjust must be positive, got {octave_adjust}")
        self.channels[channel].octave_adjust = octave_adjust

    def set_chord_index(self, channel: Channel, chord_index: int) -> None:
        # Members missing from narrower chords are reported at encode time.
        if chord_index < 0:
            raise BadIndexError(f"Chord index must not be negative, got {chord_index}")
        self.channels[channel].chord_index = chord_index
