"""Pitch resolution: MusicXML step/alter/octave to frequency in Hz."""

import math

from scjingle.errors import InvalidStepError

# ── Tuning constants ────────────────────────────────────────────────────────
SEMITONES_PER_OCTAVE = 12
C0_FREQUENCY = 16.35  # Hz, C in octave 0 of Scientific Pitch Notation
A4_FREQUENCY = 440.0
A4_MIDI = 69

#: Rounded twelfth root of two used by the legacy iterated computation.
LEGACY_SEMITONE_RATIO = 1.059463094359

#: Semitones above C within one octave for each natural step.
STEP_SEMITONES: dict[str, int] = {
    "C": 0,
    "D": 2,
    "E": 4,
    "F": 5,
    "G": 7,
    "A": 9,
    "B": 11,
}


def half_steps_from_c0(step: str, alter: float, octave: int) -> float:
    """
    Count equal-tempered half steps between C0 and the given pitch.

    Raises:
        InvalidStepError: If ``step`` is not one of C, D, E, F, G, A, B.
    """
    try:
        offset = STEP_SEMITONES[step]
    except KeyError:
        raise InvalidStepError(f"Invalid pitch step {step!r}") from None
    return octave * SEMITONES_PER_OCTAVE + alter + offset


def frequency_for(step: str, alter: float, octave: int, legacy: bool = False) -> float:
    """
    Return the frequency in Hz of a notated pitch.

    Args:
        step:   Step letter, ``"C"`` through ``"B"``.
        alter:  Chromatic alteration in semitones (-1 flat, +1 sharp).
        octave: Scientific octave number (4 for the Middle C octave).
        legacy: Multiply by the rounded semitone ratio once per half step
                instead of computing a single power. Pitches below C0 then
                resolve to C0, and fractional alterations are truncated.
    """
    half_steps = half_steps_from_c0(step, alter, octave)
    if legacy:
        factor = 1.0
        for _ in range(int(half_steps)):
            factor *= LEGACY_SEMITONE_RATIO
        return C0_FREQUENCY * factor
    return C0_FREQUENCY * 2.0 ** (half_steps / SEMITONES_PER_OCTAVE)


def frequency_to_midi(frequency: float) -> int | None:
    """Nearest MIDI key for ``frequency``, or None for silence."""
    if frequency <= 0:
        return None
    key = round(A4_MIDI + SEMITONES_PER_OCTAVE * math.log2(frequency / A4_FREQUENCY))
    return min(127, max(0, key))
