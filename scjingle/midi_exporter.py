"""PreviewExporter: writes the selected jingle window as a two-track MIDI file."""

from midiutil import MIDIFile

from scjingle.pitch import frequency_to_midi
from scjingle.protocol import channel_frequency
from scjingle.window_selector import Channel, WindowSelector

# Track 0 is the conductor track; notes written there are ignored by most
# players, so each channel gets its own data track.
TRACK_CONDUCTOR = 0  # tempo only
TRACK_RIGHT = 1
TRACK_LEFT = 2

CHANNEL_TRACKS: dict[Channel, tuple[int, str]] = {
    Channel.RIGHT: (TRACK_RIGHT, "Right Channel"),
    Channel.LEFT: (TRACK_LEFT, "Left Channel"),
}


class PreviewExporter:
    """
    Renders what the controller would play as a Standard MIDI File.

    Each channel's notes go through the same chord-member and octave-adjust
    selection as the uploader and are snapped to the nearest MIDI key.
    Silent notes (frequency 0) only advance time. Note lengths are already
    in quarter notes, which is what midiutil counts time in.
    """

    DEFAULT_VELOCITY = 80

    def __init__(self, velocity: int = DEFAULT_VELOCITY) -> None:
        self.velocity = velocity

    def export(self, selector: WindowSelector, output_path: str) -> None:
        """
        Write the current selection of ``selector`` to ``output_path``.

        Raises:
            BadIndexError: If the selection is out of bounds.
            OSError:       If the output file cannot be opened for writing.
        """
        midi = MIDIFile(numTracks=3, removeDuplicates=False, deinterleave=False)
        midi.addTempo(TRACK_CONDUCTOR, 0, selector.score.tempo_bpm)

        for channel, (track, name) in CHANNEL_TRACKS.items():
            midi.addTrackName(track, 0, name)
            config = selector.channels[channel]
            beat = 0.0
            for note in selector.selected_notes(channel):
                frequency = channel_frequency(note, config, selector.diagnostics)
                key = frequency_to_midi(frequency)
                if key is not None and note.length > 0:
                    midi.addNote(
                        track=track,
                        channel=track - 1,
                        pitch=key,
                        time=beat,
                        duration=note.length,
                        volume=self.velocity,
                    )
                beat += note.length

        with open(output_path, "wb") as f:
            midi.writeFile(f)
