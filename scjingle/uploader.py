"""JingleUploader: allocates a jingle on the controller and programs its notes."""

from __future__ import annotations

import logging
from collections.abc import Callable

from scjingle.diagnostics import CHANNEL_LENGTH_MISMATCH, Diagnostics
from scjingle.errors import BadIndexError, ProtocolError, TransportError
from scjingle.protocol import AddJingleCommand, Command, NoteCommand, duration_ms, encode_note
from scjingle.transport import Transport
from scjingle.window_selector import Channel, WindowSelector

logger = logging.getLogger(__name__)

# Assumed default; the controller's jingle storage size is not documented.
DEFAULT_CAPACITY_BYTES = 1024

ProgressCallback = Callable[[int, int], None]


class JingleUploader:
    """
    Sends the selected window to the controller in two phases.

    Phase 1: allocate
        ``jingle add n n`` reserves ``n`` notes per channel, where ``n`` is
        the length of the RIGHT (primary) channel's window.

    Phase 2: populate
        For every note index, one ``jingle note`` command per channel,
        RIGHT before LEFT.

    Every command must be acknowledged before the next one is sent. The
    first failure aborts the upload; commands already acknowledged stay
    written on the device, so a failed upload leaves the slot partially
    programmed.
    """

    def __init__(
        self,
        selector: WindowSelector,
        diagnostics: Diagnostics | None = None,
        capacity_bytes: int | None = DEFAULT_CAPACITY_BYTES,
    ) -> None:
        """
        Args:
            selector:       Configured window over the parsed score.
            diagnostics:    Receives non-fatal findings while encoding.
            capacity_bytes: Device storage available to a jingle; ``None``
                            skips the capacity check.
        """
        self.selector = selector
        self.diagnostics = diagnostics if diagnostics is not None else selector.diagnostics
        self.capacity_bytes = capacity_bytes

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def build_commands(self, jingle_index: int) -> list[Command]:
        """
        Encode the whole upload without touching the device.

        Raises:
            BadIndexError:         If ``jingle_index`` is negative or the
                                   selection is out of bounds.
            CapacityExceededError: If the selection does not fit.
        """
        if jingle_index < 0:
            raise BadIndexError(f"Jingle index must not be negative, got {jingle_index}")
        if self.capacity_bytes is not None:
            self.selector.check_capacity(self.capacity_bytes)

        tempo = self.selector.score.tempo_bpm
        right = self.selector.selected_notes(Channel.RIGHT)
        left = self.selector.selected_notes(Channel.LEFT)
        count = len(right)

        if len(left) < count:
            self.diagnostics.warn(
                CHANNEL_LENGTH_MISMATCH,
                f"Left channel has {len(left)} note(s) for {count} on the right; "
                "padding with silence",
            )
        elif len(left) > count:
            self.diagnostics.warn(
                CHANNEL_LENGTH_MISMATCH,
                f"Left channel has {len(left)} note(s) for {count} on the right; "
                f"dropping the last {len(left) - count}",
            )

        commands: list[Command] = [AddJingleCommand(right_notes=count, left_notes=count)]
        for note_index, primary in enumerate(right):
            for channel, notes in ((Channel.RIGHT, right), (Channel.LEFT, left)):
                if note_index < len(notes):
                    command = encode_note(
                        notes[note_index],
                        channel,
                        self.selector.channels[channel],
                        jingle_index,
                        note_index,
                        tempo,
                        self.diagnostics,
                    )
                else:
                    command = NoteCommand(
                        jingle_index=jingle_index,
                        channel=channel,
                        note_index=note_index,
                        frequency=0,
                        duration_ms=duration_ms(primary.length, tempo),
                    )
                commands.append(command)
        return commands

    def upload(
        self,
        transport: Transport,
        jingle_index: int,
        progress: ProgressCallback | None = None,
    ) -> int:
        """
        Program jingle ``jingle_index`` over ``transport``.

        Args:
            transport:    Open link to the controller.
            jingle_index: Slot to write.
            progress:     Called as ``progress(sent, total)`` after each
                          acknowledged command.

        Returns:
            Number of commands sent.

        Raises:
            ProtocolError: On the first failed acknowledgement. No retry is
                           attempted.
        """
        commands = self.build_commands(jingle_index)
        total = len(commands)
        logger.info("Uploading jingle %d: %d command(s)", jingle_index, total)

        for sent, command in enumerate(commands, start=1):
            try:
                transport.send(command.encode(), command.expected_response())
            except TransportError as exc:
                raise ProtocolError(
                    f"Command {sent}/{total} {command.encode().strip()!r} failed: {exc}"
                ) from exc
            if progress is not None:
                progress(sent, total)

        logger.info("Jingle %d uploaded", jingle_index)
        return total
