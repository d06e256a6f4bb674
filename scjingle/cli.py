"""scjingle CLI entry point."""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable
from typing import Any, NoReturn

import click

from scjingle import __version__
from scjingle.diagnostics import Diagnostics
from scjingle.errors import JingleError, ProtocolError, TransportError
from scjingle.score_builder import parse_score_file
from scjingle.transport import SerialTransport
from scjingle.uploader import DEFAULT_CAPACITY_BYTES, JingleUploader
from scjingle.window_selector import Channel, WindowSelector

LOG_LEVELS = [logging.WARNING, logging.INFO, logging.DEBUG]

JINGLE_OPTION = click.option(
    "--jingle", "jingle_index", type=click.IntRange(min=0), default=0,
    show_default=True, help="Jingle slot on the controller.",
)

SCORE_ARGUMENT = click.argument(
    "score_file", type=click.Path(exists=True, dir_okay=False, readable=True)
)


def _fail(message: str) -> NoReturn:
    click.echo(f"  ERROR: {message}", err=True)
    sys.exit(1)


def _selection_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Attach the channel and window options shared by commands, preview and upload."""
    options = [
        click.option("--right-part", type=click.IntRange(min=0), default=0,
                     show_default=True, help="Part played on the right channel."),
        click.option("--left-part", type=click.IntRange(min=0), default=0,
                     show_default=True, help="Part played on the left channel."),
        click.option("--start", "measure_start", type=click.IntRange(min=0), default=0,
                     show_default=True, help="First measure (0-based)."),
        click.option("--end", "measure_end", type=click.IntRange(min=1), default=None,
                     help="Measure after the last one. Defaults to the end of the score."),
        click.option("--right-octave", type=click.FloatRange(min=0, min_open=True), default=1.0,
                     show_default=True, help="Frequency multiplier for the right channel."),
        click.option("--left-octave", type=click.FloatRange(min=0, min_open=True), default=1.0,
                     show_default=True, help="Frequency multiplier for the left channel."),
        click.option("--right-chord", type=click.IntRange(min=0), default=0,
                     show_default=True, help="Chord member played on the right channel."),
        click.option("--left-chord", type=click.IntRange(min=0), default=0,
                     show_default=True, help="Chord member played on the left channel."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _load_selection(score_file: str, diagnostics: Diagnostics, **selection: Any) -> WindowSelector:
    """Parse the score and apply the selection options, exiting on error."""
    try:
        score = parse_score_file(score_file, diagnostics=diagnostics)
    except OSError as exc:
        _fail(f"Could not read score — {exc}")
    except ValueError as exc:
        _fail(f"Could not parse score — {exc}")

    selector = WindowSelector(score, diagnostics=diagnostics)
    try:
        selector.set_part_index(Channel.RIGHT, selection["right_part"])
        selector.set_part_index(Channel.LEFT, selection["left_part"])
        measure_end = selection["measure_end"]
        selector.set_measure_range(
            selection["measure_start"],
            measure_end if measure_end is not None else selector.total_measures(),
        )
        selector.set_octave_adjust(Channel.RIGHT, selection["right_octave"])
        selector.set_octave_adjust(Channel.LEFT, selection["left_octave"])
        selector.set_chord_index(Channel.RIGHT, selection["right_chord"])
        selector.set_chord_index(Channel.LEFT, selection["left_chord"])
    except ValueError as exc:
        _fail(f"Invalid selection — {exc}")
    return selector


def _report_diagnostics(diagnostics: Diagnostics) -> None:
    if len(diagnostics):
        click.echo(f"  {len(diagnostics)} warning(s); run with -v for context.", err=True)


# ── CLI group ──────────────────────────────────────────────────────────────────

@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="scjingle")
@click.option("-v", "--verbose", count=True, help="Repeat for more log output (-v info, -vv debug).")
def main(verbose: int) -> None:
    """scjingle — turn MusicXML scores into Steam Controller jingles."""
    logging.basicConfig(
        level=LOG_LEVELS[min(verbose, len(LOG_LEVELS) - 1)],
        format="%(levelname)s %(name)s: %(message)s",
    )


# ── info subcommand ────────────────────────────────────────────────────────────

@main.command()
@SCORE_ARGUMENT
def info(score_file: str) -> None:
    """
    Summarise the parts and measures of a score.

    Voices written with <backup> appear as extra parts after the part they
    belong to.
    """
    diagnostics = Diagnostics()
    try:
        score = parse_score_file(score_file, diagnostics=diagnostics)
    except OSError as exc:
        _fail(f"Could not read score — {exc}")
    except ValueError as exc:
        _fail(f"Could not parse score — {exc}")

    selector = WindowSelector(score, diagnostics=diagnostics)
    total = selector.total_measures()

    click.echo(f"scjingle v{__version__}")
    click.echo(f"  Score     : {score_file}")
    click.echo(f"  Tempo     : {score.tempo_bpm:g} BPM  |  Divisions: {score.divisions_per_quarter}")
    click.echo(f"  Measures  : {total}")
    click.echo(f"  Parts     : {len(score.parts)}")
    for index, part in enumerate(score.parts):
        note_count = len(part.notes_in(0, len(part.measures)))
        width = selector.max_chord_width(index, 0, len(part.measures)) if part.measures else 0
        click.echo(
            f"    [{index}] {len(part.measures):4d} measure(s)  "
            f"{note_count:5d} note(s)  max chord {width}"
        )
    _report_diagnostics(diagnostics)


# ── commands subcommand ────────────────────────────────────────────────────────

@main.command()
@SCORE_ARGUMENT
@_selection_options
@JINGLE_OPTION
@click.option("--capacity", type=click.IntRange(min=1), default=DEFAULT_CAPACITY_BYTES,
              show_default=True, help="Jingle storage available on the controller, in bytes.")
def commands(score_file: str, jingle_index: int, capacity: int, **selection: Any) -> None:
    """
    Print the wire commands an upload would send, without a device.

    \b
    Examples:
      scjingle commands song.musicxml
      scjingle commands song.musicxml --start 4 --end 8 --left-part 1
    """
    diagnostics = Diagnostics()
    selector = _load_selection(score_file, diagnostics, **selection)
    uploader = JingleUploader(selector, diagnostics=diagnostics, capacity_bytes=capacity)
    try:
        encoded = uploader.build_commands(jingle_index)
    except ValueError as exc:
        _fail(str(exc))

    for command in encoded:
        click.echo(command.encode(), nl=False)
    click.echo(f"# {selector.upload_storage_bytes()} of {capacity} bytes", err=True)
    _report_diagnostics(diagnostics)


# ── preview subcommand ─────────────────────────────────────────────────────────

@main.command()
@SCORE_ARGUMENT
@_selection_options
@click.option("--output", "-o", required=True, metavar="PATH", help="Destination MIDI file.")
def preview(score_file: str, output: str, **selection: Any) -> None:
    """
    Write the selected channels to a MIDI file for listening before upload.

    \b
    Examples:
      scjingle preview song.musicxml -o preview.mid --right-octave 2
    """
    from scjingle.midi_exporter import PreviewExporter

    diagnostics = Diagnostics()
    selector = _load_selection(score_file, diagnostics, **selection)
    try:
        PreviewExporter().export(selector, output)
    except OSError as exc:
        _fail(f"Could not write MIDI file — {exc}")
    except ValueError as exc:
        _fail(str(exc))

    click.echo(f"Done!  Wrote '{output}'.")
    _report_diagnostics(diagnostics)


# ── upload subcommand ──────────────────────────────────────────────────────────

@main.command()
@SCORE_ARGUMENT
@_selection_options
@JINGLE_OPTION
@click.option("--port", "-p", required=True, envvar="SCJINGLE_PORT", metavar="PORT",
              help="Serial port or pyserial URL of the controller. [env: SCJINGLE_PORT]")
@click.option("--baudrate", type=click.IntRange(min=1), default=SerialTransport.DEFAULT_BAUDRATE,
              show_default=True, help="Serial baud rate.")
@click.option("--timeout", type=click.FloatRange(min=0, min_open=True),
              default=SerialTransport.DEFAULT_TIMEOUT, show_default=True, metavar="SECS",
              help="Seconds to wait for each acknowledgement.")
@click.option("--capacity", type=click.IntRange(min=1), default=DEFAULT_CAPACITY_BYTES,
              show_default=True, help="Jingle storage available on the controller, in bytes.")
def upload(
    score_file: str,
    jingle_index: int,
    port: str,
    baudrate: int,
    timeout: float,
    capacity: int,
    **selection: Any,
) -> None:
    """
    Program a jingle slot on the controller over its serial command line.

    SCORE_FILE is an uncompressed MusicXML file.

    \b
    Examples:
      scjingle upload song.musicxml -p /dev/ttyACM0
      scjingle upload song.musicxml -p COM3 --jingle 2 --end 8 --right-octave 2
    """
    diagnostics = Diagnostics()

    click.echo(f"scjingle v{__version__}")
    click.echo(f"  Score  : {score_file}")
    click.echo(f"  Port   : {port}  |  Jingle: {jingle_index}")
    click.echo()

    click.echo("[1/3] Parsing score...")
    selector = _load_selection(score_file, diagnostics, **selection)
    uploader = JingleUploader(selector, diagnostics=diagnostics, capacity_bytes=capacity)

    click.echo("[2/3] Checking storage...")
    try:
        needed = selector.check_capacity(capacity)
    except ValueError as exc:
        _fail(str(exc))
    click.echo(f"      {needed} of {capacity} bytes")

    click.echo("[3/3] Uploading...")
    try:
        transport = SerialTransport.open(port, baudrate=baudrate, timeout=timeout)
    except TransportError as exc:
        _fail(str(exc))

    with transport, click.progressbar(length=1, label="      Commands") as bar:
        def advance(sent: int, total: int) -> None:
            bar.length = total
            bar.update(1)

        try:
            sent = uploader.upload(transport, jingle_index, progress=advance)
        except ProtocolError as exc:
            _fail(f"Upload aborted, jingle {jingle_index} is only partially written — {exc}")
        except (JingleError, ValueError) as exc:
            _fail(str(exc))

    click.echo()
    _report_diagnostics(diagnostics)
    click.echo(f"Done!  Sent {sent} command(s) to jingle {jingle_index}.")
