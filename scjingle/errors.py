"""Exception hierarchy shared by the parser, selector and uploader."""


class JingleError(Exception):
    """Base class for every error raised by scjingle."""


class SourceUnavailableError(JingleError, OSError):
    """The score file could not be opened or read."""


# ── Parsing ─────────────────────────────────────────────────────────────────

class ScoreParseError(JingleError, ValueError):
    """The token stream could not be turned into a Score."""


class MalformedMarkupError(ScoreParseError):
    """The token stream violates the element grammar the builder expects."""


class MalformedBackupError(ScoreParseError):
    """A <backup> element carries no usable duration."""


class UnconsumedBackupError(ScoreParseError):
    """A measure or part ended before a rewound duration was played back."""


class BackupUnderflowError(ScoreParseError):
    """A note is longer than what remains of the open rewind."""


class OrphanChordError(ScoreParseError):
    """A chord-flagged note has no preceding note in its measure."""


class InvalidStepError(ScoreParseError):
    """A pitch step is not one of the letters C through B."""


# ── Configuration ───────────────────────────────────────────────────────────

class ConfigurationError(JingleError, ValueError):
    """A channel or window setting does not fit the parsed score."""


class BadIndexError(ConfigurationError):
    """An index used for configuration is out of bounds."""


class BadPartIndexError(BadIndexError):
    """A channel references a part that does not exist."""


class BadMeasureRangeError(BadIndexError):
    """The measure window is empty or reaches past the score."""


class CapacityExceededError(ConfigurationError):
    """The selected window does not fit in the device's jingle storage."""


# ── Device communication ────────────────────────────────────────────────────

class TransportError(JingleError):
    """The link to the device failed or timed out."""


class AcknowledgementMismatchError(TransportError):
    """The device answered with something other than the expected text."""

    def __init__(self, command: str, expected: str, received: str) -> None:
        self.command = command
        self.expected = expected
        self.received = received
        super().__init__(f"expected {expected!r}, received {received!r}")


class ProtocolError(JingleError):
    """An upload was aborted, or a wire command could not be decoded."""
