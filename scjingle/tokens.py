"""Token types and a streaming MusicXML tokenizer built on SAX."""

from __future__ import annotations

import logging
import os
import xml.sax
from collections import deque
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Union
from xml.sax.handler import ContentHandler, feature_external_ges, feature_external_pes

from scjingle.errors import MalformedMarkupError, SourceUnavailableError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class StartElement:
    name: str


@dataclass(frozen=True)
class EndElement:
    name: str


@dataclass(frozen=True)
class Text:
    value: str


@dataclass(frozen=True)
class EndOfDocument:
    pass


Token = Union[StartElement, EndElement, Text, EndOfDocument]


class _TokenHandler(ContentHandler):
    """Queue SAX callbacks as tokens, merging split character data."""

    def __init__(self) -> None:
        super().__init__()
        self.tokens: deque[Token] = deque()
        self._text: list[str] = []

    def startElement(self, name: str, attrs: object) -> None:
        self._flush_text()
        self.tokens.append(StartElement(name))

    def endElement(self, name: str) -> None:
        self._flush_text()
        self.tokens.append(EndElement(name))

    def characters(self, content: str) -> None:
        self._text.append(content)

    def _flush_text(self) -> None:
        text = "".join(self._text)
        self._text.clear()
        if text.strip():
            self.tokens.append(Text(text))


def iter_tokens(path: str | os.PathLike[str], chunk_size: int = CHUNK_SIZE) -> Iterator[Token]:
    """
    Yield the tokens of a MusicXML file, ending with ``EndOfDocument``.

    The file is fed to the parser incrementally, so tokens are produced as
    the file is read rather than after the whole document is loaded.

    Raises:
        SourceUnavailableError: If the file cannot be opened or read.
        MalformedMarkupError:   If the file is not well-formed XML.
    """
    handler = _TokenHandler()
    parser = xml.sax.make_parser()
    parser.setContentHandler(handler)
    parser.setFeature(feature_external_ges, False)
    parser.setFeature(feature_external_pes, False)

    try:
        fh = open(path, "rb")
    except OSError as exc:
        raise SourceUnavailableError(f"Could not open score '{path}': {exc}") from exc

    logger.debug("Tokenizing %s", path)
    with fh:
        while True:
            try:
                chunk = fh.read(chunk_size)
            except OSError as exc:
                raise SourceUnavailableError(f"Could not read score '{path}': {exc}") from exc
            try:
                if chunk:
                    parser.feed(chunk)
                else:
                    parser.close()
            except xml.sax.SAXParseException as exc:
                raise MalformedMarkupError(f"'{path}' is not well-formed XML: {exc}") from exc
            while handler.tokens:
                yield handler.tokens.popleft()
            if not chunk:
                break

    yield EndOfDocument()
