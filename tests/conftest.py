"""Shared MusicXML fixtures."""

from pathlib import Path

import pytest

# Two measures of quarter-note C4 at 100 BPM, divisions=4.
SIMPLE_SCORE = """<?xml version="1.0" encoding="UTF-8" standalone="no"?>
<!DOCTYPE score-partwise PUBLIC "-//Recordare//DTD MusicXML 3.1 Partwise//EN"
  "http://www.musicxml.org/dtds/partwise.dtd">
<score-partwise version="3.1">
  <part-list>
    <score-part id="P1"><part-name>Melody</part-name></score-part>
  </part-list>
  <part id="P1">
    <measure number="1">
      <attributes><divisions>4</divisions></attributes>
      <direction placement="above">
        <direction-type>
          <metronome><beat-unit>quarter</beat-unit><per-minute>100</per-minute></metronome>
        </direction-type>
      </direction>
      <note>
        <pitch><step>C</step><octave>4</octave></pitch>
        <duration>4</duration>
        <type>quarter</type>
      </note>
    </measure>
    <measure number="2">
      <note>
        <pitch><step>C</step><octave>4</octave></pitch>
        <duration>4</duration>
        <type>quarter</type>
      </note>
    </measure>
  </part>
</score-partwise>
"""

# One staff with a second voice written through <backup>, plus a chord.
TWO_VOICE_SCORE = """<?xml version="1.0" encoding="UTF-8"?>
<score-partwise version="3.1">
  <part id="P1">
    <measure number="1">
      <attributes><divisions>2</divisions></attributes>
      <note>
        <pitch><step>E</step><octave>5</octave></pitch>
        <duration>4</duration>
      </note>
      <note>
        <chord/>
        <pitch><step>G</step><octave>5</octave></pitch>
        <duration>4</duration>
      </note>
      <backup><duration>4</duration></backup>
      <note>
        <pitch><step>C</step><alter>-1</alter><octave>3</octave></pitch>
        <duration>2</duration>
      </note>
      <note>
        <rest/>
        <duration>2</duration>
      </note>
    </measure>
    <measure number="2">
      <note>
        <pitch><step>F</step><alter>1</alter><octave>5</octave></pitch>
        <duration>4</duration>
      </note>
    </measure>
  </part>
</score-partwise>
"""


@pytest.fixture
def simple_score_path(tmp_path: Path) -> Path:
    path = tmp_path / "simple.musicxml"
    path.write_text(SIMPLE_SCORE, encoding="utf-8")
    return path


@pytest.fixture
def two_voice_score_path(tmp_path: Path) -> Path:
    path = tmp_path / "two_voice.musicxml"
    path.write_text(TWO_VOICE_SCORE, encoding="utf-8")
    return path
