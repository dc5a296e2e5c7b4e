"""Shared fixtures for poem builder tests."""

import pytest

SAMPLE_POEM = """\
<<# draft notes
not part of the poem
#>>
={place}=the harbour
={chorus}<<=
Row, row, row
Toward ${place}
=>>
Harbour Song
2024-03-05

{{ First Draft }}

{Verse}
The tide comes in
  over stones

{Chorus}
${chorus}

----

{{ Second Draft }}

The tide goes out

====

Audiomack
Suno: song/abc123

====

{Source}
Written at *dawn* by ${place}.

----

<<<
- $ref: "shared.yaml#/disclaimer"
>>>

====

{Synopsis}

A song about -- tides.

{Full}

# Structure

Two drafts, "side by side".

====
"""

SHARED_YAML = """\
disclaimer:
  label: Disclaimer
  content: "<p>Any resemblance to real harbours is coincidental.</p>\\n"
credits:
  - label: Thanks
    content: "<p>To the tide.</p>\\n"
"""


@pytest.fixture
def sample_poem_text():
    """A .poem source exercising every section."""
    return SAMPLE_POEM


@pytest.fixture
def sample_poem_file(tmp_path):
    """SAMPLE_POEM written to tmp_path/harbour_song.poem."""
    path = tmp_path / "harbour_song.poem"
    path.write_text(SAMPLE_POEM, encoding="utf-8")
    return path


@pytest.fixture
def shared_yaml(tmp_path):
    """A shared.yaml reference target in tmp_path."""
    path = tmp_path / "shared.yaml"
    path.write_text(SHARED_YAML, encoding="utf-8")
    return path
