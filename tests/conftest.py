import io

import openpyxl
import pytest

from lingoshield.ai.providers import EchoProvider, TranslationProvider
from lingoshield.config import PipelineConfig
from lingoshield.core.database import MemoryStore
from lingoshield.protection.glossary import GlossaryEntry
from lingoshield.tmx.parser import parse_tmx

SAMPLE_TMX = """<?xml version="1.0" encoding="UTF-8"?>
<tmx version="1.4">
  <header srclang="en-US" creationtool="Test" segtype="sentence"/>
  <body>
    <tu usagecount="3">
      <prop type="x-Quality">90</prop>
      <tuv xml:lang="en-US"><seg>Save changes</seg></tuv>
      <tuv xml:lang="fr-FR"><seg>Enregistrer les modifications</seg></tuv>
      <tuv xml:lang="de-DE"><seg>Änderungen speichern</seg></tuv>
    </tu>
    <tu>
      <tuv xml:lang="en-US"><seg>Save change</seg></tuv>
      <tuv xml:lang="fr-FR"><seg>Enregistrer la modification</seg></tuv>
    </tu>
    <tu>
      <tuv xml:lang="en-US"><seg>Orphan</seg></tuv>
    </tu>
  </body>
</tmx>
"""

SAMPLE_SRT = """1
00:00:01,000 --> 00:00:03,000
Hello <b>world</b>

2
00:00:03,500 --> 00:00:05,000
Second line
"""

SAMPLE_VTT = """WEBVTT

NOTE This is a comment

STYLE
::cue { color: yellow; }

intro
00:00:01.000 --> 00:00:03.000 align:start
<v Alice>Alice says hi</v>

00:00:04.000 --> 00:00:06.000
Second cue
"""


class UpperProvider(TranslationProvider):
    """Upper-cases text; protection markers survive unchanged."""

    name = "upper"

    def __init__(self):
        self.calls = 0
        self.texts = []

    def translate(self, text, target_lang, source_lang=None):
        self.calls += 1
        self.texts.append(text)
        return text.upper()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def echo():
    return EchoProvider()


@pytest.fixture
def upper():
    return UpperProvider()


@pytest.fixture
def water_glossary():
    return [GlossaryEntry(translations={"en-US": "water", "fr-FR": "eau"})]


@pytest.fixture
def sample_memory():
    return parse_tmx(SAMPLE_TMX, "sample.tmx")


@pytest.fixture
def pipeline_config():
    return PipelineConfig()


@pytest.fixture
def sample_tmx():
    return SAMPLE_TMX


@pytest.fixture
def sample_srt():
    return SAMPLE_SRT


@pytest.fixture
def sample_vtt():
    return SAMPLE_VTT


@pytest.fixture
def workbook_bytes():
    """Build an in-memory .xlsx file from a list of rows."""

    def build(rows):
        workbook = openpyxl.Workbook()
        sheet = workbook.active
        for row in rows:
            sheet.append(row)
        buffer = io.BytesIO()
        workbook.save(buffer)
        return buffer.getvalue()

    return build
