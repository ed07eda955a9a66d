"""Gateway: parse whisper.cpp CLI output (stdout, txt, srt, vtt, json) into a Transcript."""

from __future__ import annotations

import json
import re

from pydantic import ValidationError

from whisper_bridge.l1_entities.config import OutputFormat
from whisper_bridge.l1_entities.errors import EngineProtocolError
from whisper_bridge.l1_entities.transcript import Transcript, TranscriptSegment

_TS = r'(?:(\d+):)?(\d{1,2}):(\d{2})[.,](\d{1,3})'
_TIMING_RE = re.compile(rf'^\s*{_TS}\s*-->\s*{_TS}')
_STDOUT_LINE_RE = re.compile(rf'^\s*\[\s*{_TS}\s*-->\s*{_TS}\s*\]\s?(.*)$')


def _seconds(hours: str | None, minutes: str, secs: str, millis: str) -> float:
    return int(hours or 0) * 3600 + int(minutes) * 60 + int(secs) + int(millis.ljust(3, '0')) / 1000.0


def _segment(start: float, end: float, text: str) -> TranscriptSegment:
    try:
        return TranscriptSegment(start=start, end=end, text=text.strip())
    except ValidationError as exc:
        raise EngineProtocolError(f'Invalid segment timing {start:.3f} --> {end:.3f}') from exc


def parse_stdout(stdout: str) -> Transcript:
    """Parse the ``[00:00:00.000 --> 00:00:02.000]  text`` lines whisper-cli prints."""
    segments = []
    for line in stdout.splitlines():
        m = _STDOUT_LINE_RE.match(line)
        if m is None:
            continue
        g = m.groups()
        segments.append(_segment(_seconds(*g[0:4]), _seconds(*g[4:8]), g[8]))
    return Transcript(segments)


def has_timestamp_lines(stdout: str) -> bool:
    return any(_STDOUT_LINE_RE.match(line) for line in stdout.splitlines())


def parse_txt(content: str) -> Transcript:
    """Plain text carries no timing; each non-empty line becomes a zero-length segment."""
    return Transcript(_segment(0.0, 0.0, line) for line in content.splitlines() if line.strip())


def _parse_cues(content: str, fmt: str) -> Transcript:
    segments = []
    for block in re.split(r'\r?\n\s*\r?\n', content.strip()):
        lines = [ln for ln in block.splitlines() if ln.strip()]
        timing_idx = next((i for i, ln in enumerate(lines) if _TIMING_RE.match(ln)), None)
        if timing_idx is None:
            if fmt == 'vtt' and lines and (lines[0].startswith('WEBVTT') or lines[0].startswith('NOTE')):
                continue
            if not lines:
                continue
            raise EngineProtocolError(f'Malformed {fmt} cue: {lines[0]!r}')
        g = _TIMING_RE.match(lines[timing_idx]).groups()
        text = '\n'.join(lines[timing_idx + 1 :])
        segments.append(_segment(_seconds(*g[0:4]), _seconds(*g[4:8]), text))
    return Transcript(segments)


def parse_srt(content: str) -> Transcript:
    return _parse_cues(content, 'srt')


def parse_vtt(content: str) -> Transcript:
    if not content.lstrip('\ufeff').startswith('WEBVTT'):
        raise EngineProtocolError('VTT output is missing the WEBVTT header')
    return _parse_cues(content.lstrip('\ufeff'), 'vtt')


def parse_json(content: str) -> Transcript:
    try:
        payload = json.loads(content)
    except json.JSONDecodeError as exc:
        raise EngineProtocolError(f'JSON output is not valid JSON: {exc}') from exc
    entries = payload.get('transcription') if isinstance(payload, dict) else None
    if not isinstance(entries, list):
        raise EngineProtocolError("JSON output has no 'transcription' list")

    segments = []
    for i, entry in enumerate(entries):
        try:
            offsets = entry['offsets']
            start = int(offsets['from']) / 1000.0
            end = int(offsets['to']) / 1000.0
            text = str(entry['text'])
        except (KeyError, TypeError, ValueError) as exc:
            raise EngineProtocolError(f'JSON transcription entry #{i} is malformed') from exc
        segments.append(_segment(start, end, text))
    return Transcript(segments)


def parse_output(content: str, fmt: OutputFormat) -> Transcript:
    if fmt is OutputFormat.SRT:
        return parse_srt(content)
    if fmt is OutputFormat.VTT:
        return parse_vtt(content)
    if fmt is OutputFormat.JSON:
        return parse_json(content)
    return parse_txt(content)
