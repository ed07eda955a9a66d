"""Transcript entities and their renderings."""

from __future__ import annotations

import json
from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from whisper_bridge.l1_entities.config import OutputFormat
from whisper_bridge.l1_entities.errors import EngineProtocolError


def format_wall_time(seconds: float) -> str:
    """Format seconds as HH:MM:SS for log lines."""
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)
    return f'{hours:02d}:{minutes:02d}:{secs:02d}'


def format_timestamp(seconds: float, separator: str = ',') -> str:
    """Format seconds as HH:MM:SS<sep>mmm (SRT uses ',', VTT uses '.')."""
    total_ms = int(round(seconds * 1000.0))
    hours, rem = divmod(total_ms, 3_600_000)
    minutes, rem = divmod(rem, 60_000)
    sec, millis = divmod(rem, 1_000)
    return f'{hours:02d}:{minutes:02d}:{sec:02d}{separator}{millis:03d}'


class TranscriptSegment(BaseModel):
    """A single timed unit of recognized text."""

    model_config = ConfigDict(frozen=True)

    start: float = Field(ge=0.0, description='Offset in seconds from the start of the audio')
    end: float = Field(ge=0.0, description='Offset in seconds from the start of the audio')
    text: str

    @model_validator(mode='after')
    def _end_not_before_start(self) -> TranscriptSegment:
        if self.end < self.start:
            raise ValueError(f'segment ends before it starts ({self.start} > {self.end})')
        return self


class Transcript(BaseModel):
    """Ordered segments produced by one transcription call.

    Renderings are computed on demand and never cached on the instance.
    """

    model_config = ConfigDict(frozen=True)

    segments: tuple[TranscriptSegment, ...] = ()

    def __init__(self, segments: Iterable[TranscriptSegment] = (), **data) -> None:
        segments = tuple(segments)
        _check_order(segments)
        super().__init__(segments=segments, **data)

    @field_validator('segments')
    @classmethod
    def _validated_order(cls, value: tuple[TranscriptSegment, ...]) -> tuple[TranscriptSegment, ...]:
        _check_order(value)
        return value

    @classmethod
    def from_segments(cls, segments: Iterable[TranscriptSegment]) -> Transcript:
        return cls(segments)

    def __len__(self) -> int:
        return len(self.segments)

    @property
    def duration(self) -> float:
        return self.segments[-1].end if self.segments else 0.0

    @property
    def text(self) -> str:
        return self.to_text()

    def to_text(self) -> str:
        return '\n'.join(seg.text.strip() for seg in self.segments)

    def to_srt(self) -> str:
        blocks = []
        for idx, seg in enumerate(self.segments, start=1):
            blocks.append(
                '\n'.join(
                    [
                        str(idx),
                        f'{format_timestamp(seg.start)} --> {format_timestamp(seg.end)}',
                        seg.text.strip(),
                    ]
                )
            )
        return '\n\n'.join(blocks) + '\n' if blocks else ''

    def to_vtt(self) -> str:
        lines = ['WEBVTT', '']
        for seg in self.segments:
            lines.append(f'{format_timestamp(seg.start, ".")} --> {format_timestamp(seg.end, ".")}')
            lines.append(seg.text.strip())
            lines.append('')
        return '\n'.join(lines)

    def to_json(self) -> str:
        payload = {
            'transcription': [
                {
                    'timestamps': {
                        'from': format_timestamp(seg.start),
                        'to': format_timestamp(seg.end),
                    },
                    'offsets': {
                        'from': int(round(seg.start * 1000.0)),
                        'to': int(round(seg.end * 1000.0)),
                    },
                    'text': seg.text,
                }
                for seg in self.segments
            ]
        }
        return json.dumps(payload, indent=2, ensure_ascii=False) + '\n'

    def render(self, fmt: OutputFormat | str) -> str:
        fmt = OutputFormat.parse(fmt)
        if fmt is OutputFormat.SRT:
            return self.to_srt()
        if fmt is OutputFormat.VTT:
            return self.to_vtt()
        if fmt is OutputFormat.JSON:
            return self.to_json()
        return self.to_text()


def _check_order(segments: tuple[TranscriptSegment, ...]) -> None:
    for prev, seg in zip(segments, segments[1:]):
        if seg.start < prev.start:
            raise EngineProtocolError(
                f'Segments out of order: segment starting at {seg.start:.3f}s follows one at {prev.start:.3f}s'
            )
