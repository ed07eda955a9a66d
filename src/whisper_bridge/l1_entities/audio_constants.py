"""Audio format expected by whisper.cpp."""

SAMPLE_RATE = 16000
CHANNELS = 1
