"""whisper-bridge -- drive whisper.cpp in-process or as an external process."""

__version__ = '0.1.0'
