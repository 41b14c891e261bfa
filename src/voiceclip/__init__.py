"""Voice clip studio: TTS gateway with accounts, history and daily quotas."""

__version__ = "0.1.0"
