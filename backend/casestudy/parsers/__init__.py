from casestudy.parsers.base import DecodedTranscript
from casestudy.parsers.registry import TranscriptDecoderRegistry

__all__ = ["DecodedTranscript", "TranscriptDecoderRegistry"]
