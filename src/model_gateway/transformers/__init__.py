"""
Wire-format transforms between the Messages API and backend formats.
"""

from .openai_transformer import to_openai, from_openai
from .gemini_transformer import to_gemini, from_gemini
from .stream import StreamTransformer, SourceVendor

__all__ = [
    "to_openai",
    "from_openai",
    "to_gemini",
    "from_gemini",
    "StreamTransformer",
    "SourceVendor",
]
