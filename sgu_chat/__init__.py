"""SGU chat assistant: query routing, retrieval and streaming transcripts."""

__version__ = "0.1.0"
