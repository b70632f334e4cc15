"""Streaming yEnc encoding and decoding for Usenet articles."""

__version__ = "0.1.0"
__all__ = ["codec", "decoder", "encoder", "meta"]