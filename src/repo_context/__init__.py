"""Select files from a remote source tree and assemble them into one context document."""

__version__ = "0.1.0"
