"""Release note synthesis for the client and its pinned runtime dependency."""

__version__ = "0.1.0"
