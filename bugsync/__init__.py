"""bugsync: bug lifecycle synchronization between a client store and a persistence service."""

__version__ = "0.1.0"
