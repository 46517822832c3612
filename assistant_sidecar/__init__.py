"""Local agent sidecar: streams assistant replies to a desktop UI over HTTP."""

__version__ = "0.1.0"
