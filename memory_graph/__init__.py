"""Knowledge graph synthesis and persistence for OpenClaw workspaces."""

__version__ = "0.1.0"
