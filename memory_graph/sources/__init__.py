"""Readers for OpenClaw workspaces, the memory index and the gateway."""
