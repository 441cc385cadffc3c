"""Artifact manifest, output and the per-channel publish workflow."""
