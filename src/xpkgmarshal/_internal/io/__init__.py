"""Artifact readers: filesystems, images and manifest streams (internal)."""
