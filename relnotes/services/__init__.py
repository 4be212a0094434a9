"""Adapters and orchestration around the release-note domain."""
