"""Release-note services: configuration, GitHub access, rendering, pipeline."""
