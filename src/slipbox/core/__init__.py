"""Cross-cutting pieces: errors, validation, ports, detached work, app state."""
