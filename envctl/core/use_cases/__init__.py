"""Use cases — wiring the core together for an entrypoint."""
