"""Backend Shell: launches and supervises a backend process from a host shell's startup."""
