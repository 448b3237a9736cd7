"""Server-side services: wire decoding, validation, persistence, orchestration."""
