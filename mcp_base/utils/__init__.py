"""Error taxonomy and schema validation helpers."""
