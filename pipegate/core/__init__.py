"""PipeGate core: data model, canonical encoding, errors."""
