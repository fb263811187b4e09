"""Terminal client for the flashbrain API."""
