"""Review-comment extraction and mutation core for prtriage."""
