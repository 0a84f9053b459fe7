"""Local reconciliation state for PR review triage."""
