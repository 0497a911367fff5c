"""Domain services: credential store, refresh token ledger and session manager."""
