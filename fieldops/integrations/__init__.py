"""Clients for the remote record stores (Google Sheets, Firestore)."""
