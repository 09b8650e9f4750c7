"""Polymarket Data API and CLOB adapters."""
