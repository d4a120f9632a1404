"""Structured pipeline events shared by the gateway and the suggestion pipeline."""
