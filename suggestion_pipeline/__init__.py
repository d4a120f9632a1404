"""
Suggestion pipeline for the SalesGenius backend.

Turns a transcript fragment from a live sales call into a short, actionable
next-move suggestion and streams it back to the client:

    transcript -> prompt -> completion (timeout-bounded) -> dedup -> stream

All state (history, dedup cache) is owned by one SuggestionSession per
connection; nothing is shared across connections.
"""
