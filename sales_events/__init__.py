"""
Sales event store.

Write-behind record of accepted suggestions per user and session, plus the
read path used by the history and performance endpoints. Store failures are
logged and never fail the suggestion pipeline.
"""
