"""Compile chains of LLM prompt steps into replayable HTTP endpoints."""
