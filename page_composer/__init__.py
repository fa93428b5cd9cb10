"""
Page composer package.

This package provides:
- Bounded structured extraction of a single web page
- An OpenAI-compatible chat-completion client that composes a page from it
- A session orchestrator with a deterministic reader-view fallback
- A single Streamlit UI entrypoint.
"""
