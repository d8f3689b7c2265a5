"""Retrieval and generation: LiteLLM client, prompt templates, query engine."""
