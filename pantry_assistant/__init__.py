"""Pantry assistant: conversational shopping-list agent and recipe checks."""
