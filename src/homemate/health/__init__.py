"""
HomeMate health planning.

Weekly meal/workout plans: date helpers, normalization, LLM output
parsing, generation, the chat agent and its tools.
"""
