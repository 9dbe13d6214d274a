"""
HomeMate - household management backend.

Health planning:
- Weekly meal and workout plans generated by an LLM
- Chat assistant that edits plans through tools
- Scheduled generation for every user with body metrics
"""

__version__ = "1.0.0"
