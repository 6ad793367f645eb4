"""
LLM layer for Wish Granter: provider, persona, marker handling and the
conversation brain.
"""
