"""
Room redesign API: style generation, chat-driven refinement and a provider proxy
"""

__version__ = "1.0.0"
