"""
Feedback Module for the Supplier Template Engine.

Template usage statistics (times used, success rate, last use).
"""

from .usage import UsageFeedback

__all__ = ['UsageFeedback']
