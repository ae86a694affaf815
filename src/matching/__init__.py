"""
Matching Module for the Supplier Template Engine.

Identifies which stored supplier template applies to a new document.
"""

from .matcher import TemplateMatcher, MatchResult, MatchCandidate, MatchOutcome

__all__ = ['TemplateMatcher', 'MatchResult', 'MatchCandidate', 'MatchOutcome']
