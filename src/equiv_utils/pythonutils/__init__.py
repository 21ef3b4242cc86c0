from .equivalency import (EquivalencyOptions, ComparisonPath, VisitedPairs, should_be_equivalent_to, compare_equivalent,
    is_equivalent, EquivalenceMismatchError, UnsupportedShapeError, EquivalenceCheckingError)
from .messages import render_equivalence_message

__all__ = ['EquivalencyOptions', 'ComparisonPath', 'VisitedPairs', 'should_be_equivalent_to', 'compare_equivalent',
    'is_equivalent', 'EquivalenceMismatchError', 'UnsupportedShapeError', 'EquivalenceCheckingError',
    'render_equivalence_message']
