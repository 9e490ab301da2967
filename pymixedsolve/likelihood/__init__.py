"""
Profile likelihood evaluation and variance-ratio search.

Key components:
- REMLProfile / MLProfile: closed-form -2 log L as a function of lambda
- make_profile(): build the profile for a reduced model
- maximize_profile(): grid scan plus bounded Brent search over log(lambda)
- OptimizationResult: lambda*, maximized log-likelihood and diagnostics
"""

from .objective import ProfileLikelihood, REMLProfile, MLProfile, make_profile, profile_loglik
from .optimizer import maximize_profile, OptimizationResult

__all__ = [
    'ProfileLikelihood',
    'REMLProfile',
    'MLProfile',
    'make_profile',
    'profile_loglik',
    'maximize_profile',
    'OptimizationResult',
]
