"""
Types for the corrector module.

This module provides the types for the corrector module.
"""

from typing import Callable

import numpy as np

#: Type alias for residual function signatures.
#:
#: Functions of this type compute residual vectors from parameter vectors,
#: representing the nonlinear equations to be solved. The residual should
#: approach zero as the parameter vector approaches the solution.
#:
#: In continuation contexts, the residual is ``F(u, p)`` stacked with one
#: linear constraint row fixing the step along the continuation variable.
ResidualFn = Callable[[np.ndarray], np.ndarray]

#: Type alias for Jacobian function signatures.
#:
#: The returned matrix may be a dense :class:`numpy.ndarray` or any
#: :mod:`scipy.sparse` matrix. Element (i, j) contains the partial derivative
#: of residual[i] with respect to x[j].
JacobianFn = Callable[[np.ndarray], object]

#: Type alias for norm function signatures.
NormFn = Callable[[np.ndarray], float]
