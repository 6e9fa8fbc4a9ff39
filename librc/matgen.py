import warnings

import numpy as np
from scipy import linalg as spLA

def makeRng(seed=None) -> np.random.Generator:
    """`np.random.Generator` from a seed, an existing generator, or `None` (semi-random)."""
    if isinstance(seed, np.random.Generator):
        return seed
    if seed is None:
        warnings.warn("np.random.Generator seed not explicitly set, using semi-random seed")
    return np.random.default_rng(seed)

def weightGenerator(shape, low=-1.0, high=1.0, seed=None) -> np.ndarray:
    """
    Synaptic weights drawn entry-wise from the uniform distribution on `[low, high]`.

    + `shape` : int, tuple or list, dimensions of the weights to generate, at most 2D.
    + `seed` : seed or `np.random.Generator`.
    """
    if isinstance(shape, int):
        shape = (shape, )
    assert type(shape) is tuple or type(shape) is list, "shape must be an int, tuple or list"
    if (len(shape) > 2):
        raise ValueError("Shape tuple is larger than 2D")
    assert low <= high, "low must be smaller or equal to high"

    rng = makeRng(seed)
    return rng.uniform(low=low, high=high, size=shape)

def delayGenerator(size: int, maxDelay: int, seed=None) -> np.ndarray:
    """Integer synaptic delays drawn uniformly from `0, ..., maxDelay`."""
    assert maxDelay >= 0, "maxDelay must be a non-negative integer"
    rng = makeRng(seed)
    return rng.integers(low=0, high=maxDelay, endpoint=True, size=size)

def spectralRadius(M: np.ndarray) -> float:
    """Maximum absolute eigenvalue of square matrix `M`."""
    M = np.atleast_2d(M)
    assert M.shape[0] == M.shape[1], "Matrix is not square"
    if M.shape[0] == 0:
        return 0.0
    return float(np.max(np.abs(spLA.eigvals(M))))
