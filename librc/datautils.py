"""
Data preparation helpers and the `VectorBundle` container of (input, output) sample pairs.
"""

from typing import List

import numpy as np
import pandas as pd

from librc.validation import ValidationError, LengthMismatchError

def pd_to_np_array(data):
    if data is None:
        # return empty array
        return np.array([])

    v = None
    if (type(data) is pd.DataFrame):
        v = data.to_numpy(dtype=float, copy=True)
    elif (type(data) is pd.Series):
        v = data.to_numpy(dtype=float, copy=True)[:,None]
    elif type(data) is np.ndarray:
        v = np.array(data, dtype=float)
    elif type(data) in (list, tuple):
        v = np.array(data, dtype=float)

    if v is None:
        raise TypeError(f"Type of data {type(data)} not recognized, need pandas.DataFrame, pandas.Series or numpy.ndarray")

    if v.ndim == 1:
        # Mutate 1D vector to 2D column vector
        v = np.atleast_2d(v).reshape((-1,1))

    # return v as contiguous array 
    return np.ascontiguousarray(v)

def pd_data_prep(V):
    """Returns `(array, index)` of a single dataset: its `pandas` index, or a numeric range."""
    if V is None:
        return pd_to_np_array(V), None
    try:
        V_dates = V.index
    except AttributeError:
        V_dates = np.arange(start=0, stop=len(V))
    return pd_to_np_array(V), V_dates

class VectorBundle:
    r"""
    Ordered collection of (input vector, output vector) pairs. All input vectors share 
    one length and all output vectors share another.
    """

    inputVectors: List[np.ndarray]
    outputVectors: List[np.ndarray]

    def __init__(self, inputVectors=None, outputVectors=None) -> None:
        self.inputVectors = []
        self.outputVectors = []
        if not inputVectors is None or not outputVectors is None:
            inputVectors = [] if inputVectors is None else inputVectors
            outputVectors = [] if outputVectors is None else outputVectors
            if len(inputVectors) != len(outputVectors):
                raise LengthMismatchError(
                    "Numbers of input and output vectors differ", field="outputVectors", value=len(outputVectors)
                )
            for x, y in zip(inputVectors, outputVectors):
                self.addPair(x, y)

    @classmethod
    def fromData(cls, inputs, outputs) -> "VectorBundle":
        """Bundle from $T \\times K$ inputs and $T \\times M$ outputs (`numpy` arrays or `pandas` frames)."""
        X, _ = pd_data_prep(inputs)
        Y, _ = pd_data_prep(outputs)
        return cls(list(X), list(Y))

    def __len__(self) -> int:
        return len(self.inputVectors)

    def addPair(self, inputVector, outputVector) -> None:
        x = np.array(inputVector, dtype=float).ravel()
        y = np.array(outputVector, dtype=float).ravel()
        if len(self.inputVectors) > 0:
            if x.size != self.inputVectors[0].size:
                raise LengthMismatchError("Inconsistent input vector length", field="inputVector", value=x.size)
            if y.size != self.outputVectors[0].size:
                raise LengthMismatchError("Inconsistent output vector length", field="outputVector", value=y.size)
        self.inputVectors.append(x)
        self.outputVectors.append(y)

    def add(self, other: "VectorBundle") -> None:
        for x, y in zip(other.inputVectors, other.outputVectors):
            self.addPair(x, y)

    def copy(self) -> "VectorBundle":
        return VectorBundle([x.copy() for x in self.inputVectors], [y.copy() for y in self.outputVectors])

    def shuffle(self, rng: np.random.Generator) -> None:
        """Shuffles pairs in place, keeping each input with its output."""
        order = rng.permutation(len(self))
        self.inputVectors = [self.inputVectors[i] for i in order]
        self.outputVectors = [self.outputVectors[i] for i in order]

    @property
    def inputLength(self) -> int:
        return self.inputVectors[0].size if len(self) > 0 else 0

    @property
    def outputLength(self) -> int:
        return self.outputVectors[0].size if len(self) > 0 else 0

    def inputMatrix(self) -> np.ndarray:
        if len(self) == 0:
            return np.empty((0, 0))
        return np.vstack(self.inputVectors)

    def outputMatrix(self) -> np.ndarray:
        if len(self) == 0:
            return np.empty((0, 0))
        return np.vstack(self.outputVectors)

    def subset(self, idxs) -> "VectorBundle":
        return VectorBundle([self.inputVectors[i] for i in idxs], [self.outputVectors[i] for i in idxs])

    def check(self) -> None:
        if len(self) == 0:
            raise ValidationError("Bundle contains no samples", field="bundle", value=0)
