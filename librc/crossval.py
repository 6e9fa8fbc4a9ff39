import math

import numpy as np

from librc.datautils import VectorBundle
from librc.validation import ValidationError, checkRange

class FoldSplit:
    r"""
    Splits sample positions $0, \ldots, T-1$ into folds of about `foldDataRatio`$\cdot T$ samples.
    The number of folds is $\lfloor T / \textnormal{foldSize} \rfloor$; left-over samples are
    dealt to the folds in turn.

    When `classes` (one label per sample) is given the split is stratified: positions of each
    class are dealt to the folds in turn so that every fold keeps the class proportions.
    Iterating yields `(trainIdxs, testIdxs)` for each fold.
    """

    def __init__(
        self, 
        length, 
        foldDataRatio=0.1,
        classes=None,
    ):
        assert length >= 2, "Sample length must be at least 2"
        checkRange(foldDataRatio, "foldDataRatio", 0, 0.5, lowOpen=True)
        if not classes is None:
            assert len(classes) == length, "classes must have one label per sample"

        self.length = length
        self.foldDataRatio = foldDataRatio
        self.classes = None if classes is None else np.asarray(classes)

        foldSize = max(1, int(round(length * foldDataRatio)))
        self.n_splits = max(2, length // foldSize)

    def folds(self):
        """Test positions of each fold."""
        folds = [[] for _ in range(self.n_splits)]
        if self.classes is None:
            foldSize = self.length // self.n_splits
            for f in range(self.n_splits):
                folds[f].extend(range(f * foldSize, (f + 1) * foldSize))
            for k, i in enumerate(range(self.n_splits * foldSize, self.length)):
                folds[k % self.n_splits].append(i)
        else:
            k = 0
            for c in np.unique(self.classes):
                for i in np.flatnonzero(self.classes == c):
                    folds[k % self.n_splits].append(int(i))
                    k += 1
            for f in folds:
                f.sort()
        return folds

    def split(self):
        folds = self.folds()
        splits = []
        for f, test in enumerate(folds):
            train = sorted(i for g, fold in enumerate(folds) if g != f for i in fold)
            splits.append((train, test))
        return tuple(splits)

    def __iter__(self):
        return iter(self.split())

def binaryClasses(outputVectors, binBorder: float) -> np.ndarray:
    """Class label of each output vector: arg-max for multi-output vectors, else the side of `binBorder`."""
    labels = np.empty(len(outputVectors), dtype=int)
    for i, y in enumerate(outputVectors):
        labels[i] = int(np.argmax(y)) if y.size > 1 else int(y[0] >= binBorder)
    return labels

def folderize(bundle: VectorBundle, foldDataRatio: float, binBorder: float = math.nan):
    r"""
    Splits `bundle` into a list of fold bundles. `binBorder` is `NaN` for real outputs;
    otherwise folds are stratified on the binary classes of the outputs.
    """
    if len(bundle) < 2:
        raise ValidationError("At least 2 samples are needed to create folds", field="bundle", value=len(bundle))
    classes = None if math.isnan(binBorder) else binaryClasses(bundle.outputVectors, binBorder)
    splitter = FoldSplit(len(bundle), foldDataRatio, classes)
    return [bundle.subset(test) for test in splitter.folds()]
