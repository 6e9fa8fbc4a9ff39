"""
Per readout unit selection of predictors.
"""

from typing import Dict, Union

import numpy as np

from librc.validation import ValidationError, LengthMismatchError, checkName, checkLength

class PredictorsMapper:
    r"""
    Maps the full predictor vector to the predictors used by each readout unit.

    The mapper holds general switches (predictors enabled for all units) and optional
    per-unit boolean maps. A unit's map can only narrow the general switches: the effective
    selection is the intersection of both, and must keep at least one predictor enabled.
    Units without a map use the general switches.
    """

    def __init__(self, switches: Union[int, np.ndarray, list]) -> None:
        """
        + `switches` : either the number of predictors (all enabled) or a boolean vector 
            of general switches with at least one `True` entry.
        """
        if isinstance(switches, (int, np.integer)):
            if switches < 1:
                raise ValidationError("Number of predictors must be positive", field="switches", value=switches)
            switches = np.ones(int(switches), dtype=bool)
        else:
            switches = np.array(switches, dtype=bool).ravel()
            if not np.any(switches):
                raise ValidationError("At least one predictor must be enabled", field="switches", value=switches)
        self.generalSwitches = switches
        self.maps: Dict[str, np.ndarray] = {}

    @property
    def numOfPredictors(self) -> int:
        return self.generalSwitches.size

    @property
    def numOfEnabledPredictors(self) -> int:
        return int(np.sum(self.generalSwitches))

    def add(self, unitName: str, map) -> None:
        """Registers the boolean predictors map of a readout unit."""
        checkName(unitName, "unitName")
        map = np.array(map, dtype=bool).ravel()
        checkLength(map, self.numOfPredictors, "map")
        if unitName in self.maps:
            raise ValidationError(f"Map for unit {unitName} is already registered", field="unitName", value=unitName)
        combined = map & self.generalSwitches
        if not np.any(combined):
            raise ValidationError(
                f"Map for unit {unitName} leaves no enabled predictor", field="map", value=map
            )
        self.maps[unitName] = combined

    def unitMap(self, unitName: str) -> np.ndarray:
        return self.maps.get(unitName, self.generalSwitches)

    def numOfUnitPredictors(self, unitName: str) -> int:
        return int(np.sum(self.unitMap(unitName)))

    def createVector(self, unitName: str, predictors) -> np.ndarray:
        """Enabled predictors of the unit, in their original order."""
        predictors = np.asarray(predictors, dtype=float).ravel()
        if predictors.size != self.numOfPredictors:
            raise LengthMismatchError(
                f"Incorrect length of predictors: expected {self.numOfPredictors}, found {predictors.size}",
                field="predictors", value=predictors.size
            )
        return predictors[self.unitMap(unitName)]

    def createVectorCollection(self, unitName: str, predictorsCollection) -> list:
        return [self.createVector(unitName, p) for p in predictorsCollection]
