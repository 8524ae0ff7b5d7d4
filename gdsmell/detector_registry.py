"""Catalog of every smell detector shipped with gdsmell."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Set, Tuple, Type

from .bloaters import (
    DataClumpsDetector,
    LargeClassDetector,
    LongMethodDetector,
    LongParameterListDetector,
    PrimitiveObsessionDetector,
)
from .change_preventers import DivergentChangeDetector, ShotgunSurgeryDetector
from .couplers import (
    FeatureEnvyDetector,
    GlobalStateDetector,
    InappropriateIntimacyDetector,
    MessageChainsDetector,
    MiddleManDetector,
)
from .dispensables import (
    CommentsDetector,
    DataClassDetector,
    DuplicateCodeDetector,
    LazyClassDetector,
    SpeculativeGeneralityDetector,
)
from .oo_abusers import RefusedBequestDetector, SwitchStatementsDetector, TemporaryFieldDetector
from .smell_detector import SmellDetector

ALL_DETECTORS: Tuple[Type[SmellDetector], ...] = (
    LongMethodDetector,
    LargeClassDetector,
    DuplicateCodeDetector,
    LongParameterListDetector,
    FeatureEnvyDetector,
    DataClumpsDetector,
    PrimitiveObsessionDetector,
    SwitchStatementsDetector,
    LazyClassDetector,
    SpeculativeGeneralityDetector,
    TemporaryFieldDetector,
    MessageChainsDetector,
    MiddleManDetector,
    InappropriateIntimacyDetector,
    DataClassDetector,
    RefusedBequestDetector,
    CommentsDetector,
    GlobalStateDetector,
    ShotgunSurgeryDetector,
    DivergentChangeDetector,
)

_BY_NAME: Dict[str, Type[SmellDetector]] = {detector.name: detector for detector in ALL_DETECTORS}


def detector_names() -> List[str]:
    return [detector.name for detector in ALL_DETECTORS]


def get_detector(name: str) -> SmellDetector:
    """Instantiate the detector registered under *name*.

    Raises:
        KeyError: if no detector has that name.
    """
    try:
        return _BY_NAME[name]()
    except KeyError:
        raise KeyError(f"Unknown detector: {name}") from None


def create_detectors(names: Optional[Iterable[str]] = None) -> List[SmellDetector]:
    """Instantiate *names* (all detectors when ``None``), in catalog order."""
    if names is None:
        return [detector() for detector in ALL_DETECTORS]
    wanted = set(names)
    unknown = wanted - set(_BY_NAME)
    if unknown:
        raise KeyError(f"Unknown detector(s): {', '.join(sorted(unknown))}")
    return [detector() for detector in ALL_DETECTORS if detector.name in wanted]


def default_thresholds() -> Dict[str, Any]:
    """Every threshold name mapped to its default value."""
    merged: Dict[str, Any] = {}
    for detector in ALL_DETECTORS:
        merged.update(detector.defaults)
    return merged


def ratio_thresholds() -> Set[str]:
    """Threshold names whose values must lie within [0, 1]."""
    return {key for detector in ALL_DETECTORS for key in detector.ratio_keys}
