"""
epigeo/pipeline/verification.py

Epipolar verification of a hypothesised view pair (e.g. a loop-closure
candidate): pair keypoints by visual word, fit F with RANSAC, and accept the
pair when enough correspondences survive.
"""

from __future__ import annotations
import copy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union
import logging

from epigeo.config import EpipolarConfig
from epigeo.geometry_utils.correspondences import (
    Correspondence,
    Keypoint,
    find_pairs_unique,
    words_from_keypoints,
)
from epigeo.geometry_utils.epipolar import FundamentalResult, find_f_from_words
from epigeo.utils.parsing import read_keypoints

REJECT_MISSING_SIGNATURE = "missing_signature"
REJECT_INSUFFICIENT_MATCHES = "insufficient_matches"
REJECT_INSUFFICIENT_INLIERS = "insufficient_inliers"


@dataclass
class Signature:
    """Keypoints of one view, grouped by visual word."""
    id: int
    words: Dict[int, List[Keypoint]] = field(default_factory=dict)

    @classmethod
    def from_keypoints(cls, sig_id: int, kpts) -> "Signature":
        return cls(id=sig_id, words=words_from_keypoints(kpts))

    @property
    def num_keypoints(self) -> int:
        return sum(len(v) for v in self.words.values())


def load_signature(path: Union[str, Path], default_id: int = 0) -> Signature:
    """Read a Signature from a keypoint file (see epigeo.utils.parsing.read_keypoints)."""
    sig_id, kpts = read_keypoints(path)
    return Signature.from_keypoints(default_id if sig_id is None else sig_id, kpts)


@dataclass(frozen=True)
class VerificationResult:
    accepted: bool
    reason: Optional[str]                        # None when accepted
    pairs: List[Correspondence]
    pairable_count: int
    fundamental: Optional[FundamentalResult]     # None when RANSAC was skipped

    @property
    def num_inliers(self) -> int:
        return 0 if self.fundamental is None else self.fundamental.num_inliers


class EpipolarVerifier:
    """
    Accept/reject a pair of signatures with the epipolar constraint.

    A single threshold, config.verification.match_count_min, gates both the
    number of unique word pairs (checked before RANSAC) and the number of
    RANSAC inliers.
    A non-positive threshold accepts a pair even when no F was found; a
    warning is logged in that case.

    Usage:
        verifier = EpipolarVerifier(parameters={"VhEp/MatchCountMin": "12"})
        if verifier.check(sig_a, sig_b):
            ...
    """

    def __init__(
        self,
        config: Optional[EpipolarConfig] = None,
        parameters: Optional[Mapping[str, Any]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        # private copy: parameters never leak into the caller's config
        self.config = copy.deepcopy(config) if config is not None else EpipolarConfig()
        self.logger = logger if logger is not None else logging.getLogger(__name__)
        self.parse_parameters(parameters)

    def parse_parameters(self, parameters: Optional[Mapping[str, Any]]) -> None:
        self.config.apply_parameters(parameters or {})

    @property
    def match_count_min(self) -> int:
        return self.config.verification.match_count_min

    def verify(self, sig_a: Optional[Signature], sig_b: Optional[Signature]) -> VerificationResult:
        if sig_a is None or sig_b is None:
            self.logger.debug("Epipolar check skipped: missing signature")
            return VerificationResult(False, REJECT_MISSING_SIGNATURE, [], 0, None)

        self.logger.debug(f"id({getattr(sig_a, 'id', '?')},{getattr(sig_b, 'id', '?')})")

        pairs, pairable = find_pairs_unique(sig_a.words, sig_b.words)

        if len(pairs) < self.match_count_min:
            self.logger.debug(
                f"Epipolar constraint failed: not enough unique pairs ({len(pairs)}), "
                f"min is {self.match_count_min}"
            )
            return VerificationResult(False, REJECT_INSUFFICIENT_MATCHES, pairs, pairable, None)

        vcfg = self.config.verification
        fres = find_f_from_words(
            pairs,
            ransac_thresh_px=vcfg.ransac_thresh_px,
            ransac_confidence=vcfg.ransac_confidence,
        )

        inliers = fres.num_inliers
        if inliers < self.match_count_min:
            self.logger.debug(
                f"Epipolar constraint failed: not enough inliers ({inliers}/{len(pairs)}), "
                f"min is {self.match_count_min}"
            )
            return VerificationResult(False, REJECT_INSUFFICIENT_INLIERS, pairs, pairable, fres)

        if not fres.found:
            # only reachable with match_count_min <= 0
            self.logger.warning(
                f"Accepting pair without a fundamental matrix (match_count_min={self.match_count_min})"
            )
        self.logger.debug(f"inliers = {inliers}/{len(pairs)}")
        return VerificationResult(True, None, pairs, pairable, fres)

    def check(self, sig_a: Optional[Signature], sig_b: Optional[Signature]) -> bool:
        return self.verify(sig_a, sig_b).accepted
