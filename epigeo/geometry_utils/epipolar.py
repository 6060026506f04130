from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import cv2
import numpy as np

from epigeo.utils.logging_utils import timed
from .correspondences import Correspondence, correspondences_to_points
from .linalg import LinearAlgebra, get_linalg

logger = logging.getLogger(__name__)

# 7 points give up to three stacked solutions instead of one F; from 8 on
# a single matrix is returned (OpenCV switches to LMedS below 15 points)
_MIN_RANSAC_POINTS = 8


@dataclass(frozen=True)
class FundamentalResult:
    F: np.ndarray             # (3,3) float64, all zeros when estimation failed
    inlier_mask: np.ndarray   # (N,) bool, aligned with the input correspondences

    @property
    def found(self) -> bool:
        return bool(np.any(self.F != 0.0))

    @property
    def num_inliers(self) -> int:
        return int(np.sum(self.inlier_mask))


def _not_found(n: int) -> FundamentalResult:
    return FundamentalResult(F=np.zeros((3, 3), np.float64), inlier_mask=np.zeros((n,), dtype=bool))


def check_fundamental_matrix(F, what: str = "F") -> Optional[np.ndarray]:
    """
    Return F as an ndarray when it is a 3x3 float64 matrix, otherwise log and
    return None. No dtype conversion: a float32 or integer matrix is rejected.
    """
    F = np.asarray(F)
    if F.shape != (3, 3):
        logger.error(f"{what} must be (3,3), got {F.shape}")
        return None
    if F.dtype != np.float64:
        logger.error(f"{what} must be float64, got {F.dtype}")
        return None
    return F


def find_f_from_words(
    pairs: Sequence[Correspondence],
    ransac_thresh_px: float = 3.0,
    ransac_confidence: float = 0.99,
) -> FundamentalResult:
    """
    Robust fundamental matrix from correspondences (OpenCV FM_RANSAC).

    Args:
      pairs: correspondences (label, kp_a, kp_b)
      ransac_thresh_px: max distance (px) from the epipolar line for an inlier
      ransac_confidence: probability that the estimate is outlier-free

    Returns:
      FundamentalResult. F is all zeros when no geometry was found (too few
      points, degenerate configuration); callers must check `found`.
    """
    n = len(pairs)
    if n < _MIN_RANSAC_POINTS:
        logger.debug(f"find_f_from_words: {n} correspondences, need {_MIN_RANSAC_POINTS}")
        return _not_found(n)

    pts1, pts2 = correspondences_to_points(pairs)

    try:
        with timed(logger, "Find fundamental matrix (OpenCV)", level=logging.DEBUG):
            F, mask = cv2.findFundamentalMat(
                pts1, pts2,
                method=cv2.FM_RANSAC,
                ransacReprojThreshold=float(ransac_thresh_px),
                confidence=float(ransac_confidence),
            )
    except cv2.error as e:
        logger.error(f"findFundamentalMat failed: {e}")
        return _not_found(n)

    if F is None or mask is None or F.shape != (3, 3):
        logger.debug(f"fm_count=0 (result shape {None if F is None else F.shape})")
        return _not_found(n)

    F = np.asarray(F, dtype=np.float64)
    found = bool(np.any(F != 0.0))
    logger.debug(f"fm_count={int(found)}...")
    if not found:
        return _not_found(n)

    logger.debug("F = [%f %f %f;%f %f %f;%f %f %f]", *F.ravel())
    return FundamentalResult(F=F, inlier_mask=mask.ravel().astype(bool))


def find_f_from_calibrated_stereo(
    fx: float,
    fy: float,
    cx: float,
    cy: float,
    tx: float,
    ty: float,
) -> np.ndarray:
    """
    Closed-form F of a rectified stereo pair (identity rotation).

    tx, ty are the baseline terms of the right projection matrix
    (Tx = -fx * baseline), so Bx = tx / -fx is the metric baseline.

    Returns:
      F: (3,3) float64 such that p2^T F p1 = 0. All zeros if fx or fy is zero
      or any intrinsic is non-finite.
    """
    vals = np.array([fx, fy, cx, cy, tx, ty], dtype=np.float64)
    if not np.isfinite(vals).all() or fx == 0 or fy == 0:
        logger.error(f"Invalid stereo intrinsics: fx={fx} fy={fy} cx={cx} cy={cy} Tx={tx} Ty={ty}")
        return np.zeros((3, 3), np.float64)

    R = np.eye(3, dtype=np.float64)

    bx = tx / -fx
    by = ty / -fy

    t_x = np.array([
        [0.0, 0.0, by],
        [0.0, 0.0, -bx],
        [-by, bx, 0.0],
    ], dtype=np.float64)

    K = np.array([
        [fx, 0.0, cx],
        [0.0, fy, cy],
        [0.0, 0.0, 1.0],
    ], dtype=np.float64)

    E = t_x @ R
    K_inv = np.linalg.inv(K)
    return K_inv.T @ E @ K_inv


def find_epipoles_from_f(
    F: np.ndarray,
    linalg: Optional[LinearAlgebra] = None,
) -> Optional[Tuple[np.ndarray, np.ndarray]]:
    """
    Epipoles of F = U S Vt.

    Returns:
      (e1, e2): e1 = V[:, 2] is the epipole in image 1 (F e1 = 0),
      e2 = U[:, 2] the epipole in image 2 (F^T e2 = 0). None on invalid F.
    """
    F = check_fundamental_matrix(F)
    if F is None:
        return None

    U, _S, Vt = get_linalg(linalg).svd(F)
    e1 = Vt[2, :].copy()
    e2 = U[:, 2].copy()
    return e1, e2


def compute_fundamental_matrix(
    K_i: np.ndarray,
    R_i: np.ndarray,
    t_i: np.ndarray,
    K_j: np.ndarray,
    R_j: np.ndarray,
    t_j: np.ndarray,
) -> np.ndarray:
    """Compute the fundamental matrix F such that p2^T F p1 = 0
    for corresponding points p1 in image i and p2 in image j.
    Extrinsics are world->camera: Xc = R X + t.
    """
    Ki = np.asarray(K_i, np.float64)
    Kj = np.asarray(K_j, np.float64)
    Ri = np.asarray(R_i, np.float64)
    Rj = np.asarray(R_j, np.float64)
    ti = np.asarray(t_i, np.float64).reshape(3, 1)
    tj = np.asarray(t_j, np.float64).reshape(3, 1)

    R_rel = Rj @ Ri.T
    t_rel = tj - R_rel @ ti

    tx = np.array([
        [0, -t_rel[2, 0], t_rel[1, 0]],
        [t_rel[2, 0], 0, -t_rel[0, 0]],
        [-t_rel[1, 0], t_rel[0, 0], 0]
    ], dtype=np.float64)

    E = tx @ R_rel
    F = np.linalg.inv(Kj).T @ E @ np.linalg.inv(Ki)
    F /= (np.linalg.norm(F) + 1e-12)

    return F


def epipolar_distance(
    p1: np.ndarray,  # (2,) point in image 1
    p2: np.ndarray,  # (2,) point in image 2
    F: np.ndarray,   # (3,3) fundamental matrix
) -> float:
    """
    Compute symmetric epipolar distance.

    Returns average of:
    - Distance from p2 to epipolar line of p1
    - Distance from p1 to epipolar line of p2
    """
    p1_h = np.array([p1[0], p1[1], 1.0])
    p2_h = np.array([p2[0], p2[1], 1.0])

    # Line in image 2 from p1
    l2 = F @ p1_h
    d2 = abs(p2_h @ l2) / (np.sqrt(l2[0]**2 + l2[1]**2) + 1e-12)

    # Line in image 1 from p2
    l1 = F.T @ p2_h
    d1 = abs(p1_h @ l1) / (np.sqrt(l1[0]**2 + l1[1]**2) + 1e-12)

    return float((d1 + d2) / 2)
