from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple

import cv2
import numpy as np

from epigeo.config import PoseConfig
from .epipolar import check_fundamental_matrix
from .linalg import LinearAlgebra, get_linalg
from .projective import reference_projection
from .reprojection import depth_in_camera

logger = logging.getLogger(__name__)

_W = np.array([
    [0.0, -1.0, 0.0],
    [1.0, 0.0, 0.0],
    [0.0, 0.0, 1.0],
], dtype=np.float64)

CASE_NAMES = {
    1: "[U W V^T | +e]",
    2: "[U W V^T | -e]",
    3: "[U W^T V^T | +e]",
    4: "[U W^T V^T | -e]",
}


@dataclass(frozen=True)
class ProjectionResult:
    P: np.ndarray           # (3,4) camera matrix relative to P0 = [I | 0]
    case: int               # 1..4, see CASE_NAMES
    cheirality_ok: bool     # False: no candidate put the sample in front of both cameras


def _candidate_projections(U: np.ndarray, Vt: np.ndarray) -> Iterator[Tuple[int, np.ndarray]]:
    """The four [R | t] decompositions, in the order they are tested."""
    e = U[:, 2:3]
    case = 0
    for W in (_W, _W.T):
        R = U @ W @ Vt
        for sign in (1.0, -1.0):
            case += 1
            yield case, np.hstack([R, sign * e])


def _sample_point(x) -> Optional[np.ndarray]:
    # first correspondence, as the (2,1) column cv2.triangulatePoints expects
    x = np.asarray(x, dtype=np.float64)
    if x.size == 0 or x.size % 2 != 0:
        return None
    x = x.reshape(-1, 2)
    if not np.isfinite(x[0]).all():
        return None
    return x[:1].T.copy()


def _in_front_of_both(P0: np.ndarray, P: np.ndarray, x: np.ndarray, xp: np.ndarray) -> bool:
    Xh = cv2.triangulatePoints(P0, P, x, xp).ravel()  # (4,)
    if Xh[3] == 0:
        return False
    X = Xh[:3] / Xh[3]
    z0, z1 = depth_in_camera(P0, X)[0], depth_in_camera(P, X)[0]
    return bool(np.isfinite(z0) and np.isfinite(z1) and z0 >= 0 and z1 >= 0)


def recover_projection_from_f(
    F: np.ndarray,
    x1,
    x2,
    config: Optional[PoseConfig] = None,
    linalg: Optional[LinearAlgebra] = None,
) -> Optional[ProjectionResult]:
    """
    Recover the second camera matrix P from F, with P0 = [I | 0].

    SVD F = U S V^T gives four candidates [U W V^T | +-e], [U W^T V^T | +-e]
    with e = U[:, 2]. The first correspondence is triangulated with each and
    the first candidate placing it in front of both cameras wins. If none
    does, the last candidate is returned with cheirality_ok=False.

    Args:
      F: (3,3) float64 fundamental (or essential) matrix
      x1, x2: (N,2) or (2,) matched points in view 1 / view 2; only the first is used

    Returns:
      ProjectionResult, or None if F is not a 3x3 float64 matrix or no
      finite sample point is given.
    """
    F = check_fundamental_matrix(F)
    if F is None:
        return None

    cfg = config if config is not None else PoseConfig()
    U, _S, Vt = get_linalg(linalg).svd(F)

    if cfg.enforce_proper_rotation:
        if np.linalg.det(U) < 0:
            U = U.copy()
            U[:, 2] *= -1.0
        if np.linalg.det(Vt) < 0:
            Vt = Vt.copy()
            Vt[2, :] *= -1.0

    x = _sample_point(x1)
    xp = _sample_point(x2)
    if x is None or xp is None:
        logger.error("recover_projection_from_f needs one finite sample point per view")
        return None

    P0 = reference_projection()

    case, P = 0, None
    for case, P in _candidate_projections(U, Vt):
        if _in_front_of_both(P0, P, x, xp):
            logger.debug(f"Case {case}: P = {CASE_NAMES[case]}")
            return ProjectionResult(P=P, case=case, cheirality_ok=True)

    logger.warning(
        f"No camera candidate puts the sample point in front of both cameras, "
        f"falling back to case {case} {CASE_NAMES[case]}"
    )
    return ProjectionResult(P=P, case=case, cheirality_ok=False)


def find_p_from_f(
    F: np.ndarray,
    x1,
    x2,
    config: Optional[PoseConfig] = None,
    linalg: Optional[LinearAlgebra] = None,
) -> Optional[np.ndarray]:
    """recover_projection_from_f, returning only the (3,4) P (None on invalid F)."""
    res = recover_projection_from_f(F, x1, x2, config=config, linalg=linalg)
    return None if res is None else res.P
