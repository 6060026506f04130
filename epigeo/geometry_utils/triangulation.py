"""
Two-view point triangulation.

Linear and iteratively reweighted least squares after Hartley & Sturm,
"Triangulation", CVIU 1997. Each pair of image equations
    x * P[2] - P[0] = 0,   y * P[2] - P[1] = 0
is rearranged with X = (x, y, z, 1) into a 4x3 system A X = B.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from epigeo.config import TriangulationConfig
from .linalg import LinearAlgebra, get_linalg
from .reprojection import reprojection_errors

logger = logging.getLogger(__name__)

_EPS_W = 1e-12


@dataclass(frozen=True)
class TriangulationResult:
    points: np.ndarray          # (N,3) float64
    reproj_errors: np.ndarray   # (N,) float64, pixels in the second image
    mean_error: float


def _image_point(u) -> Optional[Tuple[float, float]]:
    """(x, y) or homogeneous (x, y, w) -> (x, y). None if malformed."""
    u = np.asarray(u, dtype=np.float64).ravel()
    if u.size == 2:
        return float(u[0]), float(u[1])
    if u.size == 3 and u[2] != 0:
        return float(u[0] / u[2]), float(u[1] / u[2])
    return None


def _prepare_inputs(u, P, u1, P1):
    """Validate one correspondence and both cameras; log and return None on bad input."""
    P = np.asarray(P, dtype=np.float64)
    P1 = np.asarray(P1, dtype=np.float64)
    if P.shape != (3, 4) or P1.shape != (3, 4):
        logger.error(f"P/P1 must be (3,4). Got {P.shape} and {P1.shape}")
        return None
    pt, pt1 = _image_point(u), _image_point(u1)
    if pt is None or pt1 is None:
        logger.error(f"Image points must be (x, y) or (x, y, w) with w != 0. Got {u!r} and {u1!r}")
        return None
    return pt, P, pt1, P1


def _build_system(
    u: Tuple[float, float],
    P: np.ndarray,
    u1: Tuple[float, float],
    P1: np.ndarray,
    wi: float = 1.0,
    wi1: float = 1.0,
) -> Tuple[np.ndarray, np.ndarray]:
    x, y = u
    x1, y1 = u1
    A = np.array([
        (x * P[2, :3] - P[0, :3]) / wi,
        (y * P[2, :3] - P[1, :3]) / wi,
        (x1 * P1[2, :3] - P1[0, :3]) / wi1,
        (y1 * P1[2, :3] - P1[1, :3]) / wi1,
    ], dtype=np.float64)
    B = np.array([
        -(x * P[2, 3] - P[0, 3]) / wi,
        -(y * P[2, 3] - P[1, 3]) / wi,
        -(x1 * P1[2, 3] - P1[0, 3]) / wi1,
        -(y1 * P1[2, 3] - P1[1, 3]) / wi1,
    ], dtype=np.float64)
    return A, B


def linear_ls_triangulation(
    u,
    P: np.ndarray,
    u1,
    P1: np.ndarray,
    linalg: Optional[LinearAlgebra] = None,
) -> Optional[np.ndarray]:
    """
    Linear least-squares triangulation of one correspondence.

    Args:
      u, u1: image point in view 1 / view 2, (x, y) or homogeneous (x, y, 1)
      P, P1: (3,4) projection matrices of view 1 / view 2

    Returns:
      X: (3,) float64, or None on malformed input
    """
    inputs = _prepare_inputs(u, P, u1, P1)
    if inputs is None:
        return None
    A, B = _build_system(*inputs)
    return get_linalg(linalg).lstsq(A, B).reshape(3)


def iterative_linear_ls_triangulation_debug(
    u,
    P: np.ndarray,
    u1,
    P1: np.ndarray,
    config: Optional[TriangulationConfig] = None,
    linalg: Optional[LinearAlgebra] = None,
) -> Tuple[Optional[np.ndarray], List[float]]:
    """
    Same as iterative_linear_ls_triangulation but also returns, for every
    pass, max(|w - w_new|, |w1 - w1_new|), the weight change that drives the
    stopping test. (None, []) on malformed input.
    """
    cfg = config if config is not None else TriangulationConfig()
    la = get_linalg(linalg)

    inputs = _prepare_inputs(u, P, u1, P1)
    if inputs is None:
        return None, []
    u, P, u1, P1 = inputs

    wi, wi1 = 1.0, 1.0
    A, B = _build_system(u, P, u1, P1)
    X = np.append(la.lstsq(A, B).reshape(3), 1.0)

    deltas: List[float] = []
    for _ in range(cfg.max_iterations):
        # recalculate weights
        p2x = float(P[2, :] @ X)
        p2x1 = float(P1[2, :] @ X)

        d, d1 = abs(wi - p2x), abs(wi1 - p2x1)
        deltas.append(max(d, d1))
        if d <= cfg.epsilon and d1 <= cfg.epsilon:
            break

        if abs(p2x) < _EPS_W or abs(p2x1) < _EPS_W:
            logger.debug("Point at infinity in one view, stopping reweighting")
            break

        wi, wi1 = p2x, p2x1

        # reweight equations and solve
        A, B = _build_system(u, P, u1, P1, wi, wi1)
        X = np.append(la.lstsq(A, B).reshape(3), 1.0)

    return X[:3], deltas


def iterative_linear_ls_triangulation(
    u,
    P: np.ndarray,
    u1,
    P1: np.ndarray,
    config: Optional[TriangulationConfig] = None,
    linalg: Optional[LinearAlgebra] = None,
) -> Optional[np.ndarray]:
    """
    Iteratively reweighted linear LS triangulation.

    Each pass divides the equations of a view by that view's current
    projective depth P[2] . X and re-solves, which approximates minimising the
    reprojection error. Stops after config.max_iterations passes or once both
    weights move by at most config.epsilon.

    Returns:
      X: (3,) float64, or None on malformed input
    """
    X, _ = iterative_linear_ls_triangulation_debug(u, P, u1, P1, config=config, linalg=linalg)
    return X


def triangulate_points(
    pts1: np.ndarray,
    pts2: np.ndarray,
    P: np.ndarray,
    P1: np.ndarray,
    config: Optional[TriangulationConfig] = None,
    linalg: Optional[LinearAlgebra] = None,
) -> Optional[TriangulationResult]:
    """
    Triangulate matched point sets with the iterative method and report the
    reprojection error of every point in the second image.

    Args:
      pts1, pts2: (N,2) matched pixel coordinates in view 1 / view 2
      P, P1: (3,4) projection matrices

    Returns:
      TriangulationResult, or None on malformed input.
    """
    pts1 = np.asarray(pts1, dtype=np.float64)
    pts2 = np.asarray(pts2, dtype=np.float64)
    P = np.asarray(P, dtype=np.float64)
    P1 = np.asarray(P1, dtype=np.float64)

    if pts1.size == 0 and pts2.size == 0:
        return TriangulationResult(np.zeros((0, 3), np.float64), np.zeros((0,), np.float64), 0.0)

    if pts1.ndim != 2 or pts2.ndim != 2 or pts1.shape[1] != 2 or pts1.shape != pts2.shape:
        logger.error(f"pts1/pts2 must be matching (N,2). Got {pts1.shape} and {pts2.shape}")
        return None
    if P.shape != (3, 4) or P1.shape != (3, 4):
        logger.error(f"P/P1 must be (3,4). Got {P.shape} and {P1.shape}")
        return None

    X = np.array([
        iterative_linear_ls_triangulation(a, P, b, P1, config=config, linalg=linalg)
        for a, b in zip(pts1, pts2)
    ], dtype=np.float64).reshape(-1, 3)

    err = reprojection_errors(X, pts2, P1)
    return TriangulationResult(points=X, reproj_errors=err, mean_error=float(np.mean(err)))
