# epigeo/geometry.py
"""
Public geometry API.

Internals live in epigeo/geometry_utils/.
Import from here in the rest of the codebase to avoid deep-path imports.
"""

from epigeo.geometry_utils.correspondences import (
    Keypoint,
    Correspondence,
    words_from_keypoints,
    correspondences_to_points,
    find_pairs,
    find_pairs_all,
    find_pairs_unique,
)
from epigeo.geometry_utils.epipolar import (
    FundamentalResult,
    find_f_from_words,
    find_f_from_calibrated_stereo,
    find_epipoles_from_f,
    compute_fundamental_matrix,
    epipolar_distance,
)
from epigeo.geometry_utils.linalg import (
    LinearAlgebra,
    NumpyLinearAlgebra,
    OpenCVLinearAlgebra,
)
from epigeo.geometry_utils.projective import (
    projection_matrix,
    reference_projection,
    camera_center,
    skew,
    find_rt_from_p,
)
from epigeo.geometry_utils.reprojection import project_points, reprojection_errors, depth_in_camera
from epigeo.geometry_utils.triangulation import (
    TriangulationResult,
    linear_ls_triangulation,
    iterative_linear_ls_triangulation,
    iterative_linear_ls_triangulation_debug,
    triangulate_points,
)
from epigeo.geometry_utils.twoview import ProjectionResult, recover_projection_from_f, find_p_from_f

__all__ = [
    "Keypoint",
    "Correspondence",
    "words_from_keypoints",
    "correspondences_to_points",
    "find_pairs",
    "find_pairs_all",
    "find_pairs_unique",
    "FundamentalResult",
    "find_f_from_words",
    "find_f_from_calibrated_stereo",
    "find_epipoles_from_f",
    "compute_fundamental_matrix",
    "epipolar_distance",
    "LinearAlgebra",
    "NumpyLinearAlgebra",
    "OpenCVLinearAlgebra",
    "projection_matrix",
    "reference_projection",
    "camera_center",
    "skew",
    "find_rt_from_p",
    "project_points",
    "reprojection_errors",
    "depth_in_camera",
    "TriangulationResult",
    "linear_ls_triangulation",
    "iterative_linear_ls_triangulation",
    "iterative_linear_ls_triangulation_debug",
    "triangulate_points",
    "ProjectionResult",
    "recover_projection_from_f",
    "find_p_from_f",
]
