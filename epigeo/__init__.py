"""
epigeo - two-view epipolar geometry.

Pair keypoints by visual word, verify view pairs with a RANSAC fundamental
matrix, recover the second camera from F and triangulate points.
"""

__version__ = "0.1.0"
