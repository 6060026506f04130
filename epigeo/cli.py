"""
epigeo/cli.py

Verify a pair of keypoint files with the epipolar constraint and, optionally,
recover the second camera from F and triangulate the inliers.
"""

import argparse
import logging
from typing import List, Optional

import numpy as np

from epigeo.config import EpipolarConfig, load_config
from epigeo.geometry import (
    correspondences_to_points,
    find_rt_from_p,
    recover_projection_from_f,
    reference_projection,
    triangulate_points,
)
from epigeo.pipeline.verification import EpipolarVerifier, load_signature
from epigeo.utils.logging_utils import make_logger, timed


def build_config_from_args(args) -> EpipolarConfig:
    """
    Build EpipolarConfig from command line arguments.

    Starts from --config (or defaults), then overrides with any explicitly
    provided arguments.
    """
    config = load_config(args.config) if args.config else EpipolarConfig()

    if args.match_count_min is not None:
        config.verification.match_count_min = args.match_count_min
    if args.ransac_thresh_px is not None:
        config.verification.ransac_thresh_px = args.ransac_thresh_px
    if args.ransac_confidence is not None:
        config.verification.ransac_confidence = args.ransac_confidence
    if args.log_level is not None:
        config.log_level = args.log_level

    return config


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Epipolar verification of two keypoint files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  epigeo-verify --sig_a view_012.json --sig_b view_347.json
  epigeo-verify --sig_a a.yaml --sig_b b.yaml --match_count_min 20 --triangulate
        """
    )

    # =========================================================
    # INPUT PATHS
    # =========================================================
    parser.add_argument("--sig_a", type=str, required=True,
                        help="Keypoint file of the first view (.json/.yaml/.txt)")
    parser.add_argument("--sig_b", type=str, required=True,
                        help="Keypoint file of the second view (.json/.yaml/.txt)")
    parser.add_argument("--config", type=str, default=None,
                        help="Optional YAML/JSON config file")

    # =========================================================
    # VERIFICATION CONFIG
    # =========================================================
    parser.add_argument("--match_count_min", type=int, default=None,
                        help="Min unique pairs and min inliers (default: 8)")
    parser.add_argument("--ransac_thresh_px", type=float, default=None,
                        help="Max distance to the epipolar line (default: 3.0)")
    parser.add_argument("--ransac_confidence", type=float, default=None,
                        help="RANSAC confidence (default: 0.99)")

    # =========================================================
    # STRUCTURE
    # =========================================================
    parser.add_argument("--triangulate", action="store_true",
                        help="Recover P from F and triangulate the inlier pairs")

    # =========================================================
    # DIAGNOSTICS
    # =========================================================
    parser.add_argument("--log_level", type=str, default=None,
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = build_config_from_args(args)
    logger = make_logger("epigeo", config.log_level)

    sig_a = load_signature(args.sig_a, default_id=0)
    sig_b = load_signature(args.sig_b, default_id=1)
    logger.info(f"Signatures: {sig_a.id} ({sig_a.num_keypoints} kpts), {sig_b.id} ({sig_b.num_keypoints} kpts)")

    verifier = EpipolarVerifier(config, logger=logger)
    with timed(logger, "Epipolar verification"):
        res = verifier.verify(sig_a, sig_b)

    logger.info(
        f"pairs={len(res.pairs)} pairable={res.pairable_count} "
        f"inliers={res.num_inliers} min={verifier.match_count_min}"
    )
    if not res.accepted:
        logger.info(f"REJECTED ({res.reason})")
        return 1
    logger.info("ACCEPTED")

    if args.triangulate and not res.fundamental.found:
        logger.warning("No fundamental matrix found, skipping structure recovery")
    elif args.triangulate:
        mask = res.fundamental.inlier_mask
        inliers = [c for c, keep in zip(res.pairs, mask) if keep]
        pts1, pts2 = correspondences_to_points(inliers)

        proj = recover_projection_from_f(res.fundamental.F, pts1, pts2, config=config.pose)
        if proj is None:
            logger.warning("Could not recover P from F, skipping triangulation")
            return 0
        if not proj.cheirality_ok:
            logger.warning("Cheirality test failed for every candidate, structure may be mirrored")
        logger.info(f"P (case {proj.case}) =\n{np.array2string(proj.P, precision=4)}")

        rt = find_rt_from_p(proj.P)
        if rt is not None:
            R, t = rt
            logger.info(f"R =\n{np.array2string(R, precision=4)}\nt = {t.ravel()}")

        tri = triangulate_points(pts1, pts2, reference_projection(), proj.P, config=config.triangulation)
        if tri is not None:
            logger.info(f"Triangulated {len(tri.points)} points, mean reprojection error {tri.mean_error:.4f}px")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
