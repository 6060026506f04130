"""
epigeo/pipeline/__init__.py

View-pair verification.

Usage:
    from epigeo.pipeline import EpipolarVerifier, Signature

    verifier = EpipolarVerifier()
    ok = verifier.check(sig_a, sig_b)

    # With config
    config = get_strict_config()
    config.verification.match_count_min = 15
    result = EpipolarVerifier(config).verify(sig_a, sig_b)
    print(result.accepted, result.reason, result.num_inliers)
"""

from epigeo.config import (
    EpipolarConfig,
    VerificationConfig,
    TriangulationConfig,
    PoseConfig,
    load_config,
    get_default_config,
    get_strict_config,
)

from .verification import (
    EpipolarVerifier,
    Signature,
    VerificationResult,
    load_signature,
    REJECT_MISSING_SIGNATURE,
    REJECT_INSUFFICIENT_MATCHES,
    REJECT_INSUFFICIENT_INLIERS,
)

__all__ = [
    # Config
    "EpipolarConfig",
    "VerificationConfig",
    "TriangulationConfig",
    "PoseConfig",
    "load_config",
    "get_default_config",
    "get_strict_config",
    # Verification
    "EpipolarVerifier",
    "Signature",
    "VerificationResult",
    "load_signature",
    "REJECT_MISSING_SIGNATURE",
    "REJECT_INSUFFICIENT_MATCHES",
    "REJECT_INSUFFICIENT_INLIERS",
]
