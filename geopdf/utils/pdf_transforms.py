"""Affine transformation utilities for georeferencing."""

from typing import List, Optional, Sequence, Tuple

import numpy as np

MATRIX_EPSILON = 1e-12

Affine = Tuple[float, float, float, float, float, float]


def apply_matrix_transform(x: float, y: float, ctm: Sequence[float]) -> Tuple[float, float]:
    """Apply CTM transformation to a point.

    Args:
        x, y: Point coordinates
        ctm: 6-element CTM matrix [a, b, c, d, e, f]

    Returns:
        Transformed (x, y) coordinates
    """
    a, b, c, d, e, f = ctm
    tx = a * x + c * y + e
    ty = b * x + d * y + f
    return tx, ty


def invert_affine(ctm: Sequence[float]) -> Optional[Affine]:
    """Inverse of a PDF-ordered affine matrix, None if singular."""
    a, b, c, d, e, f = ctm
    m = np.array([[a, c, e], [b, d, f], [0.0, 0.0, 1.0]], dtype=float)
    if abs(np.linalg.det(m)) < MATRIX_EPSILON:
        return None
    inv = np.linalg.inv(m)
    return (
        float(inv[0, 0]), float(inv[1, 0]),
        float(inv[0, 1]), float(inv[1, 1]),
        float(inv[0, 2]), float(inv[1, 2]),
    )


def fit_affine(
    source: Sequence[Tuple[float, float]],
    target: Sequence[Tuple[float, float]],
) -> Optional[Affine]:
    """Least-squares affine mapping source points onto target points.

    Returns (a, b, c, d, e, f) such that target ~= (a*x + c*y + e, b*x + d*y + f),
    or None with fewer than 3 points or when the points are collinear.
    """
    if len(source) < 3 or len(source) != len(target):
        return None

    src = np.asarray(source, dtype=float)
    dst = np.asarray(target, dtype=float)
    design = np.column_stack([src[:, 0], src[:, 1], np.ones(len(src))])

    coeffs, _, rank, _ = np.linalg.lstsq(design, dst, rcond=None)
    if rank < 3:
        return None

    # coeffs columns: X <- (a, c, e), Y <- (b, d, f)
    a, c, e = (float(v) for v in coeffs[:, 0])
    b, d, f = (float(v) for v in coeffs[:, 1])
    return a, b, c, d, e, f


def reprojection_errors(
    ctm: Sequence[float],
    source: Sequence[Tuple[float, float]],
    target: Sequence[Tuple[float, float]],
) -> Optional[List[float]]:
    """Distance, in source units, between each source point and its target mapped back.

    None when the transform cannot be inverted.
    """
    inverse = invert_affine(ctm)
    if inverse is None:
        return None
    errors = []
    for (sx, sy), (tx, ty) in zip(source, target):
        px, py = apply_matrix_transform(tx, ty, inverse)
        errors.append(float(np.hypot(px - sx, py - sy)))
    return errors
