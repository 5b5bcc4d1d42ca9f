"""
Tests for the mode-coupling kernels and P13 brackets.
"""

import pytest
import numpy as np

from sptpy.kernels import F2, G2, QMIN, FieldPair, P13_BRACKETS, P13_NORMALIZATION, P22_KERNELS

PAIRS = list(FieldPair)


def test_field_pair_values() -> None:
    """Test that pair values are the products of the field indices."""
    assert FieldPair(1 * 1) is FieldPair.DD
    assert FieldPair(1 * 2) is FieldPair.DT
    assert FieldPair(2 * 1) is FieldPair.DT
    assert FieldPair(2 * 2) is FieldPair.TT
    with pytest.raises(ValueError):
        FieldPair(3)


@pytest.mark.parametrize("kernel", [F2, G2])
def test_kernel_symmetry(kernel) -> None:
    """Test that kernels are symmetric under q <-> r."""
    rng = np.random.default_rng(42)
    k = rng.uniform(0.01, 1.0, 100)
    q = rng.uniform(0.01, 1.0, 100)
    r = rng.uniform(0.01, 1.0, 100)
    assert np.allclose(kernel(k, q, r), kernel(k, r, q), rtol=1e-14, atol=0)


@pytest.mark.parametrize("kernel", [F2, G2])
def test_kernel_vanishes_for_antiparallel_modes(kernel) -> None:
    """Test that F2(q, -q) = G2(q, -q) = 0 (k = 0, q = r)."""
    q = np.array([0.01, 0.1, 1.0, 10.0])
    assert np.allclose(kernel(0.0, q, q), 0.0, atol=1e-12)


def test_kernel_parallel_modes() -> None:
    """Test collinear configuration k = q + r, where F2 = G2 = 1 + (q/r + r/q)/2."""
    q, r = 0.3, 0.7
    expected = 1 + 0.5 * (q / r + r / q)
    assert np.isclose(F2(q + r, q, r), expected)
    assert np.isclose(G2(q + r, q, r), expected)


def test_kernel_angular_form() -> None:
    """Test against F2 = 5/7 + μ(q/r + r/q)/2 + 2μ²/7 with μ the cosine between q and k−q."""
    k, q, r = 0.5, 0.4, 0.3
    mu = (k**2 - q**2 - r**2) / (2 * q * r)
    F2_mu = 5/7 + 0.5 * mu * (q / r + r / q) + 2/7 * mu**2
    G2_mu = 3/7 + 0.5 * mu * (q / r + r / q) + 4/7 * mu**2
    assert np.isclose(F2(k, q, r), F2_mu, rtol=1e-14)
    assert np.isclose(G2(k, q, r), G2_mu, rtol=1e-14)


def test_kernel_clamps_small_momenta() -> None:
    """Test that vanishing q is clamped to QMIN instead of dividing by zero."""
    assert np.isfinite(F2(1.0, 0.0, 1.0))
    assert F2(1.0, 0.0, 1.0) == F2(1.0, QMIN, 1.0)
    assert G2(1.0, 1.0, 0.0) == G2(1.0, 1.0, QMIN)


def test_p22_kernel_table() -> None:
    """Test the kernel pairs used by each P22 variant."""
    assert P22_KERNELS[FieldPair.DD] == (F2, F2)
    assert P22_KERNELS[FieldPair.DT] == (F2, G2)
    assert P22_KERNELS[FieldPair.TT] == (G2, G2)


@pytest.mark.parametrize("pair", PAIRS)
def test_bracket_near_one_matches_closed_form(pair) -> None:
    """Test that the r = 1 expansion is the value and slope of the polynomial part."""
    A, B, C, D, E, F = P13_BRACKETS[pair].exact
    e0, e1 = P13_BRACKETS[pair].near_one
    assert A - B + C - D == pytest.approx(e0)
    assert -2 * A + 2 * C - 4 * D == pytest.approx(e1)


@pytest.mark.parametrize("pair", PAIRS)
@pytest.mark.parametrize("r", [0.0099, 0.005])
def test_bracket_continuous_at_small_r(pair, r) -> None:
    """Test the small-r series against the closed form below r = 1e-2."""
    s = P13_BRACKETS[pair]
    assert s(r) == s.small_r(r)
    assert s.small_r(r) == pytest.approx(s.closed_form(r), rel=1e-8)
    # just above the switch the closed form is used
    assert s(0.0101) == pytest.approx(s.small_r(0.0101), rel=1e-8)


@pytest.mark.parametrize("pair", PAIRS)
def test_bracket_continuous_at_large_r(pair) -> None:
    """Test the large-r series against the closed form above r = 100."""
    s = P13_BRACKETS[pair]
    assert s(101.0) == s.large_r(101.0)
    assert s.large_r(101.0) == pytest.approx(s.closed_form(101.0), rel=1e-5)
    assert s(99.0) == pytest.approx(s.large_r(99.0), rel=1e-5)


@pytest.mark.parametrize("pair", PAIRS)
def test_bracket_continuous_at_one(pair) -> None:
    """Test the removable singularity at r = 1."""
    s = P13_BRACKETS[pair]
    e0, _ = s.near_one
    assert s(1.0) == e0
    for dr in [5e-11, -5e-11]:
        assert s(1 + dr) == s.near_r1(1 + dr)
        assert s(1 + dr) == pytest.approx(s.closed_form(1 + 4 * dr), abs=1e-8)
    for dr in [1e-6, -1e-6, 1e-4]:
        assert s(1 + dr) == pytest.approx(s.near_r1(1 + dr), abs=1e-5)


@pytest.mark.parametrize("pair", PAIRS)
def test_bracket_array(pair) -> None:
    """Test that array evaluation matches pointwise evaluation."""
    s = P13_BRACKETS[pair]
    r = np.array([1e-3, 0.5, 1.0, 2.0, 1e3])
    values = s(r)
    assert values.shape == r.shape
    assert np.all(np.isfinite(values))
    assert np.array_equal(values, [s(x) for x in r])


def test_bracket_limits_match_velocity_dispersion() -> None:
    """Test the large-scale limits P13 -> -c k² σ_v² P_L with c = 61/105, 25/21, 9/5."""
    expected = {FieldPair.DD: 61/105, FieldPair.DT: 25/21, FieldPair.TT: 9/5}
    for pair, c in expected.items():
        d0 = P13_BRACKETS[pair].large[0]
        # ∫ dq P = 6π² σ_v², V = k² P_L / (N 4π²)
        assert -d0 * 6 / (4 * P13_NORMALIZATION[pair]) == pytest.approx(c)
