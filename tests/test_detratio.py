import numpy as np
import pytest
import sphereqmc.detratio as sd

def random_matrix(rows, columns, rng):
    return rng.standard_normal((rows, columns)) \
            + 1j*rng.standard_normal((rows, columns))

def test_analyze_rows():
    """
    check the set algebra and the index map on a small hand-made example
    """
    common, denominator_diff, numerator_diffs, union = \
            sd.analyze_rows([0, 1, 2, 3], [[0, 1, 4, 5], [5, 1, 0, 6]])
    assert common == [0, 1], 'wrong common rows'
    assert denominator_diff == [2, 3], 'wrong denominator difference'
    assert numerator_diffs == [[4, 5], [5, 6]], 'wrong numerator differences'
    assert union == [4, 5, 6], 'wrong union of differences'
    iters = sd.index_map(numerator_diffs, union)
    assert (iters == np.array([[0, 1], [1, 2]])).all(), 'wrong index map'

def test_index_map_missing_row():
    with pytest.raises(sd.InvariantViolation):
        sd.index_map([[4, 7]], [4, 5])

def test_identical_rows():
    """
    numerators that only reorder the denominator rows
    give +1 or -1, the parity of the reordering
    """
    rng = np.random.default_rng(1)
    S = random_matrix(6, 3, rng)
    denominator = [0, 2, 4]
    numerators = [[0, 2, 4], [2, 0, 4], [4, 2, 0], [2, 4, 0]]
    evaluator = sd.construct_det_ratios(denominator, numerators)
    assert evaluator.k_diff == 0
    results = np.zeros(4, dtype=complex)
    evaluator.evaluate(results, S, np.linalg.inv(S[denominator]))
    assert (results == np.array([1, -1, -1, 1])).all(), \
            'reordered rows did not give the permutation parity'
    direct = sd.direct_det_ratios(S, denominator, numerators)
    assert np.allclose(results, direct), 'parity disagrees with determinants'

def test_full_overlap_skips_determinants():
    """
    with nothing left after removing common rows
    the result is the sign ratio whatever is in S
    """
    S = np.full((4, 3), np.nan, dtype=complex)
    Sinv = np.full((3, 3), np.nan, dtype=complex)
    evaluator = sd.RatioEvaluator([1, 2, 3], [[3, 2, 1], [1, 2, 3]])
    results = evaluator.ratios(S, Sinv)
    assert (results == np.array([-1, 1])).all(), \
            'full overlap should give exactly the sign ratio'

def test_brute_force():
    """
    random complex 6x6 matrices and k = 3 row sets,
    covering disjoint, identical and partially overlapping numerators,
    against det(S[numerator]) / det(S[denominator]) taken directly
    """
    rng = np.random.default_rng(69)
    trials = 0
    while trials < 150:
        S = random_matrix(6, 3, rng)
        denominator = list(rng.permutation(6)[:3])
        if np.linalg.cond(S[denominator]) > 1e4:
            continue #keep inverse well conditioned
        trials += 1
        others = [row for row in range(6) if row not in denominator]
        disjoint = list(rng.permutation(others))
        same = list(rng.permutation(denominator))
        partial = list(denominator)
        partial[rng.integers(3)] = others[rng.integers(3)]
        swapped_in = list(rng.permutation(denominator))
        swapped_in[0] = others[rng.integers(3)]
        anything = list(rng.permutation(6)[:3])
        cases = [[disjoint], [same], [partial], [partial, swapped_in],\
                [disjoint, same, partial, swapped_in, anything]]
        Sinv = np.linalg.inv(S[denominator])
        for numerators in cases:
            evaluator = sd.RatioEvaluator(denominator, numerators)
            fast = evaluator.ratios(S, Sinv)
            slow = sd.direct_det_ratios(S, denominator, numerators)
            assert np.allclose(fast, slow, rtol=1e-10, atol=1e-10), \
                    'ratio disagrees with direct determinants for %s / %s'\
                    % (numerators, denominator)

def test_single_row():
    """
    k = 1 is just a ratio of two entries
    """
    rng = np.random.default_rng(7)
    S = random_matrix(5, 1, rng)
    evaluator = sd.RatioEvaluator([2], [[0], [1], [3], [2]])
    Sinv = np.array([[1 / S[2, 0]]])
    results = evaluator.ratios(S, Sinv)
    expected = S[[0, 1, 3, 2], 0] / S[2, 0]
    assert np.allclose(results, expected), 'failed for 1x1 determinants'
    assert np.isclose(results[-1], 1)

def test_swap_denominator():
    """
    swapping two denominator rows flips the sign of every ratio
    """
    rng = np.random.default_rng(3)
    S = random_matrix(7, 4, rng)
    numerators = [[0, 1, 5, 3], [6, 1, 2, 3], [0, 4, 2, 6]]
    denominator = [0, 1, 2, 3]
    swapped = [1, 0, 2, 3]
    plain = sd.RatioEvaluator(denominator, numerators)\
            .ratios(S, np.linalg.inv(S[denominator]))
    flipped = sd.RatioEvaluator(swapped, numerators)\
            .ratios(S, np.linalg.inv(S[swapped]))
    assert np.allclose(plain, -flipped), \
            'swapping denominator rows did not flip the signs'

def test_amortization():
    """
    one row replaced in many different ways:
    the reduced evaluation does far fewer multiplications
    than full determinants, and still gets them right
    """
    rng = np.random.default_rng(11)
    S = random_matrix(25, 10, rng)
    denominator = list(range(10))
    numerators = [[row] + list(range(1, 10)) for row in range(10, 25)]
    evaluator = sd.RatioEvaluator(denominator, numerators)
    assert evaluator.k_diff == 1
    assert evaluator.flop_count() < evaluator.full_flop_count(), \
            'reduced evaluation is not cheaper'
    fast = evaluator.ratios(S, np.linalg.inv(S[denominator]))
    slow = sd.direct_det_ratios(S, denominator, numerators)
    assert np.allclose(fast, slow), 'single row replacements failed'

def test_construction_errors():
    with pytest.raises(sd.ConstructionError):
        sd.construct_det_ratios([0, 1, 2], [[0, 1, 2], [0, 1]])
    with pytest.raises(sd.ConstructionError):
        sd.construct_det_ratios([0, 1], [[0, 1, 2]])
    with pytest.raises(sd.ConstructionError):
        sd.construct_det_ratios([0, 1], [])
    with pytest.raises(sd.ConstructionError):
        sd.construct_det_ratios([0, 0], [[0, 1]])
    with pytest.raises(sd.ConstructionError):
        sd.construct_det_ratios([0, -1], [[0, 1]])

def test_dimension_mismatch():
    rng = np.random.default_rng(5)
    S = random_matrix(6, 3, rng)
    evaluator = sd.RatioEvaluator([0, 1, 2], [[0, 1, 5], [3, 1, 2]])
    Sinv = np.linalg.inv(S[[0, 1, 2]])
    results = np.zeros(2, dtype=complex)
    with pytest.raises(sd.DimensionMismatch):
        evaluator.evaluate(results, S[:5], Sinv) #row 5 is missing
    with pytest.raises(sd.DimensionMismatch):
        evaluator.evaluate(results, S[:, :2], Sinv)
    with pytest.raises(sd.DimensionMismatch):
        evaluator.evaluate(results, S, Sinv[:2])
    with pytest.raises(sd.DimensionMismatch):
        evaluator.evaluate(np.zeros(1, dtype=complex), S, Sinv)
    evaluator.evaluate(results, S, Sinv)
    assert np.allclose(results,\
            sd.direct_det_ratios(S, [0, 1, 2], [[0, 1, 5], [3, 1, 2]]))

def test_tables_read_only():
    evaluator = sd.RatioEvaluator([0, 1, 2], [[0, 1, 4], [3, 1, 2]])
    with pytest.raises(ValueError):
        evaluator.iters[0, 0] = 1
    with pytest.raises(ValueError):
        evaluator.numerator_signs[0] = -1.0

def test_copy():
    """
    copies share the tables but not the scratch buffer
    """
    rng = np.random.default_rng(2)
    S = random_matrix(6, 3, rng)
    Sinv = np.linalg.inv(S[[0, 1, 2]])
    evaluator = sd.RatioEvaluator([0, 1, 2], [[0, 4, 2], [3, 1, 5]])
    other = evaluator.copy()
    assert other._temp is not evaluator._temp
    assert other.iters is evaluator.iters
    assert np.allclose(other.ratios(S, Sinv), evaluator.ratios(S, Sinv))
