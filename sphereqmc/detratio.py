"""
ratios of determinants built from rows of one shared matrix S

a slater determinant on the sphere is det(S[rows, :]), where rows picks
the occupied orbitals and the columns run over particles. a move or an
excitation changes which rows are occupied, and the monte carlo needs
det(S[numerator_rows, :]) / det(S[denominator_rows, :])
for many numerators at once, all sharing one denominator.

rows common to the denominator and to every numerator cancel.
if the denominator rows are reordered to (diff, common) then
A = S[denominator_diff + common] and its inverse is a column permutation
of Sinv, the inverse of S[denominator_rows]. multiplying the numerator
matrix A' = S[numerator_diff + common] by inv(A) leaves unit rows for
every common row, so
    det(A') / det(A) = det(S[numerator_diff] . Sinv[:, intra_denom_diff])
which is only k_diff x k_diff. the signs of the two reorderings
make up the rest.
"""
import numpy as np
from sphereqmc.math import permutation_sign

class ConstructionError(ValueError):
    """
    row sets handed to RatioEvaluator cannot be used,
    e.g. they have different lengths
    """

class InvariantViolation(RuntimeError):
    """
    internal bookkeeping went wrong while building the index tables;
    should never happen for row sets that passed validation
    """

class DimensionMismatch(ValueError):
    """
    S, Sinv or the results buffer do not fit the row sets
    the evaluator was built for
    """

def _check_rows(rows, name):
    rows = list(rows)
    for row in rows:
        if isinstance(row, (bool, np.bool_)) \
                or not isinstance(row, (int, np.integer)) or row < 0:
            raise ConstructionError('%s contains %r, which is not a row of S'\
                    % (name, row))
    rows = [int(row) for row in rows]
    if len(set(rows)) != len(rows):
        raise ConstructionError('%s repeats a row: %s' % (name, rows))
    return rows

def analyze_rows(denominator_rows, numerator_rows):
    """
    set algebra on the row sets

    args:
        denominator_rows (sequence of int): rows of the denominator, length k
        numerator_rows (sequence of sequences of int): one row set per
            numerator, each of length k
    returns:
        common_elements (list): rows in the denominator and in every
            numerator, in denominator order
        denominator_diff (list): denominator rows not in common_elements
        numerator_diffs (list of lists): same for each numerator
        numerator_diffs_union (list): every row in any numerator_diffs,
            in order of first appearance
    raises:
        ConstructionError if the sets have different lengths, if there are
        no numerators, or if a set has negative or repeated rows
    """
    denominator_rows = _check_rows(denominator_rows, 'denominator_rows')
    numerator_rows = [_check_rows(rows, 'numerator_rows[%d]' % i)\
            for i, rows in enumerate(numerator_rows)]
    if len(numerator_rows) == 0:
        raise ConstructionError('at least one numerator row set is needed')
    k = len(denominator_rows)
    lengths = [len(rows) for rows in numerator_rows]
    if any(length != k for length in lengths):
        raise ConstructionError(\
                'lengths of denominator (%d) and numerator rows %s do not match'\
                % (k, lengths))
    shared = set(denominator_rows)
    for rows in numerator_rows:
        shared &= set(rows)
    common_elements = [row for row in denominator_rows if row in shared]
    denominator_diff = [row for row in denominator_rows if row not in shared]
    numerator_diffs = [[row for row in rows if row not in shared]\
            for rows in numerator_rows]
    numerator_diffs_union = []
    seen = set()
    for diff in numerator_diffs:
        for row in diff:
            if row not in seen:
                seen.add(row)
                numerator_diffs_union.append(row)
    return common_elements, denominator_diff, numerator_diffs,\
            numerator_diffs_union

def index_map(numerator_diffs, numerator_diffs_union):
    """
    iters[j, i] is the position of numerator_diffs[i][j]
    in numerator_diffs_union, so that temp[iters[:, i]] picks out
    the rows belonging to numerator i
    """
    position = {row: n for n, row in enumerate(numerator_diffs_union)}
    k_diff = len(numerator_diffs[0]) if len(numerator_diffs) > 0 else 0
    iters = np.zeros((k_diff, len(numerator_diffs)), dtype=int)
    for i, diff in enumerate(numerator_diffs):
        if len(diff) != k_diff:
            raise InvariantViolation(\
                    'numerator %d differs in %d rows, expected %d'\
                    % (i, len(diff), k_diff))
        for j, row in enumerate(diff):
            try:
                iters[j, i] = position[row]
            except KeyError:
                raise InvariantViolation(\
                        'row %d of numerator %d is missing from the union'\
                        % (row, i)) from None
    return iters

class RatioEvaluator:
    """
    computes det(S[numerator_rows[i], :]) / det(S[denominator_rows, :])
    for every i, reusing the index bookkeeping between calls

    build it once whenever the occupied rows change, then call evaluate()
    as often as needed with the current S and Sinv

    everything set up in __init__ is read only; the only thing evaluate()
    writes to is the scratch buffer self._temp,
    so threads should each use their own copy()
    """
    def __init__(self, denominator_rows, numerator_rows):
        denominator_rows = list(denominator_rows)
        numerator_rows = [list(rows) for rows in numerator_rows]
        common, denominator_diff, numerator_diffs, union = \
                analyze_rows(denominator_rows, numerator_rows)
        self.denominator_rows = tuple(int(row) for row in denominator_rows)
        self.numerator_rows = tuple(tuple(int(row) for row in rows)\
                for rows in numerator_rows)
        self.common_elements = tuple(common)
        self.denominator_diff = tuple(denominator_diff)
        self.numerator_diffs = tuple(tuple(diff) for diff in numerator_diffs)
        self.numerator_diffs_union = np.array(union, dtype=int)
        self.k = len(self.denominator_rows)
        self.k_diff = len(denominator_diff)
        self.n_numerators = len(self.numerator_rows)
        self.max_row = max(max(self.denominator_rows),\
                max(max(rows) for rows in self.numerator_rows)) \
                if self.k > 0 else -1

        self.iters = index_map(numerator_diffs, union)
        self.denominator_sign = permutation_sign(self.denominator_rows,\
                denominator_diff + common)
        self.numerator_signs = np.array([permutation_sign(rows, list(diff) + common)\
                for rows, diff in zip(self.numerator_rows, numerator_diffs)],\
                dtype=float)
        position = {row: n for n, row in enumerate(self.denominator_rows)}
        self.intra_denom_diff = np.array([position[row]\
                for row in denominator_diff], dtype=int)
        #batched index for temp: selection[i] picks the rows of numerator i
        self._selection = np.ascontiguousarray(self.iters.T)
        for table in (self.numerator_diffs_union, self.iters,\
                self.numerator_signs, self.intra_denom_diff, self._selection):
            table.flags.writeable = False
        self._temp = np.zeros((len(union), self.k_diff), dtype=complex)

    def copy(self):
        """
        evaluator sharing the read only tables but with its own scratch buffer
        """
        new = object.__new__(RatioEvaluator)
        new.__dict__.update(self.__dict__)
        new._temp = np.zeros_like(self._temp)
        return new

    def _check_shapes(self, results, S, Sinv):
        if np.ndim(S) != 2:
            raise DimensionMismatch('S must be a matrix, got shape %s'\
                    % (np.shape(S),))
        rows, columns = np.shape(S)
        if rows <= self.max_row:
            raise DimensionMismatch('S has %d rows but row %d is used'\
                    % (rows, self.max_row))
        if columns != self.k:
            raise DimensionMismatch(\
                    'S has %d columns, row sets have length %d'\
                    % (columns, self.k))
        if np.shape(Sinv) != (self.k, self.k):
            raise DimensionMismatch('Sinv has shape %s, expected %s'\
                    % (np.shape(Sinv), (self.k, self.k)))
        if len(results) < self.n_numerators:
            raise DimensionMismatch('results has room for %d ratios, need %d'\
                    % (len(results), self.n_numerators))

    def evaluate(self, results, S, Sinv):
        """
        fill results[i] with det(S[numerator_rows[i]]) / det(S[denominator_rows])

        args:
            results (1D complex array): written in place,
                needs at least one entry per numerator
            S (2D array): shared matrix, rows are orbitals and there are
                k columns
            Sinv (2D array): inverse of S[denominator_rows, :],
                kept up to date by the caller
        returns:
            nothing
        raises:
            DimensionMismatch if the shapes do not fit the row sets
        """
        self._check_shapes(results, S, Sinv)
        n = self.n_numerators
        if self.k_diff == 0:
            #every numerator is a reordering of the denominator
            results[:n] = self.numerator_signs / self.denominator_sign
            return
        np.matmul(S[self.numerator_diffs_union, :],\
                Sinv[:, self.intra_denom_diff], out=self._temp)
        dets = np.linalg.det(self._temp[self._selection])
        results[:n] = dets*self.numerator_signs / self.denominator_sign

    def ratios(self, S, Sinv):
        """
        same as evaluate() but allocates and returns the results
        """
        results = np.zeros(self.n_numerators, dtype=complex)
        self.evaluate(results, S, Sinv)
        return results

    def flop_count(self):
        """
        rough number of multiplications done by evaluate():
        one shared product plus a k_diff x k_diff determinant per numerator
        """
        product = len(self.numerator_diffs_union)*self.k*self.k_diff
        return product + self.n_numerators*self.k_diff**3

    def full_flop_count(self):
        """
        same estimate for computing every numerator determinant from scratch
        """
        return self.n_numerators*self.k**3

def construct_det_ratios(denominator_rows, numerator_rows):
    """
    builds a RatioEvaluator for the given row sets,
    the usual way to get one
    """
    return RatioEvaluator(denominator_rows, numerator_rows)

def direct_det_ratios(S, denominator_rows, numerator_rows):
    """
    brute force version of RatioEvaluator.ratios(),
    takes every determinant in full
    """
    S = np.asarray(S)
    denominator = np.linalg.det(S[list(denominator_rows), :])
    return np.array([np.linalg.det(S[list(rows), :]) / denominator\
            for rows in numerator_rows])
