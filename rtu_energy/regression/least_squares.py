"""Polynomial least-squares regression over a symbolic list of terms.

A model is written as a sum of monomials in the regressors X1, X2, ...,
e.g. ``'1 + X1 + X1^2 + X1*X2'``. Each term is a product of factors, where a
factor is either the constant ``1`` or a regressor ``Xi`` optionally raised to
an integer power ``Xi^k``.
"""
import math
import re
import warnings
from dataclasses import dataclass
import numpy as np
from ..exceptions import RegressionError, RegressionWarning
from ..logging import ModuleLogger

logger = ModuleLogger.get_logger(__name__)

_FACTOR_PATTERN = re.compile(r'^X(\d+)(?:\^(\d+))?$')


@dataclass(frozen=True)
class Term:
    """Monomial that is the product of regressors raised to integer powers.

    Attributes
    ----------
    powers:
        Tuple of (regressor index, exponent) pairs; regressor indices start
        at 1. An empty tuple represents the constant term.
    """
    powers: tuple[tuple[int, int], ...]

    def evaluate(self, x: tuple[float, ...] | list[float]) -> float:
        value = 1.0
        for i, k in self.powers:
            value *= x[i - 1] ** k
        return value

    def __str__(self):
        if not self.powers:
            return '1'
        return '*'.join(f'X{i}' if k == 1 else f'X{i}^{k}' for i, k in self.powers)


def parse_terms(expression: str) -> list[Term]:
    """Parses a model expression into a list of `Term` objects.

    Raises
    ------
    RegressionError
        If the expression has no terms or contains a factor that is not
        ``1``, ``Xi`` or ``Xi^k`` (with i >= 1).
    """
    terms = []
    for term_str in expression.split('+'):
        term_str = term_str.strip()
        if not term_str:
            continue
        powers = []
        for factor in term_str.split('*'):
            factor = factor.strip()
            if factor == '1':
                continue
            match = _FACTOR_PATTERN.match(factor)
            if match is None:
                raise RegressionError(f"Unsupported factor: {factor}")
            i = int(match.group(1))
            if i < 1:
                raise RegressionError(f"Unsupported factor: {factor}")
            k = int(match.group(2)) if match.group(2) is not None else 1
            powers.append((i, k))
        terms.append(Term(tuple(powers)))
    if not terms:
        raise RegressionError("No model terms")
    return terms


def _gauss_jordan(A: np.ndarray, B: np.ndarray) -> np.ndarray:
    """Solves A·X = B by Gauss-Jordan elimination with partial pivoting.
    `B` may hold several right-hand side columns.
    """
    n = A.shape[0]
    M = np.hstack([A.astype(float), B.reshape(n, -1).astype(float)])
    for col in range(n):
        pivot_row = col + int(np.argmax(np.abs(M[col:, col])))
        pivot = M[pivot_row, col]
        if pivot == 0.0 or not math.isfinite(pivot):
            raise RegressionError("Singular matrix")
        if pivot_row != col:
            M[[col, pivot_row]] = M[[pivot_row, col]]
        M[col] = M[col] / M[col, col]
        for row in range(n):
            if row != col:
                M[row] = M[row] - M[row, col] * M[col]
    return M[:, n:]


@dataclass(frozen=True)
class FittedModel:
    """Solved least-squares model.

    Attributes
    ----------
    expression:
        The model expression the model was fitted with.
    terms:
        Parsed terms of the model.
    coefficients:
        Fitted coefficient for each term.
    t_values:
        t-statistic of each coefficient, or None where it could not be
        determined.
    r2:
        Coefficient of determination; None if the response has no variance.
    residual_se:
        Residual standard error; None if there are no degrees of freedom left.
    n_observations:
        Number of data rows used in the fit.
    """
    expression: str
    terms: tuple[Term, ...]
    coefficients: tuple[float, ...]
    t_values: tuple[float | None, ...]
    r2: float | None
    residual_se: float | None
    n_observations: int

    def predict(self, *x: float) -> float:
        """Evaluates the model at regressor values X1, X2, ... = `x`."""
        return sum(
            c * term.evaluate(x)
            for c, term in zip(self.coefficients, self.terms)
        )

    def __str__(self):
        return ' + '.join(
            f"{c:.6g}*{term}" if term.powers else f"{c:.6g}"
            for c, term in zip(self.coefficients, self.terms)
        )


def fit_model(rows: list[list[float]], expression: str) -> FittedModel:
    """Fits the model given by `expression` to the data `rows`.

    Parameters
    ----------
    rows:
        Data rows ``[y, x1, x2, ...]``. Rows with fewer than 2 values, with a
        non-finite response or with a term that evaluates to a non-finite
        value are skipped.
    expression:
        Model expression, e.g. ``'1 + X1 + X1^2'``.

    Returns
    -------
    FittedModel

    Raises
    ------
    RegressionError
        If the expression cannot be parsed, if there are fewer valid rows
        than terms, or if the normal equations are singular.
    """
    terms = parse_terms(expression)
    p = len(terms)
    X_rows, y_rows = [], []
    for row in rows:
        if row is None or len(row) < 2:
            continue
        y = row[0]
        if y is None or not math.isfinite(y):
            continue
        x = [float('nan') if v is None else v for v in row[1:]]
        try:
            values = [term.evaluate(x) for term in terms]
        except IndexError:
            continue
        if not all(math.isfinite(v) for v in values):
            continue
        X_rows.append(values)
        y_rows.append(y)
    n = len(y_rows)
    if n < p:
        raise RegressionError(
            f"Insufficient data points: {n} valid rows for {p} terms"
        )
    X = np.array(X_rows, dtype=float)
    y = np.array(y_rows, dtype=float)
    XtX = X.T @ X
    XtY = X.T @ y
    beta = _gauss_jordan(XtX, XtY)[:, 0]

    y_hat = X @ beta
    sse = float(np.sum((y - y_hat) ** 2))
    sst = float(np.sum((y - y.mean()) ** 2))
    r2 = 1.0 - sse / sst if sst > 0.0 else None
    dof = n - p
    mse = sse / dof if dof > 0 else 0.0
    residual_se = math.sqrt(mse) if dof > 0 else None
    try:
        XtX_inv = _gauss_jordan(XtX, np.eye(p))
        t_values = []
        for j in range(p):
            se = math.sqrt(max(0.0, mse * XtX_inv[j, j]))
            t_values.append(float(beta[j] / se) if se > 0.0 else None)
    except RegressionError:
        t_values = [None] * p
    return FittedModel(
        expression=expression,
        terms=tuple(terms),
        coefficients=tuple(float(b) for b in beta),
        t_values=tuple(t_values),
        r2=r2,
        residual_se=residual_se,
        n_observations=n
    )


def try_fit_model(rows: list[list[float]], expression: str, name: str = 'model') -> FittedModel | None:
    """Fits a model, but returns None instead of raising when the fit fails.
    The failure is then reported through a `RegressionWarning` and the
    built-in performance curves will be used instead of the model.
    """
    try:
        return fit_model(rows, expression)
    except RegressionError as err:
        msg = f"Fit of {name} failed ({err}); built-in curves are used instead."
        logger.warning(msg)
        warnings.warn(message=msg, category=RegressionWarning)
        return None
