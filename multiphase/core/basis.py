"""
Component basis selection for multiphase equilibrium.

The global atom matrix of a multiphase mixture is generally rank deficient:
many more species than elements, and elements that may not all be
independent. The basis optimizer picks a square, well-conditioned subset of
"component" species whose columns span the element space of the current
abundances, and expresses every other species through a formation reaction
from those components.

Species present in large amounts are preferred as components, so formation
reactions are written relative to the abundant species and never require an
absent species to supply atoms.

References:
    - Smith, W.R. & Missen, R.W. (1982). "Chemical Reaction Equilibrium
      Analysis: Theory and Algorithms", Ch. 2 (stoichiometric bases).
"""

import logging
from collections.abc import Iterable

import numpy as np
from numpy.typing import NDArray
from scipy.linalg import lu_factor, lu_solve

from .types import BasisResult, DegenerateBasisError

logger = logging.getLogger(__name__)


def _exclusion_mask(n_species: int, exclude: Iterable[int] | NDArray | None) -> NDArray[np.bool_]:
    mask = np.zeros(n_species, dtype=bool)
    if exclude is None:
        return mask
    exclude = np.asarray(exclude)
    if exclude.dtype == bool:
        mask[:] = exclude
    else:
        mask[exclude.astype(int)] = True
    return mask


def basis_optimize(
    atoms: NDArray[np.float64],
    moles: NDArray[np.float64],
    element_abundances: NDArray[np.float64] | None = None,
    exclude: Iterable[int] | NDArray | None = None,
    form_rxn: bool = True,
    threshold: float = 1.0e-10,
) -> BasisResult:
    """
    Select component species by pivoted Gaussian elimination.

    Candidates are visited in order of decreasing mole number. Each candidate
    column is reduced against the pivots chosen so far; if its largest
    remaining entry exceeds threshold * max|atoms| it becomes a component and
    that entry's row becomes the next pivot element. Columns that fall below
    the threshold are linear combinations of earlier components.

    Elements with zero abundance that no present species carries are
    inactive: they are dropped together with every species containing them,
    so they reduce the number of components instead of raising.

    Args:
        atoms: (n_elements, n_species) atom matrix
        moles: (n_species,) current species moles (kmol)
        element_abundances: (n_elements,) element totals; computed from
            atoms and moles of non-excluded species when omitted
        exclude: Species that may not be used (indices or boolean mask)
        form_rxn: Also compute the formation reaction matrix
        threshold: Relative pivot threshold

    Returns:
        BasisResult describing the components and formation reactions

    Raises:
        DegenerateBasisError: If an element with nonzero abundance cannot be
            expressed by the available species
    """
    atoms = np.asarray(atoms, dtype=np.float64)
    moles = np.asarray(moles, dtype=np.float64)
    n_elem, n_spec = atoms.shape
    excluded = _exclusion_mask(n_spec, exclude)
    usable_moles = np.where(excluded, 0.0, moles)

    if element_abundances is None:
        b = atoms @ usable_moles
    else:
        b = np.asarray(element_abundances, dtype=np.float64)

    scale = float(np.max(np.abs(atoms))) if atoms.size else 1.0
    scale = scale if scale > 0.0 else 1.0
    tiny = threshold * scale

    present = usable_moles > 0.0
    carried = np.any(np.abs(atoms[:, present]) > 0.0, axis=1)
    active = (np.abs(b) > 0.0) | carried
    active_rows = [m for m in range(n_elem) if active[m]]
    inactive_rows = [m for m in range(n_elem) if not active[m]]

    candidates = [
        k for k in range(n_spec)
        if not excluded[k] and not np.any(atoms[inactive_rows, k] != 0.0)
    ]
    candidates.sort(key=lambda k: (-usable_moles[k], k))

    for m in active_rows:
        if b[m] != 0.0 and not np.any(atoms[m, candidates] != 0.0):
            raise DegenerateBasisError(
                f"No available species carries element {m} "
                f"(abundance {b[m]:.6g} kmol)"
            )

    # Row-reduce the candidate columns in preference order
    work = atoms[np.ix_(active_rows, candidates)].copy()
    remaining = list(range(len(active_rows)))
    pivot_rows: list[int] = []
    components: list[int] = []
    pivot_product = 1.0

    for j, k in enumerate(candidates):
        if not remaining:
            break
        column = np.abs(work[remaining, j])
        best = int(np.argmax(column))
        if column[best] <= tiny:
            continue
        r = remaining.pop(best)
        pivot = work[r, j]
        for i in remaining:
            if work[i, j] != 0.0:
                work[i, :] -= (work[i, j] / pivot) * work[r, :]
        pivot_rows.append(active_rows[r])
        components.append(k)
        pivot_product *= abs(pivot)

    n_comp = len(components)
    noncomponents = [k for k in candidates if k not in components]
    leftover_rows = [active_rows[i] for i in remaining]

    if n_comp == 0:
        if np.any(b != 0.0):
            raise DegenerateBasisError("No component species for nonzero element abundances")
    else:
        # Element totals must lie in the span of the component columns
        a_comp = atoms[np.ix_(active_rows, components)]
        coef, *_ = np.linalg.lstsq(a_comp, b[active_rows], rcond=None)
        residual = np.abs(a_comp @ coef - b[active_rows])
        bad = residual > threshold * max(float(np.max(np.abs(b))), 1.0) * 1.0e3
        if np.any(bad):
            names = [active_rows[i] for i in np.flatnonzero(bad)]
            raise DegenerateBasisError(
                f"Element abundances of elements {names} cannot be expressed "
                f"by {n_comp} component species"
            )

    formation = None
    if form_rxn:
        formation = np.zeros((len(noncomponents), n_comp), dtype=np.float64)
        if n_comp and noncomponents:
            lu = lu_factor(atoms[np.ix_(pivot_rows, components)])
            rhs = atoms[np.ix_(pivot_rows, noncomponents)]
            formation = lu_solve(lu, rhs).T
            formation[np.abs(formation) < 1.0e-14] = 0.0

    others = [k for k in range(n_spec) if k not in components and k not in noncomponents]
    used_zeroed = any(usable_moles[k] <= 0.0 for k in components)

    logger.debug(
        "Basis: %d components %s, pivot elements %s, zeroed components used: %s",
        n_comp, components, pivot_rows, used_zeroed,
    )

    return BasisResult(
        n_components=n_comp,
        species_order=components + noncomponents + others,
        element_order=pivot_rows + leftover_rows + inactive_rows,
        components=components,
        noncomponents=noncomponents,
        formation_matrix=formation,
        used_zeroed_species=used_zeroed,
        pivot_product=pivot_product,
    )
