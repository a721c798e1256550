"""
Multiphase chemical equilibrium by Gibbs free energy minimization.

The fixed (T, P) problem is solved in reaction space. At every step a
component basis is selected from the current composition, and each
noncomponent species k defines a formation reaction

    nu_j = e_k - sum_c R[j, c] e_c

from the components. Moving the composition along any combination of these
vectors conserves every element exactly, so the solver only has to drive the
reaction affinities Δμ_j/RT = nu_j · μ/RT to zero (or keep them non-negative
for species that are absent). Steps are Newton steps on the reaction extents
using an ideal-mixing approximation of the Hessian of G/RT, limited so that
no species becomes negative, and backtracked until G/RT does not increase.

Other fixed pairs (HP, SP, TV, UV, SV) wrap the fixed-(T, P) solve in an
outer damped Newton / bisection iteration on temperature or pressure.

References:
    - Smith, W.R. & Missen, R.W. (1982). "Chemical Reaction Equilibrium
      Analysis: Theory and Algorithms", Ch. 6 (stoichiometric algorithms).
    - Gordon, S. & McBride, B.J. (1994). NASA RP-1311, Section 2.
"""

import logging
import warnings
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray
from scipy.linalg import LinAlgError, LinAlgWarning, lstsq, solve

from .basis import basis_optimize
from .constants import GAS_CONSTANT_KMOL
from .types import (
    BasisResult,
    CalculationError,
    ConvergenceError,
    FixedPair,
    SolverOptions,
    SolverState,
    SolverStatus,
    ValidityRangeWarning,
)

if TYPE_CHECKING:
    from .mixture import MultiPhaseMixture

logger = logging.getLogger(__name__)

# Largest change of ln(P) per outer iteration of a fixed-volume problem
_MAX_LOG_PRESSURE_STEP = np.log(10.0)


class MultiPhaseEquilibrium:
    """
    Equilibrium solver bound to one mixture.

    The solver owns the state machine of a single equilibrate() call and
    writes its SolverState to `mix.solver_state`, so that iteration counts
    and residuals remain available when the call raises.
    """

    def __init__(
        self,
        mix: "MultiPhaseMixture",
        options: SolverOptions | None = None,
        log_level: int = -99,
    ):
        mix.init()
        self.mix = mix
        self.options = options or SolverOptions()
        self.log_level = log_level
        self.state = SolverState()

        n_species = mix.n_species
        self._phase_of = np.array(
            [mix.species_phase_index(k) for k in range(n_species)], dtype=int
        )
        self._stoich = np.array(
            [not mix.solution_species(k) for k in range(n_species)], dtype=bool
        )
        self._warned: set[int] = set()

    # =========================================================================
    # State machine
    # =========================================================================

    def solve(
        self,
        XY: FixedPair | str = FixedPair.TP,
        err: float = 1.0e-9,
        max_steps: int = 1000,
        max_iter: int = 200,
    ) -> float:
        """
        Equilibrate the mixture holding the pair XY fixed.

        Returns:
            Gibbs function of the equilibrium mixture (J)
        """
        pair = FixedPair.parse(XY)
        self.state = SolverState(fixed_pair=pair)
        self.mix.solver_state = self.state

        try:
            if pair is FixedPair.TP:
                self._solve_tp(err, max_steps)
            elif pair is FixedPair.TV:
                self.state.target = self.mix.volume()
                self._solve_tv(self.state.target, err, max_steps, max_iter, track=True)
            else:
                self._solve_temperature(pair, err, max_steps, max_iter)
        except CalculationError as exc:
            self.state.status = SolverStatus.FAILED
            self.state.message = str(exc)
            raise

        self.state.status = SolverStatus.CONVERGED
        gibbs = self.mix.gibbs()
        if self.log_level >= 1:
            logger.info(
                "%s equilibrium: T=%.3f K, P=%.6g Pa, G=%.10g J "
                "(%d outer iterations, %d steps)",
                pair.name, self.mix.temperature, self.mix.pressure, gibbs,
                self.state.outer_iterations, self.state.total_steps,
            )
        return gibbs

    def _fail(self, message: str, iterations: int, residual: float) -> None:
        self.state.status = SolverStatus.FAILED
        self.state.message = message
        raise ConvergenceError(message, iterations, residual, self.state.snapshot())

    # =========================================================================
    # Fixed temperature and pressure
    # =========================================================================

    def _solve_tp(self, err: float, max_steps: int) -> None:
        mix = self.mix
        opts = self.options
        state = self.state
        state.status = SolverStatus.INNER_ITERATING
        state.inner_steps = 0

        frozen = self._frozen_species()
        atoms = np.asarray(mix.atoms)
        n = mix.get_moles()
        n_phases = mix.n_phases
        total = max(float(n[~frozen].sum()), np.finfo(float).tiny)
        vanished = np.zeros(n_phases, dtype=bool)
        emptied = np.zeros(n_phases, dtype=bool)

        for step in range(1, max_steps + 1):
            state.inner_steps = step
            state.total_steps += 1

            excluded = frozen | vanished[self._phase_of]
            basis = basis_optimize(atoms, n, exclude=excluded, threshold=opts.pivot_threshold)
            nu = basis.reaction_vectors(len(n))
            noncomp = np.array(basis.noncomponents, dtype=int)

            mu_rt = self._reduced_potentials(n, excluded)
            mu_rt = self._estimate_empty_phases(n, basis, nu, mu_rt, excluded)
            affinity = nu.T @ mu_rt

            absent = n[noncomp] <= 0.0
            residual = np.where(absent, np.maximum(-affinity, 0.0), np.abs(affinity))
            max_res = float(residual.max()) if residual.size else 0.0
            state.last_residual = max_res

            if self.log_level >= 2:
                logger.debug(
                    "step %d: T=%.3f K, %d components, %d reactions, max |dmu/RT|=%.3e",
                    step, mix.temperature, basis.n_components, len(noncomp), max_res,
                )

            if max_res < err:
                mix.set_moles(n)
                return

            newly_vanished = self._vanishing_phases(
                n, emptied & ~vanished, basis, affinity, err
            )
            if newly_vanished:
                for p in newly_vanished:
                    vanished[p] = True
                    if self.log_level >= 1:
                        logger.info("Phase %d vanished at T=%.3f K", p, mix.temperature)
                continue

            seed = np.flatnonzero(absent & (affinity < -err))
            if seed.size:
                seeded = self._seed(n, nu, seed, excluded, total)
                if seeded is not None:
                    n = seeded
                    continue

            live = ~absent
            before = self._phase_moles(n)
            n = self._newton_step(n, nu[:, live], affinity[live], mu_rt, excluded)
            n = self._drop_empty_phases(n, excluded, total)
            after = self._phase_moles(n)
            emptied |= (before > 0.0) & (after <= 0.0)

        mix.set_moles(n)
        self._fail(
            f"Fixed T,P equilibrium did not converge in {max_steps} steps "
            f"(max |dmu/RT| = {state.last_residual:.3e}, tolerance {err:.1e})",
            max_steps, state.last_residual,
        )

    def _frozen_species(self) -> NDArray[np.bool_]:
        """Species of phases outside their valid range; warns once per phase."""
        mix = self.mix
        frozen = np.zeros(len(self._phase_of), dtype=bool)
        for p in range(mix.n_phases):
            if mix.temp_ok(p):
                continue
            frozen[self._phase_of == p] = True
            if p not in self._warned:
                self._warned.add(p)
                phase = mix.phase(p)
                message = (
                    f"Phase {p} ('{phase.name}') is outside its valid temperature "
                    f"range [{phase.min_temp:g}, {phase.max_temp:g}] K at "
                    f"T = {mix.temperature:g} K; its composition is held fixed"
                )
                logger.warning(message)
                warnings.warn(message, ValidityRangeWarning, stacklevel=4)
        return frozen

    def _phase_moles(self, n: NDArray[np.float64]) -> NDArray[np.float64]:
        return np.bincount(self._phase_of, weights=n, minlength=self.mix.n_phases)

    def _reduced_potentials(
        self, n: NDArray[np.float64], excluded: NDArray[np.bool_]
    ) -> NDArray[np.float64]:
        """Push moles into the phases and return μ/RT (zero for excluded species)."""
        self.mix.set_moles(n)
        RT = GAS_CONSTANT_KMOL * self.mix.temperature
        mu_rt = self.mix.get_chem_potentials() / RT
        return np.where(excluded, 0.0, mu_rt)

    def _gibbs_rt(self, n: NDArray[np.float64], mu_rt: NDArray[np.float64]) -> float:
        return float(np.dot(n, mu_rt))

    def _estimate_empty_phases(
        self,
        n: NDArray[np.float64],
        basis: BasisResult,
        nu: NDArray[np.float64],
        mu_rt: NDArray[np.float64],
        excluded: NDArray[np.bool_],
    ) -> NDArray[np.float64]:
        """
        Give every empty solution phase its most stable trial composition.

        For an ideal phase, x_k ∝ exp(-(μ°_k - Σ_c R_kc μ_c)/RT) makes all its
        species share the same affinity; the phase can form only if that
        common affinity is negative.
        """
        noncomp_index = {k: j for j, k in enumerate(basis.noncomponents)}
        RT = GAS_CONSTANT_KMOL * self.mix.temperature

        for p in range(self.mix.n_phases):
            idx = np.flatnonzero(self._phase_of == p)
            if (
                len(idx) < 2
                or self._stoich[idx[0]]
                or excluded[idx].any()
                or n[idx].sum() > 0.0
                or not all(k in noncomp_index for k in idx)
            ):
                continue
            std_rt = self.mix.phase(p).standard_chem_potentials() / RT
            # sum_c R_kc mu_c / RT for each species k of the phase
            formed_from = np.array([mu_rt[k] - nu[:, noncomp_index[k]] @ mu_rt for k in idx])
            drive = std_rt - formed_from
            self.mix.set_phase_mole_fractions(p, np.exp(-(drive - drive.min())))
            mu_rt = mu_rt.copy()
            mu_rt[idx] = self.mix.phase(p).chem_potentials() / RT
        return mu_rt

    def _vanishing_phases(
        self,
        n: NDArray[np.float64],
        candidates: NDArray[np.bool_],
        basis: BasisResult,
        affinity: NDArray[np.float64],
        err: float,
    ) -> list[int]:
        """Emptied phases none of whose species would form again."""
        phase_moles = self._phase_moles(n)
        noncomp_index = {k: j for j, k in enumerate(basis.noncomponents)}
        result = []
        for p in np.flatnonzero(candidates):
            if phase_moles[p] > 0.0:
                continue
            idx = np.flatnonzero(self._phase_of == p)
            if not all(k in noncomp_index for k in idx):
                continue
            if all(affinity[noncomp_index[k]] >= -err for k in idx):
                result.append(int(p))
        return result

    def _seed(
        self,
        n: NDArray[np.float64],
        nu: NDArray[np.float64],
        reactions: NDArray[np.intp],
        excluded: NDArray[np.bool_],
        total: float,
    ) -> NDArray[np.float64] | None:
        """Create small amounts of absent species whose formation lowers G."""
        dn = np.zeros_like(n)
        share = self.options.seed_fraction / len(reactions)
        for j in reactions:
            consumed = (nu[:, j] < 0.0) & ~excluded
            if consumed.any():
                limit = float(np.min(n[consumed] / -nu[consumed, j]))
            else:
                limit = total
            if limit > 0.0:
                dn += nu[:, j] * (share * limit)
        if not dn.any():
            return None
        return np.maximum(n + dn, 0.0)

    def _newton_step(
        self,
        n: NDArray[np.float64],
        V: NDArray[np.float64],
        affinity: NDArray[np.float64],
        mu_rt: NDArray[np.float64],
        excluded: NDArray[np.bool_],
    ) -> NDArray[np.float64]:
        """One damped Newton step in the extents of the live reactions."""
        opts = self.options
        n_rxn = V.shape[1]
        if n_rxn == 0:
            return n

        # Ideal-mixing Hessian of G/RT: 1/n_k - 1/N_phase for solution species
        solution = (n > 0.0) & ~self._stoich & ~excluded
        hdiag = np.zeros_like(n)
        hdiag[solution] = 1.0 / n[solution]
        M = (V.T * hdiag) @ V
        phase_moles = self._phase_moles(np.where(solution, n, 0.0))
        for p in np.flatnonzero(phase_moles > 0.0):
            s = V[self._phase_of == p].sum(axis=0)
            M -= np.outer(s, s) / phase_moles[p]
        diag = np.abs(np.diag(M))
        M[np.diag_indices_from(M)] += opts.regularization * np.maximum(diag, 1.0)

        # Reactions that would push an absent species negative are held back
        active = np.ones(n_rxn, dtype=bool)
        xi = np.zeros(n_rxn)
        dn = np.zeros_like(n)
        while active.any():
            xi = np.zeros(n_rxn)
            xi[active] = self._solve_linear(M[np.ix_(active, active)], -affinity[active])
            dn = V @ xi
            blocked = (n <= 0.0) & (dn < 0.0) & ~excluded
            if not blocked.any():
                break
            drop = np.any(V[blocked] * xi < 0.0, axis=0) & active
            if not drop.any():
                break
            active &= ~drop
        if not active.any():
            return n

        # Step limits: solution species keep a fraction of their amount,
        # stoichiometric species may be consumed exactly
        alpha = 1.0
        decreasing = (dn < 0.0) & (n > 0.0) & ~excluded
        sol = decreasing & ~self._stoich
        if sol.any():
            alpha = min(alpha, opts.boundary_fraction * float(np.min(n[sol] / -dn[sol])))
        hit_zero = np.zeros(len(n), dtype=bool)
        sto = np.flatnonzero(decreasing & self._stoich)
        if sto.size:
            ratios = n[sto] / -dn[sto]
            bound = float(ratios.min())
            if bound <= alpha:
                alpha = bound
                hit_zero[sto[ratios <= bound * (1.0 + 1.0e-12)]] = True

        g0 = self._gibbs_rt(n, mu_rt)
        trial = n
        for _ in range(opts.max_halvings + 1):
            trial = n + alpha * dn
            trial[hit_zero] = 0.0
            trial = np.maximum(trial, 0.0)
            g1 = self._gibbs_rt(trial, self._reduced_potentials(trial, excluded))
            if np.isfinite(g1) and g1 <= g0 + opts.gibbs_rtol * max(abs(g0), 1.0):
                return trial
            alpha *= 0.5
            hit_zero[:] = False

        if self.log_level >= 2:
            logger.debug("Line search did not reduce G/RT; taking the shortest step")
        return trial

    @staticmethod
    def _solve_linear(M: NDArray[np.float64], rhs: NDArray[np.float64]) -> NDArray[np.float64]:
        # Trace species make M near-singular; non-finite results fall back to lstsq
        try:
            with warnings.catch_warnings():
                warnings.simplefilter("ignore", LinAlgWarning)
                x = solve(M, rhs, assume_a="sym")
            if np.all(np.isfinite(x)):
                return x
        except LinAlgError:
            pass
        x, *_ = lstsq(M, rhs)
        return x

    def _drop_empty_phases(
        self, n: NDArray[np.float64], excluded: NDArray[np.bool_], total: float
    ) -> NDArray[np.float64]:
        """Zero out solution phases whose amount has become negligible."""
        phase_moles = self._phase_moles(n)
        threshold = self.options.vanish_threshold * total
        for p in np.flatnonzero((phase_moles > 0.0) & (phase_moles < threshold)):
            mask = self._phase_of == p
            if self._stoich[mask].any() or excluded[mask].any():
                continue
            n = n.copy()
            n[mask] = 0.0
        return n

    # =========================================================================
    # Outer iterations
    # =========================================================================

    def _scale(self, pair: FixedPair, target: float) -> float:
        total = float(self.mix.get_moles().sum())
        if pair in (FixedPair.SP, FixedPair.SV):
            return max(abs(target), total * GAS_CONSTANT_KMOL)
        return max(abs(target), total * GAS_CONSTANT_KMOL * self.mix.temperature)

    def _solve_temperature(
        self, pair: FixedPair, err: float, max_steps: int, max_iter: int
    ) -> None:
        """Vary T until the held property (H, S or U) returns to its initial value."""
        mix = self.mix
        opts = self.options
        state = self.state

        prop = {
            FixedPair.HP: mix.enthalpy,
            FixedPair.SP: mix.entropy,
            FixedPair.UV: mix.int_energy,
            FixedPair.SV: mix.entropy,
        }[pair]
        per_kelvin = pair in (FixedPair.SP, FixedPair.SV)
        fixed_volume = pair in (FixedPair.UV, FixedPair.SV)

        target = prop()
        volume = mix.volume() if fixed_volume else 0.0
        state.target = target

        t_min = max(opts.min_temperature, mix.min_temp)
        t_max = min(opts.max_temperature, mix.max_temp)
        lo: float | None = None
        hi: float | None = None
        previous: tuple[float, float] | None = None
        T = min(max(mix.temperature, t_min), t_max)

        for iteration in range(1, max_iter + 1):
            state.outer_iterations = iteration
            state.status = SolverStatus.OUTER_ITERATING
            mix.temperature = T
            if fixed_volume:
                self._solve_tv(volume, err, max_steps, max_iter)
            else:
                self._solve_tp(err, max_steps)
            state.status = SolverStatus.OUTER_ITERATING

            resid = prop() - target
            state.last_outer_residual = resid
            if self.log_level >= 1:
                logger.info(
                    "%s iteration %d: T=%.4f K, residual=%.6e",
                    pair.name, iteration, T, resid,
                )
            if abs(resid) <= err * self._scale(pair, target):
                return

            # H, U and S all increase with temperature
            if resid > 0.0:
                hi = T if hi is None else min(hi, T)
            else:
                lo = T if lo is None else max(lo, T)
            if lo is not None and hi is not None and hi - lo <= err * T:
                return

            slope = mix.cp() / T if per_kelvin else mix.cp()
            if previous is not None and previous[0] != T:
                secant = (resid - previous[1]) / (T - previous[0])
                if secant > 0.0:
                    slope = secant
            previous = (T, resid)

            if slope > 0.0:
                dT = -resid / slope
            else:
                dT = -np.sign(resid) * opts.max_temperature_step
            dT = float(np.clip(dT, -opts.max_temperature_step, opts.max_temperature_step))

            T_new = T + dT
            if lo is not None and hi is not None and not lo < T_new < hi:
                T_new = 0.5 * (lo + hi)
            T_new = min(max(T_new, t_min), t_max)
            if T_new == T:
                self._fail(
                    f"{pair.name} target cannot be reached within [{t_min:g}, {t_max:g}] K",
                    iteration, resid,
                )
            T = T_new

        self._fail(
            f"{pair.name} equilibrium did not converge in {max_iter} outer iterations "
            f"(residual {state.last_outer_residual:.3e})",
            max_iter, state.last_outer_residual,
        )

    def _solve_tv(
        self,
        volume: float,
        err: float,
        max_steps: int,
        max_iter: int,
        track: bool = False,
    ) -> None:
        """Vary P at fixed T until the mixture volume equals `volume`."""
        mix = self.mix
        state = self.state
        lo: float | None = None
        hi: float | None = None
        P = mix.pressure
        resid = float("inf")

        for iteration in range(1, max_iter + 1):
            if track:
                state.outer_iterations = iteration
                state.status = SolverStatus.OUTER_ITERATING
            mix.pressure = P
            self._solve_tp(err, max_steps)

            v = mix.volume()
            resid = v - volume
            if track:
                state.status = SolverStatus.OUTER_ITERATING
                state.last_outer_residual = resid
            if self.log_level >= 1:
                logger.info(
                    "TV iteration %d: P=%.6g Pa, V=%.6g m3, residual=%.6e",
                    iteration, P, v, resid,
                )
            if abs(resid) <= err * abs(volume):
                return
            if v <= 0.0:
                self._fail("Mixture volume is not positive", iteration, resid)

            # Volume decreases with pressure; ideal-gas Newton step in ln(P)
            ln_p = np.log(P)
            if v > volume:
                lo = ln_p
            else:
                hi = ln_p
            if lo is not None and hi is not None and hi - lo <= err:
                return
            step = float(np.clip(np.log(v / volume), -_MAX_LOG_PRESSURE_STEP, _MAX_LOG_PRESSURE_STEP))
            ln_new = ln_p + step
            if lo is not None and hi is not None and not lo < ln_new < hi:
                ln_new = 0.5 * (lo + hi)
            P = float(np.exp(ln_new))

        self._fail(
            f"TV equilibrium did not converge in {max_iter} iterations",
            max_iter, resid,
        )


def equilibrate(
    mix: "MultiPhaseMixture",
    XY: FixedPair | str = FixedPair.TP,
    err: float = 1.0e-9,
    max_steps: int = 1000,
    max_iter: int = 200,
    log_level: int = -99,
    options: SolverOptions | None = None,
) -> float:
    """
    Equilibrate a mixture holding two state variables fixed.

    Args:
        mix: Mixture to equilibrate; updated in place
        XY: Fixed pair ("TP", "TV", "HP", "SP", "UV", "SV")
        err: Tolerance on Δμ/RT and relative tolerance of the outer loop
        max_steps: Step budget of each fixed-TP solve
        max_iter: Outer iteration budget
        log_level: Diagnostic detail of the log output
        options: Numerical knobs

    Returns:
        Gibbs function of the equilibrium mixture (J)
    """
    solver = MultiPhaseEquilibrium(mix, options=options, log_level=log_level)
    return solver.solve(XY, err, max_steps, max_iter)
