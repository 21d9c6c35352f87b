"""
Orbital mechanics for the TRAPPIST-1 planets.

Positions come from Keplerian ellipses: mean anomaly grows linearly with
simulated time, Kepler's equation is solved for the eccentric anomaly with
Newton-Raphson, and the result is converted to a true anomaly and radius.
All planets are advanced together as numpy arrays once per tick.
"""

import math
from typing import Dict, List, Optional, Tuple

import numpy as np

from trappist_swarm.config import Config


# Physical constants
AU_IN_KM = Config.AU_IN_KM
TWO_PI = 2 * math.pi
GAME_SECONDS_PER_DAY = Config.TICKS_PER_DAY  # one tick per game-second


class KeplerConvergenceError(ArithmeticError):
    """Raised when Newton-Raphson fails to reach tolerance inside the cap."""

    def __init__(self, mean_anomaly: float, eccentricity: float, correction: float):
        self.mean_anomaly = mean_anomaly
        self.eccentricity = eccentricity
        self.correction = correction
        super().__init__(
            f"Kepler solver did not converge for M={mean_anomaly:.6f}, "
            f"e={eccentricity:.6f} (last correction {correction:.3e})"
        )


class OrbitalSolver:
    """
    Computes planet positions on Keplerian orbits.

    Times are in ticks (game-seconds), periods in Earth days, distances in
    AU on input and kilometres on output.
    """

    def __init__(self, max_iterations: int = Config.KEPLER_MAX_ITERATIONS,
                 tolerance: float = Config.KEPLER_TOLERANCE):
        """
        Initialize the solver.

        Args:
            max_iterations: Newton-Raphson iteration cap
            tolerance: Correction size below which E is considered converged
        """
        self.max_iterations = max_iterations
        self.tolerance = tolerance

    def solve_kepler_detailed(self, mean_anomaly: float,
                              eccentricity: float) -> Tuple[float, int, float]:
        """
        Solve M = E - e·sin(E) for the eccentric anomaly E.

        Args:
            mean_anomaly: Mean anomaly in radians
            eccentricity: Orbital eccentricity (0 <= e < 1)

        Returns:
            (E, iterations used, size of the last correction)

        Raises:
            KeplerConvergenceError: if the correction is still above tolerance
                after the iteration cap
        """
        if eccentricity == 0:
            return mean_anomaly, 0, 0.0

        E = mean_anomaly
        correction = math.inf
        for iteration in range(1, self.max_iterations + 1):
            correction = (mean_anomaly - E + eccentricity * math.sin(E)) / \
                (1 - eccentricity * math.cos(E))
            E += correction
            if abs(correction) < self.tolerance:
                return E, iteration, abs(correction)

        raise KeplerConvergenceError(mean_anomaly, eccentricity, abs(correction))

    def solve_kepler(self, mean_anomaly: float, eccentricity: float) -> float:
        """Solve Kepler's equation, returning only the eccentric anomaly."""
        return self.solve_kepler_detailed(mean_anomaly, eccentricity)[0]

    def solve_kepler_batch(self, mean_anomalies: np.ndarray,
                           eccentricities: np.ndarray) -> np.ndarray:
        """
        Vectorized Kepler solve for several orbits at once.

        Args:
            mean_anomalies: Array of mean anomalies (radians)
            eccentricities: Array of eccentricities, same shape

        Returns:
            Array of eccentric anomalies
        """
        M = np.asarray(mean_anomalies, dtype=float)
        e = np.asarray(eccentricities, dtype=float)
        E = M.copy()
        correction = np.zeros_like(M)

        for _ in range(self.max_iterations):
            correction = (M - E + e * np.sin(E)) / (1 - e * np.cos(E))
            E = E + correction
            if np.all(np.abs(correction) < self.tolerance):
                return E

        worst = int(np.argmax(np.abs(correction)))
        raise KeplerConvergenceError(float(M.flat[worst]), float(e.flat[worst]),
                                     float(np.abs(correction).flat[worst]))

    @staticmethod
    def eccentric_to_true_anomaly(E, eccentricity):
        """Convert eccentric anomaly to true anomaly (half-angle form)."""
        return 2 * np.arctan2(np.sqrt(1 + eccentricity) * np.sin(E / 2),
                              np.sqrt(1 - eccentricity) * np.cos(E / 2))

    @staticmethod
    def mean_anomaly(initial_angle_rad, orbital_period_days, game_time):
        """Mean anomaly at a game time, wrapped into [0, 2π)."""
        period_seconds = np.asarray(orbital_period_days, dtype=float) * GAME_SECONDS_PER_DAY
        safe_period = np.where(period_seconds > 0, period_seconds, 1.0)
        M = np.asarray(initial_angle_rad, dtype=float) + TWO_PI * game_time / safe_period
        return np.mod(M, TWO_PI), period_seconds > 0

    @staticmethod
    def orbital_radius(semi_major_axis, eccentricity, true_anomaly):
        """r = a(1 - e²) / (1 + e·cos θ)."""
        return semi_major_axis * (1 - eccentricity ** 2) / (1 + eccentricity * np.cos(true_anomaly))

    def true_anomaly(self, initial_angle_rad: float, orbital_period_days: float,
                     eccentricity: float, game_time: float) -> float:
        """
        True anomaly at a game time for a single orbit.

        A non-positive period pins the planet at its initial angle.
        """
        if orbital_period_days <= 0:
            return initial_angle_rad

        M = (initial_angle_rad + TWO_PI * game_time /
             (orbital_period_days * GAME_SECONDS_PER_DAY)) % TWO_PI
        if eccentricity == 0:
            return M

        E = self.solve_kepler(M, eccentricity)
        return float(self.eccentric_to_true_anomaly(E, eccentricity))

    def get_planet_position(self, distance_au: float, orbital_period_days: float,
                            eccentricity: float, initial_angle_rad: float,
                            game_time: float) -> Tuple[float, float]:
        """
        Calculate a planet position at a given game time.

        Args:
            distance_au: Semi-major axis in AU
            orbital_period_days: Orbital period in Earth days
            eccentricity: Orbital eccentricity
            initial_angle_rad: Phase angle at game time 0
            game_time: Game time in ticks

        Returns:
            (x, y) position in km
        """
        theta = self.true_anomaly(initial_angle_rad, orbital_period_days, eccentricity, game_time)
        r = float(self.orbital_radius(distance_au * AU_IN_KM, eccentricity, theta))
        return (r * math.cos(theta), r * math.sin(theta))

    def update_planet_positions(self, planets: List[Dict], game_time: float) -> None:
        """
        Move every planet to its position at game_time, in place.

        Args:
            planets: Planet records with distance_au, orbital_period,
                eccentricity and initial_angle_rad
            game_time: Game time in ticks
        """
        if not planets:
            return

        a = np.array([p['distance_au'] for p in planets], dtype=float) * AU_IN_KM
        e = np.array([p['eccentricity'] for p in planets], dtype=float)
        initial = np.array([p['initial_angle_rad'] for p in planets], dtype=float)
        periods = np.array([p['orbital_period'] for p in planets], dtype=float)

        M, moving = self.mean_anomaly(initial, periods, game_time)
        E = self.solve_kepler_batch(M, e)
        theta = np.where(e == 0, M, self.eccentric_to_true_anomaly(E, e))
        theta = np.where(moving, theta, initial)
        r = self.orbital_radius(a, e, theta)

        xs = r * np.cos(theta)
        ys = r * np.sin(theta)
        for planet, x, y in zip(planets, xs, ys):
            planet['x'] = float(x)
            planet['y'] = float(y)


# Singleton instance
_solver_instance: Optional[OrbitalSolver] = None


def get_orbital_solver() -> OrbitalSolver:
    """Get or create the orbital solver singleton."""
    global _solver_instance
    if _solver_instance is None:
        _solver_instance = OrbitalSolver()
    return _solver_instance


def update_planet_positions(planets: List[Dict], game_time: float) -> None:
    """Advance all planet positions to game_time using the shared solver."""
    get_orbital_solver().update_planet_positions(planets, game_time)
