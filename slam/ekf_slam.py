# ================================
# file: slam/ekf_slam.py
# ================================
"""
EKF-SLAM over robot pose and 2D point landmarks.

State vector: [x, y, theta, l1x, l1y, l2x, l2y, ...]
Measurements are landmark positions in the robot body frame:

    z = R(theta)^T (l - p)

Mean and covariance live in growable buffers (capacity doubles on demand);
landmark j always occupies rows 3+2j and 3+2j+1, so j is a stable handle.
"""
from __future__ import annotations
from typing import Tuple, Optional, Sequence, List
import math
import numpy as np
from scipy.linalg import cho_factor, cho_solve

from core.types import Pose2D
from core.config import SlamConfig
from core.geometry import wrap_angle

UPDATED = "updated"
AUGMENTED = "augmented"
IGNORED = "ignored"


class EkfSlam:
    """Extended Kalman filter SLAM with Mahalanobis gating.

    Usage:
        ekf = EkfSlam()
        ekf.reset(Pose2D(0, 0, 0))
        ekf.propagate((v, w), Q, dt)
        ekf.augment_or_update([z1, z2], R)
    """

    def __init__(self, config: Optional[SlamConfig] = None,
                 logger_func=None, log_file=None) -> None:
        self.cfg = config or SlamConfig()
        if not 0.0 < self.cfg.update_gate <= self.cfg.augment_gate:
            raise ValueError(f"need 0 < update_gate <= augment_gate, got "
                             f"{self.cfg.update_gate}, {self.cfg.augment_gate}")
        self.logger_func = logger_func
        self.log_file = log_file
        self._n = 3
        self._mu = np.zeros(0)
        self._P = np.zeros((0, 0))
        self._allocate(3 + 2 * max(1, int(self.cfg.initial_capacity)))
        self.reset(Pose2D(0.0, 0.0, 0.0))

    def _log_debug(self, message: str) -> None:
        if self.logger_func and self.log_file:
            self.logger_func(self.log_file, message, "EKF")

    # ---------- buffers ----------
    def _allocate(self, capacity: int) -> None:
        mu = np.zeros(capacity)
        P = np.zeros((capacity, capacity))
        n = self._n
        if len(self._mu):
            mu[:n] = self._mu[:n]
            P[:n, :n] = self._P[:n, :n]
        self._mu = mu
        self._P = P

    def _reserve(self, n: int) -> None:
        cap = len(self._mu)
        if n <= cap:
            return
        lm_cap = max(1, (cap - 3) // 2)
        while 3 + 2 * lm_cap < n:
            lm_cap *= 2
        cap = 3 + 2 * lm_cap
        self._allocate(cap)
        self._log_debug(f"State buffer grown to capacity {cap}")

    @property
    def capacity(self) -> int:
        """Landmarks that fit before the next reallocation."""
        return (len(self._mu) - 3) // 2

    @property
    def _mean(self) -> np.ndarray:
        return self._mu[:self._n]

    @property
    def _cov(self) -> np.ndarray:
        return self._P[:self._n, :self._n]

    # ---------- public state ----------
    def reset(self, initial_pose: Pose2D, initial_covariance: Optional[np.ndarray] = None) -> None:
        self._n = 3
        self._mu[:] = 0.0
        self._P[:] = 0.0
        self._mu[:3] = (initial_pose.x, initial_pose.y, wrap_angle(initial_pose.theta))
        if initial_covariance is not None:
            C = np.asarray(initial_covariance, dtype=float)
            if C.shape != (3, 3):
                raise ValueError(f"initial covariance must be 3x3, got {C.shape}")
            self._P[:3, :3] = C
        self._check_covariance()

    @property
    def n_landmarks(self) -> int:
        return (self._n - 3) // 2

    @property
    def pose(self) -> Pose2D:
        x, y, th = self._mu[:3]
        return Pose2D(x, y, th)

    @property
    def pose_covariance(self) -> np.ndarray:
        return self._P[:3, :3].copy()

    @property
    def landmarks(self) -> np.ndarray:
        """(L, 2) landmark means."""
        return self._mu[3:self._n].reshape(-1, 2).copy()

    def landmark_covariance(self, j: int) -> np.ndarray:
        if not 0 <= j < self.n_landmarks:
            raise IndexError(f"landmark {j} out of range (L={self.n_landmarks})")
        i = 3 + 2 * j
        return self._P[i:i + 2, i:i + 2].copy()

    @property
    def mean(self) -> np.ndarray:
        return self._mean.copy()

    @property
    def covariance(self) -> np.ndarray:
        return self._cov.copy()

    # ---------- contract checks ----------
    def _check_covariance(self) -> None:
        P = self._cov
        d = np.diag(P)
        tol = self.cfg.symmetry_tol * max(1.0, float(np.max(np.abs(P))) if P.size else 1.0)
        assert np.all(np.isfinite(P)), "covariance has non-finite entries"
        assert np.all(d >= -tol), f"covariance has negative variance: {d.min()}"
        assert np.allclose(P, P.T, atol=tol), "covariance is not symmetric"

    # ---------- propagation ----------
    def propagate(self, control: Tuple[float, float], process_cov: np.ndarray, dt: float) -> None:
        """Euler unicycle prediction.

        Parameters
        ----------
        control : (v, w) commanded linear and angular velocity
        process_cov : 2x2 covariance of the control noise
        dt : elapsed time (s); dt <= 0 leaves the state unchanged
        """
        if dt <= 0.0:
            return
        v, w = float(control[0]), float(control[1])
        Q = np.asarray(process_cov, dtype=float).reshape(2, 2)
        n = self._n
        mu = self._mu
        P = self._P
        th = mu[2]
        c, s = math.cos(th), math.sin(th)

        F = np.array([[1.0, 0.0, -v * s * dt],
                      [0.0, 1.0,  v * c * dt],
                      [0.0, 0.0,  1.0]])
        G = np.array([[c * dt, 0.0],
                      [s * dt, 0.0],
                      [0.0,    dt]])

        mu[0] += v * c * dt
        mu[1] += v * s * dt
        mu[2] = wrap_angle(th + w * dt)

        P[:3, :3] = F @ P[:3, :3] @ F.T + G @ Q @ G.T
        if n > 3:
            P[:3, 3:n] = F @ P[:3, 3:n]
            P[3:n, :3] = P[:3, 3:n].T
        P[:3, :3] = 0.5 * (P[:3, :3] + P[:3, :3].T)
        self._check_covariance()

    # ---------- measurement model ----------
    def _predict_measurement(self, j: int) -> Tuple[np.ndarray, np.ndarray]:
        """Expected body-frame position of landmark j and its 2xn Jacobian."""
        n = self._n
        mu = self._mu
        c, s = math.cos(mu[2]), math.sin(mu[2])
        i = 3 + 2 * j
        d = mu[i:i + 2] - mu[:2]
        Rt = np.array([[c, s], [-s, c]])
        dRt = np.array([[-s, c], [-c, -s]])
        H = np.zeros((2, n))
        H[:, :2] = -Rt
        H[:, 2] = dRt @ d
        H[:, i:i + 2] = Rt
        return Rt @ d, H

    def mahalanobis_sq(self, z: np.ndarray, meas_cov: np.ndarray, j: int) -> float:
        h, H = self._predict_measurement(j)
        S = H @ self._cov @ H.T + meas_cov
        nu = z - h
        return float(nu @ cho_solve(cho_factor(S), nu))

    # ---------- update / augmentation ----------
    def augment_or_update(self, measurements: Sequence[Sequence[float]],
                          measurement_covs) -> List[Tuple[str, Optional[int]]]:
        """Associate each body-frame measurement and fold it into the filter.

        Measurements are processed in order. For each, the tracked landmark
        with the smallest Mahalanobis distance is updated if it lies inside
        ``update_gate``; if every tracked landmark lies beyond
        ``augment_gate`` the measurement becomes a new landmark; otherwise
        it is ambiguous and ignored.

        Args:
            measurements: sequence of (zx, zy) in the robot frame
            measurement_covs: one 2x2 covariance for all, or one per measurement

        Returns:
            list of (outcome, landmark index) with outcome in
            {"updated", "augmented", "ignored"}
        """
        covs = np.asarray(measurement_covs, dtype=float)
        zs = [np.asarray(z, dtype=float).reshape(2) for z in measurements]
        if covs.ndim == 2:
            covs = np.broadcast_to(covs.reshape(2, 2), (len(zs), 2, 2))
        elif covs.shape != (len(zs), 2, 2):
            raise ValueError(f"expected {len(zs)} 2x2 covariances, got shape {covs.shape}")

        results: List[Tuple[str, Optional[int]]] = []
        for z, Rm in zip(zs, covs):
            best_j, best_d2 = None, math.inf
            for j in range(self.n_landmarks):
                d2 = self.mahalanobis_sq(z, Rm, j)
                if d2 < best_d2:
                    best_j, best_d2 = j, d2
            if best_j is not None and best_d2 < self.cfg.update_gate:
                self._update(z, Rm, best_j)
                results.append((UPDATED, best_j))
            elif best_j is None or best_d2 > self.cfg.augment_gate:
                results.append((AUGMENTED, self._augment(z, Rm)))
            else:
                results.append((IGNORED, None))
        return results

    def _update(self, z: np.ndarray, Rm: np.ndarray, j: int) -> None:
        n = self._n
        P = self._cov
        h, H = self._predict_measurement(j)
        S = H @ P @ H.T + Rm
        PHt = P @ H.T
        K = cho_solve(cho_factor(S), PHt.T).T
        self._mu[:n] += K @ (z - h)
        self._mu[2] = wrap_angle(self._mu[2])
        I_KH = np.eye(n) - K @ H
        P_new = I_KH @ P @ I_KH.T + K @ Rm @ K.T
        self._P[:n, :n] = 0.5 * (P_new + P_new.T)
        self._check_covariance()

    def _augment(self, z: np.ndarray, Rm: np.ndarray) -> int:
        n = self._n
        self._reserve(n + 2)
        mu = self._mu
        P = self._P
        c, s = math.cos(mu[2]), math.sin(mu[2])
        R = np.array([[c, -s], [s, c]])
        dR = np.array([[-s, -c], [c, -s]])
        J_pose = np.zeros((2, 3))
        J_pose[:, :2] = np.eye(2)
        J_pose[:, 2] = dR @ z

        mu[n:n + 2] = mu[:2] + R @ z
        cross = J_pose @ P[:3, :n]                       # 2 x n
        P[n:n + 2, :n] = cross
        P[:n, n:n + 2] = cross.T
        P_ll = J_pose @ P[:3, :3] @ J_pose.T + R @ Rm @ R.T
        P[n:n + 2, n:n + 2] = 0.5 * (P_ll + P_ll.T)
        self._n = n + 2
        self._check_covariance()
        j = self.n_landmarks - 1
        self._log_debug(f"New landmark #{j} at ({mu[n]:.1f}, {mu[n + 1]:.1f})")
        return j
