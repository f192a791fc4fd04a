"""
Newmark-beta time integration.

The step unknown is the displacement at t_{n+1}. Given the converged
fields (d_n, v_n, a_n) of the previous step, the predictors are

    u_pred = d_n + dt v_n + dt^2 (0.5 - beta) a_n
    v_pred = v_n + dt (1 - gamma) a_n

and once d_{n+1} is solved

    a_{n+1} = (d_{n+1} - u_pred) / (beta dt^2)
    v_{n+1} = v_pred + gamma dt a_{n+1}

Axes with an imposed acceleration keep it and take the displacement
d_{n+1} = u_pred + beta dt^2 a_{n+1}; axes with an imposed velocity keep it.

The effective operator is c_m M + c_k K with c_m = (1 - alpha_m)/(beta dt^2)
and c_k = 1 - alpha_f, and paraxial faces use

    c1 = (1 - alpha_f) gamma / (beta dt)
    c2 = dt (1 - alpha_f) (gamma / (2 beta) - 1)
    c3 = (1 - alpha_f) gamma / beta - 1

The generalized-alpha update (alpha_m, alpha_f shifting the equilibrium
time) is not available; requesting it raises NotImplementedError.
"""

import logging
from dataclasses import dataclass

import numpy as np

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NewmarkCoefficients:
    """Step-size dependent coefficients of the discrete equations."""
    cm: float
    ck: float
    c0: float
    c1: float
    c2: float
    c3: float


@dataclass(frozen=True)
class NewmarkParameters:
    """
    Newmark family parameters.

    Attributes:
        beta: Displacement weight, 0 < beta <= 0.5
        gamma: Velocity weight
        alpha_m, alpha_f: Generalized-alpha weights (plain Newmark when 0)
        alpha_method: True when the generalized-alpha update is requested
    """
    beta: float = 0.25
    gamma: float = 0.5
    alpha_m: float = 0.0
    alpha_f: float = 0.0
    alpha_method: bool = False

    def coefficients(self, dt: float) -> NewmarkCoefficients:
        c0 = 1.0 - self.alpha_f
        cgb = self.gamma / self.beta
        return NewmarkCoefficients(
            cm=(1.0 - self.alpha_m) / self.beta / (dt * dt),
            ck=1.0 - self.alpha_f,
            c0=c0,
            c1=c0 * cgb / dt,
            c2=dt * c0 * (cgb / 2.0 - 1.0),
            c3=c0 * cgb - 1.0,
        )

    @classmethod
    def from_config(cls, newmark, alpha_method) -> 'NewmarkParameters':
        """
        Parameters from the newmark and alpha-method configuration sections.

        Without the alpha method, alpha_m and alpha_f are set to zero.
        """
        if not alpha_method.enabled:
            if alpha_method.alpha_m != 0.0 or alpha_method.alpha_f != 0.0:
                logger.warning("alpha-m and alpha-f are ignored when alpha-method is disabled")
            return cls(beta=newmark.beta, gamma=newmark.gamma)
        return cls(beta=newmark.beta, gamma=newmark.gamma,
                   alpha_m=alpha_method.alpha_m, alpha_f=alpha_method.alpha_f,
                   alpha_method=True)

    def predict_displacement(self, d, v, a, dt: float):
        return d + dt * v + dt * dt * (0.5 - self.beta) * a

    def predict_velocity(self, v, a, dt: float):
        return v + dt * (1.0 - self.gamma) * a


class NewmarkIntegrator:
    """
    Nodal update of accelerations and velocities after a displacement solve.

    Attributes:
        params: Newmark parameters
        n_dim: Number of active axes
    """

    def __init__(self, params: NewmarkParameters, n_dim: int):
        if params.alpha_method:
            raise NotImplementedError(
                "Generalized-alpha time integration is not implemented; "
                "disable alpha-method to use the Newmark-beta update"
            )
        self.params = params
        self.n_dim = n_dim

    def update(self, fields, dt: float) -> None:
        """
        Update the current fields in place and carry them forward.

        Parameters:
            fields: NodalFields holding the solved displacement, imposed
                kinematics and previous-step values
            dt: Step size used for the solve
        """
        nd = self.n_dim
        beta, gamma = self.params.beta, self.params.gamma
        dn = fields.prev_displacement[:, :nd]
        vn = fields.prev_velocity[:, :nd]
        an = fields.prev_acceleration[:, :nd]

        u_pred = self.params.predict_displacement(dn, vn, an, dt)
        v_pred = self.params.predict_velocity(vn, an, dt)

        ba = fields.imposed_acceleration[:, :nd]
        bv = fields.imposed_velocity[:, :nd]

        acc = fields.acceleration[:, :nd]
        displ = fields.displacement[:, :nd]
        acc[...] = np.where(ba, acc, (displ - u_pred) / (beta * dt * dt))
        displ[...] = np.where(ba, u_pred + beta * dt * dt * acc, displ)

        vel = fields.velocity[:, :nd]
        vel[...] = np.where(bv, vel, v_pred + dt * gamma * acc)

        fields.carry_forward()
