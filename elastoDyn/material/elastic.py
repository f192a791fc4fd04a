"""
Isotropic elastic material conversions.

An isotropic linear elastic material is fully described by its density
and two independent elastic constants. Three parameterizations are in use:

    YOUNG:     (rho, E, nu)        Young's modulus and Poisson ratio
    LAME:      (rho, lambda, mu)   Lame parameters
    VELOCITY:  (rho, vp, vs)       compressional and shear wave speeds

Relations:
    lambda = nu*E / ((1 + nu)(1 - 2nu))      mu = E / (2(1 + nu))
    vp = sqrt((lambda + 2mu) / rho)          vs = sqrt(mu / rho)
    x = lambda / mu,  nu = x / (2(1 + x)),   E = 2mu(1 + nu)

Whatever the input parameterization, conversion produces all six
quantities so that downstream code (stiffness kernels, paraxial
conditions) can read the one it needs.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..io.config import ConfigurationError


class ElasticType(Enum):
    """Parameterization used to describe elastic properties."""
    YOUNG = "young"
    LAME = "lame"
    VELOCITY = "vel"

    @classmethod
    def from_string(cls, name: str) -> 'ElasticType':
        """
        Resolve a configuration string to an elastic type.

        Matching is case-insensitive and by substring, so "YoungNu",
        "lame-parameters" or "Velocities" are all accepted.

        Raises:
            ConfigurationError: if no parameterization matches
        """
        lowered = (name or "").lower()
        if "young" in lowered:
            return cls.YOUNG
        if "lame" in lowered:
            return cls.LAME
        if "vel" in lowered:
            return cls.VELOCITY
        raise ConfigurationError(
            f"Type for elastic properties is undefined: {name!r} "
            "(expected one of 'young', 'lame', 'vel')"
        )


@dataclass(frozen=True)
class ElasticProperties:
    """
    Complete set of isotropic elastic properties.

    Attributes:
        rho: Density
        young: Young's modulus E
        nu: Poisson ratio
        lame_lambda: First Lame parameter
        lame_mu: Shear modulus (second Lame parameter)
        vp: Compressional (P) wave speed
        vs: Shear (S) wave speed
    """
    rho: float
    young: float
    nu: float
    lame_lambda: float
    lame_mu: float
    vp: float
    vs: float

    @property
    def bulk_modulus(self) -> float:
        """Bulk modulus K = lambda + 2mu/3."""
        return self.lame_lambda + 2.0 * self.lame_mu / 3.0


def lame_from_young(young: float, nu: float):
    """Lame parameters (lambda, mu) from Young's modulus and Poisson ratio."""
    lame_lambda = nu * young / (1.0 + nu) / (1.0 - 2.0 * nu)
    lame_mu = young / 2.0 / (1.0 + nu)
    return lame_lambda, lame_mu


def young_from_lame(lame_lambda: float, lame_mu: float):
    """Young's modulus and Poisson ratio (E, nu) from Lame parameters."""
    x = lame_lambda / lame_mu
    nu = x / 2.0 / (1.0 + x)
    young = 2.0 * lame_mu * (1.0 + nu)
    return young, nu


def velocities_from_lame(rho: float, lame_lambda: float, lame_mu: float):
    """Wave speeds (vp, vs) from density and Lame parameters."""
    vp = math.sqrt((lame_lambda + 2.0 * lame_mu) / rho)
    vs = math.sqrt(lame_mu / rho)
    return vp, vs


def lame_from_velocities(rho: float, vp: float, vs: float):
    """Lame parameters (lambda, mu) from density and wave speeds."""
    lame_mu = rho * vs * vs
    lame_lambda = rho * vp * vp - 2.0 * lame_mu
    return lame_lambda, lame_mu


def _check_positive(rho: float, lame_lambda: float, lame_mu: float) -> None:
    if rho <= 0.0:
        raise ConfigurationError(f"Density must be positive, got {rho}")
    if lame_mu <= 0.0:
        raise ConfigurationError(f"Shear modulus must be positive, got {lame_mu}")
    if lame_lambda + 2.0 * lame_mu / 3.0 <= 0.0:
        raise ConfigurationError(
            f"Bulk modulus must be positive (lambda={lame_lambda}, mu={lame_mu})"
        )


def convert(elastic_type: ElasticType, rho: float,
            young: Optional[float] = None, nu: Optional[float] = None,
            lame_lambda: Optional[float] = None, lame_mu: Optional[float] = None,
            vp: Optional[float] = None, vs: Optional[float] = None) -> ElasticProperties:
    """
    Build the complete property set from one parameterization.

    Parameters:
        elastic_type: Which pair of constants is authoritative
        rho: Density
        young, nu: Used when elastic_type is YOUNG
        lame_lambda, lame_mu: Used when elastic_type is LAME
        vp, vs: Used when elastic_type is VELOCITY

    Returns:
        ElasticProperties with all six derived quantities

    Raises:
        ConfigurationError: missing inputs for the selected parameterization,
            or non-physical values (rho, mu or bulk modulus not positive)
    """
    if elastic_type is ElasticType.YOUNG:
        if young is None or nu is None:
            raise ConfigurationError("Young parameterization requires 'young' and 'nu'")
        lame_lambda, lame_mu = lame_from_young(young, nu)
        _check_positive(rho, lame_lambda, lame_mu)
        vp, vs = velocities_from_lame(rho, lame_lambda, lame_mu)

    elif elastic_type is ElasticType.LAME:
        if lame_lambda is None or lame_mu is None:
            raise ConfigurationError("Lame parameterization requires 'lambda' and 'mu'")
        _check_positive(rho, lame_lambda, lame_mu)
        vp, vs = velocities_from_lame(rho, lame_lambda, lame_mu)
        young, nu = young_from_lame(lame_lambda, lame_mu)

    elif elastic_type is ElasticType.VELOCITY:
        if vp is None or vs is None:
            raise ConfigurationError("Velocity parameterization requires 'vp' and 'vs'")
        lame_lambda, lame_mu = lame_from_velocities(rho, vp, vs)
        _check_positive(rho, lame_lambda, lame_mu)
        young, nu = young_from_lame(lame_lambda, lame_mu)

    else:
        raise ConfigurationError(f"Type for elastic properties is undefined: {elastic_type!r}")

    return ElasticProperties(
        rho=float(rho), young=float(young), nu=float(nu),
        lame_lambda=float(lame_lambda), lame_mu=float(lame_mu),
        vp=float(vp), vs=float(vs),
    )


def convert_mapping(elastic_type: ElasticType, values: dict) -> ElasticProperties:
    """
    Convert a configuration mapping (as read from YAML) to properties.

    Recognized keys: rho, young/E, nu, lambda, mu, vp, vs.
    """
    def pick(*keys):
        for key in keys:
            if key in values and values[key] is not None:
                return float(values[key])
        return None

    rho = pick("rho")
    if rho is None:
        raise ConfigurationError("Material definition requires a density 'rho'")
    return convert(
        elastic_type, rho,
        young=pick("young", "E"), nu=pick("nu"),
        lame_lambda=pick("lambda", "lame_lambda"), lame_mu=pick("mu", "lame_mu"),
        vp=pick("vp", "cp"), vs=pick("vs", "cs"),
    )
