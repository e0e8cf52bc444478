"""
collection of functions for monte carlo on the unit sphere
"""
import numpy as np
import math
from scipy.spatial.transform import Rotation
from sphereqmc.math import cartesian_to_spherical

def rand_theta_phi(n_samples, rng=None):
    """
    n_samples points distributed uniformly on the unit sphere

    a 3d gaussian vector has no preferred direction,
    so normalizing it gives a uniform point

    returns:
        theta (array): polar angles in [0, pi]
        phi (array): azimuthal angles in [-pi, pi]
    """
    if rng is None:
        rng = np.random.default_rng()
    x = rng.standard_normal((n_samples, 3))
    return cartesian_to_spherical(x)

def proposal(theta, phi, sigma, rng=None):
    """
    propose a new position for a particle at (theta, phi)

    the step is built around the north pole first:
    a gaussian step of size sigma away from the pole,
    in a uniformly random direction.
    the rotation by theta about (-sin(phi), cos(phi), 0) carries the pole
    onto (theta, phi), and it is applied to the step
    so the proposal does not depend on where the particle is

    this is the quaternion exp(axis*theta/2) acting on the step,
    left to scipy

    returns the new (theta, phi)
    """
    if rng is None:
        rng = np.random.default_rng()
    dtheta = rng.standard_normal()*sigma
    dphi = rng.random()*2*np.pi - np.pi
    step = np.array([math.sin(dtheta)*math.cos(dphi),\
            math.sin(dtheta)*math.sin(dphi), math.cos(dtheta)])
    axis = np.array([-math.sin(phi), math.cos(phi), 0.0])
    moved = Rotation.from_rotvec(theta*axis).apply(step)
    theta_new, phi_new = cartesian_to_spherical(moved)
    return float(theta_new), float(phi_new)

def acceptance_probability(ratio):
    """
    metropolis acceptance for a move changing the wavefunction by ratio
    i.e. min(1, |psi_new / psi_old|^2)
    """
    return min(1.0, abs(ratio)**2)

def metropolis_accept(ratio, rng=None):
    """
    returns True if the move should be accepted
    """
    if rng is None:
        rng = np.random.default_rng()
    return rng.random() < acceptance_probability(ratio)

def arm_parameters(ideal_acceptance_ratio, r, n_iterations=1000):
    """
    parameters a, b for the ARM scheme, which adapts the step size
    so that the acceptance ratio stays near ideal_acceptance_ratio

    r is the exponent of the scheme, found by iterating
    to a fixed point starting from a = 1, b = 0
    """
    a = 1.0
    b = 0.0
    for i in range(n_iterations):
        c = (a*ideal_acceptance_ratio + b)**r
        a = (a*ideal_acceptance_ratio + b)**(1/r) - c
        b = c
    return a, b

def arm_scale_factor(p, p_i, a, b):
    """
    factor to multiply the step size by, given the measured acceptance ratio p
    and the ideal one p_i

    less than 1 if p < p_i, equal to 1 at p = p_i
    """
    return math.log(a*p_i + b) / math.log(a*p + b)

def adapt_step_size(sigma, p, p_i, a, b):
    return sigma*arm_scale_factor(p, p_i, a, b)
