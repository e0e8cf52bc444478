import numpy as np
import math

def permutation_sign(original, new):
    """
    parity of the permutation taking the sequence original to the sequence new
    i.e. +1 if an even number of swaps turns one into the other, -1 if odd

    both must contain the same distinct elements, in any order;
    anything else raises ValueError

    uses cycle decomposition: a cycle of length L needs L - 1 swaps,
    so each even-length cycle flips the sign
    """
    original = list(original)
    new = list(new)
    position = {elem: i for i, elem in enumerate(original)}
    if len(position) != len(original) or len(new) != len(original) \
            or set(new) != set(position):
        raise ValueError('%s is not a permutation of %s' % (new, original))
    p = [position[elem] for elem in new]
    visited = [False]*len(p)
    sign = 1
    for start in range(len(p)):
        length = 0
        j = start
        while not visited[j]:
            visited[j] = True
            j = p[j]
            length += 1
        if length > 0 and length % 2 == 0:
            sign = -sign
    return sign

def spherical_to_cartesian(theta, phi):
    """
    unit vector(s) for polar angle theta and azimuth phi
    theta and phi can be scalars or arrays of the same shape,
    the components are along the last axis of the output
    """
    theta = np.asarray(theta, dtype=float)
    phi = np.asarray(phi, dtype=float)
    return np.stack((np.sin(theta)*np.cos(phi), np.sin(theta)*np.sin(phi),\
            np.cos(theta)), axis=-1)

def cartesian_to_spherical(x):
    """
    inverse of spherical_to_cartesian, ignoring the length of x
    x has shape (..., 3)

    returns theta in [0, pi] and phi in [-pi, pi]
    (phi = -pi only shows up for a negative zero y component)
    """
    x = np.asarray(x, dtype=float)
    r = np.linalg.norm(x, axis=-1)
    theta = np.arccos(np.clip(x[...,2] / r, -1, 1))
    phi = np.arctan2(x[...,1], x[...,0])
    return theta, phi

def angle(v1, v2):
    """
    returns the angle between vectors v1 and v2
    in radians

    for two points on the unit sphere this is the great-circle distance
    """
    val = np.dot(v1, v2)
    val /= np.linalg.norm(v1)*np.linalg.norm(v2)
    #rounding can push val just outside [-1, 1] for (anti)parallel vectors
    return math.acos(min(1.0, max(-1.0, val)))
