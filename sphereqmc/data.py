"""
collection of data analysis tools for the sphere
mostly accumulating and storing angular densities from monte carlo samples
"""
import numpy as np
import matplotlib.pyplot as plt
import h5py
from sklearn.utils import resample

def _bins(mesh, x):
    """
    bin of each x in mesh, where bin i is (mesh[i], mesh[i+1]]
    and -1 or len(mesh) - 1 means outside
    """
    return np.searchsorted(mesh, x, side='left') - 1

def update_density(theta_mesh, theta, density):
    """
    add one count per particle to the polar density histogram

    args:
        theta_mesh (1D array): ascending bin edges,
            bin i covers (theta_mesh[i], theta_mesh[i+1]]
        theta (1D array): current polar angles of the particles
        density (1D array): accumulated counts, length len(theta_mesh) - 1,
            modified in place
    returns:
        nothing, will print complaint for particles outside the mesh
    """
    theta_mesh = np.asarray(theta_mesh)
    if len(density) != len(theta_mesh) - 1:
        raise ValueError('density has %d bins but the mesh has %d edges'\
                % (len(density), len(theta_mesh)))
    i = _bins(theta_mesh, np.atleast_1d(theta))
    inside = (i >= 0) & (i < len(density))
    if not inside.all():
        print('%d samples outside of theta mesh were skipped'\
                % np.count_nonzero(~inside))
    np.add.at(density, i[inside], 1.0)

def update_density_2d(theta_mesh, phi_mesh, theta, phi, density):
    """
    2D version of update_density(), binning in both theta and phi

    density has shape (len(theta_mesh) - 1, len(phi_mesh) - 1)
    and theta, phi are the coordinates of each particle
    """
    theta_mesh = np.asarray(theta_mesh)
    phi_mesh = np.asarray(phi_mesh)
    expected = (len(theta_mesh) - 1, len(phi_mesh) - 1)
    if np.shape(density) != expected:
        raise ValueError('density has shape %s, meshes need %s'\
                % (np.shape(density), expected))
    theta = np.atleast_1d(theta)
    phi = np.atleast_1d(phi)
    if theta.shape != phi.shape:
        raise ValueError('got %d theta but %d phi' % (len(theta), len(phi)))
    i = _bins(theta_mesh, theta)
    j = _bins(phi_mesh, phi)
    inside = (i >= 0) & (i < expected[0]) & (j >= 0) & (j < expected[1])
    if not inside.all():
        print('%d samples outside of (theta, phi) mesh were skipped'\
                % np.count_nonzero(~inside))
    np.add.at(density, (i[inside], j[inside]), 1.0)

def normalize_density(theta_mesh, density):
    """
    turn counts from update_density() into a density per unit solid angle
    which integrates to 1 over the sphere (if the mesh covers it)

    the band between theta_mesh[i] and theta_mesh[i+1]
    has solid angle 2*pi*(cos(theta_mesh[i]) - cos(theta_mesh[i+1]))

    a uniform distribution comes out as 1/(4*pi) in every bin
    """
    theta_mesh = np.asarray(theta_mesh)
    solid_angle = 2*np.pi*(np.cos(theta_mesh[:-1]) - np.cos(theta_mesh[1:]))
    return np.asarray(density) / (solid_angle*np.sum(density))

def save_density(fname, density, theta_mesh, phi_mesh=None, samples=None):
    """
    write an accumulated density to hdf5 so a run can be continued later

    args:
        fname (str): name of hdf5 file to write to
        density (array): counts from update_density or update_density_2d
        theta_mesh (1D array): bin edges in theta
        phi_mesh (1D array): bin edges in phi, only for a 2D density
        samples (int): number of configurations accumulated, if known
    returns:
        nothing
    """
    with h5py.File(fname, 'w') as f:
        f["/density"] = np.asarray(density)
        f["/mesh/theta"] = np.asarray(theta_mesh)
        if phi_mesh is not None:
            f["/mesh/phi"] = np.asarray(phi_mesh)
        if samples is not None:
            f["/samples"] = samples

def load_density(fname):
    """
    read back a file written by save_density()

    returns:
        dict with keys 'density', 'theta_mesh', 'phi_mesh', 'samples'
        where the last two are None if they were not saved
    """
    with h5py.File(fname, 'r') as f:
        loaded = {'density': f["/density"][()],\
                'theta_mesh': f["/mesh/theta"][()],\
                'phi_mesh': None, 'samples': None}
        if "/mesh/phi" in f:
            loaded['phi_mesh'] = f["/mesh/phi"][()]
        if "/samples" in f:
            loaded['samples'] = int(f["/samples"][()])
    return loaded

def plot_density(theta_mesh, density, show=False):
    """
    step plot of a 1D polar density against theta

    returns the matplotlib axes, so more can be drawn on it
    """
    fig, ax = plt.subplots()
    ax.stairs(density, theta_mesh, color='r')
    ax.set_xlabel(r'$\theta$')
    ax.set_ylabel('density')
    ax.set_xlim((theta_mesh[0], theta_mesh[-1]))
    if show:
        plt.show()
    return ax

def bootstrap_mean_error(data, num_bootstraps, random_state=None):
    """
    given a dataset, this estimates the error
    for the mean of the data via bootstrap
    resamples the data num_bootstraps times

    works on complex data too, e.g. determinant ratios,
    in which case the error is that of the complex mean (a real number)

    also works on means of arrays
    so long as the first index enumerates different data points
    """
    rng = np.random.RandomState(random_state)
    means = []
    for i in range(num_bootstraps):
        means.append(np.mean(resample(data, random_state=rng), axis=0))
    return np.std(means, axis=0)
