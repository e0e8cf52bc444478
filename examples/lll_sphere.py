"""
variational monte carlo for N electrons in the lowest landau level
of a haldane sphere pierced by two_Q flux quanta

the orbitals are u^n v^(two_Q - n), n = 0, ..., two_Q
with u = cos(theta/2) exp(i phi/2), v = sin(theta/2) exp(-i phi/2)
and the sampled state fills the N orbitals with lowest n

besides the polar density, this measures the ratios
psi_excited / psi for states with one electron promoted
into an empty orbital. every excited state has a different L_z,
so these should all average to zero within error bars
"""
import numpy as np
from scipy.special import comb
import sphereqmc.qmc as sq
import sphereqmc.data as sdata
from sphereqmc.detratio import construct_det_ratios

class wavefunction:
    def __init__(self, N, two_Q, rng):
        self.N = N
        self.two_Q = two_Q
        self.rng = rng
        self.n = np.arange(two_Q + 1)
        self.norm = np.sqrt(comb(two_Q, self.n))
        self.occupied = list(range(N))
        self.theta, self.phi = sq.rand_theta_phi(N, rng)
        self.S = self.orbitals(self.theta, self.phi)
        self.Sinv = np.linalg.inv(self.S[self.occupied])

    def orbitals(self, theta, phi):
        """
        S[n, j] is orbital n at the position of particle j
        """
        theta = np.atleast_1d(theta)
        phi = np.atleast_1d(phi)
        u = np.cos(theta/2)*np.exp(0.5j*phi)
        v = np.sin(theta/2)*np.exp(-0.5j*phi)
        n = self.n[:,np.newaxis]
        return self.norm[:,np.newaxis]*u**n*v**(self.two_Q - n)

    def move(self, i, sigma):
        """
        attempt to move electron i, returns True if accepted

        only column i of S changes, so the ratio of determinants
        is row i of the inverse dotted into the new column
        """
        theta, phi = sq.proposal(self.theta[i], self.phi[i], sigma, self.rng)
        column = self.orbitals(theta, phi)[:,0]
        ratio = np.dot(self.Sinv[i], column[self.occupied])
        if sq.metropolis_accept(ratio, self.rng):
            self.theta[i] = theta
            self.phi[i] = phi
            self.S[:,i] = column
            self.Sinv = np.linalg.inv(self.S[self.occupied])
            return True
        return False

    def move_all(self, sigma):
        """
        returns total number of acceptances, not the average
        """
        accepted = 0
        for i in range(self.N):
            accepted += self.move(i, sigma)
        return accepted

if __name__=="__main__":
    rng = np.random.default_rng(69)
    N = 4
    two_Q = 7
    wf = wavefunction(N, two_Q, rng)
    empty = range(N, two_Q + 1)
    #promote the highest or the lowest occupied electron
    numerators = [wf.occupied[:-1] + [n] for n in empty] \
            + [[n] + wf.occupied[1:] for n in empty]
    evaluator = construct_det_ratios(wf.occupied, numerators)
    results = np.zeros(len(numerators), dtype=complex)

    ideal = 0.5
    a, b = sq.arm_parameters(ideal, 3.0)
    sigma = 0.5
    theta_mesh = np.linspace(0, np.pi, 31)
    density = np.zeros(30)
    ratios = []
    equilibration = 500
    sweeps = 5000
    block = 10
    accepted = 0
    for sweep in range(equilibration + sweeps):
        accepted += wf.move_all(sigma)
        if (sweep + 1) % block == 0:
            sigma = sq.adapt_step_size(sigma, accepted / (block*N), ideal, a, b)
            sigma = min(max(sigma, 1e-3), np.pi)
            accepted = 0
        if sweep < equilibration:
            continue
        sdata.update_density(theta_mesh, wf.theta, density)
        evaluator.evaluate(results, wf.S, wf.Sinv)
        ratios.append(results.copy())

    ratios = np.array(ratios)
    means = np.mean(ratios, axis=0)
    errors = sdata.bootstrap_mean_error(ratios, 200)
    print('final step size: %f' % sigma)
    for rows, mean, error in zip(numerators, means, errors):
        print('%s: %f%+fj +/- %f' % (rows, mean.real, mean.imag, error))
    sdata.save_density('lll_density.h5', density, theta_mesh, samples=sweeps)
    sdata.plot_density(theta_mesh, sdata.normalize_density(theta_mesh, density),\
            show=True)
