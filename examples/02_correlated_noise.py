"""
Correlated Noise Example
========================

Noise correlated across traits decays with trait distance:
corr(trait_i, trait_j) = pcorr ** |i - j|. This example checks the decay
on a large sample.
"""

import numpy as np

import phenosim

print("=" * 60)
print("CORRELATED NOISE EXAMPLE")
print("=" * 60)

pcorr = 0.8
result = (
    phenosim.PhenoSim(n_samples=5000, n_traits=10)
    .set_variance(gen_var=0, rho=1, phi=0)
    .set_correlated_noise(pcorr=pcorr)
    .simulate()
)

corr = np.corrcoef(result.phenotype, rowvar=False)

print(f"\n{'Distance':<10} {'Expected':<10} {'Observed':<10}")
print("-" * 30)
for distance in range(10):
    print(f"{distance:<10} {pcorr ** distance:<10.3f} {corr[0, distance]:<10.3f}")
