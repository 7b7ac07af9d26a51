"""
Own Genotypes and Kinship Example
=================================

Use an existing genotype matrix (samples x SNPs) and a precomputed kinship
matrix instead of simulated ones. Here both are generated up front to keep
the example self-contained; in practice they come from your own files.
"""

import numpy as np
import pandas as pd

import phenosim
from phenosim.stats.genotypes import get_kinship, simulate_genotypes

print("=" * 60)
print("OWN DATA EXAMPLE")
print("=" * 60)

rng = np.random.default_rng(2024)
genotypes, _ = simulate_genotypes(n_samples=300, n_snps=2000, rng=rng)
genotypes = pd.DataFrame(genotypes, index=[f"sample_{i}" for i in range(300)])
kinship = get_kinship(genotypes.to_numpy())

result = phenosim.simulate_phenotypes(
    300,
    6,
    seed=11,
    genotypes=genotypes,
    kinship=kinship,
    gen_var=0.6,
    h2s=0.3,
    rho=0.5,
    phi=0.5,
    genetic_fixed={"n_causal": 10, "keep_same_independent": True},
)

print()
print(result.summary())

causal = result.raw_components["genetic_fixed"].metadata["causal_snps"]
print(f"\nCausal SNP columns: {', '.join(str(i) for i in causal)}")

for name, frame in result.components_to_dataframes().items():
    print(f"{name:<28} variance {frame.to_numpy().var(axis=0).mean():.3f}")
