"""
Confounder Effects Example
==========================

Non-genetic covariates such as age group, sex or batch. Each group of
confounders has its own distribution; categorical confounders are dummy
coded before their effects are drawn.
"""

import phenosim

print("=" * 60)
print("CONFOUNDER EFFECTS EXAMPLE")
print("=" * 60)

sim = phenosim.PhenoSim(n_samples=500, n_traits=8)
sim.set_variance(gen_var=0, delta=0.6, rho=0.2, phi=0.2)

# Three groups: 4 normal covariates, 1 binary covariate (sex), 2 categorical
# covariates with 5 levels (batch, site)
sim.set_noise_fixed(
    n_fixed_effects=3,
    n_confounders=[4, 1, 2],
    dist_confounders=["norm", "bin", "cat"],
    prob_confounders=[None, 0.5, None],
    cat_confounders=[None, None, 5],
    p_independent=[0.5, 0.0, 1.0],
    p_trait_independent=0.25,
)

result = sim.simulate()
print()
print(result.summary())

confounders = result.raw_components["noise_fixed"].metadata["confounders"]
for i, group in enumerate(confounders, 1):
    n_cols = group["shared"].shape[1] + group["independent"].shape[1]
    print(f"Group {i}: {group['distribution'].kind.value}, {n_cols} confounder(s)")
