"""Distributions, effect generators and genotype utilities."""

from . import data_generation as data_generation
from . import distributions as distributions
from . import genotypes as genotypes
