import os

os.environ.setdefault("MPLBACKEND", "Agg")

import numpy as np
import pytest

from ega_poly.points import PointSet, generate_points

TRUE_COEFFICIENTS = [1.0, 2.0, 3.0, 4.0]


@pytest.fixture
def noise_free_points():
    return generate_points(TRUE_COEFFICIENTS, 30, (-1.0, 1.0), noise_std=0.0, seed=3)


@pytest.fixture
def tiny_points():
    # f(x) = 1 + x^2
    return PointSet(x=np.array([0.0, 1.0, 2.0]), y=np.array([1.0, 2.0, 5.0]))


@pytest.fixture
def small_config():
    return {
        "populationSize": 20,
        "geneCount": 4,
        "maxGenerationNumber": 20,
        "maxConstIter": 1000,
        "targetError": 0.0,
        "seed": 11,
        "log_every": 0,
    }
