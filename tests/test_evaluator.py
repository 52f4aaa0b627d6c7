import numpy as np
import pytest

from ega_poly.errors import ConfigurationError
from ega_poly.evaluator_poly import (
    ParallelEvaluator,
    SequentialEvaluator,
    VectorizedEvaluator,
    make_evaluator,
)
from ega_poly.points import PointSet

from conftest import TRUE_COEFFICIENTS


def test_hand_computed_fitness(tiny_points):
    population = np.array([[1.0, 0.0, 1.0, 0.0], [0.0, 0.0, 0.0, 0.0]])
    for evaluator in (SequentialEvaluator(tiny_points), VectorizedEvaluator(tiny_points)):
        fitness = evaluator.evaluate(population)
        assert fitness[0] == pytest.approx(0.0)
        assert fitness[1] == pytest.approx(1.0 + 4.0 + 25.0)


@pytest.mark.parametrize("backend", ["sequential", "vectorized"])
def test_generating_coefficients_have_zero_fitness(noise_free_points, backend):
    evaluator = make_evaluator(backend, noise_free_points)
    population = np.array([TRUE_COEFFICIENTS, [1.0, 2.0, 3.0, 4.1], [0.0, 0.0, 0.0, 0.0]])
    fitness = evaluator.evaluate(population)
    assert fitness[0] == pytest.approx(0.0, abs=1e-9)
    assert np.all(fitness[1:] > 0.0)


def test_backends_agree(noise_free_points):
    population = np.random.default_rng(1).uniform(-5, 5, size=(17, 4))
    sequential = SequentialEvaluator(noise_free_points).evaluate(population)
    vectorized = VectorizedEvaluator(noise_free_points).evaluate(population)
    with ParallelEvaluator(noise_free_points, processes=2) as evaluator:
        parallel = evaluator.evaluate(population)
    np.testing.assert_allclose(sequential, vectorized, rtol=1e-10)
    np.testing.assert_allclose(parallel, vectorized, rtol=1e-10)
    assert parallel.shape == (17,)


def test_parallel_evaluator_population_smaller_than_pool(tiny_points):
    with ParallelEvaluator(tiny_points, processes=4) as evaluator:
        fitness = evaluator.evaluate(np.array([[1.0, 0.0, 1.0]]))
    assert fitness == pytest.approx([0.0])


def test_empty_inputs_are_programming_errors(tiny_points):
    evaluator = VectorizedEvaluator(tiny_points)
    with pytest.raises(ValueError):
        evaluator.evaluate(np.empty((0, 4)))
    empty = PointSet(x=np.array([]), y=np.array([]))
    with pytest.raises(ValueError):
        SequentialEvaluator(empty).evaluate(np.zeros((3, 4)))


def test_unknown_backend_is_configuration_error(tiny_points):
    with pytest.raises(ConfigurationError):
        make_evaluator("gpu", tiny_points)


def test_closed_pool_cannot_evaluate(tiny_points):
    evaluator = ParallelEvaluator(tiny_points, processes=1)
    evaluator.close()
    with pytest.raises(RuntimeError):
        evaluator.evaluate(np.zeros((2, 3)))
