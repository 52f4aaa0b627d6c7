import numpy as np
import pytest

from ega_poly.errors import InputDataError
from ega_poly.points import PointSet, generate_points, main, polynomial_values, read_points, write_points


def test_read_pairs_regardless_of_line_layout(tmp_path):
    path = tmp_path / "input.txt"
    path.write_text("0.0 1.0\n1.0   2.0 2.0\n5.0\n")
    points = read_points(str(path))
    np.testing.assert_array_equal(points.x, [0.0, 1.0, 2.0])
    np.testing.assert_array_equal(points.y, [1.0, 2.0, 5.0])
    assert len(points) == 3


@pytest.mark.parametrize("content", ["", "1.0 2.0 3.0", "1.0 dos"])
def test_malformed_files_are_input_errors(tmp_path, content):
    path = tmp_path / "input.txt"
    path.write_text(content)
    with pytest.raises(InputDataError):
        read_points(str(path))


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_points(str(tmp_path / "no_existe.txt"))


def test_point_set_is_read_only():
    points = PointSet(x=[0.0, 1.0], y=[1.0, 2.0])
    with pytest.raises(ValueError):
        points.x[0] = 3.0


def test_point_set_lengths_must_match():
    with pytest.raises(InputDataError):
        PointSet(x=[0.0, 1.0], y=[1.0])


def test_generated_points_follow_polynomial():
    points = generate_points([1.0, 2.0, 3.0, 4.0], 50, (-2.0, 2.0), seed=0)
    assert len(points) == 50
    assert points.x.min() >= -2.0 and points.x.max() <= 2.0
    np.testing.assert_allclose(points.y, 1 + 2 * points.x + 3 * points.x ** 2 + 4 * points.x ** 3)


def test_noise_is_added():
    clean = generate_points([1.0, 0.0, 0.0], 200, seed=1)
    noisy = generate_points([1.0, 0.0, 0.0], 200, noise_std=0.1, seed=1)
    residual = noisy.y - polynomial_values([1.0, 0.0, 0.0], noisy.x)
    assert np.all(clean.y == 1.0)
    assert 0.05 < residual.std() < 0.15


def test_written_points_can_be_read_back(tmp_path):
    points = generate_points([0.5, -1.0, 2.0, 0.25], 20, seed=4)
    path = tmp_path / "input.txt"
    write_points(str(path), points)
    read_back = read_points(str(path))
    np.testing.assert_allclose(read_back.x, points.x, rtol=1e-9)
    np.testing.assert_allclose(read_back.y, points.y, rtol=1e-9)


def test_generator_cli(tmp_path, capsys):
    path = tmp_path / "input.txt"
    assert main([str(path), "--count", "12", "--noise", "0.01", "--seed", "3"]) == 0
    assert len(read_points(str(path))) == 12
    assert "12 puntos" in capsys.readouterr().out


def test_generator_cli_rejects_zero_points(tmp_path, capsys):
    assert main([str(tmp_path / "input.txt"), "--count", "0"]) == 1
    assert "ERROR" in capsys.readouterr().err
