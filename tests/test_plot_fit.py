import json

import matplotlib

matplotlib.use("Agg")

from ega_poly.ega_core import EGA
from ega_poly.plot_fit import load_results, main, plot_fit
from ega_poly.points import write_points


def test_plot_from_final_result(noise_free_points, small_config, tmp_path):
    EGA(small_config, noise_free_points).run(output_dir=str(tmp_path))
    results = load_results(str(tmp_path / "final_result.json"))

    figure = plot_fit(results, noise_free_points, save_path=str(tmp_path / "ajuste.png"), show=False)

    assert len(figure.axes) == 2
    assert (tmp_path / "ajuste.png").exists()


def test_plot_cli(noise_free_points, tmp_path):
    results_path = tmp_path / "final_result.json"
    results_path.write_text(json.dumps({"best": {"params": [1.0, 2.0, 3.0, 4.0], "fitness": 0.0}}))
    points_path = tmp_path / "input.txt"
    write_points(str(points_path), noise_free_points)

    code = main([str(results_path), str(points_path), "--save", str(tmp_path / "f.png"), "--no-show"])

    assert code == 0
    assert (tmp_path / "f.png").exists()


def test_plot_cli_missing_results(tmp_path, capsys):
    assert main([str(tmp_path / "nada.json"), str(tmp_path / "nada.txt"), "--no-show"]) == 1
    assert "ERROR" in capsys.readouterr().err
