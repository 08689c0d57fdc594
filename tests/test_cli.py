"""End-to-end tests for the regactivity command line."""

import pandas as pd
import pytest
import yaml

from regactivity.cli import main
from regactivity.cli.run import adjust_pvalues


@pytest.fixture
def inputs(tmp_path, mat, net):
    """Matrix and network written to CSV."""
    mat_path = tmp_path / "mat.csv"
    net_path = tmp_path / "net.csv"
    mat.to_csv(mat_path)
    net.to_csv(net_path, index=False)
    return mat_path, net_path


class TestRunCommand:
    """Tests for `regactivity run`."""

    def test_writes_results(self, inputs, tmp_path):
        mat_path, net_path = inputs
        out = tmp_path / "out" / "activities.csv"
        code = main([
            "run", "--mat", str(mat_path), "--net", str(net_path), "--output", str(out),
            "--methods", "ulm", "mlm", "wsum", "--times", "20", "--seed", "3",
        ])
        assert code == 0

        res = pd.read_csv(out)
        assert res.columns.tolist() == ["statistic", "source", "condition", "score", "p_value"]
        assert res["statistic"].unique().tolist() == [
            "ulm", "mlm", "wsum", "norm_wsum", "corr_wsum", "consensus",
        ]

    def test_fdr_and_no_consensus(self, inputs, tmp_path):
        mat_path, net_path = inputs
        out = tmp_path / "activities.csv"
        code = main([
            "run", "-m", str(mat_path), "-n", str(net_path), "-o", str(out),
            "--methods", "ulm", "mlm", "--no-consensus", "--fdr",
        ])
        assert code == 0

        res = pd.read_csv(out)
        assert "consensus" not in set(res["statistic"])
        assert (res["p_adj"] >= res["p_value"] - 1e-12).all()

    def test_config_file(self, inputs, tmp_path):
        """Paths and options can come from a YAML config; flags override it."""
        mat_path, net_path = inputs
        out = tmp_path / "from_config.csv"
        config = tmp_path / "run.yaml"
        config.write_text(yaml.safe_dump({
            "mat": str(mat_path),
            "net": str(net_path),
            "output": str(out),
            "methods": ["ulm", "wmean"],
            "minsize": 50,
            "args": {"wmean": {"times": 15}},
        }))

        code = main(["run", "--config", str(config), "--minsize", "5"])
        assert code == 0
        res = pd.read_csv(out)
        assert "norm_wmean" in set(res["statistic"])

    def test_missing_input_flag(self, inputs, tmp_path):
        _, net_path = inputs
        assert main(["run", "--net", str(net_path), "--output", str(tmp_path / "x.csv")]) == 1

    def test_bad_network_returns_error(self, inputs, tmp_path):
        mat_path, net_path = inputs
        code = main([
            "run", "--mat", str(mat_path), "--net", str(net_path),
            "--output", str(tmp_path / "x.csv"), "--source", "tf",
        ])
        assert code == 1

    def test_invalid_config_returns_error(self, inputs, tmp_path):
        config = tmp_path / "bad.yaml"
        config.write_text(yaml.safe_dump({"methods": ["viper"]}))
        assert main(["run", "--config", str(config)]) == 1

    def test_invalid_minsize_rejected_by_parser(self, inputs):
        mat_path, net_path = inputs
        with pytest.raises(SystemExit):
            main(["run", "--mat", str(mat_path), "--net", str(net_path), "--minsize", "-1"])


class TestMainDispatcher:
    """Tests for the top-level dispatcher."""

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 0
        assert "regactivity" in capsys.readouterr().out

    def test_methods_command(self, capsys):
        assert main(["methods"]) == 0
        out = capsys.readouterr().out
        assert "run_ulm" in out
        assert "run_ora" in out


class TestAdjustPvalues:
    """Tests for adjust_pvalues()."""

    def test_adjusts_within_statistic_and_skips_nan(self):
        res = pd.DataFrame({
            "statistic": ["ulm", "ulm", "mlm", "wsum"],
            "source": ["T1", "T2", "T1", "T1"],
            "condition": ["C1"] * 4,
            "score": [1.0, 2.0, 3.0, 4.0],
            "p_value": [0.01, 0.04, 0.03, float("nan")],
        })
        adjusted = adjust_pvalues(res)
        assert adjusted["p_adj"].iloc[:3].tolist() == pytest.approx([0.02, 0.04, 0.03])
        assert pd.isna(adjusted["p_adj"].iloc[3])
        assert "p_adj" not in res.columns
