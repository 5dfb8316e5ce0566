from bwt_benchmark import TABLE_INVERSE_LIMIT, default_data_sets, run_benchmarks


def test_run_benchmarks_small_suite(tmp_path):
    plot = tmp_path / "plot.png"
    df, path = run_benchmarks({"tiny": "banana", "digits": "112233 445566"},
                              plot_path=str(plot))
    assert path == str(plot)
    assert plot.exists()
    assert len(df) == 8
    assert set(df["algorithm"]) == {"naive+lf", "naive+table", "doubling+lf", "doubling+table"}
    assert df["valid"].all()
    assert {"bwt_ratio", "mtf_ratio", "rle_ratio"} <= set(df.columns)


def test_table_inverse_skipped_for_long_inputs(tmp_path):
    text = "ab" * (TABLE_INVERSE_LIMIT // 2 + 1)
    df, _ = run_benchmarks({"long": text}, plot_path=str(tmp_path / "p.png"))
    assert set(df["algorithm"]) == {"naive+lf", "doubling+lf"}
    assert df["valid"].all()


def test_default_data_sets_are_text():
    sets = default_data_sets()
    assert "digit_heavy" in sets
    assert all(isinstance(v, str) and v for v in sets.values())
